"""In-memory fixed-window rate limiter.

Notes:
- Per-process only: running multiple workers multiplies the effective limit.
- Thread-safe: uses a lock around shared state.
"""

from __future__ import annotations

import math
import threading
import time
from dataclasses import dataclass
from typing import Callable

from app.adapters.rate_limit.base import (
    AbstractRateLimiter,
    RateLimitResult,
    validate_consume_args,
    validate_limits,
)


@dataclass
class _WindowState:
    window_start: int
    count: int


class InMemoryFixedWindowRateLimiter(AbstractRateLimiter):
    """Rate limiter using a fixed time window per key.

    Windows are aligned to multiples of ``window_seconds`` since the epoch, so
    every key resets at the same instants.
    """

    def __init__(
        self,
        *,
        limit: int,
        window_seconds: int,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the in-memory rate limiter.

        Args:
            limit: Maximum number of allowed units per window.
            window_seconds: Size of the fixed window in seconds.
            clock: Time source function returning UNIX time in seconds.

        Raises:
            ValueError: If limit or window_seconds are invalid.
        """
        validate_limits(limit, window_seconds)

        self._limit = limit
        self._window_seconds = window_seconds
        self._clock = clock
        self._lock = threading.RLock()
        self._state_by_key: dict[str, _WindowState] = {}

    def _window_bounds(self, now: float) -> tuple[int, int]:
        window_start = int(now // self._window_seconds) * self._window_seconds
        return window_start, window_start + self._window_seconds

    async def consume(self, key: str, *, cost: int = 1) -> RateLimitResult:
        """Consume budget for ``key`` in the current window.

        Rejected requests are counted as well.

        Raises:
            ValueError: If key is empty or cost is invalid.
        """
        validate_consume_args(key, cost)

        now = self._clock()
        window_start, reset_at = self._window_bounds(now)

        with self._lock:
            state = self._state_by_key.get(key)
            if state is None or state.window_start != window_start:
                state = _WindowState(window_start=window_start, count=0)
                self._state_by_key[key] = state
                self._drop_stale_locked(window_start)

            state.count += cost
            if state.count <= self._limit:
                return RateLimitResult(
                    allowed=True,
                    limit=self._limit,
                    remaining=max(0, self._limit - state.count),
                    reset_at=reset_at,
                    retry_after_seconds=None,
                )

            return RateLimitResult(
                allowed=False,
                limit=self._limit,
                remaining=0,
                reset_at=reset_at,
                retry_after_seconds=max(0, int(math.ceil(reset_at - now))),
            )

    def _drop_stale_locked(self, window_start: int) -> None:
        stale = [k for k, s in self._state_by_key.items() if s.window_start < window_start]
        for key in stale:
            del self._state_by_key[key]
