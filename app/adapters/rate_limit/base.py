"""Rate limiter interfaces.

The HTTP layer depends on this abstraction only, so the counter store can be
Redis in production and process memory in tests.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


class RateLimiterUnavailableError(Exception):
    """Raised when the limiter's backing store cannot be reached."""


@dataclass(frozen=True)
class RateLimitResult:
    """Result of a rate limit consume operation.

    Attributes:
        allowed: Whether the request is allowed to proceed.
        limit: Max requests per window.
        remaining: Remaining requests in the current window (0 when blocked).
        reset_at: UNIX epoch seconds when the current window resets.
        retry_after_seconds: Suggested wait time in seconds when blocked.
    """

    allowed: bool
    limit: int
    remaining: int
    reset_at: int
    retry_after_seconds: int | None


class AbstractRateLimiter(ABC):
    """Interface for rate limiters."""

    @abstractmethod
    async def consume(self, key: str, *, cost: int = 1) -> RateLimitResult:
        """Consume rate limit budget for a given key.

        Every call adds ``cost`` to the window counter, including calls that
        end up rejected, so a client that keeps retrying while blocked stays
        blocked until the window resets.

        Args:
            key: Unique identifier (e.g., client address).
            cost: Units to consume (default 1).

        Returns:
            RateLimitResult describing whether it was allowed.

        Raises:
            RateLimiterUnavailableError: If the backing store is unreachable.
        """
        raise NotImplementedError

    async def ping(self) -> None:
        """Check backend reachability; raises RateLimiterUnavailableError."""

    async def close(self) -> None:
        """Release backend connections, if any."""


def validate_limits(limit: int, window_seconds: int) -> None:
    if limit < 1:
        raise ValueError("limit must be >= 1")
    if window_seconds < 1:
        raise ValueError("window_seconds must be >= 1")


def validate_consume_args(key: str, cost: int) -> None:
    if cost < 1:
        raise ValueError("cost must be >= 1")
    if not key:
        raise ValueError("key must be a non-empty string")
