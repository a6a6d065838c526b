"""Redis-backed fixed-window rate limiter.

The counter for a key lives at ``<prefix>:<key>``. Each hit runs INCRBY,
EXPIRE NX and TTL in one MULTI/EXEC: the first hit of a window creates the
counter and starts its expiry, later hits only increment it. Rejected hits
are counted too. Requires Redis 7 for EXPIRE NX.
"""

from __future__ import annotations

import time

from redis.asyncio import Redis
from redis.exceptions import RedisError

from app.adapters.rate_limit.base import (
    AbstractRateLimiter,
    RateLimiterUnavailableError,
    RateLimitResult,
    validate_consume_args,
    validate_limits,
)


class RedisFixedWindowRateLimiter(AbstractRateLimiter):
    def __init__(
        self,
        client: Redis,
        *,
        limit: int,
        window_seconds: int,
        key_prefix: str = "rate_limit",
    ) -> None:
        validate_limits(limit, window_seconds)
        self._redis = client
        self._limit = limit
        self._window_seconds = window_seconds
        self._key_prefix = key_prefix

    async def consume(self, key: str, *, cost: int = 1) -> RateLimitResult:
        validate_consume_args(key, cost)
        redis_key = f"{self._key_prefix}:{key}"

        try:
            async with self._redis.pipeline(transaction=True) as pipe:
                pipe.incrby(redis_key, cost)
                pipe.expire(redis_key, self._window_seconds, nx=True)
                pipe.ttl(redis_key)
                count, _, ttl = await pipe.execute()
        except RedisError as exc:
            raise RateLimiterUnavailableError(str(exc)) from exc

        reset_at = int(time.time()) + ttl
        remaining = max(0, self._limit - count)
        if count <= self._limit:
            return RateLimitResult(
                allowed=True,
                limit=self._limit,
                remaining=remaining,
                reset_at=reset_at,
                retry_after_seconds=None,
            )
        return RateLimitResult(
            allowed=False,
            limit=self._limit,
            remaining=0,
            reset_at=reset_at,
            retry_after_seconds=ttl,
        )

    async def ping(self) -> None:
        try:
            await self._redis.ping()
        except RedisError as exc:
            raise RateLimiterUnavailableError(str(exc)) from exc
