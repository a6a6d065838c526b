"""Rate limiting adapters.

A fixed-window counter per client address, kept either in Redis (shared by
every worker) or in process memory (single worker, tests, local runs).
"""

from app.adapters.rate_limit.base import (
    AbstractRateLimiter,
    RateLimiterUnavailableError,
    RateLimitResult,
)
from app.adapters.rate_limit.in_memory import InMemoryFixedWindowRateLimiter
from app.adapters.rate_limit.redis_limiter import RedisFixedWindowRateLimiter

__all__ = [
    "AbstractRateLimiter",
    "InMemoryFixedWindowRateLimiter",
    "RateLimitResult",
    "RateLimiterUnavailableError",
    "RedisFixedWindowRateLimiter",
]
