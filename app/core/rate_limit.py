"""Rate limiting dependency for FastAPI routes.

Strategy: fixed-window counter per client network address, stored by the
limiter found on ``app.state.rate_limiter``.

Degraded mode is a configured policy (``APP_RATE_LIMIT_FAIL_MODE``), applied
whenever the limiter cannot answer:
- ``closed``: reject with 503 until the backend is reachable again
- ``open``: log and let the request through unlimited
"""

from __future__ import annotations

import hashlib
import logging

from fastapi import Request

from app.adapters.rate_limit.base import AbstractRateLimiter, RateLimiterUnavailableError
from app.core.config import settings
from app.core.errors import RateLimitAppError, ServiceUnavailableAppError

logger = logging.getLogger(__name__)

RATE_LIMIT_MESSAGE = "Too many requests, please try again later."


def build_rate_limit_key(request: Request) -> str:
    """Limiter key for the request's client address."""

    client_host = request.client.host if request.client else "unknown"
    return f"ip:{client_host}"


def _hash_limiter_key(key: str) -> str:
    """Hash the rate limit key for logging without exposing addresses."""
    return hashlib.sha256(key.encode()).hexdigest()[:16]


def _degraded(key_hash: str, reason: str) -> None:
    """Apply the configured fail mode when the limiter is unusable."""

    fail_mode = settings.app.rate_limit_fail_mode
    logger.error(
        "rate_limit.backend_unavailable",
        extra={"key_hash": key_hash, "fail_mode": fail_mode, "reason": reason},
    )
    if fail_mode == "open":
        return
    raise ServiceUnavailableAppError(
        code="rate_limiter_unavailable",
        message="Service temporarily unavailable. Please try again later.",
        details={"backend": "rate_limiter"},
    )


async def enforce_rate_limit(request: Request) -> None:
    """FastAPI dependency enforcing rate limits.

    Consumes one point from the client's budget for the current window.

    Raises:
        RateLimitAppError: 429 when the budget is exhausted.
        ServiceUnavailableAppError: 503 when the limiter is down and fail mode is closed.
    """

    if not settings.app.rate_limit_enabled:
        return

    key = build_rate_limit_key(request)
    key_hash = _hash_limiter_key(key)

    limiter: AbstractRateLimiter | None = getattr(request.app.state, "rate_limiter", None)
    if limiter is None:
        _degraded(key_hash, "limiter_not_initialized")
        return

    try:
        result = await limiter.consume(key)
    except RateLimiterUnavailableError as exc:
        _degraded(key_hash, str(exc))
        return

    if result.allowed:
        logger.debug(
            "rate_limit.allowed",
            extra={"key_hash": key_hash, "limit": result.limit, "remaining": result.remaining},
        )
        return

    retry_after = result.retry_after_seconds or 0
    logger.warning(
        "rate_limit.exceeded",
        extra={
            "key_hash": key_hash,
            "limit": result.limit,
            "window_s": settings.app.rate_limit_window_seconds,
            "retry_after_s": retry_after,
        },
    )

    headers: dict[str, str] | None = None
    if settings.app.rate_limit_include_headers:
        headers = {
            "Retry-After": str(retry_after),
            "X-RateLimit-Limit": str(result.limit),
            "X-RateLimit-Remaining": str(result.remaining),
            "X-RateLimit-Reset": str(result.reset_at),
        }

    raise RateLimitAppError(
        code="rate_limit_exceeded",
        message=RATE_LIMIT_MESSAGE,
        headers=headers,
    )
