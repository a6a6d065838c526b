"""Admin gate for write endpoints.

A single shared secret (``ADMIN_API_KEY``) is compared against the
``X-API-Key`` request header. There are no sessions or user accounts; read
endpoints are public.
"""

from __future__ import annotations

import hashlib
import hmac
import logging
from typing import Annotated

from fastapi import Header

from app.core.config import settings
from app.core.errors import AuthenticationAppError

logger = logging.getLogger(__name__)


def _key_fingerprint(key: str) -> str:
    return hashlib.sha256(key.encode()).hexdigest()[:16]


def validate_admin_key(provided_key: str | None) -> None:
    """Check ``provided_key`` against the configured admin secret.

    Pure validation logic without FastAPI dependencies for easy testing.
    An unset admin secret locks the write endpoints rather than opening them.

    Raises:
        AuthenticationAppError: If the key is missing, wrong, or no secret is configured.
    """
    expected = settings.app.admin_api_key

    if not expected:
        logger.error("auth.admin_key_not_configured")
        raise AuthenticationAppError(
            code="admin_key_not_configured",
            message="Forbidden: Admins only",
            details={"hint": "Set ADMIN_API_KEY to enable write endpoints"},
        )

    if not provided_key:
        logger.warning("auth.missing_key", extra={"api_key_present": False})
        raise AuthenticationAppError(code="missing_api_key", message="Forbidden: Admins only")

    if not hmac.compare_digest(provided_key.encode(), expected.encode()):
        logger.warning(
            "auth.invalid_key",
            extra={"api_key_present": True, "key_fingerprint": _key_fingerprint(provided_key)},
        )
        raise AuthenticationAppError(code="invalid_api_key", message="Forbidden: Admins only")


async def require_admin(
    x_api_key: Annotated[str | None, Header(alias="X-API-Key")] = None,
) -> None:
    """FastAPI dependency guarding admin-only routes.

    Usage:
        @router.post("/chapters", dependencies=[Depends(require_admin)])

    Raises:
        AuthenticationAppError: Rendered as 403 before the handler runs.
    """
    validate_admin_key(x_api_key)
    logger.info("auth.success", extra={"key_fingerprint": _key_fingerprint(x_api_key or "")})
