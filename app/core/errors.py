"""Application-level exception types.

This module defines domain errors used across services/adapters, enabling
consistent error handling, logging, and API responses.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, NotRequired, TypedDict


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability and clients.

    Fields are optional to keep backward compatibility while encouraging
    consistent shapes across the codebase.
    """

    hint: str
    chapter_id: str
    content_type: str
    max_bytes: int
    limit: int
    remaining: int
    reset_at: int
    retry_after: int
    backend: str
    context: NotRequired[dict[str, Any]]


@dataclass
class AppError(Exception):
    """Base error for application/domain failures.

    Attributes:
        code: Stable, machine-readable error code.
        message: Human-readable error message.
        details: Optional structured details for debugging/observability.
    """

    code: str
    message: str
    details: ErrorDetails | None = None

    def __post_init__(self) -> None:
        # Populate Exception args so str(error) is useful in logs/tracebacks.
        super().__init__(self.message)


class ValidationAppError(AppError):
    """Raised when request input validation fails."""


class AuthenticationAppError(AppError):
    """Raised when authentication/authorization fails."""


class NotFoundAppError(AppError):
    """Raised when a single-resource lookup finds nothing."""


@dataclass
class RateLimitAppError(AppError):
    """Raised when a client exceeds its request budget.

    ``headers`` are copied onto the 429 response when set.
    """

    headers: dict[str, str] | None = None


class ServiceUnavailableAppError(AppError):
    """Raised when a required backend cannot serve the request."""


class StorageAppError(AppError):
    """Raised when the record store or cache fails unexpectedly."""


class PayloadTooLargeAppError(AppError):
    """Raised when an upload exceeds the configured size limit."""
