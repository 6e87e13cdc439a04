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

    code: str
    message: str
    hint: str
    http_status: int
    operation: str
    tenant_id: str | None
    limit: int
    remaining: int
    retry_after: int
    reset_time: int
    upstream_status: int
    errors: list[dict[str, Any]]
    request_id: str
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
    """Raised when tool arguments or input validation fails."""


class AuthenticationAppError(AppError):
    """Raised when authentication/authorization fails."""


class NotFoundAppError(AppError):
    """Raised when an operation or tenant does not exist."""


class RateLimitAppError(AppError):
    """Raised by the dispatcher when a call exceeds its quota.

    Details carry ``retry_after`` (seconds), ``reset_time`` (epoch ms) and
    ``limit`` so callers can back off.
    """


class UpstreamAppError(AppError):
    """Raised when the ERP API fails or cannot be reached."""


class ConfigurationAppError(AppError):
    """Raised when gateway configuration is unusable (e.g., no tenants)."""
