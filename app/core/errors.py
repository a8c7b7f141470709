"""Application-level exception types.

This module defines domain errors used across services/adapters, enabling
consistent error handling, logging, and API responses.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, NotRequired, TypedDict


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability and clients."""

    code: str
    message: str
    hint: str
    http_status: int
    retry_after: int
    request_id: str
    parameter: str
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
    """Raised when request parameters are invalid."""


class UpstreamAppError(AppError):
    """Raised when the recommendation webhook fails or returns garbage."""


@dataclass
class RateLimitExceededError(AppError):
    """Raised when the server admission gate denies a request.

    Attributes:
        limit: Configured maximum requests per window.
        retry_after: Seconds until the window resets.
        reset_at: Epoch milliseconds when the window resets, if known.
        client_id: Derived client identity (only surfaced when enabled).
    """

    limit: int = 0
    retry_after: int = 60
    reset_at: int | None = None
    client_id: str | None = None
    include_headers: bool = True

    def response_headers(self) -> dict[str, str]:
        if not self.include_headers:
            return {}
        return {
            "Retry-After": str(self.retry_after),
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": "0",
            "X-RateLimit-Reset": "" if self.reset_at is None else str(self.reset_at),
        }
