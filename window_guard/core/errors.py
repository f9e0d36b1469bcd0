"""Application-level exception types.

This module defines domain errors used across the HTTP boundary, enabling
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
    limit: int
    reset_at: int
    request_id: str
    context: NotRequired[dict[str, Any]]


@dataclass
class AppError(Exception):
    """Base error for application failures.

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
    """Raised when input/config validation fails."""


@dataclass
class RateLimitAppError(AppError):
    """Raised at the HTTP boundary when a caller exceeds its window.

    Attributes:
        retry_after_seconds: Value for the Retry-After header.
        headers: Extra response headers (X-RateLimit-*).
    """

    retry_after_seconds: int = 0
    headers: dict[str, str] | None = None
