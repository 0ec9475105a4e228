"""Application-level exception types.

This module defines domain errors used across the limiter, store adapters
and HTTP layer, enabling consistent error handling, logging, and API
responses.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, NotRequired, TypedDict


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability and clients.

    Fields are optional so each error only carries what it knows.
    """

    code: str
    message: str
    hint: str
    backend: str
    key: str
    failed_reads: int
    total_reads: int
    http_status: int
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
    """Raised when input/config validation fails."""


class AuthenticationAppError(AppError):
    """Raised when authentication/authorization fails."""


class StoreAppError(AppError):
    """Base class for key-value store failures."""


class StoreReadError(StoreAppError):
    """Raised when a single-key get against the store fails."""


class StoreWriteError(StoreAppError):
    """Raised when a put against the store fails."""


class ScanReadError(StoreAppError):
    """One or more reads failed while scanning the window buckets."""
