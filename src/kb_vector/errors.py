"""Error taxonomy for the retrieval engine.

Every collaborator raises a typed error at the point of failure, so callers
and the retry layer can react to the category (and its ``retryable`` flag)
instead of inspecting message text.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

__all__ = [
    "ErrorCategory",
    "AppError",
    "ValidationError",
    "ExternalAPIError",
    "DatabaseError",
    "NotFoundError",
    "TimeoutError",
    "RateLimitError",
    "InternalError",
    "UnsupportedOperationError",
    "is_retryable",
]


class ErrorCategory(str, Enum):
    """High-level failure categories."""

    VALIDATION = "validation"
    EXTERNAL_API = "external_api"
    DATABASE = "database"
    NOT_FOUND = "not_found"
    TIMEOUT = "timeout"
    RATE_LIMIT = "rate_limit"
    INTERNAL = "internal"
    UNSUPPORTED = "unsupported"


class AppError(Exception):
    """Base class for all errors raised by kb_vector.

    Attributes:
        category: Failure category
        retryable: Whether retrying the same call may succeed
        status_code: HTTP-style status hint for the hosting application
        context: Structured details for logging
        timestamp: When the error was created
    """

    category: ErrorCategory = ErrorCategory.INTERNAL
    retryable: bool = False
    status_code: int = 500

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.context: dict[str, Any] = dict(context or {})
        self.timestamp = datetime.now()

    def to_dict(self) -> dict[str, Any]:
        """Serialize error for structured logging."""
        return {
            "name": type(self).__name__,
            "message": self.message,
            "category": self.category.value,
            "retryable": self.retryable,
            "status_code": self.status_code,
            "context": self.context,
            "timestamp": self.timestamp.isoformat(),
        }


class ValidationError(AppError, ValueError):
    """Malformed input: wrong embedding dimension, bad query, missing config."""

    category = ErrorCategory.VALIDATION
    status_code = 400


class ExternalAPIError(AppError):
    """A remote backend or the embedding call failed transiently."""

    category = ErrorCategory.EXTERNAL_API
    retryable = True
    status_code = 502

    def __init__(
        self,
        api_name: str,
        message: str,
        api_status_code: int | None = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message,
            {**(context or {}), "api_name": api_name, "api_status_code": api_status_code},
        )
        self.api_name = api_name
        self.api_status_code = api_status_code


class DatabaseError(AppError):
    """Failure of an underlying persistent store."""

    category = ErrorCategory.DATABASE
    retryable = True
    status_code = 503

    def __init__(
        self, operation: str, message: str, context: dict[str, Any] | None = None
    ) -> None:
        super().__init__(message, {**(context or {}), "operation": operation})
        self.operation = operation


class NotFoundError(AppError):
    """A resource that the operation requires does not exist."""

    category = ErrorCategory.NOT_FOUND
    status_code = 404

    def __init__(
        self, resource_type: str, resource_id: str, context: dict[str, Any] | None = None
    ) -> None:
        super().__init__(
            f"{resource_type} not found: {resource_id}",
            {**(context or {}), "resource_type": resource_type, "resource_id": resource_id},
        )
        self.resource_type = resource_type
        self.resource_id = resource_id


class TimeoutError(AppError):  # noqa: A001
    """An operation exceeded its deadline."""

    category = ErrorCategory.TIMEOUT
    retryable = True
    status_code = 504

    def __init__(
        self, operation: str, timeout: float, context: dict[str, Any] | None = None
    ) -> None:
        super().__init__(
            f"Operation timed out: {operation} ({timeout}s)",
            {**(context or {}), "operation": operation, "timeout": timeout},
        )
        self.operation = operation
        self.timeout = timeout


class RateLimitError(AppError):
    """The backend throttled the caller.

    Not retried automatically; ``retry_after`` (seconds) tells the caller
    when the backend expects traffic again.
    """

    category = ErrorCategory.RATE_LIMIT
    status_code = 429

    def __init__(
        self,
        message: str,
        retry_after: float | None = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, {**(context or {}), "retry_after": retry_after})
        self.retry_after = retry_after


class InternalError(AppError):
    """Unexpected or unclassified failure."""


class UnsupportedOperationError(AppError):
    """The configured backend cannot perform the requested operation."""

    category = ErrorCategory.UNSUPPORTED
    status_code = 501

    def __init__(self, operation: str, backend: str) -> None:
        super().__init__(
            f"Operation '{operation}' is not supported by the {backend} backend",
            {"operation": operation, "backend": backend},
        )
        self.operation = operation
        self.backend = backend


def is_retryable(error: BaseException) -> bool:
    """Return True if ``error`` is an AppError flagged as retryable."""
    return isinstance(error, AppError) and error.retryable
