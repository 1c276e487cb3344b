"""Application-level error taxonomy.

Every failure the API can report resolves to exactly one ``ErrorCode``, and
every code maps to exactly one HTTP status. Components return these errors as
``Err`` values at their boundaries; the HTTP layer renders them with
``cosmic_index.core.envelope.error``.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping, TypedDict


class ErrorCode(str, Enum):
    """Closed catalog of error codes returned in ``error.code``.

    Clients should switch on this field rather than on the HTTP status,
    because one status (400) is shared by several codes.
    """

    VALIDATION_ERROR = "VALIDATION_ERROR"
    PAGINATION_CONFLICT = "PAGINATION_CONFLICT"
    NOT_FOUND = "NOT_FOUND"
    RATE_LIMITED = "RATE_LIMITED"
    UPSTREAM_TIMEOUT = "UPSTREAM_TIMEOUT"
    UPSTREAM_ERROR = "UPSTREAM_ERROR"
    INTERNAL = "INTERNAL"


ERROR_STATUS: Mapping[ErrorCode, int] = MappingProxyType(
    {
        ErrorCode.VALIDATION_ERROR: 400,
        ErrorCode.PAGINATION_CONFLICT: 400,
        ErrorCode.NOT_FOUND: 404,
        ErrorCode.RATE_LIMITED: 429,
        ErrorCode.UPSTREAM_TIMEOUT: 504,
        ErrorCode.UPSTREAM_ERROR: 502,
        ErrorCode.INTERNAL: 500,
    }
)


class ErrorDetails(TypedDict, total=False):
    """Structured error context returned to clients.

    Fields are optional; each error kind fills the ones it needs.
    """

    field: str
    reason: str
    fields: list[dict[str, Any]]
    limit: int
    reset_at: int
    retry_after: int
    resource: str
    id: str


@dataclass
class AppError(Exception):
    """Base error for application/domain failures.

    Attributes:
        code: Taxonomy entry for this failure.
        message: Human-readable message safe to show to clients.
        details: Optional structured details for clients.
    """

    code: ErrorCode
    message: str
    details: ErrorDetails | None = None

    def __post_init__(self) -> None:
        # Populate Exception args so str(error) is useful in logs/tracebacks.
        super().__init__(self.message)

    @property
    def status_code(self) -> int:
        return ERROR_STATUS[self.code]


class ValidationAppError(AppError):
    """Raised when query input fails validation."""

    def __init__(self, message: str, details: ErrorDetails | None = None) -> None:
        super().__init__(ErrorCode.VALIDATION_ERROR, message, details)


class PaginationConflictError(AppError):
    """Raised when offset and cursor paging signals are mixed."""

    def __init__(self, message: str, details: ErrorDetails | None = None) -> None:
        super().__init__(ErrorCode.PAGINATION_CONFLICT, message, details)


class NotFoundAppError(AppError):
    """Raised when the requested record does not exist."""

    def __init__(self, message: str, details: ErrorDetails | None = None) -> None:
        super().__init__(ErrorCode.NOT_FOUND, message, details)


class RateLimitedError(AppError):
    """Raised when the client exhausted its budget for the tier."""

    def __init__(self, message: str, details: ErrorDetails | None = None) -> None:
        super().__init__(ErrorCode.RATE_LIMITED, message, details)


class UpstreamTimeoutError(AppError):
    """Raised when the catalog collaborator timed out."""

    def __init__(self, message: str, details: ErrorDetails | None = None) -> None:
        super().__init__(ErrorCode.UPSTREAM_TIMEOUT, message, details)


class UpstreamAppError(AppError):
    """Raised when the catalog collaborator failed."""

    def __init__(self, message: str, details: ErrorDetails | None = None) -> None:
        super().__init__(ErrorCode.UPSTREAM_ERROR, message, details)


class InternalAppError(AppError):
    """Raised for failures with no more specific taxonomy entry."""

    def __init__(self, message: str, details: ErrorDetails | None = None) -> None:
        super().__init__(ErrorCode.INTERNAL, message, details)
