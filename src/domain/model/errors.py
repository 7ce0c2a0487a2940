"""Domain-level exceptions.

Services raise these errors to express directory failures by category.
Route handlers catch them and map to appropriate HTTP status codes.
Every error carries a ``kind`` tag so callers can match on the category
without depending on the class hierarchy.
"""

import asyncio
from enum import Enum


class ErrorKind(str, Enum):
    INVALID_ARGUMENT = "invalid_argument"
    DIRECTORY_OPERATION_FAILED = "directory_operation_failed"
    TRANSIENT_UNAVAILABLE = "transient_unavailable"
    ENTITY_NOT_FOUND = "entity_not_found"
    CANCELLED = "cancelled"
    UNKNOWN = "unknown"


class DomainError(Exception):
    """Base class for all domain errors."""

    kind: ErrorKind = ErrorKind.UNKNOWN


class ConfigurationError(DomainError):
    """A required configuration value is missing or malformed."""


class DirectoryError(DomainError):
    """Base class for failures of a directory operation."""


class InvalidArgumentError(DirectoryError):
    """Caller input is malformed (empty required value, missing id)."""

    kind = ErrorKind.INVALID_ARGUMENT


class DirectoryOperationError(DirectoryError):
    """The directory explicitly rejected the request."""

    kind = ErrorKind.DIRECTORY_OPERATION_FAILED

    def __init__(self, reason: str | None, status_code: int | None = None, code: str | None = None):
        self.reason = reason
        self.status_code = status_code
        self.code = code
        super().__init__(reason or "Directory operation failed")


class TransientUnavailableError(DirectoryError):
    """Network failure, timeout, throttling or server-side outage."""

    kind = ErrorKind.TRANSIENT_UNAVAILABLE


class EntityNotFoundError(DirectoryError):
    """Requested principal does not exist (or is not visible yet)."""

    kind = ErrorKind.ENTITY_NOT_FOUND


def classify(exc: BaseException) -> ErrorKind:
    """Return the error category of an exception raised by a directory call."""
    if isinstance(exc, asyncio.CancelledError):
        return ErrorKind.CANCELLED
    if isinstance(exc, DomainError):
        return exc.kind
    return ErrorKind.UNKNOWN
