"""pgfs error types.

Every failed file system call raises exactly one of the types below. Low-level
SQLAlchemy/psycopg2 errors are translated at the store boundary by
translate_store_errors(); anything that has no filesystem meaning is wrapped in
StoreFailureError with the original exception chained, never reinterpreted.
"""

from __future__ import annotations

from collections.abc import Generator
from contextlib import contextmanager

from sqlalchemy.exc import DBAPIError, SQLAlchemyError

# SQLSTATE codes raised by the large object functions and the metadata table.
UNIQUE_VIOLATION = "23505"
UNDEFINED_OBJECT = "42704"
INVALID_PARAMETER_VALUE = "22023"


class FileSystemError(Exception):
    """Base exception for file system operations.

    Attributes:
        message: Human-readable error message.
        name: Object name associated with the operation (if applicable).
        operation: Operation that failed (e.g., "open", "write").
    """

    def __init__(
        self,
        message: str,
        *,
        name: str | None = None,
        operation: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.name = name
        self.operation = operation

    def __str__(self) -> str:
        parts = [self.message]
        if self.operation:
            parts.append(f"op={self.operation}")
        if self.name:
            parts.append(f"name={self.name}")
        return " ".join(parts)


class NotFoundError(FileSystemError):
    """Raised when a name is unknown, malformed, or its record is missing."""

    def __init__(
        self,
        message: str = "File not found",
        *,
        name: str | None = None,
        operation: str | None = None,
    ) -> None:
        super().__init__(message, name=name, operation=operation)


class AlreadyExistsError(FileSystemError):
    """Raised when create is called on a name that is already in use."""

    def __init__(
        self,
        message: str = "File already exists",
        *,
        name: str | None = None,
        operation: str | None = None,
    ) -> None:
        super().__init__(message, name=name, operation=operation)


class InvalidArgumentError(FileSystemError):
    """Raised for malformed names, invalid seek targets and invalid operations."""

    def __init__(
        self,
        message: str = "Invalid argument",
        *,
        name: str | None = None,
        operation: str | None = None,
    ) -> None:
        super().__init__(message, name=name, operation=operation)


class ClosedHandleError(FileSystemError):
    """Raised when operating on a handle that is already closed.

    Closing a handle twice raises this error too, so that double-close bugs
    are visible to the caller.
    """

    def __init__(
        self,
        message: str = "File already closed",
        *,
        name: str | None = None,
        operation: str | None = None,
    ) -> None:
        super().__init__(message, name=name, operation=operation)


class ShortWriteError(FileSystemError):
    """Raised when the store accepted fewer bytes than were given.

    Attributes:
        written: Number of bytes the store accepted.
        expected: Number of bytes passed to write().
    """

    def __init__(
        self,
        message: str = "Short write",
        *,
        name: str | None = None,
        operation: str | None = "write",
        written: int = 0,
        expected: int = 0,
    ) -> None:
        super().__init__(message, name=name, operation=operation)
        self.written = written
        self.expected = expected

    def __str__(self) -> str:
        return f"{super().__str__()} written={self.written} expected={self.expected}"


class StoreFailureError(FileSystemError):
    """Raised when the database cannot complete an operation.

    Covers connectivity and transaction errors, and negative responses from the
    large object functions. The underlying exception is kept on ``cause``.
    """

    def __init__(
        self,
        message: str = "Store failure",
        *,
        name: str | None = None,
        operation: str | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message, name=name, operation=operation)
        self.cause = cause


def _sqlstate(exc: SQLAlchemyError) -> str | None:
    """Return the SQLSTATE of a DBAPI error, if the driver exposes one."""
    if not isinstance(exc, DBAPIError):
        return None
    return getattr(exc.orig, "pgcode", None)


@contextmanager
def translate_store_errors(
    operation: str,
    *,
    name: str | None = None,
    missing: type[FileSystemError] = ClosedHandleError,
) -> Generator[None, None, None]:
    """Translate SQLAlchemy errors raised inside the block.

    Args:
        operation: Operation name reported on the raised error.
        name: Object name reported on the raised error.
        missing: Error type used for SQLSTATE 42704 (the descriptor or large
            object does not exist). Descriptor operations report a closed
            handle; opening a missing object reports not found.

    Raises:
        AlreadyExistsError: On unique violation.
        InvalidArgumentError: On invalid parameter values (e.g., seek offsets).
        FileSystemError: ``missing`` on undefined objects.
        StoreFailureError: On any other SQLAlchemy error.
    """
    try:
        yield
    except SQLAlchemyError as e:
        code = _sqlstate(e)
        if code == UNIQUE_VIOLATION:
            raise AlreadyExistsError(name=name, operation=operation) from e
        if code == UNDEFINED_OBJECT:
            raise missing(name=name, operation=operation) from e
        if code == INVALID_PARAMETER_VALUE:
            raise InvalidArgumentError(
                message=f"Store rejected argument: {e.orig}",
                name=name,
                operation=operation,
            ) from e
        raise StoreFailureError(
            message=f"Store failure: {e}",
            name=name,
            operation=operation,
            cause=e,
        ) from e
