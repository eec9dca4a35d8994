"""pgfs API error handling.

Exception handlers turning every failure into the error envelope built by
pgfs.api.error_model:

- FileSystemError: file system errors, mapped by type to a status and code
- HTTPException: FastAPI/Starlette HTTP exceptions
- RequestValidationError: Pydantic validation errors
- Exception: catch-all (fail closed, no stack traces)
"""

import logging
from typing import Any

from fastapi import HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from pgfs.api.error_model import get_error_code_for_status, make_error_response
from pgfs.storage.errors import (
    AlreadyExistsError,
    FileSystemError,
    InvalidArgumentError,
    NotFoundError,
)

logger = logging.getLogger(__name__)


class ErrorResponse(BaseModel):
    """Error envelope schema."""

    code: str
    message: str
    details: dict[str, Any] | None = None
    request_id: str | None = None


_FS_ERROR_STATUS: list[tuple[type[FileSystemError], int, str]] = [
    (NotFoundError, 404, "NOT_FOUND"),
    (AlreadyExistsError, 409, "ALREADY_EXISTS"),
    (InvalidArgumentError, 400, "INVALID_ARGUMENT"),
]


def status_for_error(exc: FileSystemError) -> tuple[int, str]:
    """Return the HTTP status and error code for a file system error.

    Closed handles, short writes and store failures are server-side faults
    and map to 500.
    """
    for error_type, status, code in _FS_ERROR_STATUS:
        if isinstance(exc, error_type):
            return status, code
    return 500, "STORE_FAILURE"


async def filesystem_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """FastAPI exception handler for FileSystemError."""
    assert isinstance(exc, FileSystemError)

    status, code = status_for_error(exc)
    if status >= 500:
        logger.error(
            "File system failure: %s",
            exc,
            extra={"request_id": getattr(request.state, "request_id", None)},
        )
        message = "The file store could not complete the request"
    else:
        message = exc.message

    details: dict[str, Any] = {}
    if exc.name:
        details["name"] = exc.name
    if exc.operation:
        details["operation"] = exc.operation

    return make_error_response(
        request,
        code=code,
        message=message,
        http_status=status,
        details=details or None,
    )


async def http_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """FastAPI exception handler for HTTPException."""
    assert isinstance(exc, HTTPException)

    code = get_error_code_for_status(exc.status_code)
    message = str(exc.detail) if exc.detail else f"HTTP {exc.status_code}"

    return make_error_response(
        request,
        code=code,
        message=message,
        http_status=exc.status_code,
        details=None,
    )


async def request_validation_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """FastAPI exception handler for RequestValidationError.

    Does not expose raw validation internals.
    """
    assert isinstance(exc, RequestValidationError)

    safe_details: list[dict[str, Any]] = []
    for error in exc.errors():
        loc = error.get("loc", ())
        safe_loc = [str(part) for part in loc if part not in ("body", "query", "path")]
        safe_details.append(
            {
                "field": ".".join(safe_loc) if safe_loc else "request",
                "message": error.get("msg", "Validation error"),
            }
        )

    return make_error_response(
        request,
        code="REQUEST_VALIDATION_FAILED",
        message="Request validation failed",
        http_status=422,
        details={"errors": safe_details} if safe_details else None,
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler: 500 with a generic message, exception logged."""
    logger.exception(
        "Unhandled exception: %s",
        type(exc).__name__,
        extra={"request_id": getattr(request.state, "request_id", None)},
    )

    return make_error_response(
        request,
        code="INTERNAL_ERROR",
        message="An internal error occurred",
        http_status=500,
        details=None,
    )
