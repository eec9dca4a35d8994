"""pgfs FastAPI application factory."""

from __future__ import annotations

from collections.abc import Callable

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError

from pgfs.api.errors import (
    filesystem_error_handler,
    generic_exception_handler,
    http_exception_handler,
    request_validation_error_handler,
)
from pgfs.api.middleware.db_tx import DBTransactionMiddleware
from pgfs.api.middleware.request_id import RequestIdMiddleware
from pgfs.api.routes.files import router as files_router
from pgfs.api.routes.health import PGFS_VERSION
from pgfs.api.routes.health import router as health_router
from pgfs.observability.tracing import configure_tracing, instrument_fastapi
from pgfs.storage.config import FileSystemConfig
from pgfs.storage.errors import FileSystemError
from pgfs.storage.filesystem import FileSystem


def create_app(
    config: FileSystemConfig | None = None,
    filesystem_factory: Callable[[Request], FileSystem] | None = None,
) -> FastAPI:
    """Create and configure the pgfs FastAPI application.

    Middleware ordering (outermost to innermost):
    1. RequestIdMiddleware - ensures request_id is available everywhere
    2. DBTransactionMiddleware - request-scoped FileSystem session

    Starlette adds middleware in reverse order (last added = outermost).

    Args:
        config: File system configuration. If None, read from environment.
        filesystem_factory: Optional callable building the FileSystem for a
            request, bypassing the request-scoped database connection.

    Returns:
        Configured FastAPI application instance.
    """
    app = FastAPI(
        title="pgfs",
        description="Write-once file store on PostgreSQL large objects",
        version=PGFS_VERSION,
    )

    app.state.fs_config = config or FileSystemConfig.from_env()
    app.state.filesystem_factory = filesystem_factory

    configure_tracing()

    app.add_middleware(DBTransactionMiddleware, config=app.state.fs_config)
    app.add_middleware(RequestIdMiddleware)

    instrument_fastapi(app)

    app.add_exception_handler(FileSystemError, filesystem_error_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_error_handler)
    app.add_exception_handler(Exception, generic_exception_handler)

    app.include_router(health_router)
    app.include_router(files_router)

    return app
