"""Request-scoped file system sessions for the pgfs API.

Every /v1 request gets its own connection, transaction and FileSystem
(request.state.filesystem) when PostgreSQL is configured. Large object
descriptors are only valid inside the transaction that opened them, and a
download reads its descriptor while the body streams, so the session ends
only after the last body chunk is sent: commit when the status is below 500,
rollback otherwise.

Pure ASGI (not BaseHTTPMiddleware) so streamed bodies are passed through
unbuffered; the blocking psycopg2 calls run via asyncio.to_thread().
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from starlette.requests import Request
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from pgfs.api.error_model import make_error_response_no_request
from pgfs.persistence.db import get_engine, is_postgres_configured
from pgfs.storage.config import FileSystemConfig
from pgfs.storage.filesystem import FileSystem

if TYPE_CHECKING:
    from sqlalchemy import Connection

logger = logging.getLogger(__name__)


class RequestSession:
    """Connection, transaction and FileSystem for one request."""

    def __init__(self, conn: Connection, config: FileSystemConfig) -> None:
        self.conn = conn
        self.transaction = conn.begin()
        self.filesystem = FileSystem(conn, config)

    @classmethod
    def open(cls, config: FileSystemConfig) -> RequestSession:
        conn = get_engine().connect()
        try:
            return cls(conn, config)
        except Exception:
            conn.close()
            raise

    def finish(self, status: int | None) -> bool:
        """End the transaction and close the connection.

        Args:
            status: Response status, or None if the app raised.

        Returns:
            True if the transaction was committed.
        """
        try:
            if status is not None and status < 500:
                self.transaction.commit()
                return True
            self.transaction.rollback()
            return False
        finally:
            self.conn.close()


class DBTransactionMiddleware:
    """Binds a FileSystem session to each /v1 request.

    Must run inside RequestIdMiddleware so error responses carry the
    request ID.
    """

    def __init__(self, app: ASGIApp, config: FileSystemConfig | None = None) -> None:
        self.app = app
        self.config = config or FileSystemConfig.from_env()

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if (
            scope["type"] != "http"
            or not scope["path"].startswith("/v1")
            or not is_postgres_configured()
        ):
            await self.app(scope, receive, send)
            return

        request = Request(scope)
        request_id: str | None = getattr(request.state, "request_id", None)

        try:
            session = await asyncio.to_thread(RequestSession.open, self.config)
        except Exception as e:
            logger.error("Failed to open DB session: %s", e, extra={"request_id": request_id})
            error_response = make_error_response_no_request(
                code="DATABASE_UNAVAILABLE",
                message="Database connection failed",
                http_status=503,
                request_id=request_id,
            )
            await error_response(scope, receive, send)
            return

        request.state.filesystem = session.filesystem
        status: int | None = None

        async def send_wrapper(message: Message) -> None:
            nonlocal status
            if message["type"] == "http.response.start":
                status = message["status"]
            await send(message)

        raised = False
        try:
            await self.app(scope, receive, send_wrapper)
        except Exception:
            raised = True
            raise
        finally:
            request.state.filesystem = None
            try:
                committed = await asyncio.to_thread(session.finish, None if raised else status)
            except Exception as e:
                logger.error("Failed to end DB session: %s", e, extra={"request_id": request_id})
            else:
                logger.debug(
                    "%s DB session for request %s (status=%s)",
                    "Committed" if committed else "Rolled back",
                    request_id,
                    status,
                )
