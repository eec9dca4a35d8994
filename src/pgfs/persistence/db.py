"""PostgreSQL engines and file system sessions for pgfs.

Large object descriptors only live as long as the transaction that opened
them, so a FileSystem is always bound to a connection inside a transaction.
filesystem_session() pairs the two for scripts and the CLI; the API opens its
own per-request session in DBTransactionMiddleware.

Environment Variables:
    PGFS_DATABASE_URL: Application connection string
    PGFS_DATABASE_ADMIN_URL: Admin connection string (migrations/tests only)
"""

from __future__ import annotations

import logging
import os
from collections.abc import Generator
from contextlib import contextmanager
from typing import TYPE_CHECKING

from sqlalchemy import create_engine

from pgfs.observability.tracing import instrument_sqlalchemy
from pgfs.storage.config import FileSystemConfig
from pgfs.storage.filesystem import FileSystem

if TYPE_CHECKING:
    from sqlalchemy import Connection, Engine

logger = logging.getLogger(__name__)

PGFS_DATABASE_URL_ENV = "PGFS_DATABASE_URL"
PGFS_DATABASE_ADMIN_URL_ENV = "PGFS_DATABASE_ADMIN_URL"

# (pool_size, max_overflow) by admin flag
_POOL_SIZES = {False: (5, 10), True: (2, 5)}

_engines: dict[bool, Engine] = {}


class DatabaseConfigError(Exception):
    """Raised when database configuration is missing or invalid."""


def is_postgres_configured() -> bool:
    """Return True if PGFS_DATABASE_URL is set."""
    return bool(os.environ.get(PGFS_DATABASE_URL_ENV))


def get_database_url(admin: bool = False) -> str:
    """Get the database URL from environment.

    Args:
        admin: If True, return the admin URL; otherwise the app URL.

    Raises:
        DatabaseConfigError: If the required environment variable is not set.
    """
    env_var = PGFS_DATABASE_ADMIN_URL_ENV if admin else PGFS_DATABASE_URL_ENV
    url = os.environ.get(env_var)
    if not url:
        raise DatabaseConfigError(
            f"Database URL not configured. Set {env_var} environment variable."
        )
    return url


def get_engine(admin: bool = False) -> Engine:
    """Get or create the app (or admin) engine.

    Only the app engine is traced; migrations stay out of the span stream.

    Raises:
        DatabaseConfigError: If the matching URL is not set.
    """
    engine = _engines.get(admin)
    if engine is None:
        pool_size, max_overflow = _POOL_SIZES[admin]
        engine = create_engine(
            get_database_url(admin=admin),
            pool_size=pool_size,
            max_overflow=max_overflow,
            pool_pre_ping=True,
        )
        if not admin:
            instrument_sqlalchemy(engine)
        _engines[admin] = engine
        logger.info("Created %s database engine", "admin" if admin else "app")
    return engine


@contextmanager
def begin_conn(admin: bool = False) -> Generator[Connection, None, None]:
    """Yield a connection in a transaction, committed on success."""
    with get_engine(admin).begin() as conn:
        yield conn


@contextmanager
def filesystem_session(
    config: FileSystemConfig | None = None,
    *,
    admin: bool = False,
) -> Generator[FileSystem, None, None]:
    """Yield a FileSystem bound to a fresh transaction.

    Everything done through it (writers closed, files removed) commits together
    when the block exits normally and rolls back when it raises. Readers and
    writers must not outlive the block.

    Args:
        config: File system configuration. Defaults to FileSystemConfig.from_env().
        admin: Use the admin connection instead of the app connection.
    """
    with begin_conn(admin=admin) as conn:
        yield FileSystem(conn, config or FileSystemConfig.from_env())


def dispose_engines() -> None:
    """Dispose and forget every engine (tests use this between URLs)."""
    while _engines:
        _, engine = _engines.popitem()
        engine.dispose()
