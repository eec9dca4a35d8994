"""pgfs Persistence Module.

Provides PostgreSQL engines, file system sessions and schema migrations.
"""

from pgfs.persistence.db import (
    DatabaseConfigError,
    begin_conn,
    dispose_engines,
    filesystem_session,
    get_database_url,
    get_engine,
    is_postgres_configured,
)
from pgfs.persistence.schema import migrate_down, migrate_up

__all__ = [
    "DatabaseConfigError",
    "begin_conn",
    "dispose_engines",
    "filesystem_session",
    "get_database_url",
    "get_engine",
    "is_postgres_configured",
    "migrate_down",
    "migrate_up",
]
