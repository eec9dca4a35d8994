"""Metadata schema provisioning and teardown.

migrate_up() creates the metadata table (idempotent) and migrate_down() drops
it. Both run on the caller's connection and transaction; the Alembic revision
in pgfs.persistence.migrations applies the same statements.

Dropping the table does not unlink the large objects it references: remove
files through FileSystem.remove() first, or run vacuumlo afterwards.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from sqlalchemy import text

from pgfs.storage.config import FileSystemConfig

if TYPE_CHECKING:
    from sqlalchemy import Connection

logger = logging.getLogger(__name__)


def upgrade_statements(table_name: str) -> list[str]:
    """Return the statements that create the metadata table."""
    return [
        "CREATE EXTENSION IF NOT EXISTS lo",
        f"""
        CREATE TABLE IF NOT EXISTS {table_name} (
            id UUID NOT NULL PRIMARY KEY,
            oid OID NOT NULL UNIQUE,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            attributes JSONB,
            content_type TEXT NOT NULL DEFAULT 'application/octet-stream',
            content_size BIGINT NOT NULL,
            content_sha256 BYTEA NOT NULL
        )
        """,
    ]


def downgrade_statements(table_name: str) -> list[str]:
    """Return the statements that drop the metadata table."""
    return [f"DROP TABLE IF EXISTS {table_name}"]


def _validated_table(table_name: str | None) -> str:
    # FileSystemConfig rejects anything that is not a plain identifier.
    if table_name is None:
        return FileSystemConfig().table_name
    return FileSystemConfig(table_name=table_name).table_name


def migrate_up(conn: Connection, table_name: str | None = None) -> None:
    """Create the metadata table. Calling it repeatedly has no effect."""
    table = _validated_table(table_name)
    for statement in upgrade_statements(table):
        conn.execute(text(statement))
    logger.info("Created metadata table %s", table)


def migrate_down(conn: Connection, table_name: str | None = None) -> None:
    """Drop the metadata table."""
    table = _validated_table(table_name)
    for statement in downgrade_statements(table):
        conn.execute(text(statement))
    logger.info("Dropped metadata table %s", table)
