"""PostgreSQL storage backend for pgfs.

Maps the descriptor primitives onto the server-side large object functions
(lo_create, lo_open, lowrite, lo_lseek64, loread, lo_close, lo_unlink) and the
metadata record onto a single table. Every primitive is one statement, so a
single round trip; the atomic steps (create-if-absent, delete row and object)
are single statements too.

Both classes run on a caller-supplied SQLAlchemy Connection and never commit:
transaction boundaries belong to the caller.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import text

from pgfs.storage.backend import INV_READ, INV_WRITE, LargeObjectBackend, MetadataBackend
from pgfs.storage.errors import (
    AlreadyExistsError,
    NotFoundError,
    ShortWriteError,
    StoreFailureError,
    translate_store_errors,
)
from pgfs.storage.models import FileInfo, decode_attributes, encode_attributes

if TYPE_CHECKING:
    from sqlalchemy import Connection

logger = logging.getLogger(__name__)

_COLUMNS = "id, oid, created_at, attributes, content_size, content_type, content_sha256"


def _row_to_info(row: Any) -> FileInfo:
    """Convert a metadata row to FileInfo."""
    object_id = row.id if isinstance(row.id, uuid.UUID) else uuid.UUID(str(row.id))
    return FileInfo(
        name=str(object_id),
        id=object_id,
        oid=int(row.oid),
        created_at=row.created_at,
        content_type=row.content_type,
        content_size=int(row.content_size),
        content_sha256=bytes(row.content_sha256) if row.content_sha256 is not None else b"",
        attributes=decode_attributes(row.attributes),
    )


class PostgresLargeObjects(LargeObjectBackend):
    """Large object primitives on a PostgreSQL connection."""

    def __init__(self, conn: Connection, table_name: str = "pgfs_metadata") -> None:
        """Initialize primitives bound to a connection.

        Args:
            conn: SQLAlchemy connection (must be in a transaction).
            table_name: Metadata table name (validated by FileSystemConfig).
        """
        self._conn = conn

        self._open_sql = text(
            f"""
            SELECT {_COLUMNS}, lo_open(oid, :mode) AS fd
            FROM {table_name}
            WHERE id = CAST(:id AS uuid)
            """
        )
        self._create_sql = text(
            f"""
            WITH
                meta AS (
                    SELECT id
                    FROM {table_name}
                    WHERE id = CAST(:id AS uuid)
                ),
                lob AS (
                    SELECT lo_create(0) AS oid
                    WHERE NOT EXISTS (SELECT id FROM meta)
                )
            SELECT
                (SELECT oid FROM lob) AS oid,
                lo_open((SELECT oid FROM lob), :mode) AS fd
            WHERE EXISTS (SELECT oid FROM lob)
            """
        )
        self._remove_sql = text(
            f"""
            WITH meta AS (
                DELETE FROM {table_name}
                WHERE id = CAST(:id AS uuid)
                RETURNING oid
            )
            SELECT lo_unlink((SELECT oid FROM meta)) AS result
            WHERE EXISTS (SELECT oid FROM meta)
            """
        )

    _WRITE_SQL = text("SELECT lowrite(:fd, :data) AS n")
    _SEEK_SQL = text("SELECT lo_lseek64(:fd, :offset, :whence) AS pos")
    _READ_SQL = text("SELECT loread(:fd, :size) AS data")
    _CLOSE_SQL = text("SELECT lo_close(:fd) AS result")
    _UNLINK_SQL = text("SELECT lo_unlink(CAST(:oid AS oid)) AS result")

    def open(self, object_id: uuid.UUID, mode: int = INV_READ) -> tuple[FileInfo, int]:
        """Open the large object recorded under object_id."""
        name = str(object_id)
        with translate_store_errors("open", name=name, missing=NotFoundError):
            row = self._conn.execute(self._open_sql, {"id": name, "mode": mode}).fetchone()

        if row is None:
            raise NotFoundError(name=name, operation="open")
        if row.fd is None or row.fd < 0:
            raise StoreFailureError(
                message="Error opening large object",
                name=name,
                operation="open",
            )

        logger.debug("Opened large object: name=%s oid=%s fd=%s", name, row.oid, row.fd)
        return _row_to_info(row), int(row.fd)

    def create(self, object_id: uuid.UUID, mode: int = INV_READ | INV_WRITE) -> tuple[int, int]:
        """Allocate and open a new large object if object_id is free."""
        name = str(object_id)
        with translate_store_errors("create", name=name):
            row = self._conn.execute(self._create_sql, {"id": name, "mode": mode}).fetchone()

        if row is None:
            raise AlreadyExistsError(name=name, operation="create")
        if row.fd is None or row.fd < 0:
            raise StoreFailureError(
                message="Error creating large object",
                name=name,
                operation="create",
            )

        logger.debug("Created large object: name=%s oid=%s fd=%s", name, row.oid, row.fd)
        return int(row.oid), int(row.fd)

    def write(self, fd: int, data: bytes) -> int:
        """Write data at the descriptor's position."""
        with translate_store_errors("write"):
            n = self._conn.execute(self._WRITE_SQL, {"fd": fd, "data": bytes(data)}).scalar_one()

        if n < 0:
            raise StoreFailureError(message="Error writing to large object", operation="write")
        if n < len(data):
            raise ShortWriteError(written=n, expected=len(data))
        return int(n)

    def seek(self, fd: int, offset: int, whence: int) -> int:
        """Move the descriptor's position."""
        with translate_store_errors("seek"):
            pos = self._conn.execute(
                self._SEEK_SQL,
                {"fd": fd, "offset": offset, "whence": whence},
            ).scalar_one()

        if pos < 0:
            raise StoreFailureError(
                message="Error seeking position in large object",
                operation="seek",
            )
        return int(pos)

    def read(self, fd: int, size: int) -> bytes:
        """Read up to size bytes at the descriptor's position."""
        with translate_store_errors("read"):
            data = self._conn.execute(self._READ_SQL, {"fd": fd, "size": size}).scalar_one()
        return bytes(data) if data is not None else b""

    def close(self, fd: int) -> None:
        """Close a descriptor."""
        with translate_store_errors("close"):
            result = self._conn.execute(self._CLOSE_SQL, {"fd": fd}).scalar_one()

        if result < 0:
            raise StoreFailureError(message="Error closing large object", operation="close")

    def remove(self, object_id: uuid.UUID) -> None:
        """Delete the metadata record and its large object together."""
        name = str(object_id)
        with translate_store_errors("remove", name=name, missing=NotFoundError):
            row = self._conn.execute(self._remove_sql, {"id": name}).fetchone()

        if row is None:
            raise NotFoundError(name=name, operation="remove")
        if row.result < 0:
            raise StoreFailureError(
                message="Error deleting large object",
                name=name,
                operation="remove",
            )
        logger.debug("Removed large object: name=%s", name)

    def unlink(self, oid: int) -> None:
        """Delete a large object that has no metadata record yet."""
        with translate_store_errors("unlink"):
            result = self._conn.execute(self._UNLINK_SQL, {"oid": oid}).scalar_one()

        if result < 0:
            raise StoreFailureError(message="Error unlinking large object", operation="unlink")
        logger.debug("Unlinked large object: oid=%s", oid)


class PostgresMetadata(MetadataBackend):
    """Metadata records in a PostgreSQL table."""

    def __init__(self, conn: Connection, table_name: str = "pgfs_metadata") -> None:
        """Initialize the repository bound to a connection.

        Args:
            conn: SQLAlchemy connection (must be in a transaction).
            table_name: Metadata table name (validated by FileSystemConfig).
        """
        self._conn = conn

        self._get_sql = text(
            f"""
            SELECT {_COLUMNS}
            FROM {table_name}
            WHERE id = CAST(:id AS uuid)
            """
        )
        self._insert_sql = text(
            f"""
            INSERT INTO {table_name} (
                id, oid, attributes,
                content_size, content_type, content_sha256
            ) VALUES (
                CAST(:id AS uuid), CAST(:oid AS oid), CAST(:attributes AS jsonb),
                :content_size, :content_type, :content_sha256
            )
            RETURNING {_COLUMNS}
            """
        )
        self._page_sql = text(
            f"""
            SELECT {_COLUMNS}
            FROM {table_name}
            ORDER BY id ASC
            OFFSET :offset LIMIT :limit
            """
        )
        self._all_sql = text(
            f"""
            SELECT {_COLUMNS}
            FROM {table_name}
            ORDER BY id ASC
            """
        )
        self._aggregate_sql = text(
            f"""
            SELECT
                COALESCE(SUM(content_size), 0) AS total_size,
                COALESCE(MAX(created_at), NOW()) AS latest
            FROM {table_name}
            """
        )

    def get(self, object_id: uuid.UUID) -> FileInfo:
        """Return the record for object_id."""
        name = str(object_id)
        with translate_store_errors("stat", name=name):
            row = self._conn.execute(self._get_sql, {"id": name}).fetchone()

        if row is None:
            raise NotFoundError(name=name, operation="stat")
        return _row_to_info(row)

    def insert(
        self,
        *,
        object_id: uuid.UUID,
        oid: int,
        content_type: str,
        content_size: int,
        content_sha256: bytes,
        attributes: dict[str, str] | None,
    ) -> FileInfo:
        """Insert exactly one record and return it as stored."""
        name = str(object_id)
        with translate_store_errors("close", name=name):
            row = self._conn.execute(
                self._insert_sql,
                {
                    "id": name,
                    "oid": oid,
                    "attributes": encode_attributes(attributes),
                    "content_size": content_size,
                    "content_type": content_type,
                    "content_sha256": content_sha256,
                },
            ).fetchone()

        if row is None:
            raise StoreFailureError(
                message="Metadata insert returned no row",
                name=name,
                operation="close",
            )
        return _row_to_info(row)

    def list_page(self, offset: int, limit: int) -> list[FileInfo]:
        """Return up to limit records from offset, ordered by id ascending."""
        with translate_store_errors("readdir"):
            rows = self._conn.execute(self._page_sql, {"offset": offset, "limit": limit}).fetchall()
        return [_row_to_info(row) for row in rows]

    def list_all(self) -> list[FileInfo]:
        """Return every record ordered by id ascending."""
        with translate_store_errors("list"):
            rows = self._conn.execute(self._all_sql).fetchall()
        return [_row_to_info(row) for row in rows]

    def aggregate(self) -> tuple[int, datetime]:
        """Return the total content size and latest creation time."""
        with translate_store_errors("stat"):
            row = self._conn.execute(self._aggregate_sql).one()
        return int(row.total_size), row.latest
