"""pgfs file system facade.

FileSystem is the single entry point of the store. It is bound to one
SQLAlchemy connection inside a caller-owned transaction: create, remove and
the close of a writer each rely on that transaction for atomicity, and errors
are never retried here so the caller keeps the rollback decision.

Example:
    with begin_conn() as conn:
        fs = FileSystem(conn)
        name = generate_name()
        with fs.create(name, "text/plain") as writer:
            writer.write(b"hello")
        assert fs.read_file(name) == b"hello"
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING

from pgfs.storage.backend import INV_READ, INV_WRITE, LargeObjectBackend, MetadataBackend
from pgfs.storage.config import FileSystemConfig
from pgfs.storage.directory import DirectoryHandle, root_info
from pgfs.storage.errors import InvalidArgumentError, NotFoundError
from pgfs.storage.identifiers import is_valid_name, parse_name
from pgfs.storage.models import FileInfo, encode_attributes
from pgfs.storage.postgres import PostgresLargeObjects, PostgresMetadata
from pgfs.storage.reader import FileReader
from pgfs.storage.tracing import traced_fs_operation
from pgfs.storage.writer import FileWriter

if TYPE_CHECKING:
    from sqlalchemy import Connection

logger = logging.getLogger(__name__)


class FileSystem:
    """Flat, write-once file system on PostgreSQL large objects.

    Names are canonical UUID strings; the root name (empty by default)
    denotes the synthetic root directory.
    """

    def __init__(
        self,
        conn: Connection | None,
        config: FileSystemConfig | None = None,
        *,
        objects: LargeObjectBackend | None = None,
        metadata: MetadataBackend | None = None,
    ) -> None:
        """Initialize the file system.

        Args:
            conn: SQLAlchemy connection in a transaction. May be None when
                both backends are supplied.
            config: File system configuration. Defaults to FileSystemConfig().
            objects: Large object backend. Defaults to PostgresLargeObjects(conn).
            metadata: Metadata backend. Defaults to PostgresMetadata(conn).
        """
        self.config = config or FileSystemConfig()

        if (objects is None or metadata is None) and conn is None:
            raise ValueError("conn is required unless both backends are supplied")

        self.objects = objects or PostgresLargeObjects(conn, self.config.table_name)
        self.metadata = metadata or PostgresMetadata(conn, self.config.table_name)

    @property
    def table_name(self) -> str:
        return self.config.table_name

    def _is_root(self, name: str) -> bool:
        return name == self.config.root_name

    @traced_fs_operation("stat")
    def stat(self, name: str) -> FileInfo:
        """Return info on the file with the given name.

        The root name returns the root's derived info (total size, latest
        creation time, directory kind).

        Raises:
            NotFoundError: If name is not a valid name or no such file exists.
        """
        if self._is_root(name):
            return root_info(self.metadata, self.config)

        if not is_valid_name(name, root_name=self.config.root_name):
            raise NotFoundError(name=name, operation="stat")

        return self.metadata.get(parse_name(name, operation="stat"))

    @traced_fs_operation("open")
    def open(self, name: str) -> FileReader | DirectoryHandle:
        """Open the file with the given name for reading.

        The root name returns a DirectoryHandle positioned at the first entry.

        Raises:
            NotFoundError: If name is not a valid name or no such file exists.
        """
        if self._is_root(name):
            return DirectoryHandle(self, root_info(self.metadata, self.config))

        if not is_valid_name(name, root_name=self.config.root_name):
            raise NotFoundError(name=name, operation="open")

        info, fd = self.objects.open(parse_name(name, operation="open"), INV_READ)
        logger.debug("Opened file: name=%s size=%s", name, info.content_size)
        return FileReader(self, fd, info)

    @traced_fs_operation("create")
    def create(
        self,
        name: str,
        content_type: str = "",
        attributes: Mapping[str, str] | None = None,
    ) -> FileWriter:
        """Return a writer to a new file. The writer must be closed to commit.

        The large object is allocated immediately; allocation is a no-op that
        fails with AlreadyExistsError when a record for name exists.

        Args:
            name: A UUID string not yet in use.
            content_type: MIME type of the content. When empty, the type is
                detected from the first bytes written, falling back to
                config.binary_type.
            attributes: Custom string attributes stored with the file.

        Raises:
            InvalidArgumentError: If name is empty or not a UUID string, or
                attributes are not strings.
            AlreadyExistsError: If a file with this name exists.
        """
        object_id = parse_name(name, operation="create")
        encode_attributes(attributes)

        oid, fd = self.objects.create(object_id, INV_READ | INV_WRITE)
        logger.debug("Created file: name=%s oid=%s", name, oid)
        return FileWriter(
            self,
            object_id=object_id,
            oid=oid,
            fd=fd,
            content_type=content_type,
            attributes=dict(attributes) if attributes is not None else None,
        )

    @traced_fs_operation("remove")
    def remove(self, name: str) -> None:
        """Delete the file with the given name and its content.

        Raises:
            NotFoundError: If name is not a valid name or no such file exists.
        """
        if self._is_root(name) or not is_valid_name(name, root_name=self.config.root_name):
            raise NotFoundError(name=name, operation="remove")

        self.objects.remove(parse_name(name, operation="remove"))
        logger.debug("Removed file: name=%s", name)

    @traced_fs_operation("list")
    def list(self) -> list[FileInfo]:
        """Return info on every file, ordered by id ascending."""
        return self.metadata.list_all()

    def read_dir(self, name: str | None = None) -> list[FileInfo]:
        """Return the entries of a directory. None means the root.

        Raises:
            InvalidArgumentError: If name is not the root (the only directory).
        """
        if name is not None and not self._is_root(name):
            raise InvalidArgumentError(
                message="Not a directory",
                name=name,
                operation="readdir",
            )
        return self.list()

    def read_file(self, name: str) -> bytes:
        """Return the whole content of the file with the given name.

        Raises:
            NotFoundError: If no such file exists.
            InvalidArgumentError: If name is the root.
        """
        handle = self.open(name)
        with handle:
            return handle.read()

    def exists(self, name: str) -> bool:
        """Return True if a file with the given name exists."""
        try:
            self.stat(name)
        except NotFoundError:
            return False
        return True
