"""pgfs storage backend interfaces.

Defines the two seams the FileSystem is built on:

- LargeObjectBackend: descriptor-level primitives, each a single round trip.
- MetadataBackend: reads and writes of the metadata table.

Implementations:
- PostgresLargeObjects / PostgresMetadata: PostgreSQL (pgfs.storage.postgres)
"""

from __future__ import annotations

import uuid
from abc import ABC, abstractmethod
from datetime import datetime

from pgfs.storage.models import FileInfo

# Large object open modes (INV_READ / INV_WRITE in libpq-fs.h).
INV_READ = 0x00020000
INV_WRITE = 0x00040000


class LargeObjectBackend(ABC):
    """Abstract base class for large object primitives.

    Descriptors are transaction scoped: they are only valid inside the
    transaction that opened them.
    """

    @abstractmethod
    def open(self, object_id: uuid.UUID, mode: int = INV_READ) -> tuple[FileInfo, int]:
        """Open the large object recorded under object_id.

        Returns:
            The object's metadata and an open descriptor.

        Raises:
            NotFoundError: If no record exists for object_id.
            StoreFailureError: If the descriptor cannot be opened.
        """
        ...

    @abstractmethod
    def create(self, object_id: uuid.UUID, mode: int = INV_READ | INV_WRITE) -> tuple[int, int]:
        """Allocate and open a new large object if object_id is free.

        The existence check and the allocation are a single atomic step.

        Returns:
            The new object's OID and an open descriptor.

        Raises:
            AlreadyExistsError: If a record already exists for object_id.
            StoreFailureError: If allocation fails.
        """
        ...

    @abstractmethod
    def write(self, fd: int, data: bytes) -> int:
        """Write data at the descriptor's position.

        Returns:
            Number of bytes written (always len(data) on success).

        Raises:
            ShortWriteError: If the store accepted fewer bytes.
            ClosedHandleError: If the descriptor is not open.
            StoreFailureError: If the store reports an error.
        """
        ...

    @abstractmethod
    def seek(self, fd: int, offset: int, whence: int) -> int:
        """Move the descriptor's position.

        Returns:
            The new absolute position.

        Raises:
            InvalidArgumentError: If the store rejects the target.
            ClosedHandleError: If the descriptor is not open.
            StoreFailureError: If the store reports an error.
        """
        ...

    @abstractmethod
    def read(self, fd: int, size: int) -> bytes:
        """Read up to size bytes at the descriptor's position.

        Returns:
            The bytes read; fewer than size at the end of the object.

        Raises:
            ClosedHandleError: If the descriptor is not open.
            StoreFailureError: If the store reports an error.
        """
        ...

    @abstractmethod
    def close(self, fd: int) -> None:
        """Close a descriptor.

        Raises:
            ClosedHandleError: If the descriptor is not open.
            StoreFailureError: If the store reports an error.
        """
        ...

    @abstractmethod
    def remove(self, object_id: uuid.UUID) -> None:
        """Delete the metadata record and its large object together.

        Raises:
            NotFoundError: If no record exists for object_id.
            StoreFailureError: If the store reports an error.
        """
        ...

    @abstractmethod
    def unlink(self, oid: int) -> None:
        """Delete a large object that has no metadata record yet.

        Raises:
            StoreFailureError: If the store reports an error.
        """
        ...


class MetadataBackend(ABC):
    """Abstract base class for metadata record storage."""

    @abstractmethod
    def get(self, object_id: uuid.UUID) -> FileInfo:
        """Return the record for object_id.

        Raises:
            NotFoundError: If no record exists.
            StoreFailureError: If the store reports an error.
        """
        ...

    @abstractmethod
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
        """Insert exactly one record and return it as stored.

        Raises:
            AlreadyExistsError: If a record for object_id was committed
                concurrently.
            StoreFailureError: If the store reports an error.
        """
        ...

    @abstractmethod
    def list_page(self, offset: int, limit: int) -> list[FileInfo]:
        """Return up to limit records from offset, ordered by id ascending."""
        ...

    @abstractmethod
    def list_all(self) -> list[FileInfo]:
        """Return every record ordered by id ascending."""
        ...

    @abstractmethod
    def aggregate(self) -> tuple[int, datetime]:
        """Return the total content size and latest creation time.

        The creation time is the store's current time when there are no
        records.
        """
        ...
