"""Append-only write handle.

A FileWriter streams bytes into a freshly allocated large object. The SHA-256
digest and the content-type sniff window are accumulated while writing; the
metadata record is inserted when the writer is closed, never before.
"""

from __future__ import annotations

import hashlib
import logging
import uuid
from typing import TYPE_CHECKING, Any

from pgfs.storage.errors import ClosedHandleError, FileSystemError, ShortWriteError
from pgfs.storage.models import Capability, FileInfo
from pgfs.storage.sniffing import detect_content_type

if TYPE_CHECKING:
    from pgfs.storage.filesystem import FileSystem

logger = logging.getLogger(__name__)


class FileWriter:
    """Write handle returned by FileSystem.create().

    close() commits the object: it sniffs the content type if none was given,
    inserts the metadata record and releases the descriptor. discard()
    abandons it and unlinks the large object instead.
    """

    capabilities = frozenset({Capability.WRITABLE})

    def __init__(
        self,
        fs: FileSystem,
        *,
        object_id: uuid.UUID,
        oid: int,
        fd: int,
        content_type: str = "",
        attributes: dict[str, str] | None = None,
    ) -> None:
        self._fs = fs
        self._object_id = object_id
        self._oid = oid
        self._fd = fd
        self._content_type = content_type
        self._attributes = attributes
        self._size = 0
        self._hasher = hashlib.sha256()
        self._tag = bytearray()  # leading bytes kept for sniffing
        self._closed = False

    @property
    def name(self) -> str:
        return str(self._object_id)

    @property
    def size(self) -> int:
        """Number of bytes accepted so far."""
        return self._size

    @property
    def closed(self) -> bool:
        return self._closed

    def readable(self) -> bool:
        return False

    def seekable(self) -> bool:
        return False

    def writable(self) -> bool:
        return True

    def _accept(self, data: bytes | memoryview) -> None:
        """Account for bytes the store accepted."""
        self._size += len(data)
        self._hasher.update(data)

        if not self._content_type:
            room = self._fs.config.sniff_size - len(self._tag)
            if room > 0:
                self._tag += data[:room]

    def write(self, data: bytes | bytearray | memoryview) -> int:
        """Append data to the object.

        Returns:
            Number of bytes written, always len(data).

        Raises:
            ClosedHandleError: If the writer is closed.
            ShortWriteError: If the store accepted fewer bytes; the accepted
                prefix still counts toward size and digest.
        """
        if self._closed:
            raise ClosedHandleError(name=self.name, operation="write")

        view = memoryview(data).cast("B")
        if len(view) == 0:
            return 0

        try:
            n = self._fs.objects.write(self._fd, view)
        except ShortWriteError as e:
            self._accept(view[: e.written])
            e.name = self.name
            raise

        self._accept(view[:n])
        return n

    def close(self) -> FileInfo:
        """Commit the object and release the descriptor.

        Returns:
            The persisted metadata record.

        Raises:
            ClosedHandleError: If the writer was already closed.
            AlreadyExistsError: If the same name was committed concurrently.
            StoreFailureError: If the record cannot be inserted or the
                descriptor cannot be released.
        """
        if self._closed:
            raise ClosedHandleError(name=self.name, operation="close")
        self._closed = True

        content_type = self._content_type
        if not content_type:
            config = self._fs.config
            content_type = detect_content_type(bytes(self._tag), config.sniff_size) or config.binary_type

        try:
            info = self._fs.metadata.insert(
                object_id=self._object_id,
                oid=self._oid,
                content_type=content_type,
                content_size=self._size,
                content_sha256=self._hasher.digest(),
                attributes=self._attributes,
            )
        except FileSystemError:
            self._release_after_failure()
            raise

        self._fs.objects.close(self._fd)
        logger.debug(
            "Committed file: name=%s size=%s content_type=%s",
            self.name,
            self._size,
            content_type,
        )
        return info

    def discard(self) -> None:
        """Abandon the object: release the descriptor and unlink the data.

        No metadata record is written.

        Raises:
            ClosedHandleError: If the writer was already closed.
        """
        if self._closed:
            raise ClosedHandleError(name=self.name, operation="discard")
        self._closed = True

        self._fs.objects.close(self._fd)
        self._fs.objects.unlink(self._oid)
        logger.debug("Discarded file: name=%s", self.name)

    def _release_after_failure(self) -> None:
        """Release the descriptor after a failed commit.

        The original error is the one the caller sees; a failure here is only
        logged. The transaction is usually aborted at this point, in which
        case the descriptor is released by the caller's rollback.
        """
        try:
            self._fs.objects.close(self._fd)
        except FileSystemError as e:
            logger.warning("Failed to release descriptor after commit failure: %s", e)

    def __enter__(self) -> FileWriter:
        return self

    def __exit__(self, exc_type: Any, *exc_info: Any) -> None:
        if self._closed:
            return
        if exc_type is None:
            self.close()
            return
        try:
            self.discard()
        except FileSystemError as e:
            logger.warning("Failed to discard %s after error: %s", self.name, e)

    def __repr__(self) -> str:
        return f"FileWriter(name={self.name!r}, size={self._size}, closed={self._closed})"
