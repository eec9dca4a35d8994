"""Read handle over an open large object."""

from __future__ import annotations

import io
import logging
from collections.abc import Iterator
from typing import TYPE_CHECKING, Any

from pgfs.storage.errors import ClosedHandleError, InvalidArgumentError
from pgfs.storage.models import Capability, FileInfo

if TYPE_CHECKING:
    from pgfs.storage.filesystem import FileSystem

logger = logging.getLogger(__name__)


class FileReader:
    """Random-access, read-only handle on a stored object.

    The logical position is tracked alongside the descriptor's own cursor so
    that tell() and end-relative seeks need no round trip. A handle is meant
    to be driven by a single caller at a time.
    """

    capabilities = frozenset({Capability.READABLE, Capability.SEEKABLE, Capability.RESPONDABLE})

    def __init__(self, fs: FileSystem, fd: int, info: FileInfo) -> None:
        self._fs = fs
        self._fd = fd
        self._info = info
        self._pos = 0
        self._closed = False

    @property
    def name(self) -> str:
        return self._info.name

    @property
    def info(self) -> FileInfo:
        """Metadata resolved when the handle was opened."""
        return self._info

    @property
    def closed(self) -> bool:
        return self._closed

    def readable(self) -> bool:
        return True

    def seekable(self) -> bool:
        return True

    def writable(self) -> bool:
        return False

    def _check_open(self, operation: str) -> None:
        if self._closed:
            raise ClosedHandleError(name=self.name, operation=operation)

    def readinto(self, buffer: bytearray | memoryview) -> int:
        """Read into buffer at the current position.

        Returns:
            Number of bytes read; fewer than len(buffer) at the end of the
            object and 0 once the end has been reached.
        """
        self._check_open("read")
        view = memoryview(buffer).cast("B")
        if len(view) == 0:
            return 0

        data = self._fs.objects.read(self._fd, len(view))
        n = len(data)
        view[:n] = data
        self._pos += n
        return n

    def read(self, size: int = -1) -> bytes:
        """Read up to size bytes, or to the end of the object if size < 0.

        A result shorter than size means the end of the object was reached;
        subsequent reads return b"".
        """
        self._check_open("read")
        if size == 0:
            return b""
        if size > 0:
            data = self._fs.objects.read(self._fd, size)
            self._pos += len(data)
            return data

        chunk_size = self._fs.config.read_chunk_size
        chunks: list[bytes] = []
        while True:
            data = self._fs.objects.read(self._fd, chunk_size)
            self._pos += len(data)
            chunks.append(data)
            if len(data) < chunk_size:
                break
        return b"".join(chunks)

    def iter_chunks(self, chunk_size: int | None = None) -> Iterator[bytes]:
        """Yield the remaining content in chunks."""
        size = chunk_size or self._fs.config.read_chunk_size
        while True:
            data = self.read(size)
            if data:
                yield data
            if len(data) < size:
                return

    def seek(self, offset: int, whence: int = io.SEEK_SET) -> int:
        """Move the position relative to the start, current position or end.

        Returns:
            The new absolute position.

        Raises:
            InvalidArgumentError: If whence is unknown or the target is negative.
            ClosedHandleError: If the handle is closed.
        """
        self._check_open("seek")
        if whence == io.SEEK_SET:
            target = offset
        elif whence == io.SEEK_CUR:
            target = self._pos + offset
        elif whence == io.SEEK_END:
            target = self._info.content_size + offset
        else:
            raise InvalidArgumentError(
                message=f"Invalid whence: {whence}",
                name=self.name,
                operation="seek",
            )

        if target < 0:
            raise InvalidArgumentError(
                message=f"Invalid seek target: {target}",
                name=self.name,
                operation="seek",
            )

        self._pos = self._fs.objects.seek(self._fd, target, io.SEEK_SET)
        return self._pos

    def tell(self) -> int:
        self._check_open("tell")
        return self._pos

    def close(self) -> None:
        """Release the descriptor.

        The handle is closed from the caller's point of view even when the
        release fails.

        Raises:
            ClosedHandleError: If the handle was already closed.
        """
        if self._closed:
            raise ClosedHandleError(name=self.name, operation="close")
        self._closed = True
        self._fs.objects.close(self._fd)
        logger.debug("Closed reader: name=%s", self.name)

    def stat(self) -> FileInfo:
        """Re-resolve metadata through the file system (not cached)."""
        return self._fs.stat(self.name)

    def __enter__(self) -> FileReader:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        if not self._closed:
            self.close()

    def __repr__(self) -> str:
        return f"FileReader(name={self.name!r}, pos={self._pos}, closed={self._closed})"
