"""Directory view of the synthetic root.

The root has no record of its own. Its stat is derived from all records and
its listing is paginated over a stable order (id ascending), so a cursor
stays well defined while other records are inserted or removed.
"""

from __future__ import annotations

import io
import logging
from collections.abc import Iterator
from typing import TYPE_CHECKING, Any

from pgfs.storage.errors import ClosedHandleError, InvalidArgumentError
from pgfs.storage.models import Capability, DirectoryPage, FileInfo

if TYPE_CHECKING:
    from pgfs.storage.backend import MetadataBackend
    from pgfs.storage.config import FileSystemConfig
    from pgfs.storage.filesystem import FileSystem

logger = logging.getLogger(__name__)


def root_info(metadata: MetadataBackend, config: FileSystemConfig) -> FileInfo:
    """Derive the root's info: total size and latest creation time."""
    total_size, latest = metadata.aggregate()
    return FileInfo.root(name=config.root_name, total_size=total_size, modified_at=latest)


class DirectoryHandle:
    """Handle on the root directory returned by FileSystem.open("").

    Only enumeration and stat are meaningful; read and seek fail with
    InvalidArgumentError.
    """

    capabilities = frozenset({Capability.ENUMERABLE})

    def __init__(self, fs: FileSystem, info: FileInfo) -> None:
        self._fs = fs
        self._info = info
        self._cursor = 0
        self._closed = False

    @property
    def name(self) -> str:
        return self._info.name

    @property
    def info(self) -> FileInfo:
        """Root info resolved when the handle was opened."""
        return self._info

    @property
    def closed(self) -> bool:
        return self._closed

    def readable(self) -> bool:
        return False

    def seekable(self) -> bool:
        return False

    def writable(self) -> bool:
        return False

    def _invalid(self, operation: str) -> InvalidArgumentError:
        return InvalidArgumentError(
            message="Invalid operation on a directory",
            name=self.name,
            operation=operation,
        )

    def read(self, size: int = -1) -> bytes:
        raise self._invalid("read")

    def readinto(self, buffer: Any) -> int:
        raise self._invalid("read")

    def seek(self, offset: int, whence: int = io.SEEK_SET) -> int:
        raise self._invalid("seek")

    def read_dir(self, n: int = -1) -> DirectoryPage:
        """Return the next page of up to n entries.

        ``end`` is True exactly when fewer than n entries were returned. Once
        exhausted, further calls return empty pages with ``end`` set. With
        n <= 0 every remaining entry is returned in a single page.

        Raises:
            ClosedHandleError: If the handle is closed.
        """
        if self._closed:
            raise ClosedHandleError(name=self.name, operation="readdir")

        if n <= 0:
            entries: list[FileInfo] = []
            while True:
                page = self.read_dir(self._fs.config.page_size)
                entries.extend(page.entries)
                if page.end:
                    return DirectoryPage(entries=entries, end=True)

        entries = self._fs.metadata.list_page(self._cursor, n)
        self._cursor += len(entries)
        logger.debug("Read directory page: cursor=%s count=%s", self._cursor, len(entries))
        return DirectoryPage(entries=entries, end=len(entries) < n)

    def __iter__(self) -> Iterator[FileInfo]:
        while True:
            page = self.read_dir(self._fs.config.page_size)
            yield from page.entries
            if page.end:
                return

    def stat(self) -> FileInfo:
        """Re-resolve the root's info (not cached)."""
        return self._fs.stat(self.name)

    def close(self) -> None:
        """Close the handle.

        Raises:
            ClosedHandleError: If the handle was already closed.
        """
        if self._closed:
            raise ClosedHandleError(name=self.name, operation="close")
        self._closed = True

    def __enter__(self) -> DirectoryHandle:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        if not self._closed:
            self.close()

    def __repr__(self) -> str:
        return f"DirectoryHandle(cursor={self._cursor}, closed={self._closed})"
