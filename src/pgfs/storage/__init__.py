"""pgfs storage: a flat, write-once file system on PostgreSQL large objects.

Objects are named by UUID strings, written once through a FileWriter and
afterwards read, seeked, listed and removed. The empty name is a synthetic
root directory aggregating every object.

Environment Variables:
    PGFS_METADATA_TABLE, PGFS_BINARY_TYPE, PGFS_SNIFF_SIZE,
    PGFS_READ_CHUNK_SIZE, PGFS_PAGE_SIZE: see pgfs.storage.config
"""

from pgfs.storage.config import FileSystemConfig
from pgfs.storage.directory import DirectoryHandle
from pgfs.storage.errors import (
    AlreadyExistsError,
    ClosedHandleError,
    FileSystemError,
    InvalidArgumentError,
    NotFoundError,
    ShortWriteError,
    StoreFailureError,
)
from pgfs.storage.filesystem import FileSystem
from pgfs.storage.identifiers import generate_name, is_valid_name
from pgfs.storage.models import Capability, DirectoryPage, EntryKind, FileInfo, supports
from pgfs.storage.reader import FileReader
from pgfs.storage.writer import FileWriter

__all__ = [
    "AlreadyExistsError",
    "Capability",
    "ClosedHandleError",
    "DirectoryHandle",
    "DirectoryPage",
    "EntryKind",
    "FileInfo",
    "FileReader",
    "FileSystem",
    "FileSystemConfig",
    "FileSystemError",
    "FileWriter",
    "InvalidArgumentError",
    "NotFoundError",
    "ShortWriteError",
    "StoreFailureError",
    "generate_name",
    "is_valid_name",
    "supports",
]
