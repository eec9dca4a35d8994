"""pgfs file system configuration.

Values that used to be process-wide constants (reserved root name, default
binary type, sniff window) are carried on a FileSystemConfig and passed into
the FileSystem at construction.

Environment Variables:
    PGFS_METADATA_TABLE: Name of the metadata table (default: "pgfs_metadata")
    PGFS_BINARY_TYPE: Fallback MIME type (default: "application/octet-stream")
    PGFS_SNIFF_SIZE: Bytes kept for content-type detection (default: 512)
    PGFS_READ_CHUNK_SIZE: Bytes per loread round trip when reading to end
        (default: 65536)
    PGFS_PAGE_SIZE: Records per page when iterating the root (default: 100)
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass

PGFS_METADATA_TABLE_ENV = "PGFS_METADATA_TABLE"
PGFS_BINARY_TYPE_ENV = "PGFS_BINARY_TYPE"
PGFS_SNIFF_SIZE_ENV = "PGFS_SNIFF_SIZE"
PGFS_READ_CHUNK_SIZE_ENV = "PGFS_READ_CHUNK_SIZE"
PGFS_PAGE_SIZE_ENV = "PGFS_PAGE_SIZE"

_TABLE_NAME_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]{0,62}$")


class ConfigError(Exception):
    """Raised when configuration values are missing or invalid."""

    pass


def _get_env_int(key: str, default: int) -> int:
    """Get an integer from an environment variable."""
    raw = os.environ.get(key, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError as e:
        raise ConfigError(f"{key} must be an integer, got {raw!r}") from e
    return value


@dataclass(frozen=True)
class FileSystemConfig:
    """Configuration bound to a FileSystem instance.

    Attributes:
        table_name: Metadata table holding one row per stored object.
        root_name: Reserved name of the synthetic root directory.
        binary_type: Content type used when none is given and sniffing is
            inconclusive.
        sniff_size: Maximum number of leading bytes kept for sniffing.
        read_chunk_size: Bytes requested per round trip when reading to end.
        page_size: Records fetched per page when iterating the root.
    """

    table_name: str = "pgfs_metadata"
    root_name: str = ""
    binary_type: str = "application/octet-stream"
    sniff_size: int = 512
    read_chunk_size: int = 64 * 1024
    page_size: int = 100

    def __post_init__(self) -> None:
        if not _TABLE_NAME_PATTERN.match(self.table_name):
            raise ConfigError(f"Invalid metadata table name: {self.table_name!r}")
        if not self.binary_type:
            raise ConfigError("binary_type must not be empty")
        if self.sniff_size < 0:
            raise ConfigError("sniff_size must not be negative")
        if self.read_chunk_size <= 0:
            raise ConfigError("read_chunk_size must be positive")
        if self.page_size <= 0:
            raise ConfigError("page_size must be positive")

    @classmethod
    def from_env(cls) -> FileSystemConfig:
        """Build a configuration from PGFS_* environment variables."""
        defaults = cls()
        return cls(
            table_name=os.environ.get(PGFS_METADATA_TABLE_ENV, "").strip()
            or defaults.table_name,
            binary_type=os.environ.get(PGFS_BINARY_TYPE_ENV, "").strip() or defaults.binary_type,
            sniff_size=_get_env_int(PGFS_SNIFF_SIZE_ENV, defaults.sniff_size),
            read_chunk_size=_get_env_int(PGFS_READ_CHUNK_SIZE_ENV, defaults.read_chunk_size),
            page_size=_get_env_int(PGFS_PAGE_SIZE_ENV, defaults.page_size),
        )
