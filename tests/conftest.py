"""Pytest configuration and fixtures for pgfs tests.

Unit tests run on the in-memory backends from pgfs.testing; PostgreSQL tests
live in the *_postgres modules and skip when no database is configured.
"""

from __future__ import annotations

from collections.abc import Callable

import pytest

from pgfs.storage.filesystem import FileSystem
from pgfs.storage.identifiers import generate_name
from pgfs.storage.models import FileInfo
from pgfs.testing import InMemoryDatabase, make_filesystem

_PGFS_ENV = (
    "PGFS_METADATA_TABLE",
    "PGFS_BINARY_TYPE",
    "PGFS_SNIFF_SIZE",
    "PGFS_READ_CHUNK_SIZE",
    "PGFS_PAGE_SIZE",
    "PGFS_OTEL_ENABLED",
    "PGFS_OTEL_TEST_CAPTURE",
)


@pytest.fixture(autouse=True)
def clean_pgfs_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Start every test from the default configuration, tracing disabled."""
    for key in _PGFS_ENV:
        monkeypatch.delenv(key, raising=False)


@pytest.fixture
def db() -> InMemoryDatabase:
    """Return an empty in-memory database."""
    return InMemoryDatabase()


@pytest.fixture
def fs(db: InMemoryDatabase) -> FileSystem:
    """Return a FileSystem over the in-memory database."""
    return make_filesystem(db)


@pytest.fixture
def name() -> str:
    """Return a fresh object name."""
    return generate_name()


@pytest.fixture
def put(fs: FileSystem) -> Callable[..., FileInfo]:
    """Return a helper that writes data under a name and commits it."""

    def _put(name: str, data: bytes, content_type: str = "", **attributes: str) -> FileInfo:
        writer = fs.create(name, content_type, attributes or None)
        with writer:
            writer.write(data)
            return writer.close()

    return _put
