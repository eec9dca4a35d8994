"""pgfs testing utilities: in-memory storage backends."""

from pgfs.testing.in_memory import (
    InMemoryDatabase,
    InMemoryLargeObjects,
    InMemoryMetadata,
    make_filesystem,
)

__all__ = ["InMemoryDatabase", "InMemoryLargeObjects", "InMemoryMetadata", "make_filesystem"]
