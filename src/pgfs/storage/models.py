"""pgfs data models.

Provides the FileInfo record describing one stored object (or the synthetic
root), the capability set declared by handles, and the attribute codec used at
the storage boundary.
"""

from __future__ import annotations

import base64
import json
import uuid
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from pgfs.storage.errors import InvalidArgumentError, StoreFailureError


class EntryKind(str, Enum):
    """Variant tag of a FileInfo."""

    FILE = "file"
    ROOT = "root"


class Capability(str, Enum):
    """Operations a handle supports.

    Callers branch on ``supports(handle, capability)`` instead of probing
    for methods.
    """

    READABLE = "readable"
    SEEKABLE = "seekable"
    WRITABLE = "writable"
    ENUMERABLE = "enumerable"
    RESPONDABLE = "respondable"


def supports(handle: Any, capability: Capability) -> bool:
    """Return True if handle declares the given capability."""
    capabilities: frozenset[Capability] = getattr(handle, "capabilities", frozenset())
    return capability in capabilities


@dataclass(frozen=True)
class FileInfo:
    """Metadata for a stored object or the synthetic root.

    Attributes:
        name: External name (UUID string, or the root name).
        id: Parsed UUID of the object; None for the root.
        oid: Large object OID; None for the root.
        created_at: Creation time; for the root, the latest creation time.
        content_type: MIME type of the content.
        content_size: Size of the content in bytes; for the root, the total.
        content_sha256: SHA-256 digest of the content (32 bytes; empty for root).
        attributes: Custom string attributes given at creation.
        kind: FILE for stored objects, ROOT for the synthetic directory.
    """

    name: str
    id: uuid.UUID | None
    oid: int | None
    created_at: datetime
    content_type: str
    content_size: int
    content_sha256: bytes = b""
    attributes: dict[str, str] = field(default_factory=dict)
    kind: EntryKind = EntryKind.FILE

    @classmethod
    def root(
        cls,
        *,
        name: str,
        total_size: int,
        modified_at: datetime,
    ) -> FileInfo:
        """Build the derived info of the root directory."""
        return cls(
            name=name,
            id=None,
            oid=None,
            created_at=modified_at,
            content_type="",
            content_size=total_size,
            kind=EntryKind.ROOT,
        )

    @property
    def size(self) -> int:
        return self.content_size

    @property
    def mod_time(self) -> datetime:
        return self.created_at

    @property
    def is_dir(self) -> bool:
        return self.kind is EntryKind.ROOT

    @property
    def etag(self) -> str:
        """Entity tag derived from the content digest (quoted hex)."""
        return f'"{self.content_sha256.hex()}"'

    @property
    def repr_digest(self) -> str:
        """Structured digest header value (RFC 9530)."""
        encoded = base64.b64encode(self.content_sha256).decode("ascii")
        return f"sha-256=:{encoded}:"

    def to_dict(self) -> dict[str, Any]:
        """Convert info to dictionary for JSON serialization."""
        return {
            "name": self.name,
            "kind": self.kind.value,
            "oid": self.oid,
            "created_at": self.created_at.isoformat(),
            "content_type": self.content_type,
            "content_size": self.content_size,
            "content_sha256": self.content_sha256.hex(),
            "attributes": dict(self.attributes),
        }


@dataclass(frozen=True)
class DirectoryPage:
    """One page of directory entries.

    Attributes:
        entries: Entries ordered by id ascending.
        end: True when fewer entries than requested were returned, i.e. the
            directory is exhausted.
    """

    entries: list[FileInfo]
    end: bool


def encode_attributes(attributes: Mapping[str, str] | None) -> str | None:
    """Serialize attributes for a JSONB column.

    Returns None for absent attributes so the column stays NULL.

    Raises:
        InvalidArgumentError: If a key or value is not a string.
    """
    if attributes is None:
        return None
    for key, value in attributes.items():
        if not isinstance(key, str) or not isinstance(value, str):
            raise InvalidArgumentError(
                message=f"Attributes must map strings to strings, got {key!r}: {value!r}",
                operation="create",
            )
    return json.dumps(dict(attributes), sort_keys=True)


def decode_attributes(raw: Any) -> dict[str, str]:
    """Deserialize attributes read from a JSONB column.

    psycopg2 decodes JSONB into Python objects already; text and bytes are
    accepted too. NULL decodes to an empty mapping.
    """
    if raw is None:
        return {}
    if isinstance(raw, bytes | bytearray | memoryview):
        raw = bytes(raw).decode("utf-8")
    if isinstance(raw, str):
        raw = json.loads(raw)
    if not isinstance(raw, dict):
        raise StoreFailureError(
            message=f"Attributes column must hold a JSON object, got {type(raw).__name__}"
        )
    return {str(k): str(v) for k, v in raw.items()}
