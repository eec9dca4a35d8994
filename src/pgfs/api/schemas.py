"""Response models for the pgfs API."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel

from pgfs.storage.models import FileInfo


class FileInfoResponse(BaseModel):
    """Metadata of a stored file or of the root directory."""

    name: str
    kind: str
    oid: int | None
    created_at: datetime
    content_type: str
    content_size: int
    content_sha256: str
    attributes: dict[str, str]

    @classmethod
    def from_info(cls, info: FileInfo) -> FileInfoResponse:
        return cls(
            name=info.name,
            kind=info.kind.value,
            oid=info.oid,
            created_at=info.created_at,
            content_type=info.content_type,
            content_size=info.content_size,
            content_sha256=info.content_sha256.hex(),
            attributes=dict(info.attributes),
        )


class DirectoryListingResponse(BaseModel):
    """Root info followed by every entry, ordered by id ascending."""

    root: FileInfoResponse
    entries: list[FileInfoResponse]
