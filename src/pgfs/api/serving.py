"""HTTP serving of open handles.

serve_file() turns a handle returned by FileSystem.open() into a response,
branching on the handle's capabilities: enumerable handles (the root) are
served as a JSON listing, respondable handles as the file content with
validators (ETag, Last-Modified, Repr-Digest). Seekable handles additionally
honour a single byte range.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterator
from datetime import UTC
from email.utils import format_datetime
from typing import Any

from fastapi import Request, Response
from fastapi.responses import JSONResponse, StreamingResponse
from starlette.background import BackgroundTask

from pgfs.api.schemas import DirectoryListingResponse, FileInfoResponse
from pgfs.storage.errors import InvalidArgumentError
from pgfs.storage.models import Capability, FileInfo, supports

logger = logging.getLogger(__name__)

_RANGE_PATTERN = re.compile(r"^bytes=(\d*)-(\d*)$")


class RangeNotSatisfiable(Exception):
    """Raised when a Range header selects no byte of the content."""


def parse_range(header: str | None, size: int) -> tuple[int, int] | None:
    """Parse a single-range ``Range: bytes=`` header.

    Args:
        header: Raw Range header value, or None.
        size: Content size in bytes.

    Returns:
        Inclusive (start, end) offsets, or None when the header is absent,
        malformed or lists several ranges (the full content is served then).

    Raises:
        RangeNotSatisfiable: If the range lies entirely past the content.
    """
    if not header:
        return None

    match = _RANGE_PATTERN.match(header.strip())
    if match is None:
        return None

    first, last = match.groups()
    if not first and not last:
        return None

    if not first:
        # Suffix range: the last N bytes.
        suffix = int(last)
        if suffix == 0 or size == 0:
            raise RangeNotSatisfiable(header)
        return max(size - suffix, 0), size - 1

    start = int(first)
    end = int(last) if last else size - 1
    if end < start:
        return None
    if start >= size:
        raise RangeNotSatisfiable(header)
    return start, min(end, size - 1)


def _etag_matches(header: str | None, etag: str) -> bool:
    """Weak comparison of an If-None-Match header against an ETag."""
    if not header:
        return False
    for candidate in header.split(","):
        candidate = candidate.strip()
        if candidate == "*":
            return True
        if candidate.startswith("W/"):
            candidate = candidate[2:]
        if candidate == etag:
            return True
    return False


def _validator_headers(info: FileInfo, seekable: bool) -> dict[str, str]:
    headers = {
        "ETag": info.etag,
        "Last-Modified": format_datetime(info.created_at.astimezone(UTC), usegmt=True),
        "Repr-Digest": info.repr_digest,
    }
    headers["Accept-Ranges"] = "bytes" if seekable else "none"
    return headers


def _iter_content(handle: Any, length: int, chunk_size: int) -> Iterator[bytes]:
    """Yield exactly length bytes from the handle's current position."""
    remaining = length
    while remaining > 0:
        data = handle.read(min(chunk_size, remaining))
        if not data:
            return
        remaining -= len(data)
        yield data


def _serve_directory(handle: Any) -> JSONResponse:
    with handle:
        page = handle.read_dir(-1)
        body = DirectoryListingResponse(
            root=FileInfoResponse.from_info(handle.info),
            entries=[FileInfoResponse.from_info(entry) for entry in page.entries],
        )
    return JSONResponse(content=body.model_dump(mode="json"))


def serve_file(request: Request, handle: Any, *, chunk_size: int = 65536) -> Response:
    """Build the response for an open handle.

    The handle is owned by the response: it is closed once the body has been
    sent, or immediately when no body is sent.

    Raises:
        InvalidArgumentError: If the handle can neither be listed nor served.
    """
    if supports(handle, Capability.ENUMERABLE):
        return _serve_directory(handle)

    if not supports(handle, Capability.RESPONDABLE):
        handle.close()
        raise InvalidArgumentError(
            message="Handle cannot be served",
            name=getattr(handle, "name", None),
            operation="serve",
        )

    info: FileInfo = handle.info
    seekable = supports(handle, Capability.SEEKABLE)
    headers = _validator_headers(info, seekable)

    if _etag_matches(request.headers.get("if-none-match"), info.etag):
        handle.close()
        return Response(status_code=304, headers=headers)

    start, length, status = 0, info.content_size, 200
    if seekable:
        try:
            selected = parse_range(request.headers.get("range"), info.content_size)
        except RangeNotSatisfiable:
            handle.close()
            headers["Content-Range"] = f"bytes */{info.content_size}"
            return Response(status_code=416, headers=headers)

        if selected is not None:
            start, end = selected
            length = end - start + 1
            status = 206
            headers["Content-Range"] = f"bytes {start}-{end}/{info.content_size}"
            handle.seek(start)

    headers["Content-Length"] = str(length)
    logger.debug("Serving file: name=%s status=%s length=%s", info.name, status, length)

    return StreamingResponse(
        _iter_content(handle, length, chunk_size),
        status_code=status,
        media_type=info.content_type,
        headers=headers,
        background=BackgroundTask(handle.close),
    )
