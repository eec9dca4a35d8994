"""File routes for the pgfs API.

- GET /v1/files: root info and listing
- GET /v1/files/{name}: file content (ranges, conditional requests)
- GET /v1/files/{name}/info: file metadata
- PUT /v1/files/{name}: create a file from the streamed request body
- DELETE /v1/files/{name}: remove a file

Every route runs on the request-scoped FileSystem session opened by
DBTransactionMiddleware, so a failed upload leaves nothing behind.
"""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from pgfs.api.schemas import DirectoryListingResponse, FileInfoResponse
from pgfs.api.serving import serve_file
from pgfs.storage.errors import FileSystemError
from pgfs.storage.filesystem import FileSystem

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Files"])

ATTRIBUTE_HEADER_PREFIX = "x-pgfs-attribute-"


def get_filesystem(request: Request) -> FileSystem:
    """Return the FileSystem bound to the request's session.

    An app-level ``filesystem_factory`` takes precedence (used by tests and
    embedders that manage their own connections).

    Raises:
        HTTPException: 503 if no database connection is available.
    """
    factory = getattr(request.app.state, "filesystem_factory", None)
    if factory is not None:
        fs: FileSystem = factory(request)
        return fs

    session_fs: FileSystem | None = getattr(request.state, "filesystem", None)
    if session_fs is None:
        raise HTTPException(status_code=503, detail="Database not configured")
    return session_fs


FileSystemDep = Annotated[FileSystem, Depends(get_filesystem)]


def attributes_from_headers(request: Request) -> dict[str, str] | None:
    """Collect ``X-Pgfs-Attribute-<key>`` headers.

    Header names are case-insensitive, so keys are returned lowercased.
    """
    prefix_len = len(ATTRIBUTE_HEADER_PREFIX)
    attributes = {
        key.lower()[prefix_len:]: value
        for key, value in request.headers.items()
        if key.lower().startswith(ATTRIBUTE_HEADER_PREFIX) and len(key) > prefix_len
    }
    return attributes or None


@router.get("/v1/files", response_model=DirectoryListingResponse)
def list_files(request: Request, fs: FileSystemDep) -> Response:
    """Return the root's info and every entry."""
    return serve_file(request, fs.open(fs.config.root_name))


@router.get("/v1/files/{name}/info", response_model=FileInfoResponse)
def get_file_info(name: str, fs: FileSystemDep) -> FileInfoResponse:
    """Return the metadata of one file."""
    return FileInfoResponse.from_info(fs.stat(name))


@router.get("/v1/files/{name}")
def get_file(name: str, request: Request, fs: FileSystemDep) -> Response:
    """Serve the content of one file."""
    return serve_file(request, fs.open(name), chunk_size=fs.config.read_chunk_size)


@router.put("/v1/files/{name}", status_code=201, response_model=FileInfoResponse)
async def put_file(name: str, request: Request, fs: FileSystemDep) -> JSONResponse:
    """Create a file from the request body.

    The Content-Type header supplies the content type; without it the type
    is detected from the content.
    """
    content_type = request.headers.get("content-type", "")
    writer = await run_in_threadpool(
        fs.create, name, content_type, attributes_from_headers(request)
    )

    try:
        async for chunk in request.stream():
            if chunk:
                await run_in_threadpool(writer.write, chunk)
    except Exception:
        try:
            await run_in_threadpool(writer.discard)
        except FileSystemError as e:
            logger.warning("Failed to discard upload %s: %s", name, e)
        raise

    info = await run_in_threadpool(writer.close)
    logger.info("Stored file: name=%s size=%s", info.name, info.content_size)

    return JSONResponse(
        status_code=201,
        content=FileInfoResponse.from_info(info).model_dump(mode="json"),
        headers={"ETag": info.etag, "Location": f"/v1/files/{info.name}"},
    )


@router.delete("/v1/files/{name}", status_code=204)
def delete_file(name: str, fs: FileSystemDep) -> Response:
    """Remove one file and its content."""
    fs.remove(name)
    logger.info("Removed file: name=%s", name)
    return Response(status_code=204)
