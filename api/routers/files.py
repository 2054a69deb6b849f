"""
File endpoints over the blob store.

Uploads take a raw multipart/form-data body; downloads of several objects
are bundled into a zip archive.
"""
import mimetypes
import zipfile
from io import BytesIO
from typing import Annotated, List, Optional

import structlog
from fastapi import APIRouter, Query, Request, status
from fastapi.responses import Response, StreamingResponse
from prometheus_client import Counter
from typing_extensions import Doc

from api.dependencies import BlobStoreDep
from api.models.file import AddressListResponse, DownloadRequest, FileRecordResponse, UploadResponse
from blobstore.models import FileRecord

logger = structlog.get_logger()

router = APIRouter()

FILES_UPLOADED = Counter("blobstore_files_uploaded_total", "Files written through the upload endpoint")
FILES_DOWNLOADED = Counter("blobstore_files_downloaded_total", "Files read through the download endpoints")


async def record_bytes(record: FileRecord) -> bytes:
    if record.is_buffered:
        return record.read_bytes()
    chunks = []
    async for chunk in record.data:
        chunks.append(chunk)
    return b"".join(chunks)


async def build_archive(records: List[FileRecord]) -> bytes:
    """Bundle records into a zip archive, one entry per object name."""
    buffer = BytesIO()
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as archive:
        for record in records:
            archive.writestr(record.name, await record_bytes(record))
    return buffer.getvalue()


def archive_response(content: bytes, filename: str) -> Response:
    return Response(
        content=content,
        media_type="application/zip",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get(
    "/files",
    response_model=AddressListResponse,
    summary="List object addresses",
)
async def list_files(store: BlobStoreDep) -> AddressListResponse:
    """List the absolute address of every object in the container."""
    addresses = await store.list_addresses()
    return AddressListResponse(addresses=addresses, count=len(addresses))


@router.post(
    "/files",
    response_model=UploadResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Upload files from a multipart/form-data body",
    responses={
        400: {"description": "Body is not valid multipart/form-data"},
        502: {"description": "Storage backend failure"},
    },
)
async def upload_files(
    request: Request,
    store: BlobStoreDep,
    id: Annotated[
        Optional[str],
        Query(description="Name shared by all files; each gets a sequence number"),
        Doc("Overrides an 'id' form field in the body"),
    ] = None,
) -> UploadResponse:
    """
    Store every file part of the request body as its own object.

    With an id the files are named ``{id}-{n}.{ext}``; without one each file
    takes its form field name. Existing objects of the same name are replaced.
    """
    records = await store.upload(
        request.stream(),
        id=id,
        content_type=request.headers.get("content-type"),
    )
    FILES_UPLOADED.inc(len(records))

    return UploadResponse(
        files=[FileRecordResponse.from_record(record) for record in records],
        count=len(records),
    )


@router.get(
    "/files/content",
    summary="Download one object",
    responses={404: {"description": "Object not found"}},
)
async def download_file(
    store: BlobStoreDep,
    address: Annotated[str, Query(min_length=1, description="Object address or name")],
) -> Response:
    """Return the raw content of one object."""
    record = await store.download(address)
    FILES_DOWNLOADED.inc()

    media_type = mimetypes.guess_type(record.name)[0] or "application/octet-stream"
    if record.is_buffered:
        return Response(content=record.read_bytes(), media_type=media_type)
    return StreamingResponse(record.data, media_type=media_type)


@router.post(
    "/files/download",
    summary="Download several objects as a zip archive",
    responses={404: {"description": "One of the objects was not found"}},
)
async def download_files(request: DownloadRequest, store: BlobStoreDep) -> Response:
    """Fetch the given objects in order; any missing object fails the whole request."""
    records = await store.download_many(request.addresses)
    FILES_DOWNLOADED.inc(len(records))
    return archive_response(await build_archive(records), "files.zip")


@router.get(
    "/files/archive",
    summary="Download the whole container as a zip archive",
)
async def download_archive(store: BlobStoreDep) -> Response:
    """Fetch every object of the container."""
    records = await store.download_all()
    FILES_DOWNLOADED.inc(len(records))
    logger.info("Archive built", files=len(records))
    return archive_response(await build_archive(records), f"{store.backend.container}.zip")
