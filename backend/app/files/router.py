"""FastAPI router for the caller's files.

Endpoints:
    GET    /files                  - List the caller's blobs
    POST   /files/upload           - Upload one file (multipart field "file")
    GET    /files/download/{name}  - Download a blob as an attachment
    GET    /files/preview/{name}   - Serve a blob inline
    DELETE /files/{name}           - Delete a blob

A name that escapes the caller's namespace gets the same 404 as a name that
does not exist.
"""
import logging
from contextlib import contextmanager
from typing import Iterator, Optional

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from fastapi.responses import FileResponse
from pydantic import ValidationError

from app.auth.dependencies import current_identity

from .exceptions import NotFound, PayloadTooLarge, StorageUnavailable, Unauthorized
from .schemas import (
    BlobListResponse,
    BlobNameRequest,
    DeleteResponse,
    Identity,
    UploadResponse,
)
from .service import FileStorageService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/files", tags=["files"])

# Inline previews must not run scripts embedded in user content (SVG, HTML).
_PREVIEW_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "Content-Security-Policy": "sandbox",
}


def _service() -> FileStorageService:
    return FileStorageService.get_instance()


@contextmanager
def _storage_errors() -> Iterator[None]:
    """Translate storage exceptions into HTTP errors."""
    try:
        yield
    except Unauthorized:
        raise HTTPException(
            status_code=401,
            detail="Unauthorized",
            headers={"WWW-Authenticate": "Bearer"},
        )
    except NotFound:
        raise HTTPException(status_code=404, detail="File not found")
    except PayloadTooLarge as e:
        raise HTTPException(status_code=413, detail=str(e))
    except StorageUnavailable as e:
        logger.error("Storage failure: %s", e)
        raise HTTPException(status_code=500, detail="Storage unavailable")


def _blob_name(name: str) -> str:
    try:
        return BlobNameRequest(name=name).name
    except ValidationError:
        raise HTTPException(status_code=404, detail="File not found")


@router.get("", response_model=BlobListResponse)
def list_files(identity: Optional[Identity] = Depends(current_identity)):
    """List the blobs in the caller's namespace."""
    with _storage_errors():
        files = _service().list_blobs(identity)
    return BlobListResponse(files=files, count=len(files))


@router.post("/upload", response_model=UploadResponse, status_code=201)
def upload_file(
    file: UploadFile = File(...),
    identity: Optional[Identity] = Depends(current_identity),
):
    """Upload a file into the caller's namespace.

    Returns:
        UploadResponse with the stored name the file can be fetched by.

    Raises:
        HTTPException 401: No valid session
        HTTPException 413: File exceeds the configured size limit
        HTTPException 500: Storage is not writable
    """
    with _storage_errors():
        info = _service().upload(identity, file.filename, file.file)

    return UploadResponse(
        stored_name=info.name,
        original_filename=file.filename or "",
        size_bytes=info.size_bytes,
        media_type=info.media_type,
    )


@router.get("/download/{name:path}")
def download_file(
    name: str,
    identity: Optional[Identity] = Depends(current_identity),
):
    """Download a blob as an attachment."""
    name = _blob_name(name)
    with _storage_errors():
        path, info = _service().fetch(identity, name)
    return FileResponse(path=path, filename=info.name, media_type=info.media_type)


@router.get("/preview/{name:path}")
def preview_file(
    name: str,
    identity: Optional[Identity] = Depends(current_identity),
):
    """Serve a blob inline so the browser can render it."""
    name = _blob_name(name)
    with _storage_errors():
        path, info = _service().fetch(identity, name)
    return FileResponse(
        path=path,
        filename=info.name,
        media_type=info.media_type,
        headers=_PREVIEW_HEADERS,
        content_disposition_type="inline",
    )


@router.delete("/{name:path}", response_model=DeleteResponse)
def delete_file(
    name: str,
    identity: Optional[Identity] = Depends(current_identity),
):
    """Delete a blob from the caller's namespace."""
    name = _blob_name(name)
    with _storage_errors():
        _service().remove(identity, name)
    return DeleteResponse(deleted=name)
