"""Pydantic schemas for the file storage module.

This module defines the data models that cross the storage boundary:
- Identity: the caller, as issued by the access gate
- BlobInfo: metadata of one stored blob, read from the filesystem
- BlobListResponse / UploadResponse / DeleteResponse: API payloads
- BlobNameRequest: validated blob name taken from the request path
- FileType: Enum for categorizing files (image, pdf, audio, video, other)

Blobs are stored in per-identity directories ({root}/{namespace}/) with
time-prefixed filenames. There is no separate metadata store; everything in
BlobInfo is derived from the directory entry itself.
"""
import mimetypes
from datetime import datetime
from enum import Enum
from typing import List

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Identity(BaseModel):
    """An authenticated caller.

    Only the access gate constructs these; the storage core refuses to run an
    operation for anything that is not an Identity instance.
    """
    model_config = ConfigDict(frozen=True)

    subject: str = Field(..., min_length=1, description="Authenticated identity, e.g. an email")


class FileType(str, Enum):
    """Supported file type categories.

    Files are categorized by MIME type into these groups:
    - IMAGE: JPEG, PNG, GIF, WebP, SVG
    - PDF: PDF documents
    - AUDIO: MP3, WAV, OGG, M4A, FLAC
    - VIDEO: MP4, WebM, QuickTime
    - OTHER: All other file types
    """
    IMAGE = "image"
    PDF = "pdf"
    AUDIO = "audio"
    VIDEO = "video"
    OTHER = "other"


class BlobInfo(BaseModel):
    """Metadata for a stored blob.

    The name is the stored name (disambiguator + sanitized original name), not
    the filename the client uploaded.
    """
    name: str = Field(..., description="Stored name within the namespace")
    size_bytes: int = Field(..., description="File size in bytes")
    created_at: datetime = Field(..., description="Filesystem creation/modification time")
    media_type: str = Field(..., description="Guessed MIME type")
    file_type: FileType = Field(..., description="File type category")


class BlobListResponse(BaseModel):
    files: List[BlobInfo] = Field(..., description="Blobs in the caller's namespace")
    count: int = Field(..., description="Number of blobs")


class UploadResponse(BaseModel):
    """Response after a successful upload."""
    stored_name: str = Field(..., description="Name the blob was stored under")
    original_filename: str = Field(..., description="Filename asserted by the client")
    size_bytes: int = Field(..., description="File size in bytes")
    media_type: str = Field(..., description="Guessed MIME type")


class DeleteResponse(BaseModel):
    deleted: str = Field(..., description="Stored name that was removed")


class BlobNameRequest(BaseModel):
    """A blob name taken from the request path.

    Only the shape is checked here; whether the name stays inside the
    namespace is decided by BlobStore.resolve after canonicalization.
    """
    name: str = Field(..., min_length=1, max_length=1024)

    @field_validator("name")
    @classmethod
    def _no_nul(cls, v: str) -> str:
        if "\x00" in v:
            raise ValueError("blob name must not contain NUL bytes")
        return v


# Allowed MIME types by category
ALLOWED_MIME_TYPES = {
    FileType.IMAGE: [
        "image/jpeg",
        "image/png",
        "image/gif",
        "image/webp",
        "image/svg+xml",
    ],
    FileType.PDF: [
        "application/pdf",
    ],
    FileType.AUDIO: [
        "audio/mpeg",
        "audio/mp3",
        "audio/wav",
        "audio/x-wav",
        "audio/ogg",
        "audio/mp4",
        "audio/x-m4a",
        "audio/flac",
    ],
    FileType.VIDEO: [
        "video/mp4",
        "video/webm",
        "video/quicktime",
    ],
}

DEFAULT_MEDIA_TYPE = "application/octet-stream"


def guess_media_type(name: str) -> str:
    """Guess a MIME type from a stored name's extension."""
    media_type, _ = mimetypes.guess_type(name, strict=False)
    return media_type or DEFAULT_MEDIA_TYPE


def get_file_type(mime_type: str) -> FileType:
    """Determine file type category from MIME type.

    Examples:
        >>> get_file_type("image/jpeg")
        <FileType.IMAGE: 'image'>
        >>> get_file_type("text/plain")
        <FileType.OTHER: 'other'>
    """
    for file_type, mime_types in ALLOWED_MIME_TYPES.items():
        if mime_type in mime_types:
            return file_type
    return FileType.OTHER
