"""Pydantic schemas for the storage audit trail.

Every upload and delete, and every blocked traversal attempt, produces one
audit entry. The trail is internal: it is written by FileStorageService and
read by operators, never served back to the callers it describes.
"""
from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class StorageAction(str, Enum):
    """What happened to the blob.

    Attributes:
        UPLOAD: A blob was committed.
        DELETE: A blob was removed.
        TRAVERSAL_DENIED: A requested name resolved outside its namespace.
    """
    UPLOAD = "upload"
    DELETE = "delete"
    TRAVERSAL_DENIED = "traversal_denied"


class AuditLogEntry(BaseModel):
    """A single recorded storage event.

    Attributes:
        namespace: Namespace directory the event happened in.
        action: What was done.
        blob_name: Stored name (or the raw requested name for denials).
        timestamp: When the event was recorded (UTC).
    """
    namespace: str = Field(..., description="Namespace directory name")
    action: StorageAction = Field(..., description="Storage action")
    blob_name: Optional[str] = Field(None, description="Blob or requested name")
    timestamp: datetime = Field(..., description="When recorded (UTC)")


class AuditLogCreate(BaseModel):
    """Input schema for a new audit entry; the service sets the timestamp."""
    namespace: str = Field(..., min_length=1, description="Namespace directory name")
    action: StorageAction = Field(..., description="Storage action")
    blob_name: Optional[str] = Field(None, description="Blob or requested name")
