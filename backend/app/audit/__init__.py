"""Audit trail module for tracking storage events."""

from .schemas import AuditLogCreate, AuditLogEntry, StorageAction
from .service import AuditLogService

__all__ = [
    "AuditLogCreate",
    "AuditLogEntry",
    "AuditLogService",
    "StorageAction",
]
