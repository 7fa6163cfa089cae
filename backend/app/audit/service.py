"""DuckDB-based storage audit trail.

This module provides persistent storage for audit entries using DuckDB, a
fast embedded analytical database. The service implements the singleton
pattern to ensure only one database connection exists at a time.

Database Schema:
    storage_audit table:
        - id: Auto-incrementing primary key
        - namespace: Namespace directory the event happened in
        - action: 'upload', 'delete' or 'traversal_denied'
        - blob_name: Stored name, or the raw requested name for denials
        - timestamp: When the event was recorded (UTC)

Thread Safety:
    The DuckDB connection is shared by the threadpool that serves file
    requests, so every statement runs under a lock.

Usage:
    service = AuditLogService.get_instance()
    entry = service.log_event(create_entry)
    logs = service.get_logs(namespace="a_b.com-0f1e...")
"""
import logging
import threading
from datetime import datetime, timezone
from typing import List, Optional

import duckdb

from .schemas import AuditLogCreate, AuditLogEntry, StorageAction

logger = logging.getLogger(__name__)


class AuditLogService:
    """Singleton service for recording storage events in DuckDB.

    Attributes:
        _instance: Singleton instance of the service.
        _db_path: Path to the DuckDB database file.
    """

    _instance: Optional["AuditLogService"] = None
    _db_path: str = "audit_logs.duckdb"

    def __init__(self, db_path: Optional[str] = None) -> None:
        """Initialize the audit log service.

        Creates the database file and schema if they don't exist.

        Args:
            db_path: Path to DuckDB file. Defaults to "audit_logs.duckdb".
        """
        if db_path:
            self._db_path = db_path
        self._connection: Optional[duckdb.DuckDBPyConnection] = None
        self._lock = threading.Lock()
        self._initialize_db()

    @classmethod
    def get_instance(cls, db_path: Optional[str] = None) -> "AuditLogService":
        """Get or create the singleton instance.

        Args:
            db_path: Optional database path (only used on first call).
        """
        if cls._instance is None:
            cls._instance = cls(db_path)
        return cls._instance

    @classmethod
    def reset_instance(cls) -> None:
        """Close the connection and clear the instance (for testing)."""
        if cls._instance is not None:
            cls._instance.close()
            cls._instance = None

    def _get_connection(self) -> duckdb.DuckDBPyConnection:
        if self._connection is None:
            self._connection = duckdb.connect(self._db_path)
        return self._connection

    def _initialize_db(self) -> None:
        """Create the storage_audit table and sequence if missing."""
        with self._lock:
            conn = self._get_connection()
            conn.execute("""
                CREATE SEQUENCE IF NOT EXISTS storage_audit_seq START 1;
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS storage_audit (
                    id INTEGER DEFAULT nextval('storage_audit_seq') PRIMARY KEY,
                    namespace VARCHAR NOT NULL,
                    action VARCHAR NOT NULL,
                    blob_name VARCHAR,
                    timestamp TIMESTAMP NOT NULL
                )
            """)

    def log_event(self, entry: AuditLogCreate) -> AuditLogEntry:
        """Record one storage event.

        Args:
            entry: The event to record.

        Returns:
            The stored entry with its timestamp.
        """
        timestamp = datetime.now(timezone.utc).replace(tzinfo=None)
        with self._lock:
            self._get_connection().execute(
                """
                INSERT INTO storage_audit (namespace, action, blob_name, timestamp)
                VALUES (?, ?, ?, ?)
                """,
                [entry.namespace, entry.action.value, entry.blob_name, timestamp],
            )
        logger.debug("Audit: %s %s/%s", entry.action.value, entry.namespace, entry.blob_name)

        return AuditLogEntry(
            namespace=entry.namespace,
            action=entry.action,
            blob_name=entry.blob_name,
            timestamp=timestamp,
        )

    def get_logs(
        self,
        namespace: Optional[str] = None,
        action: Optional[StorageAction] = None,
        limit: int = 100,
    ) -> List[AuditLogEntry]:
        """Get audit entries, newest first, optionally filtered.

        Args:
            namespace: Only entries for this namespace.
            action: Only entries with this action.
            limit: Maximum number of entries to return.
        """
        clauses = []
        params: list = []
        if namespace:
            clauses.append("namespace = ?")
            params.append(namespace)
        if action is not None:
            clauses.append("action = ?")
            params.append(action.value)
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        params.append(limit)

        with self._lock:
            rows = self._get_connection().execute(
                f"""
                SELECT namespace, action, blob_name, timestamp
                FROM storage_audit
                {where}
                ORDER BY id DESC
                LIMIT ?
                """,
                params,
            ).fetchall()

        return [
            AuditLogEntry(
                namespace=row[0],
                action=StorageAction(row[1]),
                blob_name=row[2],
                timestamp=row[3],
            )
            for row in rows
        ]

    def close(self) -> None:
        """Close the database connection."""
        if self._connection is not None:
            self._connection.close()
            self._connection = None
