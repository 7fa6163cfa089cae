"""File storage service for Vault.

Entry point for the request-serving layer. Each call takes the caller's
Identity (issued by the access gate), derives that caller's namespace and
runs one blob operation inside it:

    list_blobs(identity)                 -> [BlobInfo]
    fetch(identity, name)                -> (path, BlobInfo)
    read(identity, name)                 -> bytes
    upload(identity, filename, content)  -> BlobInfo
    remove(identity, name)               -> None

Files are stored in: {root_dir}/{namespace}/{stored_name}
"""
import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List, Optional, Tuple

import duckdb

from app.audit.schemas import AuditLogCreate, StorageAction
from app.audit.service import AuditLogService
from app.config import get_config

from .blob_store import BlobStore, Content
from .exceptions import NotFound, TraversalError, Unauthorized
from .namespacer import NamespaceHandle, Namespacer
from .schemas import BlobInfo, Identity
from .upload import UploadPipeline

logger = logging.getLogger(__name__)


class FileStorageService:
    """Service for managing per-identity blob storage."""

    _instance: Optional["FileStorageService"] = None

    def __init__(
        self,
        root_dir: str,
        max_upload_bytes: int = 0,
        namespace_digest: bool = True,
        audit: Optional[AuditLogService] = None,
    ) -> None:
        """Initialize the file storage service and create the storage root."""
        self.namespacer = Namespacer(Path(root_dir), with_digest=namespace_digest)
        self.namespacer.ensure_root()
        self.store = BlobStore()
        self.uploads = UploadPipeline(self.store, max_upload_bytes=max_upload_bytes)
        self.audit = audit

    @classmethod
    def get_instance(cls) -> "FileStorageService":
        """Get or create the singleton instance from the loaded config."""
        if cls._instance is None:
            config = get_config()
            audit = None
            if config.logging.audit_enabled:
                audit = AuditLogService.get_instance(config.logging.audit_path)
            cls._instance = cls(
                root_dir=config.storage.root_dir,
                max_upload_bytes=config.storage.max_upload_bytes,
                namespace_digest=config.storage.namespace_digest,
                audit=audit,
            )
            logger.info("File storage ready at %s", cls._instance.root)
        return cls._instance

    @classmethod
    def reset_instance(cls) -> None:
        """Reset the singleton instance (for testing)."""
        cls._instance = None

    @property
    def root(self) -> Path:
        return self.namespacer.root

    # -----------------------------------------------------------------------
    # Internals
    # -----------------------------------------------------------------------

    def _namespace(self, identity: Identity) -> NamespaceHandle:
        if not isinstance(identity, Identity):
            raise Unauthorized()
        return self.namespacer.namespace_for(identity.subject)

    def _record(self, namespace: NamespaceHandle, action: StorageAction, name: str) -> None:
        if self.audit is None:
            return
        # Audit failures never change the outcome of the storage operation.
        try:
            self.audit.log_event(
                AuditLogCreate(namespace=namespace.name, action=action, blob_name=name)
            )
        except duckdb.Error as e:
            logger.error(
                "Failed to record %s for %s/%r: %s", action.value, namespace.name, name, e
            )

    @contextmanager
    def _watch_traversal(self, namespace: NamespaceHandle, name: str) -> Iterator[None]:
        try:
            yield
        except TraversalError:
            logger.warning(
                "Traversal attempt blocked in namespace %s: %r", namespace.name, name
            )
            self._record(namespace, StorageAction.TRAVERSAL_DENIED, name)
            raise

    # -----------------------------------------------------------------------
    # Operations
    # -----------------------------------------------------------------------

    def list_blobs(self, identity: Identity) -> List[BlobInfo]:
        """Metadata for every blob in the caller's namespace."""
        namespace = self._namespace(identity)
        infos = []
        for name in self.store.list_blobs(namespace):
            try:
                infos.append(self.store.info(namespace, name))
            except NotFound:
                # Deleted between the scan and the stat.
                continue
        return infos

    def fetch(self, identity: Identity, name: str) -> Tuple[Path, BlobInfo]:
        """Canonical path and metadata of a blob, for download or preview."""
        namespace = self._namespace(identity)
        with self._watch_traversal(namespace, name):
            path = self.store.path_of(namespace, name)
            return path, self.store.info(namespace, name)

    def read(self, identity: Identity, name: str) -> bytes:
        namespace = self._namespace(identity)
        with self._watch_traversal(namespace, name):
            return self.store.read(namespace, name)

    def upload(
        self,
        identity: Identity,
        filename: Optional[str],
        content: Content,
    ) -> BlobInfo:
        """Store an upload in the caller's namespace and return its metadata."""
        namespace = self._namespace(identity)
        with self._watch_traversal(namespace, filename or ""):
            info = self.uploads.commit(namespace, filename, content)
        self._record(namespace, StorageAction.UPLOAD, info.name)
        return info

    def remove(self, identity: Identity, name: str) -> None:
        namespace = self._namespace(identity)
        with self._watch_traversal(namespace, name):
            self.store.delete(namespace, name)
        self._record(namespace, StorageAction.DELETE, name)
