"""Upload pipeline: client filename + byte stream -> stored blob.

Stored names look like ``1718035200123-report.pdf``: a millisecond timestamp
that never repeats within the process, a dash, and the client's filename run
through the same sanitizer as namespace names.
"""
import logging
import threading
import time
from typing import Optional

from .blob_store import BlobStore, Content
from .namespacer import NamespaceHandle, sanitize
from .schemas import BlobInfo

logger = logging.getLogger(__name__)

DEFAULT_FILENAME = "unnamed"


class StoredNameGenerator:
    """Produces strictly increasing millisecond disambiguators."""

    def __init__(self, clock=time.time) -> None:
        self._clock = clock
        self._last = 0
        self._lock = threading.Lock()

    def next_disambiguator(self) -> int:
        with self._lock:
            now = int(self._clock() * 1000)
            self._last = max(now, self._last + 1)
            return self._last

    def stored_name(self, original_filename: Optional[str]) -> str:
        filename = sanitize(original_filename or DEFAULT_FILENAME)
        return f"{self.next_disambiguator()}-{filename}"


class UploadPipeline:
    def __init__(
        self,
        store: BlobStore,
        max_upload_bytes: int = 0,
        names: Optional[StoredNameGenerator] = None,
    ) -> None:
        self.store = store
        self.max_upload_bytes = max_upload_bytes
        self.names = names or StoredNameGenerator()

    def commit(
        self,
        namespace: NamespaceHandle,
        original_filename: Optional[str],
        content: Content,
    ) -> BlobInfo:
        """Write *content* into *namespace* under a freshly generated name.

        Raises:
            PayloadTooLarge: content is larger than max_upload_bytes.
            StorageUnavailable: the namespace directory is not writable.
        """
        stored_name = self.names.stored_name(original_filename)
        info = self.store.write(
            namespace,
            stored_name,
            content,
            max_bytes=self.max_upload_bytes,
        )
        logger.info(
            "Upload committed: %r -> %s/%s (%d bytes)",
            original_filename,
            namespace.name,
            stored_name,
            info.size_bytes,
        )
        return info
