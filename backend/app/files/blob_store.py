"""Namespace-scoped blob storage on the local filesystem.

Every operation takes a NamespaceHandle and a blob name. Names are turned into
paths only by ``BlobStore.resolve``, which canonicalizes the joined path
(``.``, ``..`` and symlinks included) and requires the result to sit strictly
inside the namespace directory.

Writes go to a hidden temp file in the namespace directory and are renamed
into place, so readers and listings only ever see complete blobs.
"""
import logging
import os
import stat
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import BinaryIO, Iterator, List, Union

from .exceptions import NotFound, PayloadTooLarge, StorageUnavailable, TraversalError
from .namespacer import NamespaceHandle
from .schemas import BlobInfo, get_file_type, guess_media_type

logger = logging.getLogger(__name__)

TEMP_PREFIX = ".upload-"
CHUNK_SIZE = 1024 * 1024

Content = Union[bytes, BinaryIO]


def _iter_chunks(content: Content) -> Iterator[bytes]:
    if isinstance(content, (bytes, bytearray, memoryview)):
        yield bytes(content)
        return
    while True:
        chunk = content.read(CHUNK_SIZE)
        if not chunk:
            return
        yield chunk


class BlobStore:
    """File operations confined to one namespace at a time."""

    def resolve(self, namespace: NamespaceHandle, requested: str) -> Path:
        """Canonicalize *requested* inside *namespace* or raise TraversalError."""
        if not requested or "\x00" in requested or os.path.isabs(requested):
            raise TraversalError(requested, namespace.name)

        base = os.path.realpath(namespace.path)
        candidate = os.path.realpath(os.path.join(base, requested))
        if not candidate.startswith(base + os.sep):
            raise TraversalError(requested, namespace.name)
        return Path(candidate)

    def _regular_file(self, namespace: NamespaceHandle, name: str) -> Path:
        path = self.resolve(namespace, name)
        if path.name.startswith(TEMP_PREFIX):
            raise NotFound(name)
        try:
            st = os.stat(path)
        except (FileNotFoundError, NotADirectoryError):
            raise NotFound(name)
        except OSError as e:
            raise StorageUnavailable(f"Cannot stat {name!r}: {e}") from e
        if not stat.S_ISREG(st.st_mode):
            raise NotFound(name)
        return path

    def list_blobs(self, namespace: NamespaceHandle) -> List[str]:
        """Stored names of the regular files in *namespace*, in directory order."""
        try:
            entries = list(os.scandir(namespace.path))
        except OSError as e:
            raise StorageUnavailable(f"Cannot list namespace {namespace.name}: {e}") from e

        names = []
        for entry in entries:
            if entry.name.startswith(TEMP_PREFIX):
                continue
            try:
                self._regular_file(namespace, entry.name)
            except NotFound:
                # Directories, outward symlinks and entries removed mid-scan.
                continue
            names.append(entry.name)
        return names

    def info(self, namespace: NamespaceHandle, name: str) -> BlobInfo:
        path = self._regular_file(namespace, name)
        try:
            st = path.stat()
        except FileNotFoundError:
            raise NotFound(name)
        except OSError as e:
            raise StorageUnavailable(f"Cannot stat {name!r}: {e}") from e
        media_type = guess_media_type(name)
        return BlobInfo(
            name=name,
            size_bytes=st.st_size,
            created_at=datetime.fromtimestamp(st.st_mtime, tz=timezone.utc),
            media_type=media_type,
            file_type=get_file_type(media_type),
        )

    def path_of(self, namespace: NamespaceHandle, name: str) -> Path:
        """Canonical path of an existing blob, for handing to a file response."""
        return self._regular_file(namespace, name)

    def open(self, namespace: NamespaceHandle, name: str) -> BinaryIO:
        path = self._regular_file(namespace, name)
        try:
            return path.open("rb")
        except FileNotFoundError:
            raise NotFound(name)
        except OSError as e:
            raise StorageUnavailable(f"Cannot open {name!r}: {e}") from e

    def read(self, namespace: NamespaceHandle, name: str) -> bytes:
        with self.open(namespace, name) as fh:
            return fh.read()

    def _entry(self, namespace: NamespaceHandle, name: str) -> Path:
        """Path of the directory entry *name* itself, final symlink not followed."""
        base = os.path.realpath(namespace.path)
        head, leaf = os.path.split(os.path.join(base, name))
        parent = os.path.realpath(head)
        if parent != base and not parent.startswith(base + os.sep):
            raise TraversalError(name, namespace.name)
        if leaf.startswith(TEMP_PREFIX):
            raise NotFound(name)
        return Path(parent, leaf)

    def delete(self, namespace: NamespaceHandle, name: str) -> None:
        """Remove the blob entry *name*.

        A symlink inside the namespace is removed as a link; the file it
        points at stays.
        """
        self._regular_file(namespace, name)
        path = self._entry(namespace, name)
        try:
            path.unlink()
        except FileNotFoundError:
            raise NotFound(name)
        except OSError as e:
            raise StorageUnavailable(f"Cannot delete {name!r}: {e}") from e
        logger.info("Deleted blob %s/%s", namespace.name, name)

    def write(
        self,
        namespace: NamespaceHandle,
        stored_name: str,
        content: Content,
        max_bytes: int = 0,
    ) -> BlobInfo:
        """Atomically store *content* under *stored_name*.

        An existing blob with the same name is replaced. With *max_bytes* > 0
        the write is aborted with PayloadTooLarge once that many bytes have
        been exceeded; nothing becomes visible in that case.
        """
        target = self.resolve(namespace, stored_name)
        base = Path(os.path.realpath(namespace.path))
        if target.parent != base or target.name.startswith(TEMP_PREFIX):
            raise TraversalError(stored_name, namespace.name)

        try:
            fd, tmp_name = tempfile.mkstemp(prefix=TEMP_PREFIX, dir=base)
        except OSError as e:
            raise StorageUnavailable(f"Cannot write to namespace {namespace.name}: {e}") from e

        written = 0
        try:
            with os.fdopen(fd, "wb") as fh:
                for chunk in _iter_chunks(content):
                    written += len(chunk)
                    if max_bytes and written > max_bytes:
                        raise PayloadTooLarge(max_bytes)
                    fh.write(chunk)
                fh.flush()
                os.fsync(fh.fileno())
            os.replace(tmp_name, target)
        except OSError as e:
            _discard(tmp_name)
            raise StorageUnavailable(f"Cannot write {stored_name!r}: {e}") from e
        except BaseException:
            _discard(tmp_name)
            raise

        logger.info("Stored blob %s/%s (%d bytes)", namespace.name, stored_name, written)
        return self.info(namespace, stored_name)


def _discard(tmp_name: str) -> None:
    try:
        os.unlink(tmp_name)
    except FileNotFoundError:
        pass
