"""Identity → namespace directory mapping.

Every authenticated identity owns exactly one directory under the storage
root. The directory name is derived from the identity with a pure function:

    a@b.com  ->  a_b.com-<16 hex chars of sha256("a@b.com")>

The digest suffix keeps two identities that sanitize to the same token
(``a@b.com`` and ``a#b.com``) apart. It can be switched off through
``storage.namespace_digest`` to get the bare sanitized token instead.
"""
import hashlib
import logging
import re
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Set

from .exceptions import StorageUnavailable

logger = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]")
_PLACEHOLDER = "_"
_FALLBACK_TOKEN = "_"
_MAX_TOKEN_LENGTH = 200
_DIGEST_LENGTH = 16


def sanitize(value: str, max_length: int = _MAX_TOKEN_LENGTH) -> str:
    """Map *value* to a single safe path component.

    Characters outside ``[A-Za-z0-9._-]`` become ``_`` and every ``..`` becomes
    ``__``. The result is never empty and never ``.``.
    """
    token = _UNSAFE_CHARS.sub(_PLACEHOLDER, value)
    token = token.replace("..", _PLACEHOLDER * 2)
    token = token[:max_length]
    if token in ("", "."):
        return _FALLBACK_TOKEN
    return token


def namespace_name(identity: str, with_digest: bool = True) -> str:
    token = sanitize(identity)
    if not with_digest:
        return token
    digest = hashlib.sha256(identity.encode("utf-8", "surrogatepass")).hexdigest()
    return f"{token}-{digest[:_DIGEST_LENGTH]}"


@dataclass(frozen=True)
class NamespaceHandle:
    """A materialized namespace directory."""
    name: str
    path: Path


class Namespacer:
    """Derives and materializes namespace directories under a storage root."""

    def __init__(self, root: Path, with_digest: bool = True) -> None:
        self.root = Path(root).resolve()
        self.with_digest = with_digest
        self._materialized: Set[str] = set()
        self._lock = threading.Lock()

    def ensure_root(self) -> None:
        """Create the storage root itself (called once at startup)."""
        try:
            self.root.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageUnavailable(f"Cannot create storage root {self.root}: {e}") from e

    def namespace_for(self, identity: str) -> NamespaceHandle:
        """Return the namespace for *identity*, creating its directory if needed."""
        name = namespace_name(identity, self.with_digest)
        path = self.root / name

        with self._lock:
            if name in self._materialized and path.is_dir():
                return NamespaceHandle(name=name, path=path)
            try:
                path.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                logger.error("Cannot create namespace %s: %s", name, e)
                raise StorageUnavailable(f"Cannot create namespace {name}: {e}") from e
            if path.resolve().parent != self.root:
                logger.error("Namespace %s resolves outside the storage root", name)
                raise StorageUnavailable(f"Namespace {name} resolves outside the storage root")
            self._materialized.add(name)

        logger.debug("Namespace ready: %s", path)
        return NamespaceHandle(name=name, path=path)
