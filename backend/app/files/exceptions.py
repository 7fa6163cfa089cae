"""Exceptions raised by the file storage core."""


class StorageError(Exception):
    """Base class for every error the storage core raises."""


class Unauthorized(StorageError):
    """Raised when an operation is attempted without a gate-issued identity."""

    def __init__(self, message: str = "Unauthorized") -> None:
        super().__init__(message)


class NotFound(StorageError):
    """Raised when a blob name does not resolve to a regular file."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Blob not found: {name!r}")


class TraversalError(NotFound):
    """Raised when a requested name resolves outside its namespace.

    Subclasses NotFound so that callers at the HTTP boundary answer both the
    same way; only internal logging tells them apart.
    """

    def __init__(self, name: str, namespace: str) -> None:
        self.namespace = namespace
        super().__init__(name)
        self.args = (f"Path escapes namespace {namespace!r}: {name!r}",)


class StorageUnavailable(StorageError):
    """Raised when the underlying filesystem cannot serve the request."""


class PayloadTooLarge(StorageError):
    """Raised when an upload exceeds the configured size cap."""

    def __init__(self, limit_bytes: int) -> None:
        self.limit_bytes = limit_bytes
        super().__init__(f"Upload exceeds limit of {limit_bytes} bytes")
