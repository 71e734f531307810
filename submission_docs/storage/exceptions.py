class StorageError(Exception):
    """Base exception for generated document storage."""


class WriteError(StorageError):
    """Raised when a generated document cannot be written."""


class NotFoundError(StorageError):
    """Raised when no document has been stored under the requested key."""


class StorageReadError(StorageError):
    """Raised when a stored document exists but cannot be read."""
