"""
Storage exception hierarchy.

Kept free of imports so both the storage backends and the validation
layer can raise them without import cycles.
"""


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass


class MalformedForecastError(StorageError):
    """A stored forecast record does not have the expected structure."""
    pass
