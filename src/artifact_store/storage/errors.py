"""
Artifact store error classes.

Provides a small taxonomy of errors the store surfaces to callers. Filesystem
exceptions are mapped into these types so request handlers only ever see a
not-found result or a storage fault, never a raw OSError.
"""
from __future__ import annotations

from pathlib import Path
from typing import Optional, Union


class StorageError(Exception):
    """
    Base class for all artifact store errors.
    """
    pass


class StorageFault(StorageError):
    """
    The store could not complete an operation.

    Raised when:
    - An I/O operation on the storage root fails
    - An original name is invalid (traversal sequences, empty)
    - Content exceeds the configured size ceiling
    - A content file exists but cannot be read
    """

    def __init__(self, message: str, path: Optional[Union[str, Path]] = None):
        super().__init__(message)
        self.path = str(path) if path is not None else None


class ObjectNotFound(StorageError):
    """
    No content exists for the requested object id.

    Also raised when the object disappears between lookup and open, e.g. a
    retrieval racing a delete.
    """

    def __init__(self, object_id: str, message: Optional[str] = None):
        super().__init__(message or f"Object not found: {object_id}")
        self.object_id = object_id


class ConversionFailed(StorageError):
    """
    The external converter raised while producing an artifact.
    """
    pass


__all__ = [
    "StorageError",
    "StorageFault",
    "ObjectNotFound",
    "ConversionFailed",
]
