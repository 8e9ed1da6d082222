"""
Storage interface for the artifact store.

This protocol defines the boundary between the request layer, the
reconciliation scheduler and the store implementation, enabling clean
dependency injection and testing with fakes.
"""
from __future__ import annotations

from datetime import datetime, timedelta
from pathlib import Path
from typing import BinaryIO, Optional, Protocol, Union, runtime_checkable

from ..models import ObjectMetadata, StorageStats

__all__ = ["ArtifactStore", "ContentSource"]

# Registered content is either raw bytes or a path to an existing file
ContentSource = Union[bytes, Path, str]


@runtime_checkable
class ArtifactStore(Protocol):
    """Protocol for artifact store operations."""

    def put(self, data: bytes, original_name: str) -> Path:
        """
        Store a transient input and return its content path.

        No metadata sidecar is written; the file is reclaimed by the orphan
        sweep unless the caller discards it first.

        Raises:
            StorageFault: On invalid name, oversize data or I/O error
        """
        ...

    def register(
        self,
        content: ContentSource,
        original_name: str,
        owner_tag: Optional[str] = None,
        retention: Optional[timedelta] = None,
    ) -> str:
        """
        Store a retained artifact with a metadata sidecar and return its id.

        Raises:
            StorageFault: If the content copy or the sidecar write fails
        """
        ...

    def get_metadata(self, object_id: str) -> Optional[ObjectMetadata]:
        """Return the metadata record, or None if no sidecar exists."""
        ...

    def get_content(self, object_id: str) -> BinaryIO:
        """
        Open the object's content for reading.

        Raises:
            ObjectNotFound: If no content file exists
            StorageFault: If the file exists but cannot be read
        """
        ...

    def list_all(self, owner_tag: Optional[str] = None) -> list[ObjectMetadata]:
        """Return every parseable metadata record, optionally for one owner."""
        ...

    def list_expired(self, as_of: Optional[datetime] = None) -> list[ObjectMetadata]:
        """Return records whose expires_at is strictly before `as_of`."""
        ...

    def delete(self, object_id: str) -> bool:
        """Remove content, sidecar and cache entry. Never raises."""
        ...

    def get_stats(self) -> StorageStats:
        """Aggregate usage over a fresh directory scan."""
        ...
