"""
Bounded metadata cache.

A thread-safe, fixed-capacity mapping from object id to ObjectMetadata with
least-recently-used eviction. Owned by a store instance and injected at
construction; there is no module-level cache.
"""
from __future__ import annotations

import threading
from collections import OrderedDict
from typing import Optional

from ..models import ObjectMetadata

__all__ = ["MetadataCache"]


class MetadataCache:
    """
    LRU cache of metadata records.

    `get` refreshes recency; `put` inserts or refreshes and evicts the least
    recently used entry when full. A capacity of 0 disables caching entirely.
    All operations hold a single lock for O(1) work, so readers are never
    blocked behind disk I/O.
    """

    def __init__(self, capacity: int = 1000) -> None:
        if capacity < 0:
            raise ValueError(f"capacity must be non-negative, got {capacity}")
        self._capacity = capacity
        self._entries: OrderedDict[str, ObjectMetadata] = OrderedDict()
        self._lock = threading.Lock()

    @property
    def capacity(self) -> int:
        return self._capacity

    def get(self, object_id: str) -> Optional[ObjectMetadata]:
        with self._lock:
            record = self._entries.get(object_id)
            if record is not None:
                self._entries.move_to_end(object_id)
            return record

    def put(self, record: ObjectMetadata) -> None:
        if self._capacity == 0:
            return
        with self._lock:
            self._entries[record.id] = record
            self._entries.move_to_end(record.id)
            while len(self._entries) > self._capacity:
                self._entries.popitem(last=False)

    def invalidate(self, object_id: str) -> bool:
        """Drop an entry; returns True if it was cached."""
        with self._lock:
            return self._entries.pop(object_id, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, object_id: object) -> bool:
        with self._lock:
            return object_id in self._entries
