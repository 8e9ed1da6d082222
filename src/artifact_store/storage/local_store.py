"""
Filesystem-backed artifact store.

Implements the ArtifactStore protocol over a single local directory. Each
object is a content file plus a JSON metadata sidecar, both addressed by a
random UUID. Metadata reads go through a bounded in-memory cache; content
lookups use an in-memory id -> path index with a directory prefix scan as
fallback, so the sidecar files stay the only durable source of truth.

Registration is two-phase (content, then sidecar). There is no transactional
filesystem operation to tie them together: if the sidecar write fails after
the content landed, the content is left as an orphan and the orphan sweep in
`artifact_store.reconcile` is the compensating step.
"""
from __future__ import annotations

import logging
import os
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import BinaryIO, Callable, Dict, List, Optional

from ..models import ObjectMetadata, StorageStats, utcnow
from ..path_safety import replace_extension, sanitize_name, validate_original_name
from ..settings import Settings
from .atomic import copy_file_atomically, write_bytes_atomically
from .base import ArtifactStore, ContentSource
from .cache import MetadataCache
from .errors import ObjectNotFound, StorageFault
from .layout import TEMP_PREFIX, ContentLayout, is_object_id, new_object_id
from .sidecar import read_sidecar, write_sidecar

__all__ = ["LocalArtifactStore", "StoreScan"]

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


@dataclass
class StoreScan:
    """
    One pass over the storage root.

    content: object id -> content files carrying that id prefix
    sidecars: object id -> sidecar path
    temp_files: leftover `.tmp-*` files from interrupted writes
    total_bytes: size of every regular file seen, including temp files
    """
    content: Dict[str, List[Path]] = field(default_factory=dict)
    sidecars: Dict[str, Path] = field(default_factory=dict)
    temp_files: List[Path] = field(default_factory=list)
    total_bytes: int = 0


class LocalArtifactStore(ArtifactStore):
    """
    ArtifactStore backed by a local directory.

    Safe for concurrent use from multiple threads within one process.
    Operations on different ids never coordinate; operations on the same id
    tolerate the files disappearing underneath them and resolve to a
    not-found result rather than a fault.
    """

    def __init__(
        self,
        settings: Settings,
        *,
        cache: Optional[MetadataCache] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        """
        Initialize the store and create the storage root.

        Args:
            settings: Storage configuration
            cache: Metadata cache (defaults to one sized by settings.cache_capacity)
            clock: Source of aware UTC timestamps (defaults to the system clock)

        Raises:
            StorageFault: If the storage root cannot be created or is not a directory
        """
        self._settings = settings
        root = Path(settings.storage_root).expanduser().absolute()
        try:
            root.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageFault(f"Could not create the storage directory {root}: {e}", path=root) from e
        if not root.is_dir():
            raise StorageFault(f"Storage root is not a directory: {root}", path=root)

        self._layout = ContentLayout(root)
        self._cache = cache if cache is not None else MetadataCache(settings.cache_capacity)
        self._clock: Clock = clock or utcnow
        self._index: Dict[str, Path] = {}
        self._index_lock = threading.Lock()

        logger.debug(
            f"Artifact store at {root} (retention {settings.retention_hours}h, "
            f"max object {settings.max_object_bytes} bytes, cache {self._cache.capacity})"
        )

    @property
    def root(self) -> Path:
        return self._layout.root

    @property
    def layout(self) -> ContentLayout:
        return self._layout

    @property
    def cache(self) -> MetadataCache:
        return self._cache

    @property
    def settings(self) -> Settings:
        return self._settings

    def now(self) -> datetime:
        """Current time according to the store's clock."""
        return _as_utc(self._clock())

    # Ingestion

    def put(self, data: bytes, original_name: str) -> Path:
        """
        Store a transient input and return its content path.

        Args:
            data: Content bytes
            original_name: Uploader-supplied file name

        Returns:
            Path of the written `<id>_<name>` file

        Raises:
            StorageFault: On invalid name, oversize data or I/O error.
                Nothing is written when validation fails.
        """
        validate_original_name(original_name)
        if not isinstance(data, (bytes, bytearray, memoryview)):
            raise StorageFault(f"Content for {original_name} must be bytes, got {type(data).__name__}")
        self._check_size(len(data), original_name)

        object_id = new_object_id()
        target = self._layout.content_path(object_id, sanitize_name(original_name))
        try:
            write_bytes_atomically(target, bytes(data))
        except OSError as e:
            raise StorageFault(f"Could not store file {original_name}: {e}", path=target) from e

        self._remember(object_id, target)
        logger.debug(f"Stored transient input {target.name} ({len(data)} bytes)")
        return target

    def register(
        self,
        content: ContentSource,
        original_name: str,
        owner_tag: Optional[str] = None,
        retention: Optional[timedelta] = None,
    ) -> str:
        """
        Store a retained artifact and its metadata sidecar.

        Args:
            content: Artifact bytes, or a path to an existing file to copy
            original_name: Producer-supplied name (download filename only)
            owner_tag: Optional tenant/client tag recorded in the metadata
            retention: Retention window (defaults to settings.retention_hours)

        Returns:
            The new object id

        Raises:
            StorageFault: If the name is invalid, the content copy fails or
                the sidecar write fails. In the last case the content file
                remains and is reclaimed later by the orphan sweep.
        """
        validate_original_name(original_name)
        window = self._settings.retention_window if retention is None else retention
        if window < timedelta(0):
            raise StorageFault(f"Retention window must not be negative, got {window}")

        stored_name = sanitize_name(original_name)
        if self._settings.artifact_extension:
            stored_name = replace_extension(stored_name, self._settings.artifact_extension)

        object_id = new_object_id()
        content_path = self._layout.content_path(object_id, stored_name)

        # Phase 1: content
        try:
            if isinstance(content, (bytes, bytearray, memoryview)):
                size = write_bytes_atomically(content_path, bytes(content))
            else:
                size = copy_file_atomically(Path(content), content_path)
        except FileNotFoundError as e:
            raise StorageFault(f"Content file not found for {original_name}: {e}", path=str(content)) from e
        except OSError as e:
            raise StorageFault(f"Could not store result file {original_name}: {e}", path=content_path) from e
        except TypeError as e:
            raise StorageFault(f"Unsupported content source for {original_name}: {type(content).__name__}") from e

        self._remember(object_id, content_path)

        # Phase 2: sidecar
        created_at = self.now()
        record = ObjectMetadata(
            id=object_id,
            owner_tag=owner_tag,
            original_name=original_name,
            created_at=created_at,
            expires_at=created_at + window,
        )
        sidecar_path = self._layout.sidecar_path(object_id)
        try:
            write_sidecar(sidecar_path, record)
        except OSError as e:
            logger.error(
                f"Sidecar write failed for {object_id}; content {content_path.name} left for orphan sweep: {e}"
            )
            raise StorageFault(f"Could not write metadata for {original_name}: {e}", path=sidecar_path) from e

        self._cache.put(record)
        logger.info(
            f"Registered {object_id} ({original_name}, {size} bytes, owner={owner_tag or '-'}, "
            f"expires {record.expires_at.isoformat()})"
        )
        return object_id

    # Retrieval

    def get_metadata(self, object_id: str) -> Optional[ObjectMetadata]:
        """
        Return the metadata record for `object_id`, or None if unknown.

        Cache first; on a miss the sidecar is read from disk and cached.
        Malformed or unreadable sidecars are logged and reported as None.
        """
        if not is_object_id(object_id):
            return None

        cached = self._cache.get(object_id)
        if cached is not None:
            return cached

        sidecar_path = self._layout.sidecar_path(object_id)
        record = self._load_sidecar(sidecar_path)
        if record is None:
            return None
        if self._checked_sidecar(object_id, record) is None:
            return None

        self._cache.put(record)
        # A concurrent delete may have removed the sidecar after we read it
        if not sidecar_path.exists():
            self._cache.invalidate(object_id)
            return None
        return record

    def content_path(self, object_id: str) -> Path:
        """
        Resolve the content file for `object_id`.

        Raises:
            ObjectNotFound: If no content file exists
            StorageFault: If the storage root cannot be listed
        """
        if not is_object_id(object_id):
            raise ObjectNotFound(object_id)

        with self._index_lock:
            indexed = self._index.get(object_id)
        if indexed is not None:
            if indexed.is_file():
                return indexed
            self._forget(object_id)

        matches = self._find_content_files(object_id)
        if not matches:
            raise ObjectNotFound(object_id)
        self._remember(object_id, matches[0])
        return matches[0]

    def get_content(self, object_id: str) -> BinaryIO:
        """
        Open the object's content for binary reading.

        The caller owns the returned handle.

        Raises:
            ObjectNotFound: If no content file exists, including when it
                disappears between lookup and open
            StorageFault: If the file exists but cannot be read
        """
        path = self.content_path(object_id)
        try:
            return open(path, "rb")
        except FileNotFoundError:
            self._forget(object_id)
            raise ObjectNotFound(object_id)
        except OSError as e:
            raise StorageFault(f"Could not read content for {object_id}: {e}", path=path) from e

    def read_content(self, object_id: str) -> bytes:
        """Read the object's whole content into memory."""
        with self.get_content(object_id) as f:
            try:
                return f.read()
            except OSError as e:
                raise StorageFault(f"Could not read content for {object_id}: {e}", path=f.name) from e

    # Listing

    def list_all(self, owner_tag: Optional[str] = None) -> list[ObjectMetadata]:
        """
        Return every parseable metadata record, oldest first.

        Args:
            owner_tag: When given, only records with exactly this tag

        Raises:
            StorageFault: If the storage root cannot be listed
        """
        scan = self.iter_entries()
        records = []
        for sidecar_id, sidecar_path in scan.sidecars.items():
            record = self._checked_sidecar(sidecar_id, self._load_sidecar(sidecar_path))
            if record is None:
                continue
            if owner_tag is not None and record.owner_tag != owner_tag:
                continue
            records.append(record)
        return sorted(records, key=lambda r: (r.created_at, r.id))

    def list_expired(self, as_of: Optional[datetime] = None) -> list[ObjectMetadata]:
        """
        Return records with `expires_at < as_of`, ordered by id.

        Sidecars are parsed in parallel; each is independent, and a failure
        on one only skips that record.

        Raises:
            StorageFault: If the storage root cannot be listed
        """
        cutoff = _as_utc(as_of) if as_of is not None else self.now()
        sidecars = list(self.iter_entries().sidecars.items())
        if not sidecars:
            return []

        workers = min(self._settings.sweep_workers, len(sidecars))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="expiry-scan") as pool:
            loaded = list(pool.map(self._load_sidecar, [path for _, path in sidecars]))

        records = [self._checked_sidecar(sidecar_id, record) for (sidecar_id, _), record in zip(sidecars, loaded)]
        expired = [r for r in records if r is not None and r.expires_at < cutoff]
        return sorted(expired, key=lambda r: r.id)

    # Removal

    def delete(self, object_id: str) -> bool:
        """
        Remove an object's content files, sidecar and cache entry.

        Idempotent and never raises: removal errors are logged so a batch
        caller can move on to the next object.

        Returns:
            True if nothing for `object_id` is left on disk
        """
        if not is_object_id(object_id):
            logger.debug(f"Ignoring delete for malformed id {object_id!r}")
            return True

        self._cache.invalidate(object_id)
        self._forget(object_id)
        clean = True
        removed = 0

        try:
            content_files = self._find_content_files(object_id)
        except StorageFault as e:
            logger.error(f"Error deleting file with id {object_id}: {e}")
            content_files = []
            clean = False

        for path in content_files:
            try:
                path.unlink()
                removed += 1
            except FileNotFoundError:
                pass
            except OSError as e:
                logger.error(f"Error deleting content {path.name} for {object_id}: {e}")
                clean = False

        sidecar_path = self._layout.sidecar_path(object_id)
        try:
            sidecar_path.unlink()
            removed += 1
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.error(f"Error deleting sidecar for {object_id}: {e}")
            clean = False

        self._cache.invalidate(object_id)
        if removed:
            logger.info(f"Deleted file with id {object_id}")
        return clean

    def discard(self, path: Path) -> bool:
        """
        Remove a content file without touching any sidecar.

        Used for transient inputs returned by `put`, for orphaned content and
        for leftover `.tmp-*` files. A missing file is not an error.

        Returns:
            True if the file was removed, False if it was already gone

        Raises:
            StorageFault: If `path` is not a content or temp file of this
                store, or cannot be removed
        """
        path = Path(path)
        object_id = self._layout.parse_content_name(path.name)
        is_temp = path.name.startswith(TEMP_PREFIX)
        if (object_id is None and not is_temp) or not self._layout.owns(path):
            raise StorageFault(f"Refusing to discard a path outside the store: {path}", path=path)
        if object_id is not None:
            self._forget(object_id)
        try:
            path.unlink()
            return True
        except FileNotFoundError:
            return False
        except OSError as e:
            raise StorageFault(f"Could not discard {path.name}: {e}", path=path) from e

    # Administration

    def get_stats(self) -> StorageStats:
        """
        Aggregate usage over a fresh directory scan.

        O(number of files); intended for occasional polling.
        """
        scan = self.iter_entries()
        return StorageStats(
            object_count=len(scan.sidecars),
            total_bytes=scan.total_bytes,
            cache_entry_count=len(self._cache),
        )

    def iter_entries(self) -> StoreScan:
        """
        Scan the storage root once.

        Files that vanish mid-scan are skipped.

        Raises:
            StorageFault: If the storage root cannot be listed
        """
        scan = StoreScan()
        try:
            with os.scandir(self._layout.root) as it:
                for entry in it:
                    try:
                        if not entry.is_file(follow_symlinks=False):
                            continue
                        scan.total_bytes += entry.stat(follow_symlinks=False).st_size
                    except FileNotFoundError:
                        continue

                    if entry.name.startswith(TEMP_PREFIX):
                        scan.temp_files.append(Path(entry.path))
                        continue
                    sidecar_id = self._layout.parse_sidecar_name(entry.name)
                    if sidecar_id is not None:
                        scan.sidecars[sidecar_id] = Path(entry.path)
                        continue
                    content_id = self._layout.parse_content_name(entry.name)
                    if content_id is not None:
                        scan.content.setdefault(content_id, []).append(Path(entry.path))
        except OSError as e:
            raise StorageFault(f"Could not list storage root {self._layout.root}: {e}", path=self._layout.root) from e

        for paths in scan.content.values():
            paths.sort()
        scan.temp_files.sort()
        return scan

    # Internals

    def _check_size(self, size: int, original_name: str) -> None:
        limit = self._settings.max_object_bytes
        if size > limit:
            raise StorageFault(f"File {original_name} is {size} bytes, exceeding the {limit} byte limit")

    def _load_sidecar(self, sidecar_path: Path) -> Optional[ObjectMetadata]:
        try:
            return read_sidecar(sidecar_path)
        except FileNotFoundError:
            return None
        except (OSError, ValueError) as e:
            logger.warning(f"Skipping unreadable metadata file {sidecar_path.name}: {e}")
            return None

    def _checked_sidecar(self, sidecar_id: str, record: Optional[ObjectMetadata]) -> Optional[ObjectMetadata]:
        if record is not None and record.id != sidecar_id:
            logger.warning(f"Sidecar {sidecar_id}.meta carries mismatched id {record.id}; ignoring")
            return None
        return record

    def _find_content_files(self, object_id: str) -> List[Path]:
        prefix = self._layout.content_prefix(object_id)
        matches = []
        try:
            with os.scandir(self._layout.root) as it:
                for entry in it:
                    if not entry.name.startswith(prefix):
                        continue
                    try:
                        if entry.is_file(follow_symlinks=False):
                            matches.append(Path(entry.path))
                    except FileNotFoundError:
                        continue
        except OSError as e:
            raise StorageFault(f"Could not list storage root {self._layout.root}: {e}", path=self._layout.root) from e
        return sorted(matches)

    def _remember(self, object_id: str, path: Path) -> None:
        with self._index_lock:
            self._index[object_id] = path

    def _forget(self, object_id: str) -> None:
        with self._index_lock:
            self._index.pop(object_id, None)
