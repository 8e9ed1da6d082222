"""
Expiry scanning and orphan reconciliation.

Both passes work only through the store's public operations plus a single
directory scan, so they can run concurrently with request traffic. Deletion
is idempotent and expiry is recomputed from absolute timestamps on every
pass; a sweep that dies half way simply leaves the rest for the next one.

The orphan pass is the store's only consistency-repair mechanism. It
reclaims content files whose sidecar never got written (or was removed)
and `.tmp-*` files left by interrupted writes. It deliberately leaves
sidecars without content alone: a lone sidecar is cheap, and removing it
could race a registration that is still in flight.
"""
from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import List, Optional

from .models import SweepKind, SweepResult, utcnow
from .storage.errors import StorageFault
from .storage.local_store import LocalArtifactStore

__all__ = ["find_expired", "sweep_expired", "reconcile_orphans"]

logger = logging.getLogger(__name__)

# Temp files younger than this may still belong to a write in progress
TEMP_FILE_MIN_AGE = timedelta(hours=1)


def find_expired(store: LocalArtifactStore, now: Optional[datetime] = None) -> List[str]:
    """
    Ids of objects whose retention window has elapsed at `now`.

    Pure over the directory snapshot: the same snapshot and `now` always
    give the same sorted id list, whatever order the scan visits files in.

    Raises:
        StorageFault: If the storage root cannot be listed
    """
    return sorted(record.id for record in store.list_expired(now))


def sweep_expired(
    store: LocalArtifactStore,
    now: Optional[datetime] = None,
    workers: Optional[int] = None,
) -> SweepResult:
    """
    Delete every expired object, in parallel.

    Per-object failures are logged and counted, never raised.

    Args:
        store: Store to sweep
        now: Reference time (defaults to the store's clock)
        workers: Thread pool size (defaults to settings.sweep_workers)

    Returns:
        SweepResult with candidate, reclaimed and failed counts

    Raises:
        StorageFault: If the storage root cannot be listed
    """
    result = SweepResult(kind=SweepKind.EXPIRY, started_at=utcnow())
    expired_ids = find_expired(store, now)
    result.candidates = len(expired_ids)

    if not expired_ids:
        logger.info("Expiry sweep: no expired files")
        result.finished_at = utcnow()
        return result

    def _delete_one(object_id: str) -> bool:
        try:
            return store.delete(object_id)
        except Exception as e:
            logger.error(f"Expiry sweep: failed to delete {object_id}: {e}")
            return False

    pool_size = min(workers or store.settings.sweep_workers, len(expired_ids))
    with ThreadPoolExecutor(max_workers=pool_size, thread_name_prefix="expiry-sweep") as pool:
        outcomes = list(pool.map(_delete_one, expired_ids))

    result.reclaimed = sum(1 for ok in outcomes if ok)
    result.failed = len(outcomes) - result.reclaimed
    result.finished_at = utcnow()
    logger.info(
        f"Expiry sweep completed. Deleted {result.reclaimed} expired files"
        + (f", {result.failed} failed" if result.failed else "")
    )
    return result


def reconcile_orphans(
    store: LocalArtifactStore,
    min_age: timedelta = timedelta(0),
    now: Optional[datetime] = None,
) -> SweepResult:
    """
    Remove content files that have no metadata sidecar, and stale temp files.

    Args:
        store: Store to reconcile
        min_age: Leave orphans whose modification time is younger than this
        now: Reference time for the age checks (defaults to the store's clock)

    Returns:
        SweepResult; `reclaimed` counts removed content files,
        `temp_files_reclaimed` counts removed `.tmp-*` files and
        `dangling_sidecars` counts sidecars that have no content

    Raises:
        StorageFault: If the storage root cannot be listed
    """
    result = SweepResult(kind=SweepKind.ORPHAN, started_at=utcnow())
    scan = store.iter_entries()
    reference = now if now is not None else store.now()
    if reference.tzinfo is None:
        reference = reference.replace(tzinfo=timezone.utc)
    cutoff = reference - min_age
    temp_cutoff = reference - max(min_age, TEMP_FILE_MIN_AGE)

    for object_id, paths in scan.content.items():
        if object_id in scan.sidecars:
            continue
        for path in paths:
            if min_age > timedelta(0) and not _older_than(path, cutoff, result):
                continue

            result.candidates += 1
            if _discard(store, path, result):
                result.reclaimed += 1
                logger.debug(f"Orphan sweep: removed {path.name}")

    for path in scan.temp_files:
        if not _older_than(path, temp_cutoff, result):
            continue
        if _discard(store, path, result):
            result.temp_files_reclaimed += 1
            logger.debug(f"Orphan sweep: removed abandoned temp file {path.name}")

    for object_id in scan.sidecars:
        if object_id not in scan.content:
            result.dangling_sidecars += 1
            logger.warning(f"Orphan sweep: sidecar for {object_id} has no content file")

    result.finished_at = utcnow()
    logger.info(
        f"Orphan sweep completed. Removed {result.reclaimed} orphaned files"
        f" and {result.temp_files_reclaimed} temp files"
    )
    return result


def _older_than(path: Path, cutoff: datetime, result: SweepResult) -> bool:
    try:
        mtime = datetime.fromtimestamp(path.stat().st_mtime, tz=timezone.utc)
    except FileNotFoundError:
        return False
    except OSError as e:
        logger.error(f"Orphan sweep: cannot stat {path.name}: {e}")
        result.failed += 1
        return False
    if mtime > cutoff:
        logger.debug(f"Orphan sweep: {path.name} is within the grace window, keeping")
        return False
    return True


def _discard(store: LocalArtifactStore, path: Path, result: SweepResult) -> bool:
    try:
        return store.discard(path)
    except StorageFault as e:
        logger.error(f"Orphan sweep: failed to remove {path.name}: {e}")
        result.failed += 1
        return False
