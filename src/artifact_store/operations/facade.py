"""
Operations Facade - Application service layer.

Provides a clean interface between the CLI and the store, centralizing
command orchestration while keeping CLI commands thin and testable.
"""
from __future__ import annotations

import logging
import signal
import threading
from datetime import datetime, timedelta
from typing import Optional

from ..models import ObjectMetadata, StorageStats, SweepResult
from ..reconcile import reconcile_orphans, sweep_expired
from ..scheduler import ReconciliationScheduler
from ..storage.errors import ObjectNotFound
from ..storage.local_store import LocalArtifactStore

logger = logging.getLogger(__name__)


class Operations:
    """
    Application service facade for CLI operations.

    One method per CLI verb. Exceptions bubble up unchanged so the CLI can
    map them to exit codes in one place.
    """

    def __init__(self, store: LocalArtifactStore):
        self.store = store

    def stats(self) -> StorageStats:
        return self.store.get_stats()

    def list(self, owner_tag: Optional[str] = None, expired_only: bool = False) -> list[ObjectMetadata]:
        if expired_only:
            records = self.store.list_expired()
            if owner_tag is not None:
                records = [r for r in records if r.owner_tag == owner_tag]
            return records
        return self.store.list_all(owner_tag=owner_tag)

    def show(self, object_id: str) -> ObjectMetadata:
        """
        Raises:
            ObjectNotFound: If the id has no metadata
        """
        record = self.store.get_metadata(object_id)
        if record is None:
            raise ObjectNotFound(object_id)
        return record

    def delete(self, object_id: str) -> bool:
        return self.store.delete(object_id)

    def sweep_expired(self, now: Optional[datetime] = None) -> SweepResult:
        return sweep_expired(self.store, now=now)

    def reconcile(self, min_age: Optional[timedelta] = None) -> SweepResult:
        grace = self.store.settings.orphan_grace if min_age is None else min_age
        return reconcile_orphans(self.store, min_age=grace)

    def serve(self, stop_event: Optional[threading.Event] = None) -> ReconciliationScheduler:
        """
        Run the reconciliation scheduler until `stop_event` is set or the
        process receives SIGINT/SIGTERM.
        """
        scheduler = ReconciliationScheduler(self.store)
        stop = stop_event or threading.Event()

        if stop_event is None and threading.current_thread() is threading.main_thread():
            signal.signal(signal.SIGTERM, lambda *_: stop.set())
            signal.signal(signal.SIGINT, lambda *_: stop.set())

        scheduler.start()
        try:
            stop.wait()
        finally:
            scheduler.shutdown(wait=True)
        return scheduler
