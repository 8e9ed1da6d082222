"""
Reconciliation scheduler.

Runs the expiry sweep and the orphan sweep as two independent cron jobs on
an APScheduler background scheduler. The jobs talk to the store only through
its public operations and never block request handling. A sweep that fails
as a whole is logged and swallowed so the next firing is unaffected.
"""
from __future__ import annotations

import logging
import threading
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from apscheduler.executors.pool import ThreadPoolExecutor
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

from .models import SweepKind, SweepResult
from .reconcile import reconcile_orphans, sweep_expired
from .storage.local_store import LocalArtifactStore

__all__ = ["ReconciliationScheduler", "EXPIRY_JOB_ID", "ORPHAN_JOB_ID"]

logger = logging.getLogger(__name__)

EXPIRY_JOB_ID = "artifact-store-expiry-sweep"
ORPHAN_JOB_ID = "artifact-store-orphan-sweep"


class ReconciliationScheduler:
    """
    Periodic expiry and orphan sweeps for one store.

    The two triggers are independent: both may run at the same time, and
    each is limited to a single running instance with missed firings
    coalesced.
    """

    def __init__(
        self,
        store: LocalArtifactStore,
        *,
        expiry_cron: Optional[str] = None,
        orphan_cron: Optional[str] = None,
        timezone: str = "UTC",
    ) -> None:
        settings = store.settings
        self._store = store
        self._expiry_cron = expiry_cron or settings.expiry_cron
        self._orphan_cron = orphan_cron or settings.orphan_cron
        self._timezone = timezone
        self._mtx = threading.RLock()
        self._started = False
        self._last_results: Dict[SweepKind, SweepResult] = {}

        self._impl = BackgroundScheduler(
            executors={"default": ThreadPoolExecutor(max_workers=2)},
            job_defaults={"coalesce": True, "max_instances": 1, "misfire_grace_time": 300},
            timezone=timezone,
        )
        self._impl.add_job(
            self.run_expiry_sweep,
            trigger=CronTrigger.from_crontab(self._expiry_cron, timezone=timezone),
            id=EXPIRY_JOB_ID,
            name="expiry sweep",
            replace_existing=True,
        )
        self._impl.add_job(
            self.run_orphan_sweep,
            trigger=CronTrigger.from_crontab(self._orphan_cron, timezone=timezone),
            id=ORPHAN_JOB_ID,
            name="orphan sweep",
            replace_existing=True,
        )

    # ---- lifecycle

    @property
    def running(self) -> bool:
        return self._started

    def start(self) -> None:
        with self._mtx:
            if self._started:
                return
            self._impl.start()
            self._started = True
            logger.info(f"Reconciliation scheduler started (expiry '{self._expiry_cron}', orphan '{self._orphan_cron}')")

    def shutdown(self, wait: bool = True) -> None:
        with self._mtx:
            if not self._started:
                return
            self._started = False
            self._impl.shutdown(wait=wait)
            logger.info("Reconciliation scheduler stopped")

    def jobs(self) -> List[Tuple[str, Optional[datetime]]]:
        """Registered job ids with their next fire time (None until started)."""
        return [(job.id, getattr(job, "next_run_time", None)) for job in self._impl.get_jobs()]

    @property
    def last_results(self) -> Dict[SweepKind, SweepResult]:
        with self._mtx:
            return dict(self._last_results)

    # ---- sweeps

    def run_expiry_sweep(self, now: Optional[datetime] = None) -> Optional[SweepResult]:
        """
        Delete every expired object.

        Returns:
            The sweep result, or None if the sweep failed as a whole
        """
        logger.info("Starting cleanup of expired files")
        try:
            result = sweep_expired(self._store, now=now)
        except Exception:
            logger.exception("Expiry sweep failed")
            return None
        self._record(result)
        return result

    def run_orphan_sweep(self) -> Optional[SweepResult]:
        """
        Reclaim content files that have no sidecar.

        Returns:
            The sweep result, or None if the sweep failed as a whole
        """
        logger.info("Starting cleanup of orphaned files")
        try:
            result = reconcile_orphans(self._store, min_age=self._store.settings.orphan_grace)
        except Exception:
            logger.exception("Orphan sweep failed")
            return None
        self._record(result)
        return result

    def _record(self, result: SweepResult) -> None:
        with self._mtx:
            self._last_results[result.kind] = result
