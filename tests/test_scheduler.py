"""
Tests for the reconciliation scheduler.

Sweeps are invoked directly rather than waiting for cron firings; the
lifecycle tests start a real background scheduler and stop it again.
"""
from __future__ import annotations

import os
from datetime import timedelta
from unittest.mock import patch

import pytest

from artifact_store.models import SweepKind
from artifact_store.scheduler import EXPIRY_JOB_ID, ORPHAN_JOB_ID, ReconciliationScheduler
from artifact_store.storage.errors import StorageFault
from artifact_store.storage.layout import new_object_id

from tests.fakes.fake_clock import T0


@pytest.fixture
def scheduler(store):
    sched = ReconciliationScheduler(store)
    yield sched
    sched.shutdown(wait=False)


class TestJobs:

    def test_both_jobs_registered(self, scheduler):
        assert sorted(job_id for job_id, _ in scheduler.jobs()) == sorted([EXPIRY_JOB_ID, ORPHAN_JOB_ID])

    def test_invalid_cron_rejected(self, store):
        with pytest.raises(ValueError):
            ReconciliationScheduler(store, expiry_cron="not a cron")

    def test_start_and_shutdown_are_idempotent(self, scheduler):
        assert not scheduler.running
        scheduler.start()
        scheduler.start()
        assert scheduler.running
        assert all(next_run is not None for _, next_run in scheduler.jobs())

        scheduler.shutdown(wait=False)
        scheduler.shutdown(wait=False)
        assert not scheduler.running


class TestSweeps:

    def test_expiry_sweep_records_result(self, scheduler, store):
        store.register(b"x", "a.gb", retention=timedelta(hours=1))
        result = scheduler.run_expiry_sweep(now=T0 + timedelta(hours=2))

        assert result is not None
        assert result.reclaimed == 1
        assert scheduler.last_results[SweepKind.EXPIRY] is result
        assert store.list_all() == []

    def test_orphan_sweep_records_result(self, scheduler, store):
        orphan = store.layout.content_path(new_object_id(), "orphan.gb")
        orphan.write_bytes(b"lost")
        fresh = store.layout.content_path(new_object_id(), "fresh.gb")
        fresh.write_bytes(b"in flight")
        # Older than the configured one-hour grace window, measured from the store clock
        old = (T0 - timedelta(hours=2)).timestamp()
        os.utime(orphan, (old, old))
        recent = (T0 - timedelta(minutes=5)).timestamp()
        os.utime(fresh, (recent, recent))

        result = scheduler.run_orphan_sweep()

        assert result.reclaimed == 1
        assert fresh.exists()
        assert scheduler.last_results[SweepKind.ORPHAN] is result
        assert not orphan.exists()

    def test_failed_expiry_sweep_is_swallowed(self, scheduler, caplog):
        with patch("artifact_store.scheduler.sweep_expired", side_effect=StorageFault("disk gone")):
            with caplog.at_level("ERROR", logger="artifact_store.scheduler"):
                assert scheduler.run_expiry_sweep() is None
        assert "Expiry sweep failed" in caplog.text
        assert SweepKind.EXPIRY not in scheduler.last_results

    def test_failed_orphan_sweep_is_swallowed(self, scheduler):
        with patch("artifact_store.scheduler.reconcile_orphans", side_effect=RuntimeError("boom")):
            assert scheduler.run_orphan_sweep() is None

    def test_sweep_after_failure_still_runs(self, scheduler, store):
        store.register(b"x", "a.gb", retention=timedelta(0))
        with patch("artifact_store.scheduler.sweep_expired", side_effect=StorageFault("disk gone")):
            scheduler.run_expiry_sweep()
        result = scheduler.run_expiry_sweep(now=T0 + timedelta(seconds=1))
        assert result.reclaimed == 1
