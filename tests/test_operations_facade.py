"""
Tests for the Operations facade.

The facade is thin; these tests check the wiring to the store and the
sweep functions plus the serve lifecycle.
"""
from __future__ import annotations

import threading
from datetime import timedelta

import pytest

from artifact_store.models import SweepKind
from artifact_store.operations import Operations
from artifact_store.settings import Settings
from artifact_store.storage.errors import ObjectNotFound
from artifact_store.storage.layout import new_object_id
from artifact_store.storage.local_store import LocalArtifactStore

from tests.fakes.fake_clock import T0


@pytest.fixture
def ops(store):
    return Operations(store)


class TestOperations:

    def test_stats(self, ops, store):
        store.register(b"abc", "a.gb")
        stats = ops.stats()
        assert stats.object_count == 1
        assert stats.total_bytes > 3

    def test_list_filters(self, ops, store, clock):
        a = store.register(b"a", "a.gb", owner_tag="lab", retention=timedelta(hours=1))
        b = store.register(b"b", "b.gb", owner_tag="other", retention=timedelta(hours=1))
        store.register(b"c", "c.gb", owner_tag="lab", retention=timedelta(hours=48))
        clock.advance(timedelta(hours=2))

        assert len(ops.list()) == 3
        assert [r.id for r in ops.list(expired_only=True)] == sorted([a, b])
        assert [r.id for r in ops.list(owner_tag="lab", expired_only=True)] == [a]

    def test_show(self, ops, store):
        object_id = store.register(b"a", "a.gb")
        assert ops.show(object_id).id == object_id

    def test_show_missing_raises(self, ops):
        with pytest.raises(ObjectNotFound):
            ops.show(new_object_id())

    def test_delete(self, ops, store):
        object_id = store.register(b"a", "a.gb")
        assert ops.delete(object_id) is True
        assert store.get_metadata(object_id) is None

    def test_sweep_expired(self, ops, store):
        store.register(b"a", "a.gb")
        result = ops.sweep_expired(now=T0 + timedelta(hours=25))
        assert result.kind == SweepKind.EXPIRY
        assert result.reclaimed == 1

    def test_reconcile_uses_configured_grace(self, tmp_path, clock):
        store = LocalArtifactStore(
            Settings(storage_root=tmp_path / "graced", orphan_grace_seconds=3600), clock=clock
        )
        orphan = store.layout.content_path(new_object_id(), "orphan.gb")
        orphan.write_bytes(b"lost")

        # Store clock is at T0, long before the file's mtime, so the grace window keeps it
        assert Operations(store).reconcile().is_noop
        assert orphan.exists()

        result = Operations(store).reconcile(min_age=timedelta(0))
        assert result.reclaimed == 1

    def test_serve_stops_on_event(self, ops):
        stop = threading.Event()
        stop.set()
        scheduler = ops.serve(stop_event=stop)
        assert not scheduler.running
