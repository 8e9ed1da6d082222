"""Root pytest configuration for artifact-store tests."""
from __future__ import annotations

import pytest

from artifact_store.settings import Settings
from artifact_store.storage.local_store import LocalArtifactStore

from tests.fakes.fake_clock import FakeClock


# Configure pytest markers
def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers",
        "slow: mark test as slow (may take significant time)"
    )


@pytest.fixture(autouse=True)
def test_env(monkeypatch, tmp_path):
    """Point environment-driven settings at a per-test storage root."""
    for name in (
        "ARTIFACT_STORE_RETENTION_HOURS",
        "ARTIFACT_STORE_MAX_OBJECT_BYTES",
        "ARTIFACT_STORE_CACHE_CAPACITY",
        "ARTIFACT_STORE_ARTIFACT_EXTENSION",
        "ARTIFACT_STORE_EXPIRY_CRON",
        "ARTIFACT_STORE_ORPHAN_CRON",
        "ARTIFACT_STORE_ORPHAN_GRACE_SECONDS",
        "ARTIFACT_STORE_SWEEP_WORKERS",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("ARTIFACT_STORE_ROOT", str(tmp_path / "env-store"))


@pytest.fixture
def clock():
    """Clock starting at T0."""
    return FakeClock()


@pytest.fixture
def settings(tmp_path):
    """Standard test settings."""
    return Settings(storage_root=tmp_path / "store", sweep_workers=2)


@pytest.fixture
def store(settings, clock):
    """Store on a fresh directory with a controllable clock."""
    return LocalArtifactStore(settings, clock=clock)
