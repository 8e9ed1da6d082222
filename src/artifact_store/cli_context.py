"""Per-invocation wiring for CLI commands."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .settings import Settings, create_settings_from_env
from .storage.local_store import LocalArtifactStore


@dataclass
class CLIContext:
    """
    Settings and store for one CLI command.

    The store is opened on first use. Opening it creates the storage root,
    so a command that fails on bad configuration leaves no directory behind.
    """
    settings: Settings
    _store: Optional[LocalArtifactStore] = None

    @classmethod
    def from_env(cls) -> CLIContext:
        """Build a context from ARTIFACT_STORE_* environment variables."""
        return cls(settings=create_settings_from_env())

    @property
    def store(self) -> LocalArtifactStore:
        if self._store is None:
            self._store = LocalArtifactStore(self.settings)
        return self._store
