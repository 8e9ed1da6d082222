"""
Settings and configuration for the artifact store.

Centralizes configuration values and provides validation with fail-fast behavior.
Loads settings from environment variables at store construction time.
"""
from __future__ import annotations

import os
import re
from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path
from typing import Optional

__all__ = ["Settings", "create_settings_from_env", "DEFAULT_MAX_OBJECT_BYTES", "DEFAULT_ORPHAN_GRACE_SECONDS"]

DEFAULT_MAX_OBJECT_BYTES = 20 * 1024 * 1024  # 20 MiB
DEFAULT_ORPHAN_GRACE_SECONDS = 3600.0  # keeps inputs of in-flight conversions


@dataclass(frozen=True)
class Settings:
    """
    Configuration settings for the artifact store.

    Storage Settings:
        storage_root: Directory holding content files and sidecars
        retention_hours: Default retention window for registered objects
        max_object_bytes: Hard per-object size ceiling
        cache_capacity: Maximum number of cached metadata records (0 disables)
        artifact_extension: Extension forced onto registered artifact names

    Sweep Settings:
        expiry_cron: Crontab expression for the expiry sweep
        orphan_cron: Crontab expression for the orphan sweep
        orphan_grace_seconds: Minimum age before an orphan content file is reclaimed
        sweep_workers: Thread pool size for parallel sweep work
    """
    storage_root: Path = Path("temp-files")
    retention_hours: float = 24.0
    max_object_bytes: int = DEFAULT_MAX_OBJECT_BYTES
    cache_capacity: int = 1000
    artifact_extension: Optional[str] = None

    expiry_cron: str = "0 */6 * * *"
    orphan_cron: str = "0 3 * * 0"
    orphan_grace_seconds: float = DEFAULT_ORPHAN_GRACE_SECONDS
    sweep_workers: int = 4

    def __post_init__(self):
        """Validate settings on construction."""
        if not self.storage_root or not str(self.storage_root).strip():
            raise ValueError("storage_root is required")

        # Normalize to Path without breaking frozen semantics
        if not isinstance(self.storage_root, Path):
            object.__setattr__(self, "storage_root", Path(self.storage_root))

        if self.retention_hours <= 0:
            raise ValueError(f"retention_hours must be positive, got {self.retention_hours}")

        if self.max_object_bytes <= 0:
            raise ValueError(f"max_object_bytes must be positive, got {self.max_object_bytes}")

        if self.cache_capacity < 0:
            raise ValueError(f"cache_capacity must be non-negative, got {self.cache_capacity}")

        if self.orphan_grace_seconds < 0:
            raise ValueError(f"orphan_grace_seconds must be non-negative, got {self.orphan_grace_seconds}")

        if self.sweep_workers < 1:
            raise ValueError(f"sweep_workers must be at least 1, got {self.sweep_workers}")

        for name in ("expiry_cron", "orphan_cron"):
            value = getattr(self, name)
            if not value or len(value.split()) != 5:
                raise ValueError(f"Invalid {name}: {value!r}. Expected a 5-field crontab expression")

        if self.artifact_extension is not None:
            if not re.fullmatch(r"\.[A-Za-z0-9]+", self.artifact_extension):
                raise ValueError(f"Invalid artifact_extension: {self.artifact_extension!r}. Expected e.g. '.gb'")

    @property
    def retention_window(self) -> timedelta:
        """Default retention window as a timedelta."""
        return timedelta(hours=self.retention_hours)

    @property
    def orphan_grace(self) -> timedelta:
        """Orphan grace window as a timedelta."""
        return timedelta(seconds=self.orphan_grace_seconds)


# Settings loading functions (no caching)


def create_settings_from_env() -> Settings:
    """
    Load settings from environment variables.

    Environment Variables:
        Storage:
        - ARTIFACT_STORE_ROOT (default: temp-files)
        - ARTIFACT_STORE_RETENTION_HOURS (default: 24)
        - ARTIFACT_STORE_MAX_OBJECT_BYTES (default: 20971520)
        - ARTIFACT_STORE_CACHE_CAPACITY (default: 1000)
        - ARTIFACT_STORE_ARTIFACT_EXTENSION (optional, e.g. ".gb")

        Sweeps:
        - ARTIFACT_STORE_EXPIRY_CRON (default: "0 */6 * * *")
        - ARTIFACT_STORE_ORPHAN_CRON (default: "0 3 * * 0")
        - ARTIFACT_STORE_ORPHAN_GRACE_SECONDS (default: 3600)
        - ARTIFACT_STORE_SWEEP_WORKERS (default: 4)

    Returns:
        Settings object with validated configuration

    Raises:
        ValueError: If configuration is invalid

    Note:
        Creates a fresh Settings instance every time (no caching).
        This ensures test isolation and eliminates global state.
    """
    return _load_settings_impl()


def _load_settings_impl() -> Settings:
    """Internal implementation of settings loading."""
    def get_float(key: str, default: float) -> float:
        value = os.getenv(key)
        return float(value) if value else default

    def get_int(key: str, default: int) -> int:
        value = os.getenv(key)
        return int(value) if value else default

    return Settings(
        storage_root=Path(os.getenv("ARTIFACT_STORE_ROOT") or "temp-files"),
        retention_hours=get_float("ARTIFACT_STORE_RETENTION_HOURS", 24.0),
        max_object_bytes=get_int("ARTIFACT_STORE_MAX_OBJECT_BYTES", DEFAULT_MAX_OBJECT_BYTES),
        cache_capacity=get_int("ARTIFACT_STORE_CACHE_CAPACITY", 1000),
        artifact_extension=os.getenv("ARTIFACT_STORE_ARTIFACT_EXTENSION") or None,
        expiry_cron=os.getenv("ARTIFACT_STORE_EXPIRY_CRON") or "0 */6 * * *",
        orphan_cron=os.getenv("ARTIFACT_STORE_ORPHAN_CRON") or "0 3 * * 0",
        orphan_grace_seconds=get_float("ARTIFACT_STORE_ORPHAN_GRACE_SECONDS", DEFAULT_ORPHAN_GRACE_SECONDS),
        sweep_workers=get_int("ARTIFACT_STORE_SWEEP_WORKERS", 4),
    )
