"""Manually advanced clock for deterministic expiry tests."""
from __future__ import annotations

from datetime import datetime, timedelta, timezone

T0 = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    """Callable returning a fixed UTC time until advanced."""

    def __init__(self, start: datetime = T0):
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, delta: timedelta) -> datetime:
        self.current = self.current + delta
        return self.current
