"""Injectable clock.

Everything that needs "now" (send path, sweep, quota date) takes a clock
instead of calling ``datetime.now`` directly, so tests can pin time.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Protocol


class Clock(Protocol):
    def __call__(self) -> datetime: ...


def ensure_utc(value: datetime) -> datetime:
    """Return ``value`` as an aware UTC datetime (naive values are taken as UTC)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def system_clock() -> datetime:
    return datetime.now(timezone.utc)


class FixedClock:
    """Clock pinned to an instant; ``advance`` moves it forward."""

    def __init__(self, now: datetime):
        self.now = ensure_utc(now)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now
