from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Protocol


def to_naive_utc(value: datetime) -> datetime:
    """Stored instants are naive UTC; convert aware values before comparing."""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


class Clock(Protocol):
    def now(self) -> datetime: ...


class SystemClock:
    def now(self) -> datetime:
        return datetime.now(timezone.utc).replace(tzinfo=None)


class FrozenClock:
    """Clock that only moves when told to. Used for tests and schedule simulations."""

    def __init__(self, start: datetime) -> None:
        self._now = to_naive_utc(start)

    def now(self) -> datetime:
        return self._now

    def set(self, value: datetime) -> None:
        self._now = to_naive_utc(value)

    def advance(self, days: float = 0, hours: float = 0) -> datetime:
        self._now += timedelta(days=days, hours=hours)
        return self._now
