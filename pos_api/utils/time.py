"""Clock abstraction and UTC helpers."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Protocol


class Clock(Protocol):
    def now(self) -> datetime:
        """Return the current aware UTC datetime."""


class SystemClock:
    """Wall clock in UTC."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class FixedClock:
    """Clock frozen at a given instant; moved only by :meth:`advance`."""

    def __init__(self, instant: datetime) -> None:
        self._instant = ensure_utc(instant)

    def now(self) -> datetime:
        return self._instant

    def advance(self, **delta: float) -> datetime:
        self._instant = self._instant + timedelta(**delta)
        return self._instant


default_clock: Clock = SystemClock()


def get_clock() -> Clock:
    """FastAPI dependency returning the process clock."""
    return default_clock


def ensure_utc(value: datetime) -> datetime:
    """Attach UTC to naive values read back from stores without tz support."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def day_window(now: datetime) -> tuple[datetime, datetime]:
    """Return the UTC day boundaries containing ``now``.

    Orders are stored with UTC timestamps, so all "today" filtering must use UTC
    boundaries as well.
    """
    start = ensure_utc(now).replace(hour=0, minute=0, second=0, microsecond=0)
    end = start + timedelta(days=1)
    return start, end


def minutes_between(earlier: datetime, later: datetime) -> int:
    """Whole minutes elapsed from ``earlier`` to ``later`` (floored)."""
    return int((ensure_utc(later) - ensure_utc(earlier)).total_seconds() // 60)
