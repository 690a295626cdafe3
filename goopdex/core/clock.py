"""
Injectable time source.

Every progression operation reads "now" from a Clock so day boundaries,
challenge expiry and streak arithmetic are deterministic under test. The
clock's timezone defines what "midnight" and "same day" mean.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone, tzinfo
from typing import Optional, Protocol
from zoneinfo import ZoneInfo

from goopdex.core.config.config import Config


class Clock(Protocol):
    @property
    def tz(self) -> tzinfo: ...

    def now(self) -> datetime: ...


def resolve_timezone(name: Optional[str] = None) -> tzinfo:
    name = name or Config.TIMEZONE
    if name.upper() == "UTC":
        return timezone.utc
    return ZoneInfo(name)


class SystemClock:
    """Wall clock in a fixed timezone (GOOPDEX_TIMEZONE by default)."""

    def __init__(self, tz: Optional[tzinfo] = None) -> None:
        self._tz = tz or resolve_timezone()

    @property
    def tz(self) -> tzinfo:
        return self._tz

    def now(self) -> datetime:
        return datetime.now(self._tz)


class FixedClock:
    """Manually driven clock for tests and replays."""

    def __init__(self, start: datetime, tz: Optional[tzinfo] = None) -> None:
        if start.tzinfo is None:
            raise ValueError("FixedClock requires a timezone-aware start time")
        self._tz = tz or start.tzinfo
        self._now = start.astimezone(self._tz)

    @property
    def tz(self) -> tzinfo:
        return self._tz

    def now(self) -> datetime:
        return self._now

    def set(self, moment: datetime) -> None:
        if moment.tzinfo is None:
            raise ValueError("FixedClock requires timezone-aware datetimes")
        self._now = moment.astimezone(self._tz)

    def advance(self, **delta: float) -> datetime:
        self._now = self._now + timedelta(**delta)
        return self._now


def next_midnight(moment: datetime, tz: tzinfo) -> datetime:
    """
    Start of the next local day after `moment`, in `tz`.

    Where a DST change skips midnight the day starts at the first wall time
    that exists (01:00 for a one-hour jump).
    """
    local = moment.astimezone(tz)
    tomorrow = local.date() + timedelta(days=1)
    wall = datetime(tomorrow.year, tomorrow.month, tomorrow.day, tzinfo=tz)
    return wall.astimezone(timezone.utc).astimezone(tz)
