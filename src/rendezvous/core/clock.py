# core/clock.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta, tzinfo
from typing import Protocol

MIN = 60


class Clock(Protocol):
    def now(self) -> datetime: ...


class WallClock:
    """System time, tz-aware in the machine's local zone."""

    def now(self) -> datetime:
        return datetime.now().astimezone()


@dataclass(frozen=True)
class FixedClock:
    at: datetime  # naive values are local wall time

    @classmethod
    def utc(cls, y: int, m: int, d: int, hh=0, mm=0, ss=0) -> FixedClock:
        return cls(datetime(y, m, d, hh, mm, ss, tzinfo=UTC))

    def now(self) -> datetime:
        return as_aware(self.at)


def as_aware(dt: datetime, tz: tzinfo | None = None) -> datetime:
    """Naive datetimes are read as local wall time, or as `tz` when given."""
    if dt.tzinfo is not None:
        return dt
    return dt.replace(tzinfo=tz) if tz is not None else dt.astimezone()


def shift(dt: datetime, seconds: float) -> datetime:
    return dt + timedelta(seconds=seconds)


def late_by_minutes(departure: datetime, now: datetime) -> int:
    """Whole minutes the departure lies in the past; 0 if it is not late."""
    departure, now = as_aware(departure), as_aware(now)
    if departure >= now:
        return 0
    return int((now - departure).total_seconds() // MIN)


def format_hhmm(dt: datetime) -> str:
    return dt.strftime("%H:%M")
