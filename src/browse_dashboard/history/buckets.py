"""Timestamp conversion and day-bucketing strategies.

Each history source keeps its own bucketing rule. The live source buckets by
the UTC calendar day of a Unix-millisecond timestamp; imported Chrome files
bucket by the local calendar day of a 1601-epoch microsecond timestamp. The
two rules are not expected to agree, only to be deterministic per source.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone, tzinfo
from typing import Callable

# Seconds from 1601-01-01 to 1970-01-01 (Chrome/WebKit epoch).
CHROME_EPOCH_OFFSET = 11644473600

CHROME_EPOCH = datetime(1601, 1, 1, tzinfo=timezone.utc)


def chrome_time_to_datetime(chrome_time: int | float | None) -> datetime | None:
    """Convert microseconds since 1601-01-01 UTC to an aware UTC datetime."""
    if chrome_time is None or chrome_time <= 0:
        return None
    try:
        return CHROME_EPOCH + timedelta(microseconds=int(chrome_time))
    except (OverflowError, ValueError, TypeError):
        return None


def datetime_to_chrome_time(dt: datetime) -> int:
    delta = (dt if dt.tzinfo else dt.astimezone()) - CHROME_EPOCH
    return (delta.days * 86400 + delta.seconds) * 1_000_000 + delta.microseconds


def unix_ms_to_datetime(ms: int | float | None) -> datetime | None:
    if ms is None or ms <= 0:
        return None
    try:
        return datetime.fromtimestamp(float(ms) / 1000, tz=timezone.utc)
    except (OverflowError, OSError, ValueError, TypeError):
        return None


def datetime_to_unix_ms(dt: datetime) -> int:
    return int(dt.timestamp() * 1000)


def to_iso(dt: datetime) -> str:
    """UTC ISO 8601 with millisecond precision and a ``Z`` suffix.

    The fixed format keeps string comparison equal to time comparison.
    """
    return dt.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.") + f"{dt.microsecond // 1000:03d}Z"


@dataclass(frozen=True)
class DayBucketing:
    """A named rule mapping a source timestamp to a calendar day."""

    name: str
    to_datetime: Callable[[int | float | None], datetime | None]
    tz: tzinfo | None = None  # None means the machine's local zone

    def local_datetime(self, dt: datetime) -> datetime:
        return dt.astimezone(self.tz) if self.tz else dt.astimezone()

    def bucket(self, timestamp: int | float | None) -> tuple[str, datetime] | None:
        """Return ``(day, utc_datetime)`` for a source timestamp, or None."""
        dt = self.to_datetime(timestamp)
        if dt is None:
            return None
        day = self.local_datetime(dt).date().isoformat()
        return day, dt

    def day_of(self, dt: datetime) -> str:
        return self.local_datetime(dt).date().isoformat()


utc_day = DayBucketing("utc", unix_ms_to_datetime, tz=timezone.utc)
local_day = DayBucketing("local", chrome_time_to_datetime, tz=None)
