"""Trailing N-day window over aggregates and raw rows."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime, timedelta, timezone
from typing import TypeVar

from browse_dashboard.config import DEFAULT_WINDOW_DAYS, MAX_WINDOW_DAYS, MIN_WINDOW_DAYS
from browse_dashboard.history.buckets import DayBucketing, utc_day
from browse_dashboard.history.models import AggregateEntry, NormalizedVisit, RawVisit

T = TypeVar("T", AggregateEntry, NormalizedVisit)


def clamp_days(days, default: int = DEFAULT_WINDOW_DAYS) -> int:
    """Coerce a window size into 1..365; unusable input falls back to ``default``."""
    if days is None or isinstance(days, bool) or days == "":
        return default
    try:
        value = int(float(days))
    except (TypeError, ValueError, OverflowError):
        return default
    return max(MIN_WINDOW_DAYS, min(value, MAX_WINDOW_DAYS))


def _aware(now: datetime | None) -> datetime:
    if now is None:
        return datetime.now(timezone.utc)
    return now if now.tzinfo else now.astimezone()


def window_bounds(
    days: int,
    now: datetime | None = None,
    bucket: DayBucketing = utc_day,
) -> tuple[str, str]:
    """Return the first and last day bucket (inclusive) of the window."""
    days = clamp_days(days)
    now = _aware(now)
    return bucket.day_of(now - timedelta(days=days)), bucket.day_of(now)


def _day_of(item: AggregateEntry | NormalizedVisit) -> str:
    return item.day if isinstance(item, AggregateEntry) else item.date


def filter_window(
    items: Iterable[T],
    days: int,
    now: datetime | None = None,
    bucket: DayBucketing = utc_day,
) -> list[T]:
    """Keep items whose day lies in ``[now - days, now]``, both ends inclusive."""
    first, last = window_bounds(days, now, bucket)
    return [item for item in items if first <= _day_of(item) <= last]


def filter_raw_visits(
    visits: Iterable[RawVisit],
    days: int,
    bucket: DayBucketing,
    now: datetime | None = None,
) -> list[RawVisit]:
    """Pre-aggregation filter on exact timestamps: keep ``cutoff <= t <= now``."""
    days = clamp_days(days)
    now = _aware(now)
    cutoff = now - timedelta(days=days)
    kept = []
    for visit in visits:
        dt = bucket.to_datetime(visit.last_visit_time)
        if dt is not None and cutoff <= dt <= now:
            kept.append(visit)
    return kept
