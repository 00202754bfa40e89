"""Fold raw visits into per-(domain, day) totals, plus dashboard rollups."""

from __future__ import annotations

import logging
from collections.abc import Iterable

from browse_dashboard.history.buckets import DayBucketing, to_iso
from browse_dashboard.history.domain import extract_domain, is_excluded_domain, is_excluded_url
from browse_dashboard.history.models import AggregateEntry, NormalizedVisit, RawVisit

logger = logging.getLogger(__name__)


def aggregate(
    visits: Iterable[RawVisit],
    bucket: DayBucketing,
    excluded_domains: list[str] | None = None,
) -> list[AggregateEntry]:
    """Aggregate raw visits into one entry per (domain, day).

    Every contributing row adds ``max(1, visit_count)``. The longest title
    wins, and on equal length the first one seen is kept. ``last_seen`` is
    the latest timestamp for the key. Rows with excluded schemes, no domain
    or an unusable timestamp are skipped.
    """
    entries: dict[tuple[str, str], AggregateEntry] = {}
    skipped = 0

    for visit in visits:
        if is_excluded_url(visit.url):
            skipped += 1
            continue
        domain = extract_domain(visit.url)
        if not domain or is_excluded_domain(domain, excluded_domains):
            skipped += 1
            continue
        bucketed = bucket.bucket(visit.last_visit_time)
        if bucketed is None:
            skipped += 1
            continue
        day, seen_at = bucketed

        entry = entries.get((domain, day))
        if entry is None:
            entry = AggregateEntry(domain=domain, day=day)
            entries[(domain, day)] = entry
        _fold(entry, visit, to_iso(seen_at))

    if skipped:
        logger.debug("Skipped %d history rows during aggregation (%s buckets)", skipped, bucket.name)
    return list(entries.values())


def _fold(entry: AggregateEntry, visit: RawVisit, seen_at: str) -> None:
    entry.visits += max(1, _as_count(visit.visit_count))
    title = (visit.title or "").strip()
    if len(title) > len(entry.title):
        entry.title = title
    if entry.last_seen is None or seen_at > entry.last_seen:
        entry.last_seen = seen_at


def _as_count(value) -> int:
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        return 0


def merge_entries(*batches: Iterable[AggregateEntry]) -> list[AggregateEntry]:
    """Combine aggregates from several runs or profiles with the same fold."""
    merged: dict[tuple[str, str], AggregateEntry] = {}
    for batch in batches:
        for entry in batch:
            current = merged.get(entry.key)
            if current is None:
                merged[entry.key] = AggregateEntry(
                    domain=entry.domain,
                    day=entry.day,
                    visits=entry.visits,
                    title=entry.title,
                    last_seen=entry.last_seen,
                )
                continue
            current.visits += entry.visits
            if len(entry.title) > len(current.title):
                current.title = entry.title
            if entry.last_seen and (current.last_seen is None or entry.last_seen > current.last_seen):
                current.last_seen = entry.last_seen
    return list(merged.values())


def entries_to_visits(entries: Iterable[AggregateEntry]) -> list[NormalizedVisit]:
    return [
        NormalizedVisit(
            domain=e.domain,
            date=e.day,
            visits=e.visits,
            title=e.title or e.domain,
        )
        for e in entries
    ]


def summary_to_visits(domain_daily: Iterable[dict]) -> list[NormalizedVisit]:
    """Project server summary rows; the server keeps no titles."""
    return [
        NormalizedVisit(
            domain=row["domain"],
            date=row["day"],
            visits=int(row["visits"]),
            title=row["domain"],
        )
        for row in domain_daily
    ]


def top_domains(visits: Iterable[NormalizedVisit]) -> list[dict]:
    totals: dict[str, int] = {}
    for v in visits:
        totals[v.domain] = totals.get(v.domain, 0) + v.visits
    ranked = [{"domain": d, "visits": n} for d, n in totals.items()]
    ranked.sort(key=lambda r: (-r["visits"], r["domain"]))
    return ranked


def daily_totals(visits: Iterable[NormalizedVisit]) -> list[dict]:
    totals: dict[str, int] = {}
    for v in visits:
        totals[v.date] = totals.get(v.date, 0) + v.visits
    return [{"date": d, "visits": totals[d]} for d in sorted(totals)]
