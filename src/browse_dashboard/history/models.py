"""Data models for the history pipeline."""

from __future__ import annotations

from dataclasses import asdict, dataclass


@dataclass
class RawVisit:
    """One history row as read from a source, before aggregation.

    ``last_visit_time`` keeps the source's own unit: Unix milliseconds for the
    live source, microseconds since 1601-01-01 UTC for imported files.
    """

    url: str
    title: str
    visit_count: int
    last_visit_time: int | float


@dataclass
class AggregateEntry:
    """Canonical per-(domain, day) visit total."""

    domain: str
    day: str  # YYYY-MM-DD
    visits: int = 0
    title: str = ""
    last_seen: str | None = None  # ISO 8601, UTC

    @property
    def key(self) -> tuple[str, str]:
        return (self.domain, self.day)


@dataclass
class NormalizedVisit:
    """Display-facing row; derived per window, never the source of truth."""

    domain: str
    date: str  # YYYY-MM-DD
    visits: int
    title: str = ""
    url: str = ""

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> NormalizedVisit:
        return cls(
            domain=str(data.get("domain") or ""),
            date=str(data.get("date") or ""),
            visits=int(data.get("visits") or 0),
            title=str(data.get("title") or ""),
            url=str(data.get("url") or ""),
        )
