"""Data models for the sync server."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime


@dataclass
class IngestRow:
    """One validated row of an ingest batch."""

    day: date
    domain: str
    visits: int
    last_seen: datetime | None = None  # aware, UTC


@dataclass
class IngestBatch:
    """A validated ingest payload; ``rows`` commit together or not at all."""

    rows: list[IngestRow]
    device_id: str | None = None
    window_days: int | None = None
    generated_at: int | None = None  # Unix ms, client clock


@dataclass
class Summary:
    """Windowed read of one identity's merged table."""

    days: int
    last_sync: str | None  # ISO 8601
    domain_daily: list[dict] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "days": self.days,
            "lastSync": self.last_sync,
            "domainDaily": self.domain_daily,
        }
