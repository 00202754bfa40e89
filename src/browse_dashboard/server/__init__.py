"""Sync server: merge-upsert ingest and windowed summary."""

from browse_dashboard.server.app import create_app
from browse_dashboard.server.models import IngestBatch, IngestRow, Summary
from browse_dashboard.server.store import DomainDailyStore
from browse_dashboard.server.validation import validate_ingest_payload

__all__ = [
    "create_app",
    "IngestBatch",
    "IngestRow",
    "Summary",
    "DomainDailyStore",
    "validate_ingest_payload",
]
