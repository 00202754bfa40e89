"""Browser history normalization and per-domain, per-day aggregation."""

from browse_dashboard.history.aggregator import aggregate, daily_totals, top_domains
from browse_dashboard.history.buckets import DayBucketing, local_day, utc_day
from browse_dashboard.history.chrome import ChromeHistoryFile, ChromeProfileReader, import_history_file
from browse_dashboard.history.domain import extract_domain
from browse_dashboard.history.models import AggregateEntry, NormalizedVisit, RawVisit
from browse_dashboard.history.window import clamp_days, filter_window

__all__ = [
    "aggregate",
    "daily_totals",
    "top_domains",
    "DayBucketing",
    "local_day",
    "utc_day",
    "ChromeHistoryFile",
    "ChromeProfileReader",
    "import_history_file",
    "extract_domain",
    "AggregateEntry",
    "NormalizedVisit",
    "RawVisit",
    "clamp_days",
    "filter_window",
]
