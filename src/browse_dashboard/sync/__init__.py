"""Device-side sync: collection runs, the HTTP client and source fallback."""

from browse_dashboard.sync.client import SyncClient, build_payload
from browse_dashboard.sync.collector import CollectionScheduler, HistoryCollector
from browse_dashboard.sync.sources import ResolvedHistory, SourceProbe, default_probes, resolve_history

__all__ = [
    "SyncClient",
    "build_payload",
    "CollectionScheduler",
    "HistoryCollector",
    "ResolvedHistory",
    "SourceProbe",
    "default_probes",
    "resolve_history",
]
