"""Priority-ordered history source resolution with bounded probe timeouts.

The dashboard tries, in order: the server summary for a sync key, the live
local browser history, and the last saved snapshot. The first probe that
answers with data wins; if none do, the result is the empty state.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeoutError
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable

import dateutil.parser as parser

from browse_dashboard.config import DEFAULT_WINDOW_DAYS, PROBE_TIMEOUT_SECONDS
from browse_dashboard.exceptions import BrowseDashboardError, SnapshotError
from browse_dashboard.history.aggregator import aggregate, entries_to_visits, summary_to_visits
from browse_dashboard.history.buckets import utc_day
from browse_dashboard.history.chrome import import_history_file
from browse_dashboard.history.models import NormalizedVisit
from browse_dashboard.history.window import clamp_days, filter_window
from browse_dashboard.snapshot.store import SnapshotStore
from browse_dashboard.sync.client import SyncClient
from browse_dashboard.sync.collector import LiveSource

logger = logging.getLogger(__name__)


@dataclass
class ResolvedHistory:
    source: str  # "server" | "extension" | "cache" | "file" | "none"
    visits: list[NormalizedVisit] = field(default_factory=list)
    last_sync: int | None = None  # Unix ms
    saved_at: int | None = None

    def windowed(self, days: int, now: datetime | None = None) -> list[NormalizedVisit]:
        """Visits within the display window; file imports are already windowed."""
        if self.source == "file":
            return list(self.visits)
        return filter_window(self.visits, days, now=now)


EMPTY = "none"


@dataclass
class SourceProbe:
    """A named loader with a timeout.

    ``keep`` runs on the calling thread, and only for the probe that wins;
    a probe abandoned after its timeout never persists anything.
    """

    name: str
    load: Callable[[], ResolvedHistory | None]
    timeout: float = PROBE_TIMEOUT_SECONDS
    keep: Callable[[ResolvedHistory], None] | None = None


def run_probe(probe: SourceProbe) -> ResolvedHistory | None:
    """Run one probe on a worker thread; None if it fails, times out or is empty."""
    pool = ThreadPoolExecutor(max_workers=1, thread_name_prefix=f"probe-{probe.name}")
    try:
        future = pool.submit(probe.load)
        result = future.result(timeout=probe.timeout)
    except FuturesTimeoutError:
        logger.warning("History source %s timed out after %.1fs", probe.name, probe.timeout)
        return None
    except BrowseDashboardError as e:
        logger.warning("History source %s unavailable: %s", probe.name, e)
        return None
    finally:
        pool.shutdown(wait=False, cancel_futures=True)

    if result is None or not result.visits:
        logger.info("History source %s returned no data", probe.name)
        return None
    return result


def resolve_history(probes: list[SourceProbe]) -> ResolvedHistory:
    for probe in probes:
        result = run_probe(probe)
        if result is not None:
            logger.info("Loaded %d visits from %s", len(result.visits), probe.name)
            if probe.keep is not None:
                probe.keep(result)
            return result
    return ResolvedHistory(source=EMPTY)


def _iso_to_ms(value: str | None) -> int | None:
    if not value:
        return None
    try:
        return int(parser.isoparse(value).timestamp() * 1000)
    except (ValueError, OverflowError):
        return None


def _save(store: SnapshotStore | None, source: str, result: ResolvedHistory) -> None:
    if store is None:
        return
    try:
        store.save(source, result.visits, result.last_sync)
    except SnapshotError as e:
        logger.warning("Snapshot write failed: %s", e)


def server_probe(
    client: SyncClient,
    days: int,
    snapshot_store: SnapshotStore | None = None,
    timeout: float = PROBE_TIMEOUT_SECONDS,
) -> SourceProbe:
    def load() -> ResolvedHistory:
        summary = client.fetch_summary(days)
        return ResolvedHistory(
            source="server",
            visits=summary_to_visits(summary.domain_daily),
            last_sync=_iso_to_ms(summary.last_sync),
        )

    def keep(result: ResolvedHistory) -> None:
        _save(snapshot_store, "cache", result)

    return SourceProbe("server", load, timeout, keep)


def live_probe(
    source: LiveSource,
    days: int,
    snapshot_store: SnapshotStore | None = None,
    timeout: float = PROBE_TIMEOUT_SECONDS,
) -> SourceProbe:
    def load() -> ResolvedHistory:
        entries = aggregate(source.fetch_visits(days), utc_day)
        return ResolvedHistory(
            source="extension",
            visits=entries_to_visits(entries),
            last_sync=int(datetime.now().timestamp() * 1000),
        )

    def keep(result: ResolvedHistory) -> None:
        _save(snapshot_store, "extension", result)

    return SourceProbe("extension", load, timeout, keep)


def snapshot_probe(snapshot_store: SnapshotStore, timeout: float = PROBE_TIMEOUT_SECONDS) -> SourceProbe:
    def load() -> ResolvedHistory | None:
        snapshot = snapshot_store.load()
        if snapshot is None:
            return None
        # A snapshot written from a file import still holds a windowed list.
        return ResolvedHistory(
            source="file" if snapshot.source == "file" else "cache",
            visits=snapshot.visits,
            last_sync=snapshot.last_sync,
            saved_at=snapshot.saved_at,
        )

    return SourceProbe("cache", load, timeout)


def default_probes(
    client: SyncClient | None = None,
    live_source: LiveSource | None = None,
    snapshot_store: SnapshotStore | None = None,
    days: int = DEFAULT_WINDOW_DAYS,
    timeout: float = PROBE_TIMEOUT_SECONDS,
) -> list[SourceProbe]:
    """Fixed fallback order: server summary, live history, local snapshot."""
    days = clamp_days(days)
    probes = []
    if client is not None:
        probes.append(server_probe(client, days, snapshot_store, timeout))
    if live_source is not None:
        probes.append(live_probe(live_source, days, snapshot_store, timeout))
    if snapshot_store is not None:
        probes.append(snapshot_probe(snapshot_store, timeout))
    return probes


def load_history_file(
    path,
    snapshot_store: SnapshotStore | None = None,
    now: datetime | None = None,
) -> ResolvedHistory:
    """Import an uploaded History file and keep it as the current snapshot.

    Raises ``HistoryImportError`` when the file is not a Chrome History file.
    """
    visits = import_history_file(path, now=now)
    result = ResolvedHistory(
        source="file",
        visits=visits,
        last_sync=int((now or datetime.now()).timestamp() * 1000),
    )
    _save(snapshot_store, "file", result)
    return result
