"""Device-side collection runs and their periodic scheduler."""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Protocol

from browse_dashboard.config import DEFAULT_WINDOW_DAYS, SYNC_INTERVAL_MINUTES
from browse_dashboard.exceptions import (
    BrowseDashboardError,
    CollectionInProgressError,
    SnapshotError,
    SyncError,
)
from browse_dashboard.history.aggregator import aggregate, entries_to_visits
from browse_dashboard.history.buckets import utc_day
from browse_dashboard.history.models import RawVisit
from browse_dashboard.history.window import clamp_days, filter_raw_visits
from browse_dashboard.snapshot.store import SnapshotStore
from browse_dashboard.sync.client import SyncClient

logger = logging.getLogger(__name__)


class LiveSource(Protocol):
    def fetch_visits(self, days: int = 30, now: datetime | None = None) -> list[RawVisit]:
        ...


@dataclass
class CollectionResult:
    entries: int
    urls: int
    sync_time: int  # Unix ms
    upserted: int | None = None  # None when no server is configured


@dataclass
class CollectorStatus:
    last_sync: int | None = None
    total_urls: int = 0
    last_server_sync: int | None = None
    last_server_error: str | None = None
    last_error: str | None = None
    last_error_at: int | None = None


def _now_ms() -> int:
    return int(time.time() * 1000)


class HistoryCollector:
    """One collection run at a time: read, aggregate, snapshot, push.

    A second ``collect`` while one is in flight raises
    ``CollectionInProgressError`` instead of racing on the snapshot or the
    server batch.
    """

    def __init__(
        self,
        source: LiveSource,
        snapshot_store: SnapshotStore | None = None,
        client: SyncClient | None = None,
        device_id: str | None = None,
    ):
        self.source = source
        self.snapshot_store = snapshot_store
        self.client = client
        self.device_id = device_id
        self.status = CollectorStatus()
        self._lock = threading.Lock()

    @property
    def running(self) -> bool:
        return self._lock.locked()

    def collect(self, days: int = DEFAULT_WINDOW_DAYS, now: datetime | None = None) -> CollectionResult:
        if not self._lock.acquire(blocking=False):
            raise CollectionInProgressError("A collection run is already in progress")
        try:
            return self._collect(clamp_days(days), now or datetime.now(timezone.utc))
        except BrowseDashboardError as e:
            self.status.last_error = str(e)
            self.status.last_error_at = _now_ms()
            raise
        finally:
            self._lock.release()

    def _collect(self, days: int, now: datetime) -> CollectionResult:
        raw = filter_raw_visits(self.source.fetch_visits(days, now=now), days, utc_day, now=now)
        entries = aggregate(raw, utc_day)
        sync_time = _now_ms()
        self.status.last_sync = sync_time
        self.status.total_urls = len(raw)
        logger.info("Collected %d domain-day entries from %d URLs", len(entries), len(raw))

        if self.snapshot_store is not None:
            try:
                self.snapshot_store.save("extension", entries_to_visits(entries), sync_time)
            except SnapshotError as e:
                logger.warning("Snapshot write failed: %s", e)

        upserted = None
        if self.client is not None:
            try:
                upserted = self.client.push(entries, window_days=days, device_id=self.device_id)
            except SyncError as e:
                self.status.last_server_error = str(e)
                logger.warning("Server sync failed: %s", e)
                raise
            self.status.last_server_sync = _now_ms()
            self.status.last_server_error = None

        self.status.last_error = None
        return CollectionResult(
            entries=len(entries),
            urls=len(raw),
            sync_time=sync_time,
            upserted=upserted,
        )


class CollectionScheduler:
    """Run a collector now and then every ``interval_minutes`` on a daemon thread.

    A failed run is logged and recorded on the collector's status; the next
    run proceeds on schedule.
    """

    def __init__(
        self,
        collector: HistoryCollector,
        interval_minutes: float = SYNC_INTERVAL_MINUTES,
        days: int = DEFAULT_WINDOW_DAYS,
    ):
        self.collector = collector
        self.interval_seconds = max(1.0, interval_minutes * 60)
        self.days = days
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    def run_once(self) -> CollectionResult | None:
        try:
            return self.collector.collect(self.days)
        except CollectionInProgressError:
            logger.info("Skipping scheduled collection: previous run still in progress")
        except BrowseDashboardError as e:
            logger.warning("Scheduled collection failed: %s", e)
        except Exception:
            logger.exception("Scheduled collection crashed")
        return None

    def _loop(self) -> None:
        while not self._stop.is_set():
            self.run_once()
            self._stop.wait(self.interval_seconds)

    def start(self) -> None:
        if self._thread and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._loop, name="history-collector", daemon=True)
        self._thread.start()

    def stop(self, timeout: float | None = 5.0) -> None:
        self._stop.set()
        if self._thread:
            self._thread.join(timeout)
            self._thread = None
