"""Chrome history sources: an uploaded History file and the live local profiles."""

from __future__ import annotations

import logging
import shutil
import sqlite3
import sys
import tempfile
from datetime import datetime, timedelta, timezone
from pathlib import Path

from browse_dashboard.config import FILE_IMPORT_WINDOW_DAYS
from browse_dashboard.exceptions import HistoryImportError, SourceUnavailableError
from browse_dashboard.history.aggregator import aggregate, entries_to_visits, merge_entries
from browse_dashboard.history.buckets import (
    CHROME_EPOCH_OFFSET,
    datetime_to_chrome_time,
    local_day,
    utc_day,
)
from browse_dashboard.history.models import AggregateEntry, NormalizedVisit, RawVisit
from browse_dashboard.history.window import clamp_days, filter_raw_visits

logger = logging.getLogger(__name__)

_URLS_QUERY = """
    SELECT
        COALESCE(url, '') AS url,
        COALESCE(title, '') AS title,
        COALESCE(visit_count, 0) AS visit_count,
        COALESCE(typed_count, 0) AS typed_count,
        COALESCE(last_visit_time, 0) AS last_visit_time
    FROM urls
"""


def default_chrome_base_path() -> Path:
    """Chrome's user data directory for the current platform."""
    home = Path.home()
    if sys.platform == "darwin":
        return home / "Library" / "Application Support" / "Google" / "Chrome"
    if sys.platform.startswith("win"):
        return home / "AppData" / "Local" / "Google" / "Chrome" / "User Data"
    return home / ".config" / "google-chrome"


def _as_int(value) -> int:
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        return 0


class ChromeHistoryFile:
    """Read the ``urls`` table of an exported Chrome ``History`` database.

    Timestamps stay in Chrome's native unit (microseconds since 1601-01-01
    UTC); use :func:`import_history_file` to normalize them.
    """

    def __init__(self, path: Path | str):
        self.path = Path(path)

    def _connect(self) -> sqlite3.Connection:
        if not self.path.exists():
            raise HistoryImportError(f"History file not found at {self.path}.")
        try:
            conn = sqlite3.connect(f"file:{self.path}?mode=ro", uri=True)
            conn.row_factory = sqlite3.Row
            return conn
        except sqlite3.Error as e:
            raise HistoryImportError(f"Cannot open history file: {e}") from e

    def read_rows(self) -> list[RawVisit]:
        """Return every row of ``urls``; a file without that table is rejected."""
        conn = self._connect()
        try:
            rows = conn.execute(_URLS_QUERY).fetchall()
        except sqlite3.DatabaseError as e:
            raise HistoryImportError(
                f"Not a Chrome History file ({self.path.name}): {e}"
            ) from e
        finally:
            conn.close()

        if not rows:
            raise HistoryImportError("No rows. Is this a Chrome History file?")

        return [
            RawVisit(
                url=str(row["url"]),
                title=str(row["title"]),
                visit_count=_as_int(row["visit_count"]),
                last_visit_time=_as_int(row["last_visit_time"]),
            )
            for row in rows
        ]


def import_history_file(
    path: Path | str,
    now: datetime | None = None,
    days: int = FILE_IMPORT_WINDOW_DAYS,
) -> list[NormalizedVisit]:
    """Import a History file into display rows, bucketed by local day.

    The window is measured from ``now`` (the import time).
    """
    rows = ChromeHistoryFile(path).read_rows()
    recent = filter_raw_visits(rows, days, local_day, now=now)
    entries = aggregate(recent, local_day)
    logger.info(
        "Imported %d of %d history rows into %d domain-day entries",
        len(recent), len(rows), len(entries),
    )
    return entries_to_visits(entries)


class ChromeProfileReader:
    """Live source: query every local Chrome profile's History database.

    Chrome keeps ``History`` locked while running, so each profile is read
    from a temporary copy. Returned rows carry Unix-millisecond timestamps.
    """

    def __init__(self, base_path: Path | None = None):
        self.base_path = base_path or default_chrome_base_path()
        self.last_errors: dict[str, str] = {}

    def history_paths(self) -> list[Path]:
        if not self.base_path.exists():
            return []

        paths = []
        for child in self.base_path.iterdir():
            if not child.is_dir():
                continue
            if child.name in {"System Profile", "Guest Profile"}:
                continue
            history = child / "History"
            if history.exists():
                paths.append(history)

        paths.sort()
        return paths

    def fetch_visits(self, days: int = 30, now: datetime | None = None) -> list[RawVisit]:
        """Rows visited within the last ``days`` across all profiles."""
        return [visit for rows in self.fetch_by_profile(days, now=now).values() for visit in rows]

    def fetch_by_profile(self, days: int = 30, now: datetime | None = None) -> dict[str, list[RawVisit]]:
        """Rows visited within the last ``days``, keyed by profile directory name."""
        history_paths = self.history_paths()
        if not history_paths:
            raise SourceUnavailableError(
                f"No Chrome history found under {self.base_path}"
            )

        now = now or datetime.now(timezone.utc)
        since = datetime_to_chrome_time(now - timedelta(days=clamp_days(days)))
        self.last_errors = {}
        by_profile: dict[str, list[RawVisit]] = {}

        for history_path in history_paths:
            profile = history_path.parent.name
            try:
                by_profile[profile] = self._fetch_profile(history_path, since)
            except SourceUnavailableError as e:
                self.last_errors[profile] = str(e)
                logger.warning("Chrome profile %s skipped: %s", profile, e)

        if not by_profile and self.last_errors:
            raise SourceUnavailableError(
                "; ".join(f"{p}: {err}" for p, err in self.last_errors.items())
            )
        return by_profile

    def fetch_entries(self, days: int = 30, now: datetime | None = None) -> list[AggregateEntry]:
        """Per-profile aggregates folded into one set of domain-day entries."""
        profiles = self.fetch_by_profile(days, now=now)
        return merge_entries(*(aggregate(rows, utc_day) for rows in profiles.values()))

    def _fetch_profile(self, history_path: Path, since: int) -> list[RawVisit]:
        db_copy = self._copy_db(history_path)
        conn: sqlite3.Connection | None = None
        try:
            conn = sqlite3.connect(str(db_copy))
            conn.row_factory = sqlite3.Row
            rows = conn.execute(
                _URLS_QUERY + " WHERE last_visit_time >= ?",
                (since,),
            ).fetchall()
        except sqlite3.Error as e:
            raise SourceUnavailableError(f"Failed querying {history_path}: {e}") from e
        finally:
            if conn is not None:
                conn.close()
            db_copy.unlink(missing_ok=True)

        return [
            RawVisit(
                url=str(row["url"]),
                title=str(row["title"]),
                visit_count=_as_int(row["visit_count"]),
                last_visit_time=self._chrome_ts_to_unix_ms(row["last_visit_time"]),
            )
            for row in rows
        ]

    @staticmethod
    def _copy_db(path: Path) -> Path:
        try:
            with tempfile.NamedTemporaryFile(prefix="chrome-history-", suffix=".db", delete=False) as tmp:
                tmp_path = Path(tmp.name)
            shutil.copy2(path, tmp_path)
            return tmp_path
        except OSError as e:
            raise SourceUnavailableError(f"Failed to copy {path}: {e}") from e

    @staticmethod
    def _chrome_ts_to_unix_ms(ts: int | None) -> int:
        if not ts:
            return 0
        return int(ts) // 1000 - CHROME_EPOCH_OFFSET * 1000
