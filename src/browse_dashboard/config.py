"""Environment-driven settings shared by the client and server sides."""

from __future__ import annotations

import os
from pathlib import Path

DATA_DIR = Path(os.environ.get("BROWSE_DASHBOARD_DATA_DIR", str(Path.home() / ".browse-dashboard"))).expanduser()

DB_PATH = Path(os.environ.get("BROWSE_DASHBOARD_DB_PATH", str(DATA_DIR / "domain_daily.sqlite3"))).expanduser()
SNAPSHOT_PATH = Path(os.environ.get("BROWSE_DASHBOARD_SNAPSHOT_PATH", str(DATA_DIR / "snapshot.json"))).expanduser()
API_BASE = os.environ.get("BROWSE_DASHBOARD_API_BASE", "http://127.0.0.1:5000").rstrip("/")

SYNC_INTERVAL_MINUTES = int(os.environ.get("BROWSE_DASHBOARD_SYNC_INTERVAL_MINUTES", "360"))
PROBE_TIMEOUT_SECONDS = float(os.environ.get("BROWSE_DASHBOARD_PROBE_TIMEOUT", "2.0"))
HTTP_TIMEOUT_SECONDS = float(os.environ.get("BROWSE_DASHBOARD_HTTP_TIMEOUT", "10.0"))

# Ingest bounds the size of one upsert transaction.
MAX_INGEST_ROWS = 20000

DEFAULT_WINDOW_DAYS = 30
MIN_WINDOW_DAYS = 1
MAX_WINDOW_DAYS = 365
# File imports keep a year so the display window can change without re-importing.
FILE_IMPORT_WINDOW_DAYS = 365


def parse_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}
