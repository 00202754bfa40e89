"""SQLite-backed cumulative domain/day table with an atomic merge-upsert."""

from __future__ import annotations

import logging
import sqlite3
import threading
from contextlib import contextmanager
from datetime import date, datetime, timedelta, timezone
from pathlib import Path

from browse_dashboard.exceptions import StoreError
from browse_dashboard.history.buckets import to_iso
from browse_dashboard.server.models import IngestRow, Summary

logger = logging.getLogger(__name__)

# Incoming visits replace the stored count: each batch is a device's full
# recomputed window, so adding would double count. last_seen keeps the later
# value and NULL never overwrites a known one. Timestamps share one fixed ISO
# format, so MAX() on text is MAX() on time.
_UPSERT_SQL = """
    INSERT INTO domain_daily (user_id, day, domain, visits, last_seen, updated_at)
    VALUES (?, ?, ?, ?, ?, ?)
    ON CONFLICT (user_id, day, domain) DO UPDATE SET
        visits = excluded.visits,
        last_seen = CASE
            WHEN domain_daily.last_seen IS NULL THEN excluded.last_seen
            WHEN excluded.last_seen IS NULL THEN domain_daily.last_seen
            ELSE MAX(domain_daily.last_seen, excluded.last_seen)
        END,
        updated_at = excluded.updated_at
"""


class DomainDailyStore:
    """Owns every write to the ``domain_daily`` table."""

    def __init__(self, db_path: Path | str) -> None:
        self.db_path = Path(db_path)
        self._lock = threading.Lock()
        self._init_db()

    @contextmanager
    def _connect(self):
        try:
            conn = sqlite3.connect(str(self.db_path), timeout=30)
        except sqlite3.Error as e:
            raise StoreError(f"Cannot open database {self.db_path}: {e}") from e
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _init_db(self) -> None:
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        with self._connect() as conn:
            conn.execute("PRAGMA journal_mode=WAL")
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS domain_daily (
                    user_id TEXT NOT NULL,
                    day TEXT NOT NULL,
                    domain TEXT NOT NULL,
                    visits INTEGER NOT NULL,
                    last_seen TEXT NULL,
                    updated_at TEXT NOT NULL,
                    PRIMARY KEY (user_id, day, domain)
                )
                """
            )
            conn.execute("CREATE INDEX IF NOT EXISTS idx_domain_daily_user_day ON domain_daily(user_id, day)")

    def upsert_batch(
        self,
        user_id: str,
        rows: list[IngestRow],
        now: datetime | None = None,
    ) -> int:
        """Merge ``rows`` into the table in one transaction; returns the row count.

        An empty batch performs no writes.
        """
        if not rows:
            return 0
        updated_at = to_iso(now or datetime.now(timezone.utc))
        params = [
            (
                user_id,
                row.day.isoformat(),
                row.domain,
                row.visits,
                to_iso(row.last_seen) if row.last_seen else None,
                updated_at,
            )
            for row in rows
        ]
        try:
            with self._lock, self._connect() as conn:
                conn.executemany(_UPSERT_SQL, params)
        except sqlite3.Error as e:
            raise StoreError(f"Upsert failed: {e}") from e

        logger.info("Upserted %d rows for user %s", len(rows), user_id[:8])
        return len(rows)

    def summary(self, user_id: str, days: int, today: date | None = None) -> Summary:
        """Rows with ``day >= today - days``, oldest first, and the latest update."""
        today = today or datetime.now(timezone.utc).date()
        since = (today - timedelta(days=days)).isoformat()
        try:
            with self._connect() as conn:
                rows = conn.execute(
                    """
                    SELECT day, domain, visits, updated_at
                    FROM domain_daily
                    WHERE user_id = ? AND day >= ?
                    ORDER BY day ASC, domain ASC
                    """,
                    (user_id, since),
                ).fetchall()
        except sqlite3.Error as e:
            raise StoreError(f"Summary query failed: {e}") from e

        last_sync = None
        for row in rows:
            if row["updated_at"] and (last_sync is None or row["updated_at"] > last_sync):
                last_sync = row["updated_at"]

        return Summary(
            days=days,
            last_sync=last_sync,
            domain_daily=[
                {"day": row["day"], "domain": row["domain"], "visits": int(row["visits"])}
                for row in rows
            ],
        )

    def get_row(self, user_id: str, day: str, domain: str) -> dict | None:
        with self._connect() as conn:
            row = conn.execute(
                """
                SELECT user_id, day, domain, visits, last_seen, updated_at
                FROM domain_daily
                WHERE user_id = ? AND day = ? AND domain = ?
                """,
                (user_id, day, domain),
            ).fetchone()
        return dict(row) if row else None

    def count(self, user_id: str | None = None) -> int:
        with self._connect() as conn:
            if user_id is None:
                row = conn.execute("SELECT COUNT(*) FROM domain_daily").fetchone()
            else:
                row = conn.execute(
                    "SELECT COUNT(*) FROM domain_daily WHERE user_id = ?", (user_id,)
                ).fetchone()
        return int(row[0])
