"""Versioned on-disk snapshot of the last computed visit list."""

from __future__ import annotations

import json
import logging
import os
import tempfile
import time
from dataclasses import dataclass, field
from pathlib import Path

from browse_dashboard.exceptions import SnapshotError
from browse_dashboard.history.models import NormalizedVisit

logger = logging.getLogger(__name__)

SNAPSHOT_VERSION = 1
SNAPSHOT_SOURCES = {"file", "extension", "cache"}


@dataclass
class Snapshot:
    source: str  # "file" | "extension" | "cache"
    visits: list[NormalizedVisit] = field(default_factory=list)
    last_sync: int | None = None  # Unix ms
    saved_at: int = 0  # Unix ms
    ext_id: str | None = None
    version: int = SNAPSHOT_VERSION

    def to_dict(self) -> dict:
        data = {
            "version": self.version,
            "savedAt": self.saved_at,
            "source": self.source,
            "visits": [v.to_dict() for v in self.visits],
            "lastSync": self.last_sync,
        }
        if self.ext_id:
            data["extId"] = self.ext_id
        return data


class SnapshotStore:
    """Single-document JSON store; unknown versions are discarded on load."""

    def __init__(self, path: Path | str):
        self.path = Path(path)

    def load(self) -> Snapshot | None:
        if not self.path.exists():
            return None
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning("Discarding unreadable snapshot %s: %s", self.path, e)
            return None

        if not isinstance(data, dict) or data.get("version") != SNAPSHOT_VERSION:
            logger.warning("Discarding snapshot with unsupported version: %r",
                           data.get("version") if isinstance(data, dict) else None)
            return None
        source = data.get("source")
        if source not in SNAPSHOT_SOURCES:
            logger.warning("Discarding snapshot with unknown source: %r", source)
            return None

        try:
            return Snapshot(
                source=source,
                visits=[NormalizedVisit.from_dict(v) for v in data.get("visits") or [] if isinstance(v, dict)],
                last_sync=data.get("lastSync"),
                saved_at=int(data.get("savedAt") or 0),
                ext_id=data.get("extId"),
            )
        except (TypeError, ValueError, OverflowError) as e:
            logger.warning("Discarding malformed snapshot %s: %s", self.path, e)
            return None

    def save(
        self,
        source: str,
        visits: list[NormalizedVisit],
        last_sync: int | None,
        ext_id: str | None = None,
    ) -> Snapshot:
        if source not in SNAPSHOT_SOURCES:
            raise SnapshotError(f"Unknown snapshot source: {source}")
        snapshot = Snapshot(
            source=source,
            visits=list(visits),
            last_sync=last_sync,
            saved_at=int(time.time() * 1000),
            ext_id=ext_id,
        )
        payload = json.dumps(snapshot.to_dict())
        tmp_name = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(prefix=".snapshot-", suffix=".json", dir=self.path.parent)
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(payload)
            os.replace(tmp_name, self.path)
        except OSError as e:
            if tmp_name is not None:
                Path(tmp_name).unlink(missing_ok=True)
            raise SnapshotError(f"Failed to write snapshot {self.path}: {e}") from e
        return snapshot

    def clear(self) -> None:
        try:
            self.path.unlink(missing_ok=True)
        except OSError as e:
            raise SnapshotError(f"Failed to remove snapshot {self.path}: {e}") from e
