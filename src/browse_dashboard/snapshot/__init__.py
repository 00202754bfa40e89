"""Local snapshot of the last computed visits, for offline reuse."""

from browse_dashboard.snapshot.store import Snapshot, SnapshotStore

__all__ = ["Snapshot", "SnapshotStore"]
