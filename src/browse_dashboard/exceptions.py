"""Unified exception hierarchy for browse-dashboard."""


class BrowseDashboardError(Exception):
    """Base exception for all browse-dashboard errors."""


# History sources
class HistoryError(BrowseDashboardError):
    """Base exception for browser history operations."""


class HistoryImportError(HistoryError):
    """An imported history file does not have the expected structure."""


class SourceUnavailableError(HistoryError):
    """A history source cannot be reached; callers fall back to the next one."""


# Local snapshot
class SnapshotError(BrowseDashboardError):
    """Failed to read or write the local snapshot."""


# Sync client
class SyncError(BrowseDashboardError):
    """Failed to talk to the sync server."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class CollectionInProgressError(SyncError):
    """A collection run is already in flight on this device."""


# Server ingest
class IngestError(BrowseDashboardError):
    """Base exception for rejected ingest or summary requests."""

    status_code = 400


class AuthenticationError(IngestError):
    """Missing or malformed bearer token."""

    status_code = 401


class IngestValidationError(IngestError):
    """Payload or row failed structural validation."""

    status_code = 400


class BatchTooLargeError(IngestError):
    """Batch exceeds the row cap."""

    status_code = 413


# Server storage
class StoreError(BrowseDashboardError):
    """Database failure in the domain/day store."""
