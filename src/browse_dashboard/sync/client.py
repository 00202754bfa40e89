"""HTTP client for the sync server's ingest and summary endpoints."""

from __future__ import annotations

import logging
import time

import httpx

from browse_dashboard.config import API_BASE, HTTP_TIMEOUT_SECONDS
from browse_dashboard.exceptions import SyncError
from browse_dashboard.history.models import AggregateEntry
from browse_dashboard.server.models import Summary

logger = logging.getLogger(__name__)


def build_payload(
    entries: list[AggregateEntry],
    window_days: int | None = None,
    device_id: str | None = None,
    generated_at: int | None = None,
) -> dict:
    """Wire form of an aggregate run, as accepted by ``/api/sync/ingest``."""
    rows = []
    for e in entries:
        row = {"day": e.day, "domain": e.domain, "visits": e.visits}
        if e.last_seen:
            row["lastSeen"] = e.last_seen
        rows.append(row)
    payload: dict = {
        "generatedAt": generated_at if generated_at is not None else int(time.time() * 1000),
        "rows": rows,
    }
    if device_id:
        payload["deviceId"] = device_id
    if window_days is not None:
        payload["windowDays"] = window_days
    return payload


class SyncClient:
    """Bearer-authenticated client for one sync key.

    Args:
        sync_key: Shared secret; the server derives the identity from it.
        api_base: Server origin, e.g. ``https://dashboard.example.com``.
        timeout: Per-request timeout in seconds.
        transport: Optional httpx transport (tests use ``httpx.MockTransport``).
    """

    def __init__(
        self,
        sync_key: str,
        api_base: str = API_BASE,
        timeout: float = HTTP_TIMEOUT_SECONDS,
        transport: httpx.BaseTransport | None = None,
    ):
        if not sync_key:
            raise SyncError("Sync key is required.")
        self.sync_key = sync_key
        self.api_base = api_base.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.Client:
        return httpx.Client(
            base_url=self.api_base,
            timeout=self.timeout,
            transport=self._transport,
            headers={"Authorization": f"Bearer {self.sync_key}"},
        )

    def _request(self, method: str, path: str, **kwargs) -> dict:
        try:
            with self._client() as client:
                response = client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            raise SyncError(f"{method} {path} failed: {e}") from e

        if response.status_code >= 400:
            detail = ""
            try:
                body = response.json()
                if isinstance(body, dict):
                    detail = body.get("detail") or body.get("error") or ""
            except ValueError:
                detail = response.text[:200]
            raise SyncError(
                f"{method} {path} failed ({response.status_code}): {detail}".rstrip(": "),
                status_code=response.status_code,
            )
        try:
            data = response.json()
        except ValueError as e:
            raise SyncError(f"{method} {path} returned invalid JSON") from e
        if not isinstance(data, dict):
            raise SyncError(f"{method} {path} returned unexpected body")
        return data

    def push(
        self,
        entries: list[AggregateEntry],
        window_days: int | None = None,
        device_id: str | None = None,
    ) -> int:
        """Send an aggregate to the ingest endpoint; returns the upserted count."""
        payload = build_payload(entries, window_days=window_days, device_id=device_id)
        data = self._request("POST", "/api/sync/ingest", json=payload)
        upserted = int(data.get("upserted") or 0)
        logger.info("Pushed %d domain-day rows to %s", upserted, self.api_base)
        return upserted

    def fetch_summary(self, days: int) -> Summary:
        data = self._request("GET", "/api/sync/summary", params={"days": days})
        return Summary(
            days=int(data.get("days") or days),
            last_sync=data.get("lastSync"),
            domain_daily=list(data.get("domainDaily") or []),
        )
