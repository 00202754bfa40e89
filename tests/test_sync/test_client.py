"""Tests for the sync HTTP client."""

import json
from datetime import datetime, timezone

import httpx
import pytest

from browse_dashboard.exceptions import SyncError
from browse_dashboard.history.models import AggregateEntry
from browse_dashboard.server.app import create_app
from browse_dashboard.sync.client import SyncClient, build_payload

ENTRIES = [
    AggregateEntry("a.com", "2024-01-01", 5, "A", "2024-01-01T10:00:00.000Z"),
    AggregateEntry("b.com", "2024-01-01", 1, "B", None),
]


def _client(handler, key="bd_sk_test"):
    return SyncClient(key, api_base="https://dash.example.com/", transport=httpx.MockTransport(handler))


def test_build_payload():
    payload = build_payload(ENTRIES, window_days=30, device_id="laptop", generated_at=123)
    assert payload == {
        "generatedAt": 123,
        "deviceId": "laptop",
        "windowDays": 30,
        "rows": [
            {"day": "2024-01-01", "domain": "a.com", "visits": 5, "lastSeen": "2024-01-01T10:00:00.000Z"},
            {"day": "2024-01-01", "domain": "b.com", "visits": 1},
        ],
    }


def test_build_payload_defaults_generated_at():
    assert build_payload([])["generatedAt"] > 0


def test_requires_sync_key():
    with pytest.raises(SyncError, match="required"):
        SyncClient("")


def test_push():
    seen = {}

    def handler(request):
        seen["url"] = str(request.url)
        seen["auth"] = request.headers["Authorization"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"ok": True, "upserted": 2, "userIdPrefix": "abcd1234"})

    assert _client(handler).push(ENTRIES, window_days=30, device_id="laptop") == 2
    assert seen["url"] == "https://dash.example.com/api/sync/ingest"
    assert seen["auth"] == "Bearer bd_sk_test"
    assert len(seen["body"]["rows"]) == 2
    assert seen["body"]["deviceId"] == "laptop"


def test_push_error_status():
    def handler(request):
        return httpx.Response(413, json={"ok": False, "error": "Too many rows (20001)"})

    with pytest.raises(SyncError, match="Too many rows") as exc_info:
        _client(handler).push(ENTRIES)
    assert exc_info.value.status_code == 413


def test_server_error_prefers_detail():
    def handler(request):
        return httpx.Response(500, json={"ok": False, "error": "Internal error", "detail": "disk full"})

    with pytest.raises(SyncError, match="disk full") as exc_info:
        _client(handler).push(ENTRIES)
    assert exc_info.value.status_code == 500


def test_non_json_error_body():
    def handler(request):
        return httpx.Response(502, text="Bad Gateway")

    with pytest.raises(SyncError, match="Bad Gateway"):
        _client(handler).push(ENTRIES)


def test_connection_error():
    def handler(request):
        raise httpx.ConnectError("connection refused")

    with pytest.raises(SyncError, match="connection refused") as exc_info:
        _client(handler).fetch_summary(30)
    assert exc_info.value.status_code is None


def test_fetch_summary():
    def handler(request):
        assert request.url.params["days"] == "7"
        return httpx.Response(200, json={
            "ok": True,
            "days": 7,
            "lastSync": "2024-01-02T00:00:00.000Z",
            "domainDaily": [{"day": "2024-01-01", "domain": "a.com", "visits": 3}],
        })

    summary = _client(handler).fetch_summary(7)
    assert summary.days == 7
    assert summary.last_sync == "2024-01-02T00:00:00.000Z"
    assert summary.domain_daily == [{"day": "2024-01-01", "domain": "a.com", "visits": 3}]


def test_unexpected_body():
    def handler(request):
        return httpx.Response(200, json=[1, 2, 3])

    with pytest.raises(SyncError, match="unexpected body"):
        _client(handler).fetch_summary(7)


def test_against_real_app(tmp_path):
    app = create_app(db_path=tmp_path / "sync.sqlite3", testing=True)
    transport = httpx.WSGITransport(app=app)
    client = SyncClient("bd_sk_e2e", api_base="http://testserver", transport=transport)
    today = datetime.now(timezone.utc).date().isoformat()

    assert client.push([AggregateEntry("a.com", today, 4, "A", None)], window_days=30) == 1
    summary = client.fetch_summary(30)
    assert summary.domain_daily == [{"day": today, "domain": "a.com", "visits": 4}]
    assert summary.last_sync is not None

    other = SyncClient("bd_sk_other", api_base="http://testserver", transport=transport)
    assert other.fetch_summary(30).domain_daily == []
