"""Tests for ingest payload validation."""

from datetime import date, datetime, timezone

import pytest

from browse_dashboard.exceptions import BatchTooLargeError, IngestValidationError
from browse_dashboard.server.validation import MAX_VISITS, coerce_visits, validate_ingest_payload


def _row(**overrides):
    row = {"day": "2024-01-01", "domain": "a.com", "visits": 3}
    row.update(overrides)
    return row


@pytest.mark.parametrize(
    "raw, expected",
    [
        (3, 3),
        (3.9, 3),
        (-2, 0),
        (-0.5, 0),
        ("7", 7),
        ("abc", 0),
        (None, 0),
        (True, 0),
        (float("nan"), 0),
        (float("inf"), 0),
        (1e300, MAX_VISITS),
        (10**400, MAX_VISITS),
        (MAX_VISITS + 1, MAX_VISITS),
    ],
)
def test_coerce_visits(raw, expected):
    assert coerce_visits(raw) == expected


def test_valid_payload():
    batch = validate_ingest_payload({
        "deviceId": "laptop",
        "windowDays": 30,
        "generatedAt": 1704067200000,
        "rows": [_row(lastSeen="2024-01-01T10:00:00.000Z")],
    })
    assert batch.device_id == "laptop"
    assert batch.window_days == 30
    assert batch.generated_at == 1704067200000
    row = batch.rows[0]
    assert row.day == date(2024, 1, 1)
    assert row.domain == "a.com"
    assert row.visits == 3
    assert row.last_seen == datetime(2024, 1, 1, 10, tzinfo=timezone.utc)


def test_last_seen_offset_normalized_to_utc():
    batch = validate_ingest_payload({"rows": [_row(lastSeen="2024-01-01T12:00:00+02:00")]})
    assert batch.rows[0].last_seen == datetime(2024, 1, 1, 10, tzinfo=timezone.utc)


def test_last_seen_optional():
    batch = validate_ingest_payload({"rows": [_row(), _row(domain="b.com", lastSeen=None)]})
    assert [r.last_seen for r in batch.rows] == [None, None]


def test_numeric_problems_are_clamped_not_rejected():
    batch = validate_ingest_payload({"rows": [_row(visits=-4), _row(domain="b.com", visits=2.7)]})
    assert [r.visits for r in batch.rows] == [0, 2]


@pytest.mark.parametrize("body", [None, [], "rows", {}, {"rows": "nope"}, {"rows": {"a": 1}}])
def test_rows_must_be_a_list(body):
    with pytest.raises(IngestValidationError, match="Invalid payload"):
        validate_ingest_payload(body)


@pytest.mark.parametrize(
    "bad_row",
    [
        _row(day="2024-13-01"),
        _row(day="01/02/2024"),
        _row(day=None),
        _row(domain=""),
        _row(domain="   "),
        _row(domain=42),
        _row(lastSeen="yesterday"),
        "not-an-object",
    ],
)
def test_structural_error_rejects_whole_batch(bad_row):
    with pytest.raises(IngestValidationError, match="Row 1"):
        validate_ingest_payload({"rows": [_row(), bad_row, _row(domain="c.com")]})


def test_row_cap():
    rows = [_row()] * 20001
    with pytest.raises(BatchTooLargeError):
        validate_ingest_payload({"rows": rows})
    assert len(validate_ingest_payload({"rows": rows[:20000]}).rows) == 20000


def test_empty_batch():
    assert validate_ingest_payload({"rows": []}).rows == []


def test_unrepresentable_metadata_is_dropped():
    batch = validate_ingest_payload({"generatedAt": float("inf"), "windowDays": float("nan"), "rows": []})
    assert batch.generated_at is None
    assert batch.window_days is None
