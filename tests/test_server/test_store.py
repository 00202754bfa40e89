"""Tests for the merge-upsert store and the summary read path."""

from datetime import date, datetime, timezone
from unittest.mock import patch

import pytest

from browse_dashboard.exceptions import StoreError
from browse_dashboard.server.models import IngestRow
from browse_dashboard.server.store import DomainDailyStore

USER = "u" * 64
OTHER_USER = "o" * 64
T1 = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)
T2 = datetime(2024, 1, 1, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def store(tmp_path):
    return DomainDailyStore(tmp_path / "sync.sqlite3")


def _row(visits, last_seen=None, day=date(2024, 1, 1), domain="a.com"):
    return IngestRow(day=day, domain=domain, visits=visits, last_seen=last_seen)


def test_insert_new_row(store):
    assert store.upsert_batch(USER, [_row(5, T1)]) == 1
    row = store.get_row(USER, "2024-01-01", "a.com")
    assert row["visits"] == 5
    assert row["last_seen"] == "2024-01-01T12:00:00.000Z"


def test_visits_last_write_wins(store):
    store.upsert_batch(USER, [_row(5)])
    store.upsert_batch(USER, [_row(3)])
    assert store.get_row(USER, "2024-01-01", "a.com")["visits"] == 3


def test_last_seen_keeps_later_value(store):
    store.upsert_batch(USER, [_row(5, T1)])
    store.upsert_batch(USER, [_row(3, T2)])
    row = store.get_row(USER, "2024-01-01", "a.com")
    assert row["visits"] == 3
    assert row["last_seen"] == "2024-01-01T12:00:00.000Z"


def test_last_seen_advances(store):
    store.upsert_batch(USER, [_row(1, T2)])
    store.upsert_batch(USER, [_row(1, T1)])
    assert store.get_row(USER, "2024-01-01", "a.com")["last_seen"] == "2024-01-01T12:00:00.000Z"


def test_null_last_seen_never_overwrites(store):
    store.upsert_batch(USER, [_row(1, T1)])
    store.upsert_batch(USER, [_row(2, None)])
    assert store.get_row(USER, "2024-01-01", "a.com")["last_seen"] == "2024-01-01T12:00:00.000Z"


def test_null_last_seen_does_not_block_update(store):
    store.upsert_batch(USER, [_row(1, None)])
    store.upsert_batch(USER, [_row(2, T2)])
    assert store.get_row(USER, "2024-01-01", "a.com")["last_seen"] == "2024-01-01T09:00:00.000Z"


def test_updated_at_bumped_on_every_write(store):
    store.upsert_batch(USER, [_row(1)], now=datetime(2024, 1, 2, tzinfo=timezone.utc))
    assert store.get_row(USER, "2024-01-01", "a.com")["updated_at"] == "2024-01-02T00:00:00.000Z"
    store.upsert_batch(USER, [_row(1)], now=datetime(2024, 1, 3, tzinfo=timezone.utc))
    assert store.get_row(USER, "2024-01-01", "a.com")["updated_at"] == "2024-01-03T00:00:00.000Z"


def test_identities_are_partitioned(store):
    store.upsert_batch(USER, [_row(5)])
    store.upsert_batch(OTHER_USER, [_row(9)])
    assert store.get_row(USER, "2024-01-01", "a.com")["visits"] == 5
    assert store.get_row(OTHER_USER, "2024-01-01", "a.com")["visits"] == 9
    assert store.count(USER) == 1
    assert store.count() == 2


def test_batch_is_atomic(store):
    store.upsert_batch(USER, [_row(5, domain="keep.com")])
    # visits=None violates NOT NULL on the third row; nothing from the batch may land.
    bad_batch = [_row(1, domain="new.com"), _row(7, domain="keep.com"), _row(None, domain="boom.com")]
    with pytest.raises(StoreError):
        store.upsert_batch(USER, bad_batch)
    assert store.count(USER) == 1
    assert store.get_row(USER, "2024-01-01", "keep.com")["visits"] == 5


def test_empty_batch_makes_no_writes(store):
    with patch.object(store, "_connect", side_effect=AssertionError("no db access expected")):
        assert store.upsert_batch(USER, []) == 0


def test_summary_window_and_order(store):
    store.upsert_batch(USER, [
        _row(1, day=date(2024, 1, 31), domain="b.com"),
        _row(2, day=date(2024, 1, 1), domain="a.com"),
        _row(3, day=date(2023, 12, 31), domain="old.com"),
        _row(4, day=date(2024, 1, 31), domain="a.com"),
    ], now=datetime(2024, 2, 1, 8, tzinfo=timezone.utc))
    summary = store.summary(USER, 30, today=date(2024, 1, 31))
    assert summary.days == 30
    assert summary.domain_daily == [
        {"day": "2024-01-01", "domain": "a.com", "visits": 2},
        {"day": "2024-01-31", "domain": "a.com", "visits": 4},
        {"day": "2024-01-31", "domain": "b.com", "visits": 1},
    ]
    assert summary.last_sync == "2024-02-01T08:00:00.000Z"


def test_summary_last_sync_is_latest_update(store):
    store.upsert_batch(USER, [_row(1, domain="a.com")], now=datetime(2024, 1, 1, 10, tzinfo=timezone.utc))
    store.upsert_batch(USER, [_row(1, domain="b.com")], now=datetime(2024, 1, 1, 11, tzinfo=timezone.utc))
    summary = store.summary(USER, 30, today=date(2024, 1, 2))
    assert summary.last_sync == "2024-01-01T11:00:00.000Z"


def test_summary_empty(store):
    summary = store.summary(USER, 30)
    assert summary.domain_daily == []
    assert summary.last_sync is None


def test_summary_excludes_other_identities(store):
    store.upsert_batch(OTHER_USER, [_row(1)])
    assert store.summary(USER, 365, today=date(2024, 1, 2)).domain_daily == []
