"""Tests for sync-key identity."""

import pytest

from browse_dashboard.auth import (
    SYNC_KEY_PREFIX,
    generate_sync_key,
    get_bearer_token,
    user_id_from_sync_key,
)


@pytest.mark.parametrize(
    "header, expected",
    [
        ("Bearer abc", "abc"),
        ("bearer   abc  ", "abc"),
        ("Bearer bd_sk_x-y_z", "bd_sk_x-y_z"),
        ("Basic abc", None),
        ("Bearer", None),
        ("", None),
        (None, None),
    ],
)
def test_get_bearer_token(header, expected):
    assert get_bearer_token(header) == expected


def test_user_id_is_sha256_hex():
    assert user_id_from_sync_key("abc") == "ba7816bf8f01cfea414140de5dae2223b00361a396177a9cb410ff61f20015ad"


def test_user_id_is_deterministic():
    assert user_id_from_sync_key("bd_sk_1") == user_id_from_sync_key("bd_sk_1")
    assert user_id_from_sync_key("bd_sk_1") != user_id_from_sync_key("bd_sk_2")


def test_generate_sync_key():
    key = generate_sync_key()
    assert key.startswith(SYNC_KEY_PREFIX)
    assert len(key) == len(SYNC_KEY_PREFIX) + 43
    assert "=" not in key
    assert generate_sync_key() != key
