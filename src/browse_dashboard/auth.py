"""Sync-key identity: bearer parsing, one-way user ids, key generation."""

from __future__ import annotations

import base64
import hashlib
import re
import secrets

SYNC_KEY_PREFIX = "bd_sk_"

_BEARER_RE = re.compile(r"^Bearer\s+(.+)$", re.IGNORECASE)


def get_bearer_token(authorization: str | None) -> str | None:
    """Extract the token from an ``Authorization: Bearer ...`` header value."""
    if not authorization:
        return None
    match = _BEARER_RE.match(authorization.strip())
    if not match:
        return None
    return match.group(1).strip() or None


def user_id_from_sync_key(sync_key: str) -> str:
    """Derive the storage partition key; the sync key itself is never stored."""
    return hashlib.sha256(sync_key.encode("utf-8")).hexdigest()


def generate_sync_key() -> str:
    raw = base64.urlsafe_b64encode(secrets.token_bytes(32)).decode("ascii").rstrip("=")
    return f"{SYNC_KEY_PREFIX}{raw}"
