"""Ingest payload validation.

Policy: a structural problem anywhere in the batch (rows not a list, a row
that is not an object, an unparseable ``day`` or ``lastSeen``, an empty
``domain``) rejects the whole batch. Numeric problems never reject: ``visits``
is floored and clamped into ``0..MAX_VISITS``, with non-numbers becoming 0.
"""

from __future__ import annotations

import math
import re
from datetime import date, datetime, timezone

import dateutil.parser as parser

from browse_dashboard.config import MAX_INGEST_ROWS
from browse_dashboard.exceptions import BatchTooLargeError, IngestValidationError
from browse_dashboard.server.models import IngestBatch, IngestRow

_DAY_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")

# Largest value a SQLite INTEGER column can hold.
MAX_VISITS = 2**63 - 1


def coerce_visits(value) -> int:
    if value is None or isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return min(MAX_VISITS, max(0, value))
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        return 0
    if math.isnan(number) or math.isinf(number):
        return 0
    return min(MAX_VISITS, max(0, math.floor(number)))


def parse_day(value) -> date:
    if not isinstance(value, str) or not _DAY_RE.match(value.strip()):
        raise IngestValidationError(f"Invalid day: {value!r} (expected YYYY-MM-DD)")
    try:
        return date.fromisoformat(value.strip())
    except ValueError as e:
        raise IngestValidationError(f"Invalid day: {value!r}") from e


def parse_last_seen(value) -> datetime | None:
    if value is None or value == "":
        return None
    if not isinstance(value, str):
        raise IngestValidationError(f"Invalid lastSeen: {value!r}")
    try:
        dt = parser.isoparse(value.strip())
    except (ValueError, OverflowError) as e:
        raise IngestValidationError(f"Invalid lastSeen: {value!r}") from e
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def parse_row(raw, index: int) -> IngestRow:
    if not isinstance(raw, dict):
        raise IngestValidationError(f"Row {index} is not an object")
    domain = raw.get("domain")
    if not isinstance(domain, str) or not domain.strip():
        raise IngestValidationError(f"Row {index}: domain must be a non-empty string")
    try:
        day = parse_day(raw.get("day"))
        last_seen = parse_last_seen(raw.get("lastSeen"))
    except IngestValidationError as e:
        raise IngestValidationError(f"Row {index}: {e}") from e
    return IngestRow(
        day=day,
        domain=domain.strip(),
        visits=coerce_visits(raw.get("visits")),
        last_seen=last_seen,
    )


def _optional_int(value) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError):
        return None


def validate_ingest_payload(body, max_rows: int = MAX_INGEST_ROWS) -> IngestBatch:
    """Validate a decoded JSON body; raises before anything is persisted."""
    if not isinstance(body, dict):
        raise IngestValidationError("Invalid payload")
    rows = body.get("rows")
    if not isinstance(rows, list):
        raise IngestValidationError("Invalid payload")
    if len(rows) > max_rows:
        raise BatchTooLargeError(f"Too many rows ({len(rows)} > {max_rows})")

    device_id = body.get("deviceId")
    return IngestBatch(
        rows=[parse_row(raw, i) for i, raw in enumerate(rows)],
        device_id=str(device_id) if device_id else None,
        window_days=_optional_int(body.get("windowDays")),
        generated_at=_optional_int(body.get("generatedAt")),
    )
