"""Flask service exposing the ingest (merge-upsert) and summary endpoints."""

from __future__ import annotations

import logging
from pathlib import Path

from flask import Flask, Response, current_app, jsonify, request

from browse_dashboard import config
from browse_dashboard.auth import get_bearer_token, user_id_from_sync_key
from browse_dashboard.exceptions import AuthenticationError, IngestError
from browse_dashboard.history.window import clamp_days
from browse_dashboard.server.store import DomainDailyStore
from browse_dashboard.server.validation import validate_ingest_payload

logger = logging.getLogger(__name__)

# Extensions and phone browsers call this API; auth is a bearer token, no cookies.
CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET,POST,OPTIONS",
    "Access-Control-Allow-Headers": "Authorization, Content-Type",
    "Access-Control-Max-Age": "86400",
}


def create_app(
    db_path: Path | str | None = None,
    store: DomainDailyStore | None = None,
    testing: bool = False,
) -> Flask:
    app = Flask(__name__)
    app.config["TESTING"] = testing
    app.config["MAX_INGEST_ROWS"] = config.MAX_INGEST_ROWS
    app.extensions["domain_daily_store"] = store or DomainDailyStore(db_path or config.DB_PATH)

    @app.after_request
    def add_cors_headers(response: Response) -> Response:
        response.headers.update(CORS_HEADERS)
        return response

    @app.route("/api/sync/ingest", methods=["POST", "OPTIONS"])
    def ingest():
        if request.method == "OPTIONS":
            return Response(status=204)
        try:
            user_id = _require_user_id()
            batch = validate_ingest_payload(
                request.get_json(silent=True),
                max_rows=current_app.config["MAX_INGEST_ROWS"],
            )
            upserted = _store().upsert_batch(user_id, batch.rows)
        except IngestError as e:
            return jsonify({"ok": False, "error": str(e)}), e.status_code
        except Exception as e:
            logger.exception("Ingest failed")
            return jsonify({"ok": False, "error": "Internal error", "detail": str(e)}), 500

        logger.info(
            "Ingest from device %s: %d rows (window %s days)",
            batch.device_id or "-", upserted, batch.window_days or "-",
        )
        return jsonify({"ok": True, "upserted": upserted, "userIdPrefix": user_id[:8]})

    @app.route("/api/sync/summary", methods=["GET", "OPTIONS"])
    def summary():
        if request.method == "OPTIONS":
            return Response(status=204)
        try:
            user_id = _require_user_id()
            days = clamp_days(request.args.get("days"))
            result = _store().summary(user_id, days)
        except IngestError as e:
            return jsonify({"ok": False, "error": str(e)}), e.status_code
        except Exception as e:
            logger.exception("Summary failed")
            return jsonify({"ok": False, "error": "Internal error", "detail": str(e)}), 500

        return jsonify({"ok": True, **result.to_dict()})

    return app


def _store() -> DomainDailyStore:
    return current_app.extensions["domain_daily_store"]


def _require_user_id() -> str:
    token = get_bearer_token(request.headers.get("Authorization"))
    if not token:
        raise AuthenticationError("Missing Bearer token")
    return user_id_from_sync_key(token)
