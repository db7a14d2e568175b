from __future__ import annotations

import logging

from flask import Flask, jsonify, request

from ..core.enums import ScanOutcomeKind
from ..core.exceptions import ValidationError
from ..container import Container
from ..reports.service import session_to_dict

logger = logging.getLogger(__name__)

_HTTP_STATUS = {
    ScanOutcomeKind.OPENED: 200,
    ScanOutcomeKind.CLOSED: 200,
    ScanOutcomeKind.NOT_FOUND: 404,
    ScanOutcomeKind.EVENT_STOPPED: 409,
    ScanOutcomeKind.EVENT_NOT_STARTED: 409,
    ScanOutcomeKind.STUDENT_INACTIVE: 409,
    ScanOutcomeKind.DUPLICATE: 409,
}


def register(app: Flask, container: Container) -> None:
    @app.route("/api/events/<event_id>/scans", methods=["POST"], endpoint="api_record_scan")
    def api_record_scan(event_id: str):
        """Gate scan: opens a session or closes the open one for the pair."""
        data = request.get_json(silent=True) or {}
        try:
            outcome = container.scan_ingestor.record_scan(
                event_id,
                data.get("student_id"),
                data.get("gate"),
                data.get("timestamp"),
                scanned_by=data.get("scanned_by"),
            )
        except ValidationError as e:
            return jsonify({"success": False, "message": str(e)}), 400
        except Exception:
            logger.exception("Scan failed event=%s", event_id)
            return jsonify({"success": False, "message": "System error while recording scan"}), 500

        body = {
            "success": outcome.accepted,
            "outcome": outcome.kind.value,
            "message": outcome.message,
        }
        if outcome.session is not None:
            body["session"] = session_to_dict(outcome.session)
        if outcome.duration_seconds is not None:
            body["duration_seconds"] = outcome.duration_seconds
        if outcome.clock_skew:
            body["clock_skew"] = True
        return jsonify(body), _HTTP_STATUS[outcome.kind]
