from __future__ import annotations

import logging

from flask import Flask, jsonify, request

from ..common.datetime_utils import format_iso, parse_iso_datetime
from ..core.exceptions import NotFoundError, ValidationError
from ..container import Container
from ..reports.service import session_to_dict

logger = logging.getLogger(__name__)


def register(app: Flask, container: Container) -> None:
    def _optional_time(data: dict, key: str):
        value = data.get(key)
        if not value:
            return None
        try:
            return parse_iso_datetime(str(value))
        except ValueError:
            raise ValidationError(f"{key} must be an ISO-8601 datetime")

    @app.route("/api/events/<event_id>/start", methods=["POST"], endpoint="api_event_start")
    def api_event_start(event_id: str):
        data = request.get_json(silent=True) or {}
        try:
            event = container.lifecycle_controller.on_event_started(event_id, _optional_time(data, "start_time"))
        except ValidationError as e:
            return jsonify({"success": False, "message": str(e)}), 400
        except NotFoundError as e:
            return jsonify({"success": False, "message": str(e)}), 404
        except Exception:
            logger.exception("Event start failed event=%s", event_id)
            return jsonify({"success": False, "message": "System error while starting event"}), 500

        return jsonify(
            {
                "success": True,
                "message": "Event started successfully",
                "event": {"event_id": event.event_id, "status": event.status.value, "started_at": format_iso(event.started_at)},
            }
        ), 200

    @app.route("/api/events/<event_id>/stop", methods=["POST"], endpoint="api_event_stop")
    def api_event_stop(event_id: str):
        """Stop an event and nullify every session still open."""
        data = request.get_json(silent=True) or {}
        try:
            result = container.lifecycle_controller.on_event_stopped(
                event_id,
                _optional_time(data, "stop_time"),
                data.get("reason"),
            )
        except ValidationError as e:
            return jsonify({"success": False, "message": str(e)}), 400
        except NotFoundError as e:
            return jsonify({"success": False, "message": str(e)}), 404
        except Exception:
            logger.exception("Event stop failed event=%s", event_id)
            return jsonify({"success": False, "message": "System error while stopping event"}), 500

        return jsonify(
            {
                "success": True,
                "message": "Event stopped successfully",
                "stop_time": format_iso(result.stop_time),
                "reason": result.reason,
                "already_stopped": result.already_stopped,
                "nullified_sessions": result.nullified_count,
                "nullified_seconds": result.nullified_seconds,
                "failed_session_ids": list(result.failed_session_ids),
                "sessions": [session_to_dict(s) for s in result.closed_sessions],
            }
        ), 200
