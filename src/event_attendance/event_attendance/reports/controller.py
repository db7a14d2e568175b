from __future__ import annotations

from dataclasses import asdict

from flask import Flask, jsonify, request

from ..core.constants import DEFAULT_SCAN_LOG_LIMIT
from ..core.exceptions import NotFoundError
from ..container import Container
from .service import scan_log_to_dict, session_to_dict, summary_to_dict


def register(app: Flask, container: Container) -> None:
    @app.errorhandler(NotFoundError)
    def _not_found(e: NotFoundError):
        return jsonify({"success": False, "message": str(e)}), 404

    @app.route("/api/events/<event_id>/students/<student_id>/summary", endpoint="api_student_summary")
    def api_student_summary(event_id: str, student_id: str):
        summary = container.query_service.get_summary(event_id, student_id)
        if summary is None:
            return jsonify({"success": False, "message": "No attendance recorded for this student"}), 404
        return jsonify({"success": True, "summary": summary_to_dict(summary)}), 200

    @app.route("/api/events/<event_id>/students/<student_id>/sessions", endpoint="api_student_sessions")
    def api_student_sessions(event_id: str, student_id: str):
        sessions = container.query_service.list_sessions(event_id, student_id)
        return jsonify({"success": True, "sessions": [session_to_dict(s) for s in sessions]}), 200

    @app.route("/api/events/<event_id>/students/<student_id>/report", endpoint="api_student_report")
    def api_student_report(event_id: str, student_id: str):
        report = container.query_service.get_student_report(event_id, student_id)
        return jsonify(
            {
                "success": True,
                "event_name": report.event_name,
                "summary": summary_to_dict(report.summary),
                "sessions": report.sessions,
                "live_seconds": report.live_seconds,
                "nullified": report.nullified,
                "warning": report.warning,
            }
        ), 200

    @app.route("/api/events/<event_id>/summaries", endpoint="api_event_summaries")
    def api_event_summaries(event_id: str):
        improper_only = request.args.get("improper") in {"1", "true", "yes"}
        summaries = container.query_service.list_event_summaries(event_id, improper_only=improper_only)
        return jsonify({"success": True, "summaries": [summary_to_dict(s) for s in summaries]}), 200

    @app.route("/api/events/<event_id>/overview", endpoint="api_event_overview")
    def api_event_overview(event_id: str):
        overview = container.query_service.get_event_overview(event_id)
        return jsonify({"success": True, "overview": asdict(overview)}), 200

    @app.route("/api/events/<event_id>/scan-logs", endpoint="api_event_scan_logs")
    def api_event_scan_logs(event_id: str):
        limit_s = request.args.get("limit") or ""
        limit = int(limit_s) if limit_s.isdigit() else DEFAULT_SCAN_LOG_LIMIT
        logs = container.query_service.list_scan_logs(event_id, limit=limit)
        return jsonify({"success": True, "scan_logs": [scan_log_to_dict(e) for e in logs]}), 200
