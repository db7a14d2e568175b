from __future__ import annotations

from datetime import datetime, timedelta

import pytest

from src.event_attendance.event_attendance.core.constants import IMPROPER_CHECKOUT_WARNING
from src.event_attendance.event_attendance.core.enums import EventStatus, ScanOutcomeKind
from src.event_attendance.event_attendance.core.exceptions import NotFoundError

T0 = datetime(2026, 3, 1, 10, 0, 0)


def _at(**kw) -> datetime:
    return T0 + timedelta(**kw)


def test_summary_is_absent_before_first_scan(container):
    assert container.query_service.get_summary("expo", "stu-1") is None
    assert container.query_service.list_sessions("expo", "stu-1") == []


def test_list_sessions_in_check_in_order(container):
    scan = container.session_manager.record_scan
    scan("expo", "stu-1", "gate-a", _at())
    scan("expo", "stu-1", "gate-a", _at(minutes=30))
    scan("expo", "stu-1", "gate-a", _at(hours=1))

    sessions = container.query_service.list_sessions("expo", "stu-1")

    assert [s.check_in_time for s in sessions] == [_at(), _at(hours=1)]
    assert [s.is_open for s in sessions] == [False, True]


def test_student_report_shows_live_duration(container):
    scan = container.session_manager.record_scan
    scan("expo", "stu-1", "gate-a", _at())
    scan("expo", "stu-1", "gate-b", _at(hours=1))
    scan("expo", "stu-1", "gate-a", _at(hours=2))

    report = container.query_service.get_student_report("expo", "stu-1", now=_at(hours=2, minutes=30))

    assert report.event_name == "Project Expo"
    assert report.summary.total_valid_duration == 3600
    assert report.live_seconds == 1800
    assert report.nullified == []
    assert report.warning is None
    assert report.sessions[0]["duration_formatted"] == "1h 0m"
    assert report.sessions[1]["duration_formatted"] == "30m (ongoing)"
    assert report.sessions[1]["check_out_time"] is None

    # live time is never written back
    assert container.query_service.get_summary("expo", "stu-1").total_valid_duration == 3600


def test_student_report_breaks_out_nullified_time(container):
    container.session_manager.record_scan("expo", "stu-1", "gate-a", _at())
    container.lifecycle_controller.on_event_stopped("expo", _at(minutes=45), "Rain")

    report = container.query_service.get_student_report("expo", "stu-1", now=_at(hours=5))

    assert report.live_seconds == 0
    assert report.summary.total_valid_duration == 0
    assert report.warning == IMPROPER_CHECKOUT_WARNING
    (entry,) = report.nullified
    assert entry["duration_seconds"] == 2700
    assert entry["duration_formatted"] == "45m"
    assert entry["reason"] == "Rain"
    assert entry["event_stop_time"] == "2026-03-01T10:45:00Z"


def test_student_report_without_activity_returns_empty_summary(container):
    report = container.query_service.get_student_report("expo", "stu-2", now=_at())

    assert report.summary.total_sessions == 0
    assert report.sessions == []


@pytest.mark.parametrize("event_id, student_id", [("nope", "stu-1"), ("expo", "ghost")])
def test_student_report_for_unknown_ids(container, event_id, student_id):
    with pytest.raises(NotFoundError):
        container.query_service.get_student_report(event_id, student_id)


def test_event_summaries_can_filter_improper(container):
    scan = container.session_manager.record_scan
    scan("expo", "stu-1", "gate-a", _at())
    scan("expo", "stu-2", "gate-a", _at())
    scan("expo", "stu-2", "gate-b", _at(hours=3))
    container.lifecycle_controller.on_event_stopped("expo", _at(hours=4))

    all_rows = container.query_service.list_event_summaries("expo")
    improper = container.query_service.list_event_summaries("expo", improper_only=True)

    assert [s.student_id for s in all_rows] == ["stu-2", "stu-1"]
    assert [s.student_id for s in improper] == ["stu-1"]

    with pytest.raises(NotFoundError):
        container.query_service.list_event_summaries("nope")


def test_event_overview(container, store):
    scan = container.session_manager.record_scan
    scan("expo", "stu-1", "gate-a", _at())
    scan("expo", "stu-1", "gate-b", _at(hours=1))
    scan("expo", "stu-2", "gate-a", _at(minutes=30))

    overview = container.query_service.get_event_overview("expo", now=_at(hours=1, minutes=30))

    assert overview.name == "Project Expo"
    assert overview.status == EventStatus.ACTIVE.value
    assert overview.students_seen == 2
    assert overview.present_now == 1
    assert overview.completed_sessions == 1
    assert overview.total_valid_duration == 3600
    assert overview.total_nullified_duration == 0
    assert overview.students_with_improper_checkouts == 0
    assert overview.live_seconds == 3600


def test_scan_logs_newest_first_with_limit(container):
    scan = container.session_manager.record_scan
    scan("expo", "stu-1", "gate-a", _at())
    scan("expo", "stu-3", "gate-a", _at(minutes=1))
    scan("expo", "stu-1", "gate-b", _at(minutes=2))

    logs = container.query_service.list_scan_logs("expo", limit=2)

    assert [e.outcome for e in logs] == [ScanOutcomeKind.CLOSED, ScanOutcomeKind.STUDENT_INACTIVE]
