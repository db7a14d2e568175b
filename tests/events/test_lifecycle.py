from __future__ import annotations

from datetime import datetime, timedelta

import pytest

from src.event_attendance.event_attendance.core.constants import DEFAULT_STOP_REASON
from src.event_attendance.event_attendance.core.enums import EventStatus, ScanOutcomeKind, SessionStatus, SummaryStatus
from src.event_attendance.event_attendance.core.exceptions import NotFoundError
from src.event_attendance.event_attendance.events.lifecycle import EventLifecycleController
from src.event_attendance.event_attendance.sessions.service import AttendanceSessionManager
from src.event_attendance.event_attendance.summaries.aggregator import SummaryAggregator

T0 = datetime(2026, 3, 1, 10, 0, 0)


def _event(store, event_id="expo"):
    with store.unit_of_work() as uow:
        return uow.events.get(event_id)


def _summary(store, student_id, event_id="expo"):
    with store.unit_of_work() as uow:
        return uow.summaries.get(event_id, student_id)


def _open_sessions(store, event_id="expo"):
    with store.unit_of_work() as uow:
        return list(uow.sessions.list_open_for_event(event_id))


def test_stop_nullifies_open_sessions_only(container, store):
    scan = container.session_manager.record_scan
    scan("expo", "stu-1", "gate-a", T0)
    scan("expo", "stu-2", "gate-a", T0)
    scan("expo", "stu-2", "gate-b", T0 + timedelta(hours=1))

    result = container.lifecycle_controller.on_event_stopped("expo", T0 + timedelta(hours=2), "Fire drill")

    assert result.already_stopped is False
    assert result.reason == "Fire drill"
    assert result.nullified_count == 1
    assert result.nullified_seconds == 7200
    (closed,) = result.closed_sessions
    assert closed.student_id == "stu-1"
    assert closed.status == SessionStatus.AUTO_CHECKOUT
    assert closed.is_nullified
    assert closed.nullified_duration == 7200
    assert closed.nullified_reason == "Fire drill"
    assert closed.event_stop_time == T0 + timedelta(hours=2)

    event = _event(store)
    assert event.status == EventStatus.STOPPED
    assert event.stopped_at == T0 + timedelta(hours=2)
    assert event.stop_reason == "Fire drill"
    assert _open_sessions(store) == []

    s1 = _summary(store, "stu-1")
    assert s1.total_nullified_duration == 7200
    assert s1.total_valid_duration == 0
    assert s1.nullified_sessions == 1
    assert s1.total_sessions == 1
    assert s1.has_improper_checkouts is True
    assert s1.current_status == SummaryStatus.CHECKED_OUT

    s2 = _summary(store, "stu-2")
    assert s2.total_valid_duration == 3600
    assert s2.has_improper_checkouts is False


def test_stop_without_reason_uses_default(container):
    container.session_manager.record_scan("expo", "stu-1", "gate-a", T0)

    result = container.lifecycle_controller.on_event_stopped("expo", T0 + timedelta(minutes=5), "   ")

    assert result.reason == DEFAULT_STOP_REASON
    assert result.closed_sessions[0].nullified_reason == DEFAULT_STOP_REASON


def test_repeated_stop_is_idempotent(container, store):
    container.session_manager.record_scan("expo", "stu-1", "gate-a", T0)
    lifecycle = container.lifecycle_controller

    lifecycle.on_event_stopped("expo", T0 + timedelta(hours=1), "first")
    before = _summary(store, "stu-1")
    again = lifecycle.on_event_stopped("expo", T0 + timedelta(hours=3), "second")

    assert again.already_stopped is True
    assert again.nullified_count == 0
    assert again.stop_time == T0 + timedelta(hours=1)
    assert again.reason == "first"
    assert _summary(store, "stu-1") == before
    assert _event(store).stop_reason == "first"


def test_interrupted_sweep_resumes_with_first_stop_values(container, store):
    scan = container.session_manager.record_scan
    scan("expo", "stu-1", "gate-a", T0)
    scan("expo", "stu-2", "gate-a", T0 + timedelta(minutes=30))

    # Crash after the event was marked stopped but before the sweep ran.
    with store.unit_of_work() as uow:
        uow.events.mark_stopped("expo", stopped_at=T0 + timedelta(hours=1), reason="Network outage")

    result = container.lifecycle_controller.on_event_stopped("expo", T0 + timedelta(hours=5))

    assert result.already_stopped is True
    assert result.nullified_count == 2
    assert {s.nullified_reason for s in result.closed_sessions} == {"Network outage"}
    assert _summary(store, "stu-1").total_nullified_duration == 3600
    assert _summary(store, "stu-2").total_nullified_duration == 1800


def test_nullify_open_sessions_twice_closes_nothing_the_second_time(container):
    container.session_manager.record_scan("expo", "stu-1", "gate-a", T0)
    manager = container.session_manager

    first = manager.nullify_open_sessions("expo", stop_time=T0 + timedelta(hours=1), reason="r")
    second = manager.nullify_open_sessions("expo", stop_time=T0 + timedelta(hours=2), reason="r")

    assert len(first.closed) == 1
    assert first.failed_session_ids == ()
    assert second.closed == ()


def test_scans_after_stop_are_rejected(container, store):
    container.lifecycle_controller.on_event_stopped("expo", T0)

    outcome = container.session_manager.record_scan("expo", "stu-1", "gate-a", T0 + timedelta(minutes=1))

    assert outcome.kind == ScanOutcomeKind.EVENT_STOPPED
    assert _open_sessions(store) == []


def test_start_activates_scheduled_event(container, store):
    event = container.lifecycle_controller.on_event_started("future", T0)

    assert event.status == EventStatus.ACTIVE
    assert event.started_at == T0
    outcome = container.session_manager.record_scan("future", "stu-1", "gate-a", T0 + timedelta(minutes=1))
    assert outcome.kind == ScanOutcomeKind.OPENED


def test_restart_clears_stop_columns_and_keeps_history(container, store):
    scan = container.session_manager.record_scan
    lifecycle = container.lifecycle_controller
    scan("expo", "stu-1", "gate-a", T0)
    lifecycle.on_event_stopped("expo", T0 + timedelta(hours=1))

    event = lifecycle.on_event_started("expo", T0 + timedelta(hours=2))
    assert event.status == EventStatus.ACTIVE
    assert event.stopped_at is None
    assert event.stop_reason is None

    assert scan("expo", "stu-1", "gate-a", T0 + timedelta(hours=2)).kind == ScanOutcomeKind.OPENED
    summary = _summary(store, "stu-1")
    assert summary.nullified_sessions == 1
    assert summary.has_improper_checkouts is True
    assert summary.current_status == SummaryStatus.CHECKED_IN


def test_lifecycle_on_unknown_event_raises(container):
    with pytest.raises(NotFoundError):
        container.lifecycle_controller.on_event_stopped("nope", T0)
    with pytest.raises(NotFoundError):
        container.lifecycle_controller.on_event_started("nope", T0)


class FailOnceForStudent(SummaryAggregator):
    def __init__(self, student_id):
        self.student_id = student_id
        self.failures = 0

    def apply_closed_session(self, uow, session):
        if session.student_id == self.student_id and self.failures == 0:
            self.failures += 1
            raise RuntimeError("lock wait timeout")
        return super().apply_closed_session(uow, session)


def test_failed_session_does_not_block_rest_of_sweep(store):
    manager = AttendanceSessionManager(store.unit_of_work, FailOnceForStudent("stu-1"))
    lifecycle = EventLifecycleController(store.unit_of_work, manager)
    manager.record_scan("expo", "stu-1", "gate-a", T0)
    manager.record_scan("expo", "stu-2", "gate-a", T0 + timedelta(minutes=10))

    first = lifecycle.on_event_stopped("expo", T0 + timedelta(hours=1), "Storm")

    assert not first.complete
    assert [s.student_id for s in first.closed_sessions] == ["stu-2"]
    (failed_id,) = first.failed_session_ids
    (still_open,) = _open_sessions(store)
    assert still_open.session_id == failed_id
    assert still_open.student_id == "stu-1"
    assert _summary(store, "stu-1").total_sessions == 0

    retry = lifecycle.on_event_stopped("expo", T0 + timedelta(hours=4))

    assert retry.complete
    assert retry.already_stopped
    assert [s.student_id for s in retry.closed_sessions] == ["stu-1"]
    assert retry.closed_sessions[0].event_stop_time == T0 + timedelta(hours=1)
    assert _summary(store, "stu-1").total_nullified_duration == 3600
    assert _summary(store, "stu-2").total_nullified_duration == 3000
    assert _open_sessions(store) == []
