from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from ..common.datetime_utils import format_iso, utc_now
from ..core.constants import DEFAULT_SCAN_LOG_LIMIT, IMPROPER_CHECKOUT_WARNING
from ..core.enums import SummaryStatus
from ..core.exceptions import NotFoundError
from ..database.unit_of_work import UnitOfWorkFactory
from ..scans.model import ScanLogEntry
from ..sessions.duration import format_duration, live_duration
from ..sessions.model import AttendanceSession
from ..summaries.model import AttendanceSummary


@dataclass(frozen=True)
class StudentAttendanceReport:
    """Dashboard read-model: nullified time is always broken out, never merged."""

    event_id: str
    event_name: str
    student_id: str
    summary: AttendanceSummary
    sessions: list[dict]
    live_seconds: int
    nullified: list[dict]
    warning: Optional[str]


@dataclass(frozen=True)
class EventOverview:
    event_id: str
    name: str
    status: str
    students_seen: int
    present_now: int
    completed_sessions: int
    total_valid_duration: int
    total_nullified_duration: int
    students_with_improper_checkouts: int
    live_seconds: int


def session_to_dict(s: AttendanceSession, *, now: Optional[datetime] = None) -> dict:
    row = {
        "session_id": s.session_id,
        "event_id": s.event_id,
        "student_id": s.student_id,
        "check_in_time": format_iso(s.check_in_time),
        "check_out_time": format_iso(s.check_out_time),
        "status": s.status.value,
        "is_nullified": s.is_nullified,
        "nullified_duration": s.nullified_duration,
        "nullified_reason": s.nullified_reason,
        "event_stop_time": format_iso(s.event_stop_time),
        "check_in_gate": s.check_in_gate,
        "check_out_gate": s.check_out_gate,
        "audit_note": s.audit_note,
    }
    if now is not None or not s.is_open:
        seconds = live_duration(s, now=now or utc_now())
        row["duration_seconds"] = seconds
        row["duration_formatted"] = format_duration(seconds, ongoing=s.is_open)
    return row


def summary_to_dict(s: AttendanceSummary) -> dict:
    return {
        "event_id": s.event_id,
        "student_id": s.student_id,
        "total_valid_duration": s.total_valid_duration,
        "total_valid_formatted": format_duration(s.total_valid_duration),
        "total_nullified_duration": s.total_nullified_duration,
        "total_nullified_formatted": format_duration(s.total_nullified_duration),
        "total_sessions": s.total_sessions,
        "nullified_sessions": s.nullified_sessions,
        "last_check_in_time": format_iso(s.last_check_in_time),
        "current_status": s.current_status.value,
        "has_improper_checkouts": s.has_improper_checkouts,
        "last_activity_date": s.last_activity_date.isoformat() if s.last_activity_date else None,
    }


def scan_log_to_dict(e: ScanLogEntry) -> dict:
    return {
        "scan_id": e.scan_id,
        "student_id": e.student_id,
        "gate": e.gate,
        "scan_time": format_iso(e.scan_time),
        "action": e.action.value,
        "outcome": e.outcome.value,
        "session_id": e.session_id,
        "scanned_by": e.scanned_by,
    }


class AttendanceQueryService:
    """Read-only views for student and admin dashboards.

    Live (still open) sessions report duration-so-far against the clock; that
    value is display-only and never written back.
    """

    def __init__(self, uow_factory: UnitOfWorkFactory, *, clock: Callable[[], datetime] = utc_now):
        self._uow_factory = uow_factory
        self._clock = clock

    def get_summary(self, event_id: str, student_id: str) -> Optional[AttendanceSummary]:
        with self._uow_factory() as uow:
            return uow.summaries.get(event_id, student_id)

    def list_sessions(self, event_id: str, student_id: str) -> list[AttendanceSession]:
        with self._uow_factory() as uow:
            return list(uow.sessions.list_for_pair(event_id, student_id))

    def list_event_summaries(self, event_id: str, *, improper_only: bool = False) -> list[AttendanceSummary]:
        with self._uow_factory() as uow:
            if uow.events.get(event_id) is None:
                raise NotFoundError(f"Event {event_id} not found")
            return list(uow.summaries.list_for_event(event_id, improper_only=improper_only))

    def list_scan_logs(self, event_id: str, *, limit: int = DEFAULT_SCAN_LOG_LIMIT) -> list[ScanLogEntry]:
        with self._uow_factory() as uow:
            if uow.events.get(event_id) is None:
                raise NotFoundError(f"Event {event_id} not found")
            return list(uow.scan_logs.list_for_event(event_id, limit=limit))

    def get_student_report(
        self,
        event_id: str,
        student_id: str,
        *,
        now: Optional[datetime] = None,
    ) -> StudentAttendanceReport:
        now = now or self._clock()
        with self._uow_factory() as uow:
            event = uow.events.get(event_id)
            if event is None:
                raise NotFoundError(f"Event {event_id} not found")
            if uow.students.get(student_id) is None:
                raise NotFoundError(f"Student {student_id} not found")
            summary = uow.summaries.get(event_id, student_id) or AttendanceSummary(event_id=event_id, student_id=student_id)
            sessions = list(uow.sessions.list_for_pair(event_id, student_id))

        live_seconds = sum(live_duration(s, now=now) for s in sessions if s.is_open)
        nullified = [
            {
                "session_id": s.session_id,
                "duration_seconds": s.nullified_duration or 0,
                "duration_formatted": format_duration(s.nullified_duration or 0),
                "reason": s.nullified_reason,
                "event_stop_time": format_iso(s.event_stop_time),
            }
            for s in sessions
            if s.is_nullified
        ]
        return StudentAttendanceReport(
            event_id=event_id,
            event_name=event.name,
            student_id=student_id,
            summary=summary,
            sessions=[session_to_dict(s, now=now) for s in sessions],
            live_seconds=live_seconds,
            nullified=nullified,
            warning=IMPROPER_CHECKOUT_WARNING if summary.has_improper_checkouts else None,
        )

    def get_event_overview(self, event_id: str, *, now: Optional[datetime] = None) -> EventOverview:
        now = now or self._clock()
        with self._uow_factory() as uow:
            event = uow.events.get(event_id)
            if event is None:
                raise NotFoundError(f"Event {event_id} not found")
            summaries = list(uow.summaries.list_for_event(event_id))
            open_sessions = list(uow.sessions.list_open_for_event(event_id))

        return EventOverview(
            event_id=event.event_id,
            name=event.name,
            status=event.status.value,
            students_seen=len(summaries),
            present_now=sum(1 for s in summaries if s.current_status == SummaryStatus.CHECKED_IN),
            completed_sessions=sum(s.total_sessions for s in summaries),
            total_valid_duration=sum(s.total_valid_duration for s in summaries),
            total_nullified_duration=sum(s.total_nullified_duration for s in summaries),
            students_with_improper_checkouts=sum(1 for s in summaries if s.has_improper_checkouts),
            live_seconds=sum(live_duration(s, now=now) for s in open_sessions),
        )
