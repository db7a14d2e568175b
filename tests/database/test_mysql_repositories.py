from __future__ import annotations

from datetime import date, datetime

from src.event_attendance.event_attendance.core.enums import LockMode, SessionStatus
from src.event_attendance.event_attendance.database.mysql_base import lock_clause
from src.event_attendance.event_attendance.sessions.duration import SessionClose
from src.event_attendance.event_attendance.sessions.mysql_session_repository import MySQLSessionRepository
from src.event_attendance.event_attendance.summaries.model import SummaryDelta
from src.event_attendance.event_attendance.summaries.mysql_summary_repository import MySQLSummaryRepository


class RecordingCursor:
    def __init__(self, rowcount=1):
        self.executed = []
        self.rowcount = rowcount

    def execute(self, sql, params=None):
        self.executed.append((" ".join(sql.split()), params))


def test_lock_clause():
    assert lock_clause(LockMode.NONE) == ""
    assert lock_clause(LockMode.SHARE) == " LOCK IN SHARE MODE"
    assert lock_clause(LockMode.UPDATE) == " FOR UPDATE"


def test_summary_delta_is_one_atomic_increment():
    cur = RecordingCursor()
    delta = SummaryDelta(nullified_seconds=900, sessions=1, nullified_sessions=1, improper_checkout=True, activity_date=date(2026, 3, 1))

    MySQLSummaryRepository(cur).apply_delta("expo", "stu-1", delta)

    ((sql, params),) = cur.executed
    assert sql.startswith("UPDATE student_event_attendance_summaries")
    assert "total_nullified_duration = total_nullified_duration + %s" in sql
    assert "has_improper_checkouts = (has_improper_checkouts OR %s)" in sql
    assert params == (0, 900, 1, 1, 1, "checked-out", date(2026, 3, 1), "expo", "stu-1")


def test_session_close_is_guarded():
    close = SessionClose(check_out_time=datetime(2026, 3, 1, 11, 0), status=SessionStatus.CHECKED_OUT, duration_seconds=3600)

    assert MySQLSessionRepository(RecordingCursor(rowcount=1)).close(7, close) is True

    cur = RecordingCursor(rowcount=0)
    assert MySQLSessionRepository(cur).close(7, close) is False
    sql, params = cur.executed[0]
    assert sql.endswith("WHERE session_id=%s AND check_out_time IS NULL")
    assert params[-1] == 7


def test_summary_ensure_locks_existing_row_exclusively():
    cur = RecordingCursor()

    MySQLSummaryRepository(cur).ensure("expo", "stu-1")

    ((sql, params),) = cur.executed
    assert sql.startswith("INSERT INTO student_event_attendance_summaries(event_id, student_id)")
    assert sql.endswith("ON DUPLICATE KEY UPDATE event_id=event_id")
    assert "IGNORE" not in sql
    assert params == ("expo", "stu-1")
