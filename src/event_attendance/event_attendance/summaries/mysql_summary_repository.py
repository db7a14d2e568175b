from __future__ import annotations

from datetime import datetime
from typing import Optional, Sequence

from ..core.enums import SummaryStatus
from ..database.mysql_base import fetchall, fetchone
from .model import AttendanceSummary, SummaryDelta
from .repository import SummaryRepository

_COLUMNS = """
    event_id, student_id, total_valid_duration, total_nullified_duration,
    total_sessions, nullified_sessions, last_check_in_time, current_status,
    has_improper_checkouts, last_activity_date
"""


def _to_summary(r: dict) -> AttendanceSummary:
    return AttendanceSummary(
        event_id=str(r["event_id"]),
        student_id=str(r["student_id"]),
        total_valid_duration=int(r.get("total_valid_duration") or 0),
        total_nullified_duration=int(r.get("total_nullified_duration") or 0),
        total_sessions=int(r.get("total_sessions") or 0),
        nullified_sessions=int(r.get("nullified_sessions") or 0),
        last_check_in_time=r.get("last_check_in_time"),
        current_status=SummaryStatus(r["current_status"]),
        has_improper_checkouts=bool(r.get("has_improper_checkouts")),
        last_activity_date=r.get("last_activity_date"),
    )


class MySQLSummaryRepository(SummaryRepository):
    def __init__(self, cur):
        self._cur = cur

    def ensure(self, event_id: str, student_id: str) -> None:
        # The duplicate-key update locks an existing row exclusively.
        self._cur.execute(
            """
            INSERT INTO student_event_attendance_summaries(event_id, student_id)
            VALUES(%s,%s)
            ON DUPLICATE KEY UPDATE event_id=event_id
            """,
            (event_id, student_id),
        )

    def lock(self, event_id: str, student_id: str) -> Optional[AttendanceSummary]:
        self._cur.execute(
            f"""
            SELECT {_COLUMNS}
            FROM student_event_attendance_summaries
            WHERE event_id=%s AND student_id=%s
            FOR UPDATE
            """,
            (event_id, student_id),
        )
        r = fetchone(self._cur)
        return _to_summary(r) if r else None

    def get(self, event_id: str, student_id: str) -> Optional[AttendanceSummary]:
        self._cur.execute(
            f"""
            SELECT {_COLUMNS}
            FROM student_event_attendance_summaries
            WHERE event_id=%s AND student_id=%s
            """,
            (event_id, student_id),
        )
        r = fetchone(self._cur)
        return _to_summary(r) if r else None

    def mark_checked_in(self, event_id: str, student_id: str, *, check_in_time: datetime) -> None:
        self._cur.execute(
            """
            UPDATE student_event_attendance_summaries
            SET current_status=%s, last_check_in_time=%s
            WHERE event_id=%s AND student_id=%s
            """,
            (SummaryStatus.CHECKED_IN.value, check_in_time, event_id, student_id),
        )

    def apply_delta(self, event_id: str, student_id: str, delta: SummaryDelta) -> None:
        # Single-statement increment; has_improper_checkouts is a monotonic OR.
        self._cur.execute(
            """
            UPDATE student_event_attendance_summaries
            SET total_valid_duration = total_valid_duration + %s,
                total_nullified_duration = total_nullified_duration + %s,
                total_sessions = total_sessions + %s,
                nullified_sessions = nullified_sessions + %s,
                has_improper_checkouts = (has_improper_checkouts OR %s),
                current_status = %s,
                last_activity_date = COALESCE(%s, last_activity_date)
            WHERE event_id=%s AND student_id=%s
            """,
            (
                int(delta.valid_seconds),
                int(delta.nullified_seconds),
                int(delta.sessions),
                int(delta.nullified_sessions),
                int(delta.improper_checkout),
                SummaryStatus.CHECKED_OUT.value,
                delta.activity_date,
                event_id,
                student_id,
            ),
        )

    def replace(self, summary: AttendanceSummary) -> None:
        self._cur.execute(
            """
            UPDATE student_event_attendance_summaries
            SET total_valid_duration=%s, total_nullified_duration=%s, total_sessions=%s,
                nullified_sessions=%s, last_check_in_time=%s, current_status=%s,
                has_improper_checkouts=%s, last_activity_date=%s
            WHERE event_id=%s AND student_id=%s
            """,
            (
                summary.total_valid_duration,
                summary.total_nullified_duration,
                summary.total_sessions,
                summary.nullified_sessions,
                summary.last_check_in_time,
                summary.current_status.value,
                int(summary.has_improper_checkouts),
                summary.last_activity_date,
                summary.event_id,
                summary.student_id,
            ),
        )

    def list_for_event(self, event_id: str, *, improper_only: bool = False) -> Sequence[AttendanceSummary]:
        clauses = ["event_id=%s"]
        params: list[object] = [event_id]
        if improper_only:
            clauses.append("has_improper_checkouts=1")
        where = " AND ".join(clauses)

        self._cur.execute(
            f"""
            SELECT {_COLUMNS}
            FROM student_event_attendance_summaries
            WHERE {where}
            ORDER BY total_valid_duration DESC, student_id ASC
            """,
            tuple(params),
        )
        return [_to_summary(r) for r in fetchall(self._cur)]
