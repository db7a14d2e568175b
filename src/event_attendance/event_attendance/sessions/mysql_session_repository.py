from __future__ import annotations

from datetime import datetime
from typing import Optional, Sequence

from ..core.enums import SessionStatus
from ..database.mysql_base import fetchall, fetchone
from .duration import SessionClose
from .model import AttendanceSession
from .repository import SessionRepository

_COLUMNS = """
    session_id, event_id, student_id, check_in_time, check_out_time, status,
    is_nullified, nullified_duration, nullified_reason, event_stop_time,
    check_in_gate, check_out_gate, audit_note
"""


def _to_session(r: dict) -> AttendanceSession:
    return AttendanceSession(
        session_id=int(r["session_id"]),
        event_id=str(r["event_id"]),
        student_id=str(r["student_id"]),
        check_in_time=r["check_in_time"],
        check_out_time=r.get("check_out_time"),
        status=SessionStatus(r["status"]),
        is_nullified=bool(r.get("is_nullified")),
        nullified_duration=int(r["nullified_duration"]) if r.get("nullified_duration") is not None else None,
        nullified_reason=r.get("nullified_reason"),
        event_stop_time=r.get("event_stop_time"),
        check_in_gate=r.get("check_in_gate"),
        check_out_gate=r.get("check_out_gate"),
        audit_note=r.get("audit_note"),
    )


class MySQLSessionRepository(SessionRepository):
    def __init__(self, cur):
        self._cur = cur

    def get(self, session_id: int) -> Optional[AttendanceSession]:
        self._cur.execute(f"SELECT {_COLUMNS} FROM attendance_sessions WHERE session_id=%s", (int(session_id),))
        r = fetchone(self._cur)
        return _to_session(r) if r else None

    def find_open(self, event_id: str, student_id: str, *, for_update: bool = False) -> Optional[AttendanceSession]:
        self._cur.execute(
            f"""
            SELECT {_COLUMNS}
            FROM attendance_sessions
            WHERE event_id=%s AND student_id=%s AND check_out_time IS NULL
            ORDER BY check_in_time DESC, session_id DESC
            LIMIT 1
            """
            + (" FOR UPDATE" if for_update else ""),
            (event_id, student_id),
        )
        r = fetchone(self._cur)
        return _to_session(r) if r else None

    def get_latest_for_pair(self, event_id: str, student_id: str) -> Optional[AttendanceSession]:
        self._cur.execute(
            f"""
            SELECT {_COLUMNS}
            FROM attendance_sessions
            WHERE event_id=%s AND student_id=%s
            ORDER BY session_id DESC
            LIMIT 1
            """,
            (event_id, student_id),
        )
        r = fetchone(self._cur)
        return _to_session(r) if r else None

    def create_open(
        self,
        *,
        event_id: str,
        student_id: str,
        check_in_time: datetime,
        gate: Optional[str] = None,
    ) -> AttendanceSession:
        self._cur.execute(
            """
            INSERT INTO attendance_sessions(event_id, student_id, check_in_time, status, check_in_gate)
            VALUES(%s,%s,%s,%s,%s)
            """,
            (event_id, student_id, check_in_time, SessionStatus.CHECKED_IN.value, gate),
        )
        return AttendanceSession(
            session_id=int(self._cur.lastrowid),
            event_id=event_id,
            student_id=student_id,
            check_in_time=check_in_time,
            status=SessionStatus.CHECKED_IN,
            check_in_gate=gate,
        )

    def close(self, session_id: int, close: SessionClose) -> bool:
        self._cur.execute(
            """
            UPDATE attendance_sessions
            SET check_out_time=%s, status=%s, is_nullified=%s, nullified_duration=%s,
                nullified_reason=%s, event_stop_time=%s, check_out_gate=%s, audit_note=%s
            WHERE session_id=%s AND check_out_time IS NULL
            """,
            (
                close.check_out_time,
                close.status.value,
                int(close.is_nullified),
                close.nullified_duration,
                close.nullified_reason,
                close.event_stop_time,
                close.check_out_gate,
                close.audit_note,
                int(session_id),
            ),
        )
        return self._cur.rowcount > 0

    def list_for_pair(self, event_id: str, student_id: str) -> Sequence[AttendanceSession]:
        self._cur.execute(
            f"""
            SELECT {_COLUMNS}
            FROM attendance_sessions
            WHERE event_id=%s AND student_id=%s
            ORDER BY check_in_time ASC, session_id ASC
            """,
            (event_id, student_id),
        )
        return [_to_session(r) for r in fetchall(self._cur)]

    def list_for_event(self, event_id: str) -> Sequence[AttendanceSession]:
        self._cur.execute(
            f"""
            SELECT {_COLUMNS}
            FROM attendance_sessions
            WHERE event_id=%s
            ORDER BY check_in_time ASC, session_id ASC
            """,
            (event_id,),
        )
        return [_to_session(r) for r in fetchall(self._cur)]

    def list_open_for_event(self, event_id: str) -> Sequence[AttendanceSession]:
        self._cur.execute(
            f"""
            SELECT {_COLUMNS}
            FROM attendance_sessions
            WHERE event_id=%s AND status=%s AND check_out_time IS NULL
            ORDER BY session_id ASC
            """,
            (event_id, SessionStatus.CHECKED_IN.value),
        )
        return [_to_session(r) for r in fetchall(self._cur)]
