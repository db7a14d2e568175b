from __future__ import annotations

from datetime import datetime
from typing import Optional, Sequence

from ..core.enums import ScanAction, ScanOutcomeKind
from ..database.mysql_base import fetchall
from .model import ScanLogEntry
from .repository import ScanLogRepository


class MySQLScanLogRepository(ScanLogRepository):
    def __init__(self, cur):
        self._cur = cur

    def append(
        self,
        *,
        event_id: str,
        student_id: str,
        gate: str,
        scan_time: datetime,
        action: ScanAction,
        outcome: ScanOutcomeKind,
        session_id: Optional[int] = None,
        scanned_by: Optional[str] = None,
    ) -> int:
        self._cur.execute(
            """
            INSERT INTO scan_logs(event_id, student_id, gate, scan_time, action, outcome, session_id, scanned_by)
            VALUES(%s,%s,%s,%s,%s,%s,%s,%s)
            """,
            (event_id, student_id, gate, scan_time, action.value, outcome.value, session_id, scanned_by),
        )
        return int(self._cur.lastrowid)

    def list_for_event(self, event_id: str, *, limit: int) -> Sequence[ScanLogEntry]:
        self._cur.execute(
            """
            SELECT scan_id, event_id, student_id, gate, scan_time, action, outcome, session_id, scanned_by
            FROM scan_logs
            WHERE event_id=%s
            ORDER BY scan_time DESC, scan_id DESC
            LIMIT %s
            """,
            (event_id, int(limit)),
        )
        return [
            ScanLogEntry(
                scan_id=int(r["scan_id"]),
                event_id=str(r["event_id"]),
                student_id=str(r["student_id"]),
                gate=r["gate"],
                scan_time=r["scan_time"],
                action=ScanAction(r["action"]),
                outcome=ScanOutcomeKind(r["outcome"]),
                session_id=int(r["session_id"]) if r.get("session_id") is not None else None,
                scanned_by=r.get("scanned_by"),
            )
            for r in fetchall(self._cur)
        ]
