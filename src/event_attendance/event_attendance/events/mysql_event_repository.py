from __future__ import annotations

from datetime import datetime
from typing import Optional

from ..core.enums import EventStatus, LockMode
from ..database.mysql_base import fetchone, lock_clause
from .model import Event
from .repository import EventRepository


class MySQLEventRepository(EventRepository):
    def __init__(self, cur):
        self._cur = cur

    def get(self, event_id: str, *, lock: LockMode = LockMode.NONE) -> Optional[Event]:
        self._cur.execute(
            """
            SELECT event_id, name, status, start_date, end_date, started_at, stopped_at, stop_reason
            FROM events
            WHERE event_id=%s
            """
            + lock_clause(lock),
            (event_id,),
        )
        r = fetchone(self._cur)
        if not r:
            return None
        return Event(
            event_id=str(r["event_id"]),
            name=r["name"],
            status=EventStatus(r["status"]),
            start_date=r.get("start_date"),
            end_date=r.get("end_date"),
            started_at=r.get("started_at"),
            stopped_at=r.get("stopped_at"),
            stop_reason=r.get("stop_reason"),
        )

    def mark_started(self, event_id: str, *, started_at: datetime) -> bool:
        self._cur.execute(
            """
            UPDATE events
            SET status=%s, started_at=%s, stopped_at=NULL, stop_reason=NULL
            WHERE event_id=%s
            """,
            (EventStatus.ACTIVE.value, started_at, event_id),
        )
        return self._cur.rowcount > 0

    def mark_stopped(self, event_id: str, *, stopped_at: datetime, reason: str) -> bool:
        self._cur.execute(
            """
            UPDATE events
            SET status=%s, stopped_at=%s, stop_reason=%s
            WHERE event_id=%s AND status<>%s
            """,
            (EventStatus.STOPPED.value, stopped_at, reason, event_id, EventStatus.STOPPED.value),
        )
        return self._cur.rowcount > 0
