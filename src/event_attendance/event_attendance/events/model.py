from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..core.enums import EventStatus


@dataclass(frozen=True)
class Event:
    """Domain entity: an event as seen by the attendance engine.

    Event metadata belongs to the event CRUD layer; the engine only reads it and
    writes the lifecycle columns (status, started_at, stopped_at, stop_reason).
    """

    event_id: str
    name: str
    status: EventStatus = EventStatus.SCHEDULED
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    started_at: Optional[datetime] = None
    stopped_at: Optional[datetime] = None
    stop_reason: Optional[str] = None

    @property
    def is_active(self) -> bool:
        return self.status == EventStatus.ACTIVE

    @property
    def is_stopped(self) -> bool:
        return self.status == EventStatus.STOPPED
