from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol

from ..core.enums import LockMode
from .model import Event


class EventRepository(Protocol):
    def get(self, event_id: str, *, lock: LockMode = LockMode.NONE) -> Optional[Event]:
        """Read an event; SHARE is taken by scans, UPDATE by lifecycle transitions."""

        raise NotImplementedError

    def mark_started(self, event_id: str, *, started_at: datetime) -> bool:
        raise NotImplementedError

    def mark_stopped(self, event_id: str, *, stopped_at: datetime, reason: str) -> bool:
        raise NotImplementedError
