from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..core.enums import SessionStatus


@dataclass(frozen=True)
class AttendanceSession:
    """Domain entity: one check-in to check-out interval (append-only row).

    The close columns are written exactly once, by whichever path closes the
    session first: a check-out scan or the event stop sweep.
    """

    session_id: int
    event_id: str
    student_id: str
    check_in_time: datetime
    check_out_time: Optional[datetime] = None
    status: SessionStatus = SessionStatus.CHECKED_IN
    is_nullified: bool = False
    nullified_duration: Optional[int] = None
    nullified_reason: Optional[str] = None
    event_stop_time: Optional[datetime] = None
    check_in_gate: Optional[str] = None
    check_out_gate: Optional[str] = None
    audit_note: Optional[str] = None

    @property
    def is_open(self) -> bool:
        return self.check_out_time is None
