from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Optional, Protocol, Sequence

from .model import AttendanceSession

if TYPE_CHECKING:
    from .duration import SessionClose


class SessionRepository(Protocol):
    """Attendance session storage.

    Note: rows are never deleted; the only mutation is the guarded close.
    """

    def get(self, session_id: int) -> Optional[AttendanceSession]:
        raise NotImplementedError

    def find_open(self, event_id: str, student_id: str, *, for_update: bool = False) -> Optional[AttendanceSession]:
        raise NotImplementedError

    def get_latest_for_pair(self, event_id: str, student_id: str) -> Optional[AttendanceSession]:
        raise NotImplementedError

    def create_open(
        self,
        *,
        event_id: str,
        student_id: str,
        check_in_time: datetime,
        gate: Optional[str] = None,
    ) -> AttendanceSession:
        raise NotImplementedError

    def close(self, session_id: int, close: "SessionClose") -> bool:
        """Write the close columns iff the session is still open."""

        raise NotImplementedError

    def list_for_pair(self, event_id: str, student_id: str) -> Sequence[AttendanceSession]:
        raise NotImplementedError

    def list_for_event(self, event_id: str) -> Sequence[AttendanceSession]:
        raise NotImplementedError

    def list_open_for_event(self, event_id: str) -> Sequence[AttendanceSession]:
        raise NotImplementedError
