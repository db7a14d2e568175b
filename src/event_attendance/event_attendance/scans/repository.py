from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from ..core.enums import ScanAction, ScanOutcomeKind
from .model import ScanLogEntry


class ScanLogRepository(Protocol):
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
        raise NotImplementedError

    def list_for_event(self, event_id: str, *, limit: int) -> Sequence[ScanLogEntry]:
        raise NotImplementedError
