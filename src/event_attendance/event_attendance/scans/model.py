from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..core.enums import ScanAction, ScanOutcomeKind


@dataclass(frozen=True)
class ScanFact:
    """A validated "student X scanned at gate G for event E at time T" fact."""

    event_id: str
    student_id: str
    gate: str
    timestamp: datetime
    scanned_by: Optional[str] = None


@dataclass(frozen=True)
class ScanLogEntry:
    """Append-only audit row written for every scan the engine evaluated."""

    scan_id: int
    event_id: str
    student_id: str
    gate: str
    scan_time: datetime
    action: ScanAction
    outcome: ScanOutcomeKind
    session_id: Optional[int] = None
    scanned_by: Optional[str] = None
