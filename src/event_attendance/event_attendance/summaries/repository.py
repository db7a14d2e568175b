from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from .model import AttendanceSummary, SummaryDelta


class SummaryRepository(Protocol):
    """Storage for student-event summaries.

    Only the SummaryAggregator writes through this interface.
    """

    def ensure(self, event_id: str, student_id: str) -> None:
        """Create the zero row for the pair if it does not exist yet."""

        raise NotImplementedError

    def lock(self, event_id: str, student_id: str) -> Optional[AttendanceSummary]:
        """Row-lock the pair's summary; serializes every writer of the pair."""

        raise NotImplementedError

    def get(self, event_id: str, student_id: str) -> Optional[AttendanceSummary]:
        raise NotImplementedError

    def mark_checked_in(self, event_id: str, student_id: str, *, check_in_time: datetime) -> None:
        raise NotImplementedError

    def apply_delta(self, event_id: str, student_id: str, delta: SummaryDelta) -> None:
        raise NotImplementedError

    def replace(self, summary: AttendanceSummary) -> None:
        """Overwrite a row wholesale (offline rebuild only)."""

        raise NotImplementedError

    def list_for_event(self, event_id: str, *, improper_only: bool = False) -> Sequence[AttendanceSummary]:
        raise NotImplementedError
