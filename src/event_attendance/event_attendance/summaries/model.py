from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date, datetime
from typing import Optional

from ..core.enums import SummaryStatus


@dataclass(frozen=True)
class SummaryDelta:
    """Increment produced by one session close.

    Repositories apply it as a single atomic update on the summary row.
    """

    valid_seconds: int = 0
    nullified_seconds: int = 0
    sessions: int = 0
    nullified_sessions: int = 0
    improper_checkout: bool = False
    activity_date: Optional[date] = None


@dataclass(frozen=True)
class AttendanceSummary:
    """Running per-student-per-event rollup of all session durations."""

    event_id: str
    student_id: str
    total_valid_duration: int = 0
    total_nullified_duration: int = 0
    total_sessions: int = 0
    nullified_sessions: int = 0
    last_check_in_time: Optional[datetime] = None
    current_status: SummaryStatus = SummaryStatus.CHECKED_OUT
    has_improper_checkouts: bool = False
    last_activity_date: Optional[date] = None

    @property
    def total_duration(self) -> int:
        return self.total_valid_duration + self.total_nullified_duration

    def with_delta(self, delta: SummaryDelta) -> "AttendanceSummary":
        return replace(
            self,
            total_valid_duration=self.total_valid_duration + delta.valid_seconds,
            total_nullified_duration=self.total_nullified_duration + delta.nullified_seconds,
            total_sessions=self.total_sessions + delta.sessions,
            nullified_sessions=self.nullified_sessions + delta.nullified_sessions,
            # Sticky: once raised the flag is never lowered.
            has_improper_checkouts=self.has_improper_checkouts or delta.improper_checkout,
            current_status=SummaryStatus.CHECKED_OUT,
            last_activity_date=delta.activity_date or self.last_activity_date,
        )
