from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING

from ..core.enums import SummaryStatus
from ..core.exceptions import ValidationError
from ..sessions.duration import closed_duration, counts_as_nullified
from ..sessions.model import AttendanceSession
from .model import AttendanceSummary, SummaryDelta

if TYPE_CHECKING:
    from ..database.unit_of_work import UnitOfWork

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SummaryDrift:
    field: str
    stored: object
    expected: object


class SummaryAggregator:
    """Sole writer of student-event summaries.

    Called inside the caller's unit of work, exactly once per session close and
    once per session open, so the summary commits with the session change.
    """

    @staticmethod
    def delta_for(session: AttendanceSession) -> SummaryDelta:
        if session.check_out_time is None:
            raise ValidationError("Only closed sessions can be aggregated")

        seconds = closed_duration(session)
        activity_date = session.check_out_time.date()
        if counts_as_nullified(session.status):
            return SummaryDelta(
                nullified_seconds=seconds,
                sessions=1,
                nullified_sessions=1,
                improper_checkout=True,
                activity_date=activity_date,
            )
        return SummaryDelta(valid_seconds=seconds, sessions=1, activity_date=activity_date)

    def apply_opened_session(self, uow: "UnitOfWork", session: AttendanceSession) -> None:
        uow.summaries.ensure(session.event_id, session.student_id)
        uow.summaries.mark_checked_in(session.event_id, session.student_id, check_in_time=session.check_in_time)

    def apply_closed_session(self, uow: "UnitOfWork", session: AttendanceSession) -> SummaryDelta:
        delta = self.delta_for(session)
        uow.summaries.ensure(session.event_id, session.student_id)
        uow.summaries.apply_delta(session.event_id, session.student_id, delta)
        return delta

    # ----- offline tools (never on the scan path) -----

    def compute_from_history(self, uow: "UnitOfWork", event_id: str, student_id: str) -> AttendanceSummary:
        summary = AttendanceSummary(event_id=event_id, student_id=student_id)
        has_open = False
        for session in uow.sessions.list_for_pair(event_id, student_id):
            if session.check_out_time is None:
                has_open = True
            else:
                summary = summary.with_delta(self.delta_for(session))
            if summary.last_check_in_time is None or session.check_in_time > summary.last_check_in_time:
                summary = replace(summary, last_check_in_time=session.check_in_time)

        if has_open:
            summary = replace(summary, current_status=SummaryStatus.CHECKED_IN)
        return summary

    def verify(self, uow: "UnitOfWork", event_id: str, student_id: str) -> list[SummaryDrift]:
        stored = uow.summaries.get(event_id, student_id) or AttendanceSummary(event_id=event_id, student_id=student_id)
        expected = self.compute_from_history(uow, event_id, student_id)

        drift: list[SummaryDrift] = []
        for field in (
            "total_valid_duration",
            "total_nullified_duration",
            "total_sessions",
            "nullified_sessions",
            "current_status",
        ):
            if getattr(stored, field) != getattr(expected, field):
                drift.append(SummaryDrift(field=field, stored=getattr(stored, field), expected=getattr(expected, field)))

        # The flag is sticky, so a stored True without nullified history is still legal.
        if expected.has_improper_checkouts and not stored.has_improper_checkouts:
            drift.append(SummaryDrift(field="has_improper_checkouts", stored=False, expected=True))
        return drift

    def rebuild(self, uow: "UnitOfWork", event_id: str, student_id: str) -> AttendanceSummary:
        """Recompute one summary row from its session history and overwrite it."""
        uow.summaries.ensure(event_id, student_id)
        stored = uow.summaries.lock(event_id, student_id)
        rebuilt = self.compute_from_history(uow, event_id, student_id)
        if stored is not None and stored.has_improper_checkouts and not rebuilt.has_improper_checkouts:
            rebuilt = replace(rebuilt, has_improper_checkouts=True)
        uow.summaries.replace(rebuilt)
        logger.info(
            "Rebuilt summary event=%s student=%s sessions=%s valid=%ss nullified=%ss",
            event_id,
            student_id,
            rebuilt.total_sessions,
            rebuilt.total_valid_duration,
            rebuilt.total_nullified_duration,
        )
        return rebuilt
