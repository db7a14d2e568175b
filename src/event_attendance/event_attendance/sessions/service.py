from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..common.datetime_utils import to_utc_naive
from ..core.constants import DEFAULT_SCAN_COOLDOWN_SECONDS
from ..core.enums import EventStatus, LockMode, ScanAction, ScanOutcomeKind
from ..core.exceptions import ConcurrentModificationError
from ..database.unit_of_work import UnitOfWork, UnitOfWorkFactory
from ..summaries.aggregator import SummaryAggregator
from .duration import SessionClose, resolve_checkout, resolve_nullification
from .model import AttendanceSession

logger = logging.getLogger(__name__)

_REJECTION_MESSAGES = {
    ScanOutcomeKind.NOT_FOUND: "Event or student not found",
    ScanOutcomeKind.EVENT_STOPPED: "This event has been stopped",
    ScanOutcomeKind.EVENT_NOT_STARTED: "This event has not started yet",
    ScanOutcomeKind.STUDENT_INACTIVE: "Student account is inactive",
    ScanOutcomeKind.DUPLICATE: "Duplicate scan ignored",
}


@dataclass(frozen=True)
class NullifyBatch:
    """Sessions closed by one sweep pass, and the ones that failed to close."""

    closed: tuple[AttendanceSession, ...] = ()
    failed_session_ids: tuple[int, ...] = ()


@dataclass(frozen=True)
class ScanOutcome:
    kind: ScanOutcomeKind
    event_id: str
    student_id: str
    session: Optional[AttendanceSession] = None
    duration_seconds: Optional[int] = None
    clock_skew: bool = False

    @property
    def accepted(self) -> bool:
        return self.kind in (ScanOutcomeKind.OPENED, ScanOutcomeKind.CLOSED)

    @property
    def message(self) -> str:
        if self.kind == ScanOutcomeKind.OPENED:
            return "Student checked in successfully"
        if self.kind == ScanOutcomeKind.CLOSED:
            return "Student checked out successfully"
        return _REJECTION_MESSAGES[self.kind]


class AttendanceSessionManager:
    """State machine turning scan facts into attendance sessions.

    Every scan runs in one unit of work and is serialized per (event, student)
    by a row lock on the pair's summary row, so at most one session of a pair
    is ever open.
    """

    def __init__(
        self,
        uow_factory: UnitOfWorkFactory,
        aggregator: SummaryAggregator | None = None,
        *,
        scan_cooldown_seconds: int = DEFAULT_SCAN_COOLDOWN_SECONDS,
    ):
        self._uow_factory = uow_factory
        self._aggregator = aggregator or SummaryAggregator()
        self._cooldown_seconds = max(0, int(scan_cooldown_seconds))

    def record_scan(
        self,
        event_id: str,
        student_id: str,
        gate: str,
        timestamp: datetime,
        *,
        scanned_by: Optional[str] = None,
    ) -> ScanOutcome:
        timestamp = to_utc_naive(timestamp)
        with self._uow_factory() as uow:
            # Shared lock: a concurrent stop waits for this scan to commit.
            event = uow.events.get(event_id, lock=LockMode.SHARE)
            student = uow.students.get(student_id)
            if event is None or student is None:
                logger.info("Scan rejected (not found) event=%s student=%s gate=%s", event_id, student_id, gate)
                return ScanOutcome(kind=ScanOutcomeKind.NOT_FOUND, event_id=event_id, student_id=student_id)

            rejection = None
            if event.status == EventStatus.STOPPED:
                rejection = ScanOutcomeKind.EVENT_STOPPED
            elif event.status != EventStatus.ACTIVE:
                rejection = ScanOutcomeKind.EVENT_NOT_STARTED
            elif not student.is_active:
                rejection = ScanOutcomeKind.STUDENT_INACTIVE

            if rejection is None:
                self._lock_pair(uow, event_id, student_id)
                current = uow.sessions.find_open(event_id, student_id, for_update=True)
                if self._is_duplicate(uow, event_id, student_id, current, timestamp):
                    rejection = ScanOutcomeKind.DUPLICATE

            if rejection is not None:
                uow.scan_logs.append(
                    event_id=event_id,
                    student_id=student_id,
                    gate=gate,
                    scan_time=timestamp,
                    action=ScanAction.REJECTED,
                    outcome=rejection,
                    scanned_by=scanned_by,
                )
                logger.info("Scan rejected (%s) event=%s student=%s gate=%s", rejection.value, event_id, student_id, gate)
                return ScanOutcome(kind=rejection, event_id=event_id, student_id=student_id)

            if current is None:
                opened = uow.sessions.create_open(
                    event_id=event_id,
                    student_id=student_id,
                    check_in_time=timestamp,
                    gate=gate,
                )
                self._aggregator.apply_opened_session(uow, opened)
                uow.scan_logs.append(
                    event_id=event_id,
                    student_id=student_id,
                    gate=gate,
                    scan_time=timestamp,
                    action=ScanAction.CHECK_IN,
                    outcome=ScanOutcomeKind.OPENED,
                    session_id=opened.session_id,
                    scanned_by=scanned_by,
                )
                logger.info("Checked in event=%s student=%s session=%s gate=%s", event_id, student_id, opened.session_id, gate)
                return ScanOutcome(kind=ScanOutcomeKind.OPENED, event_id=event_id, student_id=student_id, session=opened)

            resolved = resolve_checkout(current, at=timestamp, gate=gate)
            closed = self._close(uow, current, resolved)
            uow.scan_logs.append(
                event_id=event_id,
                student_id=student_id,
                gate=gate,
                scan_time=timestamp,
                action=ScanAction.CHECK_OUT,
                outcome=ScanOutcomeKind.CLOSED,
                session_id=closed.session_id,
                scanned_by=scanned_by,
            )
            if resolved.clock_skew:
                logger.warning(
                    "Clock skew on check-out event=%s student=%s session=%s check_in=%s check_out=%s",
                    event_id,
                    student_id,
                    closed.session_id,
                    current.check_in_time,
                    timestamp,
                )
            logger.info(
                "Checked out event=%s student=%s session=%s duration=%ss",
                event_id,
                student_id,
                closed.session_id,
                resolved.duration_seconds,
            )
            return ScanOutcome(
                kind=ScanOutcomeKind.CLOSED,
                event_id=event_id,
                student_id=student_id,
                session=closed,
                duration_seconds=resolved.duration_seconds,
                clock_skew=resolved.clock_skew,
            )

    def nullify_open_sessions(self, event_id: str, *, stop_time: datetime, reason: str) -> NullifyBatch:
        """Bulk-close path used by the event stop sweep.

        Each session closes in its own unit of work and only if it is still
        open, so an interrupted or repeated sweep never double-counts. A session
        that fails to close is rolled back, logged and reported; the sweep moves
        on to the rest and a later stop retries it.
        """
        stop_time = to_utc_naive(stop_time)
        with self._uow_factory() as uow:
            pending = list(uow.sessions.list_open_for_event(event_id))

        closed: list[AttendanceSession] = []
        failed: list[int] = []
        for candidate in pending:
            try:
                session = self._nullify_one(candidate, stop_time=stop_time, reason=reason)
            except Exception:
                logger.exception(
                    "Stop sweep could not close session=%s event=%s student=%s",
                    candidate.session_id,
                    candidate.event_id,
                    candidate.student_id,
                )
                failed.append(candidate.session_id)
                continue
            if session is not None:
                closed.append(session)
        return NullifyBatch(closed=tuple(closed), failed_session_ids=tuple(failed))

    def _nullify_one(
        self,
        candidate: AttendanceSession,
        *,
        stop_time: datetime,
        reason: str,
    ) -> Optional[AttendanceSession]:
        with self._uow_factory() as uow:
            self._lock_pair(uow, candidate.event_id, candidate.student_id)
            current = uow.sessions.find_open(candidate.event_id, candidate.student_id, for_update=True)
            if current is None or current.session_id != candidate.session_id:
                return None
            resolved = resolve_nullification(current, stop_time=stop_time, reason=reason)
            return self._close(uow, current, resolved)

    def _lock_pair(self, uow: UnitOfWork, event_id: str, student_id: str) -> None:
        uow.summaries.ensure(event_id, student_id)
        uow.summaries.lock(event_id, student_id)

    def _close(self, uow: UnitOfWork, session: AttendanceSession, resolved: SessionClose) -> AttendanceSession:
        if not uow.sessions.close(session.session_id, resolved):
            raise ConcurrentModificationError(f"Session {session.session_id} was closed concurrently")
        closed = resolved.apply_to(session)
        self._aggregator.apply_closed_session(uow, closed)
        return closed

    def _is_duplicate(
        self,
        uow: UnitOfWork,
        event_id: str,
        student_id: str,
        current: Optional[AttendanceSession],
        timestamp: datetime,
    ) -> bool:
        if not self._cooldown_seconds:
            return False

        if current is not None:
            last_transition = current.check_in_time
        else:
            latest = uow.sessions.get_latest_for_pair(event_id, student_id)
            last_transition = latest.check_out_time if latest is not None else None
        if last_transition is None:
            return False
        return abs((timestamp - last_transition).total_seconds()) < self._cooldown_seconds
