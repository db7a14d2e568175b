from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..common.datetime_utils import to_utc_naive, utc_now
from ..common.validators import optional_text, require_max_length
from ..core.constants import DEFAULT_STOP_REASON
from ..core.enums import LockMode
from ..core.exceptions import NotFoundError
from ..database.unit_of_work import UnitOfWorkFactory
from ..sessions.duration import closed_duration
from ..sessions.model import AttendanceSession
from ..sessions.service import AttendanceSessionManager
from .model import Event

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SweepResult:
    event_id: str
    stop_time: datetime
    reason: str
    closed_sessions: tuple[AttendanceSession, ...] = ()
    already_stopped: bool = False
    failed_session_ids: tuple[int, ...] = ()

    @property
    def complete(self) -> bool:
        return not self.failed_session_ids

    @property
    def nullified_count(self) -> int:
        return len(self.closed_sessions)

    @property
    def nullified_seconds(self) -> int:
        return sum(closed_duration(s) for s in self.closed_sessions)


class EventLifecycleController:
    """Drives event start/stop transitions.

    Stopping an event first flips it to STOPPED under an exclusive row lock
    (after which every scan for it is rejected) and then sweeps the sessions
    still open into nullified auto-checkouts.
    """

    def __init__(
        self,
        uow_factory: UnitOfWorkFactory,
        sessions: AttendanceSessionManager,
        *,
        default_stop_reason: str = DEFAULT_STOP_REASON,
    ):
        self._uow_factory = uow_factory
        self._sessions = sessions
        self._default_stop_reason = default_stop_reason

    def on_event_started(self, event_id: str, start_time: Optional[datetime] = None) -> Event:
        start_time = to_utc_naive(start_time or utc_now())
        with self._uow_factory() as uow:
            event = uow.events.get(event_id, lock=LockMode.UPDATE)
            if event is None:
                raise NotFoundError(f"Event {event_id} not found")
            uow.events.mark_started(event_id, started_at=start_time)
            started = uow.events.get(event_id)

        logger.info("Event started event=%s at=%s (previous status=%s)", event_id, start_time, event.status.value)
        return started

    def on_event_stopped(
        self,
        event_id: str,
        stop_time: Optional[datetime] = None,
        reason: Optional[str] = None,
    ) -> SweepResult:
        stop_time = to_utc_naive(stop_time or utc_now())
        reason = require_max_length(optional_text(reason) or self._default_stop_reason, "reason", 255)

        with self._uow_factory() as uow:
            event = uow.events.get(event_id, lock=LockMode.UPDATE)
            if event is None:
                raise NotFoundError(f"Event {event_id} not found")

            already_stopped = event.is_stopped
            if already_stopped:
                # Resume with the first stop's values so a retry cannot shift them.
                stop_time = event.stopped_at or stop_time
                reason = event.stop_reason or reason
            else:
                uow.events.mark_stopped(event_id, stopped_at=stop_time, reason=reason)

        batch = self._sessions.nullify_open_sessions(event_id, stop_time=stop_time, reason=reason)
        result = SweepResult(
            event_id=event_id,
            stop_time=stop_time,
            reason=reason,
            closed_sessions=batch.closed,
            already_stopped=already_stopped,
            failed_session_ids=batch.failed_session_ids,
        )
        logger.info(
            "Event stop sweep event=%s stop_time=%s nullified_sessions=%s nullified_seconds=%s resumed=%s",
            event_id,
            stop_time,
            result.nullified_count,
            result.nullified_seconds,
            already_stopped,
        )
        if not result.complete:
            logger.warning(
                "Event stop sweep incomplete event=%s failed_sessions=%s; stop the event again to retry",
                event_id,
                list(result.failed_session_ids),
            )
        return result
