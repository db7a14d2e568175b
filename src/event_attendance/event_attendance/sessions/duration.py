"""Duration & nullification rules.

Pure functions: nothing here touches storage. Whatever decides how much of a
session counts (valid vs. nullified) lives in this module so the session
manager, the stop sweep and the summary aggregator agree on the arithmetic.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from typing import Optional

from ..core.constants import CLOCK_SKEW_AUDIT_NOTE
from ..core.enums import SessionStatus
from ..core.exceptions import ValidationError
from .model import AttendanceSession


@dataclass(frozen=True)
class SessionClose:
    """Everything written to a session row when it closes."""

    check_out_time: datetime
    status: SessionStatus
    duration_seconds: int
    is_nullified: bool = False
    nullified_duration: Optional[int] = None
    nullified_reason: Optional[str] = None
    event_stop_time: Optional[datetime] = None
    check_out_gate: Optional[str] = None
    audit_note: Optional[str] = None

    @property
    def clock_skew(self) -> bool:
        return self.audit_note is not None

    def apply_to(self, session: AttendanceSession) -> AttendanceSession:
        return replace(
            session,
            check_out_time=self.check_out_time,
            status=self.status,
            is_nullified=self.is_nullified,
            nullified_duration=self.nullified_duration,
            nullified_reason=self.nullified_reason,
            event_stop_time=self.event_stop_time,
            check_out_gate=self.check_out_gate,
            audit_note=self.audit_note,
        )


def duration_seconds(check_in: datetime, check_out: datetime) -> int:
    """Elapsed whole seconds, never negative (clock skew clamps to 0)."""
    return max(0, int((check_out - check_in).total_seconds()))


def is_clock_skewed(check_in: datetime, check_out: datetime) -> bool:
    return check_out < check_in


def counts_as_valid(status: SessionStatus) -> bool:
    return status == SessionStatus.CHECKED_OUT


def counts_as_nullified(status: SessionStatus) -> bool:
    return status == SessionStatus.AUTO_CHECKOUT


def _require_open(session: AttendanceSession) -> None:
    if not session.is_open:
        raise ValidationError(f"Session {session.session_id} is already closed")


def resolve_checkout(session: AttendanceSession, *, at: datetime, gate: Optional[str] = None) -> SessionClose:
    """Close produced by a genuine check-out scan."""
    _require_open(session)
    return SessionClose(
        check_out_time=at,
        status=SessionStatus.CHECKED_OUT,
        duration_seconds=duration_seconds(session.check_in_time, at),
        check_out_gate=gate,
        audit_note=CLOCK_SKEW_AUDIT_NOTE if is_clock_skewed(session.check_in_time, at) else None,
    )


def resolve_nullification(session: AttendanceSession, *, stop_time: datetime, reason: str) -> SessionClose:
    """Close produced by the event stop sweep.

    The student's real departure time is unknown, so the whole interval up to
    the stop is tracked as nullified time instead of attendance.
    """
    _require_open(session)
    elapsed = duration_seconds(session.check_in_time, stop_time)
    return SessionClose(
        check_out_time=stop_time,
        status=SessionStatus.AUTO_CHECKOUT,
        duration_seconds=elapsed,
        is_nullified=True,
        nullified_duration=elapsed,
        nullified_reason=reason,
        event_stop_time=stop_time,
        audit_note=CLOCK_SKEW_AUDIT_NOTE if is_clock_skewed(session.check_in_time, stop_time) else None,
    )


def closed_duration(session: AttendanceSession) -> int:
    if session.check_out_time is None:
        raise ValidationError(f"Session {session.session_id} is still open")
    return duration_seconds(session.check_in_time, session.check_out_time)


def live_duration(session: AttendanceSession, *, now: datetime) -> int:
    """Duration for display: open sessions are measured against wall-clock now.

    The value is never persisted; only closing a session writes a duration.
    """
    if session.check_out_time is None:
        return duration_seconds(session.check_in_time, now)
    return closed_duration(session)


def format_duration(seconds: int, *, ongoing: bool = False) -> str:
    minutes = max(0, int(seconds)) // 60
    hours, minutes = divmod(minutes, 60)
    text = f"{hours}h {minutes}m" if hours > 0 else f"{minutes}m"
    return f"{text} (ongoing)" if ongoing else text
