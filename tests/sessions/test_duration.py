from __future__ import annotations

from datetime import datetime, timedelta

import pytest

from src.event_attendance.event_attendance.core.constants import CLOCK_SKEW_AUDIT_NOTE
from src.event_attendance.event_attendance.core.enums import SessionStatus
from src.event_attendance.event_attendance.core.exceptions import ValidationError
from src.event_attendance.event_attendance.sessions.duration import (
    closed_duration,
    counts_as_nullified,
    counts_as_valid,
    duration_seconds,
    format_duration,
    live_duration,
    resolve_checkout,
    resolve_nullification,
)
from src.event_attendance.event_attendance.sessions.model import AttendanceSession

T0 = datetime(2026, 3, 1, 10, 0, 0)


def _open(check_in=T0) -> AttendanceSession:
    return AttendanceSession(session_id=1, event_id="expo", student_id="stu-1", check_in_time=check_in)


def test_duration_truncates_fractional_seconds():
    assert duration_seconds(T0, T0 + timedelta(seconds=59, milliseconds=900)) == 59
    assert duration_seconds(T0, T0 + timedelta(hours=1)) == 3600


@pytest.mark.parametrize("offset", [0, -1, -3600, -86400])
def test_duration_is_never_negative(offset):
    assert duration_seconds(T0, T0 + timedelta(seconds=offset)) == 0


def test_status_classification():
    assert counts_as_valid(SessionStatus.CHECKED_OUT)
    assert not counts_as_valid(SessionStatus.AUTO_CHECKOUT)
    assert counts_as_nullified(SessionStatus.AUTO_CHECKOUT)
    assert not counts_as_nullified(SessionStatus.CHECKED_IN)


def test_resolve_checkout_sets_close_columns():
    close = resolve_checkout(_open(), at=T0 + timedelta(minutes=90), gate="gate-b")

    assert close.status == SessionStatus.CHECKED_OUT
    assert close.duration_seconds == 5400
    assert close.check_out_gate == "gate-b"
    assert close.is_nullified is False
    assert close.nullified_duration is None
    assert close.clock_skew is False


def test_resolve_checkout_clamps_clock_skew():
    close = resolve_checkout(_open(), at=T0 - timedelta(minutes=5))

    assert close.duration_seconds == 0
    assert close.clock_skew is True
    assert close.audit_note == CLOCK_SKEW_AUDIT_NOTE
    assert close.check_out_time == T0 - timedelta(minutes=5)


def test_resolve_nullification_tracks_whole_interval():
    stop = T0 + timedelta(hours=2)
    close = resolve_nullification(_open(), stop_time=stop, reason="Power cut")

    assert close.status == SessionStatus.AUTO_CHECKOUT
    assert close.is_nullified is True
    assert close.nullified_duration == 7200
    assert close.nullified_reason == "Power cut"
    assert close.event_stop_time == stop
    assert close.check_out_time == stop

    closed = close.apply_to(_open())
    assert not closed.is_open
    assert closed_duration(closed) == 7200


def test_resolving_a_closed_session_is_rejected():
    closed = resolve_checkout(_open(), at=T0 + timedelta(minutes=1)).apply_to(_open())

    with pytest.raises(ValidationError):
        resolve_checkout(closed, at=T0 + timedelta(minutes=2))
    with pytest.raises(ValidationError):
        resolve_nullification(closed, stop_time=T0 + timedelta(minutes=2), reason="x")


def test_closed_duration_requires_closed_session():
    with pytest.raises(ValidationError):
        closed_duration(_open())


def test_live_duration_uses_now_only_for_open_sessions():
    session = _open()
    now = T0 + timedelta(minutes=25)
    assert live_duration(session, now=now) == 1500

    closed = resolve_checkout(session, at=T0 + timedelta(minutes=10)).apply_to(session)
    assert live_duration(closed, now=now) == 600


@pytest.mark.parametrize(
    "seconds, ongoing, expected",
    [
        (0, False, "0m"),
        (59, False, "0m"),
        (2700, False, "45m"),
        (7500, False, "2h 5m"),
        (3600, True, "1h 0m (ongoing)"),
    ],
)
def test_format_duration(seconds, ongoing, expected):
    assert format_duration(seconds, ongoing=ongoing) == expected
