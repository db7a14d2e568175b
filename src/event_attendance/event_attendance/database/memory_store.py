"""In-memory storage backend.

Implements the same unit-of-work interface as MySQL. Every unit of work holds
the store's re-entrant lock for its whole duration (serializable isolation)
and restores a snapshot if the block raises, so scans stay all-or-nothing.
Used by the test-suite and by STORAGE_BACKEND=memory.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Optional, Sequence

from ..core.enums import EventStatus, LockMode, ScanAction, ScanOutcomeKind, SessionStatus, SummaryStatus
from ..events.model import Event
from ..scans.model import ScanLogEntry
from ..sessions.duration import SessionClose
from ..sessions.model import AttendanceSession
from ..students.model import Student
from ..summaries.model import AttendanceSummary, SummaryDelta


@dataclass
class _State:
    events: dict[str, Event] = field(default_factory=dict)
    students: dict[str, Student] = field(default_factory=dict)
    sessions: dict[int, AttendanceSession] = field(default_factory=dict)
    summaries: dict[tuple[str, str], AttendanceSummary] = field(default_factory=dict)
    scan_logs: list[ScanLogEntry] = field(default_factory=list)
    next_session_id: int = 1
    next_scan_id: int = 1

    def copy(self) -> "_State":
        # Entities are frozen dataclasses, so shallow container copies suffice.
        return _State(
            events=dict(self.events),
            students=dict(self.students),
            sessions=dict(self.sessions),
            summaries=dict(self.summaries),
            scan_logs=list(self.scan_logs),
            next_session_id=self.next_session_id,
            next_scan_id=self.next_scan_id,
        )


class InMemoryStore:
    def __init__(self):
        self.lock = threading.RLock()
        self.state = _State()

    # ----- seeding (the event CRUD and identity layers own these rows) -----

    def add_event(
        self,
        event_id: str,
        name: str = "",
        *,
        status: EventStatus = EventStatus.ACTIVE,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ) -> Event:
        event = Event(event_id=event_id, name=name or event_id, status=status, start_date=start_date, end_date=end_date)
        with self.lock:
            self.state.events[event_id] = event
        return event

    def add_student(self, student_id: str, full_name: str = "", *, is_active: bool = True, **extra) -> Student:
        student = Student(student_id=student_id, full_name=full_name or student_id, is_active=is_active, **extra)
        with self.lock:
            self.state.students[student_id] = student
        return student

    def unit_of_work(self) -> "InMemoryUnitOfWork":
        return InMemoryUnitOfWork(self)


class InMemoryUnitOfWork:
    def __init__(self, store: InMemoryStore):
        self._store = store
        self._snapshot: Optional[_State] = None

        self.events = InMemoryEventRepository(store)
        self.students = InMemoryStudentRepository(store)
        self.sessions = InMemorySessionRepository(store)
        self.summaries = InMemorySummaryRepository(store)
        self.scan_logs = InMemoryScanLogRepository(store)

    def __enter__(self) -> "InMemoryUnitOfWork":
        self._store.lock.acquire()
        self._snapshot = self._store.state.copy()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        try:
            if exc_type is not None and self._snapshot is not None:
                self._store.state = self._snapshot
        finally:
            self._snapshot = None
            self._store.lock.release()


class _Repo:
    def __init__(self, store: InMemoryStore):
        self._store = store

    @property
    def _state(self) -> _State:
        return self._store.state


class InMemoryEventRepository(_Repo):
    def get(self, event_id: str, *, lock: LockMode = LockMode.NONE) -> Optional[Event]:
        return self._state.events.get(event_id)

    def mark_started(self, event_id: str, *, started_at: datetime) -> bool:
        event = self._state.events.get(event_id)
        if event is None:
            return False
        self._state.events[event_id] = replace(
            event, status=EventStatus.ACTIVE, started_at=started_at, stopped_at=None, stop_reason=None
        )
        return True

    def mark_stopped(self, event_id: str, *, stopped_at: datetime, reason: str) -> bool:
        event = self._state.events.get(event_id)
        if event is None or event.status == EventStatus.STOPPED:
            return False
        self._state.events[event_id] = replace(event, status=EventStatus.STOPPED, stopped_at=stopped_at, stop_reason=reason)
        return True


class InMemoryStudentRepository(_Repo):
    def get(self, student_id: str) -> Optional[Student]:
        return self._state.students.get(student_id)


class InMemorySessionRepository(_Repo):
    def _pair(self, event_id: str, student_id: str) -> list[AttendanceSession]:
        rows = [s for s in self._state.sessions.values() if s.event_id == event_id and s.student_id == student_id]
        rows.sort(key=lambda s: (s.check_in_time, s.session_id))
        return rows

    def get(self, session_id: int) -> Optional[AttendanceSession]:
        return self._state.sessions.get(int(session_id))

    def find_open(self, event_id: str, student_id: str, *, for_update: bool = False) -> Optional[AttendanceSession]:
        open_rows = [s for s in self._pair(event_id, student_id) if s.is_open]
        return open_rows[-1] if open_rows else None

    def get_latest_for_pair(self, event_id: str, student_id: str) -> Optional[AttendanceSession]:
        rows = self._pair(event_id, student_id)
        return max(rows, key=lambda s: s.session_id) if rows else None

    def create_open(
        self,
        *,
        event_id: str,
        student_id: str,
        check_in_time: datetime,
        gate: Optional[str] = None,
    ) -> AttendanceSession:
        if self.find_open(event_id, student_id) is not None:
            # Mirrors the unique open_pair_key index of the MySQL schema.
            raise RuntimeError(f"Open session already exists for event={event_id} student={student_id}")
        session = AttendanceSession(
            session_id=self._state.next_session_id,
            event_id=event_id,
            student_id=student_id,
            check_in_time=check_in_time,
            status=SessionStatus.CHECKED_IN,
            check_in_gate=gate,
        )
        self._state.sessions[session.session_id] = session
        self._state.next_session_id += 1
        return session

    def close(self, session_id: int, close: SessionClose) -> bool:
        session = self._state.sessions.get(int(session_id))
        if session is None or not session.is_open:
            return False
        self._state.sessions[session.session_id] = close.apply_to(session)
        return True

    def list_for_pair(self, event_id: str, student_id: str) -> Sequence[AttendanceSession]:
        return self._pair(event_id, student_id)

    def list_for_event(self, event_id: str) -> Sequence[AttendanceSession]:
        rows = [s for s in self._state.sessions.values() if s.event_id == event_id]
        rows.sort(key=lambda s: (s.check_in_time, s.session_id))
        return rows

    def list_open_for_event(self, event_id: str) -> Sequence[AttendanceSession]:
        rows = [s for s in self._state.sessions.values() if s.event_id == event_id and s.is_open]
        rows.sort(key=lambda s: s.session_id)
        return rows


class InMemorySummaryRepository(_Repo):
    def ensure(self, event_id: str, student_id: str) -> None:
        self._state.summaries.setdefault((event_id, student_id), AttendanceSummary(event_id=event_id, student_id=student_id))

    def lock(self, event_id: str, student_id: str) -> Optional[AttendanceSummary]:
        return self._state.summaries.get((event_id, student_id))

    def get(self, event_id: str, student_id: str) -> Optional[AttendanceSummary]:
        return self._state.summaries.get((event_id, student_id))

    def mark_checked_in(self, event_id: str, student_id: str, *, check_in_time: datetime) -> None:
        key = (event_id, student_id)
        summary = self._state.summaries.get(key)
        if summary is not None:
            self._state.summaries[key] = replace(
                summary, current_status=SummaryStatus.CHECKED_IN, last_check_in_time=check_in_time
            )

    def apply_delta(self, event_id: str, student_id: str, delta: SummaryDelta) -> None:
        key = (event_id, student_id)
        summary = self._state.summaries.get(key)
        if summary is not None:
            self._state.summaries[key] = summary.with_delta(delta)

    def replace(self, summary: AttendanceSummary) -> None:
        self._state.summaries[(summary.event_id, summary.student_id)] = summary

    def list_for_event(self, event_id: str, *, improper_only: bool = False) -> Sequence[AttendanceSummary]:
        rows = [
            s
            for s in self._state.summaries.values()
            if s.event_id == event_id and (s.has_improper_checkouts or not improper_only)
        ]
        rows.sort(key=lambda s: (-s.total_valid_duration, s.student_id))
        return rows


class InMemoryScanLogRepository(_Repo):
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
        entry = ScanLogEntry(
            scan_id=self._state.next_scan_id,
            event_id=event_id,
            student_id=student_id,
            gate=gate,
            scan_time=scan_time,
            action=action,
            outcome=outcome,
            session_id=session_id,
            scanned_by=scanned_by,
        )
        self._state.scan_logs.append(entry)
        self._state.next_scan_id += 1
        return entry.scan_id

    def list_for_event(self, event_id: str, *, limit: int) -> Sequence[ScanLogEntry]:
        rows = [e for e in self._state.scan_logs if e.event_id == event_id]
        rows.sort(key=lambda e: (e.scan_time, e.scan_id), reverse=True)
        return rows[: int(limit)]
