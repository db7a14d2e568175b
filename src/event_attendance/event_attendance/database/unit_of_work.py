from __future__ import annotations

from typing import Callable, Protocol

from ..events.repository import EventRepository
from ..scans.repository import ScanLogRepository
from ..sessions.repository import SessionRepository
from ..students.repository import StudentRepository
from ..summaries.repository import SummaryRepository


class UnitOfWork(Protocol):
    """Narrow storage interface: one transaction spanning every repository.

    Used as a context manager. Leaving the block normally commits; leaving it
    with an exception rolls every write back, so a scan is all-or-nothing.
    """

    events: EventRepository
    students: StudentRepository
    sessions: SessionRepository
    summaries: SummaryRepository
    scan_logs: ScanLogRepository

    def __enter__(self) -> "UnitOfWork":
        raise NotImplementedError

    def __exit__(self, exc_type, exc, tb) -> None:
        raise NotImplementedError


UnitOfWorkFactory = Callable[[], UnitOfWork]
