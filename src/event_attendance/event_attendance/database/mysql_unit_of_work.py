from __future__ import annotations

from typing import Optional

from ..events.mysql_event_repository import MySQLEventRepository
from ..scans.mysql_scan_log_repository import MySQLScanLogRepository
from ..sessions.mysql_session_repository import MySQLSessionRepository
from ..students.mysql_student_repository import MySQLStudentRepository
from ..summaries.mysql_summary_repository import MySQLSummaryRepository
from .connection import DatabaseConnection
from .mysql_base import db_transaction


class MySQLUnitOfWork:
    """One MySQL transaction shared by every repository.

    Repositories are bound to the transaction's cursor, so row locks taken by
    one (the pair's summary row, the event row) cover the writes of the others.
    """

    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory
        self._tx = None

    def __enter__(self) -> "MySQLUnitOfWork":
        if self._tx is not None:
            raise RuntimeError("MySQLUnitOfWork is not re-entrant")
        self._tx = db_transaction(self._conn_factory)
        _, cur = self._tx.__enter__()

        self.events = MySQLEventRepository(cur)
        self.students = MySQLStudentRepository(cur)
        self.sessions = MySQLSessionRepository(cur)
        self.summaries = MySQLSummaryRepository(cur)
        self.scan_logs = MySQLScanLogRepository(cur)
        return self

    def __exit__(self, exc_type, exc, tb) -> Optional[bool]:
        tx, self._tx = self._tx, None
        return tx.__exit__(exc_type, exc, tb)


def mysql_unit_of_work_factory(conn_factory: DatabaseConnection):
    def factory() -> MySQLUnitOfWork:
        return MySQLUnitOfWork(conn_factory)

    return factory
