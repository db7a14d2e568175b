from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .core.constants import DEFAULT_SCAN_COOLDOWN_SECONDS, DEFAULT_STOP_REASON
from .core.enums import StorageBackend
from .database.connection import DBConfig, DatabaseConnection
from .database.memory_store import InMemoryStore
from .database.mysql_unit_of_work import mysql_unit_of_work_factory
from .database.unit_of_work import UnitOfWorkFactory
from .events.lifecycle import EventLifecycleController
from .reports.service import AttendanceQueryService
from .scans.ingestor import ScanIngestor
from .sessions.service import AttendanceSessionManager
from .summaries.aggregator import SummaryAggregator


@dataclass(frozen=True)
class Container:
    uow_factory: UnitOfWorkFactory
    conn: Optional[DatabaseConnection]
    memory_store: Optional[InMemoryStore]

    aggregator: SummaryAggregator
    session_manager: AttendanceSessionManager
    lifecycle_controller: EventLifecycleController
    scan_ingestor: ScanIngestor
    query_service: AttendanceQueryService


def build_container(
    *,
    db_config: Optional[dict] = None,
    storage_backend: str = StorageBackend.MYSQL.value,
    memory_store: Optional[InMemoryStore] = None,
    scan_cooldown_seconds: int = DEFAULT_SCAN_COOLDOWN_SECONDS,
    default_stop_reason: str = DEFAULT_STOP_REASON,
) -> Container:
    backend = StorageBackend(storage_backend)

    conn: Optional[DatabaseConnection] = None
    if backend == StorageBackend.MEMORY:
        memory_store = memory_store or InMemoryStore()
        uow_factory: UnitOfWorkFactory = memory_store.unit_of_work
    else:
        if not db_config:
            raise ValueError("db_config is required for the mysql storage backend")
        conn = DatabaseConnection.get_instance(DBConfig.from_dict(db_config))
        uow_factory = mysql_unit_of_work_factory(conn)
        memory_store = None

    aggregator = SummaryAggregator()
    session_manager = AttendanceSessionManager(
        uow_factory,
        aggregator,
        scan_cooldown_seconds=scan_cooldown_seconds,
    )
    lifecycle_controller = EventLifecycleController(
        uow_factory,
        session_manager,
        default_stop_reason=default_stop_reason,
    )
    scan_ingestor = ScanIngestor(session_manager)
    query_service = AttendanceQueryService(uow_factory)

    return Container(
        uow_factory=uow_factory,
        conn=conn,
        memory_store=memory_store,
        aggregator=aggregator,
        session_manager=session_manager,
        lifecycle_controller=lifecycle_controller,
        scan_ingestor=scan_ingestor,
        query_service=query_service,
    )
