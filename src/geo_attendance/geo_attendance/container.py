from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .api import AttendanceApi
from .attendance.document_attendance_repository import DocumentAttendanceRepository
from .attendance.factory import AttendanceStrategyFactory
from .attendance.report_service import AttendanceReportService
from .attendance.service import AttendanceCoordinator
from .classes.document_class_directory import DocumentClassDirectory
from .common.datetime_utils import Clock, SystemClock
from .database.connection import DBConfig, DatabaseConnection
from .database.document_store import DocumentStore
from .database.memory_store import InMemoryDocumentStore
from .database.mysql_document_store import MySQLDocumentStore
from .sessions.document_session_repository import DocumentSessionRepository
from .sessions.lifecycle import SessionLifecycle
from .sessions.service import SessionManager


@dataclass(frozen=True)
class Container:
    store: DocumentStore
    clock: Clock

    classes: DocumentClassDirectory
    sessions_repo: DocumentSessionRepository
    attendance_repo: DocumentAttendanceRepository

    session_lifecycle: SessionLifecycle
    session_manager: SessionManager
    attendance_coordinator: AttendanceCoordinator
    report_service: AttendanceReportService
    api: AttendanceApi


def build_store(*, backend: str = "mysql", db_config: Optional[dict] = None) -> DocumentStore:
    if backend == "memory":
        return InMemoryDocumentStore()
    if backend == "mysql":
        if not db_config:
            raise ValueError("DB_CONFIG is required for the mysql store backend")
        return MySQLDocumentStore(DatabaseConnection.get_instance(DBConfig.from_dict(db_config)))
    raise ValueError(f"Unknown store backend: {backend!r}")


def build_container(
    *,
    store: Optional[DocumentStore] = None,
    db_config: Optional[dict] = None,
    backend: str = "mysql",
    clock: Optional[Clock] = None,
) -> Container:
    store = store or build_store(backend=backend, db_config=db_config)
    clock = clock or SystemClock()

    classes = DocumentClassDirectory(store)
    sessions_repo = DocumentSessionRepository(store)
    attendance_repo = DocumentAttendanceRepository(store)

    session_lifecycle = SessionLifecycle(sessions_repo, clock=clock)
    session_manager = SessionManager(sessions_repo, session_lifecycle, classes, clock=clock)
    attendance_coordinator = AttendanceCoordinator(
        attendance_repo,
        sessions_repo,
        classes,
        clock=clock,
        strategy_factory=AttendanceStrategyFactory(),
    )
    report_service = AttendanceReportService(attendance_repo, sessions_repo, classes)
    api = AttendanceApi(session_manager, attendance_coordinator, report_service)

    return Container(
        store=store,
        clock=clock,
        classes=classes,
        sessions_repo=sessions_repo,
        attendance_repo=attendance_repo,
        session_lifecycle=session_lifecycle,
        session_manager=session_manager,
        attendance_coordinator=attendance_coordinator,
        report_service=report_service,
        api=api,
    )
