from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from .attendance.locks import MySQLWorkerLock, ProcessWorkerLock, WorkerLock
from .attendance.mysql_attendance_repository import MySQLAttendanceRepository
from .attendance.repository import AttendanceRepository
from .attendance.service import AttendanceService
from .common.datetime_utils import now_utc
from .core.constants import (
    DEFAULT_LOCK_TIMEOUT_SECONDS,
    DEFAULT_PLAUSIBLE_BOUNDS,
    DEFAULT_RADIUS_METERS,
    MAX_RADIUS_METERS,
    MIN_RADIUS_METERS,
)
from .database.connection import DBConfig, DatabaseConnection
from .sync.service import ReconciliationService
from .worksites.mysql_worksite_repository import MySQLWorksiteRepository
from .worksites.repository import WorksiteRepository
from .worksites.service import WorksiteService


@dataclass(frozen=True)
class Container:
    conn: Optional[DatabaseConnection]

    worksites_repo: WorksiteRepository
    attendance_repo: AttendanceRepository
    worker_locks: WorkerLock

    attendance_service: AttendanceService
    reconciliation_service: ReconciliationService
    worksite_service: WorksiteService

    clock: Callable[[], datetime]


def container_from_repositories(
    *,
    worksites_repo: WorksiteRepository,
    attendance_repo: AttendanceRepository,
    conn: Optional[DatabaseConnection] = None,
    worker_locks: Optional[WorkerLock] = None,
    settings=None,
    clock: Optional[Callable[[], datetime]] = None,
) -> Container:
    clock = clock or now_utc
    worker_locks = worker_locks if worker_locks is not None else ProcessWorkerLock()
    bounds = getattr(settings, "PLAUSIBLE_BOUNDS", DEFAULT_PLAUSIBLE_BOUNDS)

    attendance_service = AttendanceService(
        attendance_repo,
        worksites_repo,
        locks=worker_locks,
        plausible_bounds=bounds,
        clock=clock,
    )
    reconciliation_service = ReconciliationService(
        attendance_repo,
        worksites_repo,
        plausible_bounds=bounds,
        clock=clock,
    )
    worksite_service = WorksiteService(
        worksites_repo,
        default_radius=getattr(settings, "DEFAULT_RADIUS_METERS", DEFAULT_RADIUS_METERS),
        min_radius=getattr(settings, "MIN_RADIUS_METERS", MIN_RADIUS_METERS),
        max_radius=getattr(settings, "MAX_RADIUS_METERS", MAX_RADIUS_METERS),
        clock=clock,
    )

    return Container(
        conn=conn,
        worksites_repo=worksites_repo,
        attendance_repo=attendance_repo,
        worker_locks=worker_locks,
        attendance_service=attendance_service,
        reconciliation_service=reconciliation_service,
        worksite_service=worksite_service,
        clock=clock,
    )


def build_worker_locks(conn: DatabaseConnection, settings=None) -> WorkerLock:
    backend = str(getattr(settings, "WORKER_LOCK_BACKEND", "process")).lower()
    if backend == "mysql":
        timeout = getattr(settings, "WORKER_LOCK_TIMEOUT_SECONDS", DEFAULT_LOCK_TIMEOUT_SECONDS)
        return MySQLWorkerLock(conn, timeout_seconds=timeout)
    if backend != "process":
        raise ValueError(f"Unknown WORKER_LOCK_BACKEND: {backend}")
    return ProcessWorkerLock()


def build_container(*, db_config: dict, settings=None) -> Container:
    conn = DatabaseConnection.get_instance(DBConfig.from_dict(db_config))

    return container_from_repositories(
        worksites_repo=MySQLWorksiteRepository(conn),
        attendance_repo=MySQLAttendanceRepository(conn),
        conn=conn,
        worker_locks=build_worker_locks(conn, settings),
        settings=settings,
    )
