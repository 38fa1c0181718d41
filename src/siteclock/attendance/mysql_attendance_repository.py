from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional, Sequence

from ..common.datetime_utils import from_db, to_db
from ..core.enums import EventKind, SyncStatus
from ..core.exceptions import ConstraintViolation, StoreFailure
from ..database.connection import DatabaseConnection
from ..database.mysql_base import as_bool, db_cursor, fetchall, fetchone
from .model import AttendanceRecord
from .repository import AttendanceRepository

logger = logging.getLogger(__name__)

_SELECT = """
    SELECT r.record_id, r.worker_id, r.worksite_id, r.kind, r.event_time,
           r.latitude, r.longitude, r.accuracy, r.is_within_geofence,
           r.distance_from_site, r.idempotency_key, r.device_info, r.notes,
           r.sync_status, r.synced_at, w.name AS worksite_name
    FROM attendance_records r
    LEFT JOIN worksites w ON w.worksite_id = r.worksite_id
"""


def _optional_float(value) -> Optional[float]:
    return float(value) if value is not None else None


def _to_record(r: dict) -> AttendanceRecord:
    return AttendanceRecord(
        record_id=int(r["record_id"]),
        worker_id=int(r["worker_id"]),
        worksite_id=int(r["worksite_id"]) if r.get("worksite_id") is not None else None,
        kind=EventKind(r["kind"]),
        event_time=from_db(r["event_time"]),
        latitude=float(r["latitude"]),
        longitude=float(r["longitude"]),
        accuracy=_optional_float(r.get("accuracy")),
        is_within_geofence=as_bool(r.get("is_within_geofence")),
        distance_from_site=int(r["distance_from_site"]) if r.get("distance_from_site") is not None else None,
        idempotency_key=r.get("idempotency_key"),
        device_info=r.get("device_info"),
        notes=r.get("notes"),
        sync_status=SyncStatus(r.get("sync_status") or SyncStatus.SYNCED.value),
        synced_at=from_db(r.get("synced_at")),
        worksite_name=r.get("worksite_name"),
    )


class MySQLAttendanceRepository(AttendanceRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def find_most_recent(self, worker_id: int) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                _SELECT + " WHERE r.worker_id=%s ORDER BY r.event_time DESC, r.record_id DESC LIMIT 1",
                (int(worker_id),),
            )
            r = fetchone(cur)
            return _to_record(r) if r else None

    def find_by_idempotency_key(self, key: str) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(_SELECT + " WHERE r.idempotency_key=%s", (key,))
            r = fetchone(cur)
            return _to_record(r) if r else None

    def _get_by_id(self, record_id: int) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(_SELECT + " WHERE r.record_id=%s", (int(record_id),))
            r = fetchone(cur)
            return _to_record(r) if r else None

    def create_record(
        self,
        *,
        worker_id: int,
        worksite_id: Optional[int],
        kind: EventKind,
        event_time: datetime,
        latitude: float,
        longitude: float,
        accuracy: Optional[float],
        is_within_geofence: Optional[bool],
        distance_from_site: Optional[int],
        idempotency_key: Optional[str],
        device_info: Optional[str],
        notes: Optional[str],
        sync_status: SyncStatus,
        synced_at: Optional[datetime],
    ) -> AttendanceRecord:
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    """
                    INSERT INTO attendance_records(
                        worker_id, worksite_id, kind, event_time, latitude, longitude, accuracy,
                        is_within_geofence, distance_from_site, idempotency_key, device_info,
                        notes, sync_status, synced_at
                    )
                    VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                    """,
                    (
                        int(worker_id),
                        worksite_id,
                        kind.value,
                        to_db(event_time),
                        latitude,
                        longitude,
                        accuracy,
                        None if is_within_geofence is None else int(is_within_geofence),
                        distance_from_site,
                        idempotency_key,
                        device_info,
                        notes,
                        sync_status.value,
                        to_db(synced_at),
                    ),
                )
                record_id = int(cur.lastrowid)
        except ConstraintViolation as exc:
            logger.warning("Idempotency key collision for worker %s: %s", worker_id, idempotency_key)
            raise ConstraintViolation(str(exc), idempotency_key=idempotency_key) from exc

        created = self._get_by_id(record_id)
        if created is None:
            raise StoreFailure(f"Record {record_id} not readable after insert")
        return created

    def list_in_range(self, worker_id: int, start: datetime, end: datetime) -> Sequence[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                _SELECT
                + " WHERE r.worker_id=%s AND r.event_time >= %s AND r.event_time < %s"
                + " ORDER BY r.event_time ASC, r.record_id ASC",
                (int(worker_id), to_db(start), to_db(end)),
            )
            return [_to_record(r) for r in fetchall(cur)]

    def count_pending(self, worker_id: int) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT COUNT(*) AS n FROM attendance_records WHERE worker_id=%s AND sync_status=%s",
                (int(worker_id), SyncStatus.PENDING.value),
            )
            r = fetchone(cur)
            return int(r["n"]) if r else 0
