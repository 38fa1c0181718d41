from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from ..core.enums import EventKind, SyncStatus
from .model import AttendanceRecord


class AttendanceRepository(Protocol):
    """Append-only record store."""

    def find_most_recent(self, worker_id: int) -> Optional[AttendanceRecord]:
        """Latest record by event time (ties broken by record id)."""

        raise NotImplementedError

    def find_by_idempotency_key(self, key: str) -> Optional[AttendanceRecord]:
        raise NotImplementedError

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
        """Persist a record.

        Raises ConstraintViolation if `idempotency_key` already exists.
        """

        raise NotImplementedError

    def list_in_range(self, worker_id: int, start: datetime, end: datetime) -> Sequence[AttendanceRecord]:
        """Records with start <= event_time < end, ascending."""

        raise NotImplementedError

    def count_pending(self, worker_id: int) -> int:
        raise NotImplementedError
