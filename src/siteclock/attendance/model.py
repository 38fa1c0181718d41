from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..core.enums import EventKind, SyncStatus


@dataclass(frozen=True)
class AttendanceRecord:
    """One immutable clock event.

    `worksite_id` is None when no worksite could be resolved; in that case
    `is_within_geofence` and `distance_from_site` are None too.
    """

    record_id: int
    worker_id: int
    worksite_id: Optional[int]
    kind: EventKind
    event_time: datetime
    latitude: float
    longitude: float
    accuracy: Optional[float] = None
    is_within_geofence: Optional[bool] = None
    distance_from_site: Optional[int] = None
    idempotency_key: Optional[str] = None
    device_info: Optional[str] = None
    notes: Optional[str] = None
    sync_status: SyncStatus = SyncStatus.SYNCED
    synced_at: Optional[datetime] = None
    worksite_name: Optional[str] = None
