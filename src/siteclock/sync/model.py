from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Sequence

from ..attendance.model import AttendanceRecord
from ..common.datetime_utils import parse_iso_datetime
from ..common.validators import optional_non_negative, require_coordinates, require_max_length
from ..core.enums import EventKind, SyncStatus
from ..core.exceptions import ValidationError
from ..worksites.model import Worksite

MAX_KEY_LENGTH = 64


@dataclass(frozen=True)
class OfflineEvent:
    """A clock event recorded on the device while offline."""

    idempotency_key: str
    kind: EventKind
    timestamp: datetime
    latitude: float
    longitude: float
    accuracy: Optional[float] = None
    device_info: Optional[str] = None
    sync_status: SyncStatus = SyncStatus.PENDING

    @classmethod
    def from_dict(cls, data) -> "OfflineEvent":
        if not isinstance(data, dict):
            raise ValidationError("Each record must be a JSON object")

        key = data.get("idempotency_key")
        if not isinstance(key, str) or not key.strip():
            raise ValidationError("idempotency_key is required")
        require_max_length(key, "idempotency_key", MAX_KEY_LENGTH)

        try:
            kind = EventKind(data.get("kind"))
        except (TypeError, ValueError) as exc:
            raise ValidationError("kind must be CLOCK_IN or CLOCK_OUT") from exc

        lat, lng = require_coordinates(data.get("latitude"), data.get("longitude"))

        device_info = data.get("device_info")
        if device_info is not None and not isinstance(device_info, str):
            raise ValidationError("device_info must be a string")

        try:
            sync_status = SyncStatus(data.get("sync_status") or SyncStatus.PENDING.value)
        except (TypeError, ValueError) as exc:
            raise ValidationError("sync_status must be PENDING or SYNCED") from exc

        return cls(
            idempotency_key=key,
            kind=kind,
            timestamp=parse_iso_datetime(data.get("timestamp")),
            latitude=lat,
            longitude=lng,
            accuracy=optional_non_negative(data.get("accuracy"), "accuracy"),
            device_info=device_info,
            sync_status=sync_status,
        )

    def to_dict(self) -> dict:
        return {
            "idempotency_key": self.idempotency_key,
            "kind": self.kind.value,
            "timestamp": self.timestamp.isoformat(),
            "latitude": self.latitude,
            "longitude": self.longitude,
            "accuracy": self.accuracy,
            "device_info": self.device_info,
            "sync_status": self.sync_status.value,
        }


@dataclass(frozen=True)
class SyncedEntry:
    idempotency_key: str
    record_id: int
    worksite_id: Optional[int]
    worksite_name: Optional[str]


@dataclass(frozen=True)
class DuplicateEntry:
    idempotency_key: str
    existing_id: int


@dataclass(frozen=True)
class ErrorEntry:
    idempotency_key: str
    message: str


@dataclass(frozen=True)
class ReconcileResult:
    """Every submitted event lands in exactly one of the three lists."""

    synced: List[SyncedEntry] = field(default_factory=list)
    duplicates: List[DuplicateEntry] = field(default_factory=list)
    errors: List[ErrorEntry] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.synced) + len(self.duplicates) + len(self.errors)

    @property
    def message(self) -> str:
        return (
            f"Sync complete: {len(self.synced)} new, "
            f"{len(self.duplicates)} duplicates, {len(self.errors)} errors"
        )

    def settled_keys(self) -> set[str]:
        """Keys the client may drop from its queue."""
        return {e.idempotency_key for e in self.synced} | {e.idempotency_key for e in self.duplicates}


@dataclass(frozen=True)
class SyncStatusReport:
    server_time: datetime
    last_record: Optional[AttendanceRecord]
    worksites: Sequence[Worksite]
    pending_count: int
