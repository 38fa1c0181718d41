from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional, Sequence

from ..attendance.model import AttendanceRecord
from ..attendance.repository import AttendanceRepository
from ..common.datetime_utils import ensure_utc, now_utc
from ..common.validators import require_coordinates, within_bounds
from ..core.constants import DEFAULT_PLAUSIBLE_BOUNDS
from ..core.enums import Role, SyncStatus
from ..core.exceptions import ConstraintViolation
from ..geo import GeoPoint, evaluate, nearest
from ..worksites.model import Worksite
from ..worksites.repository import WorksiteRepository
from ..worksites.service import candidate_worksites
from .model import DuplicateEntry, ErrorEntry, OfflineEvent, ReconcileResult, SyncedEntry, SyncStatusReport

logger = logging.getLogger(__name__)


class ReconciliationService:
    """Merge offline-queued events into the server's record log.

    Events are processed one by one; a failing event is reported and the
    batch carries on. Re-submitting a batch is safe: known keys come back
    as duplicates. The clock-in/clock-out alternation is not re-checked
    here since batches from several devices may arrive out of order.
    """

    def __init__(
        self,
        attendance: AttendanceRepository,
        worksites: WorksiteRepository,
        *,
        plausible_bounds: Optional[dict] = None,
        clock=None,
    ):
        self._attendance = attendance
        self._worksites = worksites
        self._bounds = plausible_bounds or DEFAULT_PLAUSIBLE_BOUNDS
        self._clock = clock or now_utc

    def reconcile(
        self,
        worker_id: int,
        events: Sequence[OfflineEvent],
        *,
        now: Optional[datetime] = None,
    ) -> ReconcileResult:
        worker_id = int(worker_id)
        now = ensure_utc(now) if now else self._clock()
        result = ReconcileResult()
        candidates: list[Worksite] = []
        loaded = False

        for event in events:
            try:
                existing = self._attendance.find_by_idempotency_key(event.idempotency_key)
                if existing is not None:
                    result.duplicates.append(DuplicateEntry(event.idempotency_key, existing.record_id))
                    continue

                # fetched once per batch, on first need; scoped to the worker's
                # own assignments whatever their role
                if not loaded:
                    candidates = list(self._worksites.find_active_assignments(worker_id, on_date=now.date()))
                    loaded = True

                try:
                    record = self._persist(worker_id, event, candidates, now)
                except ConstraintViolation:
                    # lost a race against a concurrent submission of the same key
                    existing = self._attendance.find_by_idempotency_key(event.idempotency_key)
                    if existing is None:
                        raise
                    result.duplicates.append(DuplicateEntry(event.idempotency_key, existing.record_id))
                    continue
            except Exception as e:
                self._record_error(result, worker_id, event, e)
                continue

            result.synced.append(
                SyncedEntry(
                    idempotency_key=event.idempotency_key,
                    record_id=record.record_id,
                    worksite_id=record.worksite_id,
                    worksite_name=record.worksite_name,
                )
            )

        logger.info(
            "Worker %s sync: %d synced, %d duplicates, %d errors",
            worker_id,
            len(result.synced),
            len(result.duplicates),
            len(result.errors),
        )
        return result

    def _persist(
        self, worker_id: int, event: OfflineEvent, candidates: Sequence[Worksite], now: datetime
    ) -> AttendanceRecord:
        lat, lng = require_coordinates(event.latitude, event.longitude)
        if not within_bounds(lat, lng, self._bounds):
            logger.warning("Worker %s offline event %s has implausible coordinates (%s, %s)",
                           worker_id, event.idempotency_key, lat, lng)

        position = GeoPoint(lat, lng)
        match = nearest(position, candidates)
        geofence = evaluate(position, match.worksite) if match else None

        return self._attendance.create_record(
            worker_id=worker_id,
            worksite_id=match.worksite.worksite_id if match else None,
            kind=event.kind,
            event_time=ensure_utc(event.timestamp),
            latitude=lat,
            longitude=lng,
            accuracy=event.accuracy,
            is_within_geofence=geofence.is_within if geofence else None,
            distance_from_site=geofence.distance_meters if geofence else None,
            idempotency_key=event.idempotency_key,
            device_info=event.device_info,
            notes=None,
            sync_status=SyncStatus.SYNCED,
            synced_at=now,
        )

    @staticmethod
    def _record_error(result: ReconcileResult, worker_id: int, event: OfflineEvent, exc: Exception) -> None:
        logger.warning("Worker %s offline event %s failed: %s", worker_id, event.idempotency_key, exc)
        result.errors.append(ErrorEntry(event.idempotency_key, str(exc) or type(exc).__name__))

    def sync_status(
        self, worker_id: int, *, role: Role = Role.WORKER, now: Optional[datetime] = None
    ) -> SyncStatusReport:
        now = ensure_utc(now) if now else self._clock()
        return SyncStatusReport(
            server_time=now,
            last_record=self._attendance.find_most_recent(int(worker_id)),
            worksites=list(candidate_worksites(self._worksites, worker_id, role=role, on_date=now.date())),
            pending_count=self._attendance.count_pending(int(worker_id)),
        )
