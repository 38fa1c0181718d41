from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional, Sequence

from ..common.datetime_utils import day_bounds, ensure_utc, now_utc
from ..common.validators import optional_non_negative, require_coordinates, require_max_length, within_bounds
from ..core.constants import DEFAULT_PLAUSIBLE_BOUNDS, MAX_NOTES_LENGTH
from ..core.enums import ClockState, EventKind, Role, SyncStatus
from ..core.exceptions import AlreadyClockedIn, NotClockedIn, ValidationError, WorksiteUnavailable
from ..geo import GeoPoint, GeofenceResult, evaluate, nearest
from ..timesheets.aggregator import build_session, summarize
from ..timesheets.model import TimesheetSummary, WorkSession
from ..worksites.model import Worksite
from ..worksites.repository import WorksiteRepository
from ..worksites.service import candidate_worksites
from .locks import ProcessWorkerLock, WorkerLock
from .model import AttendanceRecord
from .repository import AttendanceRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ClockInResult:
    record: AttendanceRecord
    worksite: Optional[Worksite]
    geofence: Optional[GeofenceResult]
    advisory: Optional[str]


@dataclass(frozen=True)
class ClockOutResult:
    record: AttendanceRecord
    session: WorkSession
    geofence: Optional[GeofenceResult]
    advisory: Optional[str]


@dataclass(frozen=True)
class OpenSession:
    entry_time: datetime
    worksite_id: Optional[int]
    worksite_name: Optional[str]
    elapsed_hours: float


@dataclass(frozen=True)
class ClockStatus:
    state: ClockState
    last_record: Optional[AttendanceRecord]
    open_session: Optional[OpenSession]


@dataclass(frozen=True)
class ClockHistory:
    start: datetime
    end: datetime
    records: Sequence[AttendanceRecord]
    summary: TimesheetSummary


def derive_state(last: Optional[AttendanceRecord]) -> ClockState:
    return ClockState.from_last_kind(last.kind if last else None)


class AttendanceService:
    """Clock-in/clock-out state machine.

    State is never stored: it is the kind of the worker's most recent record.
    The read-state then create step runs under a per-worker lock so two
    concurrent requests for the same worker cannot both open a session.
    """

    def __init__(
        self,
        attendance: AttendanceRepository,
        worksites: WorksiteRepository,
        *,
        locks: Optional[WorkerLock] = None,
        plausible_bounds: Optional[dict] = None,
        clock=None,
    ):
        self._attendance = attendance
        self._worksites = worksites
        self._locks = locks if locks is not None else ProcessWorkerLock()
        self._bounds = plausible_bounds or DEFAULT_PLAUSIBLE_BOUNDS
        self._clock = clock or now_utc

    def current_state(self, worker_id: int) -> ClockState:
        return derive_state(self._attendance.find_most_recent(int(worker_id)))

    def _validate_position(self, worker_id: int, position: GeoPoint) -> GeoPoint:
        lat, lng = require_coordinates(position.latitude, position.longitude)
        if not within_bounds(lat, lng, self._bounds):
            logger.warning("Worker %s reported implausible coordinates (%s, %s)", worker_id, lat, lng)
        return GeoPoint(lat, lng)

    def _event_time(self, timestamp: Optional[datetime], last: Optional[AttendanceRecord]) -> datetime:
        event_time = ensure_utc(timestamp) if timestamp is not None else self._clock()
        if last is not None and event_time < last.event_time:
            raise ValidationError("Event time is earlier than the worker's last clock record")
        return event_time

    def _resolve_worksite(
        self,
        worker_id: int,
        position: GeoPoint,
        *,
        worksite_id: Optional[int],
        role: Role,
        on_date: date,
    ) -> tuple[Optional[Worksite], Optional[GeofenceResult]]:
        if worksite_id is not None:
            try:
                site = self._explicit_worksite(worksite_id)
                return site, evaluate(position, site)
            except WorksiteUnavailable as e:
                logger.warning("Worker %s: %s, falling back to nearest assignment", worker_id, e)

        match = nearest(position, candidate_worksites(self._worksites, worker_id, role=role, on_date=on_date))
        if match is None:
            return None, None
        return match.worksite, evaluate(position, match.worksite)

    def _explicit_worksite(self, worksite_id) -> Worksite:
        try:
            site = self._worksites.find_active_by_id(int(worksite_id))
        except (TypeError, ValueError):
            site = None
        if site is None:
            raise WorksiteUnavailable(worksite_id)
        return site

    def clock_in(
        self,
        worker_id: int,
        position: GeoPoint,
        *,
        accuracy: Optional[float] = None,
        worksite_id: Optional[int] = None,
        timestamp: Optional[datetime] = None,
        device_info: Optional[str] = None,
        role: Role = Role.WORKER,
    ) -> ClockInResult:
        worker_id = int(worker_id)
        position = self._validate_position(worker_id, position)
        accuracy = optional_non_negative(accuracy, "accuracy")

        with self._locks.hold(worker_id):
            last = self._attendance.find_most_recent(worker_id)
            if derive_state(last) == ClockState.CLOCKED_IN:
                raise AlreadyClockedIn(last)

            event_time = self._event_time(timestamp, last)
            worksite, geofence = self._resolve_worksite(
                worker_id, position, worksite_id=worksite_id, role=role, on_date=event_time.date()
            )
            record = self._attendance.create_record(
                worker_id=worker_id,
                worksite_id=worksite.worksite_id if worksite else None,
                kind=EventKind.CLOCK_IN,
                event_time=event_time,
                latitude=position.latitude,
                longitude=position.longitude,
                accuracy=accuracy,
                is_within_geofence=geofence.is_within if geofence else None,
                distance_from_site=geofence.distance_meters if geofence else None,
                idempotency_key=None,
                device_info=device_info,
                notes=None,
                sync_status=SyncStatus.SYNCED,
                synced_at=None,
            )

        advisory = geofence.advisory if geofence else None
        self._log_created(record, advisory)
        return ClockInResult(record=record, worksite=worksite, geofence=geofence, advisory=advisory)

    def clock_out(
        self,
        worker_id: int,
        position: GeoPoint,
        *,
        accuracy: Optional[float] = None,
        notes: Optional[str] = None,
        timestamp: Optional[datetime] = None,
        device_info: Optional[str] = None,
    ) -> ClockOutResult:
        worker_id = int(worker_id)
        position = self._validate_position(worker_id, position)
        accuracy = optional_non_negative(accuracy, "accuracy")
        notes = notes.strip() if notes and notes.strip() else None
        require_max_length(notes, "notes", MAX_NOTES_LENGTH)

        with self._locks.hold(worker_id):
            entry = self._attendance.find_most_recent(worker_id)
            if derive_state(entry) != ClockState.CLOCKED_IN:
                raise NotClockedIn()

            event_time = self._event_time(timestamp, entry)
            # the session stays on the entry's worksite, even if it was deactivated since
            worksite = self._worksites.get_by_id(entry.worksite_id) if entry.worksite_id is not None else None
            geofence = evaluate(position, worksite) if worksite else None
            record = self._attendance.create_record(
                worker_id=worker_id,
                worksite_id=entry.worksite_id,
                kind=EventKind.CLOCK_OUT,
                event_time=event_time,
                latitude=position.latitude,
                longitude=position.longitude,
                accuracy=accuracy,
                is_within_geofence=geofence.is_within if geofence else None,
                distance_from_site=geofence.distance_meters if geofence else None,
                idempotency_key=None,
                device_info=device_info,
                notes=notes,
                sync_status=SyncStatus.SYNCED,
                synced_at=None,
            )

        advisory = geofence.advisory if geofence else None
        self._log_created(record, advisory)
        return ClockOutResult(
            record=record,
            session=build_session(entry, record),
            geofence=geofence,
            advisory=advisory,
        )

    def _log_created(self, record: AttendanceRecord, advisory: Optional[str]) -> None:
        logger.info(
            "Worker %s %s at worksite %s (within=%s)",
            record.worker_id,
            record.kind.value,
            record.worksite_id,
            record.is_within_geofence,
        )
        if advisory:
            logger.warning("Worker %s outside geofence: %s", record.worker_id, advisory)

    def status(self, worker_id: int, *, now: Optional[datetime] = None) -> ClockStatus:
        now = ensure_utc(now) if now else self._clock()
        last = self._attendance.find_most_recent(int(worker_id))
        state = derive_state(last)

        open_session = None
        if state == ClockState.CLOCKED_IN:
            open_session = OpenSession(
                entry_time=last.event_time,
                worksite_id=last.worksite_id,
                worksite_name=last.worksite_name,
                elapsed_hours=max((now - last.event_time).total_seconds(), 0) / 3600,
            )
        return ClockStatus(state=state, last_record=last, open_session=open_session)

    def history(self, worker_id: int, *, start: datetime, end: datetime) -> ClockHistory:
        start, end = ensure_utc(start), ensure_utc(end)
        if end <= start:
            raise ValidationError("end must be after start")
        records = list(self._attendance.list_in_range(int(worker_id), start, end))
        return ClockHistory(start=start, end=end, records=records, summary=summarize(records))

    def today(self, worker_id: int, *, now: Optional[datetime] = None) -> ClockHistory:
        now = ensure_utc(now) if now else self._clock()
        start, end = day_bounds(now.date())
        return self.history(worker_id, start=start, end=end)
