from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Optional, Sequence

from ..common.datetime_utils import now_utc
from ..common.validators import require_coordinates, require_max_length, require_non_empty, require_number
from ..core.constants import DEFAULT_RADIUS_METERS, MAX_RADIUS_METERS, MIN_RADIUS_METERS
from ..core.enums import Role
from ..core.exceptions import AuthorizationError, ValidationError
from .model import Worksite, WorksiteAssignment
from .repository import WorksiteRepository

logger = logging.getLogger(__name__)

_SUPERVISORS = (Role.ADMIN, Role.SUPERVISOR)


def candidate_worksites(worksites: WorksiteRepository, worker_id: int, *, role: Role, on_date: date) -> Sequence[Worksite]:
    """Worksites a worker may clock into.

    Workers are scoped to their current assignments; administrators and
    supervisors may clock in at any active worksite.
    """
    if role in _SUPERVISORS:
        return worksites.list_active()
    return worksites.find_active_assignments(int(worker_id), on_date=on_date)


class WorksiteService:
    """Use case: manage worksites and worker assignments (admin/supervisor)."""

    def __init__(
        self,
        worksites: WorksiteRepository,
        *,
        default_radius: float = DEFAULT_RADIUS_METERS,
        min_radius: float = MIN_RADIUS_METERS,
        max_radius: float = MAX_RADIUS_METERS,
        clock=None,
    ):
        self._worksites = worksites
        self._default_radius = float(default_radius)
        self._min_radius = float(min_radius)
        self._max_radius = float(max_radius)
        self._clock = clock or now_utc

    def _check_radius(self, radius) -> float:
        radius = require_number(radius, "radius_meters")
        if not self._min_radius <= radius <= self._max_radius:
            raise ValidationError(
                f"radius_meters must be between {self._min_radius:g} and {self._max_radius:g}"
            )
        return radius

    def create(
        self,
        *,
        current_role: Role,
        name: str,
        address: str,
        latitude,
        longitude,
        radius_meters=None,
        city: Optional[str] = None,
    ) -> Worksite:
        if current_role != Role.ADMIN:
            raise AuthorizationError("Only administrators can create worksites")

        name = require_non_empty(name, "name")
        address = require_non_empty(address, "address")
        require_max_length(name, "name", 200)
        lat, lng = require_coordinates(latitude, longitude)
        radius = self._default_radius if radius_meters is None else self._check_radius(radius_meters)
        city = city.strip() if city and city.strip() else None

        worksite_id = self._worksites.create(
            name=name,
            address=address,
            city=city,
            latitude=lat,
            longitude=lng,
            radius_meters=radius,
        )
        logger.info("Worksite %s created (%s, radius=%gm)", worksite_id, name, radius)
        return Worksite(
            worksite_id=worksite_id,
            name=name,
            address=address,
            city=city,
            latitude=lat,
            longitude=lng,
            radius_meters=radius,
        )

    def update(self, *, current_role: Role, worksite_id: int, changes: dict) -> Worksite:
        if current_role != Role.ADMIN:
            raise AuthorizationError("Only administrators can edit worksites")

        existing = self._worksites.get_by_id(int(worksite_id))
        if not existing:
            raise ValidationError(f"Worksite {worksite_id} does not exist")

        fields: dict = {}
        if "name" in changes:
            fields["name"] = require_non_empty(changes["name"], "name")
        if "address" in changes:
            fields["address"] = require_non_empty(changes["address"], "address")
        if "city" in changes:
            city = changes["city"]
            fields["city"] = city.strip() if isinstance(city, str) and city.strip() else None
        if "latitude" in changes or "longitude" in changes:
            lat, lng = require_coordinates(
                changes.get("latitude", existing.latitude),
                changes.get("longitude", existing.longitude),
            )
            fields["latitude"], fields["longitude"] = lat, lng
        if "radius_meters" in changes:
            fields["radius_meters"] = self._check_radius(changes["radius_meters"])
        if "is_active" in changes:
            fields["is_active"] = bool(changes["is_active"])

        if not self._worksites.update(int(worksite_id), fields=fields):
            raise ValidationError(f"Worksite {worksite_id} could not be updated")
        return self._worksites.get_by_id(int(worksite_id))

    def deactivate(self, *, current_role: Role, worksite_id: int) -> None:
        # soft delete only: records keep pointing at the worksite
        if current_role not in _SUPERVISORS:
            raise AuthorizationError("Not allowed to deactivate worksites")
        if not self._worksites.set_active(int(worksite_id), is_active=False):
            raise ValidationError(f"Worksite {worksite_id} does not exist")
        logger.info("Worksite %s deactivated", worksite_id)

    def assign_worker(
        self,
        *,
        current_role: Role,
        worker_id: int,
        worksite_id: int,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> int:
        if current_role not in _SUPERVISORS:
            raise AuthorizationError("Not allowed to assign workers")
        if int(worker_id) <= 0:
            raise ValidationError("Invalid worker")

        worksite = self._worksites.find_active_by_id(int(worksite_id))
        if not worksite:
            raise ValidationError(f"Worksite {worksite_id} not found or inactive")

        start_date = start_date or self._clock().date()
        if end_date is not None and end_date < start_date:
            raise ValidationError("end_date must not be before start_date")

        assignment_id = self._worksites.assign(
            worker_id=int(worker_id),
            worksite_id=worksite.worksite_id,
            start_date=start_date,
            end_date=end_date,
        )
        logger.info("Worker %s assigned to worksite %s from %s", worker_id, worksite_id, start_date)
        return assignment_id

    def unassign_worker(self, *, current_role: Role, worker_id: int, worksite_id: int) -> None:
        if current_role not in _SUPERVISORS:
            raise AuthorizationError("Not allowed to unassign workers")
        ended = self._worksites.end_assignment(
            worker_id=int(worker_id),
            worksite_id=int(worksite_id),
            end_date=self._clock().date(),
        )
        if not ended:
            raise ValidationError(f"Worker {worker_id} has no active assignment to worksite {worksite_id}")

    def list_worksites(self, *, include_inactive: bool = False, city: Optional[str] = None) -> Sequence[Worksite]:
        return self._worksites.list_all(include_inactive=include_inactive, city=city)

    def list_assignments(self, worksite_id: int) -> Sequence[WorksiteAssignment]:
        return self._worksites.list_assignments(int(worksite_id))

    def candidate_worksites(
        self, worker_id: int, *, role: Role = Role.WORKER, on_date: Optional[date] = None
    ) -> Sequence[Worksite]:
        return candidate_worksites(
            self._worksites, worker_id, role=role, on_date=on_date or self._clock().date()
        )

    def offline_cache(self, worker_id: int, *, role: Role = Role.WORKER, now: Optional[datetime] = None) -> dict:
        now = now or self._clock()
        return {
            "worksites": list(self.candidate_worksites(worker_id, role=role, on_date=now.date())),
            "synced_at": now,
        }
