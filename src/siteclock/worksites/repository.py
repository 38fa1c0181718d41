from __future__ import annotations

from datetime import date
from typing import Optional, Protocol, Sequence

from .model import Worksite, WorksiteAssignment


class WorksiteRepository(Protocol):
    def get_by_id(self, worksite_id: int) -> Optional[Worksite]:
        raise NotImplementedError

    def find_active_by_id(self, worksite_id: int) -> Optional[Worksite]:
        """Worksite by id, only if active."""

        raise NotImplementedError

    def find_active_assignments(self, worker_id: int, *, on_date: date) -> Sequence[Worksite]:
        """Active worksites the worker is actively assigned to on `on_date`.

        Ordered by assignment creation so nearest-worksite ties are stable.
        """

        raise NotImplementedError

    def list_active(self) -> Sequence[Worksite]:
        raise NotImplementedError

    def list_all(self, *, include_inactive: bool = False, city: Optional[str] = None) -> Sequence[Worksite]:
        raise NotImplementedError

    def create(
        self,
        *,
        name: str,
        address: str,
        city: Optional[str],
        latitude: float,
        longitude: float,
        radius_meters: float,
    ) -> int:
        raise NotImplementedError

    def update(self, worksite_id: int, *, fields: dict) -> bool:
        raise NotImplementedError

    def set_active(self, worksite_id: int, *, is_active: bool) -> bool:
        raise NotImplementedError

    def assign(self, *, worker_id: int, worksite_id: int, start_date: date, end_date: Optional[date] = None) -> int:
        raise NotImplementedError

    def end_assignment(self, *, worker_id: int, worksite_id: int, end_date: date) -> bool:
        raise NotImplementedError

    def list_assignments(self, worksite_id: int) -> Sequence[WorksiteAssignment]:
        raise NotImplementedError
