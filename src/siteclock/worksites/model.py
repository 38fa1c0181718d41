from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Optional

from ..geo.distance import GeoPoint


@dataclass(frozen=True)
class Worksite:
    """Domain entity: a construction site with a circular geofence."""

    worksite_id: int
    name: str
    address: str
    latitude: float
    longitude: float
    radius_meters: float
    city: Optional[str] = None
    is_active: bool = True

    @property
    def center(self) -> GeoPoint:
        return GeoPoint(self.latitude, self.longitude)


@dataclass(frozen=True)
class WorksiteAssignment:
    """Worker <-> worksite link with a validity window."""

    assignment_id: int
    worker_id: int
    worksite_id: int
    start_date: date
    end_date: Optional[date] = None
    is_active: bool = True

    def covers(self, day: date) -> bool:
        if not self.is_active or day < self.start_date:
            return False
        return self.end_date is None or day <= self.end_date
