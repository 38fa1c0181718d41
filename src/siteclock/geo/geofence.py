"""Geofence evaluation against circular worksite boundaries."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, Optional, Protocol, Sequence, TypeVar

from .distance import GeoPoint, distance_meters, round_meters


class Fence(Protocol):
    @property
    def center(self) -> GeoPoint: ...

    @property
    def radius_meters(self) -> float: ...


F = TypeVar("F", bound=Fence)


@dataclass(frozen=True)
class GeofenceResult:
    is_within: bool
    distance_meters: int
    radius_meters: float

    @property
    def advisory(self) -> Optional[str]:
        if self.is_within:
            return None
        return (
            f"You are {self.distance_meters}m from the worksite "
            f"(maximum allowed: {self.radius_meters:g}m)"
        )


@dataclass(frozen=True)
class NearestMatch(Generic[F]):
    worksite: F
    distance_meters: int


def evaluate(position: GeoPoint, worksite: Fence) -> GeofenceResult:
    # compare on the unrounded distance; the rounded one is for display
    distance = distance_meters(position, worksite.center)
    return GeofenceResult(
        is_within=distance <= worksite.radius_meters,
        distance_meters=round_meters(distance),
        radius_meters=worksite.radius_meters,
    )


def nearest(position: GeoPoint, candidates: Sequence[F]) -> Optional[NearestMatch[F]]:
    """Closest candidate; ties go to the earliest in input order."""
    best: Optional[F] = None
    best_distance = float("inf")
    for candidate in candidates:
        distance = distance_meters(position, candidate.center)
        if distance < best_distance:
            best, best_distance = candidate, distance
    if best is None:
        return None
    return NearestMatch(worksite=best, distance_meters=round_meters(best_distance))
