from .distance import GeoPoint, distance_meters, round_meters
from .geofence import GeofenceResult, NearestMatch, evaluate, nearest

__all__ = [
    "GeoPoint",
    "distance_meters",
    "round_meters",
    "GeofenceResult",
    "NearestMatch",
    "evaluate",
    "nearest",
]
