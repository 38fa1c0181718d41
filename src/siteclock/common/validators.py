from __future__ import annotations

import math
from typing import Optional

from ..core.exceptions import ValidationError


def require_non_empty(value: str, field_name: str) -> str:
    if not value or not str(value).strip():
        raise ValidationError(f"{field_name} is required")
    return str(value).strip()


def require_max_length(value: Optional[str], field_name: str, max_len: int) -> Optional[str]:
    if value is not None and len(value) > max_len:
        raise ValidationError(f"{field_name} must be at most {max_len} characters")
    return value


def require_number(value, field_name: str) -> float:
    # bool is an int subclass; reject it explicitly
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError(f"{field_name} must be a number")
    number = float(value)
    if not math.isfinite(number):
        raise ValidationError(f"{field_name} must be finite")
    return number


def require_coordinates(latitude, longitude) -> tuple[float, float]:
    lat = require_number(latitude, "latitude")
    lng = require_number(longitude, "longitude")
    if not -90 <= lat <= 90:
        raise ValidationError("latitude must be within [-90, 90]")
    if not -180 <= lng <= 180:
        raise ValidationError("longitude must be within [-180, 180]")
    return lat, lng


def optional_non_negative(value, field_name: str) -> Optional[float]:
    if value is None:
        return None
    number = require_number(value, field_name)
    if number < 0:
        raise ValidationError(f"{field_name} must be >= 0")
    return number


def within_bounds(latitude: float, longitude: float, bounds: dict) -> bool:
    """Plausibility box check used for warnings only."""
    return (
        bounds["minLat"] <= latitude <= bounds["maxLat"]
        and bounds["minLng"] <= longitude <= bounds["maxLng"]
    )
