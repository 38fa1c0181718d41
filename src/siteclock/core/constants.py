"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

EARTH_RADIUS_METERS = 6_371_000

DEFAULT_RADIUS_METERS = 100
MIN_RADIUS_METERS = 10
MAX_RADIUS_METERS = 1000

MAX_NOTES_LENGTH = 500
DEFAULT_HISTORY_DAYS = 30

# Mainland Spain plus the Canary Islands.
DEFAULT_PLAUSIBLE_BOUNDS = {
    "minLat": 27.0,
    "maxLat": 44.0,
    "minLng": -18.5,
    "maxLng": 5.0,
}

DEFAULT_LOCK_TIMEOUT_SECONDS = 10
