"""Settings shared by every environment; modules below override them."""
import os

SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "siteclock"),
}

DEBUG = False
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Apply database/schema.sql on startup (idempotent: CREATE IF NOT EXISTS)
AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "0")))

# Worksite geofence radius for new sites and the range admins may set
DEFAULT_RADIUS_METERS = int(os.getenv("DEFAULT_RADIUS_METERS", "100"))
MIN_RADIUS_METERS = 10
MAX_RADIUS_METERS = 1000

# Coordinates outside this box are logged as suspicious, never rejected.
# Mainland Spain plus the Canary Islands.
PLAUSIBLE_BOUNDS = {
    "minLat": 27.0,
    "maxLat": 44.0,
    "minLng": -18.5,
    "maxLng": 5.0,
}

# "process" for a single server process, "mysql" when several processes share the DB
WORKER_LOCK_BACKEND = os.getenv("WORKER_LOCK_BACKEND", "process")
WORKER_LOCK_TIMEOUT_SECONDS = int(os.getenv("WORKER_LOCK_TIMEOUT_SECONDS", "10"))
