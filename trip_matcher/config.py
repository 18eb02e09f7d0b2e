"""Central configuration for the trip auto-matching engine.

All values are constants imported by the rest of the package. Adjust as needed
for your environment. Backend credentials are read from environment variables
(optionally via a local `.env`).
"""

from __future__ import annotations

import os

from dotenv import load_dotenv


def _env_float(key: str, default: float) -> float:
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        return default


def _env_int(key: str, default: int) -> int:
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _env_bool(key: str, default: bool) -> bool:
    value = os.getenv(key)
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    return default


# Load .env from the current directory or any parent folder.
load_dotenv()


# ---------------------------------------------------------------------------
# Geo
# ---------------------------------------------------------------------------
EARTH_RADIUS_KM = 6371.0

# Home radius used when the profile has a home location but no radius.
DEFAULT_HOME_RADIUS_KM = _env_float("TRIP_MATCHER_DEFAULT_HOME_RADIUS_KM", 2.0)


# ---------------------------------------------------------------------------
# Candidate filtering
# ---------------------------------------------------------------------------
# Trips that ended longer ago than this (days) are never candidates.
HOME_MAX_TRIP_AGE_DAYS = _env_int("TRIP_MATCHER_HOME_MAX_TRIP_AGE_DAYS", 14)
TRAVEL_MAX_TRIP_AGE_DAYS = _env_int("TRIP_MATCHER_TRAVEL_MAX_TRIP_AGE_DAYS", 30)

# Days added on both sides of a trip's date range when matching the item date.
HOME_DATE_TOLERANCE_DAYS = _env_int("TRIP_MATCHER_HOME_DATE_TOLERANCE_DAYS", 1)
TRAVEL_DATE_TOLERANCE_DAYS = _env_int("TRIP_MATCHER_TRAVEL_DATE_TOLERANCE_DAYS", 7)

# Maximum distance (km) between the item and any trip item.
TRAVEL_MAX_DISTANCE_KM = _env_float("TRIP_MATCHER_TRAVEL_MAX_DISTANCE_KM", 100.0)
# Near home, trips whose items sit on average further than
# TRAVEL_TRIP_MEAN_HOME_DISTANCE_KM from home use the looser cap.
LOCAL_TRIP_MAX_DISTANCE_KM = _env_float("TRIP_MATCHER_LOCAL_TRIP_MAX_DISTANCE_KM", 20.0)
AWAY_TRIP_MAX_DISTANCE_KM = _env_float("TRIP_MATCHER_AWAY_TRIP_MAX_DISTANCE_KM", 200.0)
TRAVEL_TRIP_MEAN_HOME_DISTANCE_KM = _env_float(
    "TRIP_MATCHER_TRAVEL_TRIP_MEAN_HOME_DISTANCE_KM", 50.0
)


# ---------------------------------------------------------------------------
# Prompting
# ---------------------------------------------------------------------------
# Number of named trips offered when several candidates match.
MAX_PROMPT_CHOICES = _env_int("TRIP_MATCHER_MAX_PROMPT_CHOICES", 2)

PROMPT_TITLE = "Add to Trip?"
PROMPT_DECLINE_LABEL = "Don't add to trips"
PROMPT_CONFIRM_LABEL = "Add to trip"


# ---------------------------------------------------------------------------
# REST backend (PostgREST / Supabase)
# ---------------------------------------------------------------------------
REST_BASE_URL = os.getenv("TRIP_MATCHER_REST_URL", "")
REST_API_KEY = os.getenv("TRIP_MATCHER_REST_KEY", "")

TRIPS_TABLE = "trips"
TRIP_ITEMS_TABLE = "trip_items"
REJECTIONS_TABLE = "trip_item_rejections"
PROFILES_TABLE = "profiles"

# HTTP session pool sizes and request timeout in seconds.
HTTP_POOL_CONNECTIONS = 10
HTTP_POOL_MAXSIZE = 10
REQUEST_TIMEOUT = _env_int("TRIP_MATCHER_REQUEST_TIMEOUT", 15)

# Retries applied by the HTTP adapter for transient 5xx responses.
HTTP_MAX_RETRIES = _env_int("TRIP_MATCHER_HTTP_MAX_RETRIES", 3)


# ---------------------------------------------------------------------------
# Caching
# ---------------------------------------------------------------------------
# Seconds a fetched home profile is reused. Set to 0 to disable caching.
HOME_PROFILE_CACHE_TTL_SECONDS = _env_int("TRIP_MATCHER_HOME_PROFILE_CACHE_TTL", 300)
HOME_PROFILE_CACHE_SIZE = _env_int("TRIP_MATCHER_HOME_PROFILE_CACHE_SIZE", 64)

# Log every filtered-out trip with its exclusion reason at DEBUG level.
LOG_EXCLUSION_REASONS = _env_bool("TRIP_MATCHER_LOG_EXCLUSION_REASONS", True)
