"""Runtime configuration: environment lookups and fixed pipeline constants."""

import logging
import os
from pathlib import Path

OSRM_URL = "http://router.project-osrm.org/route/v1/driving"

# Stops per routing request; consecutive chunks share one stop
OSRM_CHUNK_SIZE = 120

OSRM_MAX_ATTEMPTS = 3
OSRM_RETRY_DELAY_S = 0.5
OSRM_TIMEOUT_S = 15.0

HTTP_MAX_CONNECTIONS = 20
HTTP_MAX_KEEPALIVE = 10

# Route pipelines running at once in the geometry stage
CONCURRENCY_SNAP = 4

# Corrected stop must stay within this distance of its original position
CORRIDOR_MAX_SNAP_M = 90.0

# 6 decimals is roughly 0.11 m
COORD_DECIMALS = 6

RAW_DIR_NAME = "cache"
DERIVED_DIR_NAME = "polylines"
STATION_MAP_FILE = "stationMap.json"

logger = logging.getLogger("routeline.config")


def _get_env(key: str) -> str:
    return os.getenv(key, "")


def resolve_url(key: str, default: str) -> str:
    value = _get_env(key)
    return value if value else default


def get_osrm_url() -> str:
    return resolve_url("OSRM_API_URL", OSRM_URL).rstrip("/")


def get_storage_dir() -> Path:
    return Path(_get_env("ROUTELINE_STORAGE_DIR") or "./storage")


def get_route_filter() -> str | None:
    return _get_env("ROUTELINE_ROUTE") or None


def get_log_level() -> str:
    """Level name from ROUTELINE_LOG_LEVEL; unknown names fall back to INFO."""
    level = (_get_env("ROUTELINE_LOG_LEVEL") or "INFO").upper()
    # getLevelName maps known names to their number and anything else to a string
    if not isinstance(logging.getLevelName(level), int):
        logger.warning(f"Unknown ROUTELINE_LOG_LEVEL '{level}', using INFO")
        return "INFO"
    return level
