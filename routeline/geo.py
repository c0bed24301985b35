"""Planar geometry helpers for intra-city distances.

Coordinates are (lon, lat) pairs in degrees, the order used by GeoJSON and
the routing engine.
"""

import math
from typing import Optional, Sequence

from routeline.config import COORD_DECIMALS

LonLat = tuple[float, float]

EARTH_RADIUS_M = 6371000.0


def distance_meters(lon1: float, lat1: float, lon2: float, lat2: float) -> float:
    """Equirectangular approximation of the distance in meters.

    Good to well under a meter across a city; not meant for long or
    antipodal distances.
    """
    x = math.radians(lon2 - lon1) * math.cos(math.radians((lat1 + lat2) * 0.5))
    y = math.radians(lat2 - lat1)
    return math.sqrt(x * x + y * y) * EARTH_RADIUS_M


def project_onto_polyline(
    point: LonLat, polyline: Sequence[LonLat]
) -> Optional[tuple[LonLat, float]]:
    """Closest point on any segment of `polyline` and its distance in meters.

    Projection is done in degree space with the segment parameter clamped
    to [0, 1]. Zero-length segments are ignored. Returns None when the
    polyline has fewer than two points.
    """
    if len(polyline) < 2:
        return None

    px, py = point
    best: Optional[tuple[LonLat, float]] = None

    for (x1, y1), (x2, y2) in zip(polyline, polyline[1:]):
        dx = x2 - x1
        dy = y2 - y1
        denom = dx * dx + dy * dy
        if denom == 0.0:
            continue

        t = ((px - x1) * dx + (py - y1) * dy) / denom
        t = min(max(t, 0.0), 1.0)
        cx = x1 + t * dx
        cy = y1 + t * dy

        d = distance_meters(px, py, cx, cy)
        if best is None or d < best[1]:
            best = ((cx, cy), d)

    return best


def nearest_vertex_index(point: LonLat, polyline: Sequence[LonLat]) -> Optional[int]:
    """Index of the vertex closest to `point`; the first one wins ties."""
    if not polyline:
        return None

    px, py = point
    best_idx = 0
    min_dist = math.inf
    for i, (x, y) in enumerate(polyline):
        d = distance_meters(px, py, x, y)
        if d < min_dist:
            min_dist = d
            best_idx = i
    return best_idx


def bounding_box_and_length(
    coords: Sequence[LonLat],
) -> tuple[tuple[float, float, float, float], float]:
    """Return ((min_lon, min_lat, max_lon, max_lat), total length in meters).

    An empty input yields the inverted sentinel box (180, 90, -180, -90).
    """
    min_lon, min_lat = 180.0, 90.0
    max_lon, max_lat = -180.0, -90.0
    total = 0.0

    prev: Optional[LonLat] = None
    for lon, lat in coords:
        min_lon = min(min_lon, lon)
        max_lon = max(max_lon, lon)
        min_lat = min(min_lat, lat)
        max_lat = max(max_lat, lat)
        if prev is not None:
            total += distance_meters(prev[0], prev[1], lon, lat)
        prev = (lon, lat)

    return (min_lon, min_lat, max_lon, max_lat), total


def quantize(coords: Sequence[LonLat], decimals: int = COORD_DECIMALS) -> list[LonLat]:
    return [(round(lon, decimals), round(lat, decimals)) for lon, lat in coords]
