"""Chunked routing and polyline stitching.

The routing engine caps how many waypoints one request can carry, so a
route is split into chunks of at most OSRM_CHUNK_SIZE stops. Each chunk
starts at the previous chunk's last stop, which keeps the requested path
continuous. Chunk polylines are concatenated into a single geometry and
every stop is mapped to the index of its nearest vertex in it.
"""

import logging
from dataclasses import dataclass, field
from typing import Iterator, Optional

from routeline.config import OSRM_CHUNK_SIZE
from routeline.geo import LonLat, nearest_vertex_index
from routeline.models import Stop
from routeline.osrm_client import Router

logger = logging.getLogger("routeline.stitcher")


@dataclass
class StitchResult:
    geometry: list[LonLat] = field(default_factory=list)
    stop_index_map: list[int] = field(default_factory=list)
    chunks_total: int = 0
    chunks_failed: int = 0


def iter_chunks(stop_count: int, chunk_size: int = OSRM_CHUNK_SIZE) -> Iterator[tuple[int, int]]:
    """Yield (start, end) slice bounds of overlapping chunks.

    Every chunk after the first starts at the previous chunk's last stop.
    """
    if chunk_size < 2:
        raise ValueError("chunk_size must be at least 2")

    start = 0
    while start < stop_count - 1:
        end = min(start + chunk_size, stop_count)
        if end - start < 2:
            break
        yield start, end
        start = end - 1


def merge_polyline(geometry: list[LonLat], polyline: list[LonLat]) -> int:
    """Append `polyline` to `geometry` in place and return the prior length.

    Once the geometry holds points, the polyline's first coordinate is the
    shared overlap stop already at the end of it, so it is dropped.
    """
    base = len(geometry)
    geometry.extend(polyline[1:] if base > 0 else polyline)
    return base


def to_global_index(local: int, base: int) -> int:
    """Translate a vertex index in a chunk polyline to the merged geometry."""
    if base == 0:
        return local
    if local == 0:
        return base - 1
    return base + local - 1


def map_chunk_stops(
    chunk: list[Stop],
    chunk_start: int,
    polyline: list[LonLat],
    base: int,
    stop_index_map: list[int],
) -> None:
    """Append merged-geometry indices for chunk stops not mapped yet.

    Entries are appended in order, so after a failed chunk the indices
    found here fill the earliest open slots.
    """
    for offset, stop in enumerate(chunk):
        if chunk_start + offset < len(stop_index_map):
            continue
        local: Optional[int] = nearest_vertex_index(stop.position, polyline)
        stop_index_map.append(base if local is None else to_global_index(local, base))


async def stitch_route(
    stops: list[Stop],
    router: Router,
    chunk_size: int = OSRM_CHUNK_SIZE,
) -> StitchResult:
    """Route `stops` chunk by chunk and merge the results.

    Chunks run strictly in order since each merge offset depends on
    everything merged before it. `stop_index_map` always has one entry
    per stop; stops left unmapped by failed trailing chunks point at the
    last merged coordinate (or 0 when nothing was merged).
    """
    result = StitchResult()

    for start, end in iter_chunks(len(stops), chunk_size):
        chunk = stops[start:end]
        result.chunks_total += 1

        polyline = await router.route_stops(chunk)
        if not polyline:
            result.chunks_failed += 1
            logger.warning(f"No geometry for stops {start}..{end - 1}, chunk skipped")
            continue

        base = merge_polyline(result.geometry, polyline)
        map_chunk_stops(chunk, start, polyline, base, result.stop_index_map)

    fill = max(len(result.geometry) - 1, 0)
    while len(result.stop_index_map) < len(stops):
        result.stop_index_map.append(fill)

    return result
