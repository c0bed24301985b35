import logging
from typing import Optional, Sequence

from routeline.geo import LonLat, bounding_box_and_length, quantize
from routeline.models import ArtifactStop, RawRouteFile, RouteArtifact, Stop
from routeline.stitcher import StitchResult

logger = logging.getLogger("routeline.assembly")


def find_turn_stop_index(stops: Sequence[Stop]) -> int:
    """Index of the stop where the direction code changes (outbound -> inbound).

    Routes without a change are treated as one-way and turn at their last stop.
    """
    for i in range(len(stops) - 1):
        if stops[i].direction_code != stops[i + 1].direction_code:
            return i
    return len(stops) - 1


def turn_coordinate_index(
    stop_index_map: Sequence[int], turn_stop_index: int, geometry: Sequence[LonLat]
) -> int:
    if 0 <= turn_stop_index < len(stop_index_map):
        return stop_index_map[turn_stop_index]
    return len(geometry) // 2


def assemble_artifact(
    raw: RawRouteFile, stops: list[Stop], stitched: StitchResult
) -> Optional[RouteArtifact]:
    """Build the final artifact, or None for routes with fewer than two stops."""
    if len(stops) < 2:
        return None

    turn_stop = find_turn_stop_index(stops)
    geometry = quantize(stitched.geometry)
    bbox, total_dist = bounding_box_and_length(geometry)

    if not geometry:
        logger.warning(f"Route {raw.route_id} ({raw.route_no}) assembled without any geometry")

    return RouteArtifact(
        route_id=raw.route_id,
        route_no=raw.route_no,
        geometry=geometry,
        bbox=bbox,
        total_distance_m=total_dist,
        turn_coordinate_index=turn_coordinate_index(stitched.stop_index_map, turn_stop, geometry),
        stops=[
            ArtifactStop(id=s.id, name=s.name, order=s.order, direction_code=s.direction_code)
            for s in stops
        ],
        stop_index_map=list(stitched.stop_index_map),
        source_version=raw.fetched_at,
    )
