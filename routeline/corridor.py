"""Drift correction for interior stops.

GPS noise in stop coordinates makes routed paths wander off the approved
corridor. Each interior stop is projected onto the road path between its
neighbours and moved there when the projection is close enough.
"""

import logging

from routeline.config import CORRIDOR_MAX_SNAP_M
from routeline.geo import project_onto_polyline
from routeline.models import Stop
from routeline.osrm_client import Router

logger = logging.getLogger("routeline.corridor")


async def sanitize_stops_to_corridor(
    stops: list[Stop],
    router: Router,
    max_snap_m: float = CORRIDOR_MAX_SNAP_M,
) -> list[Stop]:
    """Return a copy of `stops` with interior stops snapped onto their corridor.

    Stops are processed in order, so the reference path for stop i starts
    at the already-corrected stop i-1. A stop whose projection lies farther
    than `max_snap_m` away (terminus loops, off-street bays) is kept as is.
    """
    result = list(stops)
    if len(result) < 3:
        return result

    snapped = 0
    for i in range(1, len(result) - 1):
        corridor = await router.route_between(result[i - 1], result[i + 1])
        if corridor is None:
            continue

        projection = project_onto_polyline(result[i].position, corridor)
        if projection is None:
            continue

        (lon, lat), dist = projection
        if dist <= max_snap_m:
            result[i] = result[i].model_copy(update={"lon": lon, "lat": lat})
            snapped += 1
        else:
            logger.debug(f"Stop {result[i].id} left in place, corridor is {dist:.1f}m away")

    logger.debug(f"Corridor snapping moved {snapped}/{len(result) - 2} interior stops")
    return result
