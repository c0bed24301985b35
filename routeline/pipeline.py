"""Per-route geometry pipeline and the bounded fan-out over all routes.

Each route runs Pending -> Sanitizing -> Stitching and ends Assembled,
Skipped (fewer than two stops) or Failed (unreadable input or output).
Only the terminal state is kept on the RouteOutcome; the intermediate
ones are emitted as debug records on the "routeline.pipeline" logger.
Routes own their stops and geometry outright; the station map is the only
thing shared between them and it is never mutated.
"""

import asyncio
import logging
import traceback
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import httpx

from routeline.assembly import assemble_artifact
from routeline.config import (
    CONCURRENCY_SNAP,
    HTTP_MAX_CONNECTIONS,
    HTTP_MAX_KEEPALIVE,
    OSRM_CHUNK_SIZE,
    OSRM_TIMEOUT_S,
)
from routeline.corridor import sanitize_stops_to_corridor
from routeline.models import RawRouteFile, RouteArtifact, RouteOutcome, RouteStatus, Stop
from routeline.osrm_client import OSRMClient, Router
from routeline.stitcher import stitch_route
from routeline.storage import (
    derived_dir,
    list_raw_files,
    load_station_map,
    raw_dir,
    read_raw_route,
    write_artifact,
)

logger = logging.getLogger("routeline.pipeline")


@dataclass
class PipelineReport:
    outcomes: list[RouteOutcome] = field(default_factory=list)

    def count(self, status: RouteStatus) -> int:
        return sum(1 for o in self.outcomes if o.status == status)

    @property
    def artifacts(self) -> dict[str, RouteArtifact]:
        return {o.route_id: o.artifact for o in self.outcomes if o.artifact is not None}


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def apply_station_overlay(stops: list[Stop], station_map: dict[str, dict]) -> list[Stop]:
    """Replace stop coordinates with the station map's where it has numeric ones."""
    result = []
    for stop in stops:
        info = station_map.get(stop.id)
        update = {}
        if info:
            if _is_number(info.get("gpslati")):
                update["lat"] = float(info["gpslati"])
            if _is_number(info.get("gpslong")):
                update["lon"] = float(info["gpslong"])
        result.append(stop.model_copy(update=update) if update else stop)
    return result


def _enter(source: str, status: RouteStatus) -> RouteStatus:
    logger.debug(f"{source}: {status.value}")
    return status


async def build_route_artifact(
    raw: RawRouteFile,
    station_map: dict[str, dict],
    router: Router,
    source: str = "",
    chunk_size: int = OSRM_CHUNK_SIZE,
) -> Optional[RouteArtifact]:
    """Run overlay, corridor snapping, stitching and assembly for one route.

    Returns None when the route has fewer than two stops.
    """
    source = source or raw.route_id
    stops = apply_station_overlay(raw.stops, station_map)

    _enter(source, RouteStatus.SANITIZING)
    stops = await sanitize_stops_to_corridor(stops, router)
    if len(stops) < 2:
        return None

    _enter(source, RouteStatus.STITCHING)
    stitched = await stitch_route(stops, router, chunk_size=chunk_size)
    if stitched.chunks_failed:
        logger.warning(
            f"{source}: {stitched.chunks_failed}/{stitched.chunks_total} chunks returned no geometry"
        )

    return assemble_artifact(raw, stops, stitched)


async def process_route(
    path: Path,
    station_map: dict[str, dict],
    router: Router,
    out_dir: Path,
) -> RouteOutcome:
    source = path.name
    _enter(source, RouteStatus.PENDING)

    try:
        raw = read_raw_route(path)
    except (OSError, ValueError) as e:
        logger.error(f"Could not read raw route {source}: {type(e).__name__}: {e}")
        return RouteOutcome(source=source, status=RouteStatus.FAILED, error=str(e))

    logger.info(f"Processing {source}...")
    artifact = await build_route_artifact(raw, station_map, router, source=source)
    if artifact is None:
        logger.info(f"{source}: fewer than 2 stops, skipped")
        return RouteOutcome(source=source, status=RouteStatus.SKIPPED, route_id=raw.route_id)

    try:
        write_artifact(artifact, out_dir)
    except OSError as e:
        logger.error(f"Could not write artifact for {source}: {e}")
        return RouteOutcome(
            source=source, status=RouteStatus.FAILED, route_id=raw.route_id, error=str(e)
        )

    return RouteOutcome(
        source=source,
        status=_enter(source, RouteStatus.ASSEMBLED),
        route_id=raw.route_id,
        artifact=artifact,
    )


async def _run_routes(
    paths: list[Path],
    station_map: dict[str, dict],
    router: Router,
    out_dir: Path,
    concurrency: int,
) -> PipelineReport:
    semaphore = asyncio.Semaphore(concurrency)

    async def worker(path: Path) -> RouteOutcome:
        async with semaphore:
            return await process_route(path, station_map, router, out_dir)

    results = await asyncio.gather(*(worker(p) for p in paths), return_exceptions=True)

    report = PipelineReport()
    for path, result in zip(paths, results):
        if isinstance(result, Exception):
            logger.error(
                f"Processing failed for {path.name}: {result}\n"
                f"{''.join(traceback.format_exception(type(result), result, result.__traceback__))}"
            )
            report.outcomes.append(
                RouteOutcome(source=path.name, status=RouteStatus.FAILED, error=str(result))
            )
        else:
            report.outcomes.append(result)
    return report


async def run_pipeline(
    storage_dir: Path,
    route_filter: Optional[str] = None,
    *,
    router: Optional[Router] = None,
    concurrency: int = CONCURRENCY_SNAP,
) -> PipelineReport:
    """Turn every cached raw route under `storage_dir` into a route artifact.

    Raises PipelineConfigError before any route starts when the raw cache
    is missing or the station map is unreadable.
    """
    paths = list_raw_files(raw_dir(storage_dir), route_filter)
    station_map = load_station_map(storage_dir)
    out_dir = derived_dir(storage_dir)

    logger.info(f"[Processing {len(paths)} raw routes to GeoJSON: {out_dir}]")

    if router is not None:
        report = await _run_routes(paths, station_map, router, out_dir, concurrency)
    else:
        async with httpx.AsyncClient(
            timeout=OSRM_TIMEOUT_S,
            limits=httpx.Limits(
                max_connections=HTTP_MAX_CONNECTIONS,
                max_keepalive_connections=HTTP_MAX_KEEPALIVE,
            ),
        ) as http_client:
            report = await _run_routes(
                paths, station_map, OSRMClient(http_client), out_dir, concurrency
            )

    logger.info(
        f"Pipeline complete: {report.count(RouteStatus.ASSEMBLED)} assembled, "
        f"{report.count(RouteStatus.SKIPPED)} skipped, {report.count(RouteStatus.FAILED)} failed"
    )
    return report
