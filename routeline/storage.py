"""Files shared with the fetch stage and the serving layer.

<storage>/cache/*.json          raw route files (input)
<storage>/stationMap.json       reference stop coordinates (optional input)
<storage>/polylines/<id>.geojson  route artifacts (output)
"""

import json
import logging
from pathlib import Path
from typing import Optional

from routeline.config import DERIVED_DIR_NAME, RAW_DIR_NAME, STATION_MAP_FILE
from routeline.models import RawRouteFile, RouteArtifact

logger = logging.getLogger("routeline.storage")


class PipelineConfigError(Exception):
    """Raised when the run cannot start at all."""


def raw_dir(storage_dir: Path) -> Path:
    return storage_dir / RAW_DIR_NAME


def derived_dir(storage_dir: Path) -> Path:
    return storage_dir / DERIVED_DIR_NAME


def list_raw_files(directory: Path, route_filter: Optional[str] = None) -> list[Path]:
    """Raw route files in `directory`, optionally narrowed by route number."""
    if not directory.is_dir():
        raise PipelineConfigError(
            f"Raw route cache not found at {directory}. Run the fetch stage first."
        )

    paths = []
    for path in sorted(directory.iterdir()):
        if path.suffix != ".json":
            continue
        if route_filter and not (path.name.startswith(route_filter) or route_filter in path.name):
            continue
        paths.append(path)
    return paths


def load_station_map(storage_dir: Path) -> dict[str, dict]:
    """Stop id -> {gpslati, gpslong, nodenm, nodeno}. Empty when the file is absent."""
    path = storage_dir / STATION_MAP_FILE
    if not path.exists():
        logger.info(f"No {STATION_MAP_FILE} in {storage_dir}, using cached stop coordinates")
        return {}

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        raise PipelineConfigError(f"Cannot read {path}: {e}") from e

    stations = data.get("stations") if isinstance(data, dict) else None
    if not isinstance(stations, dict):
        logger.warning(f"{path} has no 'stations' object, ignoring it")
        return {}

    logger.info(f"Loaded {len(stations)} stations from {path}")
    return {k: v for k, v in stations.items() if isinstance(v, dict)}


def read_raw_route(path: Path) -> RawRouteFile:
    return RawRouteFile.model_validate_json(path.read_text(encoding="utf-8"))


def write_artifact(artifact: RouteArtifact, directory: Path) -> Path:
    directory.mkdir(parents=True, exist_ok=True)
    out = directory / f"{artifact.route_id}.geojson"
    out.write_text(json.dumps(artifact.to_geojson(), ensure_ascii=False), encoding="utf-8")
    return out
