from __future__ import annotations

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _flexible_string(value: Any) -> str:
    # Upstream API sends some identifiers as numbers, others as strings
    if isinstance(value, bool) or value is None:
        return "UNKNOWN"
    if isinstance(value, (int, str)):
        return str(value)
    return "UNKNOWN"


class RouteStatus(str, Enum):
    PENDING = "pending"
    SANITIZING = "sanitizing"
    STITCHING = "stitching"
    ASSEMBLED = "assembled"
    SKIPPED = "skipped"
    FAILED = "failed"


class Stop(BaseModel):
    """One stop of a route as cached by the fetch stage."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(alias="node_id")
    name: str = Field(default="", alias="node_nm")
    order: int = Field(alias="node_ord")
    external_code: str = Field(default="", alias="node_no")
    lat: float = Field(alias="gps_lat")
    lon: float = Field(alias="gps_long")
    direction_code: int = Field(default=0, alias="up_down_cd")

    @field_validator("external_code", mode="before")
    @classmethod
    def _coerce_external_code(cls, v: Any) -> str:
        return _flexible_string(v)

    @property
    def position(self) -> tuple[float, float]:
        """(lon, lat) as sent to the routing engine."""
        return (self.lon, self.lat)


class RawRouteFile(BaseModel):
    route_id: str
    route_no: str
    fetched_at: str = ""
    stops: list[Stop] = Field(default_factory=list)

    @field_validator("route_no", mode="before")
    @classmethod
    def _coerce_route_no(cls, v: Any) -> str:
        return _flexible_string(v)

    @field_validator("stops")
    @classmethod
    def _sort_stops(cls, stops: list[Stop]) -> list[Stop]:
        return sorted(stops, key=lambda s: s.order)


class ArtifactStop(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    order: int
    direction_code: int


class RouteArtifact(BaseModel):
    """Annotated road-following geometry for one route."""

    model_config = ConfigDict(frozen=True)

    route_id: str
    route_no: str
    geometry: list[tuple[float, float]]
    bbox: tuple[float, float, float, float]
    total_distance_m: float
    turn_coordinate_index: int
    stops: list[ArtifactStop]
    stop_index_map: list[int]
    source_version: str = ""

    def to_geojson(self) -> dict:
        """Render as a single-feature GeoJSON FeatureCollection."""
        return {
            "type": "FeatureCollection",
            "features": [
                {
                    "type": "Feature",
                    "id": self.route_id,
                    "bbox": list(self.bbox),
                    "properties": {
                        "route_id": self.route_id,
                        "route_no": self.route_no,
                        "stops": [
                            {"id": s.id, "name": s.name, "ord": s.order, "ud": s.direction_code}
                            for s in self.stops
                        ],
                        "turn_idx": self.turn_coordinate_index,
                        "stop_to_coord": list(self.stop_index_map),
                        "total_dist": round(self.total_distance_m, 1),
                        "source_ver": self.source_version,
                    },
                    "geometry": {
                        "type": "LineString",
                        "coordinates": [[lon, lat] for lon, lat in self.geometry],
                    },
                }
            ],
        }


class RouteOutcome(BaseModel):
    source: str
    status: RouteStatus
    route_id: Optional[str] = None
    artifact: Optional[RouteArtifact] = None
    error: Optional[str] = None
