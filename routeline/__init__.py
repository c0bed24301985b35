"""Road-following route geometry built from ordered transit stops."""

from routeline.models import RouteArtifact, RouteOutcome, RouteStatus, Stop
from routeline.osrm_client import OSRMClient
from routeline.pipeline import build_route_artifact, run_pipeline

__all__ = [
    "OSRMClient",
    "RouteArtifact",
    "RouteOutcome",
    "RouteStatus",
    "Stop",
    "build_route_artifact",
    "run_pipeline",
]
