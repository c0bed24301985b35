"""OSRM route service client.

Talks to the /route endpoint over a shared httpx.AsyncClient and returns
the first candidate's geometry as a list of (lon, lat) pairs. Failures
never raise: the caller gets None and carries on without that polyline.
"""

import asyncio
import logging
from typing import Optional, Protocol, Sequence, runtime_checkable

import httpx

from routeline.config import (
    OSRM_MAX_ATTEMPTS,
    OSRM_RETRY_DELAY_S,
    OSRM_TIMEOUT_S,
    get_osrm_url,
)
from routeline.geo import LonLat
from routeline.models import Stop

logger = logging.getLogger("routeline.osrm")

_ROUTE_PARAMS = {
    "overview": "full",
    "geometries": "geojson",
    "steps": "false",
    "continue_straight": "true",
}


def format_coordinates(points: Sequence[LonLat]) -> str:
    """Convert (lon, lat) pairs to OSRM's 'lon,lat;lon,lat;...' form."""
    return ";".join(f"{lon:.6f},{lat:.6f}" for lon, lat in points)


def _extract_coordinates(data) -> Optional[list[LonLat]]:
    try:
        raw = data["routes"][0]["geometry"]["coordinates"]
        return [(float(c[0]), float(c[1])) for c in raw]
    except (KeyError, IndexError, TypeError, ValueError):
        return None


@runtime_checkable
class Router(Protocol):
    """What the corridor and stitching stages need from a routing backend."""

    async def route_stops(self, stops: Sequence[Stop]) -> Optional[list[LonLat]]: ...

    async def route_between(self, a: Stop, b: Stop) -> Optional[list[LonLat]]: ...


class OSRMClient:
    def __init__(
        self,
        http_client: httpx.AsyncClient,
        base_url: Optional[str] = None,
        *,
        max_attempts: int = OSRM_MAX_ATTEMPTS,
        retry_delay_s: float = OSRM_RETRY_DELAY_S,
        timeout_s: float = OSRM_TIMEOUT_S,
    ):
        self.http_client = http_client
        self.base_url = (base_url or get_osrm_url()).rstrip("/")
        self.max_attempts = max_attempts
        self.retry_delay_s = retry_delay_s
        self.timeout_s = timeout_s

    async def route(self, points: Sequence[LonLat]) -> Optional[list[LonLat]]:
        """Road-following polyline through `points` in order, or None.

        Only transport errors (connect failures, timeouts) are retried.
        A non-2xx status or a body without usable geometry is final.
        """
        if len(points) < 2:
            raise ValueError("At least two coordinates are required to compute a route.")

        url = f"{self.base_url}/{format_coordinates(points)}"

        for attempt in range(1, self.max_attempts + 1):
            try:
                resp = await self.http_client.get(url, params=_ROUTE_PARAMS, timeout=self.timeout_s)
            except httpx.TransportError as e:
                if attempt < self.max_attempts:
                    logger.warning(
                        f"OSRM request failed (attempt {attempt}/{self.max_attempts}): "
                        f"{type(e).__name__}: {e}. Retrying in {self.retry_delay_s * 1000:.0f}ms..."
                    )
                    await asyncio.sleep(self.retry_delay_s)
                    continue
                logger.error(
                    f"OSRM request failed after {self.max_attempts} attempts: {type(e).__name__}: {e}"
                )
                return None
            except httpx.RequestError as e:
                # Undecodable body, redirect loops: the response itself is bad
                logger.error(f"OSRM response unusable ({type(e).__name__}: {e}) for URL: {url}")
                return None

            return self._parse_response(resp, url)

        return None

    def _parse_response(self, resp: httpx.Response, url: str) -> Optional[list[LonLat]]:
        if not resp.is_success:
            logger.error(f"OSRM returned status: {resp.status_code} for URL: {url}")
            logger.error(f"OSRM error response: {resp.text}")
            return None

        try:
            data = resp.json()
        except ValueError as e:
            logger.error(f"Failed to parse OSRM JSON: {e}")
            return None

        coords = _extract_coordinates(data)
        if not coords:
            code = data.get("code") if isinstance(data, dict) else None
            logger.error(f"OSRM returned no usable geometry (code={code}) for URL: {url}")
            return None

        return coords

    async def route_stops(self, stops: Sequence[Stop]) -> Optional[list[LonLat]]:
        return await self.route([s.position for s in stops])

    async def route_between(self, a: Stop, b: Stop) -> Optional[list[LonLat]]:
        return await self.route([a.position, b.position])
