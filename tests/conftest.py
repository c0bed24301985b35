"""Pytest configuration and fixtures."""

import pytest

from routeline.models import Stop


class FakeRouter:
    """Stands in for OSRMClient and records every request.

    `chunks` is a list of polylines handed out in call order (None entries
    simulate failed requests); when omitted, a chunk request echoes the
    stop positions back. `corridor` maps (prev, next) stops to a polyline.
    """

    def __init__(self, chunks=None, corridor=None):
        self.chunks = None if chunks is None else list(chunks)
        self.corridor = corridor
        self.chunk_calls: list[list[str]] = []
        self.corridor_calls: list[tuple[tuple[float, float], tuple[float, float]]] = []

    async def route_stops(self, stops):
        self.chunk_calls.append([s.id for s in stops])
        if self.chunks is None:
            return [s.position for s in stops]
        return self.chunks.pop(0) if self.chunks else None

    async def route_between(self, a, b):
        self.corridor_calls.append((a.position, b.position))
        if self.corridor is None:
            return None
        return self.corridor(a, b)


@pytest.fixture
def make_stop():
    """Factory for stops; `order` defaults to the numeric part of the id."""

    def _make(stop_id: str, lon: float, lat: float, order: int | None = None, direction: int = 0):
        return Stop(
            id=stop_id,
            name=f"Stop {stop_id}",
            order=order if order is not None else int("".join(c for c in stop_id if c.isdigit()) or 0),
            external_code=stop_id.upper(),
            lat=lat,
            lon=lon,
            direction_code=direction,
        )

    return _make


@pytest.fixture
def fake_router():
    return FakeRouter
