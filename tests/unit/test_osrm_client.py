"""Unit tests for the OSRM client against a mocked transport."""

import asyncio

import httpx
import pytest

from routeline import osrm_client
from routeline.osrm_client import OSRMClient, Router, format_coordinates

BASE_URL = "http://osrm.test/route/v1/driving"
POINTS = [(127.9, 37.3), (127.95, 37.35)]
GEOMETRY = [[127.9, 37.3], [127.92, 37.32], [127.95, 37.35]]


def _ok_payload(coords=GEOMETRY):
    return {"code": "Ok", "routes": [{"geometry": {"type": "LineString", "coordinates": coords}}]}


def run_route(handler, points=POINTS, **kwargs):
    """Run OSRMClient.route with a mocked transport; returns (result, requests)."""
    requests: list[httpx.Request] = []

    def recording_handler(request: httpx.Request):
        requests.append(request)
        return handler(request, len(requests))

    async def _go():
        async with httpx.AsyncClient(transport=httpx.MockTransport(recording_handler)) as http:
            client = OSRMClient(http, base_url=BASE_URL, retry_delay_s=0, **kwargs)
            return await client.route(points)

    return asyncio.run(_go()), requests


class TestFormatCoordinates:
    def test_lon_lat_with_six_decimals(self):
        assert format_coordinates([(127.9, 37.3), (1.23456789, -2.5)]) == (
            "127.900000,37.300000;1.234568,-2.500000"
        )


class TestRoute:
    def test_success_returns_first_route_geometry(self):
        result, requests = run_route(lambda req, n: httpx.Response(200, json=_ok_payload()))

        assert result == [(127.9, 37.3), (127.92, 37.32), (127.95, 37.35)]
        assert len(requests) == 1

    def test_request_encodes_points_and_options(self):
        _, requests = run_route(lambda req, n: httpx.Response(200, json=_ok_payload()))

        url = requests[0].url
        assert url.path.endswith("/route/v1/driving/127.900000,37.300000;127.950000,37.350000")
        assert url.params["overview"] == "full"
        assert url.params["geometries"] == "geojson"
        assert url.params["steps"] == "false"
        assert url.params["continue_straight"] == "true"

    def test_retries_transport_errors_then_succeeds(self):
        def handler(request, n):
            if n < 3:
                raise httpx.ConnectError("connection refused", request=request)
            return httpx.Response(200, json=_ok_payload())

        result, requests = run_route(handler)

        assert result is not None
        assert len(requests) == 3

    def test_gives_up_after_max_attempts(self):
        def handler(request, n):
            raise httpx.ReadTimeout("timed out", request=request)

        result, requests = run_route(handler)

        assert result is None
        assert len(requests) == 3

    def test_error_status_is_not_retried(self):
        result, requests = run_route(
            lambda req, n: httpx.Response(400, json={"code": "InvalidQuery", "message": "bad"})
        )

        assert result is None
        assert len(requests) == 1

    def test_server_error_is_not_retried(self):
        result, requests = run_route(lambda req, n: httpx.Response(503, text="busy"))

        assert result is None
        assert len(requests) == 1

    def test_unparsable_body(self):
        result, requests = run_route(lambda req, n: httpx.Response(200, text="<html>oops</html>"))

        assert result is None
        assert len(requests) == 1

    def test_undecodable_body_is_not_retried(self):
        result, requests = run_route(
            lambda req, n: httpx.Response(
                200, headers={"Content-Encoding": "gzip"}, content=b"not gzip at all"
            )
        )

        assert result is None
        assert len(requests) == 1

    @pytest.mark.parametrize(
        "payload",
        [
            {"code": "NoRoute", "routes": []},
            {"code": "Ok"},
            _ok_payload(coords=[]),
            _ok_payload(coords=[[127.9]]),
            ["not", "an", "object"],
        ],
    )
    def test_missing_or_empty_geometry(self, payload):
        result, requests = run_route(lambda req, n: httpx.Response(200, json=payload))

        assert result is None
        assert len(requests) == 1

    def test_requires_two_points(self):
        with pytest.raises(ValueError):
            run_route(lambda req, n: httpx.Response(200, json=_ok_payload()), points=[(1.0, 2.0)])

    def test_waits_between_attempts(self, monkeypatch):
        delays = []

        async def fake_sleep(seconds):
            delays.append(seconds)

        monkeypatch.setattr(osrm_client.asyncio, "sleep", fake_sleep)

        async def _go():
            def handler(request):
                raise httpx.ConnectError("down", request=request)

            async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
                return await OSRMClient(http, base_url=BASE_URL).route(POINTS)

        assert asyncio.run(_go()) is None
        assert delays == [0.5, 0.5]


class TestStopHelpers:
    def test_client_and_fake_both_satisfy_router(self, fake_router):
        async def _go():
            async with httpx.AsyncClient() as http:
                return OSRMClient(http, base_url=BASE_URL)

        assert isinstance(asyncio.run(_go()), Router)
        assert isinstance(fake_router(), Router)
        assert not isinstance(object(), Router)

    def test_route_stops_uses_stop_positions(self, make_stop):
        stops = [make_stop("s1", 127.9, 37.3), make_stop("s2", 127.95, 37.35)]
        requests = []

        async def _go():
            def handler(request):
                requests.append(request)
                return httpx.Response(200, json=_ok_payload())

            async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
                client = OSRMClient(http, base_url=BASE_URL)
                return await client.route_stops(stops), await client.route_between(*stops)

        by_stops, between = asyncio.run(_go())

        assert by_stops == between
        assert requests[0].url.path == requests[1].url.path
