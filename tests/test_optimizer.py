"""
Unit Tests for the optimize pipeline (src/planning/optimizer.py)

Providers are replaced by in-process fakes; every test drives the coroutine
with ``asyncio.run``.
"""

import asyncio

import httpx
import numpy as np
import pytest

from src.planning import optimize
from src.routing import InsufficientStopsError, MatrixCache, OSRMClient, ProviderError, TooManyLocationsError
from tests.conftest import FakeGeometry, FakeTravelTimes


class TestOptimize:
    """Test working list, solve and reconciliation together."""

    def test_ranks_cover_all_stops(self, sample_stops, travel_times, geometry):
        result = asyncio.run(optimize(sample_stops, travel_times=travel_times, geometry=geometry))

        assert set(result.ranks) == {"stop-a", "stop-b", "stop-c"}
        assert sorted(result.ranks.values()) == [0, 1, 2]
        assert result.location_count == 3
        assert result.stop_order == sorted(result.ranks, key=result.ranks.get)

    def test_matrix_requested_in_insertion_order(self, sample_stops, travel_times):
        asyncio.run(optimize(sample_stops, travel_times=travel_times))
        assert travel_times.calls == [[s.coordinates for s in sample_stops]]

    def test_geometry_requested_in_solved_order(self, sample_stops, travel_times, geometry):
        result = asyncio.run(optimize(sample_stops, travel_times=travel_times, geometry=geometry))

        by_id = {s.id: s for s in sample_stops}
        expected = [by_id[stop_id].coordinates for stop_id in result.stop_order]
        assert geometry.calls == [expected]
        assert result.geometry.path == expected
        assert result.total_distance == 4200.0

    def test_total_time_matches_matrix(self, sample_stops, travel_times):
        result = asyncio.run(optimize(sample_stops, travel_times=travel_times))
        coords = [result.working_list[i].coordinates for i in result.order]
        legs = [
            np.hypot(a[0] - b[0], a[1] - b[1]) * 10_000
            for a, b in zip(coords[:-1], coords[1:])
        ]
        assert result.total_time == pytest.approx(sum(legs))

    def test_home_anchor_is_first(self, sample_stops, home_anchor, travel_times, geometry):
        result = asyncio.run(optimize(
            sample_stops, home_anchor, travel_times=travel_times, geometry=geometry,
        ))

        assert result.location_count == 4
        assert result.order[0] == 0
        assert geometry.calls[0][0] == home_anchor.coordinates
        assert sorted(result.ranks.values()) == [0, 1, 2]
        assert "__home__" not in result.ranks

    def test_office_anchor_is_last(self, sample_stops, office_anchor, travel_times, geometry):
        result = asyncio.run(optimize(
            sample_stops, None, office_anchor, travel_times=travel_times, geometry=geometry,
        ))

        assert result.order[-1] == 3
        assert geometry.calls[0][-1] == office_anchor.coordinates
        assert sorted(result.ranks.values()) == [0, 1, 2]

    def test_both_anchors(self, sample_stops, home_anchor, office_anchor, travel_times):
        result = asyncio.run(optimize(
            sample_stops, home_anchor, office_anchor, travel_times=travel_times,
        ))
        assert result.order[0] == 0
        assert result.order[-1] == 4
        assert len(result.ranks) == 3

    def test_single_stop_with_home(self, sample_stops, home_anchor, travel_times):
        result = asyncio.run(optimize(sample_stops[:1], home_anchor, travel_times=travel_times))
        assert result.ranks == {"stop-a": 0}
        assert result.order == [0, 1]

    def test_anchors_without_stops(self, home_anchor, office_anchor, travel_times):
        result = asyncio.run(optimize([], home_anchor, office_anchor, travel_times=travel_times))
        assert result.ranks == {}
        assert result.order == [0, 1]

    def test_single_stop_is_insufficient(self, sample_stops, travel_times):
        with pytest.raises(InsufficientStopsError) as exc_info:
            asyncio.run(optimize(sample_stops[:1], travel_times=travel_times))
        assert exc_info.value.node_count == 1
        assert travel_times.calls == []

    def test_no_stops_is_insufficient(self, travel_times):
        with pytest.raises(InsufficientStopsError):
            asyncio.run(optimize([], travel_times=travel_times))

    def test_without_geometry_provider(self, sample_stops, travel_times):
        result = asyncio.run(optimize(sample_stops, travel_times=travel_times))
        assert result.geometry is None
        assert result.total_distance is None


class TestProviderFailures:
    """Test fatal and non-fatal provider errors."""

    def test_matrix_failure_is_fatal(self, sample_stops, failing_travel_times, geometry):
        with pytest.raises(ProviderError):
            asyncio.run(optimize(sample_stops, travel_times=failing_travel_times, geometry=geometry))
        assert geometry.calls == []

    def test_wrong_shape_is_provider_error(self, sample_stops):
        provider = FakeTravelTimes(matrix=np.zeros((2, 2)))
        with pytest.raises(ProviderError, match="shape"):
            asyncio.run(optimize(sample_stops, travel_times=provider))

    def test_malformed_matrix_is_provider_error(self, sample_stops):
        provider = FakeTravelTimes(matrix=np.full((3, 3), -1.0))
        with pytest.raises(ProviderError, match="malformed"):
            asyncio.run(optimize(sample_stops, travel_times=provider))

    def test_matrix_timeout(self, sample_stops):
        provider = FakeTravelTimes()

        async def scenario():
            provider.gate = asyncio.Event()
            return await optimize(sample_stops, travel_times=provider, matrix_timeout=0.05)

        with pytest.raises(ProviderError, match="timed out"):
            asyncio.run(scenario())

    def test_geometry_failure_keeps_order(self, sample_stops, travel_times, unavailable_geometry):
        result = asyncio.run(optimize(
            sample_stops, travel_times=travel_times, geometry=unavailable_geometry,
        ))
        assert sorted(result.ranks.values()) == [0, 1, 2]
        assert result.geometry is None
        assert result.total_distance is None

    def test_geometry_provider_error_is_not_fatal(self, sample_stops, travel_times):
        geometry = FakeGeometry(error=ProviderError("OSRM request failed"))
        result = asyncio.run(optimize(sample_stops, travel_times=travel_times, geometry=geometry))
        assert result.geometry is None
        assert len(result.ranks) == 3

    def test_rejected_request_is_provider_error(self, sample_stops):
        provider = FakeTravelTimes(error=ValueError("Coordinate out of range: (95.0, 72.8)"))
        with pytest.raises(ProviderError, match="rejected"):
            asyncio.run(optimize(sample_stops, travel_times=provider))


# ==============================================================================
# OSRM-backed pipeline
# ==============================================================================

TABLE = {
    "code": "Ok",
    "durations": [
        [0, 320.5, 610.0],
        [300.0, 0, 410.2],
        [620.0, 400.0, 0],
    ],
}


def osrm_client(route_body, **kwargs) -> OSRMClient:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.startswith("/table/"):
            return httpx.Response(200, json=TABLE)
        return httpx.Response(200, json=route_body)

    return OSRMClient(
        base_url="http://osrm.test",
        cache=MatrixCache(),
        transport=httpx.MockTransport(handler),
        **kwargs,
    )


class TestWithOSRMClient:
    """Test the pipeline against the HTTP client with a mocked transport."""

    def test_malformed_route_keeps_solved_order(self, sample_stops):
        client = osrm_client({"code": "Ok", "routes": [{"distance": None, "duration": 600.0}]})

        result = asyncio.run(optimize(sample_stops, travel_times=client, geometry=client))

        assert sorted(result.ranks.values()) == [0, 1, 2]
        assert result.geometry is None
        assert result.total_distance is None

    def test_bad_route_coordinates_keep_solved_order(self, sample_stops):
        route = {"distance": 10.0, "duration": 5.0, "geometry": {"coordinates": [[72.8]]}}
        client = osrm_client({"code": "Ok", "routes": [route]})

        result = asyncio.run(optimize(sample_stops, travel_times=client, geometry=client))

        assert len(result.ranks) == 3
        assert result.geometry is None

    def test_too_many_locations(self, sample_stops, home_anchor):
        client = osrm_client({"code": "Ok", "routes": []}, max_coordinates=3)

        with pytest.raises(TooManyLocationsError) as excinfo:
            asyncio.run(optimize(sample_stops, home_anchor, travel_times=client, geometry=client))
        assert isinstance(excinfo.value, ProviderError)
        assert excinfo.value.requested == 4
