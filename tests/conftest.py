"""
Pytest configuration and shared fixtures for field-route-planner tests.

This file provides:
- Small hand-checked travel-time matrices
- Fake travel-time, geometry and geocoding providers
- Sample stops, anchors and an in-memory store
"""

import asyncio
import math
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np
import pytest

from src.geocoding import GeocodeResult, NominatimGeocoder
from src.planning import Anchor, AnchorRole, InMemoryDayPlanStore, RoutePlanner, Stop
from src.routing import GeocodingError, GeometryUnavailable, ProviderError, RouteGeometry
from src.tools import PlannerSettings


# ==============================================================================
# Matrices
# ==============================================================================

@pytest.fixture
def square_matrix() -> np.ndarray:
    """Unit square corners 0=(0,0), 1=(1,0), 2=(1,1), 3=(0,1)."""
    d = math.sqrt(2)
    return np.array([
        [0, 1, d, 1],
        [1, 0, 1, d],
        [d, 1, 0, 1],
        [1, d, 1, 0],
    ], dtype=float)


@pytest.fixture
def line_matrix() -> np.ndarray:
    """Five points on a line at x = 0, 1, 2, 3, 4."""
    xs = np.arange(5, dtype=float)
    return np.abs(xs[:, None] - xs[None, :])


@pytest.fixture
def asymmetric_matrix() -> np.ndarray:
    """One-way streets: going 'forward' is cheap, going back is expensive."""
    return np.array([
        [0, 1, 9, 9, 9],
        [9, 0, 1, 9, 9],
        [9, 9, 0, 1, 9],
        [9, 9, 9, 0, 1],
        [1, 9, 9, 9, 0],
    ], dtype=float)


def random_matrix(n: int, seed: int, symmetric: bool = True) -> np.ndarray:
    """Matrix from random points in a 10 km box (seconds at ~10 m/s)."""
    rng = np.random.default_rng(seed)
    points = rng.uniform(0, 10_000, size=(n, 2))
    matrix = np.linalg.norm(points[:, None, :] - points[None, :, :], axis=-1) / 10.0
    if not symmetric:
        matrix = matrix * rng.uniform(0.8, 1.2, size=(n, n))
        np.fill_diagonal(matrix, 0.0)
    return matrix


@pytest.fixture
def make_matrix():
    """Factory for reproducible random matrices: ``make_matrix(n, seed, symmetric=True)``."""
    return random_matrix


# ==============================================================================
# Fake Providers
# ==============================================================================

def euclidean_seconds(coordinates: Sequence[Tuple[float, float]]) -> np.ndarray:
    points = np.asarray(coordinates, dtype=float)
    if len(points) == 0:
        return np.zeros((0, 0))
    return np.linalg.norm(points[:, None, :] - points[None, :, :], axis=-1) * 10_000


class FakeTravelTimes:
    """Travel-time provider computing straight-line 'seconds' from coordinates."""

    def __init__(self, error: Optional[Exception] = None, matrix: Optional[np.ndarray] = None):
        self.error = error
        self.matrix = matrix
        self.calls: List[List[Tuple[float, float]]] = []
        self.gate: Optional[asyncio.Event] = None
        self.started: Optional[asyncio.Event] = None

    async def get_travel_time_matrix(self, coordinates):
        self.calls.append(list(coordinates))
        if self.started is not None:
            self.started.set()
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        if self.matrix is not None:
            return self.matrix
        return euclidean_seconds(coordinates)


class FakeGeometry:
    """Geometry provider echoing the requested coordinates as the path."""

    def __init__(self, error: Optional[Exception] = None, distance: float = 4200.0):
        self.error = error
        self.distance = distance
        self.calls: List[List[Tuple[float, float]]] = []

    async def get_route_geometry(self, coordinates):
        self.calls.append(list(coordinates))
        if self.error is not None:
            raise self.error
        return RouteGeometry(path=list(coordinates), distance_meters=self.distance, duration_seconds=900.0)


class FakeGeocoder(NominatimGeocoder):
    """Geocoder answering from a fixed address table; map links go through ``resolve``."""

    def __init__(self, known: Dict[str, Tuple[float, float]]):
        super().__init__()
        self.known = known
        self.queries: List[str] = []

    async def geocode(self, address: str) -> GeocodeResult:
        self.queries.append(address)
        if address not in self.known:
            raise GeocodingError("Address not found")
        lat, lng = self.known[address]
        return GeocodeResult(lat=lat, lng=lng, display_name=f"{address}, Surat")


@pytest.fixture
def travel_times() -> FakeTravelTimes:
    return FakeTravelTimes()


@pytest.fixture
def failing_travel_times() -> FakeTravelTimes:
    return FakeTravelTimes(error=ProviderError("OSRM request failed: 503"))


@pytest.fixture
def geometry() -> FakeGeometry:
    return FakeGeometry()


@pytest.fixture
def unavailable_geometry() -> FakeGeometry:
    return FakeGeometry(error=GeometryUnavailable("OSRM route error: NoRoute"))


@pytest.fixture
def geocoder() -> FakeGeocoder:
    return FakeGeocoder({
        "Ring Road": (21.1860, 72.8310),
        "Adajan Patiya": (21.1950, 72.7930),
        "Vesu Main Road": (21.1420, 72.7710),
        "Athwa Gate": (21.1800, 72.8120),
        "Home Street": (21.1700, 72.8300),
        "Office Tower": (21.2000, 72.8400),
    })


# ==============================================================================
# Sample Records
# ==============================================================================

@pytest.fixture
def sample_stops() -> List[Stop]:
    """Three stops around Surat in insertion order."""
    return [
        Stop(id="stop-a", name="Ring Road", address="Ring Road", lat=21.1860, lng=72.8310),
        Stop(id="stop-b", name="Adajan Patiya", address="Adajan Patiya", lat=21.1950, lng=72.7930),
        Stop(id="stop-c", name="Vesu Main Road", address="Vesu Main Road", lat=21.1420, lng=72.7710),
    ]


@pytest.fixture
def home_anchor() -> Anchor:
    return Anchor(role=AnchorRole.START, lat=21.1700, lng=72.8300, address="Home Street")


@pytest.fixture
def office_anchor() -> Anchor:
    return Anchor(role=AnchorRole.END, lat=21.2000, lng=72.8400, address="Office Tower")


@pytest.fixture
def memory_store() -> InMemoryDayPlanStore:
    return InMemoryDayPlanStore()


@pytest.fixture
def fast_settings() -> PlannerSettings:
    """Settings without geocoder pacing or provider timeouts."""
    return PlannerSettings(bulk_geocode_delay_sec=0.0, matrix_timeout_sec=5.0, geometry_timeout_sec=5.0)


@pytest.fixture
def planner(memory_store, travel_times, geometry, geocoder, fast_settings) -> RoutePlanner:
    return RoutePlanner(
        store=memory_store,
        travel_times=travel_times,
        geometry=geometry,
        geocoder=geocoder,
        settings=fast_settings,
    )
