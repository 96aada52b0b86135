"""
OSRM travel-time matrix and route geometry client with guardrails and caching.

This module encapsulates all OSRM HTTP logic, providing:
- Coordinate count validation with helpful error messages
- TTL caching of duration tables keyed by the exact ordered coordinate list
- Optional retries with exponential backoff and jitter
- Route geometry lookup for display (non-fatal when unavailable)
"""

from __future__ import annotations

import asyncio
import logging
import random
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple

import httpx
import numpy as np
from cachetools import TTLCache

from .errors import GeometryUnavailable, ProviderError, TooManyLocationsError
from .providers import Coordinate, RouteGeometry

logger = logging.getLogger(__name__)


# -----------------------------
# Constants
# -----------------------------

class TravelProfile(Enum):
    """OSRM routing profiles."""
    DRIVING = "driving"
    WALKING = "walking"
    CYCLING = "cycling"


OSRM_PUBLIC_BASE = "https://router.project-osrm.org"

# Default max-table-size of an osrm-routed instance
MAX_TABLE_COORDINATES = 100

# Cache TTL (seconds)
TTL_MATRIX = 10 * 60

# Retry configuration
MAX_ATTEMPTS = 1
BACKOFF_BASE = 2
BACKOFF_MAX = 8


# -----------------------------
# Cache Management
# -----------------------------

class MatrixCache:
    """TTL cache for duration tables."""

    def __init__(self, maxsize: int = 256, ttl: int = TTL_MATRIX):
        self.ttl = ttl
        self._cache: TTLCache = TTLCache(maxsize=maxsize, ttl=ttl)

    def _cache_key(self, profile: TravelProfile, coordinates: Sequence[Coordinate]) -> Tuple:
        """
        Generate cache key from the ordered coordinates.

        Order is part of the key: a matrix is only valid for the exact list
        and ordering it was built from.
        """
        coords_key = tuple((round(lat, 6), round(lng, 6)) for lat, lng in coordinates)
        return (profile.value, coords_key)

    def get(self, profile: TravelProfile, coordinates: Sequence[Coordinate]) -> Optional[np.ndarray]:
        """Retrieve a copy of the cached matrix if available."""
        cached = self._cache.get(self._cache_key(profile, coordinates))
        return None if cached is None else cached.copy()

    def set(self, profile: TravelProfile, coordinates: Sequence[Coordinate], matrix: np.ndarray) -> None:
        """Store a private copy of ``matrix``."""
        self._cache[self._cache_key(profile, coordinates)] = matrix.copy()

    def clear(self) -> None:
        """Clear the cache."""
        self._cache.clear()

    def stats(self) -> Dict[str, Any]:
        """Get cache statistics."""
        return {
            "size": len(self._cache),
            "maxsize": self._cache.maxsize,
            "ttl": self.ttl,
        }


# -----------------------------
# Request Validation
# -----------------------------

def validate_coordinates(coordinates: Sequence[Coordinate], max_coordinates: int = MAX_TABLE_COORDINATES) -> None:
    """
    Validate a coordinate list against the table service limits.

    Raises:
        ValueError: If a point is out of range
        TooManyLocationsError: If the list is longer than the table service accepts
    """
    for lat, lng in coordinates:
        if not (-90.0 <= lat <= 90.0 and -180.0 <= lng <= 180.0):
            raise ValueError(f"Coordinate out of range: ({lat}, {lng})")

    if len(coordinates) > max_coordinates:
        raise TooManyLocationsError(
            "\n".join([
                "Travel-time matrix request exceeds service limits:",
                f"  Requested: {len(coordinates)} locations",
                f"  Maximum:   {max_coordinates} locations per table request",
                "",
                "Suggestions to fix this:",
                "  1. Split the day into several days",
                "  2. Point osrm_base_url at a self-hosted OSRM with a larger --max-table-size",
            ]),
            requested=len(coordinates),
            maximum=max_coordinates,
        )


def coordinates_path(coordinates: Sequence[Coordinate]) -> str:
    """OSRM wants ``lng,lat`` pairs joined by semicolons."""
    return ";".join(f"{lng},{lat}" for lat, lng in coordinates)


# -----------------------------
# Retry Logic
# -----------------------------

def exponential_backoff_with_jitter(attempt: int) -> float:
    """
    Calculate backoff time with exponential growth and jitter.

    Formula: min(BACKOFF_BASE^attempt + random(0,1), BACKOFF_MAX)
    """
    base_delay = BACKOFF_BASE ** attempt
    jitter = random.random()
    return min(base_delay + jitter, BACKOFF_MAX)


# -----------------------------
# API Client
# -----------------------------

class OSRMClient:
    """
    Travel-time and geometry provider backed by an OSRM server.

    Example:
        >>> client = OSRMClient()
        >>> matrix = await client.get_travel_time_matrix([(21.17, 72.83), (21.19, 72.80)])
    """

    def __init__(
        self,
        base_url: str = OSRM_PUBLIC_BASE,
        profile: TravelProfile = TravelProfile.DRIVING,
        timeout: float = 30.0,
        max_attempts: int = MAX_ATTEMPTS,
        max_coordinates: int = MAX_TABLE_COORDINATES,
        cache: Optional[MatrixCache] = None,
        use_cache: bool = True,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.profile = profile
        self.timeout = timeout
        self.max_attempts = max(1, max_attempts)
        self.max_coordinates = max_coordinates
        self.cache = cache if cache is not None else MatrixCache()
        self.use_cache = use_cache
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self._transport)

    async def _get_json(self, url: str, params: Dict[str, str]) -> Dict[str, Any]:
        """GET ``url`` with retries on 5xx and transport errors."""
        last_error: Optional[Exception] = None
        for attempt in range(self.max_attempts):
            try:
                async with self._client() as client:
                    response = await client.get(url, params=params)
                    response.raise_for_status()
                    data = response.json()
                if not isinstance(data, dict):
                    raise ProviderError("OSRM returned a non-object JSON body")
                return data
            except httpx.HTTPStatusError as e:
                last_error = e
                if e.response.status_code < 500:
                    break
            except (httpx.TransportError, ValueError) as e:
                last_error = e
            if attempt < self.max_attempts - 1:
                await asyncio.sleep(exponential_backoff_with_jitter(attempt))

        raise ProviderError(f"OSRM request failed: {last_error}") from last_error

    async def get_travel_time_matrix(self, coordinates: Sequence[Coordinate]) -> np.ndarray:
        """
        Fetch the N×N duration table (seconds) for ``coordinates``.

        Raises:
            TooManyLocationsError: If the request exceeds the coordinate limit
            ProviderError: If OSRM is unreachable, answers with a non-Ok
                code, or returns a table with gaps or the wrong shape
        """
        coordinates = list(coordinates)
        validate_coordinates(coordinates, self.max_coordinates)
        n = len(coordinates)
        if n == 0:
            return np.zeros((0, 0), dtype=float)

        if self.use_cache:
            cached = self.cache.get(self.profile, coordinates)
            if cached is not None:
                logger.debug("Matrix cache hit for %d locations", n)
                return cached

        url = f"{self.base_url}/table/v1/{self.profile.value}/{coordinates_path(coordinates)}"
        data = await self._get_json(url, {"annotations": "duration"})

        if data.get("code") != "Ok":
            raise ProviderError(f"OSRM table error: {data.get('code')} {data.get('message', '')}".strip())

        durations = data.get("durations")
        if not isinstance(durations, list) or len(durations) != n:
            raise ProviderError("OSRM table response has no usable durations")
        for row in durations:
            if not isinstance(row, list) or len(row) != n or any(value is None for value in row):
                raise ProviderError("OSRM table response has unreachable or missing entries")

        matrix = np.asarray(durations, dtype=float)
        if self.use_cache:
            self.cache.set(self.profile, coordinates, matrix)
        return matrix

    async def get_route_geometry(self, coordinates: Sequence[Coordinate]) -> Optional[RouteGeometry]:
        """
        Fetch the driving path through ``coordinates`` in the given order.

        Raises:
            GeometryUnavailable: If OSRM cannot provide a path
        """
        coordinates = list(coordinates)
        if len(coordinates) < 2:
            raise GeometryUnavailable("A route needs at least two locations")

        url = f"{self.base_url}/route/v1/{self.profile.value}/{coordinates_path(coordinates)}"
        try:
            data = await self._get_json(url, {"overview": "full", "geometries": "geojson"})
        except ProviderError as exc:
            raise GeometryUnavailable(str(exc)) from exc

        routes = data.get("routes") or []
        if data.get("code") != "Ok" or not routes:
            raise GeometryUnavailable(f"OSRM route error: {data.get('code')}")

        try:
            route = routes[0]
            points: List[Coordinate] = [
                (float(lat), float(lng))
                for lng, lat in (route.get("geometry") or {}).get("coordinates", [])
            ]
            return RouteGeometry(
                path=points,
                distance_meters=float(route.get("distance", 0.0)),
                duration_seconds=float(route.get("duration", 0.0)),
            )
        except (AttributeError, KeyError, TypeError, ValueError) as exc:
            raise GeometryUnavailable(f"OSRM route response is malformed: {exc}") from exc
