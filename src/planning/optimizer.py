"""
Route optimization pipeline.

Assembles the working location list, fetches the travel-time matrix, solves
the visiting order (with home/office pinned when present), maps the order
back onto stop ids and asks for a display path. Nothing here writes to a
store: callers commit the returned result only once every step succeeded.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Dict, List, Optional, Sequence, TypeVar

import numpy as np

from src.routing import (
    GeometryUnavailable,
    InsufficientStopsError,
    MatrixError,
    ProviderError,
    RouteGeometry,
    RouteGeometryProvider,
    TravelTimeProvider,
    solve_with_endpoints,
    validate_matrix,
)

from .models import Anchor, Stop
from .reconcile import WorkingNode, build_working_list, reconcile

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class OptimizeResult:
    """Outcome of one optimize call."""

    ranks: Dict[str, int]
    """Zero-based visiting rank per stop id (anchors excluded)."""

    order: List[int]
    """Solved permutation over ``working_list`` positions."""

    working_list: List[WorkingNode]

    total_time: float
    """Travel time along the solved order from the matrix (seconds)."""

    total_distance: Optional[float] = None
    """Route length from the geometry provider (meters), None when unknown."""

    geometry: Optional[RouteGeometry] = None

    @property
    def stop_order(self) -> List[str]:
        """Stop ids in visiting order."""
        return sorted(self.ranks, key=self.ranks.__getitem__)

    @property
    def location_count(self) -> int:
        return len(self.working_list)


async def _bounded(awaitable: Awaitable[T], timeout: Optional[float]) -> T:
    if timeout is None:
        return await awaitable
    return await asyncio.wait_for(awaitable, timeout)


async def fetch_matrix(
    provider: TravelTimeProvider,
    working_list: Sequence[WorkingNode],
    timeout: Optional[float] = None,
) -> np.ndarray:
    """
    Fetch and sanity-check the matrix for exactly ``working_list``.

    Raises:
        ProviderError: On provider failure, timeout, a request the provider
            rejects (including too many locations), or a wrongly shaped matrix
    """
    coordinates = [node.coordinates for node in working_list]
    try:
        matrix = await _bounded(provider.get_travel_time_matrix(coordinates), timeout)
    except asyncio.TimeoutError as exc:
        raise ProviderError(f"Travel-time matrix request timed out after {timeout}s") from exc
    except ValueError as exc:
        raise ProviderError(f"Travel-time matrix request rejected: {exc}") from exc

    try:
        matrix = validate_matrix(matrix)
    except MatrixError as exc:
        raise ProviderError(f"Travel-time provider returned a malformed matrix: {exc}") from exc

    n = len(coordinates)
    if matrix.shape != (n, n):
        raise ProviderError(f"Travel-time matrix has shape {matrix.shape}, expected ({n}, {n})")
    return matrix


async def fetch_geometry(
    provider: Optional[RouteGeometryProvider],
    coordinates: Sequence[tuple],
    timeout: Optional[float] = None,
) -> Optional[RouteGeometry]:
    """Display path for the solved order; any failure yields None."""
    if provider is None:
        return None
    try:
        return await _bounded(provider.get_route_geometry(list(coordinates)), timeout)
    except (GeometryUnavailable, ProviderError) as exc:
        logger.warning(f"Route geometry unavailable, keeping solved order: {exc}")
    except asyncio.TimeoutError:
        logger.warning(f"Route geometry request timed out after {timeout}s, keeping solved order")
    return None


async def optimize(
    stops: Sequence[Stop],
    start_anchor: Optional[Anchor] = None,
    end_anchor: Optional[Anchor] = None,
    *,
    travel_times: TravelTimeProvider,
    geometry: Optional[RouteGeometryProvider] = None,
    matrix_timeout: Optional[float] = None,
    geometry_timeout: Optional[float] = None,
) -> OptimizeResult:
    """
    Compute a visiting order for ``stops``.

    Args:
        stops: Stops of the day, in insertion order
        start_anchor: Optional fixed first location (home)
        end_anchor: Optional fixed last location (office)
        travel_times: Provider of the pairwise travel-time matrix
        geometry: Optional provider of the display path
        matrix_timeout: Seconds allowed for the matrix request
        geometry_timeout: Seconds allowed for the geometry request

    Returns:
        OptimizeResult with ranks by stop id and aggregate metrics

    Raises:
        InsufficientStopsError: If stops plus anchors are fewer than 2
        ProviderError: If the travel-time matrix cannot be obtained; a
            ``TooManyLocationsError`` when the day exceeds the provider limit
    """
    working_list = build_working_list(stops, start_anchor, end_anchor)
    if len(working_list) < 2:
        raise InsufficientStopsError(len(working_list))

    logger.info(
        "Optimizing %d stops (home=%s, office=%s)",
        len(stops), start_anchor is not None, end_anchor is not None,
    )
    matrix = await fetch_matrix(travel_times, working_list, matrix_timeout)

    tour = solve_with_endpoints(
        matrix,
        has_start=start_anchor is not None,
        has_end=end_anchor is not None,
    )
    ranks = reconcile(working_list, tour.order)

    ordered_coordinates = [working_list[index].coordinates for index in tour.order]
    route = await fetch_geometry(geometry, ordered_coordinates, geometry_timeout)

    logger.info("Solved order over %d locations: %.0fs travel", len(working_list), tour.total_cost)
    return OptimizeResult(
        ranks=ranks,
        order=list(tour.order),
        working_list=working_list,
        total_time=tour.total_cost,
        total_distance=route.distance_meters if route else None,
        geometry=route,
    )
