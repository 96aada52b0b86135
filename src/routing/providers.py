"""Interfaces of the external routing collaborators used by the planner."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Protocol, Sequence, Tuple

import numpy as np

Coordinate = Tuple[float, float]


@dataclass
class RouteGeometry:
    """Drawable path for a visiting order, for display only."""

    path: List[Coordinate] = field(default_factory=list)
    """Polyline as (lat, lng) points."""

    distance_meters: float = 0.0
    duration_seconds: float = 0.0


class TravelTimeProvider(Protocol):
    """Builds pairwise travel durations for an ordered list of coordinates."""

    async def get_travel_time_matrix(self, coordinates: Sequence[Coordinate]) -> np.ndarray:
        """
        Return an N×N matrix of travel durations in seconds.

        Raises:
            ProviderError: If the backing service fails or answers badly
        """
        ...


class RouteGeometryProvider(Protocol):
    """Fetches a drawable path for coordinates visited in the given order."""

    async def get_route_geometry(self, coordinates: Sequence[Coordinate]) -> Optional[RouteGeometry]:
        """
        Return the path with aggregate distance/duration, or None if absent.

        Raises:
            GeometryUnavailable: If the service cannot provide a path
        """
        ...
