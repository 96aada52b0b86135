"""Routing utilities and algorithms."""

from .errors import (
    RoutePlannerError,
    MatrixError,
    ProviderError,
    TooManyLocationsError,
    GeometryUnavailable,
    InsufficientStopsError,
    OptimizationInProgressError,
    StopSetChangedError,
    StopNotFoundError,
    GeocodingError,
)

from .tsp import (
    solve_tour,
    validate_matrix,
    tour_cost,
    nearest_neighbor_order,
    multi_start_nearest_neighbor,
    two_opt,
    TourResult,
)

from .endpoints import solve_with_endpoints

from .providers import (
    Coordinate,
    RouteGeometry,
    TravelTimeProvider,
    RouteGeometryProvider,
)

from .matrix import (
    # Client
    OSRMClient,
    TravelProfile,

    # Validation
    validate_coordinates,

    # Cache management
    MatrixCache,

    # Constants
    OSRM_PUBLIC_BASE,
    MAX_TABLE_COORDINATES,
    TTL_MATRIX,
)

__all__ = [
    # Errors
    "RoutePlannerError",
    "MatrixError",
    "ProviderError",
    "TooManyLocationsError",
    "GeometryUnavailable",
    "InsufficientStopsError",
    "OptimizationInProgressError",
    "StopSetChangedError",
    "StopNotFoundError",
    "GeocodingError",

    # Solvers
    "solve_tour",
    "solve_with_endpoints",
    "validate_matrix",
    "tour_cost",
    "nearest_neighbor_order",
    "multi_start_nearest_neighbor",
    "two_opt",
    "TourResult",

    # Provider interfaces
    "Coordinate",
    "RouteGeometry",
    "TravelTimeProvider",
    "RouteGeometryProvider",

    # OSRM client
    "OSRMClient",
    "TravelProfile",
    "validate_coordinates",
    "MatrixCache",
    "OSRM_PUBLIC_BASE",
    "MAX_TABLE_COORDINATES",
    "TTL_MATRIX",
]
