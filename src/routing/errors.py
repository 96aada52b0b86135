"""
Error taxonomy for route planning.

Fatal errors (``ProviderError``, ``InsufficientStopsError``) abort an optimize
call without touching the stored day plan. ``GeometryUnavailable`` is
non-fatal: the solved order is still committed, only the display path is
left empty.
"""

from __future__ import annotations


class RoutePlannerError(Exception):
    """Base class for all route planner errors."""


class MatrixError(ValueError):
    """Malformed travel-time matrix handed to the solver."""


class ProviderError(RoutePlannerError):
    """Travel-time or routing service unreachable or returned a bad response."""


class TooManyLocationsError(ProviderError):
    """The request has more locations than the travel-time service accepts."""

    def __init__(self, message: str, requested: int, maximum: int):
        self.requested = requested
        self.maximum = maximum
        super().__init__(message)


class GeometryUnavailable(RoutePlannerError):
    """No drawable path could be fetched for a solved order."""


class InsufficientStopsError(RoutePlannerError):
    """Fewer than two effective nodes (stops plus anchors) to optimize."""

    def __init__(self, node_count: int):
        self.node_count = node_count
        super().__init__(
            f"Need at least 2 locations (stops plus home/office) to optimize, got {node_count}"
        )


class OptimizationInProgressError(RoutePlannerError):
    """An optimize call is already running for the same day."""

    def __init__(self, day_id: str):
        self.day_id = day_id
        super().__init__(f"Day '{day_id}' is already being optimized")


class StopSetChangedError(RoutePlannerError):
    """Stops were added or removed while the day was being optimized."""

    def __init__(self, day_id: str):
        self.day_id = day_id
        super().__init__(f"Stops of day '{day_id}' changed during optimization; optimize again")


class StopNotFoundError(RoutePlannerError):
    """No stop with the given identifier exists in the day plan."""

    def __init__(self, stop_id: str):
        self.stop_id = stop_id
        super().__init__(f"Stop '{stop_id}' not found")


class GeocodingError(RoutePlannerError):
    """An address could not be turned into coordinates."""
