"""
Day plan operations.

Every function returns a new ``DayPlan`` and leaves its input untouched, so
a failed operation can never leave a half-updated plan behind.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

from src.routing.errors import StopNotFoundError

from .models import DayPlan, Stop
from .reconcile import apply_ranks, clear_ranks

LINK_STOP_NAME = "Shop"


@dataclass
class Progress:
    """Visit progress for a day."""

    visited: int
    pending: int
    total: int

    @property
    def percent(self) -> float:
        return (self.visited / self.total) * 100.0 if self.total else 0.0


def new_day_plan(day_id: str) -> DayPlan:
    return DayPlan(day_id=day_id)


def default_stop_name(address: str, from_link: bool = False) -> str:
    """Name used when the user gives none: first address part, or "Shop" for map links."""
    if from_link:
        return LINK_STOP_NAME
    return address.split(",")[0].strip() or address.strip()


def make_stop(
    address: str,
    lat: float,
    lng: float,
    name: Optional[str] = None,
    display_name: Optional[str] = None,
    from_link: bool = False,
) -> Stop:
    address = address.strip()
    return Stop(
        name=(name or "").strip() or default_stop_name(address, from_link),
        address=address,
        lat=lat,
        lng=lng,
        display_name=display_name,
    )


def invalidate_solution(plan: DayPlan, stops: Optional[List[Stop]] = None) -> DayPlan:
    """Drop everything that describes a previous solve of the stop set."""
    return plan.model_copy(update={
        "stops": clear_ranks(plan.stops if stops is None else stops),
        "last_order": None,
        "path_geometry": None,
        "total_time": 0.0,
        "total_distance": None,
    })


def add_stops(plan: DayPlan, stops: Iterable[Stop]) -> DayPlan:
    new_stops = list(stops)
    if not new_stops:
        return plan
    return invalidate_solution(plan, [*plan.stops, *new_stops])


def remove_stop(plan: DayPlan, stop_id: str) -> DayPlan:
    if plan.find_stop(stop_id) is None:
        raise StopNotFoundError(stop_id)
    return invalidate_solution(plan, [stop for stop in plan.stops if stop.id != stop_id])


def toggle_visited(plan: DayPlan, stop_id: str) -> DayPlan:
    """Flip the visited flag; ranks and the solved order stay valid."""
    if plan.find_stop(stop_id) is None:
        raise StopNotFoundError(stop_id)
    stops = [
        stop.model_copy(update={"visited": not stop.visited}) if stop.id == stop_id else stop
        for stop in plan.stops
    ]
    return plan.model_copy(update={"stops": stops})


def clear_day(plan: DayPlan) -> DayPlan:
    return new_day_plan(plan.day_id)


def apply_solution(
    plan: DayPlan,
    ranks: Dict[str, int],
    *,
    total_time: float,
    total_distance: Optional[float] = None,
    path: Optional[List[tuple]] = None,
) -> DayPlan:
    """Write a fresh solve onto the plan, replacing any earlier ranks."""
    stops = apply_ranks(clear_ranks(plan.stops), ranks)
    last_order = sorted(ranks, key=ranks.__getitem__)
    return plan.model_copy(update={
        "stops": stops,
        "last_order": last_order,
        "path_geometry": path,
        "total_time": total_time,
        "total_distance": total_distance,
    })


def progress(plan: DayPlan) -> Progress:
    visited = sum(1 for stop in plan.stops if stop.visited)
    return Progress(visited=visited, pending=len(plan.stops) - visited, total=len(plan.stops))
