"""
src/planning: Day plans, stop records and the optimize workflow.

This module ties the routing engine to persistent, identity-bearing stops.
"""

from .models import Anchor, AnchorRole, DayPlan, Stop, new_stop_id
from .reconcile import (
    WorkingNode,
    build_working_list,
    reconcile,
    apply_ranks,
    clear_ranks,
    planned_order,
    next_pending_stop,
    START_ANCHOR_ID,
    END_ANCHOR_ID,
)
from .day_plan import (
    Progress,
    new_day_plan,
    make_stop,
    default_stop_name,
    add_stops,
    remove_stop,
    toggle_visited,
    clear_day,
    apply_solution,
    invalidate_solution,
    progress,
)
from .optimizer import OptimizeResult, optimize
from .store import DayPlanStore, InMemoryDayPlanStore, JsonDayPlanStore
from .planner import BulkAddResult, DayPlanEvent, RoutePlanner

__all__ = [
    # Records
    "Anchor",
    "AnchorRole",
    "DayPlan",
    "Stop",
    "new_stop_id",

    # Reconciliation
    "WorkingNode",
    "build_working_list",
    "reconcile",
    "apply_ranks",
    "clear_ranks",
    "planned_order",
    "next_pending_stop",
    "START_ANCHOR_ID",
    "END_ANCHOR_ID",

    # Day plan operations
    "Progress",
    "new_day_plan",
    "make_stop",
    "default_stop_name",
    "add_stops",
    "remove_stop",
    "toggle_visited",
    "clear_day",
    "apply_solution",
    "invalidate_solution",
    "progress",

    # Optimization
    "OptimizeResult",
    "optimize",

    # Storage
    "DayPlanStore",
    "InMemoryDayPlanStore",
    "JsonDayPlanStore",

    # Service
    "BulkAddResult",
    "DayPlanEvent",
    "RoutePlanner",
]
