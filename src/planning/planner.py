"""
Route planner service: stop management, anchors and per-day optimization.

Day plans are loaded, changed through the pure operations in ``day_plan``
and saved in one step. Optimization for a given day runs at most once at a
time; different days are independent. Display layers receive changes through
explicitly registered listeners.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from src.geocoding import GeocodeResult, NominatimGeocoder, parse_map_link
from src.routing import (
    GeocodingError,
    MatrixCache,
    OptimizationInProgressError,
    OSRMClient,
    RouteGeometryProvider,
    StopSetChangedError,
    TravelProfile,
    TravelTimeProvider,
)
from src.tools.config_loader import PlannerSettings

from . import day_plan as ops
from .models import Anchor, AnchorRole, DayPlan, Stop
from .optimizer import OptimizeResult, optimize
from .reconcile import next_pending_stop
from .store import DayPlanStore, JsonDayPlanStore

logger = logging.getLogger(__name__)


@dataclass
class DayPlanEvent:
    """Notification sent to listeners after a day plan was saved."""

    kind: str
    """One of: stops_added, stop_removed, visited_toggled, day_cleared, optimized."""

    plan: DayPlan


Listener = Callable[[DayPlanEvent], None]


@dataclass
class BulkAddResult:
    added: List[Stop] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)


class RoutePlanner:
    """Coordinates geocoding, storage and route optimization for day plans."""

    def __init__(
        self,
        store: DayPlanStore,
        travel_times: TravelTimeProvider,
        geometry: Optional[RouteGeometryProvider] = None,
        geocoder: Optional[NominatimGeocoder] = None,
        settings: Optional[PlannerSettings] = None,
    ):
        self.store = store
        self.travel_times = travel_times
        self.geometry = geometry
        self.geocoder = geocoder
        self.settings = settings or PlannerSettings()
        self._locks: Dict[str, asyncio.Lock] = {}
        self._listeners: List[Listener] = []

    @classmethod
    def from_settings(cls, settings: PlannerSettings) -> "RoutePlanner":
        """Wire OSRM, Nominatim and the JSON store from configuration."""
        osrm = OSRMClient(
            base_url=settings.osrm_base_url,
            profile=TravelProfile(settings.osrm_profile),
            timeout=settings.http_timeout_sec,
            max_attempts=settings.matrix_max_attempts,
            max_coordinates=settings.max_coordinates,
            cache=MatrixCache(ttl=settings.matrix_cache_ttl_sec),
        )
        geocoder = NominatimGeocoder(
            base_url=settings.nominatim_url,
            region_suffix=settings.geocode_region,
            user_agent=settings.user_agent,
            timeout=settings.http_timeout_sec,
        )
        return cls(
            store=JsonDayPlanStore(settings.data_dir),
            travel_times=osrm,
            geometry=osrm,
            geocoder=geocoder,
            settings=settings,
        )

    # -----------------------------
    # Change notification
    # -----------------------------

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register ``listener``; returns a function that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, kind: str, plan: DayPlan) -> None:
        event = DayPlanEvent(kind=kind, plan=plan)
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception("Day plan listener failed for %s event", kind)

    def _commit(self, day_id: str, kind: str, change: Callable[[DayPlan], DayPlan]) -> DayPlan:
        saved = self.store.save(change(self.store.load(day_id)))
        self._notify(kind, saved)
        return saved

    # -----------------------------
    # Queries
    # -----------------------------

    def get_day(self, day_id: str) -> DayPlan:
        return self.store.load(day_id)

    def list_days(self) -> List[str]:
        return self.store.list_days()

    def next_stop(self, day_id: str) -> Optional[Stop]:
        return next_pending_stop(self.store.load(day_id).stops)

    def is_optimizing(self, day_id: str) -> bool:
        lock = self._locks.get(day_id)
        return lock is not None and lock.locked()

    # -----------------------------
    # Stop management
    # -----------------------------

    async def _resolve(self, text: str) -> GeocodeResult:
        if self.geocoder is not None:
            return await self.geocoder.resolve(text)
        coords = parse_map_link(text)
        if coords is None:
            raise GeocodingError("No geocoder configured; paste a map link instead")
        return GeocodeResult(lat=coords[0], lng=coords[1], from_link=True)

    async def add_stop(self, day_id: str, address: str, name: Optional[str] = None) -> Stop:
        """
        Geocode ``address`` (or read a map link) and append it to the day.

        Raises:
            ValueError: If the address is blank
            GeocodingError: If the address cannot be resolved
        """
        address = address.strip()
        if not address:
            raise ValueError("Address is empty")

        found = await self._resolve(address)
        stop = ops.make_stop(
            address, found.lat, found.lng,
            name=name, display_name=found.display_name, from_link=found.from_link,
        )
        self._commit(day_id, "stops_added", lambda plan: ops.add_stops(plan, [stop]))
        logger.info("Added stop %s to day %s", stop.name, day_id)
        return stop

    async def add_stops_bulk(self, day_id: str, lines: Iterable[str]) -> BulkAddResult:
        """
        Add one stop per non-blank line; lines that fail to resolve are skipped.

        Geocoder lookups are spaced by ``bulk_geocode_delay_sec``.
        """
        result = BulkAddResult()
        entries = [line.strip() for line in lines if line and line.strip()]
        delay = self.settings.bulk_geocode_delay_sec

        for index, line in enumerate(entries):
            try:
                found = await self._resolve(line)
            except GeocodingError as exc:
                logger.warning(f"Skipping bulk line {index + 1}/{len(entries)} '{line}': {exc}")
                result.failed.append(line)
                found = None
            if found is not None:
                result.added.append(ops.make_stop(
                    line, found.lat, found.lng,
                    display_name=found.display_name, from_link=found.from_link,
                ))
            if delay > 0 and (found is None or not found.from_link) and index < len(entries) - 1:
                await asyncio.sleep(delay)

        if result.added:
            self._commit(day_id, "stops_added", lambda plan: ops.add_stops(plan, result.added))
        logger.info("Bulk add for day %s: %d/%d added", day_id, len(result.added), len(entries))
        return result

    def remove_stop(self, day_id: str, stop_id: str) -> DayPlan:
        return self._commit(day_id, "stop_removed", lambda plan: ops.remove_stop(plan, stop_id))

    def toggle_visited(self, day_id: str, stop_id: str) -> DayPlan:
        return self._commit(day_id, "visited_toggled", lambda plan: ops.toggle_visited(plan, stop_id))

    def clear_day(self, day_id: str) -> DayPlan:
        return self._commit(day_id, "day_cleared", ops.clear_day)

    # -----------------------------
    # Anchors
    # -----------------------------

    async def set_anchor(self, role: AnchorRole, address: str) -> Anchor:
        address = address.strip()
        if not address:
            raise ValueError("Address is empty")
        found = await self._resolve(address)
        anchor = Anchor(role=role, lat=found.lat, lng=found.lng, address=address)
        self.store.save_anchor(anchor)
        logger.info("Saved %s anchor", anchor.label.lower())
        return anchor

    def get_anchor(self, role: AnchorRole) -> Optional[Anchor]:
        return self.store.load_anchor(role)

    def clear_anchor(self, role: AnchorRole) -> None:
        self.store.delete_anchor(role)

    # -----------------------------
    # Optimization
    # -----------------------------

    async def optimize_day(self, day_id: str, use_anchors: bool = True) -> Tuple[DayPlan, OptimizeResult]:
        """
        Solve the visiting order for a day and persist it.

        The stored plan is only written after the matrix, the solve and the
        geometry lookup have all finished; any failure or cancellation leaves
        it exactly as it was.

        Raises:
            OptimizationInProgressError: If the day is already being optimized
            InsufficientStopsError: If stops plus anchors are fewer than 2
            ProviderError: If the travel-time matrix cannot be obtained
            StopSetChangedError: If stops were added or removed meanwhile
        """
        lock = self._locks.setdefault(day_id, asyncio.Lock())
        if lock.locked():
            raise OptimizationInProgressError(day_id)

        try:
            async with lock:
                saved, result = await self._optimize_locked(day_id, use_anchors)
        finally:
            # Contenders are rejected, never queued, so a released lock has no waiters.
            if self._locks.get(day_id) is lock and not lock.locked():
                del self._locks[day_id]

        self._notify("optimized", saved)
        return saved, result

    async def _optimize_locked(self, day_id: str, use_anchors: bool) -> Tuple[DayPlan, OptimizeResult]:
        plan = self.store.load(day_id)
        start = self.store.load_anchor(AnchorRole.START) if use_anchors else None
        end = self.store.load_anchor(AnchorRole.END) if use_anchors else None

        result = await optimize(
            plan.stops, start, end,
            travel_times=self.travel_times,
            geometry=self.geometry,
            matrix_timeout=self.settings.matrix_timeout_sec,
            geometry_timeout=self.settings.geometry_timeout_sec,
        )

        current = self.store.load(day_id)
        if {stop.id for stop in current.stops} != {stop.id for stop in plan.stops}:
            raise StopSetChangedError(day_id)

        saved = self.store.save(ops.apply_solution(
            current,
            result.ranks,
            total_time=result.total_time,
            total_distance=result.total_distance,
            path=result.geometry.path if result.geometry else None,
        ))

        return saved, result
