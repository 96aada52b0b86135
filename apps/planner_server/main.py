"""FastAPI server exposing the field route planner."""

from __future__ import annotations

from functools import lru_cache
from typing import Dict, List

from fastapi import Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

from src.planning import AnchorRole, DayPlan, RoutePlanner, planned_order, progress
from src.routing import (
    GeocodingError,
    InsufficientStopsError,
    OptimizationInProgressError,
    ProviderError,
    RoutePlannerError,
    StopNotFoundError,
    StopSetChangedError,
    TooManyLocationsError,
)
from src.tools import directions_url, get_settings, route_summary

from .schemas.models import (
    AddStopRequest,
    AnchorRequest,
    AnchorResponse,
    BulkAddRequest,
    BulkAddResponse,
    DayListResponse,
    DayPlanResponse,
    NextStopResponse,
    OptimizeResponse,
    ProgressView,
    StopView,
    day_summary,
)

app = FastAPI(title="Field Route Planner", version="1.0.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@lru_cache(maxsize=1)
def get_planner() -> RoutePlanner:
    return RoutePlanner.from_settings(get_settings())


def _http_error(exc: Exception) -> HTTPException:
    if isinstance(exc, StopNotFoundError):
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, (OptimizationInProgressError, StopSetChangedError)):
        return HTTPException(status_code=409, detail=str(exc))
    if isinstance(exc, (TooManyLocationsError, InsufficientStopsError, GeocodingError, ValueError)):
        return HTTPException(status_code=422, detail=str(exc))
    if isinstance(exc, ProviderError):
        return HTTPException(status_code=502, detail=str(exc))
    return HTTPException(status_code=500, detail=str(exc))


def _day_response(plan: DayPlan) -> DayPlanResponse:
    counts = progress(plan)
    optimized = plan.last_order is not None
    return DayPlanResponse(
        day_id=plan.day_id,
        stops=[
            StopView(number=position, stop=stop, directions_url=directions_url(stop.lat, stop.lng))
            for position, stop in enumerate(planned_order(plan.stops), start=1)
        ],
        progress=ProgressView(
            visited=counts.visited,
            pending=counts.pending,
            total=counts.total,
            percent=round(counts.percent, 1),
        ),
        optimized=optimized,
        summary=route_summary(plan.total_distance, plan.total_time, len(plan.stops)) if optimized else None,
        last_order=plan.last_order,
        route_path=plan.path_geometry,
        total_time=plan.total_time,
        total_distance=plan.total_distance,
        updated_at=plan.updated_at,
    )


@app.get("/health")
async def health_check() -> Dict[str, str]:
    return {"status": "ok"}


@app.get("/days", response_model=DayListResponse)
async def list_days(planner: RoutePlanner = Depends(get_planner)) -> DayListResponse:
    return DayListResponse(days=[day_summary(planner.get_day(day_id)) for day_id in planner.list_days()])


@app.get("/days/{day_id}", response_model=DayPlanResponse)
async def get_day(day_id: str, planner: RoutePlanner = Depends(get_planner)) -> DayPlanResponse:
    try:
        return _day_response(planner.get_day(day_id))
    except (RoutePlannerError, ValueError) as exc:
        raise _http_error(exc) from exc


@app.post("/days/{day_id}/stops", response_model=DayPlanResponse, status_code=201)
async def add_stop(
    day_id: str, request: AddStopRequest, planner: RoutePlanner = Depends(get_planner)
) -> DayPlanResponse:
    try:
        await planner.add_stop(day_id, request.address, name=request.name)
        return _day_response(planner.get_day(day_id))
    except (RoutePlannerError, ValueError) as exc:
        raise _http_error(exc) from exc


@app.post("/days/{day_id}/stops/bulk", response_model=BulkAddResponse)
async def add_stops_bulk(
    day_id: str, request: BulkAddRequest, planner: RoutePlanner = Depends(get_planner)
) -> BulkAddResponse:
    lines = request.lines
    if not lines:
        raise HTTPException(status_code=422, detail="No addresses given")
    try:
        result = await planner.add_stops_bulk(day_id, lines)
    except (RoutePlannerError, ValueError) as exc:
        raise _http_error(exc) from exc
    return BulkAddResponse(
        added=result.added,
        failed=result.failed,
        status=f"Added {len(result.added)}/{len(lines)} locations",
    )


@app.delete("/days/{day_id}/stops/{stop_id}", response_model=DayPlanResponse)
async def remove_stop(day_id: str, stop_id: str, planner: RoutePlanner = Depends(get_planner)) -> DayPlanResponse:
    try:
        return _day_response(planner.remove_stop(day_id, stop_id))
    except (RoutePlannerError, ValueError) as exc:
        raise _http_error(exc) from exc


@app.post("/days/{day_id}/stops/{stop_id}/toggle", response_model=DayPlanResponse)
async def toggle_visited(day_id: str, stop_id: str, planner: RoutePlanner = Depends(get_planner)) -> DayPlanResponse:
    try:
        return _day_response(planner.toggle_visited(day_id, stop_id))
    except (RoutePlannerError, ValueError) as exc:
        raise _http_error(exc) from exc


@app.post("/days/{day_id}/clear", response_model=DayPlanResponse)
async def clear_day(day_id: str, planner: RoutePlanner = Depends(get_planner)) -> DayPlanResponse:
    try:
        return _day_response(planner.clear_day(day_id))
    except (RoutePlannerError, ValueError) as exc:
        raise _http_error(exc) from exc


@app.post("/days/{day_id}/optimize", response_model=OptimizeResponse)
async def optimize_day(day_id: str, planner: RoutePlanner = Depends(get_planner)) -> OptimizeResponse:
    try:
        plan, result = await planner.optimize_day(day_id)
    except (RoutePlannerError, ValueError) as exc:
        raise _http_error(exc) from exc

    duration = result.geometry.duration_seconds if result.geometry else result.total_time
    return OptimizeResponse(
        day=_day_response(plan),
        ranks=result.ranks,
        location_count=result.location_count,
        geometry_available=result.geometry is not None,
        status=route_summary(result.total_distance, duration, result.location_count),
    )


@app.get("/days/{day_id}/next", response_model=NextStopResponse)
async def next_stop(day_id: str, planner: RoutePlanner = Depends(get_planner)) -> NextStopResponse:
    try:
        stop = planner.next_stop(day_id)
    except (RoutePlannerError, ValueError) as exc:
        raise _http_error(exc) from exc
    if stop is None:
        return NextStopResponse(status="All locations completed!")
    return NextStopResponse(
        stop=stop,
        directions_url=directions_url(stop.lat, stop.lng),
        status=f"Next: {stop.name}",
    )


@app.get("/anchors", response_model=List[AnchorResponse])
async def list_anchors(planner: RoutePlanner = Depends(get_planner)) -> List[AnchorResponse]:
    anchors = [planner.get_anchor(role) for role in AnchorRole]
    return [AnchorResponse.from_anchor(anchor) for anchor in anchors if anchor is not None]


@app.put("/anchors/{role}", response_model=AnchorResponse)
async def set_anchor(
    role: AnchorRole, request: AnchorRequest, planner: RoutePlanner = Depends(get_planner)
) -> AnchorResponse:
    try:
        anchor = await planner.set_anchor(role, request.address)
    except (RoutePlannerError, ValueError) as exc:
        raise _http_error(exc) from exc
    return AnchorResponse.from_anchor(anchor)


@app.delete("/anchors/{role}", status_code=204)
async def clear_anchor(role: AnchorRole, planner: RoutePlanner = Depends(get_planner)) -> None:
    planner.clear_anchor(role)


__all__ = ["app", "get_planner"]
