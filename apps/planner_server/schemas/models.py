"""Pydantic models for the route planner HTTP API."""

from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, Field, field_validator

from src.planning import Anchor, AnchorRole, DayPlan, Stop


class LatLng(BaseModel):
    """Simple latitude/longitude container."""

    lat: float = Field(..., description="Latitude in decimal degrees")
    lng: float = Field(..., description="Longitude in decimal degrees")


class AddStopRequest(BaseModel):
    address: str = Field(..., description="Street address or Google Maps link")
    name: Optional[str] = Field(default=None, description="Optional display name")

    @field_validator("address")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("address must not be blank")
        return value


class BulkAddRequest(BaseModel):
    text: str = Field(..., description="One address or map link per line")

    @property
    def lines(self) -> List[str]:
        return [line.strip() for line in self.text.splitlines() if line.strip()]


class BulkAddResponse(BaseModel):
    added: List[Stop]
    failed: List[str]
    status: str


class AnchorRequest(BaseModel):
    address: str = Field(..., description="Street address or Google Maps link")


class AnchorResponse(BaseModel):
    role: AnchorRole
    label: str
    address: str
    location: LatLng

    @classmethod
    def from_anchor(cls, anchor: Anchor) -> "AnchorResponse":
        return cls(
            role=anchor.role,
            label=anchor.label,
            address=anchor.address,
            location=LatLng(lat=anchor.lat, lng=anchor.lng),
        )


class ProgressView(BaseModel):
    visited: int
    pending: int
    total: int
    percent: float


class StopView(BaseModel):
    """Stop as shown in the planned-order list."""

    number: int = Field(..., description="1-based position in the displayed list")
    stop: Stop
    directions_url: str = Field(..., alias="directionsUrl")

    model_config = {"populate_by_name": True}


class DayPlanResponse(BaseModel):
    day_id: str
    stops: List[StopView]
    progress: ProgressView
    optimized: bool
    summary: Optional[str] = None
    last_order: Optional[List[str]] = None
    route_path: Optional[List[Tuple[float, float]]] = None
    total_time: float = 0.0
    total_distance: Optional[float] = None
    updated_at: Optional[datetime] = None


class DaySummary(BaseModel):
    day_id: str
    stop_count: int
    visited: int
    optimized: bool


class DayListResponse(BaseModel):
    days: List[DaySummary]


class OptimizeResponse(BaseModel):
    day: DayPlanResponse
    ranks: Dict[str, int]
    location_count: int
    geometry_available: bool
    status: str


class NextStopResponse(BaseModel):
    stop: Optional[Stop] = None
    directions_url: Optional[str] = Field(default=None, alias="directionsUrl")
    status: str

    model_config = {"populate_by_name": True}


def day_summary(plan: DayPlan) -> DaySummary:
    return DaySummary(
        day_id=plan.day_id,
        stop_count=len(plan.stops),
        visited=sum(1 for stop in plan.stops if stop.visited),
        optimized=plan.last_order is not None,
    )
