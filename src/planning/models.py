"""Pydantic records for stops, anchors and day plans."""

from __future__ import annotations

import uuid
from datetime import datetime
from enum import Enum
from typing import List, Optional, Tuple

from pydantic import BaseModel, Field


def new_stop_id() -> str:
    """Opaque identifier assigned once when a stop is created."""
    return uuid.uuid4().hex


class Stop(BaseModel):
    """A place the agent has to visit on a given day."""

    id: str = Field(default_factory=new_stop_id)
    name: str
    address: str
    lat: float = Field(..., ge=-90, le=90, description="Latitude in decimal degrees")
    lng: float = Field(..., ge=-180, le=180, description="Longitude in decimal degrees")
    visited: bool = False
    rank: Optional[int] = Field(default=None, ge=0, description="Position in the last solved order")
    display_name: Optional[str] = None

    model_config = {"frozen": True}

    @property
    def coordinates(self) -> Tuple[float, float]:
        return (self.lat, self.lng)


class AnchorRole(str, Enum):
    """Fixed role of an anchor in a route."""

    START = "start"
    END = "end"


class Anchor(BaseModel):
    """Home (start) or office (end) location, kept outside the stop list."""

    role: AnchorRole
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)
    address: str = ""

    model_config = {"frozen": True}

    @property
    def coordinates(self) -> Tuple[float, float]:
        return (self.lat, self.lng)

    @property
    def label(self) -> str:
        return "Home" if self.role == AnchorRole.START else "Office"


class DayPlan(BaseModel):
    """Stops of one day plus the last solved order and its metrics.

    ``last_order``, ``path_geometry`` and the totals describe the stop set as
    it was at solve time and are cleared whenever that set changes.
    """

    day_id: str
    stops: List[Stop] = Field(default_factory=list)
    last_order: Optional[List[str]] = Field(
        default=None, description="Stop ids in solved visiting order"
    )
    path_geometry: Optional[List[Tuple[float, float]]] = None
    total_time: float = 0.0
    total_distance: Optional[float] = None
    updated_at: Optional[datetime] = None

    model_config = {"frozen": True}

    def find_stop(self, stop_id: str) -> Optional[Stop]:
        return next((stop for stop in self.stops if stop.id == stop_id), None)
