"""Human-readable summaries for durations, distances and directions."""

from typing import Optional
from urllib.parse import urlencode

DIRECTIONS_BASE = "https://www.google.com/maps/dir/"


def format_duration(seconds: Optional[float]) -> str:
    """``3900`` -> ``"1h 5m"``, ``720`` -> ``"12m"``, empty -> ``"0m"``."""
    if not seconds:
        return "0m"
    hours = int(seconds // 3600)
    minutes = int((seconds % 3600) // 60)
    return f"{hours}h {minutes}m" if hours > 0 else f"{minutes}m"


def format_distance(meters: Optional[float]) -> str:
    """``3420`` -> ``"3.4 km"``, empty or unknown -> ``"0 km"``."""
    if not meters:
        return "0 km"
    return f"{meters / 1000:.1f} km"


def route_summary(total_distance: Optional[float], duration: Optional[float], location_count: int) -> str:
    return f"{format_distance(total_distance)} · {format_duration(duration)} · {location_count} stops"


def directions_url(lat: float, lng: float, travel_mode: str = "driving") -> str:
    """Turn-by-turn link to a destination in Google Maps."""
    query = urlencode({"api": 1, "destination": f"{lat},{lng}", "travelmode": travel_mode})
    return f"{DIRECTIONS_BASE}?{query}"
