"""Nominatim geocoding and map-link coordinate extraction."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Optional, Tuple

import httpx

from src.routing.errors import GeocodingError

logger = logging.getLogger(__name__)

NOMINATIM_BASE = "https://nominatim.openstreetmap.org"
DEFAULT_REGION = "Surat, Gujarat, India"

# Google Maps share links carry coordinates in one of these shapes.
MAP_LINK_PATTERNS = (
    re.compile(r"!3d(-?\d+\.\d+)!4d(-?\d+\.\d+)"),
    re.compile(r"@(-?\d+\.\d+),(-?\d+\.\d+)"),
    re.compile(r"place/(-?\d+\.\d+),(-?\d+\.\d+)"),
)


@dataclass
class GeocodeResult:
    """Coordinates resolved for a piece of user input."""

    lat: float
    lng: float
    display_name: Optional[str] = None
    from_link: bool = False


def parse_map_link(text: str) -> Optional[Tuple[float, float]]:
    """
    Extract (lat, lng) from a Google Maps URL, or None if ``text`` has none.

    Raises:
        GeocodingError: If the link carries coordinates outside valid ranges
    """
    for pattern in MAP_LINK_PATTERNS:
        match = pattern.search(text)
        if match:
            lat, lng = float(match.group(1)), float(match.group(2))
            if not (-90.0 <= lat <= 90.0 and -180.0 <= lng <= 180.0):
                raise GeocodingError("Invalid coordinates in map link")
            return lat, lng
    return None


class NominatimGeocoder:
    """Turns free-text addresses into coordinates via Nominatim search."""

    def __init__(
        self,
        base_url: str = NOMINATIM_BASE,
        region_suffix: str = DEFAULT_REGION,
        user_agent: str = "field-route-planner",
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.region_suffix = region_suffix
        self.user_agent = user_agent
        self.timeout = timeout
        self._transport = transport

    def _query(self, address: str) -> str:
        if self.region_suffix:
            return f"{address}, {self.region_suffix}"
        return address

    async def geocode(self, address: str) -> GeocodeResult:
        """
        Look up ``address`` and return the best match.

        Raises:
            GeocodingError: If the service fails or nothing matches
        """
        params = {"q": self._query(address), "format": "json", "limit": "1"}
        headers = {"Accept-Language": "en", "User-Agent": self.user_agent}

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.get(f"{self.base_url}/search", params=params, headers=headers)
                response.raise_for_status()
                data = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise GeocodingError(f"Geocoding failed: {exc}") from exc

        if not isinstance(data, list) or not data:
            raise GeocodingError("Address not found")

        best = data[0]
        try:
            lat, lng = float(best["lat"]), float(best["lon"])
        except (KeyError, TypeError, ValueError) as exc:
            raise GeocodingError("Geocoder returned a result without coordinates") from exc
        return GeocodeResult(lat=lat, lng=lng, display_name=best.get("display_name"))

    async def resolve(self, text: str) -> GeocodeResult:
        """Use map-link coordinates when present, otherwise geocode ``text``."""
        coords = parse_map_link(text)
        if coords is not None:
            return GeocodeResult(lat=coords[0], lng=coords[1], from_link=True)
        return await self.geocode(text)
