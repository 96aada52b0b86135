"""
src/geocoding: Address lookup for new stops and anchors.
"""

from .nominatim import (
    GeocodeResult,
    NominatimGeocoder,
    parse_map_link,
    MAP_LINK_PATTERNS,
    NOMINATIM_BASE,
    DEFAULT_REGION,
)

__all__ = [
    "GeocodeResult",
    "NominatimGeocoder",
    "parse_map_link",
    "MAP_LINK_PATTERNS",
    "NOMINATIM_BASE",
    "DEFAULT_REGION",
]
