"""Configuration and presentation helpers."""

from .config_loader import ConfigLoader, PlannerSettings, get_config, get_settings
from .formatting import directions_url, format_distance, format_duration, route_summary

__all__ = [
    "ConfigLoader",
    "PlannerSettings",
    "get_config",
    "get_settings",
    "directions_url",
    "format_distance",
    "format_duration",
    "route_summary",
]
