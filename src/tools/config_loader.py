"""
Configuration loader for planner profiles and environment variables.
"""

import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Dict, Any, Optional

import yaml
from dotenv import load_dotenv


@dataclass
class PlannerSettings:
    """Resolved settings for providers, timeouts and storage."""

    osrm_base_url: str = "https://router.project-osrm.org"
    osrm_profile: str = "driving"
    max_coordinates: int = 100
    matrix_max_attempts: int = 1
    matrix_cache_ttl_sec: int = 600
    http_timeout_sec: float = 30.0
    matrix_timeout_sec: float = 45.0
    geometry_timeout_sec: float = 30.0

    nominatim_url: str = "https://nominatim.openstreetmap.org"
    geocode_region: str = "Surat, Gujarat, India"
    user_agent: str = "field-route-planner"
    bulk_geocode_delay_sec: float = 1.0

    data_dir: str = "data"

    @classmethod
    def from_profile(cls, profile: Dict[str, Any]) -> "PlannerSettings":
        """Flatten the ``routing``, ``geocoding`` and ``storage`` sections of a profile."""
        routing_cfg = profile.get("routing", {}) or {}
        geocoding_cfg = profile.get("geocoding", {}) or {}
        storage_cfg = profile.get("storage", {}) or {}

        known = {f.name for f in fields(cls)}
        values: Dict[str, Any] = {}
        for section in (routing_cfg, geocoding_cfg, storage_cfg):
            for key, value in section.items():
                if key in known and value is not None:
                    values[key] = value
        return cls(**values)


class ConfigLoader:
    """Load and manage configuration from YAML files and environment."""

    CONFIG_DIR = Path(__file__).parent.parent.parent / "configs"
    PROFILE_ENV = "ROUTE_PLANNER_PROFILE"
    DEFAULT_PROFILE = "default"

    @classmethod
    def load_profile(cls, profile_name: str = DEFAULT_PROFILE) -> Dict[str, Any]:
        """
        Load a planner profile configuration.

        Args:
            profile_name: Name of the profile (default, self-hosted)

        Returns:
            Dictionary with configuration values

        Raises:
            FileNotFoundError: If profile doesn't exist
        """
        profile_path = cls.CONFIG_DIR / f"{profile_name}.yaml"

        if not profile_path.exists():
            available = [f.stem for f in cls.CONFIG_DIR.glob("*.yaml")]
            raise FileNotFoundError(
                f"Profile '{profile_name}' not found. Available profiles: {', '.join(available)}"
            )

        with open(profile_path, "r") as f:
            return yaml.safe_load(f) or {}

    @classmethod
    def get_profile_from_env(cls) -> Optional[str]:
        """Get profile name from ROUTE_PLANNER_PROFILE environment variable."""
        return os.getenv(cls.PROFILE_ENV)

    @classmethod
    def load_default_or_env_profile(cls) -> Dict[str, Any]:
        """Load the profile named in the environment, or the default one."""
        profile = cls.get_profile_from_env() or cls.DEFAULT_PROFILE
        return cls.load_profile(profile)


# Environment variables that override single settings.
ENV_OVERRIDES = {
    "OSRM_BASE_URL": "osrm_base_url",
    "NOMINATIM_URL": "nominatim_url",
    "ROUTE_PLANNER_DATA_DIR": "data_dir",
}


def get_config() -> Dict[str, Any]:
    """Convenience function to get current configuration."""
    return ConfigLoader.load_default_or_env_profile()


def get_settings() -> PlannerSettings:
    """Load ``.env``, the active profile and environment overrides."""
    load_dotenv()
    settings = PlannerSettings.from_profile(get_config())
    for env_name, attr in ENV_OVERRIDES.items():
        value = os.getenv(env_name)
        if value:
            setattr(settings, attr, value)
    return settings
