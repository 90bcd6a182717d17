"""
Configuration module with strict environment variable validation.
NO FALLBACKS for server settings - required variables must be explicitly set.

Decision tunables are centralized in config.yaml - modify there, not in code.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Any

import yaml


class ConfigurationError(Exception):
    """Raised when required configuration is missing."""
    pass


# Load YAML config once at module level
_CONFIG_PATH = Path(__file__).parent / "config.yaml"
_YAML_CONFIG: dict = {}


def _load_yaml_config() -> dict:
    """Load configuration from config.yaml file."""
    global _YAML_CONFIG
    if not _YAML_CONFIG:
        if _CONFIG_PATH.exists():
            with open(_CONFIG_PATH, "r") as f:
                _YAML_CONFIG = yaml.safe_load(f) or {}
        else:
            raise ConfigurationError(f"Configuration file not found: {_CONFIG_PATH}")
    return _YAML_CONFIG


def get_yaml_setting(*keys: str, default: Any = None) -> Any:
    """
    Get a setting from config.yaml using dot notation.

    Example: get_yaml_setting("planner", "grid_steps") -> 40
    """
    config = _load_yaml_config()
    value = config
    for key in keys:
        if isinstance(value, dict) and key in value:
            value = value[key]
        else:
            return default
    return value


def get_required_env(key: str) -> str:
    """Get a required environment variable. Raises if not set."""
    value = os.environ.get(key)
    if value is None or value.strip() == "":
        raise ConfigurationError(
            f"Missing required environment variable: {key}\n"
            f"Please set {key} in your .env file or environment."
        )
    return value.strip()


def get_optional_env(key: str) -> Optional[str]:
    """Get an optional environment variable. Returns None if not set."""
    value = os.environ.get(key)
    if value is None or value.strip() == "":
        return None
    return value.strip()


@dataclass(frozen=True)
class DecisionSettings:
    """Tunables for corridor building, conflict evaluation and replanning."""

    corridor_width_m: float = 50.0
    wind_limit_kts: float = 25.0
    grid_steps: int = 40
    route_simplify_tolerance_m: float = 30.0
    meters_per_degree: float = 111000.0

    @classmethod
    def from_yaml(cls) -> "DecisionSettings":
        """Load decision tunables from config.yaml, keeping defaults for absent keys."""
        defaults = cls()
        return cls(
            corridor_width_m=float(get_yaml_setting(
                "corridor", "width_m", default=defaults.corridor_width_m)),
            wind_limit_kts=float(get_yaml_setting(
                "weather", "wind_limit_kts", default=defaults.wind_limit_kts)),
            grid_steps=int(get_yaml_setting(
                "planner", "grid_steps", default=defaults.grid_steps)),
            route_simplify_tolerance_m=float(get_yaml_setting(
                "planner", "simplify_tolerance_m", default=defaults.route_simplify_tolerance_m)),
            meters_per_degree=float(get_yaml_setting(
                "geometry", "meters_per_degree", default=defaults.meters_per_degree)),
        )


@dataclass(frozen=True)
class Config:
    """Application configuration - immutable after creation."""

    # Server settings - REQUIRED
    backend_port: int
    backend_host: str

    # Spatial store - REQUIRED
    airspace_api_url: str

    # CORS settings - REQUIRED
    cors_origins: list[str]

    # Optional settings
    airspace_api_timeout: Optional[float]

    decision: DecisionSettings

    @classmethod
    def from_env(cls) -> "Config":
        """Load configuration from environment variables."""

        # Required settings
        backend_port = int(get_required_env("BACKEND_PORT"))
        backend_host = get_required_env("BACKEND_HOST")
        airspace_api_url = get_required_env("AIRSPACE_API_URL")

        cors_origins_str = get_required_env("CORS_ORIGINS")
        cors_origins = [origin.strip() for origin in cors_origins_str.split(",")]

        # Optional settings
        timeout_str = get_optional_env("AIRSPACE_API_TIMEOUT")
        airspace_api_timeout = float(timeout_str) if timeout_str else None

        return cls(
            backend_port=backend_port,
            backend_host=backend_host,
            airspace_api_url=airspace_api_url,
            cors_origins=cors_origins,
            airspace_api_timeout=airspace_api_timeout,
            decision=DecisionSettings.from_yaml(),
        )


def load_config() -> Config:
    """Load and validate configuration."""
    from dotenv import load_dotenv

    # Load .env file if present
    load_dotenv()

    return Config.from_env()
