"""
Configuration for the Offshore Passage Planner.

Settings come from environment variables, with a `.env` file in the project
root loaded first for local development.

Usage:
    from config import settings

    print(settings.windy_api_key)
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

env_path = Path(__file__).parent.parent / ".env"
if env_path.exists():
    load_dotenv(env_path)


def get_float(key: str, default: float) -> float:
    """Get float from environment variable."""
    try:
        return float(os.getenv(key, str(default)))
    except (ValueError, TypeError):
        return default


def get_int(key: str, default: int) -> int:
    """Get int from environment variable."""
    try:
        return int(os.getenv(key, str(default)))
    except (ValueError, TypeError):
        return default


def get_list(key: str, default: str = "") -> List[str]:
    """Get list from comma-separated environment variable."""
    value = os.getenv(key, default)
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


@dataclass
class Settings:
    """Application settings loaded from environment."""

    # Forecast provider (Windy point forecast)
    windy_api_key: Optional[str] = field(default_factory=lambda: os.getenv("WINDY_API_KEY"))
    windy_api_url: str = field(
        default_factory=lambda: os.getenv("WINDY_API_URL", "https://api.windy.com/api/point-forecast/v2")
    )
    windy_model: str = field(default_factory=lambda: os.getenv("WINDY_MODEL", "gfs"))
    forecast_timeout: float = field(default_factory=lambda: get_float("FORECAST_TIMEOUT", 15.0))

    # Planning defaults
    default_waypoint_interval: float = field(default_factory=lambda: get_float("DEFAULT_WAYPOINT_INTERVAL", 50.0))
    default_wind_threshold: float = field(default_factory=lambda: get_float("DEFAULT_WIND_THRESHOLD", 5.0))

    # Simulation: real seconds per 12-hour tick
    simulation_tick_seconds: float = field(default_factory=lambda: get_float("SIMULATION_TICK_SECONDS", 5.0))

    # API / logging
    api_host: str = field(default_factory=lambda: os.getenv("API_HOST", "0.0.0.0"))
    api_port: int = field(default_factory=lambda: get_int("API_PORT", 8000))
    cors_origins: List[str] = field(default_factory=lambda: get_list("CORS_ORIGINS", "*"))
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO").upper())


settings = Settings()
