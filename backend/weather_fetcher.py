"""
Weather Fetcher - Gets point forecasts from the Windy.com API

Windy's Point Forecast API needs an API key, sent in the JSON request body.
Register at https://api.windy.com/keys

FEATURES:
- Wind speed/direction derived from the u/v surface components
- Gusts from the windGust layer (falls back to sustained wind)
- Never raises for network or API problems: failures come back as an error string
"""

import math
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import requests

from models import Coordinates, WindForecast
from geo_math import validate_coordinates

# Set up logging
logger = logging.getLogger(__name__)


WINDY_POINT_FORECAST_URL = "https://api.windy.com/api/point-forecast/v2"
PLACEHOLDER_API_KEY = "YOUR_WINDY_API_KEY"
MISSING_API_KEY_ERROR = "Windy.com API key not configured. Please add your API Key in Settings."

MS_TO_KNOTS = 1.94384


def ms_to_knots(ms: float) -> float:
    """Convert metres/second to knots (the API returns m/s)"""
    return ms * MS_TO_KNOTS


def wind_direction_from_components(u: float, v: float) -> float:
    """Direction the wind blows FROM (0-360°) for eastward u / northward v components."""
    direction = math.degrees(math.atan2(-u, -v))
    if direction < 0:
        direction += 360
    return direction


@dataclass
class ForecastProviderConfig:
    """Explicit client configuration - nothing is read from module state"""
    api_key: Optional[str]
    base_url: str = WINDY_POINT_FORECAST_URL
    model: str = "gfs"
    timeout: float = 15.0

    @property
    def has_api_key(self) -> bool:
        return bool(self.api_key) and self.api_key != PLACEHOLDER_API_KEY

    @classmethod
    def from_settings(cls, settings) -> "ForecastProviderConfig":
        return cls(
            api_key=settings.windy_api_key,
            base_url=settings.windy_api_url,
            model=settings.windy_model,
            timeout=settings.forecast_timeout,
        )


@dataclass
class ForecastResult:
    """Either a forecast or an error message"""
    forecast: Optional[WindForecast] = None
    error: Optional[str] = None


@dataclass
class ForecastSeries:
    forecasts: List[WindForecast]
    error: Optional[str] = None


class WindyForecastProvider:
    """Point-forecast client for the corridor sampler."""

    def __init__(self, config: ForecastProviderConfig, session: Optional[requests.Session] = None):
        self.config = config
        self.session = session or requests.Session()

    def get_wind_forecast(self, coordinates: Coordinates) -> ForecastSeries:
        """
        Fetch the hourly wind forecast for one location.

        Returns:
            ForecastSeries with forecasts, or an empty list and an error message
        """
        validate_coordinates(coordinates)

        if not self.config.has_api_key:
            return ForecastSeries(forecasts=[], error=MISSING_API_KEY_ERROR)

        payload = {
            'lat': coordinates.lat,
            'lon': coordinates.lng,
            'model': self.config.model,
            'parameters': ['wind', 'windGust'],
            'levels': ['surface'],
            'key': self.config.api_key,
        }

        try:
            response = self.session.post(self.config.base_url, json=payload, timeout=self.config.timeout)
        except requests.Timeout:
            logger.warning(f"  Warning: Windy API timed out for ({coordinates.lat:.3f}, {coordinates.lng:.3f})")
            return ForecastSeries(forecasts=[], error="No response from Windy.com API. Check your internet connection.")
        except requests.RequestException as e:
            logger.warning(f"  Warning: Windy API call failed: {e}")
            return ForecastSeries(forecasts=[], error=f"Failed to fetch wind forecast from Windy.com: {e}")

        if not response.ok:
            error = self._describe_http_error(response)
            logger.warning(f"  Warning: {error}")
            return ForecastSeries(forecasts=[], error=error)

        try:
            data = response.json()
        except ValueError:
            return ForecastSeries(forecasts=[], error="Invalid response from Windy.com API")

        if not isinstance(data, dict) or not data.get('ts') or not data.get('wind_u-surface'):
            return ForecastSeries(forecasts=[], error="Invalid response from Windy.com API")

        return self._parse_windy_response(data)

    def get_current_conditions(self, coordinates: Coordinates) -> ForecastResult:
        """Get current conditions (first forecast step)."""
        series = self.get_wind_forecast(coordinates)

        if series.error:
            return ForecastResult(error=series.error)
        if series.forecasts:
            return ForecastResult(forecast=series.forecasts[0])
        return ForecastResult(error="No forecast data available")

    @staticmethod
    def _describe_http_error(response: requests.Response) -> str:
        status = response.status_code
        try:
            body = response.json()
            detail = body.get('error') or body.get('message') or body if isinstance(body, dict) else body
        except ValueError:
            detail = response.text[:200] or response.reason

        if status in (401, 403):
            return f"Authentication failed ({status}): {detail}"
        if status == 429:
            return "API rate limit exceeded. Try again later."
        if status == 400:
            return f"Bad request ({status}): {detail}"
        return f"Windy.com API error ({status}): {detail}"

    @staticmethod
    def _parse_windy_response(data: Dict[str, Any]) -> ForecastSeries:
        """Convert the parallel u/v/gust arrays into WindForecast objects."""
        forecasts = []
        timestamps = data.get('ts') or []
        wind_u = data.get('wind_u-surface') or []
        wind_v = data.get('wind_v-surface') or []
        gusts = data.get('windGust-surface') or []

        try:
            for i, ts in enumerate(timestamps):
                u = wind_u[i] if i < len(wind_u) and wind_u[i] is not None else 0.0
                v = wind_v[i] if i < len(wind_v) and wind_v[i] is not None else 0.0

                wind_ms = math.sqrt(u * u + v * v)
                gust_ms = gusts[i] if i < len(gusts) and gusts[i] is not None else wind_ms

                forecasts.append(WindForecast(
                    timestamp=datetime.fromtimestamp(ts / 1000, tz=timezone.utc),
                    wind_speed=round(ms_to_knots(wind_ms), 1),
                    wind_direction=round(wind_direction_from_components(u, v)),
                    gust_speed=round(ms_to_knots(gust_ms), 1),
                    # Waves need a separate gfsWave request
                    wave_height=0.0,
                ))
        except (TypeError, ValueError) as e:
            logger.warning(f"  Warning: Failed to parse Windy response: {e}")
            return ForecastSeries(forecasts=[], error="Failed to parse wind forecast data")

        return ForecastSeries(forecasts=forecasts)
