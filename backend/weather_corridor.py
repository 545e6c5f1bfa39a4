"""
Weather Corridor - forecasts sampled at fixed intervals along the track

Points are placed on the great circle every `interval_nm`, queried one at a
time, and any point whose query fails is skipped. Summary statistics cover
only the points that succeeded.
"""

import logging
import math
from typing import List, Protocol

from models import Coordinates, CorridorWeatherPoint, RouteCorridorWeather, is_finite_number
from geo_math import calculate_distance, intermediate_point, validate_coordinates
from weather_fetcher import ForecastResult

logger = logging.getLogger(__name__)


class ForecastProvider(Protocol):
    """Anything that can return current conditions for a point."""

    def get_current_conditions(self, coordinates: Coordinates) -> ForecastResult:
        ...


def corridor_sample_count(distance_nm: float, interval_nm: float) -> int:
    """ceil(distance / interval) + 1 points, start and end included."""
    return math.ceil(round(distance_nm / interval_nm, 9)) + 1


def summarize_corridor(
    start: Coordinates,
    end: Coordinates,
    weather_points: List[CorridorWeatherPoint]
) -> RouteCorridorWeather:
    """
    Average/maximum wind and waves over the sampled points.

    All aggregates are 0 when nothing was sampled.
    """
    if not weather_points:
        return RouteCorridorWeather(
            start=start,
            end=end,
            weather_points=[],
            average_wind_speed=0.0,
            max_wind_speed=0.0,
            average_wave_height=0.0,
            max_wave_height=0.0,
        )

    wind_speeds = [p.forecast.wind_speed for p in weather_points]
    wave_heights = [p.forecast.wave_height for p in weather_points]

    return RouteCorridorWeather(
        start=start,
        end=end,
        weather_points=weather_points,
        average_wind_speed=sum(wind_speeds) / len(wind_speeds),
        max_wind_speed=max(wind_speeds),
        average_wave_height=sum(wave_heights) / len(wave_heights),
        max_wave_height=max(wave_heights),
    )


def sample_route_corridor(
    start: Coordinates,
    end: Coordinates,
    interval_nm: float,
    provider: ForecastProvider
) -> RouteCorridorWeather:
    """
    Fetch weather for the route corridor.

    Args:
        start: Starting coordinates
        end: Ending coordinates
        interval_nm: Spacing between samples in nautical miles
        provider: Forecast source

    Returns:
        RouteCorridorWeather with points in sample order
    """
    validate_coordinates(start, "start")
    validate_coordinates(end, "end")
    if not is_finite_number(interval_nm) or interval_nm <= 0:
        raise ValueError(f"Sampling interval must be a positive number of nautical miles, got {interval_nm!r}")

    total_distance = calculate_distance(start, end)
    num_points = corridor_sample_count(total_distance, interval_nm)
    logger.info(f"  Sampling corridor weather at {num_points} points ({total_distance:.1f}nm, every {interval_nm}nm)")

    weather_points = []
    for i in range(num_points):
        fraction = i / (num_points - 1) if num_points > 1 else 0.0
        position = intermediate_point(start, end, fraction)

        try:
            result = provider.get_current_conditions(position)
        except Exception as e:
            logger.warning(f"  Warning: Forecast for point {i} failed: {e}")
            continue

        if result.error or result.forecast is None:
            logger.warning(f"  Warning: Skipping point {i} ({position.lat:.3f}, {position.lng:.3f}): "
                           f"{result.error or 'no forecast'}")
            continue

        weather_points.append(CorridorWeatherPoint(
            position=position,
            forecast=result.forecast,
            distance=total_distance * fraction,
        ))

    logger.info(f"  [OK] {len(weather_points)}/{num_points} corridor points fetched")
    return summarize_corridor(start, end, weather_points)
