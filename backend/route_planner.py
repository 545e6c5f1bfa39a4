"""
Route Planner - Builds a waypoint-by-waypoint passage plan

Steps:
1. Sample forecasts along the great-circle corridor
2. Fix a departure time that lands the boat in daylight (optional)
3. Place waypoints at even fractions of the great circle
4. Attach the nearest forecast, timing and a sail-or-engine decision to each

Timing uses a fixed nominal boat speed; waypoints are not optimised.
"""

import logging
import math
import uuid
from datetime import datetime, timedelta
from typing import Callable, List, Optional

from models import (
    Coordinates, CorridorWeatherPoint, EnginePlan, PolarDiagram, Route, RoutePlanningConfig,
    SailingMode, SailsPlan, Waypoint, WindForecast, is_finite_number,
)
from geo_math import (
    calculate_bearing, calculate_distance, format_duration, intermediate_point, validate_coordinates,
)
from boat_polars import LAGOON_440_POLAR, calculate_wind_angle
from sail_advisor import ENGINE_LABEL, build_sail_label, recommend_sail_configuration
from daylight import DaylightValidator
from weather_corridor import ForecastProvider, sample_route_corridor

logger = logging.getLogger(__name__)


# Conservative cruising speed used for all timing estimates (knots)
NOMINAL_SPEED_KNOTS = 6.0

# Above this, storm avoidance forces the comfort sail plan
STORM_WIND_SPEED = 40


def waypoint_count(total_distance: float, interval: float) -> int:
    """max(2, ceil(distance / interval) + 1), ignoring float noise in the ratio."""
    return max(2, math.ceil(round(total_distance / interval, 9)) + 1)


def waypoint_name(index: int, count: int) -> str:
    if index == 0:
        return "Start"
    if index == count - 1:
        return "Destination"
    return f"Waypoint {index}"


def find_nearest_forecast(
    position: Coordinates,
    weather_points: List[CorridorWeatherPoint]
) -> Optional[WindForecast]:
    """Forecast of the closest sample by planar lat/lng distance (first wins on ties)."""
    nearest = None
    min_dist = math.inf
    for point in weather_points:
        dist = math.sqrt((point.position.lat - position.lat) ** 2 + (point.position.lng - position.lng) ** 2)
        if dist < min_dist:
            min_dist = dist
            nearest = point.forecast
    return nearest


def validate_planning_config(config: RoutePlanningConfig) -> None:
    """Reject unusable planning input before any network calls."""
    validate_coordinates(config.start, "start")
    validate_coordinates(config.destination, "destination")
    if not is_finite_number(config.preferred_waypoint_interval) or config.preferred_waypoint_interval <= 0:
        raise ValueError(
            f"preferred_waypoint_interval must be a positive number, got {config.preferred_waypoint_interval!r}"
        )
    if not is_finite_number(config.wind_threshold) or config.wind_threshold < 0:
        raise ValueError(f"wind_threshold must be a non-negative number, got {config.wind_threshold!r}")
    if not is_finite_number(config.max_daily_distance) or config.max_daily_distance <= 0:
        raise ValueError(f"max_daily_distance must be a positive number, got {config.max_daily_distance!r}")
    SailingMode(config.sailing_mode)


class RoutePlanner:
    """Plans a passage from a RoutePlanningConfig."""

    def __init__(
        self,
        provider: ForecastProvider,
        daylight: Optional[DaylightValidator] = None,
        polar: Optional[PolarDiagram] = None,
        nominal_speed: float = NOMINAL_SPEED_KNOTS,
        clock: Callable[[], datetime] = datetime.now
    ):
        self.provider = provider
        self.daylight = daylight or DaylightValidator()
        self.polar = polar or LAGOON_440_POLAR
        self.nominal_speed = nominal_speed
        self.clock = clock

    def plan_route(self, config: RoutePlanningConfig) -> Route:
        """
        Generate a sailing route with waypoints.

        Raises:
            ValueError: for invalid coordinates or planning parameters

        Returns:
            Route whose warnings list carries non-fatal issues
            (night arrival, storm-force wind, missing forecasts, long passages)
        """
        validate_planning_config(config)
        mode = SailingMode(config.sailing_mode)
        start = config.start
        destination = config.destination
        interval = config.preferred_waypoint_interval

        total_distance = calculate_distance(start, destination)
        initial_bearing = calculate_bearing(start, destination)
        logger.info(f"Planning {total_distance:.1f}nm passage on initial bearing {initial_bearing:.0f}°")

        corridor = sample_route_corridor(start, destination, interval, self.provider)

        warnings = []
        if not corridor.weather_points:
            warnings.append("No forecast data available along the route; wind and sail plan are unknown")

        days_needed = math.ceil(total_distance / config.max_daily_distance)
        if days_needed > 1:
            warnings.append(
                f"Passage of {total_distance:.0f}nm exceeds the {config.max_daily_distance:.0f}nm daily "
                f"limit; plan for {days_needed} days"
            )

        now = self.clock()
        departure = config.preferred_departure or now
        estimated_hours = total_distance / self.nominal_speed
        if config.ensure_daytime_arrival:
            adjustment = self.daylight.required_departure(destination, estimated_hours, departure)
            departure = adjustment.departure_time
            if adjustment.adjusted:
                warnings.append(adjustment.message)

        num_waypoints = waypoint_count(total_distance, interval)
        waypoints: List[Waypoint] = []
        elapsed = 0.0

        for i in range(num_waypoints):
            fraction = i / (num_waypoints - 1)
            position = intermediate_point(start, destination, fraction)
            name = waypoint_name(i, num_waypoints)
            forecast = find_nearest_forecast(position, corridor.weather_points)

            if waypoints:
                previous = waypoints[-1].position
                leg_distance = calculate_distance(previous, position)
                course = calculate_bearing(previous, position)
            else:
                leg_distance = 0.0
                course = initial_bearing

            leg_time = leg_distance / self.nominal_speed
            elapsed += leg_time
            distance_from_start = waypoints[-1].distance_from_start + leg_distance if waypoints else 0.0

            sail_plan = None
            sail_label = None
            if forecast is not None:
                if forecast.wind_speed < config.wind_threshold:
                    sail_plan = EnginePlan()
                    sail_label = ENGINE_LABEL
                else:
                    twa = calculate_wind_angle(course, forecast.wind_direction)
                    leg_mode = mode
                    if config.avoid_storms and forecast.wind_speed > STORM_WIND_SPEED:
                        leg_mode = SailingMode.COMFORT
                        warnings.append(
                            f"Storm-force wind ({forecast.wind_speed:.0f}kt) forecast at {name}; "
                            f"comfort sail plan selected"
                        )
                    recommendation = recommend_sail_configuration(forecast.wind_speed, twa, leg_mode, self.polar)
                    sail_plan = SailsPlan(configuration=recommendation.configuration)
                    sail_label = build_sail_label(recommendation.configuration)

            waypoints.append(Waypoint(
                id=f"waypoint-{i + 1}",
                name=name,
                position=position,
                order=i + 1,
                sail_plan=sail_plan,
                sail_label=sail_label,
                weather_forecast=forecast,
                estimated_arrival=departure + timedelta(hours=elapsed),
                elapsed_time=elapsed,
                leg_time=leg_time,
                distance_from_start=distance_from_start,
                leg_distance=leg_distance,
                cog=course,
                sog=self.nominal_speed,
            ))

        if config.ensure_daytime_arrival:
            for waypoint in waypoints:
                check = self.daylight.validate_arrival(waypoint)
                if not check.is_valid:
                    logger.warning(check.message)
                    if waypoint.name == "Destination":
                        warnings.append(check.message)

        route = Route(
            id=f"route-{uuid.uuid4().hex[:12]}",
            name=f"Route to {destination.lat:.2f}°, {destination.lng:.2f}°",
            waypoints=waypoints,
            created_at=now,
            updated_at=now,
            start_date=departure,
            warnings=warnings,
        )
        logger.info(f"[OK] {len(waypoints)} waypoints, {route.distance:.1f}nm, "
                    f"{format_duration(route.estimated_hours)} from {departure:%Y-%m-%d %H:%M}")
        return route


def plan_route(config: RoutePlanningConfig, provider: ForecastProvider) -> Route:
    """Plan a route with the default daylight rules and Lagoon 440 polar."""
    return RoutePlanner(provider).plan_route(config)
