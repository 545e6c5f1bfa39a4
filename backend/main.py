"""
Offshore Passage Planner - Demo Entry Point

Run with: python main.py

1. Plans a passage (Bermuda to Nassau) with corridor forecasts from Windy.com
2. Prints the waypoint table and any warnings
3. Replays the storm simulation over the route for a few ticks
"""

import asyncio
import json
import logging
from datetime import datetime, timedelta
from typing import Optional

from config import settings
from models import Coordinates, Route, RoutePlanningConfig, SailingMode, SimulatedWeather, StormAlert
from geo_math import format_duration
from route_planner import RoutePlanner
from serializers import route_to_dict
from simulation import SimulationEngine, SimulationListener
from weather_fetcher import ForecastProviderConfig, WindyForecastProvider

logging.basicConfig(
    level=settings.log_level,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

DEMO_TICKS = 7


def display_route(route: Route) -> None:
    """Display the passage plan in a readable table."""
    logger.info("=" * 65)
    logger.info(f"  {route.name.upper()}")
    logger.info("=" * 65)
    logger.info(f"   Distance:   {route.distance:.1f} nm")
    logger.info(f"   Duration:   {format_duration(route.estimated_hours)}")
    if route.start_date:
        logger.info(f"   Departure:  {route.start_date:%Y-%m-%d %H:%M}")

    for wp in route.waypoints:
        wind = (f"{wp.weather_forecast.wind_speed:.0f}kt from {wp.weather_forecast.wind_direction:.0f}°"
                if wp.weather_forecast else "unknown")
        eta = f"{wp.estimated_arrival:%a %H:%M}" if wp.estimated_arrival else "--"
        logger.info(f"   {wp.order:>2}. {wp.name:<12} {wp.position.lat:8.3f} {wp.position.lng:9.3f}  "
                    f"ETA {eta}  wind {wind}  sails {wp.sail_label or '?'}")

    if route.warnings:
        logger.info("   [!] Warnings:")
        for w in route.warnings:
            logger.info(f"      - {w}")


class LoggingListener(SimulationListener):
    """Prints simulation events and stops after a fixed number of updates."""

    def __init__(self, engine: SimulationEngine, ticks: int, done: asyncio.Event):
        self.engine = engine
        self.remaining = ticks
        self.done = done

    def on_weather_update(self, weather: SimulatedWeather) -> None:
        storm = " STORM" if weather.has_storm else ""
        logger.info(f"[hour {weather.hour:>3g}] {weather.conditions:<8} wind {weather.wind_speed:.0f}kt "
                    f"gusts {weather.gust_speed:.0f}kt waves {weather.wave_height:.1f}m{storm}")
        self.remaining -= 1
        if self.remaining <= 0:
            self.engine.stop()
            self.done.set()

    def on_storm_alert(self, alert: StormAlert) -> None:
        logger.warning(f"   {alert.severity.value.upper()} {alert.type.value}: {alert.message}")

    def on_route_deviation(self, route: Route) -> None:
        logger.info(f"   Deviation proposed: {route.name}")
        for wp in route.waypoints:
            logger.info(f"      {wp.order}. {wp.name} ({wp.position.lat:.2f}, {wp.position.lng:.2f})")


async def run_simulation(route: Route, ticks: int = DEMO_TICKS, tick_interval: Optional[float] = None) -> None:
    engine = SimulationEngine(tick_interval=tick_interval or settings.simulation_tick_seconds)
    done = asyncio.Event()
    engine.start(route, LoggingListener(engine, ticks, done))
    try:
        await done.wait()
    finally:
        engine.stop()


def main():
    """
    Demo: Bermuda to Nassau (~800 nautical miles), across the simulated storm track.
    """
    config = RoutePlanningConfig(
        start=Coordinates(lat=32.30, lng=-64.78),     # St. George's, Bermuda
        destination=Coordinates(lat=25.08, lng=-77.35),  # Nassau, Bahamas
        sailing_mode=SailingMode.MIXED,
        wind_threshold=settings.default_wind_threshold,
        preferred_waypoint_interval=100.0,
        preferred_departure=(datetime.now() + timedelta(days=1)).replace(hour=8, minute=0, second=0, microsecond=0),
    )

    provider = WindyForecastProvider(ForecastProviderConfig.from_settings(settings))
    if not provider.config.has_api_key:
        logger.warning("WINDY_API_KEY is not set; waypoints will have no forecast")

    route = RoutePlanner(provider).plan_route(config)
    display_route(route)

    logger.info("--- JSON Response (for API use) ---")
    logger.info(json.dumps(route_to_dict(route), indent=2))

    logger.info("--- Storm simulation ---")
    asyncio.run(run_simulation(route))


if __name__ == "__main__":
    main()
