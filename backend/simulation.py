"""
Weather Simulation - replays a scripted multi-day weather story over a route

One tick advances the virtual clock by 12 hours (every 5 real seconds by
default). Each tick:
1. Interpolates the keyframe table at the new hour
2. Moves the boat along the route by voyage progress
3. Raises squall / storm / wind / wave alerts for affected waypoints
4. Proposes a storm-avoidance route once per storm

The clock loops back to 0 after the last keyframe.
"""

import asyncio
import functools
import logging
import random
import uuid
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Any, Callable, List, Optional, Protocol, Tuple

from models import (
    AlertSeverity, AlertType, Coordinates, Route, SailConfiguration, SailsPlan, SimulatedWeather,
    Squall, StormAlert, Waypoint, WeatherKeyframe, WindForecast,
)
from geo_math import calculate_distance, intermediate_point
from sail_advisor import build_sail_label

logger = logging.getLogger(__name__)


TICK_HOURS = 12
TICK_INTERVAL_SECONDS = 5.0

# Storm and squalls switch to the next keyframe once interpolation passes this fraction
STORM_VISIBILITY_THRESHOLD = 0.5

# Boat progress: the whole route is covered in this many virtual hours
VOYAGE_HOURS = 96

# Total width of random squall drift in degrees (+/- half of this)
SQUALL_JITTER_DEGREES = 0.2

HIGH_WIND_SPEED = 25
HIGH_WIND_WARNING_SPEED = 35
HIGH_WAVE_HEIGHT = 3.0
HIGH_WAVE_WARNING_HEIGHT = 4.0
STORM_WARNING_WIND_SPEED = 30
SQUALL_WARNING_WIND_SPEED = 35

# Storm Avoidance waypoint offset from the storm centre (degrees)
DEVIATION_LAT_OFFSET = 1.5
DEVIATION_LNG_OFFSET = 2.0
DEVIATION_LEG_HOURS = 8


WEATHER_KEYFRAMES: List[WeatherKeyframe] = [
    # Good conditions at start
    WeatherKeyframe(hour=0, wind_speed=12, wind_direction=120, wave_height=1.2, gust_speed=15),
    # Wind building, first squall
    WeatherKeyframe(
        hour=12, wind_speed=18, wind_direction=135, wave_height=1.8, gust_speed=22,
        squalls=[Squall(Coordinates(30.0, -67.0), radius=15, wind_speed=28)],
    ),
    # Storm developing
    WeatherKeyframe(
        hour=24, wind_speed=25, wind_direction=150, wave_height=2.5, gust_speed=32,
        has_storm=True, storm_location=Coordinates(28.5, -70.0), storm_radius=50,
        squalls=[
            Squall(Coordinates(29.5, -68.5), radius=12, wind_speed=35),
            Squall(Coordinates(27.5, -69.0), radius=10, wind_speed=30),
        ],
    ),
    # Storm at peak
    WeatherKeyframe(
        hour=36, wind_speed=35, wind_direction=160, wave_height=4.0, gust_speed=45,
        has_storm=True, storm_location=Coordinates(27.0, -72.0), storm_radius=75,
        squalls=[
            Squall(Coordinates(28.0, -70.5), radius=15, wind_speed=40),
            Squall(Coordinates(26.0, -71.5), radius=12, wind_speed=38),
            Squall(Coordinates(29.0, -73.0), radius=10, wind_speed=32),
        ],
    ),
    # Storm moving away
    WeatherKeyframe(
        hour=48, wind_speed=30, wind_direction=170, wave_height=3.5, gust_speed=38,
        has_storm=True, storm_location=Coordinates(26.0, -74.0), storm_radius=60,
        squalls=[Squall(Coordinates(27.0, -73.0), radius=12, wind_speed=35)],
    ),
    # Clearing, residual squall
    WeatherKeyframe(
        hour=60, wind_speed=20, wind_direction=140, wave_height=2.0, gust_speed=25,
        squalls=[Squall(Coordinates(25.5, -75.5), radius=8, wind_speed=26)],
    ),
    # Good conditions return
    WeatherKeyframe(hour=72, wind_speed=14, wind_direction=125, wave_height=1.5, gust_speed=18),
]


def conditions_for_wind(wind_speed: float) -> str:
    if wind_speed >= 30:
        return "storm"
    if wind_speed >= 22:
        return "rough"
    if wind_speed >= 15:
        return "moderate"
    return "good"


def is_within_radius(position: Coordinates, centre: Coordinates, radius_nm: float) -> bool:
    return calculate_distance(position, centre) <= radius_nm


def affected_waypoint_names(route: Route, centre: Coordinates, radius_nm: float) -> List[str]:
    return [wp.name for wp in route.waypoints if is_within_radius(wp.position, centre, radius_nm)]


def copy_waypoint(waypoint: Waypoint, **changes) -> Waypoint:
    """Copy of a waypoint that shares no mutable records with the original."""
    forecast = waypoint.weather_forecast
    return replace(
        waypoint,
        position=replace(waypoint.position),
        weather_forecast=replace(forecast) if forecast is not None else None,
        **changes,
    )


class SimulationListener:
    """Receives simulation events. Override the hooks you need."""

    def on_weather_update(self, weather: SimulatedWeather) -> None:
        pass

    def on_storm_alert(self, alert: StormAlert) -> None:
        pass

    def on_route_deviation(self, route: Route) -> None:
        pass


class Cancellable(Protocol):
    def cancel(self) -> Any:
        ...


class TickScheduler(Protocol):
    """Runs a callback once after `delay` seconds."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> Cancellable:
        ...


class AsyncioTickScheduler:
    """Schedules ticks on an asyncio event loop (the running one by default)."""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self.loop = loop

    def call_later(self, delay: float, callback: Callable[[], None]) -> asyncio.TimerHandle:
        loop = self.loop or asyncio.get_running_loop()
        return loop.call_later(delay, callback)


class SimulationEngine:
    """
    Owns one simulation run at a time.

    start() while running stops the previous run first, so there is only ever
    one tick stream. After stop() returns no listener method is called again.
    """

    def __init__(
        self,
        scheduler: Optional[TickScheduler] = None,
        keyframes: Optional[List[WeatherKeyframe]] = None,
        tick_hours: float = TICK_HOURS,
        tick_interval: float = TICK_INTERVAL_SECONDS,
        storm_visibility_threshold: float = STORM_VISIBILITY_THRESHOLD,
        voyage_hours: float = VOYAGE_HOURS,
        squall_jitter: float = SQUALL_JITTER_DEGREES,
        rng: Optional[random.Random] = None
    ):
        self.scheduler = scheduler or AsyncioTickScheduler()
        self.keyframes = sorted(keyframes or WEATHER_KEYFRAMES, key=lambda k: k.hour)
        if not self.keyframes:
            raise ValueError("Simulation needs at least one weather keyframe")
        self.tick_hours = tick_hours
        self.tick_interval = tick_interval
        self.storm_visibility_threshold = storm_visibility_threshold
        self.voyage_hours = voyage_hours
        self.squall_jitter = squall_jitter
        self.rng = rng or random.Random()

        self._route: Optional[Route] = None
        self._listener: Optional[SimulationListener] = None
        self._handle: Optional[Cancellable] = None
        self._hour: float = 0
        self._run_id = 0
        self._deviation_sent = False

    @property
    def is_running(self) -> bool:
        return self._listener is not None

    @property
    def current_hour(self) -> float:
        return self._hour

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self, route: Route, listener: SimulationListener) -> None:
        if not route.waypoints:
            raise ValueError("Cannot simulate a route without waypoints")
        if self.is_running:
            self.stop()

        self._run_id += 1
        self._route = route
        self._listener = listener
        self._hour = 0
        self._deviation_sent = False
        logger.info(f"Simulation started: {self.tick_interval:g}s = {self.tick_hours:g} hours ({route.name})")

        listener.on_weather_update(self.get_weather(0, route))

        # The listener may have stopped the run from inside the callback
        if self._listener is listener:
            self._schedule_next()

    def stop(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        was_running = self.is_running
        self._listener = None
        self._route = None
        self._run_id += 1
        if was_running:
            logger.info("Simulation stopped")

    def _schedule_next(self) -> None:
        self._handle = self.scheduler.call_later(
            self.tick_interval, functools.partial(self._tick, self._run_id)
        )

    def _tick(self, run_id: int) -> None:
        if run_id != self._run_id or self._listener is None:
            return
        self._handle = None
        route = self._route

        self._hour += self.tick_hours
        weather = self.get_weather(self._hour, route)
        logger.debug(f"Tick: hour {self._hour:g}, wind {weather.wind_speed:.0f}kt, storm={weather.has_storm}")

        if not self._emit(run_id, "on_weather_update", weather):
            return

        for alert in self.check_for_alerts(weather, route):
            if not self._emit(run_id, "on_storm_alert", alert):
                return

        if not weather.has_storm:
            self._deviation_sent = False
        elif not self._deviation_sent:
            deviated = self.generate_deviated_route(route, weather)
            if len(deviated.waypoints) != len(route.waypoints):
                self._deviation_sent = True
                logger.info(f"Storm affects route, proposing deviation: {deviated.name}")
                if not self._emit(run_id, "on_route_deviation", deviated):
                    return

        if self._hour > self.keyframes[-1].hour:
            self._hour = 0

        self._schedule_next()

    def _emit(self, run_id: int, method: str, payload) -> bool:
        """Deliver one event; False once the run has been stopped or replaced."""
        if run_id != self._run_id or self._listener is None:
            return False
        getattr(self._listener, method)(payload)
        return run_id == self._run_id and self._listener is not None

    # ------------------------------------------------------------------
    # Weather
    # ------------------------------------------------------------------

    def _bracket(self, hour: float) -> Tuple[WeatherKeyframe, WeatherKeyframe, float]:
        frames = self.keyframes
        if hour <= frames[0].hour:
            return frames[0], frames[0], 0.0
        if hour >= frames[-1].hour:
            return frames[-1], frames[-1], 0.0
        for prev, nxt in zip(frames, frames[1:]):
            if prev.hour <= hour < nxt.hour:
                return prev, nxt, (hour - prev.hour) / (nxt.hour - prev.hour)
        return frames[-1], frames[-1], 0.0

    def _jitter(self) -> float:
        if not self.squall_jitter:
            return 0.0
        return (self.rng.random() - 0.5) * self.squall_jitter

    def get_weather(self, hour: float, route: Optional[Route] = None) -> SimulatedWeather:
        """Conditions at a virtual hour, with the boat placed on `route` if given."""
        prev, nxt, t = self._bracket(hour)

        def lerp(a: float, b: float) -> float:
            return a + t * (b - a)

        wind_speed = lerp(prev.wind_speed, nxt.wind_speed)
        storm_frame = nxt if t > self.storm_visibility_threshold else prev

        squalls = [
            Squall(
                location=Coordinates(sq.location.lat + self._jitter(), sq.location.lng + self._jitter()),
                radius=sq.radius,
                wind_speed=sq.wind_speed,
            )
            for sq in storm_frame.squalls
        ]

        boat = self.calculate_boat_position(route, hour) if route is not None else None

        return SimulatedWeather(
            hour=hour,
            wind_speed=wind_speed,
            wind_direction=lerp(prev.wind_direction, nxt.wind_direction),
            wave_height=lerp(prev.wave_height, nxt.wave_height),
            gust_speed=lerp(prev.gust_speed, nxt.gust_speed),
            has_storm=storm_frame.has_storm,
            conditions=conditions_for_wind(wind_speed),
            storm_location=storm_frame.storm_location if storm_frame.has_storm else None,
            storm_radius=storm_frame.storm_radius if storm_frame.has_storm else None,
            squalls=squalls,
            boat_position=boat[0] if boat else None,
            current_waypoint_index=boat[1] if boat else None,
        )

    def calculate_boat_position(self, route: Route, hour: float) -> Optional[Tuple[Coordinates, int]]:
        """Boat position and current leg index, from hour / voyage_hours progress."""
        if route is None or len(route.waypoints) < 2:
            return None

        progress = min(max(hour / self.voyage_hours, 0.0), 1.0)
        total_legs = len(route.waypoints) - 1
        leg_progress = progress * total_legs
        leg_index = min(int(leg_progress), total_legs - 1)
        leg_fraction = leg_progress - leg_index

        start = route.waypoints[leg_index].position
        end = route.waypoints[leg_index + 1].position
        return intermediate_point(start, end, min(leg_fraction, 1.0)), leg_index

    # ------------------------------------------------------------------
    # Hazards
    # ------------------------------------------------------------------

    def check_for_alerts(self, weather: SimulatedWeather, route: Optional[Route]) -> List[StormAlert]:
        """
        Alerts for one tick, in order: squalls, main storm, high wind, high waves.

        High wind is only reported when nothing storm-related fired this tick.
        """
        if route is None or not route.waypoints:
            return []

        now = datetime.now()
        alerts = []

        for squall in weather.squalls:
            names = affected_waypoint_names(route, squall.location, squall.radius)
            if not names:
                continue
            alerts.append(StormAlert(
                id=f"squall-{uuid.uuid4().hex[:9]}",
                type=AlertType.SQUALL,
                severity=(AlertSeverity.WARNING if squall.wind_speed > SQUALL_WARNING_WIND_SPEED
                          else AlertSeverity.ADVISORY),
                message=(f"Squall detected! Localized winds to {squall.wind_speed:.0f} kts. "
                         f"Near waypoints: {', '.join(names)}. Prepare for sudden wind increase."),
                location=squall.location,
                timestamp=now,
                affected_waypoints=names,
            ))

        if weather.has_storm and weather.storm_location and weather.storm_radius:
            names = affected_waypoint_names(route, weather.storm_location, weather.storm_radius)
            if names:
                alerts.append(StormAlert(
                    id=f"storm-{uuid.uuid4().hex[:9]}",
                    type=AlertType.STORM,
                    severity=(AlertSeverity.WARNING if weather.wind_speed > STORM_WARNING_WIND_SPEED
                              else AlertSeverity.WATCH),
                    message=(f"Storm system detected! Wind {weather.wind_speed:.0f} kts, "
                             f"Waves {weather.wave_height:.1f}m. Affecting waypoints: {', '.join(names)}. "
                             f"Route deviation recommended."),
                    location=weather.storm_location,
                    timestamp=now,
                    affected_waypoints=names,
                ))

        if weather.wind_speed > HIGH_WIND_SPEED and not weather.has_storm and not alerts:
            alerts.append(StormAlert(
                id=f"wind-{uuid.uuid4().hex[:9]}",
                type=AlertType.HIGH_WIND,
                severity=(AlertSeverity.WARNING if weather.wind_speed > HIGH_WIND_WARNING_SPEED
                          else AlertSeverity.ADVISORY),
                message=(f"High winds detected: {weather.wind_speed:.0f} kts "
                         f"with gusts to {weather.gust_speed:.0f} kts."),
                location=route.waypoints[0].position,
                timestamp=now,
            ))

        if weather.wave_height > HIGH_WAVE_HEIGHT:
            alerts.append(StormAlert(
                id=f"wave-{uuid.uuid4().hex[:9]}",
                type=AlertType.HIGH_WAVES,
                severity=(AlertSeverity.WARNING if weather.wave_height > HIGH_WAVE_WARNING_HEIGHT
                          else AlertSeverity.ADVISORY),
                message=f"Large waves detected: {weather.wave_height:.1f}m. Consider reducing sail area.",
                location=route.waypoints[0].position,
                timestamp=now,
            ))

        return alerts

    def generate_deviated_route(self, route: Route, weather: SimulatedWeather) -> Route:
        """
        New route with a Storm Avoidance waypoint before the first affected waypoint.

        Returns the original route unchanged when no storm is visible or no
        waypoint lies inside it. The input route is never modified.
        """
        if not weather.has_storm or weather.storm_location is None or not weather.storm_radius:
            return route

        storm = weather.storm_location
        now = datetime.now()
        waypoints: List[Waypoint] = []
        deviation_added = False

        for i, waypoint in enumerate(route.waypoints):
            if not deviation_added and is_within_radius(waypoint.position, storm, weather.storm_radius):
                configuration = SailConfiguration(main_sail=True, jib=True)
                waypoints.append(Waypoint(
                    id=f"deviation-{uuid.uuid4().hex[:9]}",
                    name="Storm Avoidance",
                    position=Coordinates(storm.lat + DEVIATION_LAT_OFFSET, storm.lng + DEVIATION_LNG_OFFSET),
                    order=len(waypoints) + 1,
                    sail_plan=SailsPlan(configuration=configuration),
                    sail_label=build_sail_label(configuration),
                    weather_forecast=WindForecast(
                        timestamp=now,
                        wind_speed=20,
                        wind_direction=weather.wind_direction,
                        gust_speed=25,
                        wave_height=2.0,
                    ),
                    estimated_arrival=now + timedelta(hours=(i + 1) * DEVIATION_LEG_HOURS),
                ))
                deviation_added = True
                waypoints.append(copy_waypoint(
                    waypoint,
                    order=len(waypoints) + 1,
                    estimated_arrival=now + timedelta(hours=(i + 2) * DEVIATION_LEG_HOURS),
                ))
            else:
                waypoints.append(copy_waypoint(waypoint, order=len(waypoints) + 1))

        if not deviation_added:
            return route

        return replace(
            route,
            name=f"{route.name} (Storm Avoidance)",
            waypoints=waypoints,
            updated_at=now,
            warnings=list(route.warnings),
        )
