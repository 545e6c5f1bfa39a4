"""
Tests for the weather simulation: keyframe interpolation, hazards, deviations and the tick lifecycle
"""

import asyncio
import logging
import random
from datetime import datetime

import pytest

from models import (
    AlertSeverity, AlertType, Coordinates, Route, SimulatedWeather, Squall, Waypoint, WeatherKeyframe,
)
from simulation import SimulationEngine, SimulationListener

logger = logging.getLogger(__name__)

CREATED = datetime(2026, 6, 1, 8, 0)


def make_route(*points, name="Test Passage"):
    names = ["Start"] + [f"Waypoint {i}" for i in range(1, len(points) - 1)] + ["Destination"]
    waypoints = [
        Waypoint(id=f"waypoint-{i + 1}", name=names[i], position=Coordinates(lat, lng), order=i + 1)
        for i, (lat, lng) in enumerate(points)
    ]
    return Route(id="route-test", name=name, waypoints=waypoints, created_at=CREATED, updated_at=CREATED)


# Bermuda -> a point inside both the hour-36 storm and one of its squalls -> Nassau
STORM_ROUTE = make_route((32.30, -64.78), (26.0, -71.5), (25.08, -77.35))


class FakeHandle:
    def __init__(self, due, callback):
        self.due = due
        self.callback = callback
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class FakeScheduler:
    """Manual clock: callbacks only run inside advance()"""

    def __init__(self):
        self.now = 0.0
        self.handles = []

    def call_later(self, delay, callback):
        handle = FakeHandle(self.now + delay, callback)
        self.handles.append(handle)
        return handle

    @property
    def pending(self):
        return [h for h in self.handles if not h.cancelled]

    def advance(self, seconds):
        end = self.now + seconds
        while True:
            due = [h for h in self.pending if h.due <= end]
            if not due:
                break
            handle = min(due, key=lambda h: h.due)
            self.handles.remove(handle)
            self.now = handle.due
            handle.callback()
        self.now = end


class RecordingListener(SimulationListener):
    def __init__(self):
        self.weather = []
        self.alerts = []
        self.deviations = []

    def on_weather_update(self, weather):
        self.weather.append(weather)

    def on_storm_alert(self, alert):
        self.alerts.append(alert)

    def on_route_deviation(self, route):
        self.deviations.append(route)


def make_engine(scheduler=None, **kwargs):
    kwargs.setdefault("squall_jitter", 0)
    return SimulationEngine(scheduler or FakeScheduler(), tick_interval=5.0, **kwargs)


# ============================================================================
# WEATHER INTERPOLATION
# ============================================================================

def test_keyframe_hours_return_keyframes():
    engine = make_engine()
    start = engine.get_weather(0)
    assert (start.wind_speed, start.wind_direction, start.wave_height, start.gust_speed) == (12, 120, 1.2, 15)
    assert start.conditions == "good"
    assert not start.has_storm

    peak = engine.get_weather(36)
    assert peak.wind_speed == 35
    assert peak.conditions == "storm"
    assert peak.has_storm
    assert (peak.storm_location.lat, peak.storm_location.lng) == (27.0, -72.0)
    assert peak.storm_radius == 75
    assert len(peak.squalls) == 3


def test_linear_interpolation_between_keyframes():
    weather = make_engine().get_weather(6)
    assert weather.wind_speed == pytest.approx(15)
    assert weather.wind_direction == pytest.approx(127.5)
    assert weather.wave_height == pytest.approx(1.5)
    assert weather.gust_speed == pytest.approx(18.5)
    assert weather.conditions == "moderate"


def test_storm_switches_on_past_halfway():
    engine = make_engine()
    assert not engine.get_weather(18).has_storm, "Exactly halfway still shows the earlier keyframe"
    later = engine.get_weather(19)
    assert later.has_storm
    assert (later.storm_location.lat, later.storm_location.lng) == (28.5, -70.0)
    assert len(later.squalls) == 2


def test_storm_threshold_is_configurable():
    engine = make_engine(storm_visibility_threshold=0.25)
    assert engine.get_weather(16).has_storm


def test_hours_past_the_table_clamp_to_last_keyframe():
    weather = make_engine().get_weather(84)
    assert weather.wind_speed == 14
    assert weather.conditions == "good"


def test_squall_jitter_is_bounded():
    engine = SimulationEngine(FakeScheduler(), squall_jitter=0.2, rng=random.Random(7))
    scripted = engine.keyframes[3].squalls
    for _ in range(20):
        for squall, original in zip(engine.get_weather(36).squalls, scripted):
            assert squall.radius == original.radius
            assert abs(squall.location.lat - original.location.lat) <= 0.1
            assert abs(squall.location.lng - original.location.lng) <= 0.1


def test_boat_position_follows_progress():
    engine = make_engine()
    position, index = engine.calculate_boat_position(STORM_ROUTE, 0)
    assert (position.lat, position.lng) == (32.30, -64.78) and index == 0

    # Halfway through a 96h voyage on a two-leg route is the middle waypoint
    position, index = engine.calculate_boat_position(STORM_ROUTE, 48)
    assert (position.lat, position.lng) == (26.0, -71.5) and index == 1

    position, index = engine.calculate_boat_position(STORM_ROUTE, 500)
    assert (position.lat, position.lng) == (25.08, -77.35) and index == 1

    single = Route(id="r", name="one", waypoints=STORM_ROUTE.waypoints[:1], created_at=CREATED, updated_at=CREATED)
    assert engine.calculate_boat_position(single, 10) is None


def test_weather_carries_boat_position():
    weather = make_engine().get_weather(24, STORM_ROUTE)
    assert weather.boat_position is not None
    assert weather.current_waypoint_index == 0


# ============================================================================
# HAZARDS
# ============================================================================

def test_waypoint_in_squall_and_storm_gives_one_alert_each():
    """Waypoint 1 sits inside a squall and the main storm at hour 36"""
    engine = make_engine()
    weather = engine.get_weather(36, STORM_ROUTE)

    for _ in range(2):
        alerts = engine.check_for_alerts(weather, STORM_ROUTE)
        types = [a.type for a in alerts]
        logger.info(f"Alerts: {[(a.type.value, a.severity.value) for a in alerts]}")

        assert types.count(AlertType.SQUALL) == 1
        assert types.count(AlertType.STORM) == 1
        assert AlertType.HIGH_WIND not in types, "High wind is suppressed when a storm is reported"
        assert types.count(AlertType.HIGH_WAVES) == 1

    squall = next(a for a in alerts if a.type == AlertType.SQUALL)
    assert squall.severity == AlertSeverity.WARNING
    assert squall.affected_waypoints == ["Waypoint 1"]

    storm = next(a for a in alerts if a.type == AlertType.STORM)
    assert storm.severity == AlertSeverity.WARNING
    assert storm.affected_waypoints == ["Waypoint 1"]
    assert "Route deviation recommended" in storm.message

    waves = next(a for a in alerts if a.type == AlertType.HIGH_WAVES)
    assert waves.severity == AlertSeverity.ADVISORY


def test_high_wind_alert_without_storm():
    weather = SimulatedWeather(hour=0, wind_speed=36, wind_direction=90, wave_height=2.0, gust_speed=44,
                               has_storm=False, conditions="storm")
    alerts = make_engine().check_for_alerts(weather, STORM_ROUTE)
    assert [a.type for a in alerts] == [AlertType.HIGH_WIND]
    assert alerts[0].severity == AlertSeverity.WARNING
    assert alerts[0].location == STORM_ROUTE.waypoints[0].position


def test_squall_suppresses_high_wind():
    squall = Squall(location=Coordinates(26.0, -71.5), radius=5, wind_speed=30)
    weather = SimulatedWeather(hour=0, wind_speed=28, wind_direction=90, wave_height=2.0, gust_speed=34,
                               has_storm=False, conditions="rough", squalls=[squall])
    alerts = make_engine().check_for_alerts(weather, STORM_ROUTE)
    assert [a.type for a in alerts] == [AlertType.SQUALL]
    assert alerts[0].severity == AlertSeverity.ADVISORY


def test_no_alerts_without_route():
    weather = make_engine().get_weather(36)
    assert make_engine().check_for_alerts(weather, None) == []


# ============================================================================
# DEVIATION
# ============================================================================

def test_deviated_route_inserts_storm_avoidance_waypoint():
    engine = make_engine()
    weather = engine.get_weather(36, STORM_ROUTE)
    deviated = engine.generate_deviated_route(STORM_ROUTE, weather)

    assert deviated is not STORM_ROUTE
    assert deviated.name == "Test Passage (Storm Avoidance)"
    assert [wp.name for wp in deviated.waypoints] == ["Start", "Storm Avoidance", "Waypoint 1", "Destination"]
    assert [wp.order for wp in deviated.waypoints] == [1, 2, 3, 4]

    avoidance = deviated.waypoints[1]
    assert (avoidance.position.lat, avoidance.position.lng) == (28.5, -70.0)
    assert avoidance.sail_label == "Main+Jib"
    assert avoidance.weather_forecast.wind_speed == 20
    assert avoidance.weather_forecast.wave_height == 2.0

    # The caller's route is untouched
    assert [wp.order for wp in STORM_ROUTE.waypoints] == [1, 2, 3]
    assert len(STORM_ROUTE.waypoints) == 3
    assert STORM_ROUTE.name == "Test Passage"


def test_editing_deviated_route_leaves_original_alone():
    route = make_route((32.30, -64.78), (26.0, -71.5), (25.08, -77.35))
    engine = make_engine()
    deviated = engine.generate_deviated_route(route, engine.get_weather(36, route))

    for wp in deviated.waypoints:
        wp.position.lat += 1.0
        wp.position.lng -= 1.0
        wp.order += 10

    assert [(wp.position.lat, wp.position.lng) for wp in route.waypoints] == [
        (32.30, -64.78), (26.0, -71.5), (25.08, -77.35),
    ]
    assert [wp.order for wp in route.waypoints] == [1, 2, 3]


def test_no_deviation_without_affected_waypoints():
    engine = make_engine()
    far_route = make_route((40.0, -50.0), (41.0, -49.0))
    assert engine.generate_deviated_route(far_route, engine.get_weather(36)) is far_route
    assert engine.generate_deviated_route(STORM_ROUTE, engine.get_weather(0)) is STORM_ROUTE


# ============================================================================
# LIFECYCLE
# ============================================================================

def test_start_emits_hour_zero_immediately():
    scheduler = FakeScheduler()
    engine = make_engine(scheduler)
    listener = RecordingListener()
    engine.start(STORM_ROUTE, listener)

    assert engine.is_running
    assert [w.hour for w in listener.weather] == [0]
    assert len(scheduler.pending) == 1


def test_ticks_advance_twelve_hours_and_wrap():
    scheduler = FakeScheduler()
    engine = make_engine(scheduler)
    listener = RecordingListener()
    engine.start(STORM_ROUTE, listener)

    scheduler.advance(5 * 7)
    assert [w.hour for w in listener.weather] == [0, 12, 24, 36, 48, 60, 72, 84]
    assert engine.current_hour == 0, "Clock loops back after passing the last keyframe"

    scheduler.advance(5)
    assert listener.weather[-1].hour == 12


def test_storm_tick_emits_alerts_and_one_deviation():
    scheduler = FakeScheduler()
    engine = make_engine(scheduler)
    listener = RecordingListener()
    engine.start(STORM_ROUTE, listener)

    scheduler.advance(5 * 3)
    assert listener.weather[-1].hour == 36
    assert any(a.type == AlertType.STORM for a in listener.alerts)
    assert len(listener.deviations) == 1
    assert listener.deviations[0].waypoints[1].name == "Storm Avoidance"


def test_deviation_fires_once_per_storm():
    """A storm visible on consecutive ticks proposes one deviation until it clears"""
    storm = dict(has_storm=True, storm_location=Coordinates(10.0, 10.0), storm_radius=50)
    keyframes = [
        WeatherKeyframe(hour=0, wind_speed=10, wind_direction=90, wave_height=1, gust_speed=12),
        WeatherKeyframe(hour=12, wind_speed=30, wind_direction=90, wave_height=2, gust_speed=40, **storm),
        WeatherKeyframe(hour=24, wind_speed=30, wind_direction=90, wave_height=2, gust_speed=40, **storm),
        WeatherKeyframe(hour=36, wind_speed=10, wind_direction=90, wave_height=1, gust_speed=12),
        WeatherKeyframe(hour=48, wind_speed=30, wind_direction=90, wave_height=2, gust_speed=40, **storm),
    ]
    route = make_route((9.0, 9.0), (10.0, 10.0), (11.0, 11.0))
    scheduler = FakeScheduler()
    engine = make_engine(scheduler, keyframes=keyframes)
    listener = RecordingListener()
    engine.start(route, listener)

    scheduler.advance(5 * 2)
    assert len(listener.deviations) == 1, "Second storm tick must not repeat the deviation"

    scheduler.advance(5 * 2)
    assert [w.hour for w in listener.weather] == [0, 12, 24, 36, 48]
    assert len(listener.deviations) == 2, "A new storm after a clear tick proposes again"
    # Always deviated from the original route
    assert all(len(r.waypoints) == 4 for r in listener.deviations)


def test_double_start_keeps_a_single_tick_stream():
    scheduler = FakeScheduler()
    engine = make_engine(scheduler)
    first, second = RecordingListener(), RecordingListener()

    engine.start(STORM_ROUTE, first)
    engine.start(STORM_ROUTE, second)
    assert len(scheduler.pending) == 1

    scheduler.advance(5 * 3)
    assert [w.hour for w in first.weather] == [0]
    assert [w.hour for w in second.weather] == [0, 12, 24, 36]


def test_stop_prevents_further_callbacks():
    scheduler = FakeScheduler()
    engine = make_engine(scheduler)
    listener = RecordingListener()
    engine.start(STORM_ROUTE, listener)
    scheduler.advance(5)

    engine.stop()
    engine.stop()  # idempotent
    assert not engine.is_running
    assert scheduler.pending == []

    scheduler.advance(500)
    assert [w.hour for w in listener.weather] == [0, 12]


def test_stop_inside_callback_drops_rest_of_tick():
    """Stopping from the weather update at hour 36 delivers none of that tick's alerts"""

    class StopAtStorm(RecordingListener):
        def __init__(self, engine):
            super().__init__()
            self.engine = engine

        def on_weather_update(self, weather):
            super().on_weather_update(weather)
            if weather.hour == 36:
                self.engine.stop()

    scheduler = FakeScheduler()
    engine = make_engine(scheduler)
    listener = StopAtStorm(engine)
    engine.start(STORM_ROUTE, listener)

    scheduler.advance(5 * 10)
    assert listener.weather[-1].hour == 36
    assert not any(a.type == AlertType.STORM for a in listener.alerts)
    assert listener.deviations == []
    assert scheduler.pending == []


def test_start_rejects_empty_route():
    engine = make_engine()
    empty = Route(id="r", name="empty", waypoints=[], created_at=CREATED, updated_at=CREATED)
    with pytest.raises(ValueError):
        engine.start(empty, RecordingListener())
    assert not engine.is_running


def test_asyncio_scheduler_drives_ticks():
    async def scenario():
        engine = SimulationEngine(tick_interval=0.01, squall_jitter=0)
        listener = RecordingListener()
        engine.start(STORM_ROUTE, listener)
        await asyncio.sleep(0.1)
        engine.stop()
        count = len(listener.weather)
        await asyncio.sleep(0.05)
        return listener, count

    listener, count_at_stop = asyncio.run(scenario())
    assert count_at_stop >= 3
    assert len(listener.weather) == count_at_stop
