"""
Tests for daylight checks and the departure-time solver
"""

import logging
from datetime import datetime, timedelta

import pytest

from models import Coordinates, Waypoint
from daylight import DaylightValidator

logger = logging.getLogger(__name__)

NASSAU = Coordinates(lat=25.08, lng=-77.35)


def test_daylight_window_is_inclusive():
    validator = DaylightValidator()
    assert validator.is_daylight(datetime(2026, 6, 1, 6, 0), NASSAU)
    assert validator.is_daylight(datetime(2026, 6, 1, 12, 0), NASSAU)
    assert validator.is_daylight(datetime(2026, 6, 1, 18, 0), NASSAU)
    assert not validator.is_daylight(datetime(2026, 6, 1, 5, 59), NASSAU)
    assert not validator.is_daylight(datetime(2026, 6, 1, 22, 0), NASSAU)


def test_daylight_arrival_is_unchanged():
    departure = datetime(2026, 6, 1, 8, 0)
    result = DaylightValidator().required_departure(NASSAU, 6, departure)
    assert not result.adjusted
    assert result.departure_time == departure
    assert result.message is None


def test_arrival_before_sunrise_delays_departure():
    """Leaving at noon for 15 hours arrives 03:00: leave 4h later, arrive 07:00"""
    departure = datetime(2026, 6, 1, 12, 0)
    result = DaylightValidator().required_departure(NASSAU, 15, departure)
    logger.info(result.message)

    assert result.adjusted
    assert result.departure_time == datetime(2026, 6, 1, 16, 0)
    assert result.departure_time + timedelta(hours=15) == datetime(2026, 6, 2, 7, 0)
    assert result.departure_time > departure


def test_arrival_after_sunset_advances_departure_same_day():
    """Leaving at noon for 10 hours arrives 22:00: leave at 07:00 instead, arrive 17:00"""
    departure = datetime(2026, 6, 1, 12, 0)
    result = DaylightValidator().required_departure(NASSAU, 10, departure)
    logger.info(result.message)

    assert result.adjusted
    assert result.departure_time == datetime(2026, 6, 1, 7, 0)
    assert result.departure_time + timedelta(hours=10) == datetime(2026, 6, 1, 17, 0)


def test_arrival_after_sunset_moves_to_next_morning_when_start_too_early():
    """Leaving at 07:00 for 15 hours arrives 22:00; advancing means a 02:00 start, so arrive next morning"""
    departure = datetime(2026, 6, 1, 7, 0)
    result = DaylightValidator().required_departure(NASSAU, 15, departure)
    logger.info(result.message)

    assert result.adjusted
    assert result.departure_time == datetime(2026, 6, 1, 16, 0)
    assert result.departure_time + timedelta(hours=15) == datetime(2026, 6, 2, 7, 0)


def test_advance_never_moves_departure_to_previous_day():
    """Leaving at 03:00 for 20 hours arrives 23:00; advancing would mean 21:00 the night before"""
    departure = datetime(2026, 6, 2, 3, 0)
    result = DaylightValidator().required_departure(NASSAU, 20, departure)
    logger.info(result.message)

    assert result.adjusted
    assert result.departure_time == datetime(2026, 6, 2, 11, 0)
    assert result.departure_time + timedelta(hours=20) == datetime(2026, 6, 3, 7, 0)
    assert result.departure_time.date() == departure.date()

    # Allowing midnight starts still does not reach back into the previous day
    result = DaylightValidator(earliest_departure_hour=0).required_departure(NASSAU, 20, departure)
    assert result.departure_time == datetime(2026, 6, 2, 11, 0)


def test_earliest_departure_hour_is_configurable():
    """With a 02:00 earliest start the same-day advance is accepted"""
    departure = datetime(2026, 6, 1, 7, 0)
    result = DaylightValidator(earliest_departure_hour=2).required_departure(NASSAU, 15, departure)
    assert result.departure_time == datetime(2026, 6, 1, 2, 0)


def test_rejects_bad_sailing_hours():
    with pytest.raises(ValueError):
        DaylightValidator().required_departure(NASSAU, -1, datetime(2026, 6, 1, 8, 0))
    with pytest.raises(ValueError):
        DaylightValidator().required_departure(NASSAU, float("nan"), datetime(2026, 6, 1, 8, 0))


def test_rejects_invalid_window():
    with pytest.raises(ValueError):
        DaylightValidator(sunrise_hour=19, sunset_hour=7)


def test_validate_arrival():
    validator = DaylightValidator()
    day = Waypoint(id="w1", name="Destination", position=NASSAU, order=1,
                   estimated_arrival=datetime(2026, 6, 1, 15, 30))
    night = Waypoint(id="w2", name="Destination", position=NASSAU, order=2,
                     estimated_arrival=datetime(2026, 6, 1, 20, 0))
    unknown = Waypoint(id="w3", name="Waypoint 1", position=NASSAU, order=3)

    assert validator.validate_arrival(day).is_valid

    check = validator.validate_arrival(night)
    assert not check.is_valid
    assert "Destination" in check.message
    assert check.sunset == datetime(2026, 6, 1, 18, 0)

    assert not validator.validate_arrival(unknown).is_valid
