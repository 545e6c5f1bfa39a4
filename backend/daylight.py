"""
Daylight Validator - keeps landfall inside daylight hours

Sunrise/sunset use a fixed local-clock approximation (06:00-18:00 by default)
read from the wall clock of the datetime passed in. The solver shifts
departure so the arrival lands between sunrise + 1h and sunset - 1h.
"""

import logging
from datetime import datetime, timedelta
from typing import Tuple

from models import Coordinates, DaylightCheck, DepartureAdjustment, Waypoint, is_finite_number
from geo_math import validate_coordinates, format_duration

logger = logging.getLogger(__name__)


SUNRISE_HOUR = 6
SUNSET_HOUR = 18

# Advancing departure to before this hour is treated as unreasonable;
# the arrival moves to the next morning instead.
EARLIEST_DEPARTURE_HOUR = 4

# Margin after sunrise / before sunset targeted by the solver
ARRIVAL_MARGIN = timedelta(hours=1)


class DaylightValidator:
    """Daylight checks and departure-time solver."""

    def __init__(
        self,
        sunrise_hour: int = SUNRISE_HOUR,
        sunset_hour: int = SUNSET_HOUR,
        earliest_departure_hour: int = EARLIEST_DEPARTURE_HOUR
    ):
        if not 0 <= sunrise_hour < sunset_hour <= 23:
            raise ValueError(f"Invalid daylight window {sunrise_hour}:00-{sunset_hour}:00")
        self.sunrise_hour = sunrise_hour
        self.sunset_hour = sunset_hour
        self.earliest_departure_hour = earliest_departure_hour

    def sunrise_sunset(self, coordinates: Coordinates, when: datetime) -> Tuple[datetime, datetime]:
        """Sunrise and sunset on the calendar day of `when` (same tzinfo)."""
        validate_coordinates(coordinates)
        sunrise = when.replace(hour=self.sunrise_hour, minute=0, second=0, microsecond=0)
        sunset = when.replace(hour=self.sunset_hour, minute=0, second=0, microsecond=0)
        return sunrise, sunset

    def is_daylight(self, when: datetime, coordinates: Coordinates) -> bool:
        sunrise, sunset = self.sunrise_sunset(coordinates, when)
        return sunrise <= when <= sunset

    def required_departure(
        self,
        destination: Coordinates,
        total_sailing_hours: float,
        preferred_departure: datetime
    ) -> DepartureAdjustment:
        """
        Departure time that puts the arrival in daylight.

        - Arrival already in daylight: unchanged.
        - Arrival before sunrise: leave later, arriving at sunrise + 1h.
        - Arrival after sunset: leave earlier the same day, arriving at sunset - 1h,
          unless that departure falls before EARLIEST_DEPARTURE_HOUR or on the
          previous day; then arrive at the next day's sunrise + 1h.
        """
        if not is_finite_number(total_sailing_hours) or total_sailing_hours < 0:
            raise ValueError(f"total_sailing_hours must be a non-negative number, got {total_sailing_hours!r}")

        estimated_arrival = preferred_departure + timedelta(hours=total_sailing_hours)

        if self.is_daylight(estimated_arrival, destination):
            return DepartureAdjustment(departure_time=preferred_departure, adjusted=False)

        sunrise, sunset = self.sunrise_sunset(destination, estimated_arrival)

        if estimated_arrival < sunrise:
            delay = (sunrise + ARRIVAL_MARGIN) - estimated_arrival
            departure = preferred_departure + delay
            message = (f"Arrival at {estimated_arrival:%H:%M} is before sunrise; "
                       f"departure delayed by {format_duration(delay.total_seconds() / 3600)}")
        else:
            advance = estimated_arrival - (sunset - ARRIVAL_MARGIN)
            earlier = preferred_departure - advance
            same_day = earlier.date() == preferred_departure.date()
            if same_day and earlier.hour >= self.earliest_departure_hour:
                departure = earlier
                message = (f"Arrival at {estimated_arrival:%H:%M} is after sunset; "
                           f"departure advanced by {format_duration(advance.total_seconds() / 3600)}")
            else:
                next_morning = sunrise + timedelta(days=1) + ARRIVAL_MARGIN
                departure = next_morning - timedelta(hours=total_sailing_hours)
                message = (f"Arrival at {estimated_arrival:%H:%M} is after sunset and an earlier start "
                           f"would mean leaving at {earlier:%H:%M}; departure moved to {departure:%Y-%m-%d %H:%M} "
                           f"for a morning arrival")

        logger.info(f"Daylight arrival: {message}")
        return DepartureAdjustment(departure_time=departure, adjusted=True, message=message)

    def validate_arrival(self, waypoint: Waypoint) -> DaylightCheck:
        """Check one waypoint's ETA against daylight at its position."""
        when = waypoint.estimated_arrival
        if when is None:
            now = datetime.now()
            return DaylightCheck(is_valid=False, sunrise=now, sunset=now, message="No estimated arrival time set")

        sunrise, sunset = self.sunrise_sunset(waypoint.position, when)
        is_valid = sunrise <= when <= sunset
        message = None
        if not is_valid:
            message = (f"Arrival at {waypoint.name} at {when:%H:%M} is outside daylight hours "
                       f"({sunrise:%H:%M} - {sunset:%H:%M})")
        return DaylightCheck(is_valid=is_valid, sunrise=sunrise, sunset=sunset, message=message)
