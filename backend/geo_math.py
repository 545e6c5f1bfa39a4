"""
Geo Math - great-circle helpers used by planning and simulation

This module handles all the geographic calculations:
- Distance between points (Haversine formula)
- Bearing/direction between points
- Points along a great circle, and from a start/distance/bearing
- Course and speed over ground with a tidal current
"""

import math
from typing import Tuple

from models import Coordinates, is_finite_number


# Earth's radius in nautical miles
EARTH_RADIUS_NM = 3440.065

# Angular separations closer than this to 0 or pi are treated as degenerate
_DEGENERATE_EPSILON = 1e-12


def to_radians(degrees: float) -> float:
    """Convert degrees to radians"""
    return degrees * (math.pi / 180)


def to_degrees(radians: float) -> float:
    """Convert radians to degrees"""
    return radians * (180 / math.pi)


def validate_coordinates(point: Coordinates, label: str = "coordinates") -> Coordinates:
    """
    Reject anything that is not a finite lat/lng inside the valid ranges.

    Raises:
        ValueError: with a message naming the offending field
    """
    if point is None:
        raise ValueError(f"{label} is required")
    if not is_finite_number(point.lat) or not is_finite_number(point.lng):
        raise ValueError(f"{label} must be finite numbers, got ({point.lat!r}, {point.lng!r})")
    if not -90 <= point.lat <= 90:
        raise ValueError(f"{label} latitude {point.lat} is outside [-90, 90]")
    if not -180 <= point.lng <= 180:
        raise ValueError(f"{label} longitude {point.lng} is outside [-180, 180]")
    return point


def _angular_distance(start: Coordinates, end: Coordinates) -> float:
    lat1 = to_radians(start.lat)
    lat2 = to_radians(end.lat)
    delta_lat = to_radians(end.lat - start.lat)
    delta_lng = to_radians(end.lng - start.lng)

    # Haversine formula
    a = (math.sin(delta_lat / 2) ** 2 +
         math.cos(lat1) * math.cos(lat2) *
         math.sin(delta_lng / 2) ** 2)
    a = min(1.0, max(0.0, a))

    return 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def calculate_distance(start: Coordinates, end: Coordinates) -> float:
    """
    Calculate distance between two points using Haversine formula.

    The Haversine formula calculates the shortest distance over the
    Earth's surface (great-circle distance).

    Args:
        start: Starting coordinates
        end: Ending coordinates

    Returns:
        Distance in nautical miles (0 for identical points)
    """
    return EARTH_RADIUS_NM * _angular_distance(start, end)


def calculate_bearing(start: Coordinates, end: Coordinates) -> float:
    """
    Calculate the initial bearing (direction) from start to end.

    Identical and antipodal points have no defined bearing; 0 is returned.

    Returns:
        Bearing in degrees (0-360, where 0=North, 90=East, etc.)
    """
    d = _angular_distance(start, end)
    if d < _DEGENERATE_EPSILON or math.pi - d < 1e-9:
        return 0.0

    lat1 = to_radians(start.lat)
    lat2 = to_radians(end.lat)
    delta_lng = to_radians(end.lng - start.lng)

    y = math.sin(delta_lng) * math.cos(lat2)
    x = (math.cos(lat1) * math.sin(lat2) -
         math.sin(lat1) * math.cos(lat2) * math.cos(delta_lng))

    bearing = to_degrees(math.atan2(y, x))
    if math.isnan(bearing):
        return 0.0

    # Normalize to 0-360
    return (bearing + 360) % 360


def calculate_destination(start: Coordinates, distance: float, bearing: float) -> Coordinates:
    """
    Calculate the destination point given start, distance, and bearing.

    Args:
        start: Starting coordinates
        distance: Distance to travel in nautical miles
        bearing: Direction to travel in degrees

    Returns:
        Destination coordinates
    """
    lat1 = to_radians(start.lat)
    lng1 = to_radians(start.lng)
    bearing_rad = to_radians(bearing)
    angular = distance / EARTH_RADIUS_NM

    lat2 = math.asin(
        math.sin(lat1) * math.cos(angular) +
        math.cos(lat1) * math.sin(angular) * math.cos(bearing_rad)
    )

    lng2 = lng1 + math.atan2(
        math.sin(bearing_rad) * math.sin(angular) * math.cos(lat1),
        math.cos(angular) - math.sin(lat1) * math.sin(lat2)
    )

    # Wrap longitude back into -180..180
    lng2 = (to_degrees(lng2) + 540) % 360 - 180

    return Coordinates(lat=to_degrees(lat2), lng=lng2)


def intermediate_point(start: Coordinates, end: Coordinates, fraction: float) -> Coordinates:
    """
    Point at `fraction` of the way along the great circle from start to end.

    Uses spherical interpolation of the two unit vectors, which stays on the
    great circle over ocean-crossing distances (plain lat/lng blending does not).

    Raises:
        ValueError: if fraction is outside [0, 1]
    """
    if not is_finite_number(fraction) or not 0 <= fraction <= 1:
        raise ValueError(f"fraction must be within [0, 1], got {fraction!r}")
    if fraction == 0:
        return Coordinates(lat=start.lat, lng=start.lng)
    if fraction == 1:
        return Coordinates(lat=end.lat, lng=end.lng)

    d = _angular_distance(start, end)
    if d < _DEGENERATE_EPSILON:
        return Coordinates(lat=start.lat, lng=start.lng)
    if math.pi - d < 1e-9:
        # Antipodal: every meridian is a great circle, take the one through north
        return calculate_destination(start, fraction * d * EARTH_RADIUS_NM, 0.0)

    lat1 = to_radians(start.lat)
    lng1 = to_radians(start.lng)
    lat2 = to_radians(end.lat)
    lng2 = to_radians(end.lng)

    a = math.sin((1 - fraction) * d) / math.sin(d)
    b = math.sin(fraction * d) / math.sin(d)

    x = a * math.cos(lat1) * math.cos(lng1) + b * math.cos(lat2) * math.cos(lng2)
    y = a * math.cos(lat1) * math.sin(lng1) + b * math.cos(lat2) * math.sin(lng2)
    z = a * math.sin(lat1) + b * math.sin(lat2)

    lat = math.atan2(z, math.sqrt(x * x + y * y))
    lng = math.atan2(y, x)

    return Coordinates(lat=to_degrees(lat), lng=to_degrees(lng))


def calculate_course_with_current(
    desired_course: float,
    boat_speed: float,
    current_speed: float,
    current_direction: float
) -> Tuple[float, float]:
    """
    Combine boat velocity through the water with a tidal current.

    Args:
        desired_course: Heading through the water (degrees)
        boat_speed: Speed through the water (knots)
        current_speed: Current rate (knots)
        current_direction: Direction the current sets TOWARD (degrees)

    Returns:
        Tuple of (course over ground in degrees 0-360, speed over ground in knots)
    """
    boat_x = boat_speed * math.sin(to_radians(desired_course))
    boat_y = boat_speed * math.cos(to_radians(desired_course))

    current_x = current_speed * math.sin(to_radians(current_direction))
    current_y = current_speed * math.cos(to_radians(current_direction))

    result_x = boat_x + current_x
    result_y = boat_y + current_y

    speed_over_ground = math.sqrt(result_x ** 2 + result_y ** 2)
    course = to_degrees(math.atan2(result_x, result_y))
    if course < 0:
        course += 360

    return course, speed_over_ground


def format_duration(hours: float) -> str:
    """Convert hours to human-readable format like '12h 30m'"""
    if hours < 1:
        return f"{int(hours * 60)} minutes"

    h = int(hours)
    m = int((hours - h) * 60)

    if m == 0:
        return f"{h} hour{'s' if h != 1 else ''}"
    return f"{h}h {m}m"
