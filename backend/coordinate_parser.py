"""
Coordinate Parser - turns typed positions into Coordinates

Accepted formats:
- DD:  25.7617, -80.1918   or  N25.7617 W80.1918   or  25.7617N, 80.1918W
- DDM: 25°45.7020'N, 80°11.5080'W   or  25 45.702 N, 80 11.508 W
- DMS: 25°45'42.12"N, 80°11'30.48"W or  25 45 42.12 N, 80 11 30.48 W

Plus Codes and place names need an external service and are not handled.
"""

import re
from typing import Optional

from models import Coordinates

_NUM = r"\d+(?:\.\d+)?"
_SEP = r"\s*[,\s]\s*"
_DEG = r"(?:°\s*|\s+)"
_MIN = r"(?:'\s*|\s+)"

DD_SIMPLE = re.compile(rf"^(-?{_NUM})\s*,\s*(-?{_NUM})$")
DD_HEMISPHERE = re.compile(
    rf"^([NS])?\s*(-?{_NUM})\s*([NS])?{_SEP}([EW])?\s*(-?{_NUM})\s*([EW])?$",
    re.IGNORECASE,
)
DDM = re.compile(
    rf"^([NS])?\s*(\d+){_DEG}({_NUM})'?\s*([NS])?{_SEP}([EW])?\s*(\d+){_DEG}({_NUM})'?\s*([EW])?$",
    re.IGNORECASE,
)
DMS = re.compile(
    rf"^([NS])?\s*(\d+){_DEG}(\d+){_MIN}({_NUM})(?:\"|'')?\s*([NS])?"
    rf"{_SEP}([EW])?\s*(\d+){_DEG}(\d+){_MIN}({_NUM})(?:\"|'')?\s*([EW])?$",
    re.IGNORECASE,
)


def is_valid_coordinate(lat: float, lng: float) -> bool:
    return -90 <= lat <= 90 and -180 <= lng <= 180


def _apply_hemisphere(value: float, hemisphere: Optional[str]) -> float:
    if not hemisphere:
        return value
    if hemisphere.upper() in ("S", "W"):
        return -abs(value)
    return abs(value)


def _result(lat: float, lng: float) -> Optional[Coordinates]:
    if is_valid_coordinate(lat, lng):
        return Coordinates(lat=lat, lng=lng)
    return None


def parse_dd(text: str) -> Optional[Coordinates]:
    match = DD_SIMPLE.match(text)
    if match:
        return _result(float(match.group(1)), float(match.group(2)))

    match = DD_HEMISPHERE.match(text)
    if match:
        lat = _apply_hemisphere(float(match.group(2)), match.group(1) or match.group(3))
        lng = _apply_hemisphere(float(match.group(5)), match.group(4) or match.group(6))
        return _result(lat, lng)
    return None


def parse_ddm(text: str) -> Optional[Coordinates]:
    match = DDM.match(text)
    if not match:
        return None
    lat = int(match.group(2)) + float(match.group(3)) / 60
    lng = int(match.group(6)) + float(match.group(7)) / 60
    lat = _apply_hemisphere(lat, match.group(1) or match.group(4))
    lng = _apply_hemisphere(lng, match.group(5) or match.group(8))
    return _result(lat, lng)


def parse_dms(text: str) -> Optional[Coordinates]:
    match = DMS.match(text)
    if not match:
        return None
    lat = int(match.group(2)) + int(match.group(3)) / 60 + float(match.group(4)) / 3600
    lng = int(match.group(7)) + int(match.group(8)) / 60 + float(match.group(9)) / 3600
    lat = _apply_hemisphere(lat, match.group(1) or match.group(5))
    lng = _apply_hemisphere(lng, match.group(6) or match.group(10))
    return _result(lat, lng)


def parse_coordinates(text: str) -> Optional[Coordinates]:
    """
    Parse a typed position, trying the most specific format first.

    Returns None when nothing matches or the result is out of range.
    """
    if not text:
        return None
    trimmed = text.strip()
    return parse_dms(trimmed) or parse_ddm(trimmed) or parse_dd(trimmed)


def format_dd(coords: Coordinates) -> str:
    return f"{coords.lat:.6f}, {coords.lng:.6f}"


def format_ddm(coords: Coordinates) -> str:
    """e.g. 25°45.7020'N, 80°11.5080'W"""
    parts = []
    for value, positive, negative in ((coords.lat, "N", "S"), (coords.lng, "E", "W")):
        degrees = int(abs(value))
        minutes = (abs(value) - degrees) * 60
        parts.append(f"{degrees}°{minutes:.4f}'{positive if value >= 0 else negative}")
    return ", ".join(parts)


def format_dms(coords: Coordinates) -> str:
    """e.g. 25°45'42.12"N, 80°11'30.48"W"""
    parts = []
    for value, positive, negative in ((coords.lat, "N", "S"), (coords.lng, "E", "W")):
        degrees = int(abs(value))
        total_minutes = (abs(value) - degrees) * 60
        minutes = int(total_minutes)
        seconds = (total_minutes - minutes) * 60
        parts.append(f"{degrees}°{minutes}'{seconds:.2f}\"{positive if value >= 0 else negative}")
    return ", ".join(parts)
