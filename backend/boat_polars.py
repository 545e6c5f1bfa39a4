"""
Polar Diagrams Module

This module defines boat performance characteristics using polar diagrams.
A polar diagram maps (wind_speed, wind_angle) → boat_speed, one set of curves
per sail configuration.

Key Concepts:
- TWS (True Wind Speed): Wind speed in knots
- TWA (True Wind Angle): Angle between boat heading and wind direction (0-180°)
- Boat Speed: Speed in knots achieved at given TWS and TWA
- VMG (Velocity Made Good): speed × cos(TWA), progress toward/away from the wind
"""

import math
from typing import Dict, List, Optional, Tuple

from models import (
    OptimalVMG, PolarCurve, PolarDiagram, PolarPoint, SailConfigPolar, VMGResult,
    is_finite_number,
)


# ============================================================================
# POLAR DATA TABLES
# ============================================================================

# Table structure: {tws_knots: [(twa_degrees, boat_speed_knots, vmg_knots), ...]}
# Wind angles are 0-180° (symmetric - same performance on port/starboard)
# Lagoon 440: 13.61m LOA, 7.7m beam, 12t, 103m² upwind / 213m² with spinnaker

MAIN_JIB_TABLE = {
    6: [(40, 4.2, 3.2), (45, 4.5, 3.2), (50, 4.9, 3.1), (52, 5.1, 3.1), (60, 5.4, 2.7),
        (75, 5.6, 1.4), (90, 5.5, 0), (110, 5.2, -1.8), (120, 4.9, -2.4), (135, 4.5, -3.2),
        (150, 4.0, -3.5), (165, 3.5, -3.4), (180, 3.2, -3.2)],
    8: [(40, 5.1, 3.9), (45, 5.5, 3.9), (50, 5.9, 3.8), (52, 6.0, 3.7), (60, 6.4, 3.2),
        (75, 6.7, 1.7), (90, 6.6, 0), (110, 6.3, -2.2), (120, 6.0, -3.0), (135, 5.5, -3.9),
        (150, 5.0, -4.3), (165, 4.4, -4.3), (180, 4.0, -4.0)],
    10: [(40, 5.8, 4.4), (45, 6.3, 4.5), (50, 6.8, 4.4), (52, 6.7, 4.1), (60, 7.2, 3.6),
         (75, 7.6, 2.0), (90, 7.5, 0), (110, 7.2, -2.5), (120, 6.9, -3.5), (135, 6.4, -4.5),
         (150, 5.8, -5.0), (165, 5.1, -5.0), (180, 4.7, -4.7)],
    12: [(40, 6.3, 4.8), (45, 6.9, 4.9), (50, 7.5, 4.8), (52, 7.3, 4.5), (60, 7.9, 4.0),
         (75, 8.4, 2.2), (90, 8.3, 0), (110, 8.0, -2.7), (120, 7.6, -3.8), (135, 7.1, -5.0),
         (150, 6.5, -5.6), (165, 5.7, -5.6), (180, 5.2, -5.2)],
    14: [(40, 6.7, 5.1), (45, 7.4, 5.2), (50, 8.1, 5.2), (52, 7.8, 4.8), (60, 8.5, 4.3),
         (75, 9.0, 2.3), (90, 8.9, 0), (110, 8.6, -2.9), (120, 8.2, -4.1), (135, 7.7, -5.4),
         (150, 7.0, -6.1), (165, 6.2, -6.1), (180, 5.6, -5.6)],
    16: [(40, 7.0, 5.4), (45, 7.8, 5.5), (50, 8.6, 5.5), (52, 8.2, 5.0), (60, 8.9, 4.5),
         (75, 9.5, 2.5), (90, 9.4, 0), (110, 9.1, -3.1), (120, 8.7, -4.4), (135, 8.1, -5.7),
         (150, 7.4, -6.4), (165, 6.5, -6.4), (180, 5.9, -5.9)],
    20: [(40, 7.4, 5.7), (45, 8.3, 5.9), (50, 9.2, 5.9), (52, 8.7, 5.3), (60, 9.5, 4.8),
         (75, 10.2, 2.6), (90, 10.1, 0), (110, 9.8, -3.4), (120, 9.3, -4.7), (135, 8.7, -6.2),
         (150, 8.0, -6.9), (165, 7.0, -6.9), (180, 6.4, -6.4)],
    25: [(40, 7.7, 5.9), (45, 8.7, 6.2), (50, 9.7, 6.2), (52, 9.1, 5.6), (60, 10.0, 5.0),
         (75, 10.7, 2.8), (90, 10.6, 0), (110, 10.3, -3.5), (120, 9.8, -4.9), (135, 9.2, -6.5),
         (150, 8.4, -7.3), (165, 7.4, -7.3), (180, 6.7, -6.7)],
}

MAIN_GENOA_TABLE = {
    6: [(40, 4.5, 3.4), (45, 4.9, 3.5), (52, 5.4, 3.3), (60, 5.7, 2.9), (75, 5.9, 1.5),
        (90, 5.8, 0), (110, 5.4, -1.8), (120, 5.1, -2.6), (135, 4.7, -3.3), (150, 4.2, -3.6),
        (180, 3.4, -3.4)],
    10: [(40, 6.2, 4.7), (45, 6.7, 4.7), (52, 7.1, 4.4), (60, 7.6, 3.8), (75, 8.0, 2.1),
         (90, 7.9, 0), (110, 7.5, -2.6), (120, 7.1, -3.6), (135, 6.6, -4.7), (150, 6.0, -5.2),
         (180, 4.9, -4.9)],
}

MAIN_SPINNAKER_TABLE = {
    10: [(90, 8.5, 0), (110, 9.2, -3.1), (120, 9.8, -4.9), (135, 10.1, -7.1),
         (150, 9.8, -8.5), (165, 9.2, -9.0), (180, 8.7, -8.7)],
    14: [(90, 10.2, 0), (110, 11.1, -3.8), (120, 11.8, -5.9), (135, 12.1, -8.6),
         (150, 11.7, -10.1), (165, 11.0, -10.8), (180, 10.4, -10.4)],
    18: [(90, 11.5, 0), (110, 12.5, -4.3), (120, 13.2, -6.6), (135, 13.5, -9.5),
         (150, 13.0, -11.3), (165, 12.2, -12.0), (180, 11.5, -11.5)],
}

MAIN_ASYMMETRICAL_TABLE = {
    10: [(60, 8.2, 4.1), (75, 9.1, 2.4), (90, 9.8, 0), (110, 10.5, -3.6),
         (120, 10.8, -5.4), (135, 10.4, -7.4), (150, 9.5, -8.2), (165, 8.4, -8.2)],
    14: [(60, 9.8, 4.9), (75, 10.9, 2.8), (90, 11.7, 0), (110, 12.5, -4.3),
         (120, 12.9, -6.5), (135, 12.4, -8.8), (150, 11.3, -9.8), (165, 10.0, -9.8)],
    18: [(60, 11.0, 5.5), (75, 12.2, 3.2), (90, 13.1, 0), (110, 13.9, -4.8),
         (120, 14.3, -7.2), (135, 13.7, -9.7), (150, 12.5, -10.8), (165, 11.0, -10.8)],
}

CODE_ZERO_TABLE = {
    6: [(40, 5.0, 3.8), (50, 5.8, 3.7), (60, 6.4, 3.2), (75, 6.8, 1.8), (90, 6.9, 0),
        (110, 6.5, -2.2), (120, 6.0, -3.0)],
    10: [(40, 7.2, 5.5), (50, 8.3, 5.3), (60, 9.1, 4.6), (75, 9.7, 2.5), (90, 9.9, 0),
         (110, 9.3, -3.2), (120, 8.5, -4.3)],
}

STORM_JIB_TABLE = {
    30: [(45, 6.5, 4.6), (52, 6.8, 4.2), (60, 7.2, 3.6), (75, 7.5, 1.9), (90, 7.4, 0),
         (110, 7.0, -2.4), (120, 6.6, -3.3), (135, 6.1, -4.3), (150, 5.5, -4.8), (180, 4.8, -4.8)],
    40: [(45, 7.2, 5.1), (52, 7.5, 4.6), (60, 7.9, 4.0), (75, 8.2, 2.1), (90, 8.1, 0),
         (110, 7.7, -2.6), (120, 7.2, -3.6), (135, 6.7, -4.7), (150, 6.0, -5.2), (180, 5.2, -5.2)],
}


def build_sail_config(
    name: str,
    table: Dict[float, List[Tuple[float, float, float]]],
    description: str = "",
    wind_range: Tuple[float, float] = (0.0, 0.0)
) -> SailConfigPolar:
    """Turn a {tws: [(twa, speed, vmg), ...]} table into a SailConfigPolar."""
    curves = [
        PolarCurve(tws=tws, points=[PolarPoint(twa=twa, speed=speed, vmg=vmg) for twa, speed, vmg in rows])
        for tws, rows in table.items()
    ]
    return SailConfigPolar(sail_config=name, curves=curves, description=description, wind_range=wind_range)


LAGOON_440_POLAR = PolarDiagram(
    id="lagoon-440-default",
    name="Lagoon 440 - Factory Standard",
    boat_model="Lagoon 440",
    boat_type="Catamaran",
    description="Factory standard polar for a Lagoon 440: clean hulls, standard sails, normal cruising load.",
    length=13.61,
    beam=7.7,
    displacement=12.0,
    polar_data=[
        build_sail_config("Main + Jib", MAIN_JIB_TABLE,
                          "Standard cruising configuration for upwind and reaching", (6, 30)),
        build_sail_config("Main + Genoa", MAIN_GENOA_TABLE,
                          "Larger headsail for better light air performance", (4, 20)),
        build_sail_config("Main + Spinnaker", MAIN_SPINNAKER_TABLE,
                          "Symmetric spinnaker for deep downwind angles", (6, 20)),
        build_sail_config("Main + Asymmetrical", MAIN_ASYMMETRICAL_TABLE,
                          "Asymmetrical spinnaker for fast reaching", (6, 25)),
        build_sail_config("Code Zero", CODE_ZERO_TABLE,
                          "Code zero for light air reaching and close reaching", (3, 12)),
        build_sail_config("Storm Jib + Reefed Main", STORM_JIB_TABLE,
                          "Heavy weather configuration with reduced sail area", (25, 50)),
    ],
)


# ============================================================================
# HELPER FUNCTIONS
# ============================================================================

def normalize_angle(angle: float) -> float:
    """Normalize angle to 0-360 range."""
    return angle % 360


def normalize_twa(twa: float) -> float:
    """
    Fold any angle onto 0-180° (polars are symmetric port/starboard).

    Example:
        200° → 160°, -30° → 30°
    """
    twa = normalize_angle(twa)
    if twa > 180:
        twa = 360 - twa
    return twa


def calculate_wind_angle(boat_heading: float, wind_direction: float) -> float:
    """
    Calculate the true wind angle (TWA) relative to boat heading.

    Args:
        boat_heading: Direction boat is pointing (0-360°, 0=North)
        wind_direction: Direction wind is coming FROM (0-360°, 0=North)

    Returns:
        Wind angle relative to boat (0-180°)

    Example:
        - Boat heading 090°, Wind from 090° → TWA = 0° (dead upwind)
        - Boat heading 090°, Wind from 270° → TWA = 180° (dead downwind)
    """
    return normalize_twa(abs(boat_heading - wind_direction))


def linear_interpolate(x: float, x1: float, x2: float, q1: float, q2: float) -> float:
    """Linear interpolation; a zero-width bracket has weight 0."""
    if x2 == x1:
        return q1
    return q1 + (q2 - q1) * (x - x1) / (x2 - x1)


def _bracket(values: List[float], x: float) -> Tuple[int, int]:
    """Indices of the sorted values bracketing x, clamped to the ends."""
    if x <= values[0]:
        return 0, 0
    if x >= values[-1]:
        last = len(values) - 1
        return last, last
    for i in range(len(values) - 1):
        if values[i] <= x <= values[i + 1]:
            return i, i + 1
    return 0, 0


def interpolate_curve_speed(curve: PolarCurve, twa: float) -> float:
    """Boat speed at `twa` along one curve, clamped to its first/last point."""
    points = sorted(curve.points, key=lambda p: p.twa)
    low, high = _bracket([p.twa for p in points], twa)
    return linear_interpolate(twa, points[low].twa, points[high].twa, points[low].speed, points[high].speed)


def calculate_vmg(speed: float, twa: float) -> float:
    """
    VMG = boat_speed × cos(TWA)

    Positive upwind, negative downwind.
    """
    return speed * math.cos(math.radians(twa))


# ============================================================================
# MAIN POLAR FUNCTIONS
# ============================================================================

def get_speed_from_polar(
    polar: PolarDiagram,
    tws: float,
    twa: float,
    sail_config: Optional[str] = None
) -> float:
    """
    Get boat speed for given wind conditions and sail configuration.

    Interpolates linearly in TWA within the two curves bracketing TWS, then
    linearly between those two speeds. Outside the table the nearest curve
    or point is used (no extrapolation). An unknown configuration name falls
    back to the diagram's first configuration.

    Examples:
        >>> get_speed_from_polar(LAGOON_440_POLAR, 10, 90, "Main + Jib")
        7.5  # Tabulated beam reach in 10 knots
    """
    if not is_finite_number(tws) or not is_finite_number(twa):
        raise ValueError(f"Wind speed and angle must be finite numbers, got tws={tws!r}, twa={twa!r}")

    twa = normalize_twa(twa)
    curves = sorted(polar.get_config(sail_config).curves, key=lambda c: c.tws)

    low, high = _bracket([c.tws for c in curves], tws)
    lower_speed = interpolate_curve_speed(curves[low], twa)
    upper_speed = interpolate_curve_speed(curves[high], twa)

    return linear_interpolate(tws, curves[low].tws, curves[high].tws, lower_speed, upper_speed)


def get_polar_performance(
    polar: PolarDiagram,
    tws: float,
    twa: float,
    sail_config: Optional[str] = None
) -> Tuple[float, float]:
    """Returns (speed, vmg) for the given conditions."""
    speed = get_speed_from_polar(polar, tws, twa, sail_config)
    return speed, calculate_vmg(speed, normalize_twa(twa))


def find_optimal_vmg(
    polar: PolarDiagram,
    tws: float,
    sail_config: Optional[str] = None
) -> OptimalVMG:
    """
    Find the best upwind and downwind angles by scanning TWA 30°-180° in 1° steps.

    Upwind maximises VMG over TWA < 90; downwind minimises signed VMG over
    TWA > 90 and reports it as a positive magnitude. Accuracy is bounded by
    the 1° step.
    """
    best_upwind = -math.inf
    best_downwind = math.inf
    upwind = VMGResult(twa=45, speed=0.0, vmg=0.0)
    downwind = VMGResult(twa=135, speed=0.0, vmg=0.0)

    for twa in range(30, 181):
        speed = get_speed_from_polar(polar, tws, twa, sail_config)
        vmg = calculate_vmg(speed, twa)

        if twa < 90 and vmg > best_upwind:
            best_upwind = vmg
            upwind = VMGResult(twa=twa, speed=speed, vmg=vmg)

        if twa > 90 and vmg < best_downwind:
            best_downwind = vmg
            downwind = VMGResult(twa=twa, speed=speed, vmg=abs(vmg))

    return OptimalVMG(upwind=upwind, downwind=downwind)


def get_optimal_angles(
    wind_speed: float,
    sail_config: Optional[str] = None,
    polar: Optional[PolarDiagram] = None
) -> OptimalVMG:
    """Optimal upwind/downwind angles, using the Lagoon 440 diagram by default."""
    return find_optimal_vmg(polar or LAGOON_440_POLAR, wind_speed, sail_config)
