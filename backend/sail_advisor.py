"""
Sail Advisor - Recommends a sail configuration for the conditions

Rule table keyed by wind-speed band and true wind angle:
- > 35kt: storm jib + deep-reefed main
- 25-35kt: reefed main + jib
- 15-25kt: main + jib, downwind sails off the breeze in SPEED mode
- 8-15kt: main + jib, asymmetrical downwind in SPEED mode
- 4-8kt: main + jib, code zero downwind in SPEED mode
- <= 4kt: code zero only

The speed multiplier adjusts the polar's base speed for the chosen rig.
"""

from typing import Optional

from models import (
    PolarDiagram, SailConfiguration, SailingMode, SailPlan, SailRecommendation, EnginePlan, SailsPlan,
    is_finite_number,
)
from boat_polars import LAGOON_440_POLAR, get_speed_from_polar, normalize_twa


STORM_WIND = 35
HEAVY_WIND = 25
MODERATE_WIND = 15
LIGHT_MODERATE_WIND = 8
LIGHT_WIND = 4

HIGH_CONFIDENCE = 85
LOW_CONFIDENCE = 65

DEFAULT_SAIL_LABEL = "Main+Jib"
ENGINE_LABEL = "Engine"


def get_sail_config_name(config: SailConfiguration) -> str:
    """Polar configuration name that best matches the sails that are set."""
    if config.storm_jib:
        return "Storm Jib + Reefed Main"
    if config.code_zero:
        return "Code Zero"
    if config.spinnaker:
        return "Main + Spinnaker"
    if config.asymmetrical:
        return "Main + Asymmetrical"
    return "Main + Jib"


def build_sail_label(config: Optional[SailConfiguration]) -> str:
    """Compact label such as 'Main+Jib' or 'Main+StormJib'."""
    if config is None:
        return DEFAULT_SAIL_LABEL
    parts = []
    if config.main_sail:
        parts.append("Main")
    if config.jib:
        parts.append("Jib")
    if config.asymmetrical:
        parts.append("Asym")
    if config.spinnaker:
        parts.append("Spinnaker")
    if config.code_zero:
        parts.append("CodeZero")
    if config.storm_jib:
        parts.append("StormJib")
    return "+".join(parts) or DEFAULT_SAIL_LABEL


def sail_plan_label(plan: Optional[SailPlan]) -> str:
    if isinstance(plan, EnginePlan):
        return ENGINE_LABEL
    if isinstance(plan, SailsPlan):
        return build_sail_label(plan.configuration)
    return DEFAULT_SAIL_LABEL


def recommend_sail_configuration(
    wind_speed: float,
    true_wind_angle: float,
    sailing_mode: SailingMode,
    polar: Optional[PolarDiagram] = None
) -> SailRecommendation:
    """
    Recommend sail configuration based on wind conditions.

    Args:
        wind_speed: True wind speed in knots
        true_wind_angle: TWA in degrees (folded onto 0-180°)
        sailing_mode: SPEED favours downwind sails, COMFORT keeps main + jib
        polar: Diagram for the expected speed (Lagoon 440 by default)

    Returns:
        SailRecommendation with configuration, expected speed, description and confidence
    """
    if not is_finite_number(wind_speed) or not is_finite_number(true_wind_angle):
        raise ValueError(
            f"Wind speed and angle must be finite numbers, got {wind_speed!r} and {true_wind_angle!r}"
        )

    polar = polar or LAGOON_440_POLAR
    twa = normalize_twa(true_wind_angle)
    mode = SailingMode(sailing_mode)
    speed_mode = mode == SailingMode.SPEED
    config = SailConfiguration()

    if wind_speed > STORM_WIND:
        config.main_sail = True
        config.storm_jib = True
        description = "Storm conditions: Deep reefed main + storm jib"
        multiplier = 0.6

    elif wind_speed > HEAVY_WIND:
        config.main_sail = True
        config.jib = True
        if twa < 90:
            description = "Heavy wind upwind: Reefed main + reefed jib"
            multiplier = 0.8
        else:
            description = "Heavy wind downwind: Reefed main + jib"
            multiplier = 0.85

    elif wind_speed > MODERATE_WIND:
        config.main_sail = True
        if twa < 60:
            config.jib = True
            description = "Close hauled: Full main + jib"
            multiplier = 1.0
        elif twa < 90:
            config.jib = True
            description = "Close reach: Full main + jib"
            multiplier = 1.0
        elif twa < 120:
            config.jib = True
            description = "Beam reach: Full main + jib"
            multiplier = 1.0
        elif twa < 150:
            if speed_mode:
                config.asymmetrical = True
                description = "Broad reach: Asymmetrical spinnaker"
                multiplier = 1.15
            else:
                config.jib = True
                description = f"Broad reach: Main + jib ({mode.value} mode)"
                multiplier = 0.95
        else:
            if speed_mode:
                config.spinnaker = True
                description = "Running: Spinnaker"
                multiplier = 1.1
            else:
                config.jib = True
                description = "Running: Wing-on-wing main + jib"
                multiplier = 0.9

    elif wind_speed > LIGHT_MODERATE_WIND:
        config.main_sail = True
        if twa < 90:
            config.jib = True
            description = "Moderate upwind: Full main + jib"
            multiplier = 1.0
        elif twa < 120:
            config.jib = True
            description = "Moderate reaching: Full main + jib"
            multiplier = 1.0
        elif speed_mode:
            config.asymmetrical = True
            description = "Moderate downwind: Asymmetrical spinnaker"
            multiplier = 1.2
        else:
            config.jib = True
            description = "Moderate downwind: Main + jib"
            multiplier = 0.95

    elif wind_speed > LIGHT_WIND:
        if twa < 90 or not speed_mode:
            config.main_sail = True
            config.jib = True
            description = "Light wind upwind: Full main + jib" if twa < 90 else "Light wind downwind: Full main + jib"
            multiplier = 1.0
        else:
            config.code_zero = True
            description = "Light wind downwind: Code Zero"
            multiplier = 1.25

    else:
        config.code_zero = True
        description = "Very light wind: Code Zero only"
        multiplier = 1.2

    sail_config_name = get_sail_config_name(config)
    base_speed = get_speed_from_polar(polar, wind_speed, twa, sail_config_name)

    return SailRecommendation(
        configuration=config,
        expected_speed=base_speed * multiplier,
        description=description,
        confidence=HIGH_CONFIDENCE if wind_speed > LIGHT_WIND else LOW_CONFIDENCE,
        speed_multiplier=multiplier,
        sail_config_name=sail_config_name,
    )
