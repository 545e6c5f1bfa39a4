"""
Type definitions for the Offshore Passage Planner
Using Python dataclasses for clean, typed data structures
"""

import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Tuple, Union
from enum import Enum


class SailingMode(str, Enum):
    """How the skipper wants the boat sailed"""
    SPEED = "speed"
    COMFORT = "comfort"
    MIXED = "mixed"


@dataclass
class Coordinates:
    """A point on Earth (latitude/longitude)"""
    lat: float  # Latitude (-90 to 90)
    lng: float  # Longitude (-180 to 180)


@dataclass
class WindForecast:
    """Weather conditions at a specific point and time"""
    timestamp: datetime
    wind_speed: float       # knots
    wind_direction: float   # degrees (0-360, where wind comes FROM)
    gust_speed: float       # knots
    wave_height: float      # meters

    def __post_init__(self):
        self.wind_direction = self.wind_direction % 360


# ============================================================================
# POLAR DIAGRAMS
# ============================================================================

@dataclass
class PolarPoint:
    """Boat speed at one true wind angle"""
    twa: float
    speed: float
    vmg: Optional[float] = None


@dataclass
class PolarCurve:
    """Boat speed vs TWA for one true wind speed"""
    tws: float
    points: List[PolarPoint]

    def __post_init__(self):
        angles = [p.twa for p in self.points]
        if any(b <= a for a, b in zip(angles, angles[1:])):
            raise ValueError(f"Polar curve at {self.tws}kt must have strictly increasing TWA values")


@dataclass
class SailConfigPolar:
    """All curves for one named sail configuration"""
    sail_config: str
    curves: List[PolarCurve]
    description: str = ""
    wind_range: Tuple[float, float] = (0.0, 0.0)

    def __post_init__(self):
        if not self.curves:
            raise ValueError(f"Sail configuration '{self.sail_config}' needs at least one polar curve")
        self.curves = sorted(self.curves, key=lambda c: c.tws)


@dataclass
class PolarDiagram:
    """Full performance model for one boat and its sail wardrobe"""
    id: str
    name: str
    boat_model: str
    polar_data: List[SailConfigPolar]
    boat_type: str = "Catamaran"
    description: str = ""
    length: float = 0.0        # meters
    beam: float = 0.0          # meters
    displacement: float = 0.0  # tonnes

    def get_config(self, name: Optional[str]) -> SailConfigPolar:
        """Named configuration, falling back to the first one in the diagram."""
        if name:
            for config in self.polar_data:
                if config.sail_config == name:
                    return config
        return self.polar_data[0]


@dataclass
class VMGResult:
    """Best angle found by the VMG search"""
    twa: float
    speed: float
    vmg: float


@dataclass
class OptimalVMG:
    upwind: VMGResult
    downwind: VMGResult


# ============================================================================
# SAILS
# ============================================================================

@dataclass
class SailConfiguration:
    """Which sails are set"""
    main_sail: bool = False
    jib: bool = False
    asymmetrical: bool = False
    spinnaker: bool = False
    code_zero: bool = False
    storm_jib: bool = False


@dataclass
class SailRecommendation:
    configuration: SailConfiguration
    expected_speed: float   # knots
    description: str
    confidence: int         # 0-100
    speed_multiplier: float
    sail_config_name: str   # polar configuration used for the base speed


@dataclass(frozen=True)
class EnginePlan:
    """Motoring - wind is below the skipper's threshold"""


@dataclass(frozen=True)
class SailsPlan:
    """Sailing under the given configuration"""
    configuration: SailConfiguration


SailPlan = Union[EnginePlan, SailsPlan]


# ============================================================================
# ROUTES
# ============================================================================

@dataclass
class Waypoint:
    """A vertex of the passage plan with timing, weather and sail plan"""
    id: str
    name: str
    position: Coordinates
    order: int                                   # 1-based, contiguous
    sail_plan: Optional[SailPlan] = None         # None when conditions are unknown
    sail_label: Optional[str] = None             # e.g. "Main+Jib" or "Engine"
    weather_forecast: Optional[WindForecast] = None
    estimated_arrival: Optional[datetime] = None
    elapsed_time: float = 0.0         # hours since departure
    leg_time: float = 0.0             # hours for this leg only
    distance_from_start: float = 0.0  # nautical miles
    leg_distance: float = 0.0         # nautical miles
    cog: float = 0.0                  # course over ground, degrees
    sog: float = 0.0                  # speed over ground, knots
    arrived: bool = False

    @property
    def use_engine(self) -> bool:
        return isinstance(self.sail_plan, EnginePlan)

    @property
    def sail_configuration(self) -> Optional[SailConfiguration]:
        if isinstance(self.sail_plan, SailsPlan):
            return self.sail_plan.configuration
        return None


@dataclass
class Route:
    """An ordered passage plan"""
    id: str
    name: str
    waypoints: List[Waypoint]
    created_at: datetime
    updated_at: datetime
    start_date: Optional[datetime] = None
    warnings: List[str] = field(default_factory=list)

    @property
    def is_navigable(self) -> bool:
        return len(self.waypoints) >= 2

    @property
    def distance(self) -> float:
        return self.waypoints[-1].distance_from_start if self.waypoints else 0.0

    @property
    def estimated_hours(self) -> float:
        return self.waypoints[-1].elapsed_time if self.waypoints else 0.0


@dataclass
class CorridorWeatherPoint:
    """One successfully sampled forecast along the track"""
    position: Coordinates
    forecast: WindForecast
    distance: float  # nm from start


@dataclass
class RouteCorridorWeather:
    start: Coordinates
    end: Coordinates
    weather_points: List[CorridorWeatherPoint]
    average_wind_speed: float
    max_wind_speed: float
    average_wave_height: float
    max_wave_height: float


@dataclass
class RoutePlanningConfig:
    """Input from user: where they want to go and how"""
    start: Coordinates
    destination: Coordinates
    sailing_mode: SailingMode = SailingMode.MIXED
    wind_threshold: float = 5.0                # knots - use engine below this
    avoid_storms: bool = True
    ensure_daytime_arrival: bool = True
    max_daily_distance: float = 150.0          # nautical miles
    preferred_waypoint_interval: float = 50.0  # nautical miles
    preferred_departure: Optional[datetime] = None


@dataclass
class DepartureAdjustment:
    departure_time: datetime
    adjusted: bool
    message: Optional[str] = None


@dataclass
class DaylightCheck:
    is_valid: bool
    sunrise: datetime
    sunset: datetime
    message: Optional[str] = None


# ============================================================================
# SIMULATION
# ============================================================================

class AlertType(str, Enum):
    STORM = "storm"
    HIGH_WIND = "high_wind"
    HIGH_WAVES = "high_waves"
    SQUALL = "squall"


class AlertSeverity(str, Enum):
    WARNING = "warning"
    WATCH = "watch"
    ADVISORY = "advisory"


@dataclass
class Squall:
    location: Coordinates
    radius: float      # nautical miles
    wind_speed: float  # knots


@dataclass
class WeatherKeyframe:
    """Scripted conditions at a fixed virtual hour"""
    hour: float
    wind_speed: float
    wind_direction: float
    wave_height: float
    gust_speed: float
    has_storm: bool = False
    storm_location: Optional[Coordinates] = None
    storm_radius: Optional[float] = None  # nautical miles
    squalls: List[Squall] = field(default_factory=list)


@dataclass
class SimulatedWeather:
    """Conditions for one simulation tick"""
    hour: float
    wind_speed: float
    wind_direction: float
    wave_height: float
    gust_speed: float
    has_storm: bool
    conditions: str  # good | moderate | rough | storm
    storm_location: Optional[Coordinates] = None
    storm_radius: Optional[float] = None
    squalls: List[Squall] = field(default_factory=list)
    boat_position: Optional[Coordinates] = None
    current_waypoint_index: Optional[int] = None


@dataclass
class StormAlert:
    id: str
    type: AlertType
    severity: AlertSeverity
    message: str
    location: Coordinates
    timestamp: datetime
    affected_waypoints: List[str] = field(default_factory=list)


def is_finite_number(value) -> bool:
    """True for real, finite numbers (bools excluded)"""
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)
