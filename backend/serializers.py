"""
JSON encoding for routes.

Produces the camelCase document stored as the app's "active route" and sent
over HTTP. Datetimes are written as ISO strings and re-hydrated on load.
"""

from datetime import datetime
from typing import Any, Dict, Optional

from models import (
    Coordinates, EnginePlan, Route, SailConfiguration, SailPlan, SailsPlan, Waypoint, WindForecast,
)
from sail_advisor import ENGINE_LABEL, sail_plan_label

# Sail configuration field <-> JSON key
SAIL_KEYS = {
    "main_sail": "mainSail",
    "jib": "jib",
    "asymmetrical": "asymmetrical",
    "spinnaker": "spinnaker",
    "code_zero": "codeZero",
    "storm_jib": "stormJib",
}

# Compact label part -> sail configuration field
LABEL_PARTS = {
    "main": "main_sail",
    "jib": "jib",
    "asym": "asymmetrical",
    "spinnaker": "spinnaker",
    "codezero": "code_zero",
    "stormjib": "storm_jib",
}


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def parse_datetime(value) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    # fromisoformat before Python 3.11 rejects the trailing Z that JavaScript writes
    if isinstance(value, str) and value.endswith("Z"):
        value = value[:-1] + "+00:00"
    return datetime.fromisoformat(value)


def coordinates_to_dict(coords: Coordinates) -> Dict[str, float]:
    return {"latitude": coords.lat, "longitude": coords.lng}


def coordinates_from_dict(data: Dict[str, Any]) -> Coordinates:
    """Accepts {latitude, longitude} or {lat, lng}."""
    if "latitude" in data:
        return Coordinates(lat=float(data["latitude"]), lng=float(data["longitude"]))
    return Coordinates(lat=float(data["lat"]), lng=float(data["lng"]))


def sail_configuration_to_dict(config: SailConfiguration) -> Dict[str, bool]:
    return {key: getattr(config, attr) for attr, key in SAIL_KEYS.items()}


def sail_configuration_from_dict(data: Dict[str, Any]) -> SailConfiguration:
    return SailConfiguration(**{attr: bool(data.get(key, False)) for attr, key in SAIL_KEYS.items()})


def sail_configuration_from_label(label: str) -> SailConfiguration:
    """Parse a compact label such as "Main+Asym" (unknown parts are ignored)."""
    flags = {}
    for part in label.split("+"):
        attr = LABEL_PARTS.get(part.strip().lower().replace(" ", ""))
        if attr:
            flags[attr] = True
    return SailConfiguration(**flags)


def forecast_to_dict(forecast: WindForecast) -> Dict[str, Any]:
    return {
        "timestamp": _iso(forecast.timestamp),
        "windSpeed": forecast.wind_speed,
        "windDirection": forecast.wind_direction,
        "gustSpeed": forecast.gust_speed,
        "waveHeight": forecast.wave_height,
    }


def forecast_from_dict(data: Dict[str, Any]) -> WindForecast:
    return WindForecast(
        timestamp=parse_datetime(data["timestamp"]),
        wind_speed=float(data["windSpeed"]),
        wind_direction=float(data.get("windDirection", data.get("direction", 0))),
        gust_speed=float(data.get("gustSpeed", data["windSpeed"])),
        wave_height=float(data.get("waveHeight", 0)),
    )


def sail_plan_from_dict(data: Dict[str, Any]) -> Optional[SailPlan]:
    """
    Rebuild the sail plan from a stored waypoint.

    Older documents store the configuration as a label string instead of
    a boolean map; both are accepted.
    """
    if data.get("useEngine"):
        return EnginePlan()
    config = data.get("sailConfiguration")
    if isinstance(config, dict):
        return SailsPlan(configuration=sail_configuration_from_dict(config))
    if isinstance(config, str) and config:
        if config == ENGINE_LABEL:
            return EnginePlan()
        return SailsPlan(configuration=sail_configuration_from_label(config))
    return None


def waypoint_to_dict(wp: Waypoint) -> Dict[str, Any]:
    return {
        "id": wp.id,
        "name": wp.name,
        "latitude": wp.position.lat,
        "longitude": wp.position.lng,
        "coordinates": coordinates_to_dict(wp.position),
        "order": wp.order,
        "useEngine": wp.use_engine,
        "sailConfiguration": (sail_configuration_to_dict(wp.sail_configuration)
                              if wp.sail_configuration is not None else None),
        "sailLabel": wp.sail_label or (sail_plan_label(wp.sail_plan) if wp.sail_plan is not None else None),
        "weatherForecast": forecast_to_dict(wp.weather_forecast) if wp.weather_forecast else None,
        "estimatedArrival": _iso(wp.estimated_arrival),
        "elapsedTime": wp.elapsed_time,
        "legTime": wp.leg_time,
        "distanceFromStart": wp.distance_from_start,
        "legDistance": wp.leg_distance,
        "cog": wp.cog,
        "sog": wp.sog,
        "arrived": wp.arrived,
    }


def waypoint_from_dict(data: Dict[str, Any]) -> Waypoint:
    if "coordinates" in data:
        position = coordinates_from_dict(data["coordinates"])
    else:
        position = coordinates_from_dict(data)

    forecast = data.get("weatherForecast")
    return Waypoint(
        id=str(data["id"]),
        name=data["name"],
        position=position,
        order=int(data["order"]),
        sail_plan=sail_plan_from_dict(data),
        sail_label=data.get("sailLabel"),
        weather_forecast=forecast_from_dict(forecast) if forecast else None,
        estimated_arrival=parse_datetime(data.get("estimatedArrival")),
        elapsed_time=float(data.get("elapsedTime", 0)),
        leg_time=float(data.get("legTime", 0)),
        distance_from_start=float(data.get("distanceFromStart", 0)),
        leg_distance=float(data.get("legDistance", 0)),
        cog=float(data.get("cog", 0)),
        sog=float(data.get("sog", 0)),
        arrived=bool(data.get("arrived", False)),
    )


def route_to_dict(route: Route) -> Dict[str, Any]:
    """Convert Route object to dictionary for JSON response."""
    return {
        "id": route.id,
        "name": route.name,
        "waypoints": [waypoint_to_dict(wp) for wp in route.waypoints],
        "distance": route.distance,
        "estimatedHours": route.estimated_hours,
        "createdAt": _iso(route.created_at),
        "updatedAt": _iso(route.updated_at),
        "startDate": _iso(route.start_date),
        "warnings": list(route.warnings),
    }


def route_from_dict(data: Dict[str, Any]) -> Route:
    """Load a stored route document, re-hydrating ISO date strings."""
    waypoints = sorted((waypoint_from_dict(wp) for wp in data.get("waypoints", [])), key=lambda wp: wp.order)
    return Route(
        id=str(data["id"]),
        name=data["name"],
        waypoints=waypoints,
        created_at=parse_datetime(data["createdAt"]),
        updated_at=parse_datetime(data["updatedAt"]),
        start_date=parse_datetime(data.get("startDate")),
        warnings=list(data.get("warnings", [])),
    )
