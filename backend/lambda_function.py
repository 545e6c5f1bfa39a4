"""
AWS Lambda Handler for the Offshore Passage Planner

Lambda calls lambda_handler() with the request data; server.py reuses the
same handler for local development.
"""

import json
import logging
from datetime import datetime
from typing import Any, Dict

from config import settings
from models import Coordinates, RoutePlanningConfig, SailingMode
from coordinate_parser import parse_coordinates
from route_planner import RoutePlanner
from serializers import coordinates_from_dict, route_to_dict, parse_datetime
from weather_fetcher import ForecastProviderConfig, WindyForecastProvider

logger = logging.getLogger(__name__)

HEADERS = {
    "Content-Type": "application/json",
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "Content-Type",
    "Access-Control-Allow-Methods": "POST, OPTIONS"
}


def get_forecast_provider() -> WindyForecastProvider:
    return WindyForecastProvider(ForecastProviderConfig.from_settings(settings))


def parse_position(value: Any, field: str) -> Coordinates:
    """A position given as {lat, lng} / {latitude, longitude} or as typed text (DD, DDM, DMS)."""
    if isinstance(value, str):
        coords = parse_coordinates(value)
        if coords is None:
            raise ValueError(f"Unrecognised {field} position: {value!r}")
        return coords
    return coordinates_from_dict(value)


def parse_planning_request(body: Dict[str, Any]) -> RoutePlanningConfig:
    """
    Build a RoutePlanningConfig from the camelCase request body.

    Raises:
        KeyError: start or destination missing
        ValueError: malformed values
    """
    destination = body.get("destination", body.get("end"))
    if destination is None:
        raise KeyError("destination")

    preferred = body.get("preferredDeparture")
    return RoutePlanningConfig(
        start=parse_position(body["start"], "start"),
        destination=parse_position(destination, "destination"),
        sailing_mode=SailingMode(body.get("sailingMode", SailingMode.MIXED.value)),
        wind_threshold=float(body.get("windThreshold", settings.default_wind_threshold)),
        avoid_storms=bool(body.get("avoidStorms", True)),
        ensure_daytime_arrival=bool(body.get("ensureDaytimeArrival", True)),
        max_daily_distance=float(body.get("maxDailyDistance", 150.0)),
        preferred_waypoint_interval=float(
            body.get("preferredWaypointInterval", settings.default_waypoint_interval)
        ),
        preferred_departure=parse_datetime(preferred) if preferred else None,
    )


def _response(status_code: int, body: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "statusCode": status_code,
        "headers": HEADERS,
        "body": json.dumps(body)
    }


def lambda_handler(event, context):
    """
    AWS Lambda entry point.

    Args:
        event: API Gateway request (contains body with JSON)
        context: Lambda context (unused)

    Returns:
        API Gateway response format
    """
    # HTTP API v2 uses requestContext.http.method, REST API v1 uses httpMethod
    http_method = event.get("requestContext", {}).get("http", {}).get("method") or event.get("httpMethod")

    if http_method == "OPTIONS":
        return {"statusCode": 200, "headers": HEADERS, "body": ""}

    try:
        if isinstance(event.get("body"), str):
            body = json.loads(event["body"])
        else:
            # Direct Lambda test or already parsed
            body = event.get("body") or event

        config = parse_planning_request(body)
        route = RoutePlanner(get_forecast_provider()).plan_route(config)

        return _response(200, {
            "route": route_to_dict(route),
            "calculatedAt": datetime.now().isoformat()
        })

    except KeyError as e:
        return _response(400, {"error": f"Missing required field: {e.args[0]}"})
    except (ValueError, TypeError) as e:
        return _response(400, {"error": f"Invalid input: {e}"})
    except Exception:
        logger.exception("Route planning failed")
        return _response(500, {"error": "Internal server error"})
