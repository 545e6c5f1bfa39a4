"""
Tests for the Windy point-forecast client (network is mocked)
"""

import logging
from datetime import datetime, timezone
from unittest.mock import Mock

import pytest
import requests

from models import Coordinates
from config import Settings
from weather_fetcher import (
    MISSING_API_KEY_ERROR, ForecastProviderConfig, WindyForecastProvider, ms_to_knots,
    wind_direction_from_components,
)

logger = logging.getLogger(__name__)

POINT = Coordinates(lat=28.0, lng=-70.0)

WINDY_RESPONSE = {
    "ts": [1767225600000, 1767236400000],
    "units": {"wind_u-surface": "m*s-1", "wind_v-surface": "m*s-1"},
    "wind_u-surface": [-5.0, 0.0],
    "wind_v-surface": [0.0, -10.0],
    "windGust-surface": [7.0, None],
}


def make_provider(response=None, api_key="test-key", side_effect=None):
    session = Mock(spec=requests.Session)
    if side_effect is not None:
        session.post.side_effect = side_effect
    else:
        session.post.return_value = response
    config = ForecastProviderConfig(api_key=api_key, base_url="https://windy.test/point", timeout=3)
    return WindyForecastProvider(config, session=session), session


def make_response(status_code=200, payload=None, json_error=False):
    response = Mock()
    response.status_code = status_code
    response.ok = 200 <= status_code < 300
    response.text = ""
    response.reason = "Error"
    if json_error:
        response.json.side_effect = ValueError("No JSON object could be decoded")
    else:
        response.json.return_value = payload
    return response


# ============================================================================
# CONVERSIONS
# ============================================================================

def test_wind_direction_from_components():
    """Direction is where the wind comes FROM"""
    assert wind_direction_from_components(0, -10) == pytest.approx(0.0)    # blowing south, from north
    assert wind_direction_from_components(-10, 0) == pytest.approx(90.0)   # blowing west, from east
    assert wind_direction_from_components(0, 10) == pytest.approx(180.0)
    assert wind_direction_from_components(10, 0) == pytest.approx(270.0)


def test_ms_to_knots():
    assert ms_to_knots(10) == pytest.approx(19.4384)


# ============================================================================
# SUCCESSFUL REQUESTS
# ============================================================================

def test_parses_forecast_series():
    provider, session = make_provider(make_response(payload=WINDY_RESPONSE))
    series = provider.get_wind_forecast(POINT)

    assert series.error is None
    assert len(series.forecasts) == 2

    first, second = series.forecasts
    assert first.timestamp == datetime(2026, 1, 1, 0, 0, tzinfo=timezone.utc)
    assert first.wind_speed == 9.7
    assert first.wind_direction == 90
    assert first.gust_speed == 13.6
    assert first.wave_height == 0.0

    assert second.wind_speed == 19.4
    assert second.wind_direction == 0
    assert second.gust_speed == second.wind_speed, "Missing gust falls back to sustained wind"


def test_sends_key_and_position_in_body():
    provider, session = make_provider(make_response(payload=WINDY_RESPONSE))
    provider.get_wind_forecast(POINT)

    session.post.assert_called_once()
    args, kwargs = session.post.call_args
    assert args[0] == "https://windy.test/point"
    assert kwargs["timeout"] == 3
    body = kwargs["json"]
    assert body["lat"] == 28.0 and body["lon"] == -70.0
    assert body["key"] == "test-key"
    assert body["model"] == "gfs"
    assert "wind" in body["parameters"]


def test_current_conditions_is_first_step():
    provider, _ = make_provider(make_response(payload=WINDY_RESPONSE))
    result = provider.get_current_conditions(POINT)
    assert result.error is None
    assert result.forecast.wind_speed == 9.7


# ============================================================================
# FAILURES ARE RETURNED, NOT RAISED
# ============================================================================

@pytest.mark.parametrize("api_key", [None, "", "YOUR_WINDY_API_KEY"])
def test_missing_api_key_is_an_error_result(api_key):
    provider, session = make_provider(api_key=api_key)
    result = provider.get_current_conditions(POINT)

    assert result.forecast is None
    assert result.error == MISSING_API_KEY_ERROR
    session.post.assert_not_called()


def test_authentication_failure():
    provider, _ = make_provider(make_response(401, {"message": "Invalid API key"}))
    result = provider.get_current_conditions(POINT)
    assert result.forecast is None
    assert result.error.startswith("Authentication failed (401)")
    assert "Invalid API key" in result.error


def test_rate_limit():
    provider, _ = make_provider(make_response(429, {}))
    assert "rate limit" in provider.get_current_conditions(POINT).error


def test_server_error():
    provider, _ = make_provider(make_response(503, json_error=True))
    assert provider.get_current_conditions(POINT).error.startswith("Windy.com API error (503)")


def test_timeout():
    provider, _ = make_provider(side_effect=requests.Timeout("timed out"))
    result = provider.get_current_conditions(POINT)
    assert result.forecast is None
    assert "No response" in result.error


def test_connection_error():
    provider, _ = make_provider(side_effect=requests.ConnectionError("unreachable"))
    result = provider.get_current_conditions(POINT)
    assert "Failed to fetch" in result.error


def test_malformed_payloads():
    for response in (
        make_response(payload={"ts": [], "wind_u-surface": []}),
        make_response(payload={"unexpected": True}),
        make_response(payload=["not", "a", "dict"]),
        make_response(json_error=True),
    ):
        provider, _ = make_provider(response)
        assert provider.get_current_conditions(POINT).error == "Invalid response from Windy.com API"


def test_invalid_coordinates_raise():
    provider, _ = make_provider(make_response(payload=WINDY_RESPONSE))
    with pytest.raises(ValueError):
        provider.get_current_conditions(Coordinates(lat=95, lng=0))


def test_config_from_settings():
    settings = Settings(windy_api_key="abc", windy_model="ecmwf", forecast_timeout=9.0)
    config = ForecastProviderConfig.from_settings(settings)
    assert config.api_key == "abc"
    assert config.model == "ecmwf"
    assert config.timeout == 9.0
    assert config.has_api_key
