"""Unit tests for the getWeather tool: JSON payload, sentinel, error payload, schema."""
import json
from unittest.mock import MagicMock, patch

import httpx

from tools.base import WeatherFailure, WeatherReport
from tools.weather_api import WeatherProvider
from tools.weather_tool import (
    WEATHER_TOOL_NAME,
    get_weather,
    get_weather_impl,
    is_current_location,
)


def test_tool_schema():
    assert get_weather.name == WEATHER_TOOL_NAME == "getWeather"
    assert get_weather.description == (
        "Get weather by city name. Always returns response with actual city name, "
        "never the term 'current location'."
    )
    assert list(get_weather.args) == ["cityName"]


def test_new_york_payload_without_key():
    out = json.loads(get_weather.invoke({"cityName": "New York"}))
    assert out == {
        "location": "New York",
        "temperature": 70,
        "description": "few clouds",
        "humidity": 55,
        "windSpeed": 8,
        "feelsLike": 72,
        "tempUnit": "°F",
        "windUnit": "mph",
    }


def test_unknown_city_is_default_not_error():
    out = json.loads(get_weather.invoke({"cityName": "UnknownVille"}))
    assert "error" not in out
    assert out["location"] == "Montreal"
    assert out["tempUnit"] == "°C"
    assert out["windUnit"] == "km/h"


def test_current_location_sentinel_resolves_to_default():
    out = json.loads(get_weather.invoke({"cityName": "Current Location"}))
    assert out["location"] == "Montreal"


def test_is_current_location():
    assert is_current_location(" current location ")
    assert not is_current_location("Montreal")
    assert not is_current_location(None)


def test_remote_500_for_paris_equals_bundled():
    def handler(request):
        return httpx.Response(500)

    provider = WeatherProvider(api_key="fake", client=httpx.Client(transport=httpx.MockTransport(handler)))
    assert get_weather_impl("Paris", provider) == get_weather_impl("Paris", WeatherProvider())


def test_internal_failure_becomes_error_payload():
    provider = MagicMock()
    provider.fetch_by_name.side_effect = RuntimeError("kaboom")
    result = get_weather_impl("Paris", provider)
    assert isinstance(result, WeatherFailure)
    assert "Sorry" in result.error
    assert "Paris" in result.error


@patch("tools.weather_tool.get_weather_provider")
def test_tool_never_raises(mock_provider):
    mock_provider.side_effect = RuntimeError("settings broken")
    out = json.loads(get_weather.invoke({"cityName": "Tokyo"}))
    assert list(out) == ["error"]
    assert "Sorry" in out["error"]


def test_tool_call_carries_artifact():
    msg = get_weather.invoke(
        {"type": "tool_call", "name": "getWeather", "args": {"cityName": "Tokyo"}, "id": "call-1"}
    )
    assert msg.tool_call_id == "call-1"
    assert isinstance(msg.artifact, WeatherReport)
    assert msg.artifact.location == "Tokyo"
    assert json.loads(msg.content)["location"] == "Tokyo"
