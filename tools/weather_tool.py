"""
getWeather: the one tool the model can always call.
Returns a JSON string for the model and the typed result as the ToolMessage artifact.
Never raises: internal failures become an {"error": ...} payload the model can apologize with.
"""
import logging
from typing import Optional

from langchain_core.tools import tool
from pydantic import BaseModel, Field

from tools.base import WeatherFailure, WeatherReport, WeatherResult, to_json
from tools.weather_api import WeatherProvider, get_weather_provider, unit_labels

logger = logging.getLogger(__name__)

WEATHER_TOOL_NAME = "getWeather"
CURRENT_LOCATION = "current location"


def is_current_location(city_name: Optional[str]) -> bool:
    return isinstance(city_name, str) and city_name.strip().casefold() == CURRENT_LOCATION


class WeatherInput(BaseModel):
    """Structured input for weather: a city name."""
    cityName: str = Field(
        description="City name to get weather for, or 'current location' for the user's own location"
    )


def get_weather_impl(city_name: str, provider: Optional[WeatherProvider] = None) -> WeatherResult:
    try:
        provider = provider or get_weather_provider()
        if is_current_location(city_name):
            city_name = provider.resolver.default_place().name
        snapshot = provider.fetch_by_name(city_name)
        temp_unit, wind_unit = unit_labels(snapshot.units)
        return WeatherReport(
            location=snapshot.place_name,
            temperature=snapshot.temperature,
            description=snapshot.description,
            humidity=snapshot.humidity,
            wind_speed=snapshot.wind_speed,
            feels_like=snapshot.feels_like,
            temp_unit=temp_unit,
            wind_unit=wind_unit,
        )
    except Exception:
        logger.exception("getWeather failed for %r", city_name)
        return WeatherFailure(
            error=f"Sorry, I couldn't retrieve the weather for {city_name} right now. Please try again later."
        )


@tool(WEATHER_TOOL_NAME, args_schema=WeatherInput, response_format="content_and_artifact")
def get_weather(cityName: str) -> tuple[str, WeatherResult]:
    """Get weather by city name. Always returns response with actual city name, never the term 'current location'."""
    result = get_weather_impl(cityName)
    return to_json(result), result


def get_weather_tool():
    return get_weather
