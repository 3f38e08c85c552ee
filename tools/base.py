"""Shared types for tool inputs/outputs. Tools use pydantic for tool-calling mapping."""

import json
from dataclasses import asdict, dataclass
from typing import Any, Union

METRIC = "metric"
IMPERIAL = "imperial"


@dataclass(frozen=True)
class ResolvedPlace:
    """One of the known places, with the coordinates used for remote lookups."""
    name: str
    latitude: float
    longitude: float


@dataclass(frozen=True)
class WeatherSnapshot:
    """Current conditions for a place. Numeric weather fields are whole units."""
    place_name: str
    temperature: int
    description: str
    humidity: int
    wind_speed: int
    feels_like: int
    units: str
    latitude: float
    longitude: float


@dataclass(frozen=True)
class WeatherReport:
    """Successful weather tool result."""
    location: str
    temperature: int
    description: str
    humidity: int
    wind_speed: int
    feels_like: int
    temp_unit: str
    wind_unit: str

    def to_payload(self) -> dict[str, Any]:
        return {
            "location": self.location,
            "temperature": self.temperature,
            "description": self.description,
            "humidity": self.humidity,
            "windSpeed": self.wind_speed,
            "feelsLike": self.feels_like,
            "tempUnit": self.temp_unit,
            "windUnit": self.wind_unit,
        }


@dataclass(frozen=True)
class WeatherFailure:
    """Weather tool result when the lookup itself broke."""
    error: str

    def to_payload(self) -> dict[str, Any]:
        return asdict(self)


WeatherResult = Union[WeatherReport, WeatherFailure]


def to_json(result: WeatherResult) -> str:
    return json.dumps(result.to_payload(), ensure_ascii=False)
