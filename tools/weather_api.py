"""
Weather provider: HTTP client for OpenWeatherMap with bundled per-place snapshots as fallback.
One remote request when an API key is configured; any failure (network, timeout, non-2xx,
malformed body) falls back to the snapshot of the resolved place. No retries.
"""
import json
import logging
import math
import re
from functools import lru_cache
from pathlib import Path
from typing import Any, Optional

import httpx

from app.config import get_settings
from tools.base import IMPERIAL, METRIC, ResolvedPlace, WeatherSnapshot
from tools.location import FALLBACK_TOLERANCE, LocationResolver, normalize_place

logger = logging.getLogger(__name__)

OPENWEATHER_CURRENT_URL = "https://api.openweathermap.org/data/2.5/weather"
MOCKS_DIR = Path(__file__).resolve().parent / "mocks"

# Fixed business rule: New York reports in imperial, every other place in metric.
IMPERIAL_PLACES = frozenset({normalize_place("New York")})

UNIT_LABELS = {
    METRIC: ("°C", "km/h"),
    IMPERIAL: ("°F", "mph"),
}

# OpenWeatherMap reports metric wind in m/s.
MS_TO_KMH = 3.6


class WeatherAPIError(Exception):
    """Remote weather lookup returned something we cannot use."""


REMOTE_FAILURES = (httpx.HTTPError, WeatherAPIError, ValueError, KeyError, IndexError, TypeError)


def units_for(place_name: Optional[str]) -> str:
    return IMPERIAL if normalize_place(place_name) in IMPERIAL_PLACES else METRIC


def unit_labels(units: str) -> tuple[str, str]:
    """(temperature unit, wind unit) for a units tag."""
    return UNIT_LABELS[units]


def round_half_up(value: Any) -> int:
    return int(math.floor(float(value) + 0.5))


# Leading decimal number of a comma-separated part; trailing text is ignored.
_LEADING_NUMBER = re.compile(r"\s*([-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?)")


def _leading_float(text: str) -> Optional[float]:
    match = _LEADING_NUMBER.match(text)
    if match is None:
        return None
    value = float(match.group(1))
    return value if math.isfinite(value) else None


def parse_coordinates(text: Optional[str]) -> Optional[tuple[float, float]]:
    """
    '40.7128, -74.0060' -> (40.7128, -74.006). Each of the first two comma-separated parts
    must start with a number ('40.7128,-74.0060 NYC' still parses); anything else -> None.
    """
    if not isinstance(text, str) or "," not in text:
        return None
    parts = text.split(",")
    lat, lon = _leading_float(parts[0]), _leading_float(parts[1])
    if lat is None or lon is None:
        return None
    return lat, lon


@lru_cache
def _load_snapshots() -> dict[str, dict[str, Any]]:
    """Bundled OpenWeatherMap-shaped payloads keyed by normalized place name."""
    snapshots = {}
    for path in sorted(MOCKS_DIR.glob("*.json")):
        data = json.loads(path.read_text(encoding="utf-8"))
        snapshots[normalize_place(data["name"])] = data
    return snapshots


def _http_get(client: httpx.Client, url: str, params: dict) -> dict:
    """Single GET. Raises on transport errors and non-2xx responses."""
    r = client.get(url, params=params)
    if not r.is_success:
        try:
            msg = r.json().get("message", r.text)
        except ValueError:
            msg = r.text
        raise WeatherAPIError(f"HTTP {r.status_code}: {msg}")
    return r.json()


def _snapshot_from_payload(
    data: dict[str, Any],
    units: str,
    fallback_name: str,
    latitude: float,
    longitude: float,
    wind_factor: float = 1.0,
) -> WeatherSnapshot:
    main = data["main"]
    coord = data.get("coord") or {}
    return WeatherSnapshot(
        place_name=data.get("name") or fallback_name,
        temperature=round_half_up(main["temp"]),
        description=data["weather"][0]["description"],
        humidity=round_half_up(main["humidity"]),
        wind_speed=round_half_up(float(data["wind"]["speed"]) * wind_factor),
        feels_like=round_half_up(main["feels_like"]),
        units=units,
        latitude=coord.get("lat", latitude),
        longitude=coord.get("lon", longitude),
    )


class WeatherProvider:
    def __init__(
        self,
        api_key: Optional[str] = None,
        resolver: Optional[LocationResolver] = None,
        base_url: str = OPENWEATHER_CURRENT_URL,
        timeout: float = 10.0,
        client: Optional[httpx.Client] = None,
    ):
        self._api_key = api_key
        self._resolver = resolver or LocationResolver()
        self._base_url = base_url
        self._timeout = timeout
        self._client = client
        self._snapshots = _load_snapshots()

    @property
    def resolver(self) -> LocationResolver:
        return self._resolver

    @property
    def remote_enabled(self) -> bool:
        return bool(self._api_key)

    def fetch_by_name(self, name: str) -> WeatherSnapshot:
        """
        Weather for a place name. A 'lat, lon' string is routed to fetch_by_coordinates;
        a malformed one is treated as a name.
        """
        coords = parse_coordinates(name)
        if coords is not None:
            return self.fetch_by_coordinates(*coords)

        place = self._resolver.resolve_by_name(name)
        if not self.remote_enabled:
            return self._bundled(place)

        units = units_for(place.name)
        try:
            data = self._request(place.latitude, place.longitude, units)
            return self._from_remote(data, units, place.name, place.latitude, place.longitude)
        except REMOTE_FAILURES as e:
            logger.warning("Weather API failed for %s, using bundled data: %s", place.name, e)
            return self._bundled(place)

    def fetch_by_coordinates(self, lat: float, lon: float) -> WeatherSnapshot:
        matched = self._resolver.match_coordinates(lat, lon, FALLBACK_TOLERANCE)
        place = matched or self._resolver.default_place()
        if not self.remote_enabled:
            return self._bundled(place)

        # Unmatched coordinates are fetched in metric regardless of the default place.
        units = units_for(matched.name) if matched else METRIC
        try:
            data = self._request(lat, lon, units)
            return self._from_remote(data, units, f"{lat:.2f}, {lon:.2f}", lat, lon)
        except REMOTE_FAILURES as e:
            logger.warning("Weather API failed for (%s, %s), using bundled data for %s: %s", lat, lon, place.name, e)
            return self._bundled(place)

    def _request(self, lat: float, lon: float, units: str) -> dict:
        params = {"lat": lat, "lon": lon, "appid": self._api_key, "units": units}
        if self._client is not None:
            return _http_get(self._client, self._base_url, params)
        with httpx.Client(timeout=self._timeout) as client:
            return _http_get(client, self._base_url, params)

    def _from_remote(
        self, data: dict, units: str, fallback_name: str, lat: float, lon: float
    ) -> WeatherSnapshot:
        wind_factor = MS_TO_KMH if units == METRIC else 1.0
        return _snapshot_from_payload(data, units, fallback_name, lat, lon, wind_factor)

    def _bundled(self, place: ResolvedPlace) -> WeatherSnapshot:
        data = self._snapshots.get(normalize_place(place.name))
        if data is None:
            place = self._resolver.default_place()
            data = self._snapshots[normalize_place(place.name)]
        return _snapshot_from_payload(
            data, units_for(place.name), place.name, place.latitude, place.longitude
        )


@lru_cache
def get_weather_provider() -> WeatherProvider:
    settings = get_settings()
    return WeatherProvider(
        api_key=settings.openweathermap_api_key,
        resolver=LocationResolver(default_name=settings.default_city),
        base_url=settings.openweathermap_url,
        timeout=settings.weather_timeout_sec,
    )
