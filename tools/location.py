"""
Location resolution against the fixed set of known places.
Names match by normalized substring containment; coordinates match within a tolerance box.
Nothing here raises on a miss: unmatched input resolves to the default place.
"""
from typing import Iterable, Optional

from tools.base import ResolvedPlace

# Enumeration order matters: name matching takes the first hit.
KNOWN_PLACES: tuple[ResolvedPlace, ...] = (
    ResolvedPlace("Montreal", 45.5017, -73.5673),
    ResolvedPlace("New York", 40.7128, -74.0060),
    ResolvedPlace("Paris", 48.8566, 2.3522),
    ResolvedPlace("Tokyo", 35.6762, 139.6503),
)

# First entry of KNOWN_PLACES.
DEFAULT_PLACE_NAME = "Montreal"

# UI round-off comparison vs. lossy matching after a remote geocode.
UI_TOLERANCE = 0.01
FALLBACK_TOLERANCE = 0.1


def normalize_place(text: Optional[str]) -> str:
    """Case-fold and drop all whitespace: 'New York ' -> 'newyork'."""
    if not isinstance(text, str):
        return ""
    return "".join(text.split()).casefold()


class LocationResolver:
    def __init__(
        self,
        places: Iterable[ResolvedPlace] = KNOWN_PLACES,
        default_name: str = DEFAULT_PLACE_NAME,
    ):
        self._places = tuple(places)
        self._by_key = {normalize_place(p.name): p for p in self._places}
        default = self._by_key.get(normalize_place(default_name))
        if default is None:
            raise ValueError(f"Default place {default_name!r} is not a known place")
        self._default = default

    def default_place(self) -> ResolvedPlace:
        return self._default

    def resolve_by_name(self, text: Optional[str]) -> ResolvedPlace:
        """
        Bidirectional containment: 'weather in new york city' and 'york' both hit New York.
        Empty input contains nothing but is contained in everything, so it lands on the first place.
        """
        key = normalize_place(text)
        for place in self._places:
            place_key = normalize_place(place.name)
            if place_key in key or key in place_key:
                return place
        return self._default

    def match_coordinates(
        self, lat: float, lon: float, tolerance: float = FALLBACK_TOLERANCE
    ) -> Optional[ResolvedPlace]:
        """Nearest known place whose coordinates are strictly within tolerance on both axes, or None."""
        best = None
        best_dist = None
        for place in self._places:
            dlat = abs(lat - place.latitude)
            dlon = abs(lon - place.longitude)
            if dlat < tolerance and dlon < tolerance:
                dist = dlat * dlat + dlon * dlon
                if best_dist is None or dist < best_dist:
                    best, best_dist = place, dist
        return best

    def resolve_by_coordinates(
        self, lat: float, lon: float, tolerance: float = FALLBACK_TOLERANCE
    ) -> ResolvedPlace:
        return self.match_coordinates(lat, lon, tolerance) or self._default
