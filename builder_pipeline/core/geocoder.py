"""Coordinate resolution with layered fallbacks."""

import logging
import math
from typing import Callable, Optional, Tuple

from builder_pipeline.core.config import Settings, get_settings
from builder_pipeline.core.us_states import COUNTRY_CENTROID, STATE_DEFAULT_CITY, city_centroid, state_name
from builder_pipeline.models import GeocodeResult
from builder_pipeline.vendors import google_geocoding
from builder_pipeline.vendors.google_geocoding import GeocodingError

logger = logging.getLogger(__name__)

# Continental US plus Alaska and Hawaii.
LAT_BOUNDS = (18.0, 72.0)
LNG_BOUNDS = (-180.0, -65.0)
EARTH_RADIUS_MILES = 3958.8


class GeocodeUnavailable(RuntimeError):
    """Raised when neither the geocoding service nor any fallback produced coordinates."""


def build_query(address: Optional[str], city: Optional[str], state: str) -> Tuple[str, str]:
    """Best available query and its granularity (``street``, ``city`` or ``state``)."""
    if address and city:
        return f"{address}, {city}, {state}", "street"
    if city:
        return f"{city}, {state}", "city"
    if address:
        return f"{address}, {state}", "street"
    return state_name(state), "state"


def is_plausible(lat: float, lng: float) -> bool:
    return LAT_BOUNDS[0] <= lat <= LAT_BOUNDS[1] and LNG_BOUNDS[0] <= lng <= LNG_BOUNDS[1]


def distance_miles(a: Tuple[float, float], b: Tuple[float, float]) -> float:
    """Great-circle distance between two (lat, lng) pairs."""
    lat1, lng1 = map(math.radians, a)
    lat2, lng2 = map(math.radians, b)
    dlat = lat2 - lat1
    dlng = lng2 - lng1
    h = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlng / 2) ** 2
    return 2 * EARTH_RADIUS_MILES * math.asin(math.sqrt(h))


class GeocodingResolver:
    """Google Geocoding first, then curated city, state and country centroids."""

    def __init__(
        self,
        api_key: str,
        *,
        country_fallback: bool = True,
        geocode_fn: Callable = google_geocoding.geocode,
    ) -> None:
        self.api_key = api_key
        self.country_fallback = country_fallback
        self._geocode = geocode_fn

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "GeocodingResolver":
        settings = settings or get_settings()
        return cls(settings.google_api_key, country_fallback=settings.geocode_country_fallback)

    def resolve(self, address: Optional[str], city: Optional[str], state: str) -> GeocodeResult:
        query, level = build_query(address, city, state)
        if level != "state" and self.api_key:
            result = self._primary(query)
            if result is not None:
                return result
        return self._fallback(city, state, query)

    def _primary(self, query: str) -> Optional[GeocodeResult]:
        try:
            raw = self._geocode(query, self.api_key)
            if raw is None:
                return None
            parsed = google_geocoding.parse_location(raw)
        except GeocodingError as exc:
            logger.warning("Geocoding service failed for %r: %s", query, exc)
            return None

        lat, lng = parsed["lat"], parsed["lng"]
        if not is_plausible(lat, lng):
            logger.warning("Discarding implausible coordinates %.4f,%.4f for %r", lat, lng, query)
            return None
        accuracy = "high" if parsed["location_type"] == "ROOFTOP" else "medium"
        logger.info("Geocoded %r to %.4f,%.4f (%s)", query, lat, lng, accuracy)
        return GeocodeResult(lat=lat, lng=lng, accuracy=accuracy, source="google", query=query)

    def _fallback(self, city: Optional[str], state: str, query: str) -> GeocodeResult:
        if city:
            coords = city_centroid(city, state)
            if coords:
                logger.info("Using %s, %s city centroid for %r", city, state, query)
                return GeocodeResult(coords[0], coords[1], "city-level", "city-centroid", query)

        default = STATE_DEFAULT_CITY.get(state.upper())
        if default:
            default_city, coords = default
            logger.info("Using %s default city %s for %r", state, default_city, query)
            return GeocodeResult(coords[0], coords[1], "default", "state-default-city", query)

        if self.country_fallback:
            logger.warning("Using country centroid for %r", query)
            return GeocodeResult(COUNTRY_CENTROID[0], COUNTRY_CENTROID[1], "default", "country-centroid", query)

        raise GeocodeUnavailable(f"no coordinates available for {query!r}")
