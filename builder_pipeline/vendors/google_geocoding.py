"""Client utilities for the Google Geocoding API."""

import logging
from typing import Any, Dict, Optional

import requests

logger = logging.getLogger(__name__)
_SESSION = requests.Session()
_BASE_URL = "https://maps.googleapis.com/maps/api/geocode/json"


class GeocodingError(RuntimeError):
    """Raised when the Geocoding API fails or returns an unusable response."""


def geocode(address: str, api_key: str, region: str = "us") -> Optional[Dict[str, Any]]:
    """Return the first geocoding result for ``address`` or ``None`` on ZERO_RESULTS."""
    params = {"address": address, "key": api_key, "region": region}
    try:
        response = _SESSION.get(_BASE_URL, params=params, timeout=10)
        response.raise_for_status()
        payload = response.json()
    except (requests.RequestException, ValueError) as exc:
        raise GeocodingError(f"geocode request failed: {exc}") from exc

    status = payload.get("status")
    if status == "ZERO_RESULTS":
        logger.info("geocode found nothing for %s", address)
        return None
    if status != "OK":
        logger.error("geocode failed: status=%s, error_message=%s", status, payload.get("error_message"))
        raise GeocodingError(payload.get("error_message") or status)

    results = payload.get("results") or []
    return results[0] if results else None


def parse_location(result: Dict[str, Any]) -> Dict[str, Any]:
    """Pull coordinates and precision out of one geocoding result."""
    geometry = result.get("geometry") or {}
    location = geometry.get("location") or {}
    try:
        lat = float(location["lat"])
        lng = float(location["lng"])
    except (KeyError, TypeError, ValueError) as exc:
        raise GeocodingError("malformed location in geocoding result") from exc
    return {
        "lat": lat,
        "lng": lng,
        "location_type": geometry.get("location_type"),
        "formatted_address": result.get("formatted_address"),
    }
