"""Core data models shared by the builder ingestion pipeline."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional
from urllib.parse import urlsplit, urlunsplit

from builder_pipeline.core.us_states import normalize_state

ACCURACY_TIERS = ("high", "medium", "city-level", "default")
_WEB_SCHEMES = ("http", "https")
_OPAQUE_SCHEME = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.-]*:(?!\d)")


def normalize_website(raw: Optional[str]) -> Optional[str]:
    """Absolute http(s) URL for a directory row, or None when the value is not a website.

    Bare domains get https, the host is lower-cased and fragments are dropped.
    """
    value = (raw or "").strip()
    if not value:
        return None
    if "://" not in value:
        if _OPAQUE_SCHEME.match(value):
            return None
        value = f"https://{value.lstrip('/')}"

    parts = urlsplit(value)
    scheme = parts.scheme.lower()
    if scheme not in _WEB_SCHEMES or not parts.hostname or " " in parts.netloc:
        return None
    return urlunsplit((scheme, parts.netloc.lower(), parts.path or "/", parts.query, ""))


class ProcessingOutcome(str, Enum):
    SUCCESS = "success"
    PARTIAL = "partial"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(frozen=True)
class Target:
    """One batch row: the website to process and the state it belongs to."""

    state: str
    url: str
    known_name: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.state or not self.state.strip():
            raise ValueError("state is required for a target")
        url = normalize_website(self.url)
        if url is None:
            raise ValueError(f"not a website url: {self.url!r}")
        state = normalize_state(self.state) or self.state.strip()
        object.__setattr__(self, "state", state)
        object.__setattr__(self, "url", url)
        known_name = (self.known_name or "").strip() or None
        object.__setattr__(self, "known_name", known_name)


@dataclass(slots=True)
class PhotoAsset:
    url: str
    alt: str = ""
    caption: str = ""

    def to_dict(self) -> Dict[str, str]:
        return {"url": self.url, "alt": self.alt, "caption": self.caption}


@dataclass(slots=True)
class GeocodeResult:
    lat: float
    lng: float
    accuracy: str
    source: str
    query: str = ""

    def __post_init__(self) -> None:
        if self.accuracy not in ACCURACY_TIERS:
            raise ValueError(f"unknown accuracy tier {self.accuracy!r}")


@dataclass(slots=True)
class BuilderRecord:
    """Normalized snapshot of one conversion business.

    Only ``name`` and ``state`` are guaranteed. Everything else stays ``None``
    or empty when extraction finds nothing.
    """

    name: str
    website: str
    state: str
    address: Optional[str] = None
    city: Optional[str] = None
    zip: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    description: Optional[str] = None
    van_types: List[str] = field(default_factory=list)
    amenities: List[str] = field(default_factory=list)
    services: List[str] = field(default_factory=list)
    social_media: Dict[str, str] = field(default_factory=dict)
    photos: List[PhotoAsset] = field(default_factory=list)
    lat: Optional[float] = None
    lng: Optional[float] = None
    geocode: Optional[GeocodeResult] = field(default=None, repr=False, compare=False)

    def apply_geocode(self, result: Optional[GeocodeResult]) -> None:
        self.geocode = result
        if result is None:
            self.lat = None
            self.lng = None
        else:
            self.lat = result.lat
            self.lng = result.lng

    def contact_completeness(self) -> int:
        """Number of populated contact and location fields."""
        fields = (self.phone, self.email, self.address, self.city, self.zip, self.website)
        return sum(1 for value in fields if value)

    def missing_fields(self) -> List[str]:
        gaps = []
        for name in ("address", "city", "zip", "phone", "email", "description"):
            if not getattr(self, name):
                gaps.append(name)
        if self.lat is None or self.lng is None:
            gaps.append("coordinates")
        if not self.photos:
            gaps.append("photos")
        return gaps
