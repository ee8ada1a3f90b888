"""Conversion between builder records and directory table rows."""

import json
import logging
from typing import Any, Dict, List

from builder_pipeline.etl.content import van_types_display
from builder_pipeline.models import BuilderRecord, PhotoAsset

logger = logging.getLogger(__name__)

BUILDER_COLUMNS = (
    "name",
    "website",
    "address",
    "city",
    "state",
    "zip",
    "phone",
    "email",
    "lat",
    "lng",
    "description",
    "van_types",
    "amenities",
    "services",
    "social_media",
    "photos",
)


def to_builder_row(record: BuilderRecord) -> Dict[str, Any]:
    return {
        "name": record.name,
        "website": record.website,
        "address": record.address,
        "city": record.city,
        "state": record.state,
        "zip": record.zip,
        "phone": record.phone,
        "email": record.email,
        "lat": record.lat,
        "lng": record.lng,
        "description": record.description,
        "van_types": van_types_display(record.van_types),
        "amenities": list(record.amenities),
        "services": list(record.services),
        "social_media": dict(record.social_media),
        "photos": [photo.to_dict() for photo in record.photos],
    }


def _decode(value: Any, default: Any) -> Any:
    if value is None:
        return default
    if isinstance(value, str):
        try:
            return json.loads(value)
        except ValueError:
            logger.debug("Unable to decode JSON column value %r", value)
            return default
    return value


def _split_van_types(value: Any) -> List[str]:
    if not value:
        return []
    if isinstance(value, list):
        return [str(item) for item in value]
    return [part.strip() for part in str(value).split(",") if part.strip()]


def from_builder_row(row: Dict[str, Any]) -> BuilderRecord:
    photos = []
    for item in _decode(row.get("photos"), []):
        if isinstance(item, dict) and item.get("url"):
            photos.append(PhotoAsset(url=item["url"], alt=item.get("alt") or "", caption=item.get("caption") or ""))
        elif isinstance(item, str):
            photos.append(PhotoAsset(url=item))

    lat, lng = row.get("lat"), row.get("lng")
    return BuilderRecord(
        name=row.get("name") or "",
        website=row.get("website") or "",
        state=row.get("state") or "",
        address=row.get("address"),
        city=row.get("city"),
        zip=row.get("zip"),
        phone=row.get("phone"),
        email=row.get("email"),
        description=row.get("description"),
        van_types=_split_van_types(row.get("van_types")),
        amenities=list(_decode(row.get("amenities"), [])),
        services=list(_decode(row.get("services"), [])),
        social_media=dict(_decode(row.get("social_media"), {})),
        photos=photos,
        lat=float(lat) if lat is not None else None,
        lng=float(lng) if lng is not None else None,
    )
