"""Run every field extractor against a page."""

import logging
from dataclasses import dataclass
from typing import Optional

from builder_pipeline.core.page_loader import PageHandle
from builder_pipeline.etl import content, contact, location, names, photos
from builder_pipeline.models import BuilderRecord, Target

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ContactFields:
    phone: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    zip: Optional[str] = None

    def is_empty(self) -> bool:
        return not any((self.phone, self.email, self.address, self.city, self.zip))


def extract_contact(page: PageHandle, state: Optional[str]) -> ContactFields:
    return ContactFields(
        phone=contact.extract_phone(page),
        email=contact.extract_email(page),
        address=location.extract_address(page, state),
        city=location.extract_city(page, state),
        zip=location.extract_zip(page, state),
    )


def extract_record(page: PageHandle, target: Target, max_photos: int = photos.DEFAULT_MAX_PHOTOS) -> Optional[BuilderRecord]:
    """Build a record from the main page, or ``None`` when no business name is found."""
    name = names.extract_name(page, target.state, target.known_name)
    if not name:
        logger.warning("No business name found on %s", page.url)
        return None

    fields = extract_contact(page, target.state)
    record = BuilderRecord(
        name=name,
        website=target.url,
        state=target.state,
        address=fields.address,
        city=fields.city,
        zip=fields.zip,
        phone=fields.phone,
        email=fields.email,
        description=content.extract_description(page),
        van_types=content.extract_van_types(page),
        amenities=content.extract_amenities(page),
        services=content.extract_services(page),
        social_media=content.extract_social_links(page),
        photos=photos.select_photos(page, max_photos),
    )
    logger.info(
        "Extracted %s from %s (phone=%s email=%s city=%s photos=%d)",
        record.name,
        page.url,
        bool(record.phone),
        bool(record.email),
        record.city,
        len(record.photos),
    )
    return record
