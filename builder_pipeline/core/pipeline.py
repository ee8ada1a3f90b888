"""One full extraction attempt for a single target."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional

from builder_pipeline.core.config import Settings, get_settings
from builder_pipeline.core.csp import (
    CSPCheck,
    CSPComplianceEngine,
    CSPPolicyError,
    CSPValidation,
    FilePolicyStore,
)
from builder_pipeline.core.geocoder import GeocodeUnavailable, GeocodingResolver, build_query
from builder_pipeline.core.page_loader import NavigationError, PageHandle, build_page_loader, load_contact_page
from builder_pipeline.etl import photos
from builder_pipeline.etl.extract import ContactFields, extract_contact, extract_record
from builder_pipeline.models import BuilderRecord, Target

logger = logging.getLogger(__name__)


class ExtractionError(RuntimeError):
    """Raised when a page yields no usable business name."""


@dataclass
class AttemptProgress:
    """Best data an attempt produced before it finished or failed."""

    record: Optional[BuilderRecord] = None
    csp: Optional[CSPCheck] = None


class BuilderPipeline:
    def __init__(
        self,
        loader,
        geocoder: GeocodingResolver,
        csp_engine: CSPComplianceEngine,
        *,
        page_timeout_ms: int = 30000,
        contact_timeout_ms: int = 15000,
        max_photos: int = photos.DEFAULT_MAX_PHOTOS,
    ) -> None:
        self.loader = loader
        self.geocoder = geocoder
        self.csp_engine = csp_engine
        self.page_timeout_ms = page_timeout_ms
        self.contact_timeout_ms = contact_timeout_ms
        self.max_photos = max_photos

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None, loader=None) -> "BuilderPipeline":
        settings = settings or get_settings()
        store = FilePolicyStore(Path(settings.csp_policy_path))
        return cls(
            loader or build_page_loader(settings),
            GeocodingResolver.from_settings(settings),
            CSPComplianceEngine(store, auto_remediate=settings.csp_auto_remediate),
            page_timeout_ms=settings.page_timeout_ms,
            contact_timeout_ms=settings.contact_page_timeout_ms,
            max_photos=settings.max_photos,
        )

    def run(self, target: Target, progress: Optional[AttemptProgress] = None) -> BuilderRecord:
        """Load, extract, geocode and validate one target.

        ``progress.record`` is set as soon as a named record exists so the
        caller can save it even if a later step raises.
        """
        progress = progress if progress is not None else AttemptProgress()
        page = self.loader.load(target.url, self.page_timeout_ms)

        record = extract_record(page, target, self.max_photos)
        if record is None:
            raise ExtractionError(f"no business name found on {target.url}")
        progress.record = record

        first_query = self._geocode(record)

        if self._needs_contact_page(record):
            fields = self._probe_contact_page(page, target)
            if fields is not None:
                self._merge_contact(record, fields)

        final_query, _ = build_query(record.address, record.city, record.state)
        if final_query != first_query:
            logger.info("Location for %s changed from %r to %r; geocoding again", record.name, first_query, final_query)
            self._geocode(record)

        self._fill_photos(record, page)
        progress.csp = self.check_csp(record)
        return record

    @staticmethod
    def _needs_contact_page(record: BuilderRecord) -> bool:
        return not (record.email and record.phone and record.address and record.city)

    def _probe_contact_page(self, page: PageHandle, target: Target) -> Optional[ContactFields]:
        found: Dict[str, ContactFields] = {}

        def accept(candidate: PageHandle) -> bool:
            fields = extract_contact(candidate, target.state)
            found[candidate.url] = fields
            return not fields.is_empty()

        contact_page = load_contact_page(self.loader, page.url, accept, self.contact_timeout_ms)
        if contact_page is None:
            logger.info("No usable contact page for %s", target.url)
            return None
        return found[contact_page.url]

    @staticmethod
    def _merge_contact(record: BuilderRecord, fields: ContactFields) -> None:
        """Contact details fill gaps; location from the contact page replaces the main page's."""
        record.phone = record.phone or fields.phone
        record.email = record.email or fields.email
        if fields.address:
            record.address = fields.address
        if fields.city:
            record.city = fields.city
        if fields.zip:
            record.zip = fields.zip

    def _geocode(self, record: BuilderRecord) -> str:
        query, _ = build_query(record.address, record.city, record.state)
        try:
            record.apply_geocode(self.geocoder.resolve(record.address, record.city, record.state))
        except GeocodeUnavailable as exc:
            logger.warning("No coordinates for %s: %s", record.name, exc)
            record.apply_geocode(None)
        return query

    def _fill_photos(self, record: BuilderRecord, page: PageHandle) -> None:
        if len(record.photos) >= self.max_photos:
            return
        gallery_url = photos.find_gallery_url(page)
        if not gallery_url:
            return
        try:
            gallery = self.loader.load(gallery_url, self.contact_timeout_ms)
        except NavigationError as exc:
            logger.info("Gallery page %s unavailable: %s", gallery_url, exc)
            return
        before = len(record.photos)
        record.photos = photos.merge_photos(record.photos, photos.select_photos(gallery, self.max_photos), self.max_photos)
        logger.info("Gallery page %s added %d photo(s) for %s", gallery_url, len(record.photos) - before, record.name)

    def check_csp(self, record: BuilderRecord) -> CSPCheck:
        """Validate the record against the allow-list; an unreadable list is logged, not raised."""
        try:
            return self.csp_engine.check_record(record)
        except CSPPolicyError as exc:
            logger.warning("Skipping CSP validation for %s: %s", record.name, exc)
            return CSPCheck(validation=CSPValidation(), error=str(exc))
