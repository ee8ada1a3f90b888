"""Photo candidate scoring and gallery discovery."""

import logging
import re
from dataclasses import dataclass
from typing import Iterable, List, Optional
from urllib.parse import urldefrag, urlparse

from builder_pipeline.core.page_loader import ImageCandidate, PageHandle
from builder_pipeline.models import PhotoAsset

logger = logging.getLogger(__name__)

DEFAULT_MAX_PHOTOS = 8
MIN_WIDTH = 300
MIN_HEIGHT = 200
MIN_ASPECT = 0.5
MAX_ASPECT = 3.0
MIN_UNRELATED_WIDTH = 500
KEYWORD_BONUS = 2
GALLERY_BONUS = 3
UNKNOWN_SIZE_PENALTY = 1

POSITIVE_KEYWORDS = (
    "van",
    "camper",
    "conversion",
    "build",
    "interior",
    "exterior",
    "kitchen",
    "bed",
    "solar",
    "bathroom",
    "custom",
    "sprinter",
    "transit",
    "promaster",
    "project",
    "gallery",
    "portfolio",
    "completed",
    "finished",
)
_NEGATIVE_PATTERN = re.compile(
    r"(?<![a-z])(logos?|favicon|icons?|badges?|avatars?|profile|social|facebook|instagram|twitter|linkedin"
    r"|youtube|nav|menu|button|arrow|placeholder|watermark|sprite|spinner|loader|thumb|thumbnail"
    r"|testimonial|review|team|staff|payment|flag)(?![a-z])"
)
_GALLERY_LINK_PATTERN = re.compile(r"(gallery|photos|portfolio|projects|builds|our-work|showcase)", re.IGNORECASE)


@dataclass(frozen=True)
class ScoredPhoto:
    candidate: ImageCandidate
    score: int

    @property
    def area(self) -> int:
        return (self.candidate.width or 0) * (self.candidate.height or 0)


def _canonical_url(url: str) -> str:
    return urldefrag(url)[0]


def score_image(candidate: ImageCandidate) -> Optional[int]:
    """Relevance score, or ``None`` when the image is disqualified."""
    src = candidate.src.strip()
    lowered_src = src.lower()
    if not lowered_src.startswith(("http://", "https://")):
        return None
    if urlparse(lowered_src).path.endswith(".svg"):
        return None

    descriptors = " ".join(
        [lowered_src, candidate.alt.lower(), candidate.title.lower(), candidate.css_class.lower(), candidate.element_id.lower()]
    )
    if _NEGATIVE_PATTERN.search(descriptors):
        return None

    width, height = candidate.width, candidate.height
    score = 0
    if width and height:
        if width < MIN_WIDTH or height < MIN_HEIGHT:
            return None
        if not MIN_ASPECT <= width / height <= MAX_ASPECT:
            return None
    else:
        score -= UNKNOWN_SIZE_PENALTY

    searchable = " ".join([lowered_src, candidate.alt.lower(), candidate.title.lower()])
    score += KEYWORD_BONUS * sum(1 for keyword in POSITIVE_KEYWORDS if keyword in searchable)
    if candidate.in_gallery:
        score += GALLERY_BONUS

    if score <= 0 and (width or 0) < MIN_UNRELATED_WIDTH:
        return None
    return score


def rank_images(candidates: Iterable[ImageCandidate]) -> List[ScoredPhoto]:
    """Qualifying candidates, best first, one entry per URL."""
    best = {}
    for candidate in candidates:
        score = score_image(candidate)
        if score is None:
            continue
        key = _canonical_url(candidate.src)
        current = best.get(key)
        if current is None or score > current.score:
            best[key] = ScoredPhoto(candidate, score)
    return sorted(best.values(), key=lambda item: (item.score, item.area), reverse=True)


def to_asset(scored: ScoredPhoto) -> PhotoAsset:
    candidate = scored.candidate
    return PhotoAsset(
        url=_canonical_url(candidate.src),
        alt=candidate.alt,
        caption=candidate.title or candidate.alt,
    )


def select_photos(page: PageHandle, limit: int = DEFAULT_MAX_PHOTOS) -> List[PhotoAsset]:
    images = page.images()
    selected = [to_asset(item) for item in rank_images(images)[:limit]]
    logger.info("Selected %d photos from %d images on %s", len(selected), len(images), page.url)
    return selected


def merge_photos(existing: List[PhotoAsset], extra: Iterable[PhotoAsset], limit: int) -> List[PhotoAsset]:
    merged = list(existing[:limit])
    seen = {photo.url for photo in merged}
    for photo in extra:
        if len(merged) >= limit:
            break
        if photo.url in seen:
            continue
        seen.add(photo.url)
        merged.append(photo)
    return merged


def _same_site(host: str, other: str) -> bool:
    def strip(value: str) -> str:
        value = value.lower()
        return value[4:] if value.startswith("www.") else value

    return strip(host) == strip(other)


def find_gallery_url(page: PageHandle) -> Optional[str]:
    """Same-site link that looks like a gallery or portfolio page."""
    current = urlparse(page.url)
    for href, text in page.links():
        parsed = urlparse(href)
        if parsed.scheme not in {"http", "https"} or not _same_site(parsed.netloc, current.netloc):
            continue
        if parsed.path.rstrip("/") == current.path.rstrip("/"):
            continue
        if _GALLERY_LINK_PATTERN.search(parsed.path) or _GALLERY_LINK_PATTERN.search(text or ""):
            return _canonical_url(href)
    return None
