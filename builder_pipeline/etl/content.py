"""Description, vocabulary and social-profile extraction."""

import logging
import re
from typing import Dict, List, Optional, Sequence, Tuple
from urllib.parse import urlparse

from builder_pipeline.core.page_loader import PageHandle
from builder_pipeline.etl.strategies import Strategy, run_cascade

logger = logging.getLogger(__name__)

Vocabulary = Sequence[Tuple[str, re.Pattern]]


def _vocab(*entries: Tuple[str, str]) -> List[Tuple[str, re.Pattern]]:
    return [(label, re.compile(pattern, re.IGNORECASE)) for label, pattern in entries]


VAN_TYPES = _vocab(
    ("Mercedes Sprinter", r"\bsprinter\b|\bmercedes(?:-benz)?\s+vans?\b"),
    ("Ford Transit", r"\btransit\b(?!\s+connect)"),
    ("Ram ProMaster", r"\bpro\s?master\b|\bram\s+(?:van|1500|2500|3500)\b"),
    ("Ford Econoline", r"\beconoline\b|\bford\s+e-?(?:150|250|350)\b"),
    ("Chevy Express", r"\b(?:chevy|chevrolet)\s+express\b|\bgmc\s+savana\b"),
    ("Nissan NV", r"\bnissan\s+nv\d*\b"),
    ("Ford Transit Connect", r"\btransit\s+connect\b"),
)

AMENITIES = _vocab(
    ("Solar", r"\bsolar\b"),
    ("Battery", r"\bbatter(?:y|ies)\b|\blithium\b"),
    ("AC", r"\bair[\s-]?condition\w*\b|\ba/c\b"),
    ("Heating", r"\bheat(?:ing|er|ers)\b"),
    ("Kitchen", r"\bkitchen(?:ette)?\b|\bgalley\b"),
    ("Bathroom", r"\bbathroom\b|\btoilet\b"),
    ("Shower", r"\bshowers?\b"),
    ("Bed", r"\bbeds?\b|\bsleeps?\b|\bsleeping\b"),
    ("Storage", r"\bstorage\b"),
    ("Water System", r"\bfresh\s*water\b|\bwater\s+(?:tanks?|systems?)\b"),
    ("Ventilation", r"\bmaxx?\s?(?:air|fan)\b|\broof\s+fans?\b|\bventilation\b"),
    ("Wi-Fi", r"\bwi-?fi\b|\bstarlink\b"),
)

SERVICES = _vocab(
    ("Custom Builds", r"\bcustom\s+(?:builds?|conversions?)\b"),
    ("Van Conversions", r"\bvan\s+conversions?\b|\bcamper\s+conversions?\b"),
    ("Partial Builds", r"\bpartial\s+builds?\b"),
    ("Repairs", r"\brepairs?\b"),
    ("Upgrades", r"\bupgrades?\b"),
    ("Installations", r"\binstall(?:s|ation|ations)\b"),
    ("Electrical Systems", r"\belectrical\b"),
    ("Rentals", r"\brentals?\b|\bfor\s+rent\b"),
    ("Financing", r"\bfinancing\b"),
    ("Consultation", r"\bconsult(?:ation|ations|ing)?\b"),
)

SOCIAL_HOSTS: Dict[str, Tuple[str, ...]] = {
    "instagram": ("instagram.com", "instagr.am"),
    "facebook": ("facebook.com", "fb.com", "fb.me"),
    "youtube": ("youtube.com", "youtu.be"),
    "twitter": ("twitter.com", "x.com"),
    "tiktok": ("tiktok.com",),
    "pinterest": ("pinterest.com",),
    "linkedin": ("linkedin.com",),
}
_SHARE_PATH = re.compile(r"/(sharer|share|intent|dialog)\b|/plugins/", re.IGNORECASE)

MIN_META_DESCRIPTION = 20
MIN_PARAGRAPH_DESCRIPTION = 40
MAX_DESCRIPTION = 500
_DESCRIPTION_KEYWORDS = re.compile(
    r"\b(vans?|camper|campervan|conversions?|builds?|built|custom|sprinter|transit|promaster|overland\w*|adventure|rv)\b",
    re.IGNORECASE,
)
_BOILERPLATE = re.compile(
    r"cookie|privacy|copyright|©|all rights reserved|javascript|terms of (use|service)|subscribe|newsletter",
    re.IGNORECASE,
)
_PARAGRAPH_SELECTORS = (
    ".description",
    ".about p",
    '[class*="about"] p',
    ".hero p",
    ".intro p",
    "main p",
    "p",
)


# ---------- Description ----------


def _collapse(text: Optional[str]) -> str:
    return " ".join((text or "").split())


def description_from_meta(page: PageHandle) -> Optional[str]:
    for key in ("description", "og:description"):
        value = _collapse(page.meta(key))
        if MIN_META_DESCRIPTION <= len(value) <= MAX_DESCRIPTION and not _BOILERPLATE.search(value):
            return value
    return None


def description_from_paragraphs(page: PageHandle) -> Optional[str]:
    for selector in _PARAGRAPH_SELECTORS:
        for text in page.texts(selector):
            value = _collapse(text)
            if not MIN_PARAGRAPH_DESCRIPTION <= len(value) <= MAX_DESCRIPTION:
                continue
            if _BOILERPLATE.search(value) or not _DESCRIPTION_KEYWORDS.search(value):
                continue
            return value
    return None


DESCRIPTION_STRATEGIES = (
    Strategy("meta-description", description_from_meta),
    Strategy("paragraph", description_from_paragraphs),
)


def extract_description(page: PageHandle) -> Optional[str]:
    return run_cascade("description", DESCRIPTION_STRATEGIES, page)


# ---------- Vocabulary scans ----------


def scan_vocabulary(text: str, vocabulary: Vocabulary) -> List[str]:
    """Labels whose pattern appears in ``text``, in vocabulary order."""
    found: List[str] = []
    for label, pattern in vocabulary:
        if label not in found and pattern.search(text or ""):
            found.append(label)
    return found


def extract_van_types(page: PageHandle) -> List[str]:
    return scan_vocabulary(page.body_text, VAN_TYPES)


def extract_amenities(page: PageHandle) -> List[str]:
    return scan_vocabulary(page.body_text, AMENITIES)


def extract_services(page: PageHandle) -> List[str]:
    return scan_vocabulary(page.body_text, SERVICES)


def van_types_display(van_types: Sequence[str]) -> Optional[str]:
    """Comma-joined form used where the directory stores a single column."""
    return ", ".join(van_types) if van_types else None


# ---------- Social links ----------


def _platform_for(host: str) -> Optional[str]:
    for platform, hosts in SOCIAL_HOSTS.items():
        if any(host == allowed or host.endswith(f".{allowed}") for allowed in hosts):
            return platform
    return None


def normalize_social_url(url: str) -> Optional[str]:
    parsed = urlparse(url)
    host = parsed.netloc.lower().split("@")[-1].split(":")[0]
    path = parsed.path.rstrip("/")
    if not host or not path:
        return None
    return f"https://{host}{path}"


def extract_social_links(page: PageHandle) -> Dict[str, str]:
    """First profile link per platform, in canonical https form."""
    links: Dict[str, str] = {}
    for href, _ in page.links():
        parsed = urlparse(href)
        if parsed.scheme not in {"http", "https"}:
            continue
        platform = _platform_for(parsed.netloc.lower().split(":")[0])
        if platform is None or platform in links:
            continue
        if _SHARE_PATH.search(parsed.path):
            continue
        normalized = normalize_social_url(href)
        if normalized:
            links[platform] = normalized
    return links
