"""Business-name extraction and normalisation."""

import logging
import re
from typing import Iterable, List, Optional

from builder_pipeline.core.page_loader import PageHandle
from builder_pipeline.core.us_states import COMMON_WORD_CITIES, known_cities, state_name
from builder_pipeline.etl.strategies import Strategy, run_cascade

logger = logging.getLogger(__name__)

MIN_NAME_LENGTH = 3
MAX_NAME_LENGTH = 49

DOMAIN_TOKEN_PATTERN = re.compile(
    r"\b(campervan|van|camper|craft|build|custom|conversion|mobile|motor|design)(s|er|ers|works|ing)?\b",
    re.IGNORECASE,
)

_GENERIC_PHRASES = {
    "home",
    "about",
    "about us",
    "contact",
    "contact us",
    "menu",
    "navigation",
    "gallery",
    "services",
    "shop",
    "blog",
    "faq",
    "our work",
    "our builds",
}

_DENY_PATTERNS = (
    re.compile(r"^(skip to|menu\b|navigation\b|toggle\b)", re.IGNORECASE),
    re.compile(r"built to adventure", re.IGNORECASE),
    re.compile(r"\bvan ?life\b", re.IGNORECASE),
    re.compile(r"^(home|about|contact)\b.*\bpage$", re.IGNORECASE),
    re.compile(
        r"^(custom|luxury|premium|professional)\s+(camper\s*)?(vans?|campers?)(\s+(conversions?|builds?|builders?))?$",
        re.IGNORECASE,
    ),
)

_SUBTITLE_SPLIT = re.compile(r"\s+[|\-–—:]\s+|\s*\|\s*")
_LEGAL_SUFFIX = re.compile(r",?\s+(LLC|L\.L\.C\.|Inc|Co|Company|Corp|Corporation|Ltd)\.?$", re.IGNORECASE)
_TRAILING_LOGO = re.compile(r"\s*\blogo$", re.IGNORECASE)
_WELCOME_PREFIX = re.compile(r"^welcome\s+to\s+(the\s+)?", re.IGNORECASE)
_LOCATION_DESCRIPTION = re.compile(r"\s+(in|of|at|serving)\s+.*$", re.IGNORECASE)
_ADJECTIVE_PREFIX = re.compile(r"^(Custom|Luxury|Premium|Professional)\s+(?=\S+\s+\S+)")

_NAME_ELEMENT_SELECTORS = (
    ".company-name",
    ".brand-name",
    "[class*=company]",
    "[class*=brand]",
    "h1",
)
_LOGO_SELECTORS = (
    'img[alt*="logo" i]',
    'img[class*="logo"][alt]',
    '[class*="logo"] img[alt]',
    '[id*="logo"] img[alt]',
)


def _is_denied(text: str) -> bool:
    lowered = text.lower().strip(" .!")
    if lowered in _GENERIC_PHRASES:
        return True
    return any(pattern.search(text) for pattern in _DENY_PATTERNS)


def _strip_geography(text: str, state: Optional[str]) -> str:
    if not state:
        return text
    places = [state_name(state), *(city for city in known_cities(state) if city not in COMMON_WORD_CITIES)]
    names = "|".join(re.escape(place) for place in sorted(set(places), key=len, reverse=True))
    abbr = re.escape(state.upper())
    prefix = re.compile(rf"^(?:(?i:{names})|{abbr})\s+")
    suffix = re.compile(rf"\s+(?:(?i:{names})|{abbr})$")

    for pattern in (prefix, suffix):
        stripped = pattern.sub("", text).strip()
        # Keep a bare single word like "Vans" from replacing "Arizona Vans".
        if stripped != text and len(stripped.split()) >= 2:
            text = stripped
    return text


def normalize_name(raw: Optional[str], state: Optional[str] = None) -> Optional[str]:
    """Clean a candidate business name, returning ``None`` when it is unusable."""
    if not raw:
        return None
    text = " ".join(raw.split())
    if not text or _is_denied(text):
        return None

    text = _WELCOME_PREFIX.sub("", text)
    text = _SUBTITLE_SPLIT.split(text, maxsplit=1)[0].strip()
    text = _TRAILING_LOGO.sub("", text).strip()
    previous = None
    while previous != text:
        previous = text
        text = _LEGAL_SUFFIX.sub("", text).strip(" ,")
    text = _LOCATION_DESCRIPTION.sub("", text).strip()
    text = _strip_geography(text, state)
    text = _ADJECTIVE_PREFIX.sub("", text).strip()

    if not text or _is_denied(text):
        return None
    if len(text) < MIN_NAME_LENGTH or len(text) > MAX_NAME_LENGTH:
        return None
    if text.isdigit():
        return None
    if not DOMAIN_TOKEN_PATTERN.search(text):
        return None
    return text


def _first_valid(candidates: Iterable[Optional[str]], state: Optional[str]) -> Optional[str]:
    for candidate in candidates:
        name = normalize_name(candidate, state)
        if name:
            return name
    return None


def _logo_alt_texts(page: PageHandle) -> List[str]:
    texts = []
    for selector in _LOGO_SELECTORS:
        for node in page.all(selector):
            alt = (node.get("alt") or "").strip()
            if alt and alt not in texts:
                texts.append(alt)
    return texts


def from_logo_alt(page: PageHandle, state: Optional[str]) -> Optional[str]:
    return _first_valid(_logo_alt_texts(page), state)


def from_name_elements(page: PageHandle, state: Optional[str]) -> Optional[str]:
    for selector in _NAME_ELEMENT_SELECTORS:
        name = _first_valid(page.texts(selector)[:3], state)
        if name:
            return name
    return None


def from_site_name(page: PageHandle, state: Optional[str]) -> Optional[str]:
    return _first_valid([page.meta("og:site_name")], state)


def from_title(page: PageHandle, state: Optional[str]) -> Optional[str]:
    return _first_valid([page.title], state)


NAME_STRATEGIES = (
    Strategy("logo-alt", from_logo_alt),
    Strategy("name-element", from_name_elements),
    Strategy("site-name", from_site_name),
    Strategy("title", from_title),
)


def extract_name(page: PageHandle, state: Optional[str] = None, known_name: Optional[str] = None) -> Optional[str]:
    """Return the business name; a caller-supplied name always wins."""
    if known_name and known_name.strip():
        return " ".join(known_name.split())
    return run_cascade("name", NAME_STRATEGIES, page, state)
