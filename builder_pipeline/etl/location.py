"""Street address, city and postal code extraction."""

import logging
import re
from typing import Iterable, List, Optional

from builder_pipeline.core.page_loader import PageHandle
from builder_pipeline.core.us_states import COMMON_WORD_CITIES, STATE_NAMES, known_cities, state_name
from builder_pipeline.etl.strategies import Strategy, run_cascade

logger = logging.getLogger(__name__)

MIN_ADDRESS_LENGTH = 10
MAX_ADDRESS_LENGTH = 80

_STREET_TYPES = r"(?i:Avenue|Ave|Street|St|Boulevard|Blvd|Lane|Ln|Road|Rd|Drive|Dr|Circle|Cir|Court|Ct|Way|Place|Pl)"
_STREET_WORD = r"(?:[A-Z][A-Za-z'\-]*\.?|\d+(?i:st|nd|rd|th)?)"

# Street-name words must be capitalised or numeric, so prose such as
# "123 for St. Patrick's" never reads as an address.
ADDRESS_PATTERN = re.compile(
    rf"\b\d{{1,6}}\s+(?:[NSEW]\.?\s+)?(?:{_STREET_WORD}\s+){{1,4}}{_STREET_TYPES}\b"
)
_LEADING_ADDRESS = re.compile(
    rf"^\d{{1,6}}\s+(?:[NSEW]\.?\s+)?(?:{_STREET_WORD}\s+){{1,4}}{_STREET_TYPES}\b"
)

_NOISE_TOKENS = re.compile(
    r"\b(email|phone|months for|weeks for|lead time|financing|custom builds|layouts|follow us|contact us"
    r"|about us|schedule|appointment|almost full|nearly full|years of|months of|quality|experience"
    r"|best|javascript|jquery|function|var|const|let|window|document|gform|wp-content|plugins|src|href"
    r"|script|onclick|onload)\b",
    re.IGNORECASE,
)
_MARKUP_NOISE = re.compile(r"[<>{}=;]|\.js\b|\.css\b|\.svg\b")
_LOCALITY_TAIL = re.compile(r",?\s+[A-Za-z .]+,?\s+[A-Z]{2}\.?\s*\d{5}(?:-\d{4})?.*$")
_STATE_ZIP_TAIL = re.compile(r",?\s+[A-Z]{2}\.?\s*\d{5}(?:-\d{4})?.*$")

_ADDRESS_CONTAINERS = (
    "address",
    '[itemprop="streetAddress"]',
    '[itemprop="address"]',
    '[class*="address"]',
    '[class*="location"]',
    '[class*="contact"]',
    "footer",
    '[class*="footer"]',
    '[class*="bottom"]',
)


def _state_alternatives(state: Optional[str]) -> str:
    if state and state.upper() in STATE_NAMES:
        return rf"(?:{re.escape(state.upper())}|(?i:{re.escape(state_name(state))}))"
    return r"[A-Z]{2}"


# ---------- Street address ----------


def is_street_address(text: Optional[str]) -> bool:
    """True when ``text`` reads as "<number> <Street Name> <type>" and nothing else suspicious."""
    if not text:
        return False
    value = " ".join(text.split())
    if not re.match(r"^\d+\s", value):
        return False
    if len(value) < MIN_ADDRESS_LENGTH or len(value) > MAX_ADDRESS_LENGTH:
        return False
    if _NOISE_TOKENS.search(value) or _MARKUP_NOISE.search(value):
        return False
    return bool(_LEADING_ADDRESS.match(value))


def clean_address(text: str, state: Optional[str] = None) -> str:
    """Reduce an address-bearing snippet to the street line."""
    cleaned = " ".join(text.split())
    match = ADDRESS_PATTERN.search(cleaned)
    if match:
        cleaned = match.group(0)
    cleaned = _LOCALITY_TAIL.sub("", cleaned)
    cleaned = _STATE_ZIP_TAIL.sub("", cleaned)
    for city in known_cities(state) if state else []:
        trimmed = re.sub(rf",?\s+{re.escape(city)}\s*$", "", cleaned, flags=re.IGNORECASE)
        if trimmed != cleaned and _LEADING_ADDRESS.match(trimmed):
            cleaned = trimmed
            break
    return cleaned.strip(" ,")


def _addresses_in(texts: Iterable[str], state: Optional[str]) -> Optional[str]:
    for text in texts:
        for match in ADDRESS_PATTERN.finditer(" ".join((text or "").split())):
            candidate = clean_address(match.group(0), state)
            if is_street_address(candidate):
                return candidate
    return None


def address_from_containers(page: PageHandle, state: Optional[str]) -> Optional[str]:
    for selector in _ADDRESS_CONTAINERS:
        address = _addresses_in(page.texts(selector), state)
        if address:
            return address
    return None


def address_from_document(page: PageHandle, state: Optional[str]) -> Optional[str]:
    return _addresses_in([page.body_text], state)


ADDRESS_STRATEGIES = (
    Strategy("address-container", address_from_containers),
    Strategy("document", address_from_document),
)


def extract_address(page: PageHandle, state: Optional[str] = None) -> Optional[str]:
    return run_cascade("address", ADDRESS_STRATEGIES, page, state)


# ---------- City ----------


def _canonical_city(city: str, state: Optional[str]) -> str:
    for known in known_cities(state) if state else []:
        if known.lower() == city.lower():
            return known
    return city


def _valid_city(city: Optional[str]) -> bool:
    return bool(city) and 2 <= len(city) <= 40 and not any(char.isdigit() for char in city)


def city_from_address_line(page: PageHandle, state: Optional[str]) -> Optional[str]:
    pattern = re.compile(
        rf"\b\d+\s[^,]{{3,60}},\s*(?P<city>[A-Z][A-Za-z.'\-]*(?:\s+[A-Z][A-Za-z.'\-]*){{0,3}})\s*,?\s+"
        rf"{_state_alternatives(state)}\b"
    )
    for match in pattern.finditer(page.body_text):
        city = match.group("city").strip()
        if _valid_city(city):
            return _canonical_city(city, state)
    return None


def city_from_city_state_pair(page: PageHandle, state: Optional[str]) -> Optional[str]:
    if not state:
        return None
    alternatives = _state_alternatives(state)
    for city in known_cities(state):
        if re.search(rf"\b{re.escape(city)}\s*,\s*{alternatives}\b", page.body_text, re.IGNORECASE):
            return city
    return None


def city_from_mentions(page: PageHandle, state: Optional[str]) -> Optional[str]:
    if not state:
        return None
    for city in known_cities(state):
        if city in COMMON_WORD_CITIES:
            continue
        if re.search(rf"\b{re.escape(city)}\b", page.body_text):
            return city
    return None


CITY_STRATEGIES = (
    Strategy("address-line", city_from_address_line),
    Strategy("city-state-pair", city_from_city_state_pair),
    Strategy("known-city-mention", city_from_mentions),
)


def extract_city(page: PageHandle, state: Optional[str] = None) -> Optional[str]:
    """Return the city or ``None``; never substitutes a default city."""
    return run_cascade("city", CITY_STRATEGIES, page, state)


# ---------- Postal code ----------


def zip_after_state(page: PageHandle, state: Optional[str]) -> Optional[str]:
    pattern = re.compile(rf"\b{_state_alternatives(state)}\.?,?\s+(?P<zip>\d{{5}}(?:-\d{{4}})?)\b")
    match = pattern.search(page.body_text)
    return match.group("zip") if match else None


def zip_in_address_containers(page: PageHandle, state: Optional[str]) -> Optional[str]:
    texts: List[str] = []
    for selector in ("address", '[class*="address"]', '[class*="location"]', '[itemprop="postalCode"]'):
        texts.extend(page.texts(selector))
    for text in texts:
        without_streets = ADDRESS_PATTERN.sub(" ", text)
        match = re.search(r"(?<![\d-])\d{5}(?:-\d{4})?(?![\d-])", without_streets)
        if match:
            return match.group(0)
    return None


ZIP_STRATEGIES = (
    Strategy("after-state", zip_after_state),
    Strategy("address-container", zip_in_address_containers),
)


def extract_zip(page: PageHandle, state: Optional[str] = None) -> Optional[str]:
    return run_cascade("zip", ZIP_STRATEGIES, page, state)
