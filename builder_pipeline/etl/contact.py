"""Phone and email extraction."""

import logging
import re
from typing import Iterable, List, Optional
from urllib.parse import unquote

import phonenumbers

from builder_pipeline.core.page_loader import PageHandle
from builder_pipeline.etl.strategies import Strategy, run_cascade

logger = logging.getLogger(__name__)

PHONE_PATTERN = re.compile(r"(?<![\d\w])(?:\+?1[\s.\-]?)?\(?\d{3}\)?[\s.\-]?\d{3}[\s.\-]?\d{4}(?!\d)")
EMAIL_PATTERN = re.compile(r"[A-Za-z0-9._%+\-]+@[A-Za-z0-9.\-]+\.[A-Za-z]{2,}")
MAX_EMAIL_LENGTH = 50

_IMAGE_SUFFIXES = (".png", ".jpg", ".jpeg", ".gif", ".webp", ".svg")
_PLACEHOLDER_DOMAINS = {"example", "placeholder", "domain", "yourdomain", "email", "yoursite"}
_CAMEL_TAIL = re.compile(r"^(.+@[A-Za-z0-9.\-]+?\.[a-z]{2,})(?=[A-Z])")
_SEQUENTIAL = ("01234567890123456789", "98765432109876543210")

_PHONE_CONTAINERS = (
    '[class*="phone"]',
    '[id*="phone"]',
    '[class*="call"]',
    '[class*="contact"]',
    '[id*="contact"]',
    "footer",
    '[class*="footer"]',
    '[class*="bottom"]',
    "address",
)
_EMAIL_CONTAINERS = (
    '[class*="email"]',
    '[class*="contact"]',
    '[id*="contact"]',
    "address",
    "footer",
    '[class*="footer"]',
)


# ---------- Phone ----------


def is_placeholder_phone(digits: str) -> bool:
    """True for ten-digit strings that cannot be a real NANP line."""
    area, exchange, line = digits[:3], digits[3:6], digits[6:]
    if area[0] in "01" or exchange[0] in "01":
        return True
    if exchange == "000" or len(set(digits)) == 1:
        return True
    if any(digits in run for run in _SEQUENTIAL):
        return True
    return exchange == "555" and line.startswith("01")


def normalize_phone(raw: str) -> Optional[str]:
    """Return ``(NNN) NNN-NNNN`` for a plausible US number, else ``None``."""
    try:
        parsed = phonenumbers.parse(raw, "US")
    except phonenumbers.NumberParseException:
        return None
    if parsed.country_code != 1 or not phonenumbers.is_possible_number(parsed):
        return None
    digits = str(parsed.national_number)
    if len(digits) != 10 or is_placeholder_phone(digits):
        return None
    return f"({digits[:3]}) {digits[3:6]}-{digits[6:]}"


def _first_phone(texts: Iterable[str]) -> Optional[str]:
    for text in texts:
        for match in PHONE_PATTERN.finditer(text or ""):
            phone = normalize_phone(match.group(0))
            if phone:
                return phone
    return None


def phone_from_tel_links(page: PageHandle) -> Optional[str]:
    payloads = [unquote(href.split(":", 1)[1]) for href, _ in page.links() if href.lower().startswith("tel:")]
    for payload in payloads:
        phone = normalize_phone(payload.strip())
        if phone:
            return phone
    return None


def phone_from_contact_containers(page: PageHandle) -> Optional[str]:
    for selector in _PHONE_CONTAINERS:
        phone = _first_phone(page.texts(selector))
        if phone:
            return phone
    return None


def phone_from_document(page: PageHandle) -> Optional[str]:
    return _first_phone([page.body_text])


PHONE_STRATEGIES = (
    Strategy("tel-link", phone_from_tel_links),
    Strategy("contact-container", phone_from_contact_containers),
    Strategy("document", phone_from_document),
)


def extract_phone(page: PageHandle) -> Optional[str]:
    return run_cascade("phone", PHONE_STRATEGIES, page)


# ---------- Email ----------


def clean_email(candidate: str) -> Optional[str]:
    """Validate one email candidate, trimming text glued onto its TLD."""
    value = candidate.strip().strip(".,;:")
    tail = _CAMEL_TAIL.match(value)
    if tail:
        value = tail.group(1)
    if not EMAIL_PATTERN.fullmatch(value):
        return None
    value = value.lower()
    if len(value) >= MAX_EMAIL_LENGTH:
        return None
    if value.endswith(_IMAGE_SUFFIXES):
        return None
    domain = value.split("@", 1)[1]
    if domain.split(".", 1)[0] in _PLACEHOLDER_DOMAINS:
        return None
    return value


def emails_in_text(text: str) -> List[str]:
    """Valid emails in a text block, shortest first."""
    found = []
    for match in EMAIL_PATTERN.finditer(text or ""):
        email = clean_email(match.group(0))
        if email and email not in found:
            found.append(email)
    return sorted(found, key=len)


def _first_email(texts: Iterable[str]) -> Optional[str]:
    for text in texts:
        emails = emails_in_text(text)
        if emails:
            return emails[0]
    return None


def email_from_mailto_links(page: PageHandle) -> Optional[str]:
    for href, _ in page.links():
        if not href.lower().startswith("mailto:"):
            continue
        address = unquote(href.split(":", 1)[1]).split("?", 1)[0]
        email = clean_email(address)
        if email:
            return email
    return None


def email_from_contact_regions(page: PageHandle) -> Optional[str]:
    for selector in _EMAIL_CONTAINERS:
        email = _first_email(page.texts(selector))
        if email:
            return email
    return None


def email_from_document(page: PageHandle) -> Optional[str]:
    return _first_email([page.body_text])


EMAIL_STRATEGIES = (
    Strategy("mailto-link", email_from_mailto_links),
    Strategy("contact-region", email_from_contact_regions),
    Strategy("document", email_from_document),
)


def extract_email(page: PageHandle) -> Optional[str]:
    return run_cascade("email", EMAIL_STRATEGIES, page)
