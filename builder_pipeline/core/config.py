"""Application configuration helpers."""

import logging
import os
from dataclasses import dataclass
from functools import lru_cache

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}
OVERWRITE_POLICIES = ("auto", "confirm")
PAGE_LOADERS = ("playwright", "http")


class ConfigError(RuntimeError):
    """Raised when an environment variable holds an unusable value."""


@dataclass(frozen=True)
class Settings:
    google_api_key: str
    database_url: str
    csp_policy_path: str = "public/security-headers.js"
    csp_auto_remediate: bool = True
    overwrite_policy: str = "auto"
    max_retries: int = 3
    retry_delay_seconds: float = 5.0
    target_delay_seconds: float = 2.0
    page_timeout_ms: int = 30000
    contact_page_timeout_ms: int = 15000
    max_photos: int = 8
    page_loader: str = "playwright"
    geocode_country_fallback: bool = True
    worker_port: int = 9000


def _read_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ConfigError(f"{name} must be a boolean, got {raw!r}")


def _read_int(name: str, default: int, *, minimum: int = 0) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from exc
    if value < minimum:
        raise ConfigError(f"{name} must be >= {minimum}, got {value}")
    return value


def _read_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = float(raw)
    except ValueError as exc:
        raise ConfigError(f"{name} must be a number, got {raw!r}") from exc
    if value < 0:
        raise ConfigError(f"{name} must not be negative, got {value}")
    return value


def _read_choice(name: str, default: str, choices) -> str:
    value = (os.getenv(name) or default).strip().lower()
    if value not in choices:
        raise ConfigError(f"{name} must be one of {', '.join(choices)}, got {value!r}")
    return value


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Load settings from environment variables with sensible defaults."""
    load_dotenv()

    google_api_key = os.getenv("GOOGLE_API_KEY", "")
    database_url = os.getenv("DATABASE_URL", "")

    if not database_url:
        logger.warning("DATABASE_URL is not set; database operations will fail.")
    if not google_api_key:
        logger.warning("GOOGLE_API_KEY is not configured; geocoding will use fallback tables only.")

    return Settings(
        google_api_key=google_api_key,
        database_url=database_url,
        csp_policy_path=os.getenv("CSP_POLICY_PATH", "public/security-headers.js"),
        csp_auto_remediate=_read_bool("CSP_AUTO_REMEDIATE", True),
        overwrite_policy=_read_choice("OVERWRITE_POLICY", "auto", OVERWRITE_POLICIES),
        max_retries=_read_int("MAX_RETRIES", 3),
        retry_delay_seconds=_read_float("RETRY_DELAY_SECONDS", 5.0),
        target_delay_seconds=_read_float("TARGET_DELAY_SECONDS", 2.0),
        page_timeout_ms=_read_int("PAGE_TIMEOUT_MS", 30000, minimum=1),
        contact_page_timeout_ms=_read_int("CONTACT_PAGE_TIMEOUT_MS", 15000, minimum=1),
        max_photos=_read_int("MAX_PHOTOS", 8, minimum=1),
        page_loader=_read_choice("PAGE_LOADER", "playwright", PAGE_LOADERS),
        geocode_country_fallback=_read_bool("GEOCODE_COUNTRY_FALLBACK", True),
        worker_port=_read_int("WORKER_PORT", 9000, minimum=1),
    )
