"""Page loading over Playwright or plain HTTP, exposed as immutable page snapshots."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple
from urllib.parse import urljoin, urlparse

import requests
from bs4 import BeautifulSoup, Tag
from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import TimeoutError as PlaywrightTimeoutError
from playwright.sync_api import sync_playwright

from builder_pipeline.core.config import Settings, get_settings

logger = logging.getLogger(__name__)

USER_AGENT = "BuilderDirectoryBot/1.0 (+https://vanbuilders.directory/about)"
CONTACT_PAGE_PATHS = ("/contact", "/contact-us", "/contact/", "/contact-us/")
GALLERY_CONTAINER_PATTERN = re.compile(r"gallery|portfolio|projects|builds|our-work|showcase", re.IGNORECASE)

_IMAGE_METADATA_SCRIPT = """
(imgs) => imgs.map((img) => ({
  src: img.currentSrc || img.src || img.getAttribute('data-src') || '',
  alt: img.getAttribute('alt') || '',
  title: img.getAttribute('title') || '',
  width: img.naturalWidth || img.width || 0,
  height: img.naturalHeight || img.height || 0,
  inGallery: !!img.closest('[class*="gallery"], [id*="gallery"], [class*="portfolio"], [id*="portfolio"], [class*="projects"], [class*="builds"]'),
  className: typeof img.className === 'string' ? img.className : '',
  id: img.id || '',
}))
"""


class NavigationError(RuntimeError):
    """Raised when a page cannot be loaded or answers with an error status."""


@dataclass(frozen=True)
class ImageCandidate:
    src: str
    alt: str = ""
    title: str = ""
    width: Optional[int] = None
    height: Optional[int] = None
    in_gallery: bool = False
    css_class: str = ""
    element_id: str = ""


def _to_dimension(value) -> Optional[int]:
    if value is None:
        return None
    match = re.match(r"\s*(\d+)", str(value))
    if not match:
        return None
    number = int(match.group(1))
    return number or None


def _descriptor(node: Tag) -> str:
    classes = node.get("class") or []
    if isinstance(classes, str):
        classes = [classes]
    return " ".join([node.get("id") or "", *classes])


class PageHandle:
    """Read-only snapshot of a loaded page.

    Queries take CSS selectors and return plain strings so extractors can be
    exercised against static HTML fixtures.
    """

    def __init__(
        self,
        url: str,
        html: str,
        *,
        status: int = 200,
        images: Optional[List[ImageCandidate]] = None,
    ) -> None:
        self.url = url
        self.status = status
        self.html = html or ""
        self.soup = BeautifulSoup(self.html, "html.parser")
        self._images = tuple(images) if images is not None else None
        self._body_text: Optional[str] = None

    def __repr__(self) -> str:
        return f"PageHandle(url={self.url!r}, status={self.status})"

    def all(self, selector: str) -> List[Tag]:
        return self.soup.select(selector)

    def text(self, selector: str) -> Optional[str]:
        for node in self.soup.select(selector):
            value = node.get_text(" ", strip=True)
            if value:
                return value
        return None

    def texts(self, selector: str) -> List[str]:
        values = []
        for node in self.soup.select(selector):
            value = node.get_text(" ", strip=True)
            if value:
                values.append(value)
        return values

    def attr(self, selector: str, name: str) -> Optional[str]:
        for node in self.soup.select(selector):
            value = node.get(name)
            if isinstance(value, list):
                value = " ".join(value)
            if value and value.strip():
                return value.strip()
        return None

    def meta(self, key: str) -> Optional[str]:
        return self.attr(f'meta[name="{key}"]', "content") or self.attr(f'meta[property="{key}"]', "content")

    @property
    def title(self) -> Optional[str]:
        if self.soup.title is None:
            return None
        value = self.soup.title.get_text(" ", strip=True)
        return value or None

    @property
    def body_text(self) -> str:
        if self._body_text is None:
            body = self.soup.body or self.soup
            self._body_text = " ".join(body.get_text(" ", strip=True).split())
        return self._body_text

    def links(self) -> List[Tuple[str, str]]:
        """Absolute hrefs of all anchors with their visible text."""
        results = []
        for anchor in self.soup.find_all("a", href=True):
            href = anchor["href"].strip()
            if not href or href.startswith("#"):
                continue
            if href.lower().startswith(("mailto:", "tel:", "javascript:")):
                results.append((href, anchor.get_text(" ", strip=True)))
                continue
            results.append((urljoin(self.url, href), anchor.get_text(" ", strip=True)))
        return results

    def images(self) -> List[ImageCandidate]:
        if self._images is not None:
            return list(self._images)
        return self._images_from_markup()

    def _images_from_markup(self) -> List[ImageCandidate]:
        candidates = []
        for img in self.soup.find_all("img"):
            src = img.get("src") or img.get("data-src") or img.get("data-lazy-src") or ""
            src = src.strip()
            if not src:
                continue
            in_gallery = any(
                GALLERY_CONTAINER_PATTERN.search(_descriptor(parent)) for parent in img.parents if isinstance(parent, Tag)
            )
            classes = img.get("class") or []
            candidates.append(
                ImageCandidate(
                    src=src if src.startswith("data:") else urljoin(self.url, src),
                    alt=(img.get("alt") or "").strip(),
                    title=(img.get("title") or "").strip(),
                    width=_to_dimension(img.get("width")),
                    height=_to_dimension(img.get("height")),
                    in_gallery=in_gallery,
                    css_class=" ".join(classes) if isinstance(classes, list) else str(classes),
                    element_id=img.get("id") or "",
                )
            )
        return candidates


def needs_js_render(soup: BeautifulSoup) -> bool:
    body_text = soup.get_text(" ", strip=True)
    if len(body_text) > 200:
        return False

    if soup.find(attrs={"data-page": True}):
        return True

    root = soup.find(id=re.compile("(app|root)", re.IGNORECASE))
    if root and not root.get_text(strip=True):
        return True

    return False


class PlaywrightPageLoader:
    """Single shared headless Chromium page, started on first use."""

    def __init__(self, *, headless: bool = True, user_agent: str = USER_AGENT) -> None:
        self._headless = headless
        self._user_agent = user_agent
        self._playwright = None
        self._browser = None
        self._page = None

    def _ensure_page(self):
        if self._page is None:
            self._playwright = sync_playwright().start()
            self._browser = self._playwright.chromium.launch(headless=self._headless)
            self._page = self._browser.new_page(user_agent=self._user_agent)
        return self._page

    def load(self, url: str, timeout_ms: int) -> PageHandle:
        page = self._ensure_page()
        try:
            response = page.goto(url, wait_until="networkidle", timeout=timeout_ms)
        except PlaywrightTimeoutError as exc:
            raise NavigationError(f"timed out loading {url}") from exc
        except PlaywrightError as exc:
            raise NavigationError(f"failed to load {url}: {exc}") from exc

        if response is None:
            raise NavigationError(f"no response received for {url}")
        if response.status >= 400:
            raise NavigationError(f"{url} answered with HTTP {response.status}")

        html = page.content()
        raw_images = page.eval_on_selector_all("img", _IMAGE_METADATA_SCRIPT)
        images = [
            ImageCandidate(
                src=item.get("src") or "",
                alt=item.get("alt") or "",
                title=item.get("title") or "",
                width=item.get("width") or None,
                height=item.get("height") or None,
                in_gallery=bool(item.get("inGallery")),
                css_class=item.get("className") or "",
                element_id=item.get("id") or "",
            )
            for item in raw_images
            if item.get("src")
        ]
        return PageHandle(page.url, html, status=response.status, images=images)

    def close(self) -> None:
        if self._page is not None:
            self._page.close()
            self._page = None
        if self._browser is not None:
            self._browser.close()
            self._browser = None
        if self._playwright is not None:
            self._playwright.stop()
            self._playwright = None

    def __enter__(self) -> "PlaywrightPageLoader":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


class HttpPageLoader:
    """requests-based loader that escalates client-rendered shells to a browser."""

    def __init__(
        self,
        *,
        session: Optional[requests.Session] = None,
        renderer: Optional[PlaywrightPageLoader] = None,
    ) -> None:
        self.session = session or requests.Session()
        self.session.headers.setdefault("User-Agent", USER_AGENT)
        self.session.headers.setdefault("Accept", "text/html,application/xhtml+xml")
        self.session.headers.setdefault("Accept-Language", "en-US,en;q=0.9")
        self.renderer = renderer

    def load(self, url: str, timeout_ms: int) -> PageHandle:
        try:
            response = self.session.get(url, timeout=timeout_ms / 1000, allow_redirects=True)
        except requests.RequestException as exc:
            raise NavigationError(f"failed to fetch {url}: {exc}") from exc

        if response.status_code >= 400:
            raise NavigationError(f"{url} answered with HTTP {response.status_code}")
        content_type = response.headers.get("Content-Type", "").lower()
        if "html" not in content_type:
            raise NavigationError(f"{url} is not an HTML page (content-type={content_type})")

        page = PageHandle(response.url, response.text, status=response.status_code)
        if self.renderer is not None and needs_js_render(page.soup):
            logger.info("%s looks client-rendered; loading it in the browser", url)
            return self.renderer.load(url, timeout_ms)
        return page

    def close(self) -> None:
        self.session.close()
        if self.renderer is not None:
            self.renderer.close()

    def __enter__(self) -> "HttpPageLoader":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


def build_page_loader(settings: Optional[Settings] = None):
    settings = settings or get_settings()
    if settings.page_loader == "http":
        return HttpPageLoader(renderer=PlaywrightPageLoader())
    return PlaywrightPageLoader()


def contact_page_urls(base_url: str) -> List[str]:
    parsed = urlparse(base_url)
    origin = f"{parsed.scheme}://{parsed.netloc}"
    return [f"{origin}{path}" for path in CONTACT_PAGE_PATHS]


def load_contact_page(
    loader,
    base_url: str,
    accept: Callable[[PageHandle], bool],
    timeout_ms: int,
) -> Optional[PageHandle]:
    """Probe the usual contact paths in order and return the first useful page.

    A page is useful when it loads without error and ``accept`` finds at least
    one contact field on it. Failures are never retried here.
    """
    for url in contact_page_urls(base_url):
        try:
            page = loader.load(url, timeout_ms)
        except NavigationError as exc:
            logger.debug("Contact candidate %s unavailable: %s", url, exc)
            continue
        if accept(page):
            logger.info("Using contact page %s", page.url)
            return page
        logger.debug("Contact candidate %s has no contact details", url)
    return None
