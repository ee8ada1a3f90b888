import sys
from pathlib import Path

import pytest

# Ensure `builder_pipeline` is importable when running pytest from the repository root.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from builder_pipeline.core.page_loader import NavigationError, PageHandle  # noqa: E402


class FakePageLoader:
    """Serves canned HTML per URL; unknown URLs behave like unreachable pages."""

    def __init__(self, pages=None):
        self.pages = dict(pages or {})
        self.calls = []
        self.closed = False

    def load(self, url, timeout_ms):
        self.calls.append((url, timeout_ms))
        content = self.pages.get(url)
        if content is None:
            raise NavigationError(f"no page for {url}")
        if isinstance(content, Exception):
            raise content
        return PageHandle(url, content)

    def close(self):
        self.closed = True


@pytest.fixture
def make_loader():
    return FakePageLoader


@pytest.fixture
def make_page():
    def factory(html, url="https://example-van.test/"):
        return PageHandle(url, html)

    return factory
