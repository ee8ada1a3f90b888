import pytest
import requests

from builder_pipeline.core import page_loader
from builder_pipeline.core.page_loader import HttpPageLoader, NavigationError, PageHandle

HTML = """
<html>
  <head>
    <title>Sprinter Crafters | Custom Vans</title>
    <meta name="description" content="Custom Sprinter conversions built in Arizona.">
    <meta property="og:site_name" content="Sprinter Crafters">
  </head>
  <body>
    <h1>  </h1>
    <h1>Sprinter Crafters</h1>
    <a href="/gallery">Gallery</a>
    <a href="mailto:info@sprintercrafters.com">Email</a>
    <a href="#top">Top</a>
    <div class="project-gallery">
      <img src="/img/build-1.jpg" alt="Sprinter build" width="800" height="600">
    </div>
    <img data-src="https://cdn.example.net/van.jpg" alt="Van">
    <img src="">
  </body>
</html>
"""


class DummyResponse:
    def __init__(self, status_code=200, text="", content_type="text/html; charset=utf-8", url="https://example-van.test/"):
        self.status_code = status_code
        self.text = text
        self.headers = {"Content-Type": content_type}
        self.url = url


class DummySession:
    def __init__(self, response=None, error=None):
        self.headers = {}
        self.response = response
        self.error = error
        self.calls = []
        self.closed = False

    def get(self, url, timeout=None, allow_redirects=None):
        self.calls.append((url, timeout, allow_redirects))
        if self.error:
            raise self.error
        return self.response

    def close(self):
        self.closed = True


def test_page_handle_queries():
    page = PageHandle("https://example-van.test/", HTML)

    assert page.text("h1") == "Sprinter Crafters"
    assert page.texts("h1") == ["Sprinter Crafters"]
    assert page.attr("a[href^=mailto]", "href") == "mailto:info@sprintercrafters.com"
    assert len(page.all("img")) == 3
    assert page.title == "Sprinter Crafters | Custom Vans"
    assert page.meta("description") == "Custom Sprinter conversions built in Arizona."
    assert page.meta("og:site_name") == "Sprinter Crafters"
    assert "Sprinter Crafters" in page.body_text


def test_page_handle_links_are_absolute():
    page = PageHandle("https://example-van.test/about", HTML)
    links = dict(page.links())

    assert "https://example-van.test/gallery" in links
    assert "mailto:info@sprintercrafters.com" in links
    assert not any(href.startswith("#") for href in links)


def test_page_handle_images_from_markup():
    page = PageHandle("https://example-van.test/", HTML)
    images = page.images()

    assert [image.src for image in images] == [
        "https://example-van.test/img/build-1.jpg",
        "https://cdn.example.net/van.jpg",
    ]
    assert images[0].in_gallery is True
    assert (images[0].width, images[0].height) == (800, 600)
    assert images[1].in_gallery is False
    assert images[1].width is None


def test_page_handle_prefers_supplied_images():
    supplied = [page_loader.ImageCandidate(src="https://example-van.test/a.jpg", width=1200, height=800)]
    page = PageHandle("https://example-van.test/", HTML, images=supplied)
    assert page.images() == supplied


def test_needs_js_render():
    shell = PageHandle("https://example-van.test/", '<html><body><div id="root"></div></body></html>')
    assert page_loader.needs_js_render(shell.soup) is True
    assert page_loader.needs_js_render(PageHandle("https://x.test/", HTML + "x" * 300).soup) is False


def test_http_loader_returns_page():
    session = DummySession(DummyResponse(text=HTML))
    loader = HttpPageLoader(session=session)

    page = loader.load("https://example-van.test/", 15000)

    assert page.text("h1") == "Sprinter Crafters"
    assert session.calls == [("https://example-van.test/", 15.0, True)]
    assert "User-Agent" in session.headers


@pytest.mark.parametrize(
    "session",
    [
        DummySession(DummyResponse(status_code=404)),
        DummySession(DummyResponse(content_type="application/pdf")),
        DummySession(error=requests.ConnectionError("refused")),
    ],
)
def test_http_loader_raises_navigation_error(session):
    with pytest.raises(NavigationError):
        HttpPageLoader(session=session).load("https://example-van.test/", 1000)


def test_http_loader_escalates_client_rendered_pages():
    rendered = PageHandle("https://example-van.test/", HTML)

    class Renderer:
        def __init__(self):
            self.calls = []

        def load(self, url, timeout_ms):
            self.calls.append(url)
            return rendered

    renderer = Renderer()
    session = DummySession(DummyResponse(text='<html><body><div id="app"></div></body></html>'))
    page = HttpPageLoader(session=session, renderer=renderer).load("https://example-van.test/", 1000)

    assert page is rendered
    assert renderer.calls == ["https://example-van.test/"]


def test_load_contact_page_tries_candidates_in_order(make_loader):
    loader = make_loader(
        {
            "https://example-van.test/contact-us": "<p>Nothing here</p>",
            "https://example-van.test/contact/": "<p>Call (602) 555-0199 or (480) 812-1903</p>",
        }
    )

    page = page_loader.load_contact_page(
        loader,
        "https://example-van.test/home",
        accept=lambda candidate: "812-1903" in candidate.body_text,
        timeout_ms=15000,
    )

    assert page.url == "https://example-van.test/contact/"
    assert [url for url, _ in loader.calls] == [
        "https://example-van.test/contact",
        "https://example-van.test/contact-us",
        "https://example-van.test/contact/",
    ]
    assert all(timeout == 15000 for _, timeout in loader.calls)


def test_load_contact_page_returns_none_without_useful_page(make_loader):
    loader = make_loader({"https://example-van.test/contact": "<p>Hello</p>"})

    page = page_loader.load_contact_page(loader, "https://example-van.test/", lambda _: False, 15000)

    assert page is None
    assert len(loader.calls) == 4


class FakeResponse:
    def __init__(self, status):
        self.status = status


class FakePage:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.url = "https://example-van.test/"
        self.goto_calls = []

    def goto(self, url, wait_until=None, timeout=None):
        self.goto_calls.append((url, wait_until, timeout))
        if self.error:
            raise self.error
        return self.response

    def content(self):
        return HTML

    def eval_on_selector_all(self, selector, script):
        return [
            {"src": "https://example-van.test/img/build-1.jpg", "alt": "Sprinter build", "width": 1600, "height": 900, "inGallery": True},
            {"src": "", "alt": "empty"},
        ]

    def close(self):
        pass


def _patch_playwright(monkeypatch, fake_page):
    class Browser:
        def new_page(self, user_agent=None):
            return fake_page

        def close(self):
            pass

    class Chromium:
        def launch(self, headless=True):
            return Browser()

    class Playwright:
        chromium = Chromium()

        def stop(self):
            pass

    class Starter:
        def start(self):
            return Playwright()

    monkeypatch.setattr(page_loader, "sync_playwright", lambda: Starter())


def test_playwright_loader_waits_for_network_idle(monkeypatch):
    fake_page = FakePage(response=FakeResponse(200))
    _patch_playwright(monkeypatch, fake_page)

    with page_loader.PlaywrightPageLoader() as loader:
        page = loader.load("https://example-van.test/", 30000)

    assert fake_page.goto_calls == [("https://example-van.test/", "networkidle", 30000)]
    assert page.text("h1") == "Sprinter Crafters"
    images = page.images()
    assert len(images) == 1
    assert images[0].width == 1600 and images[0].in_gallery is True


@pytest.mark.parametrize(
    "fake_page",
    [
        FakePage(response=FakeResponse(503)),
        FakePage(response=None),
        FakePage(error=page_loader.PlaywrightTimeoutError("Timeout 30000ms exceeded")),
    ],
)
def test_playwright_loader_navigation_errors(monkeypatch, fake_page):
    _patch_playwright(monkeypatch, fake_page)

    with pytest.raises(NavigationError):
        page_loader.PlaywrightPageLoader().load("https://example-van.test/", 30000)
