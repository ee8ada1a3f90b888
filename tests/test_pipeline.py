import pytest

from builder_pipeline.core import csp
from builder_pipeline.core.config import Settings
from builder_pipeline.core.geocoder import GeocodingResolver
from builder_pipeline.core.pipeline import AttemptProgress, BuilderPipeline, ExtractionError
from builder_pipeline.etl.extract import ContactFields
from builder_pipeline.models import BuilderRecord, Target

SAN_DIEGO_HOME = """
<html>
  <head><title>Example Vans | Custom Camper Vans</title></head>
  <body>
    <header><img class="logo" src="/logo.png" alt="Example Vans logo"></header>
    <h1>Adventure-ready camper vans</h1>
    <p>We design custom Sprinter conversions with solar and a full kitchen for life on the road.</p>
    <footer>
      <a href="tel:+16198121903">(619) 812-1903</a>
      <a href="mailto:contact@example-van.test">contact@example-van.test</a>
      <address>9393 Trade Pl, San Diego, CA 92121</address>
    </footer>
  </body>
</html>
"""

STATE_ONLY_HOME = """
<html>
  <head><title>Desert Vans</title></head>
  <body>
    <h1>Desert Vans</h1>
    <p>Handcrafted camper vans for off-grid travel across the southwest.</p>
  </body>
</html>
"""

PHOENIX_HOME = """
<html>
  <body>
    <h1>Sunrise Camper Co</h1>
    <p>Built in Phoenix since 2015. Call <a href="tel:4808142211">(480) 814-2211</a></p>
  </body>
</html>
"""

TEMPE_CONTACT = """
<html>
  <body>
    <address>2150 W Broadway Rd, Tempe, AZ 85282</address>
    <a href="mailto:hello@sunrise-camper.test">Email us</a>
  </body>
</html>
"""


class RecordingGeocoder:
    def __init__(self, responses=None):
        self.responses = responses or {}
        self.queries = []

    def __call__(self, query, api_key):
        self.queries.append(query)
        return self.responses.get(query)


def _pipeline(loader, *, geocode_fn=None, api_key="key", store=None, max_photos=8):
    resolver = GeocodingResolver(api_key, geocode_fn=geocode_fn or RecordingGeocoder())
    engine = csp.CSPComplianceEngine(store or csp.MemoryPolicyStore(["https:"]))
    return BuilderPipeline(loader, resolver, engine, page_timeout_ms=30000, contact_timeout_ms=15000, max_photos=max_photos)


def test_complete_main_page_needs_no_contact_probe(make_loader):
    loader = make_loader({"https://example-van.test/": SAN_DIEGO_HOME})
    service = RecordingGeocoder(
        {
            "9393 Trade Pl, San Diego, CA": {
                "geometry": {"location": {"lat": 32.8851, "lng": -117.1581}, "location_type": "ROOFTOP"}
            }
        }
    )
    pipeline = _pipeline(loader, geocode_fn=service)

    record = pipeline.run(Target(state="CA", url="https://example-van.test/"))

    assert record.name == "Example Vans"
    assert record.phone == "(619) 812-1903"
    assert record.email == "contact@example-van.test"
    assert record.address == "9393 Trade Pl"
    assert record.city == "San Diego"
    assert record.zip == "92121"
    assert (record.lat, record.lng) == (32.8851, -117.1581)
    assert record.geocode.accuracy == "high"
    assert record.van_types == ["Mercedes Sprinter"]
    assert "Solar" in record.amenities and "Kitchen" in record.amenities
    assert record.photos == []
    assert loader.calls == [("https://example-van.test/", 30000)]
    assert service.queries == ["9393 Trade Pl, San Diego, CA"]


def test_state_only_record_uses_state_default(make_loader):
    loader = make_loader({"https://desert-vans.test/": STATE_ONLY_HOME})
    service = RecordingGeocoder()
    pipeline = _pipeline(loader, geocode_fn=service)

    record = pipeline.run(Target(state="AZ", url="https://desert-vans.test/"))

    assert record.name == "Desert Vans"
    assert record.city is None
    assert record.address is None
    assert record.geocode.accuracy == "default"
    assert (record.lat, record.lng) == (33.4484, -112.0740)
    assert service.queries == []
    assert [url for url, _ in loader.calls[1:]] == [
        "https://desert-vans.test/contact",
        "https://desert-vans.test/contact-us",
        "https://desert-vans.test/contact/",
        "https://desert-vans.test/contact-us/",
    ]
    assert all(timeout == 15000 for _, timeout in loader.calls[1:])


def test_contact_page_location_triggers_second_geocode(make_loader):
    loader = make_loader(
        {
            "https://sunrise-camper.test/": PHOENIX_HOME,
            "https://sunrise-camper.test/contact": TEMPE_CONTACT,
        }
    )
    service = RecordingGeocoder()
    pipeline = _pipeline(loader, geocode_fn=service)

    record = pipeline.run(Target(state="AZ", url="https://sunrise-camper.test/"))

    assert record.name == "Sunrise Camper"
    assert record.phone == "(480) 814-2211"
    assert record.email == "hello@sunrise-camper.test"
    assert record.address == "2150 W Broadway Rd"
    assert record.city == "Tempe"
    assert record.zip == "85282"
    assert service.queries == ["Phoenix, AZ", "2150 W Broadway Rd, Tempe, AZ"]
    assert (record.lat, record.lng) == (33.4255, -111.9400)
    assert record.geocode.accuracy == "city-level"


def test_merge_contact_fills_gaps_and_replaces_location():
    record = BuilderRecord(
        name="Sunrise Camper",
        website="https://sunrise-camper.test/",
        state="AZ",
        phone="(480) 814-2211",
        city="Phoenix",
    )
    fields = ContactFields(
        phone="(602) 814-9999",
        email="hello@sunrise-camper.test",
        address="2150 W Broadway Rd",
        city="Tempe",
        zip="85282",
    )

    BuilderPipeline._merge_contact(record, fields)

    assert record.phone == "(480) 814-2211"
    assert record.email == "hello@sunrise-camper.test"
    assert (record.address, record.city, record.zip) == ("2150 W Broadway Rd", "Tempe", "85282")


def test_gallery_page_fills_photos(make_loader):
    home = STATE_ONLY_HOME.replace("</body>", '<a href="/our-work">Our Work</a></body>')
    gallery = """
    <div class="gallery">
      <img src="https://cdn.test/sprinter-build-1.jpg" alt="Sprinter build" width="1200" height="800">
      <img src="https://cdn.test/sprinter-build-2.jpg" alt="Sprinter interior" width="1200" height="800">
    </div>
    """
    loader = make_loader({"https://desert-vans.test/": home, "https://desert-vans.test/our-work": gallery})

    record = _pipeline(loader).run(Target(state="AZ", url="https://desert-vans.test/"))

    assert [photo.url for photo in record.photos] == [
        "https://cdn.test/sprinter-build-2.jpg",
        "https://cdn.test/sprinter-build-1.jpg",
    ]


def test_unreachable_gallery_is_ignored(make_loader):
    home = STATE_ONLY_HOME.replace("</body>", '<a href="/gallery">Gallery</a></body>')
    loader = make_loader({"https://desert-vans.test/": home})

    record = _pipeline(loader).run(Target(state="AZ", url="https://desert-vans.test/"))

    assert record.photos == []
    assert ("https://desert-vans.test/gallery", 15000) in loader.calls


def test_missing_name_raises_extraction_error(make_loader):
    loader = make_loader({"https://nameless.test/": "<html><body><h1>Home</h1></body></html>"})
    progress = AttemptProgress()

    with pytest.raises(ExtractionError):
        _pipeline(loader).run(Target(state="AZ", url="https://nameless.test/"), progress)

    assert progress.record is None


def test_progress_holds_record_before_csp_step(make_loader):
    class BrokenStore:
        def load(self):
            raise csp.CSPPolicyError("cannot read public/security-headers.js")

    loader = make_loader({"https://desert-vans.test/": STATE_ONLY_HOME})
    progress = AttemptProgress()

    record = _pipeline(loader, store=BrokenStore()).run(Target(state="AZ", url="https://desert-vans.test/"), progress)

    assert progress.record is record
    assert progress.csp.error == "cannot read public/security-headers.js"


def test_csp_violations_are_remediated(make_loader):
    home = SAN_DIEGO_HOME.replace(
        "</footer>",
        '</footer><div class="gallery"><img src="https://images.example-cdn.net/van-build.jpg" width="1200" height="800"></div>',
    )
    loader = make_loader({"https://example-van.test/": home})
    store = csp.MemoryPolicyStore(["'self'", "https://example-van.test"])
    progress = AttemptProgress()

    _pipeline(loader, store=store).run(Target(state="CA", url="https://example-van.test/"), progress)

    assert progress.csp.remediation.added == ["https://images.example-cdn.net"]
    assert "https://images.example-cdn.net" in store.entries


def test_from_settings_builds_collaborators(make_loader, tmp_path):
    settings = Settings(
        google_api_key="abc",
        database_url="",
        csp_policy_path=str(tmp_path / "headers.js"),
        csp_auto_remediate=False,
        page_timeout_ms=1000,
        contact_page_timeout_ms=500,
        max_photos=3,
    )
    loader = make_loader()

    pipeline = BuilderPipeline.from_settings(settings, loader=loader)

    assert pipeline.loader is loader
    assert pipeline.geocoder.api_key == "abc"
    assert pipeline.csp_engine.auto_remediate_enabled is False
    assert (pipeline.page_timeout_ms, pipeline.contact_timeout_ms, pipeline.max_photos) == (1000, 500, 3)
