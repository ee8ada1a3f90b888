from builder_pipeline.etl import content


def test_description_prefers_meta(make_page):
    page = make_page(
        """
        <head><meta name="description" content="  Custom Sprinter   conversions built in Phoenix.  "></head>
        <body><p>We have been building adventure vans for over ten years in the desert.</p></body>
        """
    )
    assert content.extract_description(page) == "Custom Sprinter conversions built in Phoenix."


def test_description_skips_boilerplate_meta(make_page):
    page = make_page(
        """
        <head><meta name="description" content="This site uses cookies to improve your experience."></head>
        <body>
          <p>Short intro.</p>
          <p>Copyright 2024 Vanworks. All rights reserved. Custom vans since 2012.</p>
          <div class="about"><p>We design and build custom camper vans on Sprinter and Transit chassis.</p></div>
        </body>
        """
    )
    assert content.extract_description(page) == (
        "We design and build custom camper vans on Sprinter and Transit chassis."
    )


def test_description_requires_domain_keyword(make_page):
    page = make_page("<p>Our family business has proudly served the community for many years now.</p>")
    assert content.extract_description(page) is None


def test_vocabulary_scans(make_page):
    page = make_page(
        """
        <p>We build on Sprinter, Transit and ProMaster chassis. Popular upgrades include solar,
        lithium batteries, a Maxxair fan and a full kitchen. Financing and custom builds available.</p>
        """
    )

    assert content.extract_van_types(page) == ["Mercedes Sprinter", "Ford Transit", "Ram ProMaster"]
    assert content.extract_amenities(page) == ["Solar", "Battery", "Kitchen", "Ventilation"]
    assert content.extract_services(page) == ["Custom Builds", "Upgrades", "Financing"]


def test_transit_connect_is_its_own_type():
    assert content.scan_vocabulary("Compact Transit Connect campers", content.VAN_TYPES) == ["Ford Transit Connect"]


def test_van_types_display():
    assert content.van_types_display(["Mercedes Sprinter", "Ford Transit"]) == "Mercedes Sprinter, Ford Transit"
    assert content.van_types_display([]) is None


def test_extract_social_links_first_profile_per_platform(make_page):
    page = make_page(
        """
        <a href="https://www.facebook.com/sharer/sharer.php?u=x">Share</a>
        <a href="https://www.instagram.com/vanworks/">Instagram</a>
        <a href="https://instagram.com/someone_else">Other</a>
        <a href="https://www.facebook.com/vanworksaz/">Facebook</a>
        <a href="https://youtu.be/abc123">Video</a>
        <a href="https://example-van.test/about">About</a>
        """
    )

    assert content.extract_social_links(page) == {
        "instagram": "https://www.instagram.com/vanworks",
        "facebook": "https://www.facebook.com/vanworksaz",
        "youtube": "https://youtu.be/abc123",
    }


def test_normalize_social_url_requires_path():
    assert content.normalize_social_url("https://instagram.com/") is None
    assert content.normalize_social_url("http://Twitter.com/vanworks/?ref=site") == "https://twitter.com/vanworks"
