import pytest

from builder_pipeline.core.page_loader import ImageCandidate, PageHandle
from builder_pipeline.etl import photos
from builder_pipeline.models import PhotoAsset


def test_score_image_rewards_keywords_and_gallery():
    candidate = ImageCandidate(src="https://cdn.test/a.jpg", alt="Van interior", width=800, height=600, in_gallery=True)
    assert photos.score_image(candidate) == 2 * photos.KEYWORD_BONUS + photos.GALLERY_BONUS


def test_score_image_keeps_large_unrelated_images():
    assert photos.score_image(ImageCandidate(src="https://cdn.test/a.jpg", width=1200, height=800)) == 0


@pytest.mark.parametrize(
    "candidate",
    [
        ImageCandidate(src="/relative/van.jpg", width=800, height=600),
        ImageCandidate(src="data:image/png;base64,AAAA", width=800, height=600),
        ImageCandidate(src="https://cdn.test/van.svg", width=800, height=600),
        ImageCandidate(src="https://cdn.test/logo.png", width=800, height=600),
        ImageCandidate(src="https://cdn.test/van-thumbnail.jpg", width=800, height=600),
        ImageCandidate(src="https://cdn.test/van.jpg", css_class="team-photo", width=800, height=600),
        ImageCandidate(src="https://cdn.test/van.jpg", width=200, height=150),
        ImageCandidate(src="https://cdn.test/van.jpg", width=2000, height=300),
        ImageCandidate(src="https://cdn.test/a.jpg"),
    ],
)
def test_score_image_disqualifies(candidate):
    assert photos.score_image(candidate) is None


def test_score_image_negative_keywords_need_word_boundaries():
    candidate = ImageCandidate(src="https://cdn.test/navy-van.jpg", width=800, height=600)
    assert photos.score_image(candidate) == photos.KEYWORD_BONUS


def test_score_image_unknown_size_penalty():
    candidate = ImageCandidate(src="https://cdn.test/sprinter-build.jpg")
    assert photos.score_image(candidate) == 2 * photos.KEYWORD_BONUS - photos.UNKNOWN_SIZE_PENALTY


def test_rank_images_dedupes_and_orders():
    ranked = photos.rank_images(
        [
            ImageCandidate(src="https://cdn.test/a.jpg", width=1200, height=800),
            ImageCandidate(src="https://cdn.test/b.jpg", alt="Van", width=800, height=600),
            ImageCandidate(src="https://cdn.test/b.jpg#zoom", alt="Van kitchen", width=800, height=600),
            ImageCandidate(src="https://cdn.test/c.jpg", width=1600, height=1000),
        ]
    )

    assert [item.candidate.src for item in ranked] == [
        "https://cdn.test/b.jpg#zoom",
        "https://cdn.test/c.jpg",
        "https://cdn.test/a.jpg",
    ]


def test_select_photos_limits_and_builds_assets():
    page = PageHandle(
        "https://vanworks.test/",
        """
        <div class="gallery">
          <img src="/img/one.jpg" alt="Sprinter build" title="Desert build" width="1200" height="800">
          <img src="/img/two.jpg" alt="Van kitchen" width="1200" height="800">
        </div>
        <img src="/img/logo.png" alt="Vanworks logo" width="600" height="300">
        """,
    )

    selected = photos.select_photos(page, limit=1)

    assert selected == [
        PhotoAsset(url="https://vanworks.test/img/one.jpg", alt="Sprinter build", caption="Desert build")
    ]


def test_merge_photos_respects_limit_and_duplicates():
    existing = [PhotoAsset(url="https://cdn.test/a.jpg")]
    extra = [
        PhotoAsset(url="https://cdn.test/a.jpg"),
        PhotoAsset(url="https://cdn.test/b.jpg"),
        PhotoAsset(url="https://cdn.test/c.jpg"),
    ]

    merged = photos.merge_photos(existing, extra, limit=2)

    assert [photo.url for photo in merged] == ["https://cdn.test/a.jpg", "https://cdn.test/b.jpg"]


def test_find_gallery_url_matches_same_site_links():
    page = PageHandle(
        "https://www.vanworks.test/",
        """
        <a href="/about">About</a>
        <a href="https://instagram.com/gallery">Instagram</a>
        <a href="https://vanworks.test/our-work/#top">See our work</a>
        """,
    )
    assert photos.find_gallery_url(page) == "https://vanworks.test/our-work/"


def test_find_gallery_url_matches_link_text():
    page = PageHandle("https://vanworks.test/", '<a href="/p/2">Photos</a>')
    assert photos.find_gallery_url(page) == "https://vanworks.test/p/2"


def test_find_gallery_url_none_without_candidates():
    page = PageHandle("https://vanworks.test/gallery", '<a href="/gallery/">Gallery</a><a href="/contact">Contact</a>')
    assert photos.find_gallery_url(page) is None
