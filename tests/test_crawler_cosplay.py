from pathlib import Path

import pytest

from app.errors import BlockedError, MissingTitleError
from app.services.crawl.spiders.cosplay_spider import CosplayPageSpider


def read_fixture(name: str) -> str:
    p = Path(__file__).parent / "fixtures" / name
    return p.read_text(encoding="utf-8")


@pytest.fixture
def record():
    spider = CosplayPageSpider(cdn_base="https://cdn.example")
    return spider.parse_html(read_fixture("cosplay_page.html"), source_url="file://cosplay_page.html")


def test_cosplay_title_and_cjk_slug(record):
    assert record.title == 'Hana 花 - Raiden Shogun (Genshin Impact) "Eternity"!'
    assert record.slug == "hana-花-raiden-shogun-genshin-impact-eternity"


def test_cosplay_labelled_fields(record):
    assert record.cosplayer == "Hana"
    # first link only
    assert record.character == "Raiden Shogun"
    assert record.game_anime == "Genshin Impact"
    assert record.password_zip == "cosplay123"
    assert record.description == "Cosplay Raiden Shogun by Hana from Genshin Impact. Full set download."


def test_cosplay_downloads_first_match_per_provider(record):
    assert record.downloads == {
        "mediafire": "https://www.mediafire.com/file/one",
        "telegram": "https://t.me/somechannel",
        "gofile": "https://gofile.io/d/xyz",
    }


def test_cosplay_gallery_rewritten_in_order_without_duplicates(record):
    assert record.gallery == [
        "https://cdn.example/img.origin.example/2024/01/01.jpg",
        "https://cdn.example/img.origin.example/2024/01/02.jpg",
        "https://cdn.example/img.origin.example/2024/01/03.jpg",
    ]
    assert record.cover == record.gallery[0]


def test_cosplay_first_matching_iframe(record):
    assert record.video_embed == "https://cossora.example/v/777"


def test_cosplay_tags_and_categories_deduplicated(record):
    assert record.tags == ["Raiden", "Hana"]
    assert record.categories == ["Genshin Impact", "Cosplay"]


def test_cosplay_missing_title():
    with pytest.raises(MissingTitleError):
        CosplayPageSpider(cdn_base="https://cdn.example").parse_html("<html><body><h1 class='entry-title'>  </h1></body></html>")


def test_cosplay_challenge_page_blocks_before_extraction():
    with pytest.raises(BlockedError):
        CosplayPageSpider(cdn_base="https://cdn.example").parse_html(read_fixture("challenge_page.html"))


def test_cosplay_page_without_optional_sections():
    html = "<html><body><h1 class='entry-title'>Plain Set</h1></body></html>"
    rec = CosplayPageSpider(cdn_base="https://cdn.example").parse_html(html)
    assert rec.slug == "plain-set"
    assert rec.gallery == []
    assert rec.downloads == {}
    assert rec.video_embed == ""
    assert rec.cover == ""
