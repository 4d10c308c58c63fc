from __future__ import annotations

from types import MappingProxyType
from typing import List, Optional

from selectolax.parser import HTMLParser

from app.errors import MissingTitleError

from ..base import Spider, VideoRecord, ensure_not_challenge
from ..helpers import iso_duration_to_seconds, video_slug


def _meta_content(doc: HTMLParser, itemprop: str) -> str:
    node = doc.css_first(f'meta[itemprop="{itemprop}"]')
    if node is None:
        return ""
    return (node.attributes.get("content") or "").strip()


def _anchor_texts(doc: HTMLParser, href_part: str) -> List[str]:
    # Document order, duplicates kept
    texts = []
    for a in doc.css(f'a[href*="{href_part}"]'):
        text = a.text(strip=True)
        if text:
            texts.append(text)
    return texts


class VideoPageSpider(Spider):
    """Extract a video record from a page annotated with schema.org ``itemprop`` metas.

    Title: ``meta[itemprop=name]`` then ``<title>``. Tags/categories: every
    anchor linking to ``/tag/`` or ``/category/``.
    """

    name = "video_page"
    timeout = 20.0
    headers = MappingProxyType({
        "Sec-Ch-Ua": '"Not_A Brand";v="8", "Chromium";v="120", "Google Chrome";v="120"',
        "Sec-Ch-Ua-Mobile": "?0",
        "Sec-Ch-Ua-Platform": '"Windows"',
    })

    def parse_html(self, html: str, *, source_url: Optional[str] = None) -> VideoRecord:
        doc = HTMLParser(html or "")
        ensure_not_challenge(doc, source_url or "")

        title = _meta_content(doc, "name")
        if not title:
            title_node = doc.css_first("title")
            title = title_node.text(strip=True) if title_node else ""
        if not title:
            raise MissingTitleError("Missing title")

        raw_duration = _meta_content(doc, "duration") or "PT0S"
        return VideoRecord(
            title=title,
            slug=video_slug(title),
            description=_meta_content(doc, "description"),
            embed_url=_meta_content(doc, "embedURL"),
            thumbnail=_meta_content(doc, "thumbnailUrl"),
            duration=raw_duration,
            duration_sec=iso_duration_to_seconds(raw_duration),
            tags=_anchor_texts(doc, "/tag/"),
            categories=_anchor_texts(doc, "/category/"),
            source_url=source_url,
        )
