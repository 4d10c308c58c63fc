from __future__ import annotations

from typing import Dict, List, Optional

from selectolax.parser import HTMLParser

from app.config import get_settings
from app.errors import MissingTitleError

from ..base import DOWNLOAD_PROVIDERS, CosplayRecord, Spider, ensure_not_challenge
from ..helpers import cdn_rewrite, cosplay_slug, unique_in_order

EMBED_MARKERS = ("embed", "player", "cossora")

# label prefix -> record field read from the paragraph's first link
_LINK_LABELS = {
    "Cosplayer:": "cosplayer",
    "Character:": "character",
    "Appear In:": "game_anime",
}
_PASSWORD_LABEL = "Unzip Password:"


class CosplayPageSpider(Spider):
    """WordPress-style cosplay gallery pages (``h1.entry-title``, ``.gallery-item``).

    Selectors:
      - labelled metadata lives in ``blockquote p`` ("Cosplayer:", "Character:",
        "Appear In:", "Unzip Password:")
      - download buttons are ``.button.alert`` anchors
      - gallery images are the ``href`` of ``.gallery-item a``, served through the CDN

    Slugs keep CJK characters, see ``cosplay_slug``.
    """

    name = "cosplay_page"
    timeout = 30.0

    def __init__(self, *, cdn_base: Optional[str] = None) -> None:
        self.cdn_base = cdn_base or get_settings().gallery_cdn_url

    def parse_html(self, html: str, *, source_url: Optional[str] = None) -> CosplayRecord:
        doc = HTMLParser(html or "")
        ensure_not_challenge(doc, source_url or "")

        title_node = doc.css_first("h1.entry-title")
        title = title_node.text(strip=True) if title_node else ""
        if not title:
            raise MissingTitleError("Missing title")

        fields = self._labelled_fields(doc)
        cosplayer = fields.get("cosplayer", "")
        character = fields.get("character", "")
        game_anime = fields.get("game_anime", "")

        return CosplayRecord(
            title=title,
            slug=cosplay_slug(title),
            cosplayer=cosplayer,
            character=character,
            game_anime=game_anime,
            gallery=self._gallery(doc),
            downloads=self._downloads(doc),
            password_zip=fields.get("password_zip", ""),
            video_embed=self._video_embed(doc),
            tags=unique_in_order(self._texts(doc, '.entry-meta a[rel="tag"]')),
            categories=unique_in_order(self._texts(doc, ".entry-category a")),
            description=f"Cosplay {character} by {cosplayer} from {game_anime}. Full set download.",
            source_url=source_url,
        )

    # --- Internals ---
    @staticmethod
    def _labelled_fields(doc: HTMLParser) -> Dict[str, str]:
        out: Dict[str, str] = {}
        for p in doc.css("blockquote p"):
            text = p.text()
            for label, key in _LINK_LABELS.items():
                if label in text:
                    link = p.css_first("a")
                    out[key] = link.text(strip=True) if link else ""
            if _PASSWORD_LABEL in text:
                field = p.css_first("input")
                out["password_zip"] = ((field.attributes.get("value") if field else "") or "").strip()
        return out

    @staticmethod
    def _downloads(doc: HTMLParser) -> Dict[str, str]:
        downloads: Dict[str, str] = {}
        for a in doc.css(".button.alert"):
            href = (a.attributes.get("href") or "").strip()
            if not href:
                continue
            label = a.text().lower()
            provider = next((p for p in DOWNLOAD_PROVIDERS if p in label), None)
            if provider and provider not in downloads:
                downloads[provider] = href
        return downloads

    def _gallery(self, doc: HTMLParser) -> List[str]:
        gallery: List[str] = []
        for a in doc.css(".gallery-item a"):
            href = (a.attributes.get("href") or "").strip()
            if not href:
                continue
            url = cdn_rewrite(href, self.cdn_base)
            if url not in gallery:
                gallery.append(url)
        return gallery

    @staticmethod
    def _video_embed(doc: HTMLParser) -> str:
        for frame in doc.css("iframe"):
            src = frame.attributes.get("src") or ""
            if any(marker in src for marker in EMBED_MARKERS):
                return src
        return ""

    @staticmethod
    def _texts(doc: HTMLParser, selector: str) -> List[str]:
        return [t for t in (n.text(strip=True) for n in doc.css(selector)) if t]
