"""RSS 2.0 feeds and XML sitemaps.

Builders are pure: they take store rows and a ``SiteContext`` and return the
XML document as a string.
"""

from __future__ import annotations

import html as _html
import urllib.parse
from datetime import datetime, timezone
from email.utils import format_datetime
from typing import Any, Dict, List, Optional

from app.services.render_service import SiteContext

Row = Dict[str, Any]

MAX_VIDEO_TAGS = 32
MAX_SITEMAP_DESCRIPTION = 2000


def _x(value: Any) -> str:
    return _html.escape("" if value is None else str(value), quote=True)


def _cdata(value: Any) -> str:
    text = "" if value is None else str(value)
    return "<![CDATA[" + text.replace("]]>", "]]]]><![CDATA[>") + "]]>"


def _parse_iso(value: Optional[str]) -> datetime:
    if not value:
        return datetime.now(timezone.utc)
    try:
        dt = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return datetime.now(timezone.utc)
    return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)


def _item_url(site: SiteContext, row: Row, kind: str) -> str:
    return f"{site.site_url}/{kind}/{urllib.parse.quote(row.get('slug') or '')}"


def _thumb(site: SiteContext, row: Row, kind: str) -> str:
    if kind == "video":
        return site.video_thumb(row)
    gallery = row.get("gallery") or []
    return gallery[0] if gallery else site.default_poster


def merge_newest_first(videos: List[Row], cosplays: List[Row]) -> List[Row]:
    """Tag rows with their kind and merge them newest first."""
    items = [{**v, "kind": "video"} for v in videos] + [{**c, "kind": "cosplay"} for c in cosplays]
    items.sort(key=lambda r: _parse_iso(r.get("created_at")), reverse=True)
    return items


def build_rss(site: SiteContext, videos: List[Row], cosplays: List[Row], *, now: Optional[datetime] = None) -> str:
    """Site-wide feed of videos and cosplay albums."""
    last_build = format_datetime(now or datetime.now(timezone.utc), usegmt=True)
    parts = [
        '<?xml version="1.0" encoding="UTF-8"?>',
        '<rss version="2.0" xmlns:atom="http://www.w3.org/2005/Atom" xmlns:media="http://search.yahoo.com/mrss/">',
        "<channel>",
        f"<title>{_x(site.site_name)} - Latest updates</title>",
        f"<link>{_x(site.site_url)}</link>",
        f"<description>Latest videos and cosplay galleries on {_x(site.site_name)}</description>",
        "<language>en</language>",
        f"<lastBuildDate>{last_build}</lastBuildDate>",
        f'<atom:link href="{_x(site.site_url)}/rss" rel="self" type="application/rss+xml" />',
    ]
    for item in merge_newest_first(videos, cosplays):
        kind = item["kind"]
        url = _item_url(site, item, kind)
        thumb = _thumb(site, item, kind)
        is_video = kind == "video"
        desc = (
            f'<img src="{_x(thumb)}" width="320" /><br/>'
            f"<p>{'Watch' if is_video else 'Cosplay photo set'} {_x(item.get('title'))}</p>"
            f"<p><strong>Type:</strong> {'Video' if is_video else 'Cosplay Album'}</p>"
        )
        parts.append(
            "<item>"
            f"<title>{_cdata(item.get('title'))}</title>"
            f"<link>{_x(url)}</link>"
            f'<guid isPermaLink="true">{_x(url)}</guid>'
            f"<description>{_cdata(desc)}</description>"
            f'<media:content url="{_x(thumb)}" medium="image">'
            f'<media:title type="plain">{_cdata(item.get("title"))}</media:title></media:content>'
            f"<pubDate>{format_datetime(_parse_iso(item.get('created_at')), usegmt=True)}</pubDate>"
            "</item>"
        )
    parts += ["</channel>", "</rss>"]
    return "\n".join(parts)


def build_category_rss(site: SiteContext, slug: str, videos: List[Row], cosplays: List[Row]) -> str:
    parts = [
        '<?xml version="1.0" encoding="UTF-8"?>',
        '<rss version="2.0" xmlns:atom="http://www.w3.org/2005/Atom">',
        "<channel>",
        f"<title>Category: {_x(slug)}</title>",
        f"<link>{_x(site.site_url)}</link>",
        f"<description>Feed for category {_x(slug)}</description>",
        "<language>en</language>",
        f'<atom:link href="{_x(site.site_url)}/rss/category/{_x(urllib.parse.quote(slug))}" '
        'rel="self" type="application/rss+xml" />',
    ]
    for item in merge_newest_first(videos, cosplays):
        kind = item["kind"]
        url = _item_url(site, item, kind)
        desc = (
            f'<img src="{_x(_thumb(site, item, kind))}" width="320" /><br/>'
            f"{_x(item.get('title'))} ({'Video' if kind == 'video' else 'Cosplay'})"
        )
        parts.append(
            "<item>"
            f"<title>{_cdata(item.get('title'))}</title>"
            f"<link>{_x(url)}</link>"
            f"<guid>{_x(url)}</guid>"
            f"<description>{_cdata(desc)}</description>"
            f"<pubDate>{format_datetime(_parse_iso(item.get('created_at')), usegmt=True)}</pubDate>"
            "</item>"
        )
    parts += ["</channel>", "</rss>"]
    return "\n".join(parts)


def build_video_sitemap(site: SiteContext, videos: List[Row]) -> str:
    """Google video sitemap."""
    parts = [
        '<?xml version="1.0" encoding="UTF-8"?>',
        '<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9" '
        'xmlns:video="http://www.google.com/schemas/sitemap-video/1.1">',
        f"<url><loc>{_x(site.site_url)}/</loc><priority>1.0</priority></url>",
    ]
    for vid in videos:
        tags = "".join(f"<video:tag>{_cdata(t)}</video:tag>" for t in (vid.get("tags") or [])[:MAX_VIDEO_TAGS])
        player = site.player_url(vid.get("embed_url"))
        parts.append(
            f"<url><loc>{_x(_item_url(site, vid, 'video'))}</loc><video:video>"
            f"<video:thumbnail_loc>{_x(site.video_thumb(vid))}</video:thumbnail_loc>"
            f"<video:title>{_cdata(vid.get('title'))}</video:title>"
            f"<video:description>{_cdata((vid.get('description') or '')[:MAX_SITEMAP_DESCRIPTION])}</video:description>"
            + (f'<video:player_loc allow_embed="yes">{_x(player)}</video:player_loc>' if player else "")
            + f"<video:duration>{int(vid.get('duration_sec') or 0)}</video:duration>"
            f"<video:publication_date>{_parse_iso(vid.get('created_at')).isoformat()}</video:publication_date>"
            f"{tags}</video:video></url>"
        )
    parts.append("</urlset>")
    return "\n".join(parts)


def _tag_slug(tag: str) -> str:
    return tag.lower().strip().replace(" ", "-")


def build_sitemap(site: SiteContext, videos: List[Row], cosplays: List[Row]) -> str:
    """Every detail page plus one entry per distinct tag."""
    parts = [
        '<?xml version="1.0" encoding="UTF-8"?>',
        '<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9" '
        'xmlns:image="http://www.google.com/schemas/sitemap-image/1.1">',
        f"<url><loc>{_x(site.site_url)}/</loc><changefreq>daily</changefreq><priority>1.0</priority></url>",
        f"<url><loc>{_x(site.site_url)}/cosplay</loc><changefreq>daily</changefreq><priority>0.9</priority></url>",
    ]
    tag_slugs: Dict[str, None] = {}
    for kind, rows in (("video", videos), ("cosplay", cosplays)):
        for row in rows:
            for t in row.get("tags") or []:
                slug = _tag_slug(t)
                if slug:
                    tag_slugs.setdefault(slug, None)
            image = site.video_thumb(row) if kind == "video" else site.cosplay_cover(row)
            parts.append(
                f"<url><loc>{_x(_item_url(site, row, kind))}</loc>"
                f"<lastmod>{_parse_iso(row.get('created_at')).date().isoformat()}</lastmod>"
                "<changefreq>weekly</changefreq><priority>0.8</priority>"
                f"<image:image><image:loc>{_x(image)}</image:loc>"
                f"<image:title>{_cdata(row.get('title'))}</image:title></image:image></url>"
            )
    for slug in tag_slugs:
        parts.append(
            f"<url><loc>{_x(site.site_url)}/tag/{_x(urllib.parse.quote(slug))}</loc>"
            "<changefreq>weekly</changefreq><priority>0.6</priority></url>"
        )
    parts.append("</urlset>")
    return "\n".join(parts)
