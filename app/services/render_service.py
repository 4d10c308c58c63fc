"""HTML page rendering.

Pages are plain f-string documents; every value coming from the store or the
request is escaped with ``html.escape``. Functions take store rows (dicts) and
return the full HTML document as a string.
"""

from __future__ import annotations

import html as _html
import json
import math
import urllib.parse
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional

from app.config import Settings
from app.services.crawl.helpers import format_duration

Row = Dict[str, Any]


def _e(value: Any) -> str:
    return _html.escape("" if value is None else str(value), quote=True)


@dataclass(frozen=True)
class SiteContext:
    site_url: str
    site_name: str
    player_proxy_url: str = ""

    @classmethod
    def from_settings(cls, settings: Settings) -> "SiteContext":
        return cls(settings.site_url, settings.site_name, settings.player_proxy_url)

    @property
    def default_poster(self) -> str:
        return f"{self.site_url}/static/default-poster.svg"

    @property
    def default_cosplay(self) -> str:
        return f"{self.site_url}/static/default-cosplay.svg"

    def absolute(self, path_or_url: Optional[str], fallback: str) -> str:
        if not path_or_url:
            return fallback
        if path_or_url.startswith("http"):
            return path_or_url
        return f"{self.site_url}/{path_or_url.lstrip('/')}"

    def video_thumb(self, video: Row) -> str:
        return self.absolute(video.get("thumbnail"), self.default_poster)

    def cosplay_cover(self, cosplay: Row) -> str:
        gallery = cosplay.get("gallery") or []
        return gallery[0] if gallery else self.default_cosplay

    def player_url(self, embed_url: Optional[str]) -> str:
        """Embed URL, routed through PLAYER_PROXY_URL when one is configured."""
        if not embed_url:
            return ""
        src = "https:" + embed_url if embed_url.startswith("//") else embed_url
        if self.player_proxy_url:
            return f"{self.player_proxy_url}?url={urllib.parse.quote(src, safe='')}"
        return src


def total_pages(total: int, per_page: int) -> int:
    return max(1, math.ceil(total / per_page)) if per_page else 1


def page_label(page: int) -> str:
    return f" - Page {page}" if page > 1 else ""


def layout(
    site: SiteContext,
    *,
    title: str,
    body: str,
    description: str = "",
    canonical: str = "",
    image: str = "",
    robots: str = "index, follow",
    og_type: str = "website",
    extra_head: str = "",
) -> str:
    canonical = canonical or site.site_url
    image = image or site.default_poster
    return f"""<!doctype html>
<html lang="en">
<head>
  <meta charset="utf-8" />
  <meta name="viewport" content="width=device-width, initial-scale=1" />
  <title>{_e(title)}</title>
  <meta name="description" content="{_e(description)}" />
  <meta name="robots" content="{_e(robots)}" />
  <link rel="canonical" href="{_e(canonical)}" />
  <link rel="alternate" type="application/rss+xml" title="{_e(site.site_name)}" href="{_e(site.site_url)}/rss" />
  <meta property="og:site_name" content="{_e(site.site_name)}" />
  <meta property="og:type" content="{_e(og_type)}" />
  <meta property="og:title" content="{_e(title)}" />
  <meta property="og:description" content="{_e(description)}" />
  <meta property="og:url" content="{_e(canonical)}" />
  <meta property="og:image" content="{_e(image)}" />
  <meta name="twitter:card" content="summary_large_image" />
  <meta name="twitter:image" content="{_e(image)}" />
  {extra_head}
</head>
<body>
  <header>
    <a class="logo" href="/">{_e(site.site_name)}</a>
    <nav><a href="/">Videos</a> <a href="/cosplay">Cosplay</a></nav>
    <form action="/search" method="get"><input type="search" name="q" placeholder="Search" /></form>
  </header>
  <main>
{body}
  </main>
  <footer><a href="/rss">RSS</a> <a href="/sitemap.xml">Sitemap</a></footer>
</body>
</html>
"""


# --- Fragments ---

def video_card(site: SiteContext, video: Row) -> str:
    return (
        f'<article class="card video"><a href="/video/{_e(urllib.parse.quote(video.get("slug") or ""))}">'
        f'<img src="{_e(site.video_thumb(video))}" alt="{_e(video.get("title"))}" loading="lazy" />'
        f'<span class="duration">{format_duration(video.get("duration_sec") or 0)}</span>'
        f'<h3>{_e(video.get("title"))}</h3></a></article>'
    )


def cosplay_card(site: SiteContext, cosplay: Row) -> str:
    count = len(cosplay.get("gallery") or [])
    return (
        f'<article class="card cosplay"><a href="/cosplay/{_e(urllib.parse.quote(cosplay.get("slug") or ""))}">'
        f'<img src="{_e(site.cosplay_cover(cosplay))}" alt="{_e(cosplay.get("title"))}" loading="lazy" />'
        f'<span class="count">{count} photos</span>'
        f'<h3>{_e(cosplay.get("title"))}</h3></a></article>'
    )


def _grid(cards: Iterable[str], empty: str = "Nothing here yet.") -> str:
    items = list(cards)
    if not items:
        return f'<p class="empty">{_e(empty)}</p>'
    return '<div class="grid">' + "".join(items) + "</div>"


def pagination(base_path: str, page: int, pages: int) -> str:
    if pages <= 1:
        return ""
    sep = "&" if "?" in base_path else "?"
    links = []
    if page > 1:
        links.append(f'<a rel="prev" href="{_e(base_path)}{sep}page={page - 1}">&laquo; Prev</a>')
    links.append(f"<span>Page {page} of {pages}</span>")
    if page < pages:
        links.append(f'<a rel="next" href="{_e(base_path)}{sep}page={page + 1}">Next &raquo;</a>')
    return '<nav class="pagination">' + " ".join(links) + "</nav>"


def _chips(kind: str, values: Iterable[str]) -> str:
    out = []
    for v in values or []:
        slug = urllib.parse.quote(v.strip().lower().replace(" ", "-"))
        out.append(f'<a class="chip" href="/{kind}/{_e(slug)}">{_e(v)}</a>')
    return " ".join(out)


# --- Pages ---

def render_home(site: SiteContext, *, videos: List[Row], cosplays: List[Row], page: int, pages: int, total: int) -> str:
    body = (
        "<section><h2>Latest cosplay</h2>"
        + _grid(cosplay_card(site, c) for c in cosplays)
        + f'</section><section><h1>Latest videos</h1><p class="total">{total} videos</p>'
        + _grid(video_card(site, v) for v in videos)
        + pagination("/", page, pages)
        + "</section>"
    )
    return layout(
        site,
        title=f"Latest Videos{page_label(page)} | {site.site_name}",
        description=f"Latest videos and cosplay galleries on {site.site_name}.{page_label(page)}",
        canonical=f"{site.site_url}/" + (f"?page={page}" if page > 1 else ""),
        image=site.default_poster,
        body=body,
    )


def render_video(site: SiteContext, *, video: Row, related: List[Row]) -> str:
    url = f"{site.site_url}/video/{urllib.parse.quote(video['slug'])}"
    thumb = site.video_thumb(video)
    duration_sec = int(video.get("duration_sec") or 0)
    categories = video.get("categories") or []
    description = f"{video['title']} ({format_duration(duration_sec)}). Watch it on {site.site_name}."
    schema = {
        "@context": "https://schema.org",
        "@type": "VideoObject",
        "name": video["title"],
        "description": video.get("description") or description,
        "thumbnailUrl": [thumb],
        "uploadDate": video.get("created_at"),
        "duration": video.get("duration") or "PT0S",
        "embedUrl": site.player_url(video.get("embed_url")),
        "keywords": ", ".join(video.get("tags") or []),
        "publisher": {"@type": "Organization", "name": site.site_name},
    }
    head = (
        f'<meta property="article:section" content="{_e(categories[0] if categories else "Latest")}" />'
        + "".join(f'<meta property="article:tag" content="{_e(t)}" />' for t in video.get("tags") or [])
        + '<script type="application/ld+json">'
        + json.dumps(schema, ensure_ascii=False).replace("</", "<\\/")
        + "</script>"
    )
    player = site.player_url(video.get("embed_url"))
    body = (
        f"<article class=\"video-detail\"><h1>{_e(video['title'])}</h1>"
        + (f'<div class="player"><iframe src="{_e(player)}" allowfullscreen></iframe></div>' if player else "")
        + f'<p class="meta">{format_duration(duration_sec)} &middot; {int(video.get("views") or 0)} views</p>'
        + f"<p>{_e(video.get('description'))}</p>"
        + f'<p class="categories">{_chips("category", categories)}</p>'
        + f'<p class="tags">{_chips("tag", video.get("tags") or [])}</p>'
        + "</article><section><h2>Related</h2>"
        + _grid(video_card(site, v) for v in related)
        + "</section>"
    )
    return layout(
        site,
        title=f"{video['title']} | {site.site_name}",
        description=description,
        canonical=url,
        image=thumb,
        og_type="article",
        extra_head=head,
        body=body,
    )


def render_cosplay(site: SiteContext, *, cosplay: Row, related: List[Row]) -> str:
    url = f"{site.site_url}/cosplay/{urllib.parse.quote(cosplay['slug'])}"
    gallery = cosplay.get("gallery") or []
    description = (
        f"Cosplay photo set of {cosplay.get('character') or 'unknown character'} "
        f"by {cosplay.get('cosplayer') or 'unknown cosplayer'}. {len(gallery)} HD photos."
    )
    downloads = cosplay.get("downloads") or {}
    dl_links = "".join(
        f'<a class="download" href="{_e(link)}" rel="nofollow">{_e(provider.title())}</a>'
        for provider, link in downloads.items()
        if link
    )
    facts = "".join(
        f"<li><strong>{label}:</strong> {_e(value)}</li>"
        for label, value in (
            ("Cosplayer", cosplay.get("cosplayer")),
            ("Character", cosplay.get("character")),
            ("Appear In", cosplay.get("game_anime")),
            ("Unzip Password", cosplay.get("password_zip")),
        )
        if value
    )
    embed = cosplay.get("video_embed")
    body = (
        f"<article class=\"cosplay-detail\"><h1>{_e(cosplay['title'])}</h1>"
        + f"<ul class=\"facts\">{facts}</ul>"
        + f"<p>{_e(cosplay.get('description'))}</p>"
        + (f'<div class="player"><iframe src="{_e(embed)}" allowfullscreen></iframe></div>' if embed else "")
        + '<div class="gallery">'
        + "".join(f'<img src="{_e(img)}" alt="{_e(cosplay["title"])} {i}" loading="lazy" />' for i, img in enumerate(gallery, 1))
        + "</div>"
        + (f'<div class="downloads">{dl_links}</div>' if dl_links else "")
        + f'<p class="categories">{_chips("category", cosplay.get("categories") or [])}</p>'
        + f'<p class="tags">{_chips("tag", cosplay.get("tags") or [])}</p>'
        + "</article><section><h2>Related</h2>"
        + _grid(cosplay_card(site, c) for c in related)
        + "</section>"
    )
    return layout(
        site,
        title=f"{cosplay['title']} | {site.site_name}",
        description=description,
        canonical=url,
        image=site.cosplay_cover(cosplay),
        og_type="article",
        body=body,
    )


def render_cosplay_list(site: SiteContext, *, cosplays: List[Row], page: int, pages: int, total: int) -> str:
    body = (
        f'<h1>Latest cosplay</h1><p class="total">{total} galleries</p>'
        + _grid(cosplay_card(site, c) for c in cosplays)
        + pagination("/cosplay", page, pages)
    )
    return layout(
        site,
        title=f"Latest Cosplay{page_label(page)} | {site.site_name}",
        description=f"Newest cosplay photo sets in high resolution.{page_label(page)}",
        canonical=f"{site.site_url}/cosplay",
        image=site.default_cosplay,
        body=body,
    )


def render_search(site: SiteContext, *, q: str, videos: List[Row], cosplays: List[Row]) -> str:
    body = (
        f"<h1>Search: {_e(q)}</h1>"
        + "<section><h2>Videos</h2>"
        + _grid((video_card(site, v) for v in videos), empty="No videos found.")
        + "</section><section><h2>Cosplay</h2>"
        + _grid((cosplay_card(site, c) for c in cosplays), empty="No cosplay found.")
        + "</section>"
    )
    return layout(
        site,
        title=f"Search: {q} | {site.site_name}",
        description=f"Search results for {q}",
        canonical=f"{site.site_url}/search?q={urllib.parse.quote(q)}",
        robots="noindex, follow",
        body=body,
    )


def render_taxonomy(
    site: SiteContext,
    *,
    kind: str,
    slug: str,
    display: str,
    videos: List[Row],
    cosplays: List[Row],
    page: int,
    pages: int,
    total: int,
) -> str:
    """Tag or category page (``kind`` is "tag" or "category")."""
    path = f"/{kind}/{urllib.parse.quote(slug)}"
    description = (
        f"All {display} videos and cosplay galleries. Updated daily on {site.site_name}."
    )
    extra_head = ""
    if kind == "category":
        extra_head = (
            f'<link rel="alternate" type="application/rss+xml" title="{_e(display)}" '
            f'href="{_e(site.site_url)}/rss/category/{_e(urllib.parse.quote(slug))}" />'
        )
    body = (
        f"<h1>{_e(display)}</h1><p class=\"total\">{total} videos</p>"
        + _grid(video_card(site, v) for v in videos)
        + pagination(path, page, pages)
        + ("<section><h2>Cosplay</h2>" + _grid(cosplay_card(site, c) for c in cosplays) + "</section>" if cosplays else "")
    )
    return layout(
        site,
        title=f"{display}{page_label(page)} | {site.site_name}",
        description=description + page_label(page),
        canonical=f"{site.site_url}{path}",
        extra_head=extra_head,
        body=body,
    )


def render_not_found(site: SiteContext, *, videos: Optional[List[Row]] = None, title: str = "Page Not Found") -> str:
    body = "<h1>404</h1><p>The page you are looking for does not exist.</p>"
    if videos:
        body += "<section><h2>Try these</h2>" + _grid(video_card(site, v) for v in videos) + "</section>"
    return layout(site, title=f"{title} | {site.site_name}", robots="noindex, follow", body=body)


def render_error(site: SiteContext) -> str:
    return layout(
        site,
        title=f"Server Error | {site.site_name}",
        robots="noindex, nofollow",
        body="<h1>Something went wrong</h1><p>Please try again later.</p>",
    )


def render_login(site: SiteContext, *, error: Optional[str] = None) -> str:
    err = f'<p class="error">{_e(error)}</p>' if error else ""
    body = (
        f"<h1>Admin login</h1>{err}"
        '<form method="post" action="/admin/login">'
        '<input type="password" name="password" placeholder="Password" autofocus />'
        '<button type="submit">Login</button></form>'
    )
    return layout(site, title=f"Login | {site.site_name}", robots="noindex, nofollow", body=body)


def render_admin(site: SiteContext) -> str:
    body = (
        "<h1>Scraper</h1>"
        '<form method="post" action="/api/scrape"><h2>Video</h2>'
        '<input type="url" name="url" placeholder="Video page URL" required />'
        '<button type="submit">Scrape</button></form>'
        '<form method="post" action="/api/scrape-cosplay"><h2>Cosplay</h2>'
        '<input type="url" name="url" placeholder="Gallery page URL" required />'
        '<button type="submit">Scrape</button></form>'
        '<p><a href="/admin/logout">Logout</a></p>'
    )
    return layout(site, title=f"Admin | {site.site_name}", robots="noindex, nofollow", body=body)
