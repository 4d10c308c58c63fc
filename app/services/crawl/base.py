from __future__ import annotations

import hashlib
import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional

import httpx
from selectolax.parser import HTMLParser

from app.errors import BlockedError, FetchError

logger = logging.getLogger(__name__)

BROWSER_HEADERS: Dict[str, str] = {
    "User-Agent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64) Chrome/120.0.0.0 Safari/537.36",
    "Accept-Language": "en-US,en;q=0.9",
}

CHALLENGE_TITLE_MARKER = "Just a moment..."

DOWNLOAD_PROVIDERS = ("mediafire", "telegram", "sorafolder", "gofile")


def sha256_hexdigest(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def now_iso() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


@dataclass
class VideoRecord:
    title: str
    slug: str
    description: str = ""
    embed_url: str = ""
    thumbnail: str = ""
    duration: str = "PT0S"
    duration_sec: int = 0
    tags: List[str] = field(default_factory=list)
    categories: List[str] = field(default_factory=list)
    views: int = 0
    created_at: str = field(default_factory=now_iso)
    source_url: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class CosplayRecord:
    title: str
    slug: str
    cosplayer: str = ""
    character: str = ""
    game_anime: str = ""
    gallery: List[str] = field(default_factory=list)
    # provider name -> url, only for providers found on the page
    downloads: Dict[str, str] = field(default_factory=dict)
    description: str = ""
    password_zip: str = ""
    video_embed: str = ""
    tags: List[str] = field(default_factory=list)
    categories: List[str] = field(default_factory=list)
    views: int = 0
    created_at: str = field(default_factory=now_iso)
    source_url: Optional[str] = None

    @property
    def cover(self) -> str:
        return self.gallery[0] if self.gallery else ""

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def fetch_html(
    url: str,
    *,
    timeout: float = 20.0,
    headers: Optional[Mapping[str, str]] = None,
    client: Optional[httpx.Client] = None,
) -> str:
    """GET ``url`` with browser-like headers and return the body.

    Raises FetchError on transport errors, timeouts and non-2xx statuses. There
    is no retry; the caller decides what to do with the failure.
    """
    hdrs = {**BROWSER_HEADERS, **(headers or {})}
    try:
        if client is not None:
            resp = client.get(url, headers=hdrs, timeout=timeout)
        else:
            with httpx.Client(timeout=timeout, headers=hdrs, follow_redirects=True) as c:
                resp = c.get(url)
    except httpx.TimeoutException as exc:
        raise FetchError(f"Timed out after {timeout:g}s fetching {url}") from exc
    except httpx.HTTPError as exc:
        raise FetchError(f"Request to {url} failed: {exc}") from exc
    if not resp.is_success:
        raise FetchError(f"{url} returned HTTP {resp.status_code}")
    return resp.text


def ensure_not_challenge(doc: HTMLParser, source_url: str = "") -> None:
    title_node = doc.css_first("title")
    title = title_node.text(strip=True) if title_node else ""
    if CHALLENGE_TITLE_MARKER in title:
        raise BlockedError(source_url)


class Spider:
    """Minimal spider contract.

    Subclasses implement parse_html() to turn markup into a normalized record;
    fetch_from_url() is the network wrapper around it.
    """

    name: str = "base"
    timeout: float = 20.0
    # Extra request headers; subclasses assign their own mapping
    headers: Mapping[str, str] = MappingProxyType({})

    def parse_html(self, html: str, *, source_url: Optional[str] = None):
        raise NotImplementedError

    def fetch_from_url(self, url: str, *, client: Optional[httpx.Client] = None):
        html = fetch_html(url, timeout=self.timeout, headers=self.headers, client=client)
        logger.debug("%s fetched %d bytes from %s", self.name, len(html), url)
        return self.parse_html(html, source_url=url)
