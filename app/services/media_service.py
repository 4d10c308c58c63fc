"""Mirror remote thumbnails into the local media directory.

Files land in ``MEDIA_ROOT/thumbnails/<slug><ext>`` and are published under
``MEDIA_PUBLIC_URL`` (the app serves ``MEDIA_ROOT`` at ``/uploads``).
"""

from __future__ import annotations

import logging
import os
import posixpath
import urllib.parse
from typing import Optional, Tuple

import httpx

from app.config import get_settings
from app.errors import MediaError
from app.services.crawl.base import BROWSER_HEADERS

logger = logging.getLogger(__name__)

_CONTENT_TYPE_EXT = {
    "image/jpeg": ".jpg",
    "image/jpg": ".jpg",
    "image/png": ".png",
    "image/webp": ".webp",
    "image/gif": ".gif",
    "image/avif": ".avif",
}
_KNOWN_EXT = {".jpg", ".jpeg", ".png", ".webp", ".gif", ".avif"}

MAX_THUMBNAIL_BYTES = 10 * 1024 * 1024


def _guess_extension(url: str, content_type: Optional[str]) -> str:
    ctype = (content_type or "").split(";")[0].strip().lower()
    if ctype in _CONTENT_TYPE_EXT:
        return _CONTENT_TYPE_EXT[ctype]
    ext = posixpath.splitext(urllib.parse.urlparse(url).path)[1].lower()
    return ext if ext in _KNOWN_EXT else ".jpg"


def relocate_image(
    url: Optional[str],
    slug: str,
    *,
    media_root: Optional[str] = None,
    public_url: Optional[str] = None,
    timeout: float = 20.0,
    max_bytes: int = MAX_THUMBNAIL_BYTES,
    client: Optional[httpx.Client] = None,
) -> str:
    """Copy ``url`` to durable storage and return its public URL.

    An absent ``url`` returns "" so a page without a thumbnail still saves.
    Download or write failures, and bodies over ``max_bytes``, raise MediaError.
    """
    if not url or not url.strip():
        return ""
    url = url.strip()
    if url.startswith("//"):
        url = "https:" + url
    settings = get_settings()
    media_root = media_root or settings.media_root
    public_url = (public_url or settings.media_public_url).rstrip("/")

    try:
        if client is not None:
            body, content_type = _download(client, url, timeout, max_bytes)
        else:
            with httpx.Client(timeout=timeout, headers=BROWSER_HEADERS, follow_redirects=True) as c:
                body, content_type = _download(c, url, timeout, max_bytes)
    except httpx.HTTPError as exc:
        raise MediaError(f"Thumbnail download failed for {url}: {exc}") from exc

    filename = slug + _guess_extension(url, content_type)
    out_dir = os.path.join(media_root, "thumbnails")
    try:
        os.makedirs(out_dir, exist_ok=True)
        with open(os.path.join(out_dir, filename), "wb") as f:
            f.write(body)
    except OSError as exc:
        raise MediaError(f"Could not store thumbnail {filename}: {exc}") from exc

    logger.info("Stored thumbnail %s (%d bytes)", filename, len(body))
    return f"{public_url}/thumbnails/{urllib.parse.quote(filename)}"


def _download(client: httpx.Client, url: str, timeout: float, max_bytes: int) -> Tuple[bytes, Optional[str]]:
    """Stream ``url`` into memory, aborting once it exceeds ``max_bytes``."""
    with client.stream("GET", url, headers=BROWSER_HEADERS, timeout=timeout) as resp:
        if not resp.is_success:
            raise MediaError(f"Thumbnail download failed for {url}: HTTP {resp.status_code}")
        declared = resp.headers.get("content-length", "")
        if declared.isdigit() and int(declared) > max_bytes:
            raise MediaError(f"Thumbnail at {url} is {declared} bytes, limit is {max_bytes}")
        body = bytearray()
        for chunk in resp.iter_bytes():
            body.extend(chunk)
            if len(body) > max_bytes:
                raise MediaError(f"Thumbnail at {url} exceeds {max_bytes} bytes")
        return bytes(body), resp.headers.get("content-type")
