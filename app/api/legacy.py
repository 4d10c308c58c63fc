"""301 rewrites for URLs of the previous PHP/static site."""

from __future__ import annotations

import os
from typing import Mapping, Optional

from fastapi import Request
from fastapi.responses import RedirectResponse

from app.config import get_settings

_STATIC_REWRITES = {
    "/rss.php": "/rss",
    "/sitemap.php": "/sitemap.xml",
    "/rss-sitemap.php": "/sitemap-video.xml",
}


def _is_local_media(path: str, media_root: str) -> bool:
    """True when ``/uploads/<rel>`` names a file inside ``media_root``."""
    rel = path[len("/uploads/"):]
    if not media_root or not rel:
        return False
    root = os.path.realpath(media_root)
    full = os.path.realpath(os.path.join(root, rel))
    return full.startswith(root + os.sep) and os.path.isfile(full)


def legacy_target(
    path: str,
    query: Mapping[str, str],
    *,
    legacy_media_url: str = "",
    media_root: str = "",
) -> Optional[str]:
    """Return the new location for a legacy ``path``, or None when it is not legacy.

    ``/uploads`` paths go to ``legacy_media_url`` only when the file is not in
    ``media_root``; mirrored thumbnails are served locally.
    """
    if path.startswith("/uploads/") and legacy_media_url:
        if _is_local_media(path, media_root):
            return None
        return legacy_media_url.rstrip("/") + path[len("/uploads"):]
    if path in _STATIC_REWRITES:
        return _STATIC_REWRITES[path]
    if path == "/index.php":
        page = query.get("page")
        return f"/?page={page}" if page else "/"
    if path == "/rss-by-category.php":
        slug = query.get("slug") or query.get("category")
        return f"/rss/category/{slug.replace(' ', '-')}" if slug else "/rss"
    return None


async def legacy_redirects(request: Request, call_next):
    settings = get_settings()
    target = legacy_target(
        request.url.path,
        request.query_params,
        legacy_media_url=settings.legacy_media_url,
        media_root=settings.media_root,
    )
    if target is not None:
        return RedirectResponse(target, status_code=301)
    return await call_next(request)
