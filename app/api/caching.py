from __future__ import annotations

import logging
from typing import Callable, Optional

from fastapi import Request, Response

from app.services.cache import CachedPage, ResponseCache

logger = logging.getLogger(__name__)

SESSION_FLAG = "is_logged_in"


def is_authenticated(request: Request) -> bool:
    return bool(request.session.get(SESSION_FLAG))


def get_cache(request: Request) -> Optional[ResponseCache]:
    return getattr(request.app.state, "response_cache", None)


def cache_key(request: Request) -> str:
    """Full request path plus query string, e.g. ``/tag/foo?page=2``."""
    query = request.url.query
    return request.url.path + (f"?{query}" if query else "")


def cached_page(request: Request, ttl: float, build: Callable[[], Response]) -> Response:
    """Read-through cache around ``build``.

    Only anonymous GET requests are served from and stored into the cache; an
    authenticated admin always gets a freshly built page. Only 200 responses
    are stored.
    """
    cache = get_cache(request)
    if cache is None or request.method != "GET" or is_authenticated(request):
        return build()

    key = cache_key(request)
    hit = cache.get(key)
    if hit is not None:
        logger.debug("cache hit %s", key)
        return Response(content=hit.body, media_type=hit.media_type, status_code=hit.status_code)

    response = build()
    if response.status_code == 200:
        cache.set(key, CachedPage(body=bytes(response.body), media_type=response.media_type), ttl)
    return response
