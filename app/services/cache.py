"""In-process response cache with per-entry TTL.

One ``ResponseCache`` is created per application (see ``app.main.create_app``)
and shared by every request. Writes are last-write-wins; two simultaneous
misses for the same key may both compute and store.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Tuple

logger = logging.getLogger(__name__)

# TTL classes (seconds)
TTL_HOME = 300
TTL_SEARCH = 600
TTL_COSPLAY_INDEX = 900
TTL_TAXONOMY = 1800
TTL_DETAIL = 3600
TTL_FEED = 300

# Well-known keys evicted after every successful write of the given kind
INVALIDATE_ON_WRITE = {
    "video": ("/", "/rss", "/sitemap.xml", "/sitemap-video.xml"),
    "cosplay": ("/", "/cosplay", "/rss", "/sitemap.xml"),
}


@dataclass(frozen=True)
class CachedPage:
    body: bytes
    media_type: Optional[str]
    status_code: int = 200


class ResponseCache:
    def __init__(
        self,
        *,
        default_ttl: float = 600,
        max_entries: int = 2048,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.default_ttl = float(default_ttl)
        self.max_entries = int(max_entries)
        self._clock = clock
        self._entries: Dict[str, Tuple[float, Any]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[Any]:
        """Return the live value for ``key`` or None; expired entries are dropped."""
        with self._lock:
            item = self._entries.get(key)
            if item is None:
                return None
            expires_at, value = item
            if expires_at <= self._clock():
                del self._entries[key]
                return None
            return value

    def has(self, key: str) -> bool:
        return self.get(key) is not None

    def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        ttl = self.default_ttl if ttl is None else float(ttl)
        if ttl <= 0:
            return
        with self._lock:
            now = self._clock()
            if self._entries.pop(key, None) is None and len(self._entries) >= self.max_entries:
                self._make_room(now)
            self._entries[key] = (now + ttl, value)

    def evict(self, *keys: str) -> int:
        """Remove ``keys``; returns how many were present."""
        removed = 0
        with self._lock:
            for key in keys:
                if self._entries.pop(key, None) is not None:
                    removed += 1
        return removed

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def _make_room(self, now: float) -> None:
        # Caller holds the lock
        expired = [k for k, (exp, _) in self._entries.items() if exp <= now]
        for k in expired:
            del self._entries[k]
        if len(self._entries) >= self.max_entries:
            # dicts keep insertion order: drop the oldest entry
            oldest = next(iter(self._entries))
            del self._entries[oldest]


def invalidate_after_write(cache: Optional[ResponseCache], kind: str) -> int:
    """Evict the pages that must show a freshly written ``kind`` ("video" or "cosplay")."""
    if cache is None:
        return 0
    keys = INVALIDATE_ON_WRITE[kind]
    removed = cache.evict(*keys)
    logger.debug("Invalidated %d cached page(s) after %s write: %s", removed, kind, ", ".join(keys))
    return removed
