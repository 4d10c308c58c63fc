"""Scrape-and-ingest flow shared by the admin endpoints and the CLI runner.

fetch -> extract -> dedup gate -> free slug -> relocate media -> persist -> invalidate cache

Every step raises a ``ScrapeError`` subclass (or ``StoreError``) on failure;
nothing is written unless all steps before the insert succeeded. The dedup
query runs before the insert and the store's unique constraints catch the
remaining race between two concurrent submissions.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional

import httpx

from app.errors import DuplicateError, UniqueViolation
from app.services import content
from app.services.cache import ResponseCache, invalidate_after_write
from app.services.media_service import relocate_image

from .base import CosplayRecord, VideoRecord
from .helpers import title_hash
from .spiders.cosplay_spider import CosplayPageSpider
from .spiders.video_spider import VideoPageSpider

logger = logging.getLogger(__name__)

VIDEO_DUP_TITLE_LEN = 20
COSPLAY_DUP_TITLE_LEN = 30


def _free_video_slug(record: VideoRecord) -> str:
    """Slug for a new title, suffixed with the title hash when another title already owns it.

    Transliteration drops non-ASCII text, so distinct titles can share a slug.
    The slug must be settled before the thumbnail is written to ``<slug>.<ext>``.
    """
    if not content.get_video(record.slug):
        return record.slug
    slug = f"{record.slug}-{title_hash(record.title)}"
    if content.get_video(slug):
        raise DuplicateError(record.title, max_len=VIDEO_DUP_TITLE_LEN)
    logger.info("Slug %s is taken, storing %r as %s", record.slug, record.title, slug)
    return slug


def ingest_video(
    url: str,
    *,
    cache: Optional[ResponseCache] = None,
    spider: Optional[VideoPageSpider] = None,
    relocate: Callable[[str, str], str] = relocate_image,
    client: Optional[httpx.Client] = None,
) -> VideoRecord:
    """Scrape one video page and store it. Dedup key: the trimmed title."""
    spider = spider or VideoPageSpider()
    record = spider.fetch_from_url(url, client=client)
    record.title = record.title.strip()

    if content.find_video_by_title(record.title):
        raise DuplicateError(record.title, max_len=VIDEO_DUP_TITLE_LEN)
    record.slug = _free_video_slug(record)

    record.thumbnail = relocate(record.thumbnail, record.slug)
    try:
        content.create_video(record.to_dict())
    except UniqueViolation as exc:
        raise DuplicateError(record.title, max_len=VIDEO_DUP_TITLE_LEN) from exc

    invalidate_after_write(cache, "video")
    logger.info("Stored video %s (%s tags, %ss)", record.slug, len(record.tags), record.duration_sec)
    return record


def ingest_cosplay(
    url: str,
    *,
    cache: Optional[ResponseCache] = None,
    spider: Optional[CosplayPageSpider] = None,
    client: Optional[httpx.Client] = None,
) -> CosplayRecord:
    """Scrape one cosplay gallery and store it. Dedup key: the slug.

    Gallery images are already CDN URLs after extraction, so no media is
    relocated here.
    """
    spider = spider or CosplayPageSpider()
    record = spider.fetch_from_url(url, client=client)

    if content.get_cosplay(record.slug):
        raise DuplicateError(record.title, max_len=COSPLAY_DUP_TITLE_LEN)

    try:
        content.create_cosplay(record.to_dict())
    except UniqueViolation as exc:
        raise DuplicateError(record.title, max_len=COSPLAY_DUP_TITLE_LEN) from exc

    invalidate_after_write(cache, "cosplay")
    logger.info("Stored cosplay %s (%d images)", record.slug, len(record.gallery))
    return record
