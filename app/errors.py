"""Exception taxonomy shared by the scraper pipeline, the store and the routers."""

from __future__ import annotations


class ScrapeError(Exception):
    """Base class for every failure of the scrape-and-ingest pipeline."""


class FetchError(ScrapeError):
    """Network failure, timeout or non-2xx response while fetching a page."""


class BlockedError(ScrapeError):
    """The source answered with an anti-bot challenge page."""

    def __init__(self, url: str = "") -> None:
        super().__init__(f"Blocked by anti-bot challenge: {url}" if url else "Blocked by anti-bot challenge")
        self.url = url


class MissingTitleError(ScrapeError):
    """A required title could not be located in the markup."""


class DuplicateError(ScrapeError):
    """The item is already stored under the same dedup key."""

    def __init__(self, title: str, *, max_len: int = 20) -> None:
        self.title = title
        self.short_title = title[:max_len]
        super().__init__(f"Duplicate: {self.short_title}...")


class MediaError(ScrapeError):
    """Mirroring a remote image to durable storage failed."""


class StoreError(Exception):
    """The content store is unreachable or rejected a query."""


class UniqueViolation(StoreError):
    """An insert collided with a unique constraint."""


class AuthError(Exception):
    """A write endpoint was called without an authenticated admin session."""
