"""Pure normalization helpers used by the spiders and the page renderers."""

from __future__ import annotations

import re
import string
import unicodedata

from .base import sha256_hexdigest

_ISO_DURATION_RE = re.compile(
    r"^PT(?:(?P<h>\d+(?:\.\d+)?)H)?(?:(?P<m>\d+(?:\.\d+)?)M)?(?:(?P<s>\d+(?:\.\d+)?)S)?$"
)
_SCHEME_RE = re.compile(r"^https?://", re.IGNORECASE)
_ASCII_PUNCT_TO_STRIP = "".join(ch for ch in string.punctuation if ch != "-")
_ASCII_PUNCT_TABLE = str.maketrans("", "", _ASCII_PUNCT_TO_STRIP)


def iso_duration_to_seconds(raw: str) -> int:
    """Convert an ISO-8601 duration like ``PT1H2M3S`` to whole seconds.

    Every component is optional. Empty or malformed input yields 0.
    """
    text = (raw or "").strip().upper()
    if not text:
        return 0
    m = _ISO_DURATION_RE.match(text)
    if not m or text == "PT":
        return 0
    hours = float(m.group("h") or 0)
    minutes = float(m.group("m") or 0)
    seconds = float(m.group("s") or 0)
    return int(round(hours * 3600 + minutes * 60 + seconds))


def format_duration(seconds: int) -> str:
    """``MM:SS`` for short clips, ``HH:MM:SS`` above one hour."""
    if not seconds:
        return "00:00"
    seconds = int(seconds)
    h, rem = divmod(seconds, 3600)
    m, s = divmod(rem, 60)
    if seconds > 3600:
        return f"{h % 24:02d}:{m:02d}:{s:02d}"
    return f"{m + h * 60:02d}:{s:02d}"


def video_slug(title: str) -> str:
    """ASCII-only slug for video titles.

    Accents are transliterated, everything outside ``[a-z0-9]`` collapses to a
    single dash. Titles without any ASCII letter or digit fall back to a hash
    so the slug is never empty.
    """
    text = unicodedata.normalize("NFKD", title or "").encode("ascii", "ignore").decode("ascii")
    slug = re.sub(r"[^a-z0-9]+", "-", text.lower()).strip("-")
    if slug:
        return slug
    return "video-" + title_hash(title)


def cosplay_slug(title: str) -> str:
    """Slug for cosplay titles that keeps non-Latin scripts.

    Unlike ``video_slug`` this does not transliterate: ASCII punctuation is
    removed, whitespace becomes a dash and CJK characters pass through. A
    title made only of punctuation falls back to a hash like ``video_slug``.
    """
    text = (title or "").lower().translate(_ASCII_PUNCT_TABLE)
    slug = re.sub(r"\s+", "-", text.strip())
    slug = re.sub(r"-{2,}", "-", slug).strip("-")
    if slug:
        return slug
    return "cosplay-" + title_hash(title)


def title_hash(title: str) -> str:
    """First 10 hex chars of sha256 of the trimmed title."""
    return sha256_hexdigest((title or "").strip())[:10]


def cdn_rewrite(url: str, cdn_base: str) -> str:
    """Serve ``url`` through ``cdn_base``: ``https://a.example/x.jpg`` -> ``<cdn_base>/a.example/x.jpg``."""
    base = cdn_base.rstrip("/")
    if url.startswith(base + "/"):
        return url
    return f"{base}/{_SCHEME_RE.sub('', url.strip())}"


def unique_in_order(items):
    return list(dict.fromkeys(items))
