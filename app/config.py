"""Runtime configuration.

Settings come from environment variables. A ``.env`` file at the project root
is loaded first (best-effort) and only fills variables that are not already
set in the process environment.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

ROOT_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))

logger = logging.getLogger(__name__)


def _load_env_from_file(path: Optional[str] = None) -> None:
    env_path = path or os.path.join(ROOT_DIR, ".env")
    if not os.path.isfile(env_path):
        return
    try:
        with open(env_path, "r", encoding="utf-8") as f:
            for line in f:
                s = line.strip()
                if not s or s.startswith("#") or "=" not in s:
                    continue
                key, val = s.split("=", 1)
                key = key.strip()
                val = val.strip().strip('"').strip("'")
                # Allow space around '=' like KEY = value
                if key and not os.environ.get(key):
                    os.environ[key] = val
    except OSError as exc:
        logger.warning("Could not read %s: %s", env_path, exc)


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning("Ignoring non-integer %s=%r, using %s", name, raw, default)
        return default


@dataclass(frozen=True)
class Settings:
    site_url: str = "http://localhost:3000"
    site_name: str = "MediaHub"
    neo4j_uri: str = "bolt://localhost:7687"
    neo4j_user: str = "neo4j"
    neo4j_password: str = ""
    admin_password: str = ""
    session_secret: str = "change-me"
    session_max_age: int = 3600
    media_root: str = os.path.join(ROOT_DIR, "media")
    media_public_url: str = "http://localhost:3000/uploads"
    gallery_cdn_url: str = "https://cdn.manhwature.com"
    player_proxy_url: str = ""
    legacy_media_url: str = ""
    log_level: str = "INFO"


def load_settings() -> Settings:
    _load_env_from_file()
    site_url = (os.getenv("SITE_URL") or Settings.site_url).rstrip("/")
    return Settings(
        site_url=site_url,
        site_name=os.getenv("SITE_NAME") or Settings.site_name,
        neo4j_uri=os.getenv("NEO4J_URI") or Settings.neo4j_uri,
        neo4j_user=os.getenv("NEO4J_USER") or Settings.neo4j_user,
        neo4j_password=os.getenv("NEO4J_PASSWORD") or "",
        admin_password=os.getenv("ADMIN_PASSWORD") or "",
        session_secret=os.getenv("SESSION_SECRET") or Settings.session_secret,
        session_max_age=_env_int("SESSION_MAX_AGE", Settings.session_max_age),
        media_root=os.getenv("MEDIA_ROOT") or Settings.media_root,
        media_public_url=(os.getenv("MEDIA_PUBLIC_URL") or f"{site_url}/uploads").rstrip("/"),
        gallery_cdn_url=(os.getenv("GALLERY_CDN_URL") or Settings.gallery_cdn_url).rstrip("/"),
        player_proxy_url=os.getenv("PLAYER_PROXY_URL") or "",
        legacy_media_url=(os.getenv("LEGACY_MEDIA_URL") or "").rstrip("/"),
        log_level=os.getenv("LOG_LEVEL") or Settings.log_level,
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Process-wide settings; call ``get_settings.cache_clear()`` after changing the environment."""
    return load_settings()


def configure_logging(level: Optional[str] = None) -> None:
    numeric_level = getattr(logging, (level or get_settings().log_level).upper(), logging.INFO)
    logging.basicConfig(
        level=numeric_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    # Silence noisy third-party loggers
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("neo4j").setLevel(logging.WARNING)
