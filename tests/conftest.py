import os
import random
import tempfile

import pytest

# Settings are read once per process; pin them before the app is imported.
os.environ["ADMIN_PASSWORD"] = "test-pass"
os.environ["SESSION_SECRET"] = "test-secret"
os.environ["SITE_URL"] = "http://testserver"
os.environ["SITE_NAME"] = "TestHub"
os.environ["GALLERY_CDN_URL"] = "https://cdn.example"
os.environ["MEDIA_ROOT"] = tempfile.mkdtemp(prefix="mediahub-test-")
os.environ.pop("PLAYER_PROXY_URL", None)
os.environ.pop("LEGACY_MEDIA_URL", None)

from app.config import get_settings  # noqa: E402

get_settings.cache_clear()

from app.errors import UniqueViolation  # noqa: E402
from app.services import content  # noqa: E402
from app.services.crawl.base import now_iso  # noqa: E402


class FakeContentStore:
    """In-memory stand-in for app.services.content with the same function names."""

    def __init__(self):
        self.videos = []
        self.cosplays = []
        self.view_calls = []

    # --- helpers ---
    @staticmethod
    def _newest(rows):
        return sorted(rows, key=lambda r: r["created_at"], reverse=True)

    @staticmethod
    def _page(rows, skip=0, limit=None):
        rows = rows[skip:]
        return rows if limit is None else rows[:limit]

    @staticmethod
    def _has(values, keyword):
        kw = keyword.lower()
        return any(kw in v.lower() for v in values or [])

    def add_video(self, title, slug=None, **extra):
        row = {
            "title": title,
            "slug": slug or title.lower().replace(" ", "-"),
            "description": "",
            "embed_url": "",
            "thumbnail": "",
            "duration": "PT0S",
            "duration_sec": 0,
            "tags": [],
            "categories": [],
            "views": 0,
            "created_at": now_iso(),
            "source_url": None,
        }
        row.update(extra)
        self.videos.append(row)
        return row

    def add_cosplay(self, title, slug=None, **extra):
        row = {
            "title": title,
            "slug": slug or title.lower().replace(" ", "-"),
            "cosplayer": "",
            "character": "",
            "game_anime": "",
            "gallery": [],
            "downloads": {},
            "description": "",
            "password_zip": "",
            "video_embed": "",
            "tags": [],
            "categories": [],
            "views": 0,
            "created_at": now_iso(),
            "source_url": None,
        }
        row.update(extra)
        self.cosplays.append(row)
        return row

    # --- videos ---
    def create_video(self, record):
        if any(v["slug"] == record["slug"] or v["title"] == record["title"] for v in self.videos):
            raise UniqueViolation("Video already exists")
        row = {**record, "views": 0}
        self.videos.append(row)
        return dict(row)

    def get_video(self, slug):
        return next((dict(v) for v in self.videos if v["slug"] == slug), {})

    def find_video_by_title(self, title):
        return next((dict(v) for v in self.videos if v["title"] == title), {})

    def list_videos(self, *, skip=0, limit=24):
        return self._page(self._newest(self.videos), skip, limit)

    def count_videos(self):
        return len(self.videos)

    def search_videos(self, q, *, limit=24):
        q = (q or "").lower()
        rows = [v for v in self.videos if q in v["title"].lower() or self._has(v["tags"], q)]
        return self._newest(rows)[:limit]

    def list_videos_by(self, field, keyword, *, skip=0, limit=24):
        rows = [v for v in self.videos if self._has(v[field], keyword)]
        return self._page(self._newest(rows), skip, limit)

    def count_videos_by(self, field, keyword):
        return len([v for v in self.videos if self._has(v[field], keyword)])

    def sample_videos(self, size=8):
        return random.sample(self.videos, min(size, len(self.videos)))

    def increment_video_views(self, slug):
        self.view_calls.append(("video", slug))
        for v in self.videos:
            if v["slug"] == slug:
                v["views"] += 1

    # --- cosplays ---
    def create_cosplay(self, record):
        if any(c["slug"] == record["slug"] for c in self.cosplays):
            raise UniqueViolation("Cosplay already exists")
        row = {**record, "views": 0}
        self.cosplays.append(row)
        return dict(row)

    def get_cosplay(self, slug):
        return next((dict(c) for c in self.cosplays if c["slug"] == slug), {})

    def list_cosplays(self, *, skip=0, limit=24):
        return self._page(self._newest(self.cosplays), skip, limit)

    def count_cosplays(self):
        return len(self.cosplays)

    def search_cosplays(self, q, *, limit=12):
        q = (q or "").lower()
        rows = [
            c for c in self.cosplays
            if q in c["title"].lower() or q in c["character"].lower()
            or q in c["cosplayer"].lower() or self._has(c["tags"], q)
        ]
        return self._newest(rows)[:limit]

    def list_cosplays_by(self, field, keyword, *, limit=12):
        rows = [c for c in self.cosplays if self._has(c[field], keyword)]
        return self._newest(rows)[:limit]

    def related_cosplays(self, slug, categories, *, size=4):
        rows = [c for c in self.cosplays if c["slug"] != slug and set(c["categories"]) & set(categories)]
        return rows[:size]

    def increment_cosplay_views(self, slug):
        self.view_calls.append(("cosplay", slug))
        for c in self.cosplays:
            if c["slug"] == slug:
                c["views"] += 1

    def ensure_constraints(self):
        return []


@pytest.fixture
def store(monkeypatch):
    fake = FakeContentStore()
    for name in content.__all__:
        monkeypatch.setattr(content, name, getattr(fake, name))
    return fake


@pytest.fixture
def app_instance(store):
    from app.main import create_app

    return create_app()


@pytest.fixture
def client(app_instance):
    from fastapi.testclient import TestClient

    return TestClient(app_instance)


@pytest.fixture
def admin_client(app_instance):
    from fastapi.testclient import TestClient

    c = TestClient(app_instance)
    resp = c.post("/admin/login", data={"password": "test-pass"}, follow_redirects=False)
    assert resp.status_code == 303
    return c
