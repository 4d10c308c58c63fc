import pytest
from neo4j.exceptions import ConstraintError, ServiceUnavailable

from app.db import neo4j_connector
from app.errors import StoreError, UniqueViolation
from app.services.content import admin, cosplays, videos


class RecordingCypher:
    def __init__(self, rows=None):
        self.rows = rows or []
        self.calls = []

    def __call__(self, query, parameters=None):
        self.calls.append((query, parameters or {}))
        return self.rows


def test_list_videos_paging(monkeypatch):
    fake = RecordingCypher([{"title": "a"}])
    monkeypatch.setattr(videos, "run_cypher", fake)

    assert videos.list_videos(skip=24, limit=24) == [{"title": "a"}]
    query, params = fake.calls[-1]
    assert "ORDER BY v.created_at DESC SKIP $skip LIMIT $limit" in query
    assert params["skip"] == 24

    videos.list_videos(limit=None)
    query, _ = fake.calls[-1]
    assert "LIMIT" not in query and "SKIP" not in query


def test_list_videos_by_only_accepts_list_fields(monkeypatch):
    fake = RecordingCypher()
    monkeypatch.setattr(videos, "run_cypher", fake)
    videos.list_videos_by("tags", "sunset drive")
    assert "v.tags" in fake.calls[-1][0]
    assert fake.calls[-1][1]["keyword"] == "sunset drive"
    with pytest.raises(ValueError):
        videos.list_videos_by("title} DETACH DELETE v //", "x")


def test_count_and_get_handle_empty_results(monkeypatch):
    monkeypatch.setattr(videos, "run_cypher", RecordingCypher([]))
    assert videos.count_videos() == 0
    assert videos.get_video("missing") == {}
    assert videos.find_video_by_title("missing") == {}


def test_create_video_normalizes_params(monkeypatch):
    fake = RecordingCypher([{"slug": "clip"}])
    monkeypatch.setattr(videos, "run_cypher", fake)
    videos.create_video({"title": "Clip", "slug": "clip", "created_at": "2024-01-01T00:00:00+00:00", "tags": ("a",)})
    _, params = fake.calls[-1]
    assert params["tags"] == ["a"]
    assert params["duration"] == "PT0S"
    assert params["thumbnail"] == ""
    assert params["source_url"] is None


def test_cosplay_downloads_flattened_and_reassembled(monkeypatch):
    row = {
        "title": "Set",
        "slug": "set",
        "download_mediafire": None,
        "download_gofile": "https://gofile.io/d/xyz",
        "download_telegram": "",
    }
    fake = RecordingCypher([row])
    monkeypatch.setattr(cosplays, "run_cypher", fake)

    saved = cosplays.create_cosplay(
        {"title": "Set", "slug": "set", "created_at": "2024-01-01T00:00:00+00:00",
         "downloads": {"gofile": "https://gofile.io/d/xyz"}}
    )
    _, params = fake.calls[-1]
    assert params["download_gofile"] == "https://gofile.io/d/xyz"
    assert params["download_mediafire"] is None
    assert saved["downloads"] == {"gofile": "https://gofile.io/d/xyz"}
    assert not any(k.startswith("download_") for k in saved)


def test_ensure_constraints_runs_every_statement(monkeypatch):
    fake = RecordingCypher()
    monkeypatch.setattr(admin, "run_cypher", fake)
    ran = admin.ensure_constraints()
    assert len(fake.calls) == len(ran)
    assert any("video_title" in q for q, _ in fake.calls)


class _FakeSession:
    def __init__(self, exc):
        self.exc = exc

    def __enter__(self):
        return self

    def __exit__(self, *args):
        return False

    def run(self, query, params):
        raise self.exc


class _FakeDriver:
    def __init__(self, exc):
        self.exc = exc

    def session(self):
        return _FakeSession(self.exc)


def test_run_cypher_translates_constraint_errors(monkeypatch):
    monkeypatch.setattr(neo4j_connector, "get_driver", lambda: _FakeDriver(ConstraintError("already exists")))
    with pytest.raises(UniqueViolation):
        neo4j_connector.run_cypher("CREATE (v:Video {slug: $slug})", {"slug": "x"})


def test_run_cypher_translates_driver_errors(monkeypatch):
    monkeypatch.setattr(neo4j_connector, "get_driver", lambda: _FakeDriver(ServiceUnavailable("down")))
    with pytest.raises(StoreError) as exc:
        neo4j_connector.run_cypher("MATCH (v) RETURN v")
    assert not isinstance(exc.value, UniqueViolation)
