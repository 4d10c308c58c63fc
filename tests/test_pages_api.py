from app.errors import StoreError
from app.services import content


def test_home_lists_newest_first(client, store):
    store.add_video("Older Clip", created_at="2024-01-01T00:00:00+00:00")
    store.add_video("Newer Clip", created_at="2024-02-01T00:00:00+00:00")
    store.add_cosplay("Hana Raiden", gallery=["https://cdn.example/a/1.jpg"])
    resp = client.get("/")
    assert resp.status_code == 200
    body = resp.text
    assert body.index("Newer Clip") < body.index("Older Clip")
    assert "Hana Raiden" in body
    assert "2 videos" in body


def test_home_is_served_from_cache_until_invalidated(client, store, app_instance):
    store.add_video("First Clip")
    assert "First Clip" in client.get("/").text

    store.add_video("Second Clip")
    assert "Second Clip" not in client.get("/").text

    app_instance.state.response_cache.evict("/")
    assert "Second Clip" in client.get("/").text


def test_admin_session_bypasses_cache(client, admin_client, store):
    store.add_video("First Clip")
    client.get("/")
    store.add_video("Second Clip")
    assert "Second Clip" in admin_client.get("/").text
    # the admin's fresh page was not stored for visitors
    assert "Second Clip" not in client.get("/").text


def test_query_string_is_part_of_cache_key(client, store):
    for i in range(30):
        store.add_video(f"Clip {i:02d}", created_at=f"2024-01-01T00:00:{i:02d}+00:00")
    first = client.get("/").text
    second = client.get("/?page=2").text
    assert "Clip 29" in first and "Clip 29" not in second
    assert "Clip 00" in second
    assert "Page 2" in second


def test_bad_page_number_falls_back_to_first_page(client, store):
    store.add_video("Only Clip")
    resp = client.get("/?page=abc")
    assert resp.status_code == 200
    assert "Only Clip" in resp.text


def test_video_detail_counts_view_on_cache_miss_only(client, store):
    store.add_video(
        "Sunset Drive",
        slug="sunset-drive",
        embed_url="//player.clipsource.example/embed/1",
        duration="PT1H2M3S",
        duration_sec=3723,
        tags=["Sunset"],
        categories=["Travel"],
    )
    resp = client.get("/video/sunset-drive")
    assert resp.status_code == 200
    assert '"@type": "VideoObject"' in resp.text
    assert "https://player.clipsource.example/embed/1" in resp.text
    assert "01:02:03" in resp.text
    assert store.view_calls == [("video", "sunset-drive")]

    client.get("/video/sunset-drive")
    assert store.view_calls == [("video", "sunset-drive")]


def test_view_count_failure_does_not_break_page(client, store, monkeypatch):
    store.add_video("Sunset Drive", slug="sunset-drive")

    def broken(slug):
        raise StoreError("write failed")

    monkeypatch.setattr(content, "increment_video_views", broken)
    assert client.get("/video/sunset-drive").status_code == 200


def test_unknown_video_is_404_and_not_cached(client, store):
    resp = client.get("/video/nope")
    assert resp.status_code == 404
    assert "Video Not Found" in resp.text
    store.add_video("Nope", slug="nope")
    assert client.get("/video/nope").status_code == 200


def test_unknown_route_uses_404_page(client, store):
    store.add_video("Suggested Clip")
    resp = client.get("/definitely/not/here")
    assert resp.status_code == 404
    assert "Page Not Found" in resp.text
    assert "Suggested Clip" in resp.text


def test_search_matches_title_and_tags_and_is_noindex(client, store):
    store.add_video("Sunset Drive")
    store.add_video("City Lights", tags=["Night Sunset"])
    store.add_video("Rain Window")
    store.add_cosplay("Hana Raiden", character="Raiden Shogun")
    resp = client.get("/search", params={"q": "sunset"})
    assert resp.status_code == 200
    assert "Sunset Drive" in resp.text and "City Lights" in resp.text
    assert "Rain Window" not in resp.text
    assert "noindex" in resp.text
    assert "Hana Raiden" in client.get("/search", params={"q": "raiden"}).text


def test_tag_page_turns_dashes_into_spaces(client, store):
    store.add_video("Coast Run", tags=["Sunset Drive"])
    store.add_video("Rain Walk", tags=["Rain"])
    resp = client.get("/tag/sunset-drive")
    assert resp.status_code == 200
    assert "<h1>Sunset Drive</h1>" in resp.text
    assert "Coast Run" in resp.text
    assert "Rain Walk" not in resp.text


def test_category_page_includes_cosplays(client, store):
    store.add_video("Coast Run", categories=["Road Trips"])
    store.add_cosplay("Hana Raiden", categories=["Road Trips"])
    resp = client.get("/category/road-trips")
    assert resp.status_code == 200
    assert "Coast Run" in resp.text
    assert "Hana Raiden" in resp.text


def test_cosplay_index_and_detail(client, store):
    store.add_cosplay(
        "Hana Raiden",
        slug="hana-raiden",
        cosplayer="Hana",
        character="Raiden Shogun",
        password_zip="cosplay123",
        gallery=["https://cdn.example/a/01.jpg", "https://cdn.example/a/02.jpg"],
        downloads={"gofile": "https://gofile.io/d/xyz"},
        categories=["Genshin Impact"],
    )
    store.add_cosplay("Lumine Set", slug="lumine-set", categories=["Genshin Impact"])

    index = client.get("/cosplay")
    assert index.status_code == 200
    assert "Hana Raiden" in index.text and "Lumine Set" in index.text

    detail = client.get("/cosplay/hana-raiden")
    assert detail.status_code == 200
    assert "cosplay123" in detail.text
    assert "https://gofile.io/d/xyz" in detail.text
    assert "https://cdn.example/a/02.jpg" in detail.text
    assert "Lumine Set" in detail.text
    assert store.view_calls == [("cosplay", "hana-raiden")]


def test_unknown_cosplay_is_404(client, store):
    resp = client.get("/cosplay/missing")
    assert resp.status_code == 404
    assert "Cosplay Not Found" in resp.text


def test_store_failure_renders_error_page(client, store, monkeypatch):
    def down(**kwargs):
        raise StoreError("connection refused")

    monkeypatch.setattr(content, "list_videos", down)
    resp = client.get("/")
    assert resp.status_code == 500
    assert "Something went wrong" in resp.text


def test_missing_thumbnail_uses_bundled_placeholder(client, store):
    store.add_video("Bare Clip", slug="bare-clip", thumbnail="")
    assert "http://testserver/static/default-poster.svg" in client.get("/video/bare-clip").text

    for name in ("default-poster.svg", "default-cosplay.svg"):
        resp = client.get(f"/static/{name}")
        assert resp.status_code == 200
        assert resp.headers["content-type"].startswith("image/svg+xml")
