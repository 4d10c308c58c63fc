import os

import httpx
import pytest

from app.errors import MediaError
from app.services.media_service import relocate_image


def _client(handler):
    return httpx.Client(transport=httpx.MockTransport(handler))


def test_relocate_image_writes_file_and_returns_public_url(tmp_path):
    def handler(request):
        assert request.url.host == "img.clipsource.example"
        return httpx.Response(200, content=b"\xff\xd8jpegbytes", headers={"content-type": "image/jpeg"})

    url = relocate_image(
        "//img.clipsource.example/thumbs/abc123",
        "sunset-drive",
        media_root=str(tmp_path),
        public_url="https://media.example/uploads/",
        client=_client(handler),
    )
    assert url == "https://media.example/uploads/thumbnails/sunset-drive.jpg"
    with open(os.path.join(tmp_path, "thumbnails", "sunset-drive.jpg"), "rb") as f:
        assert f.read() == b"\xff\xd8jpegbytes"


def test_relocate_image_extension_from_url_when_content_type_unknown(tmp_path):
    client = _client(lambda r: httpx.Response(200, content=b"png", headers={"content-type": "application/octet-stream"}))
    url = relocate_image(
        "https://img.example/a/b.PNG", "clip", media_root=str(tmp_path), public_url="https://m.example", client=client
    )
    assert url.endswith("/thumbnails/clip.png")


def test_relocate_image_empty_url_returns_empty_string(tmp_path):
    assert relocate_image("", "clip", media_root=str(tmp_path)) == ""
    assert relocate_image(None, "clip", media_root=str(tmp_path)) == ""
    assert not os.path.exists(os.path.join(tmp_path, "thumbnails"))


def test_relocate_image_http_error_raises(tmp_path):
    client = _client(lambda r: httpx.Response(404))
    with pytest.raises(MediaError):
        relocate_image("https://img.example/missing.jpg", "clip", media_root=str(tmp_path), client=client)


def test_relocate_image_network_error_raises(tmp_path):
    def handler(request):
        raise httpx.ConnectError("boom", request=request)

    with pytest.raises(MediaError):
        relocate_image("https://img.example/a.jpg", "clip", media_root=str(tmp_path), client=_client(handler))


def test_relocate_image_rejects_oversized_declared_length(tmp_path):
    client = _client(lambda r: httpx.Response(200, content=b"x" * 64, headers={"content-type": "image/jpeg"}))
    with pytest.raises(MediaError):
        relocate_image("https://img.example/big.jpg", "big", media_root=str(tmp_path), max_bytes=32, client=client)
    assert not os.path.exists(os.path.join(tmp_path, "thumbnails", "big.jpg"))


def test_relocate_image_stops_streaming_past_limit(tmp_path):
    # chunked body, no content-length
    client = _client(lambda r: httpx.Response(200, content=iter([b"x" * 20, b"x" * 20, b"x" * 20])))
    with pytest.raises(MediaError):
        relocate_image("https://img.example/big.jpg", "big", media_root=str(tmp_path), max_bytes=32, client=client)
    assert not os.path.exists(os.path.join(tmp_path, "thumbnails", "big.jpg"))
