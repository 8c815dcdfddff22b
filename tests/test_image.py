from __future__ import annotations

import asyncio
import base64

import pytest
import requests

from conftest import data_url, encode_image
from facematch.utils import image as image_utils
from facematch.utils.image import (
    DecodeError,
    FetchError,
    ReadError,
    SourceKind,
    classify_source,
    decode_data_url,
    decode_image,
    load_image,
    resolve_image,
)


class _Response:
    def __init__(self, status_code: int, reason: str, content: bytes = b""):
        self.status_code = status_code
        self.reason = reason
        self.content = content

    @property
    def ok(self) -> bool:
        return self.status_code < 400


@pytest.mark.parametrize(
    "source, kind",
    [
        ("data:image/png;base64,AAAA", SourceKind.DATA_URL),
        ("http://example.com/a.jpg", SourceKind.URL),
        ("https://example.com/a.jpg", SourceKind.URL),
        ("photos/person1.jpg", SourceKind.PATH),
        ("/tmp/http_image.png", SourceKind.PATH),
    ],
)
def test_classify_source(source: str, kind: SourceKind):
    assert classify_source(source) is kind


def test_resolve_data_url_jpeg():
    image = resolve_image(data_url(64, 48, media="jpeg"), max_dimension=512)
    assert (image.width, image.height) == (64, 48)
    assert image.pixels.shape == (48, 64, 3)


def test_large_image_is_downscaled_keeping_aspect_ratio():
    image = decode_image(encode_image(1024, 512), max_dimension=512)
    assert (image.width, image.height) == (512, 256)
    assert image.pixels.shape == (256, 512, 3)


def test_small_image_is_not_upscaled():
    image = decode_image(encode_image(100, 200), max_dimension=512)
    assert (image.width, image.height) == (100, 200)


def test_unsupported_data_url_type():
    with pytest.raises(DecodeError):
        resolve_image("data:image/gif;base64,R0lGODlh", max_dimension=512)


def test_invalid_base64_payload():
    with pytest.raises(DecodeError):
        resolve_image("data:image/png;base64,@@not-base64@@", max_dimension=512)


def test_corrupt_image_bytes():
    with pytest.raises(DecodeError):
        decode_image(b"definitely not an image", max_dimension=512)


def test_empty_image_bytes():
    with pytest.raises(DecodeError):
        decode_image(b"", max_dimension=512)


def test_local_file(tmp_path):
    path = tmp_path / "face.png"
    path.write_bytes(encode_image(30, 20))
    image = resolve_image(str(path), max_dimension=512)
    assert (image.width, image.height) == (30, 20)


def test_missing_local_file(tmp_path):
    with pytest.raises(ReadError, match="Failed to read local image file"):
        resolve_image(str(tmp_path / "missing.png"), max_dimension=512)


def test_url_fetch(monkeypatch):
    calls = []

    def fake_get(url, timeout=None):
        calls.append((url, timeout))
        return _Response(200, "OK", encode_image(40, 40))

    monkeypatch.setattr(image_utils.requests, "get", fake_get)
    image = resolve_image("https://example.com/face.png", max_dimension=512, fetch_timeout=5.0)
    assert image.width == 40
    assert calls == [("https://example.com/face.png", 5.0)]


def test_url_fetch_error_status(monkeypatch):
    monkeypatch.setattr(
        image_utils.requests, "get", lambda url, timeout=None: _Response(404, "Not Found")
    )
    with pytest.raises(FetchError, match="Not Found"):
        resolve_image("http://example.com/missing.png", max_dimension=512)


def test_url_connection_error(monkeypatch):
    def fake_get(url, timeout=None):
        raise requests.ConnectionError("connection refused")

    monkeypatch.setattr(image_utils.requests, "get", fake_get)
    with pytest.raises(FetchError, match="connection refused"):
        resolve_image("http://example.com/face.png", max_dimension=512)


def test_load_image_async():
    image = asyncio.run(load_image(data_url(20, 10), max_dimension=512))
    assert (image.width, image.height) == (20, 10)


def test_unpadded_data_url():
    payload = base64.b64encode(encode_image(33, 17)).decode("ascii").rstrip("=")
    image = resolve_image(f"data:image/png;base64,{payload}", max_dimension=512)
    assert (image.width, image.height) == (33, 17)


def test_url_safe_data_url():
    raw = encode_image(64, 48, ".jpg")
    payload = base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")
    image = resolve_image(f"data:image/jpeg;base64,{payload}", max_dimension=512)
    assert (image.width, image.height) == (64, 48)


def test_url_fetch_non_2xx_status(monkeypatch):
    monkeypatch.setattr(
        image_utils.requests, "get", lambda url, timeout=None: _Response(304, "Not Modified")
    )
    with pytest.raises(FetchError, match="Not Modified"):
        resolve_image("http://example.com/cached.png", max_dimension=512)


@pytest.mark.parametrize(
    "payload, expected",
    [
        ("YWI", b"ab"),
        ("YQ", b"a"),
        ("-__-", b"\xfb\xff\xfe"),
        ("+//+", b"\xfb\xff\xfe"),
        ("YW Jj\nZA", b"abcd"),
    ],
)
def test_data_url_payload_forms(payload: str, expected: bytes):
    assert decode_data_url(f"data:image/png;base64,{payload}") == expected


def test_data_url_with_impossible_length():
    with pytest.raises(DecodeError):
        decode_data_url("data:image/png;base64,YWJjZ")
