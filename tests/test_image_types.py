"""Tests for magic-byte image detection."""

import pytest

from textile_tryon.utils.image_types import detect_mime_type, extension_for


@pytest.mark.parametrize("data,expected", [
    (b'\xff\xd8\xff\xe0rest', "image/jpeg"),
    (b'\x89PNG\r\n\x1a\nrest', "image/png"),
    (b'RIFF\x00\x00\x00\x00WEBPVP8 ', "image/webp"),
    (b'GIF89a...', "image/gif"),
    (b'GIF87a...', "image/gif"),
])
def test_detects_known_formats(data, expected):
    assert detect_mime_type(data) == expected


def test_unknown_bytes_use_default():
    assert detect_mime_type(b"plain text") == "image/jpeg"
    assert detect_mime_type(b"", default="application/octet-stream") == "application/octet-stream"


def test_extension_for():
    assert extension_for("image/png") == ".png"
    assert extension_for("image/webp") == ".webp"
    assert extension_for("application/octet-stream") == ".jpg"
