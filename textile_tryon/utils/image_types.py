"""Image format detection from raw bytes."""

DEFAULT_MIME_TYPE = "image/jpeg"

EXTENSIONS = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/webp": ".webp",
    "image/gif": ".gif",
}


def detect_mime_type(image_bytes: bytes, default: str = DEFAULT_MIME_TYPE) -> str:
    """Detect the image format from its magic bytes.

    Falls back to ``default`` for anything unrecognised.
    """
    if image_bytes[:3] == b'\xff\xd8\xff':
        return "image/jpeg"
    if image_bytes[:8] == b'\x89PNG\r\n\x1a\n':
        return "image/png"
    if image_bytes[:4] == b'RIFF' and image_bytes[8:12] == b'WEBP':
        return "image/webp"
    if image_bytes[:6] in (b'GIF87a', b'GIF89a'):
        return "image/gif"
    return default


def extension_for(mime_type: str) -> str:
    return EXTENSIONS.get(mime_type, ".jpg")
