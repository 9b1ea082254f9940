# Test fixtures and configuration
import base64
import json
import pytest
import sys
from pathlib import Path

import httpx

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from textile_tryon.config import GeminiConfig, StorageConfig, TryOnConfig
from textile_tryon.models import Garment
from textile_tryon.pipeline import TryOnPipeline
from textile_tryon.repository import InMemoryRepository
from textile_tryon.services import GeminiClient, ImageFetcher


GEMINI_BASE = "https://gemini.test/v1beta"
IMAGE_MODEL = "gemini-2.5-flash-image-preview"
TEXT_MODEL = "gemini-2.5-flash"
IMAGE_ENDPOINT = f"{GEMINI_BASE}/models/{IMAGE_MODEL}:generateContent"
TEXT_ENDPOINT = f"{GEMINI_BASE}/models/{TEXT_MODEL}:generateContent"

GARMENT_IMAGE_URL = "https://cdn.example.com/garments/3/silk-saree.jpg"
USER_PHOTO_URL = "https://cdn.example.com/user-photos/1/saree.jpg"

GARMENT_JPEG = b'\xff\xd8\xff\xe0' + b'garment-pixels'
PHOTO_JPEG = b'\xff\xd8\xff\xe0' + b'photo-pixels'


def image_response(data: bytes, key: str = "inline_data") -> dict:
    """A generateContent response carrying one inline image."""
    return {
        "candidates": [
            {"content": {"parts": [{key: {"mime_type": "image/png", "data": base64.b64encode(data).decode()}}]}}
        ]
    }


def text_response(text: str) -> dict:
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


class FakeRemote:
    """URL-routed stand-in for every remote endpoint the pipeline talks to.

    ``routes`` maps (method, url) to an httpx.Response; every request is
    recorded in ``calls``.
    """

    def __init__(self):
        self.calls: list[httpx.Request] = []
        self.routes: dict[tuple[str, str], httpx.Response] = {}

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        key = (request.method, str(request.url))
        if key not in self.routes:
            return httpx.Response(404, text=f"no route for {key}")
        # Fresh copy so a route can answer more than once
        stored = self.routes[key]
        return httpx.Response(stored.status_code, headers=stored.headers, content=stored.content)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def json_body(self, url: str) -> dict:
        """Body of the last request sent to ``url``."""
        for request in reversed(self.calls):
            if str(request.url) == url:
                return json.loads(request.content)
        raise AssertionError(f"no request sent to {url}")


@pytest.fixture
def minimal_png_bytes():
    """Minimal valid PNG image bytes."""
    return bytes([
        0x89, 0x50, 0x4E, 0x47, 0x0D, 0x0A, 0x1A, 0x0A,  # PNG signature
        0x00, 0x00, 0x00, 0x0D, 0x49, 0x48, 0x44, 0x52,  # IHDR chunk
        0x00, 0x00, 0x00, 0x01, 0x00, 0x00, 0x00, 0x01,  # 1x1 dimensions
        0x08, 0x02, 0x00, 0x00, 0x00, 0x90, 0x77, 0x53,
        0xDE, 0x00, 0x00, 0x00, 0x0C, 0x49, 0x44, 0x41,  # IDAT chunk
        0x54, 0x08, 0xD7, 0x63, 0xF8, 0xCF, 0xC0, 0x00,
        0x00, 0x00, 0x03, 0x00, 0x01, 0x00, 0x05, 0xFE,
        0xD4, 0xAA, 0x00, 0x00, 0x00, 0x00, 0x49, 0x45,  # IEND chunk
        0x4E, 0x44, 0xAE, 0x42, 0x60, 0x82
    ])


@pytest.fixture
def config(tmp_path):
    """Configuration pointing at the fake Gemini host and a temp storage dir."""
    return TryOnConfig(
        gemini=GeminiConfig(
            api_key="test-key",
            api_base_url=GEMINI_BASE,
            image_model=IMAGE_MODEL,
            text_model=TEXT_MODEL,
        ),
        storage=StorageConfig(
            backend="local",
            local_path=tmp_path / "uploads",
            public_base_url="http://testserver/files",
        ),
    )


@pytest.fixture
def repository():
    """Profile 'sess-1' owning photo #7, and garment #3 (a Silk Saree) with a primary image."""
    repo = InMemoryRepository()
    profile = repo.add_profile("sess-1", "Priya", id=1)
    repo.add_user_photo(profile.id, USER_PHOTO_URL, "saree.jpg", id=7)
    repo.add_garment(Garment(
        id=3,
        name_id="SAR003",
        garment_name="Silk Saree",
        category="Saree",
        garment_type="Traditional",
        color="Red",
        pattern_style="Embroidered",
    ))
    repo.add_garment_image(3, GARMENT_IMAGE_URL, is_primary=True)

    other = repo.add_profile("sess-2", id=2)
    repo.add_user_photo(other.id, "https://cdn.example.com/user-photos/2/me.jpg", id=8)
    return repo


@pytest.fixture
def remote():
    """Fake remote with both source images and a successful generation."""
    fake = FakeRemote()
    fake.routes[("GET", GARMENT_IMAGE_URL)] = httpx.Response(200, content=GARMENT_JPEG)
    fake.routes[("GET", USER_PHOTO_URL)] = httpx.Response(200, content=PHOTO_JPEG)
    fake.routes[("POST", IMAGE_ENDPOINT)] = httpx.Response(200, json=image_response(b"PNGBYTES"))
    return fake


@pytest.fixture
def pipeline(config, repository, remote):
    """Pipeline wired to the fake remote and local temp storage."""
    return TryOnPipeline(
        config,
        repository,
        gemini=GeminiClient(config.gemini, transport=remote.transport),
        fetcher=ImageFetcher(transport=remote.transport),
    )
