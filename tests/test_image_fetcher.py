"""Tests for ImageFetcher."""

import httpx
import pytest

from textile_tryon.errors import ImageFetchError
from textile_tryon.services import ImageFetcher

from conftest import FakeRemote


URL = "https://cdn.example.com/garments/1/a.jpg"


@pytest.fixture
def remote():
    return FakeRemote()


@pytest.fixture
def fetcher(remote):
    return ImageFetcher(timeout=5.0, transport=remote.transport)


@pytest.mark.asyncio
async def test_fetch_returns_body(fetcher, remote):
    remote.routes[("GET", URL)] = httpx.Response(200, content=b"jpeg-bytes")

    assert await fetcher.fetch(URL) == b"jpeg-bytes"
    assert remote.calls[0].headers["referer"] == "https://cdn.example.com/"


@pytest.mark.asyncio
async def test_http_error_status(fetcher, remote):
    remote.routes[("GET", URL)] = httpx.Response(403)

    with pytest.raises(ImageFetchError, match="HTTP 403") as excinfo:
        await fetcher.fetch(URL)

    assert excinfo.value.url == URL


@pytest.mark.asyncio
async def test_empty_body(fetcher, remote):
    remote.routes[("GET", URL)] = httpx.Response(200, content=b"")

    with pytest.raises(ImageFetchError, match="empty"):
        await fetcher.fetch(URL)


@pytest.mark.asyncio
@pytest.mark.parametrize("url", ["ftp://host/a.jpg", "not a url", "/relative/path.jpg"])
async def test_unsupported_urls_make_no_request(fetcher, remote, url):
    with pytest.raises(ImageFetchError, match="Unsupported"):
        await fetcher.fetch(url)

    assert remote.calls == []


@pytest.mark.asyncio
async def test_transport_error():
    def handler(request):
        raise httpx.ReadTimeout("timed out", request=request)

    fetcher = ImageFetcher(transport=httpx.MockTransport(handler))

    with pytest.raises(ImageFetchError, match="Failed to fetch"):
        await fetcher.fetch(URL)
