"""Download source images (garment photos, user photos) by URL."""

import logging
from urllib.parse import urlparse

import httpx

from ..errors import ImageFetchError


logger = logging.getLogger(__name__)

# Browser-like headers; some image hosts reject bare clients
DEFAULT_HEADERS = {
    "User-Agent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Accept": "image/avif,image/webp,image/apng,image/svg+xml,image/*,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
}


class ImageFetcher:
    """Fetches image bytes over HTTP(S)."""

    def __init__(
        self,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=self.timeout,
                follow_redirects=True,
                transport=self._transport,
            )
        return self._client

    async def fetch(self, url: str) -> bytes:
        """Download ``url`` and return the body.

        Raises:
            ImageFetchError: on an unsupported URL, transport error, non-2xx
                status or empty body.
        """
        parsed = urlparse(url)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ImageFetchError(f"Unsupported image URL: {url}", url=url)

        # Referer helps with hotlink protection
        origin = f"{parsed.scheme}://{parsed.netloc}"
        headers = {**DEFAULT_HEADERS, "Referer": origin + "/"}

        try:
            response = await self.client.get(url, headers=headers)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise ImageFetchError(
                f"Image server returned HTTP {exc.response.status_code} for {url}", url=url
            ) from exc
        except httpx.HTTPError as exc:
            raise ImageFetchError(f"Failed to fetch image {url}: {exc}", url=url) from exc

        if not response.content:
            raise ImageFetchError(f"Image at {url} is empty", url=url)

        logger.debug("Fetched %d bytes from %s", len(response.content), url)
        return response.content

    async def close(self):
        """Close the HTTP client."""
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
            self._client = None
