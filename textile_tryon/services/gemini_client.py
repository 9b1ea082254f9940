"""Gemini generateContent client for virtual try-on image generation."""

import base64
import binascii
import logging
from typing import Any

import httpx

from ..config import GeminiConfig
from ..errors import RemoteServiceError
from ..utils.image_types import detect_mime_type


logger = logging.getLogger(__name__)

# Both spellings show up in generateContent responses depending on API version
INLINE_DATA_KEYS = ("inlineData", "inline_data")


def build_generate_request(garment_image: bytes, user_photo: bytes, prompt: str) -> dict[str, Any]:
    """Build the generateContent body for a try-on.

    Part order is garment image, user photo, then the text prompt. The API
    reads the images in that order and the prompts are written against it.
    """
    return {
        "contents": [
            {
                "parts": [
                    {
                        "inline_data": {
                            "mime_type": detect_mime_type(garment_image),
                            "data": base64.b64encode(garment_image).decode("ascii"),
                        }
                    },
                    {
                        "inline_data": {
                            "mime_type": detect_mime_type(user_photo),
                            "data": base64.b64encode(user_photo).decode("ascii"),
                        }
                    },
                    {"text": prompt},
                ]
            }
        ]
    }


def _first_candidate_parts(body: Any) -> list[dict[str, Any]]:
    try:
        parts = body["candidates"][0]["content"]["parts"]
    except (KeyError, IndexError, TypeError) as exc:
        raise RemoteServiceError("Gemini response has no candidate content") from exc
    if not isinstance(parts, list):
        raise RemoteServiceError("Gemini response parts is not a list")
    return parts


def parse_image_response(body: Any) -> bytes:
    """Return the decoded bytes of the first inline image in a response.

    Parts without inline data, or with empty ``data``, are skipped.
    """
    for part in _first_candidate_parts(body):
        if not isinstance(part, dict):
            continue
        for key in INLINE_DATA_KEYS:
            inline = part.get(key)
            if not isinstance(inline, dict) or not inline.get("data"):
                continue
            data = inline["data"]
            if not isinstance(data, str):
                raise RemoteServiceError(
                    f"Gemini returned image data of type {type(data).__name__}, expected a base64 string"
                )
            try:
                return base64.b64decode(data, validate=True)
            except (binascii.Error, ValueError) as exc:
                raise RemoteServiceError("Gemini returned invalid base64 image data") from exc
    raise RemoteServiceError("Gemini response contained no image data")


def parse_text_response(body: Any) -> str:
    """Concatenate the text parts of the first candidate."""
    text = "".join(
        part["text"]
        for part in _first_candidate_parts(body)
        if isinstance(part, dict) and isinstance(part.get("text"), str)
    )
    if not text.strip():
        raise RemoteServiceError("Gemini response contained no text")
    return text.strip()


class GeminiClient:
    """Client for Gemini's generateContent endpoint."""

    def __init__(
        self,
        config: GeminiConfig,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.config = config
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=self.config.request_timeout_seconds,
                transport=self._transport,
            )
        return self._client

    @property
    def _headers(self) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "x-goog-api-key": self.config.api_key,
        }

    async def check_connection(self) -> bool:
        """Verify the API key can see the configured image model."""
        if not self.config.api_key:
            return False
        url = f"{self.config.api_base_url.rstrip('/')}/models/{self.config.image_model}"
        try:
            response = await self.client.get(url, headers=self._headers)
            return response.status_code == 200
        except httpx.HTTPError:
            return False

    async def _post(self, model_name: str, payload: dict[str, Any]) -> Any:
        url = self.config.endpoint(model_name)
        try:
            response = await self.client.post(url, json=payload, headers=self._headers)
        except httpx.HTTPError as exc:
            raise RemoteServiceError(f"Gemini request failed: {exc}") from exc

        if response.status_code != 200:
            raise RemoteServiceError(
                f"Gemini returned HTTP {response.status_code}: {response.text[:500]}",
                status_code=response.status_code,
            )

        try:
            return response.json()
        except ValueError as exc:
            raise RemoteServiceError("Gemini returned a non-JSON body") from exc

    async def generate_image(self, garment_image: bytes, user_photo: bytes, prompt: str) -> bytes:
        """Generate a try-on image from a garment photo and a user photo.

        Args:
            garment_image: Raw bytes of the garment's primary image
            user_photo: Raw bytes of the user's photo
            prompt: Instruction text for the image model

        Returns:
            Decoded bytes of the generated image
        """
        payload = build_generate_request(garment_image, user_photo, prompt)
        logger.debug(
            "Calling %s with %d + %d image bytes",
            self.config.image_model, len(garment_image), len(user_photo),
        )
        body = await self._post(self.config.image_model, payload)
        return parse_image_response(body)

    async def generate_text(self, prompt: str) -> str:
        """Run a text-only prompt against the configured text model."""
        payload = {"contents": [{"parts": [{"text": prompt}]}]}
        body = await self._post(self.config.text_model, payload)
        return parse_text_response(body)

    async def close(self):
        """Close the HTTP client."""
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
            self._client = None
