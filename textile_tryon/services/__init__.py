"""External service clients."""

from .gemini_client import GeminiClient
from .image_fetcher import ImageFetcher
from .storage import LocalFileStorage, S3Storage, StorageService, create_storage

__all__ = [
    "GeminiClient",
    "ImageFetcher",
    "LocalFileStorage",
    "S3Storage",
    "StorageService",
    "create_storage",
]
