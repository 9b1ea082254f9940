"""Storage for generated try-on images: local disk or S3."""

import logging
import uuid
from pathlib import Path
from typing import Protocol

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from ..config import StorageConfig
from ..errors import StorageError
from ..utils.image_types import detect_mime_type, extension_for


logger = logging.getLogger(__name__)

TRYON_RESULTS_FOLDER = "tryon-results"


def tryon_namespace(user_profile_id: int, garment_id: int) -> str:
    """Key prefix for a try-on result: one folder per profile, garment id first."""
    return f"{TRYON_RESULTS_FOLDER}/{user_profile_id}/{garment_id}"


def unique_key(namespace: str, image_bytes: bytes) -> str:
    """``{namespace}_{uuid}{ext}`` with the extension taken from the bytes."""
    extension = extension_for(detect_mime_type(image_bytes))
    return f"{namespace}_{uuid.uuid4().hex}{extension}"


class StorageService(Protocol):
    def store(self, image_bytes: bytes, namespace: str) -> str:
        """Write the bytes under a unique key in ``namespace``; return a public URL."""
        ...

    def delete(self, url: str) -> None:
        """Delete the object a URL returned by ``store`` points to."""
        ...


class LocalFileStorage:
    """Writes files below ``root`` and serves them from ``public_base_url``."""

    def __init__(self, root: Path, public_base_url: str):
        self.root = Path(root)
        self.public_base_url = public_base_url.rstrip("/")

    def _path_for_url(self, url: str) -> Path | None:
        prefix = self.public_base_url + "/"
        if not url.startswith(prefix):
            return None
        path = (self.root / url[len(prefix):]).resolve()
        # Refuse anything that escapes the storage root
        if not path.is_relative_to(self.root.resolve()):
            return None
        return path

    def store(self, image_bytes: bytes, namespace: str) -> str:
        key = unique_key(namespace, image_bytes)
        path = self.root / key
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(image_bytes)
        except OSError as exc:
            raise StorageError(f"Failed to write {path}: {exc}") from exc

        url = f"{self.public_base_url}/{key}"
        logger.info("Stored %d bytes at %s", len(image_bytes), url)
        return url

    def delete(self, url: str) -> None:
        path = self._path_for_url(url)
        if path is None:
            logger.warning("Not a local storage URL, skipping delete: %s", url)
            return
        try:
            path.unlink(missing_ok=True)
        except OSError as exc:
            raise StorageError(f"Failed to delete {path}: {exc}") from exc
        logger.info("Deleted %s", path)


class S3Storage:
    """Stores objects in an S3 bucket."""

    def __init__(
        self,
        bucket: str,
        region: str,
        base_url: str | None = None,
        client=None,
    ):
        self.bucket = bucket
        self.region = region
        self.base_url = (base_url or f"https://{bucket}.s3.{region}.amazonaws.com").rstrip("/")
        self._client = client

    @property
    def client(self):
        if self._client is None:
            self._client = boto3.client("s3", region_name=self.region)
        return self._client

    def store(self, image_bytes: bytes, namespace: str) -> str:
        key = unique_key(namespace, image_bytes)
        try:
            self.client.put_object(
                Bucket=self.bucket,
                Key=key,
                Body=image_bytes,
                ContentType=detect_mime_type(image_bytes),
            )
        except (BotoCoreError, ClientError) as exc:
            raise StorageError(f"Failed to upload {key} to S3: {exc}") from exc

        url = f"{self.base_url}/{key}"
        logger.info("Uploaded %d bytes to %s", len(image_bytes), url)
        return url

    def delete(self, url: str) -> None:
        prefix = self.base_url + "/"
        if not url.startswith(prefix):
            logger.warning("Not an S3 URL for bucket %s, skipping delete: %s", self.bucket, url)
            return
        key = url[len(prefix):]
        try:
            self.client.delete_object(Bucket=self.bucket, Key=key)
        except (BotoCoreError, ClientError) as exc:
            raise StorageError(f"Failed to delete {key} from S3: {exc}") from exc
        logger.info("Deleted s3://%s/%s", self.bucket, key)


def create_storage(config: StorageConfig) -> StorageService:
    """Pick the storage backend named in the configuration."""
    if config.backend == "s3":
        if not config.s3_bucket:
            raise ValueError("storage.s3_bucket is required when storage.backend is 's3'")
        return S3Storage(config.s3_bucket, config.s3_region, config.s3_base_url)
    return LocalFileStorage(config.local_path, config.public_base_url)
