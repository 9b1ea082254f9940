"""Tests for the local and S3 storage backends."""

from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError

from textile_tryon.config import StorageConfig
from textile_tryon.errors import StorageError
from textile_tryon.services import LocalFileStorage, S3Storage, create_storage
from textile_tryon.services.storage import tryon_namespace, unique_key


def test_tryon_namespace():
    assert tryon_namespace(1, 3) == "tryon-results/1/3"


def test_unique_key_extension_follows_content(minimal_png_bytes):
    png_key = unique_key("tryon-results/1/3", minimal_png_bytes)
    jpeg_key = unique_key("tryon-results/1/3", b"\xff\xd8\xff\xe0data")

    assert png_key.startswith("tryon-results/1/3_")
    assert png_key.endswith(".png")
    assert jpeg_key.endswith(".jpg")
    assert unique_key("ns", b"x") != unique_key("ns", b"x")


class TestLocalFileStorage:

    @pytest.fixture
    def storage(self, tmp_path):
        return LocalFileStorage(tmp_path / "uploads", "http://testserver/files/")

    def test_store_writes_file(self, storage, tmp_path):
        url = storage.store(b"\xff\xd8\xffimage", "tryon-results/1/3")

        assert url.startswith("http://testserver/files/tryon-results/1/3_")
        path = tmp_path / "uploads" / url.removeprefix("http://testserver/files/")
        assert path.read_bytes() == b"\xff\xd8\xffimage"

    def test_delete_removes_file(self, storage, tmp_path):
        url = storage.store(b"image", "tryon-results/1/3")
        path = tmp_path / "uploads" / url.removeprefix("http://testserver/files/")

        storage.delete(url)

        assert not path.exists()

    def test_delete_missing_file_is_quiet(self, storage):
        storage.delete("http://testserver/files/tryon-results/1/3_gone.jpg")

    def test_delete_refuses_paths_outside_root(self, storage, tmp_path):
        outside = tmp_path / "secret.txt"
        outside.write_text("keep me")

        storage.delete("http://testserver/files/../secret.txt")

        assert outside.exists()

    def test_delete_ignores_foreign_urls(self, storage, tmp_path):
        kept = tmp_path / "uploads" / "a.jpg"
        kept.parent.mkdir(parents=True)
        kept.write_bytes(b"x")

        storage.delete("https://elsewhere.example.com/a.jpg")

        assert kept.exists()


class TestS3Storage:

    @pytest.fixture
    def s3_client(self):
        return MagicMock()

    @pytest.fixture
    def storage(self, s3_client):
        return S3Storage("tryon-bucket", "ap-south-1", client=s3_client)

    def test_store_puts_object(self, storage, s3_client):
        url = storage.store(b"\xff\xd8\xffimage", "tryon-results/1/3")

        kwargs = s3_client.put_object.call_args.kwargs
        assert kwargs["Bucket"] == "tryon-bucket"
        assert kwargs["Key"].startswith("tryon-results/1/3_")
        assert kwargs["Body"] == b"\xff\xd8\xffimage"
        assert kwargs["ContentType"] == "image/jpeg"
        assert url == f"https://tryon-bucket.s3.ap-south-1.amazonaws.com/{kwargs['Key']}"

    def test_custom_base_url(self, s3_client):
        storage = S3Storage("b", "us-east-1", base_url="https://cdn.example.com/", client=s3_client)

        url = storage.store(b"x", "ns")

        assert url.startswith("https://cdn.example.com/ns_")

    def test_delete_uses_key_from_url(self, storage, s3_client):
        storage.delete("https://tryon-bucket.s3.ap-south-1.amazonaws.com/tryon-results/1/3_abc.jpg")

        s3_client.delete_object.assert_called_once_with(
            Bucket="tryon-bucket", Key="tryon-results/1/3_abc.jpg"
        )

    def test_delete_ignores_other_buckets(self, storage, s3_client):
        storage.delete("https://other.s3.amazonaws.com/x.jpg")

        s3_client.delete_object.assert_not_called()

    def test_client_error_becomes_storage_error(self, storage, s3_client):
        s3_client.put_object.side_effect = ClientError(
            {"Error": {"Code": "AccessDenied", "Message": "denied"}}, "PutObject"
        )

        with pytest.raises(StorageError, match="Failed to upload"):
            storage.store(b"x", "ns")


class TestCreateStorage:

    def test_local_is_default(self, tmp_path):
        storage = create_storage(StorageConfig(local_path=tmp_path))

        assert isinstance(storage, LocalFileStorage)

    def test_s3_backend(self):
        storage = create_storage(StorageConfig(backend="s3", s3_bucket="tryon-bucket"))

        assert isinstance(storage, S3Storage)
        assert storage.bucket == "tryon-bucket"

    def test_s3_without_bucket(self):
        with pytest.raises(ValueError, match="s3_bucket"):
            create_storage(StorageConfig(backend="s3"))
