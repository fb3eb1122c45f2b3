from datetime import timedelta
from unittest.mock import MagicMock, patch

import pytest
from botocore.exceptions import ClientError
from minio.error import S3Error

from core.errors import ConfigurationError
from core.settings import StoreSettings
from providers.factory import build_store
from providers.impl.storage_minio import MinioObjectStore
from providers.impl.storage_s3 import S3ObjectStore
from providers.storage import ClosingIterator

from fakes import make_settings


class _MissingKey(S3Error):
    code = "NoSuchKey"

    def __init__(self):
        Exception.__init__(self, "NoSuchKey")


# ---------------------------------------------------------------------
# MinIO
# ---------------------------------------------------------------------

def test_minio_client_is_built_with_bounded_pool():
    with patch("providers.impl.storage_minio.Minio") as minio_cls:
        store = MinioObjectStore("https://minio:9000/", "AKID", "secret", secure=True, region="us-east-1", timeout_seconds=3)

    kwargs = minio_cls.call_args.kwargs
    assert kwargs["endpoint"] == "minio:9000"
    assert kwargs["secure"] is True
    assert kwargs["region"] == "us-east-1"
    http = kwargs["http_client"]
    assert http.connection_pool_kw["timeout"].connect_timeout == 3
    assert http.connection_pool_kw["retries"].total == 0
    store.close()


def test_minio_presign_passes_ttl():
    client = MagicMock()
    client.presigned_get_object.return_value = "http://minio:9000/bucket/key?X-Amz-Expires=60"
    store = MinioObjectStore("http://minio:9000", "AKID", "secret", client=client)

    assert store.presign_get_url("bucket", "key", ttl_seconds=60).endswith("X-Amz-Expires=60")
    client.presigned_get_object.assert_called_once_with(
        bucket_name="bucket", object_name="key", expires=timedelta(seconds=60)
    )


def test_minio_stat_maps_missing_to_file_not_found():
    client = MagicMock()
    client.stat_object.side_effect = _MissingKey()
    store = MinioObjectStore("http://minio:9000", "AKID", "secret", client=client)

    with pytest.raises(FileNotFoundError):
        store.stat_object("bucket", "key")


def test_minio_stat_returns_object_info():
    client = MagicMock()
    client.stat_object.return_value = MagicMock(size=12, content_type="application/pdf", etag="abc")
    store = MinioObjectStore("http://minio:9000", "AKID", "secret", client=client)

    info = store.stat_object("bucket", "a/b.pdf")
    assert (info.container, info.key, info.size, info.content_type, info.etag) == ("bucket", "a/b.pdf", 12, "application/pdf", "abc")


def test_minio_open_releases_connection():
    resp = MagicMock()
    resp.stream.return_value = iter([b"ab", b"cd"])
    client = MagicMock()
    client.get_object.return_value = resp
    store = MinioObjectStore("http://minio:9000", "AKID", "secret", client=client)

    body = store.open_object("bucket", "key", chunk_size=2)
    assert list(body) == [b"ab", b"cd"]
    resp.stream.assert_called_once_with(2)
    resp.close.assert_called_once()
    resp.release_conn.assert_called_once()


def test_minio_open_released_even_if_never_read():
    resp = MagicMock()
    resp.stream.return_value = iter([b"ab"])
    client = MagicMock()
    client.get_object.return_value = resp
    store = MinioObjectStore("http://minio:9000", "AKID", "secret", client=client)

    store.open_object("bucket", "key").close()
    resp.release_conn.assert_called_once()


# ---------------------------------------------------------------------
# AWS S3
# ---------------------------------------------------------------------

def test_s3_client_disables_retries_and_bounds_timeouts():
    with patch("providers.impl.storage_s3.boto3") as boto3_mod:
        S3ObjectStore(region="us-gov-west-1", access_key="AKID", secret_key="secret", timeout_seconds=4)

    args, kwargs = boto3_mod.client.call_args
    assert args == ("s3",)
    cfg = kwargs["config"]
    assert cfg.connect_timeout == 4
    assert cfg.read_timeout == 4
    assert cfg.retries["total_max_attempts"] == 1
    assert kwargs["aws_access_key_id"] == "AKID"
    assert "endpoint_url" not in kwargs


def test_s3_presign_and_stat():
    client = MagicMock()
    client.generate_presigned_url.return_value = "https://s3/bucket/key?X-Amz-Expires=60"
    client.head_object.return_value = {"ContentLength": 5, "ContentType": "application/pdf", "ETag": '"e"'}
    store = S3ObjectStore(client=client)

    assert store.presign_get_url("bucket", "key") == "https://s3/bucket/key?X-Amz-Expires=60"
    client.generate_presigned_url.assert_called_once_with(
        ClientMethod="get_object", Params={"Bucket": "bucket", "Key": "key"}, ExpiresIn=60
    )
    assert store.stat_object("bucket", "key").size == 5


def test_s3_missing_object():
    client = MagicMock()
    client.head_object.side_effect = ClientError({"Error": {"Code": "404"}}, "HeadObject")
    store = S3ObjectStore(client=client)
    with pytest.raises(FileNotFoundError):
        store.stat_object("bucket", "key")


def test_s3_open_closes_body():
    body = MagicMock()
    body.iter_chunks.return_value = iter([b"xy"])
    client = MagicMock()
    client.get_object.return_value = {"Body": body}
    store = S3ObjectStore(client=client)

    it = store.open_object("bucket", "key", chunk_size=8)
    assert isinstance(it, ClosingIterator)
    assert list(it) == [b"xy"]
    body.iter_chunks.assert_called_once_with(8)
    body.close.assert_called_once()


# ---------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------

def test_factory_requires_credentials_for_minio():
    with pytest.raises(ConfigurationError):
        build_store(make_settings("stream", access_key="", secret_key=""))


def test_factory_rejects_unknown_backend():
    with pytest.raises(ConfigurationError):
        build_store(make_settings("stream", backend="tape"))


def test_factory_builds_minio_store():
    with patch("providers.impl.storage_minio.Minio"):
        store = build_store(make_settings("stream"))
    assert isinstance(store, MinioObjectStore)


def test_store_settings_secure_flag():
    assert StoreSettings(backend="minio", endpoint="https://x").secure
    assert not StoreSettings(backend="minio", endpoint="http://x").secure
