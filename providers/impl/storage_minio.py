from __future__ import annotations

from datetime import timedelta
from typing import Iterator, Optional

import urllib3
from minio import Minio
from minio.error import S3Error

from providers.storage import ClosingIterator, ObjectInfo, ObjectStore

_MISSING_CODES = ("NoSuchKey", "NoSuchObject", "NoSuchBucket")


def _strip_http(endpoint: str) -> str:
    # Minio client expects "host:port" (no scheme)
    endpoint = (endpoint or "").strip()
    endpoint = endpoint.replace("http://", "").replace("https://", "")
    endpoint = endpoint.rstrip("/")
    return endpoint


def _http_client(timeout_seconds: float) -> urllib3.PoolManager:
    # Bounded calls, no retries: a store outage must fail the request quickly.
    return urllib3.PoolManager(
        timeout=urllib3.Timeout(connect=timeout_seconds, read=timeout_seconds),
        retries=urllib3.Retry(total=0, redirect=0),
        maxsize=16,
    )


class MinioObjectStore(ObjectStore):
    """
    ObjectStore backed by the MinIO SDK; works against any S3-compatible
    endpoint.

    Env (see core.settings):
      - S3_ADDRESS (e.g. http://minio:9000, https:// enables TLS)
      - S3_ACCESS_KEY / S3_SECRET_KEY
      - S3_REGION (optional; avoids a bucket-location lookup when presigning)
      - STORE_TIMEOUT_SECONDS

    The underlying urllib3 pool is shared by all requests and is thread safe.
    """

    def __init__(
        self,
        endpoint: str,
        access_key: str,
        secret_key: str,
        secure: bool = False,
        region: Optional[str] = None,
        timeout_seconds: float = 10.0,
        client: Optional[Minio] = None,
    ):
        host = _strip_http(endpoint)
        if not host:
            raise RuntimeError("S3_ADDRESS is empty or invalid")

        self._http = None
        if client is None:
            self._http = _http_client(timeout_seconds)
            client = Minio(
                endpoint=host,
                access_key=access_key,
                secret_key=secret_key,
                secure=bool(secure),
                region=region,
                http_client=self._http,
            )
        self._client = client

    @classmethod
    def from_settings(cls, store) -> "MinioObjectStore":
        if not store.access_key or not store.secret_key:
            raise RuntimeError("S3_ACCESS_KEY / S3_SECRET_KEY not set")
        return cls(
            endpoint=store.endpoint,
            access_key=store.access_key,
            secret_key=store.secret_key,
            secure=store.secure,
            region=store.region,
            timeout_seconds=store.timeout_seconds,
        )

    def stat_object(self, container: str, key: str) -> ObjectInfo:
        try:
            obj = self._client.stat_object(bucket_name=container, object_name=key)
        except S3Error as e:
            # Missing objects raise FileNotFoundError, same as the S3 provider
            if getattr(e, "code", "") in _MISSING_CODES:
                raise FileNotFoundError(f"{container}/{key}") from e
            raise
        return ObjectInfo(
            container=container,
            key=key,
            size=obj.size,
            content_type=obj.content_type,
            etag=obj.etag,
        )

    def open_object(self, container: str, key: str, chunk_size: int = 64 * 1024) -> Iterator[bytes]:
        try:
            resp = self._client.get_object(bucket_name=container, object_name=key)
        except S3Error as e:
            if getattr(e, "code", "") in _MISSING_CODES:
                raise FileNotFoundError(f"{container}/{key}") from e
            raise

        def _release() -> None:
            try:
                resp.close()
            finally:
                resp.release_conn()

        return ClosingIterator(resp.stream(chunk_size), _release)

    def presign_get_url(self, container: str, key: str, ttl_seconds: int = 60) -> str:
        return self._client.presigned_get_object(
            bucket_name=container,
            object_name=key,
            expires=timedelta(seconds=max(1, int(ttl_seconds))),
        )

    def close(self) -> None:
        if self._http is not None:
            self._http.clear()
