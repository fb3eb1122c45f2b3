from __future__ import annotations

from typing import Any, Iterator, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import ClientError

from providers.storage import ClosingIterator, ObjectInfo, ObjectStore

_MISSING_CODES = ("404", "NoSuchKey", "NoSuchBucket", "NotFound")


def _error_code(exc: ClientError) -> str:
    return str((exc.response or {}).get("Error", {}).get("Code", ""))


class S3ObjectStore(ObjectStore):
    """
    Native AWS S3 ObjectStore.

    Uses the static keys from settings when present, otherwise falls back to
    boto3 credential resolution (IRSA in EKS, instance profile, ...).

    Env (see core.settings):
      - S3_REGION or AWS_REGION
      - S3_ADDRESS is ignored unless it points somewhere other than the
        MinIO default, in which case it is used as endpoint_url
      - STORE_TIMEOUT_SECONDS
    """

    def __init__(
        self,
        region: Optional[str] = None,
        access_key: str = "",
        secret_key: str = "",
        endpoint_url: Optional[str] = None,
        timeout_seconds: float = 10.0,
        client: Any = None,
    ):
        if client is None:
            # No retries against the store; bounded connect/read.
            cfg = Config(
                retries={"total_max_attempts": 1, "mode": "standard"},
                region_name=region,
                connect_timeout=timeout_seconds,
                read_timeout=timeout_seconds,
                signature_version="s3v4",
            )
            kwargs: dict = {"config": cfg}
            if endpoint_url:
                kwargs["endpoint_url"] = endpoint_url
            if access_key and secret_key:
                kwargs["aws_access_key_id"] = access_key
                kwargs["aws_secret_access_key"] = secret_key
            client = boto3.client("s3", **kwargs)
        self.s3 = client

    @classmethod
    def from_settings(cls, store) -> "S3ObjectStore":
        endpoint = store.endpoint
        if not endpoint or endpoint == "http://minio:9000":
            endpoint = None
        return cls(
            region=store.region,
            access_key=store.access_key,
            secret_key=store.secret_key,
            endpoint_url=endpoint,
            timeout_seconds=store.timeout_seconds,
        )

    def stat_object(self, container: str, key: str) -> ObjectInfo:
        try:
            resp = self.s3.head_object(Bucket=container, Key=key)
        except ClientError as e:
            if _error_code(e) in _MISSING_CODES:
                raise FileNotFoundError(f"{container}/{key}") from e
            raise
        return ObjectInfo(
            container=container,
            key=key,
            size=resp.get("ContentLength"),
            content_type=resp.get("ContentType"),
            etag=resp.get("ETag"),
        )

    def open_object(self, container: str, key: str, chunk_size: int = 64 * 1024) -> Iterator[bytes]:
        try:
            resp = self.s3.get_object(Bucket=container, Key=key)
        except ClientError as e:
            if _error_code(e) in _MISSING_CODES:
                raise FileNotFoundError(f"{container}/{key}") from e
            raise
        body = resp["Body"]
        return ClosingIterator(body.iter_chunks(chunk_size), body.close)

    def presign_get_url(self, container: str, key: str, ttl_seconds: int = 60) -> str:
        return self.s3.generate_presigned_url(
            ClientMethod="get_object",
            Params={"Bucket": container, "Key": key},
            ExpiresIn=max(1, int(ttl_seconds)),
        )

    def close(self) -> None:
        self.s3.close()
