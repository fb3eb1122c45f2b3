from __future__ import annotations

from core.errors import ConfigurationError
from providers.storage import ObjectStore


def build_store(settings) -> ObjectStore:
    """
    Construct the long-lived object store client for this deployment.

    Imports are local so a header-only deployment never pays for boto3.
    """
    backend = settings.store.backend
    try:
        if backend == "minio":
            from providers.impl.storage_minio import MinioObjectStore

            return MinioObjectStore.from_settings(settings.store)
        if backend == "s3":
            from providers.impl.storage_s3 import S3ObjectStore

            return S3ObjectStore.from_settings(settings.store)
    except RuntimeError as exc:
        raise ConfigurationError(str(exc), original_error=exc) from exc

    raise ConfigurationError(f"Unknown STORE_BACKEND: {backend!r}")
