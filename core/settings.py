from __future__ import annotations

import os
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Dict, Optional


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else str(v)


def _env_float(name: str, default: float) -> float:
    raw = _env(name, "")
    if not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_int(name: str, default: int) -> int:
    raw = _env(name, "")
    if not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _split_csv(value: str) -> list:
    return [x.strip() for x in (value or "").split(",") if x.strip()]


def _parse_file_table(value: str) -> Dict[str, str]:
    """
    Accept:
      - "q1=reports/2024/q1.xlsx"
      - "q1=reports/q1.xlsx, q2=reports/q2.xlsx"

    Entries without "=" are ignored; the path half is validated later by the
    locator resolver so a bad path fails at startup rather than here.
    """
    table: Dict[str, str] = {}
    for entry in _split_csv(value):
        ident, sep, path = entry.partition("=")
        ident = ident.strip()
        if not sep or not ident:
            continue
        table[ident] = path.strip()
    return table


# ---------------------------------------------------------------------
# Settings models
# ---------------------------------------------------------------------

@dataclass(frozen=True)
class StoreSettings:
    """
    Object store connection.

    backend:
      - "minio" -> MinioObjectStore (any S3-compatible endpoint)
      - "s3"    -> S3ObjectStore (AWS S3 via boto3)
    """
    backend: str
    endpoint: str = "http://minio:9000"
    access_key: str = ""
    secret_key: str = field(default="", repr=False)
    region: Optional[str] = None
    timeout_seconds: float = 10.0

    @property
    def secure(self) -> bool:
        return self.endpoint.lower().startswith("https://")


@dataclass(frozen=True)
class DelegationSettings:
    """
    strategy:
      - "header"    -> signed X-Authorization header for the reverse proxy
      - "presigned" -> store-presigned URL behind X-Accel-Redirect
      - "stream"    -> gateway streams the object bytes itself
    """
    strategy: str
    presign_ttl_seconds: int = 60
    accel_redirect_prefix: str = "/internal/report-files"
    signature_scheme: str = "AWS4"


@dataclass(frozen=True)
class ReportFileSettings:
    # Single-file deployments only set S3_FILE_PATH.
    default_path: str = ""
    files: Dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class Settings:
    store: StoreSettings
    delegation: DelegationSettings
    reports: ReportFileSettings
    log_level: str = "INFO"


# ---------------------------------------------------------------------
# Loaders
# ---------------------------------------------------------------------

def _normalize_strategy(raw: str) -> str:
    v = (raw or "").strip().lower()
    if v in ("header", "signed-header", "signed_header", "accel"):
        return "header"
    if v in ("presigned", "presign", "url", "presigned-url", "presigned_url"):
        return "presigned"
    if v in ("stream", "direct", "direct-stream", "direct_stream"):
        return "stream"
    # Unknown values are kept so build_strategy can reject them loudly.
    return v or "header"


def _normalize_backend(raw: str) -> str:
    v = (raw or "").strip().lower()
    if v in ("minio", "s3-compatible", "s3compat"):
        return "minio"
    if v in ("s3", "aws", "aws-s3"):
        return "s3"
    return v or "minio"


def _load_store_settings() -> StoreSettings:
    backend = _normalize_backend(_env("STORE_BACKEND", ""))
    endpoint = (_env("S3_ADDRESS", "") or "http://minio:9000").strip().rstrip("/")
    access_key = _env("S3_ACCESS_KEY", "").strip()
    secret_key = _env("S3_SECRET_KEY", "").strip()
    region = (_env("S3_REGION", "") or _env("AWS_REGION", "")).strip() or None

    timeout_seconds = max(1.0, _env_float("STORE_TIMEOUT_SECONDS", 10.0))

    return StoreSettings(
        backend=backend,
        endpoint=endpoint,
        access_key=access_key,
        secret_key=secret_key,
        region=region,
        timeout_seconds=timeout_seconds,
    )


def _load_delegation_settings() -> DelegationSettings:
    strategy = _normalize_strategy(_env("DELEGATION_STRATEGY", ""))
    ttl = max(1, _env_int("PRESIGN_TTL_SECONDS", 60))
    prefix = (_env("ACCEL_REDIRECT_PREFIX", "") or "/internal/report-files").strip().rstrip("/")
    scheme = (_env("SIGNATURE_SCHEME", "") or "AWS4").strip()

    return DelegationSettings(
        strategy=strategy,
        presign_ttl_seconds=ttl,
        accel_redirect_prefix=prefix,
        signature_scheme=scheme,
    )


def _load_report_file_settings() -> ReportFileSettings:
    return ReportFileSettings(
        default_path=_env("S3_FILE_PATH", "").strip(),
        files=_parse_file_table(_env("REPORT_FILES", "")),
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings(
        store=_load_store_settings(),
        delegation=_load_delegation_settings(),
        reports=_load_report_file_settings(),
        log_level=(_env("LOG_LEVEL", "") or "INFO").strip().upper(),
    )
