import pytest

from core.settings import get_settings


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in (
        "DELEGATION_STRATEGY",
        "STORE_BACKEND",
        "S3_ADDRESS",
        "S3_ACCESS_KEY",
        "S3_SECRET_KEY",
        "S3_REGION",
        "AWS_REGION",
        "S3_FILE_PATH",
        "REPORT_FILES",
        "PRESIGN_TTL_SECONDS",
        "STORE_TIMEOUT_SECONDS",
        "ACCEL_REDIRECT_PREFIX",
        "SIGNATURE_SCHEME",
        "LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def test_defaults():
    s = get_settings()
    assert s.delegation.strategy == "header"
    assert s.delegation.presign_ttl_seconds == 60
    assert s.delegation.accel_redirect_prefix == "/internal/report-files"
    assert s.delegation.signature_scheme == "AWS4"
    assert s.store.backend == "minio"
    assert s.store.endpoint == "http://minio:9000"
    assert s.store.secure is False
    assert s.reports.files == {}
    assert s.log_level == "INFO"


@pytest.mark.parametrize(
    "raw, expected",
    [("presign", "presigned"), ("URL", "presigned"), ("direct", "stream"), ("accel", "header"), ("bogus", "bogus")],
)
def test_strategy_aliases(monkeypatch, raw, expected):
    monkeypatch.setenv("DELEGATION_STRATEGY", raw)
    assert get_settings().delegation.strategy == expected


def test_https_endpoint_selects_tls(monkeypatch):
    monkeypatch.setenv("S3_ADDRESS", "https://store.example.com:9000/")
    s = get_settings()
    assert s.store.secure is True
    assert s.store.endpoint == "https://store.example.com:9000"


def test_file_table_parsing(monkeypatch):
    monkeypatch.setenv("REPORT_FILES", "q1=bucket/reports/q1.xlsx, q2 = bucket/q2.pdf, junk, =bucket/x")
    assert get_settings().reports.files == {"q1": "bucket/reports/q1.xlsx", "q2": "bucket/q2.pdf"}


def test_bad_numbers_fall_back_and_are_clamped(monkeypatch):
    monkeypatch.setenv("PRESIGN_TTL_SECONDS", "soon")
    monkeypatch.setenv("STORE_TIMEOUT_SECONDS", "0")
    s = get_settings()
    assert s.delegation.presign_ttl_seconds == 60
    assert s.store.timeout_seconds == 1.0


def test_secret_not_in_settings_repr(monkeypatch):
    monkeypatch.setenv("S3_SECRET_KEY", "top-secret")
    assert "top-secret" not in repr(get_settings())
