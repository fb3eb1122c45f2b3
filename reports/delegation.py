from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Iterator, Optional, Protocol, Union
from urllib.parse import quote, urlsplit

from core.errors import ConfigurationError, RetrievalFailed, UpstreamSigningError
from providers.storage import ObjectStore
from reports.canonical import build_canonical_request, content_type_for, format_amz_date
from reports.locator import ObjectLocator
from reports.signer import Credentials, RequestSigner

log = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------
# Delegation artifacts
# ---------------------------------------------------------------------

@dataclass(frozen=True)
class HeaderDelegation:
    locator: ObjectLocator
    authorization: str
    amz_date: str
    redirect_path: str
    filename: str
    expiry_hint: datetime


@dataclass(frozen=True)
class URLDelegation:
    locator: ObjectLocator
    full_url: str
    redirect_path: str
    filename: str
    expires_at: datetime


@dataclass(frozen=True)
class StreamDelegation:
    locator: ObjectLocator
    content_type: str
    content_disposition: str
    filename: str
    byte_stream: Iterator[bytes]


Delegation = Union[HeaderDelegation, URLDelegation, StreamDelegation]


class DelegationStrategy(Protocol):
    name: str

    def delegate(self, locator: ObjectLocator) -> Delegation: ...


def _redirect_path(prefix: str, path: str, query: str = "") -> str:
    if not path.startswith("/"):
        path = "/" + path
    target = f"{prefix}{path}"
    if query:
        target = f"{target}?{query}"
    return target


# ---------------------------------------------------------------------
# Strategies
# ---------------------------------------------------------------------

class HeaderStrategy:
    """
    Signs the request locally and lets the reverse proxy fetch the object
    with the resulting X-Authorization header. No store I/O happens here.

    The redirect target is relative to the proxy location, which is already
    bound to the container, so only the key is appended to the prefix.
    """

    name = "header"

    def __init__(
        self,
        signer: RequestSigner,
        accel_prefix: str = "/internal/report-files",
        validity_seconds: int = 60,
        clock: Optional[Clock] = None,
    ):
        self.signer = signer
        self.accel_prefix = accel_prefix
        self.validity = timedelta(seconds=validity_seconds)
        self._clock = clock or _utcnow

    def delegate(self, locator: ObjectLocator) -> HeaderDelegation:
        now = self._clock()
        amz_date = format_amz_date(now)
        canonical = build_canonical_request(
            locator,
            content_type=content_type_for(locator.filename),
            timestamp=amz_date,
        )
        return HeaderDelegation(
            locator=locator,
            authorization=self.signer.authorization(canonical),
            amz_date=amz_date,
            redirect_path=_redirect_path(self.accel_prefix, quote(locator.key, safe="/")),
            filename=locator.filename,
            expiry_hint=now + self.validity,
        )


class PresignedUrlStrategy:
    """
    Asks the store to presign a GET and hands the proxy the resulting path
    and query. The URL carries its own expiry; the store rejects it after
    `ttl_seconds`.
    """

    name = "presigned"

    def __init__(
        self,
        store: ObjectStore,
        accel_prefix: str = "/internal/report-files",
        ttl_seconds: int = 60,
        clock: Optional[Clock] = None,
    ):
        self.store = store
        self.accel_prefix = accel_prefix
        self.ttl_seconds = ttl_seconds
        self._clock = clock or _utcnow

    def delegate(self, locator: ObjectLocator) -> URLDelegation:
        issued_at = self._clock()
        try:
            url = self.store.presign_get_url(locator.container, locator.key, ttl_seconds=self.ttl_seconds)
        except Exception as exc:
            raise UpstreamSigningError(
                f"Store failed to presign {locator.path}: {exc}", original_error=exc
            ) from exc

        parts = urlsplit(url)
        return URLDelegation(
            locator=locator,
            full_url=url,
            redirect_path=_redirect_path(self.accel_prefix, parts.path, parts.query),
            filename=locator.filename,
            expires_at=issued_at + timedelta(seconds=self.ttl_seconds),
        )


class StreamStrategy:
    """
    Streams the object through the gateway.

    Stat, open and the first read all happen inside delegate(), so a failure
    there is still a clean error status; once the response is committed a
    failure can only be logged and the stream cut short.
    """

    name = "stream"

    def __init__(self, store: ObjectStore, chunk_size: int = 64 * 1024):
        self.store = store
        self.chunk_size = chunk_size

    def delegate(self, locator: ObjectLocator) -> StreamDelegation:
        try:
            info = self.store.stat_object(locator.container, locator.key)
        except Exception as exc:
            raise RetrievalFailed(f"Could not stat {locator.path}: {exc}", original_error=exc) from exc

        try:
            body = self.store.open_object(locator.container, locator.key, chunk_size=self.chunk_size)
        except Exception as exc:
            raise RetrievalFailed(f"Could not open {locator.path}: {exc}", original_error=exc) from exc

        try:
            first = next(body, b"")
        except Exception as exc:
            _close_quietly(body)
            raise RetrievalFailed(f"Could not read {locator.path}: {exc}", original_error=exc) from exc

        filename = locator.filename
        content_type = info.content_type or content_type_for(filename) or "application/octet-stream"
        return StreamDelegation(
            locator=locator,
            content_type=content_type,
            content_disposition=attachment_disposition(filename),
            filename=filename,
            byte_stream=_Relay(locator, first, body),
        )


def _close_quietly(body) -> None:
    close = getattr(body, "close", None)
    if close is None:
        return
    try:
        close()
    except Exception:
        log.warning("Failed to release store response", exc_info=True)


def attachment_disposition(filename: str) -> str:
    """
    Content-Disposition for a download.

    Plain ASCII names go out bare. Anything else gets a quoted ASCII
    fallback plus an RFC 5987 filename* so the header stays Latin-1 safe.
    """
    if filename and all(33 <= ord(c) < 127 and c not in '"\\;,' for c in filename):
        return f"attachment; filename={filename}"
    fallback = "".join(c if 32 <= ord(c) < 127 and c not in '"\\' else "_" for c in filename)
    return f"attachment; filename=\"{fallback}\"; filename*=UTF-8''{quote(filename, safe='')}"


class _Relay:
    """
    Body iterator handed to StreamingResponse.

    close() always releases the store response, even when no chunk was ever
    pulled (client gone before the body started, or the response failed to
    build).
    """

    def __init__(self, locator: ObjectLocator, first: bytes, body: Iterator[bytes]):
        self._locator = locator
        self._first = first
        self._body = body
        self._sent = 0
        self._closed = False

    def __iter__(self) -> "_Relay":
        return self

    def __next__(self) -> bytes:
        if self._closed:
            raise StopIteration
        if self._first:
            chunk, self._first = self._first, b""
        else:
            try:
                chunk = next(self._body)
            except StopIteration:
                self.close()
                raise
            except Exception:
                log.exception("Stream of %s aborted after %d bytes", self._locator.path, self._sent)
                self.close()
                raise StopIteration from None
        self._sent += len(chunk)
        return chunk

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        _close_quietly(self._body)


# ---------------------------------------------------------------------
# Selection
# ---------------------------------------------------------------------

def build_strategy(settings, store: Optional[ObjectStore] = None, clock: Optional[Clock] = None) -> DelegationStrategy:
    """
    One strategy per deployment, chosen by DELEGATION_STRATEGY.
    """
    d = settings.delegation
    if d.strategy == "header":
        try:
            signer = RequestSigner(
                Credentials(access_key_id=settings.store.access_key, secret_key=settings.store.secret_key),
                scheme=d.signature_scheme,
            )
        except ValueError as exc:
            raise ConfigurationError("S3_ACCESS_KEY / S3_SECRET_KEY not set", original_error=exc) from exc
        return HeaderStrategy(
            signer,
            accel_prefix=d.accel_redirect_prefix,
            validity_seconds=d.presign_ttl_seconds,
            clock=clock,
        )

    if store is None:
        raise ConfigurationError(f"Strategy {d.strategy!r} needs an object store")
    if d.strategy == "presigned":
        return PresignedUrlStrategy(
            store,
            accel_prefix=d.accel_redirect_prefix,
            ttl_seconds=d.presign_ttl_seconds,
            clock=clock,
        )
    if d.strategy == "stream":
        return StreamStrategy(store)

    raise ConfigurationError(f"Unknown delegation strategy: {d.strategy!r}")
