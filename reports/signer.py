from __future__ import annotations

import base64
import hashlib
import hmac
from dataclasses import dataclass, field

from reports.canonical import CanonicalRequest


@dataclass(frozen=True)
class Credentials:
    access_key_id: str
    secret_key: str = field(repr=False)


def sign(canonical_request: str, secret_key: str) -> str:
    """
    HMAC-SHA256 over the UTF-8 canonical request, base64 encoded.

    Deterministic: no nonce, so the verifier can recompute it from the
    forwarded headers alone.
    """
    digest = hmac.new(
        secret_key.encode("utf-8"),
        canonical_request.encode("utf-8"),
        hashlib.sha256,
    ).digest()
    return base64.b64encode(digest).decode("ascii")


class RequestSigner:
    """Produces "<scheme> <access key>:<signature>" authorization values."""

    def __init__(self, credentials: Credentials, scheme: str = "AWS4"):
        if not credentials.access_key_id or not credentials.secret_key:
            raise ValueError("RequestSigner needs both an access key and a secret key")
        self._credentials = credentials
        self.scheme = scheme

    @property
    def access_key_id(self) -> str:
        return self._credentials.access_key_id

    def signature(self, canonical: CanonicalRequest) -> str:
        return sign(canonical.to_string(), self._credentials.secret_key)

    def authorization(self, canonical: CanonicalRequest) -> str:
        return f"{self.scheme} {self._credentials.access_key_id}:{self.signature(canonical)}"
