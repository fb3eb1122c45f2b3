from __future__ import annotations

from typing import Optional


class GatewayError(Exception):
    """
    Base class for every failure the report file gateway can raise.

    Carries the underlying exception (if any) so the router can log the
    real cause while still answering with a bare status code.
    """

    def __init__(self, message: str, original_error: Optional[BaseException] = None):
        super().__init__(message)
        self.original_error = original_error


class ConfigurationError(GatewayError):
    """Invalid deployment settings (unknown strategy, missing credentials)."""


class MalformedLocation(GatewayError):
    """A configured object path has no container/key separator."""


class ReportNotFound(GatewayError):
    """The identifier does not map to any configured report file."""


class UpstreamSigningError(GatewayError):
    """The object store failed to presign a URL."""


class RetrievalFailed(GatewayError):
    """The object could not be opened, stat'ed or copied for streaming."""
