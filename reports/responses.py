from __future__ import annotations

from urllib.parse import quote

from fastapi import Response
from fastapi.responses import StreamingResponse
from starlette.background import BackgroundTask

from reports.delegation import Delegation, HeaderDelegation, StreamDelegation, URLDelegation

ACCEL_REDIRECT = "X-Accel-Redirect"
AUTHORIZATION = "X-Authorization"
AMZ_DATE = "X-Amz-Date"
FILENAME = "X-Filename"


def _filename_header(filename: str) -> str:
    # Header values must stay Latin-1; the edge decodes the percent escapes.
    return quote(filename, safe="")


def compose_response(delegation: Delegation) -> Response:
    """
    Translate a delegation into the wire response.

    Header/URL delegations carry no body: the reverse proxy follows
    X-Accel-Redirect and serves the object itself. For the header strategy
    X-Amz-Date is the exact timestamp that was signed, which the proxy
    forwards as x-amz-date so the store rebuilds the same canonical string.
    """
    if isinstance(delegation, HeaderDelegation):
        return Response(
            status_code=200,
            headers={
                ACCEL_REDIRECT: delegation.redirect_path,
                AUTHORIZATION: delegation.authorization,
                AMZ_DATE: delegation.amz_date,
                FILENAME: _filename_header(delegation.filename),
            },
        )

    if isinstance(delegation, URLDelegation):
        return Response(
            status_code=200,
            headers={
                ACCEL_REDIRECT: delegation.redirect_path,
                FILENAME: _filename_header(delegation.filename),
            },
        )

    if isinstance(delegation, StreamDelegation):
        stream = delegation.byte_stream
        close = getattr(stream, "close", None)
        return StreamingResponse(
            stream,
            status_code=200,
            media_type=delegation.content_type,
            headers={"Content-Disposition": delegation.content_disposition},
            # Runs after the body is sent or the client disconnects.
            background=BackgroundTask(close) if close is not None else None,
        )

    raise TypeError(f"Unsupported delegation: {type(delegation).__name__}")


def release(delegation: Delegation) -> None:
    """Drop any store resources a delegation holds without sending it."""
    if isinstance(delegation, StreamDelegation):
        close = getattr(delegation.byte_stream, "close", None)
        if close is not None:
            close()
