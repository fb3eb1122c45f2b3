from __future__ import annotations

import posixpath
from dataclasses import dataclass
from datetime import datetime
from email.utils import format_datetime
from typing import Tuple

from reports.locator import ObjectLocator

# Deliberately small: unknown extensions sign with an empty content type,
# which is what the reverse proxy sends upstream for them as well.
CONTENT_TYPES = {
    ".xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    ".xls": "application/vnd.ms-excel",
    ".docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    ".pdf": "application/pdf",
}

AMZ_DATE_HEADER = "x-amz-date"


def content_type_for(filename: str) -> str:
    ext = posixpath.splitext(filename or "")[1].lower()
    return CONTENT_TYPES.get(ext, "")


def format_amz_date(moment: datetime) -> str:
    """
    RFC 1123 with a numeric offset, e.g. "Mon, 02 Jan 2006 15:04:05 -0700".

    email.utils keeps day/month names in English regardless of locale,
    which strftime("%a") does not.
    """
    if moment.tzinfo is None:
        raise ValueError("x-amz-date requires a timezone-aware datetime")
    return format_datetime(moment)


@dataclass(frozen=True)
class CanonicalRequest:
    method: str
    content_type: str
    timestamp: str
    signed_headers: Tuple[Tuple[str, str], ...]
    resource_path: str

    def to_string(self) -> str:
        # Fixed field order; the two empty slots are the query string and the
        # extra signed headers the verifier also leaves blank.
        lines = [self.method, "", self.content_type, ""]
        lines.extend(f"{name}:{value}" for name, value in self.signed_headers)
        lines.append(self.resource_path)
        return "\n".join(lines)

    @property
    def signed_header_names(self) -> Tuple[str, ...]:
        return tuple(name for name, _ in self.signed_headers)


def build_canonical_request(
    locator: ObjectLocator,
    content_type: str,
    timestamp: str,
    method: str = "GET",
) -> CanonicalRequest:
    return CanonicalRequest(
        method=method.upper(),
        content_type=content_type or "",
        timestamp=timestamp,
        signed_headers=((AMZ_DATE_HEADER, timestamp),),
        resource_path=locator.path,
    )
