from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Mapping, Optional

from core.errors import MalformedLocation, ReportNotFound


@dataclass(frozen=True)
class ObjectLocator:
    """A (container, key) pair addressing exactly one object in the store."""

    container: str
    key: str

    @property
    def path(self) -> str:
        # Canonical resource path as the store reconstructs it.
        return f"/{self.container}/{self.key}"

    @property
    def filename(self) -> str:
        return self.key.rsplit("/", 1)[-1]


def parse_location(value: str) -> ObjectLocator:
    """
    Split "<container>/<key...>" on the first separator.

    A single leading "/" is tolerated so "/bucket/a.xlsx" and "bucket/a.xlsx"
    address the same object. Everything after the first separator belongs to
    the key, nested separators included.
    """
    raw = (value or "").strip()
    if raw.startswith("/"):
        raw = raw[1:]

    container, sep, key = raw.partition("/")
    if not sep:
        raise MalformedLocation(f"Object location has no container separator: {value!r}")
    if not container:
        raise MalformedLocation(f"Object location has an empty container: {value!r}")
    if not key or key.endswith("/"):
        raise MalformedLocation(f"Object location has an empty key: {value!r}")

    return ObjectLocator(container=container, key=key)


class LocatorResolver:
    """
    Maps report file identifiers to object locators.

    Every configured path is parsed up front, so a malformed deployment fails
    at construction time instead of on the first request.
    """

    def __init__(self, files: Optional[Mapping[str, str]] = None, default_path: str = ""):
        self._files: Dict[str, ObjectLocator] = {
            ident: parse_location(path) for ident, path in (files or {}).items()
        }
        self._default = parse_location(default_path) if default_path else None

        if not self._files and self._default is None:
            raise MalformedLocation("No report file location configured (S3_FILE_PATH / REPORT_FILES)")

    @classmethod
    def from_settings(cls, settings) -> "LocatorResolver":
        return cls(files=settings.reports.files, default_path=settings.reports.default_path)

    def resolve(self, identifier: str) -> ObjectLocator:
        locator = self._files.get(identifier)
        if locator is not None:
            return locator
        if self._default is not None:
            return self._default
        raise ReportNotFound(f"Unknown report file: {identifier!r}")
