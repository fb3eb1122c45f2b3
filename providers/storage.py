from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Iterable, Iterator, Optional, Protocol, runtime_checkable


@dataclass(frozen=True)
class ObjectInfo:
    container: str
    key: str
    size: Optional[int] = None
    content_type: Optional[str] = None
    etag: Optional[str] = None


class ClosingIterator:
    """
    Chunk iterator that runs `on_close` exactly once, whether the body was
    exhausted, failed mid-read, or was abandoned before the first chunk.
    """

    def __init__(self, chunks: Iterable[bytes], on_close: Callable[[], None]):
        self._chunks = iter(chunks)
        self._on_close = on_close
        self._closed = False

    def __iter__(self) -> "ClosingIterator":
        return self

    def __next__(self) -> bytes:
        if self._closed:
            raise StopIteration
        try:
            return next(self._chunks)
        except BaseException:
            self.close()
            raise

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._on_close()


@runtime_checkable
class ObjectStore(Protocol):
    """
    Read-only object store abstraction used by the delegation strategies.

    Not a general client: no listing, uploads, multipart or retries.
    """

    def stat_object(self, container: str, key: str) -> ObjectInfo: ...

    def open_object(self, container: str, key: str, chunk_size: int = 64 * 1024) -> Iterator[bytes]:
        """
        Return a chunk iterator over the object body.

        The request is issued eagerly; closing the iterator releases the
        underlying connection.
        """
        ...

    def presign_get_url(self, container: str, key: str, ttl_seconds: int = 60) -> str: ...

    def close(self) -> None: ...
