"""HTTP helpers shared by the requests-based drivers."""

import io
import logging
from typing import Callable

import requests

from objstore.errors import NotFoundError, RangeNotSatisfiableError, TransportError

logger = logging.getLogger(__name__)

REDIRECT_CODES = (301, 302, 307, 308)


class ResponseStream(io.RawIOBase):
    """Readable stream over a streamed ``requests`` response.

    ``skip`` and ``limit`` cut a byte range out of the body on the client
    side, for servers that answer a ranged GET with the whole object.
    """

    def __init__(self, response: requests.Response, chunk_size: int = 64 * 1024,
                 skip: int = 0, limit: int | None = None):
        self._response = response
        self._chunks = response.iter_content(chunk_size=chunk_size)
        self._buffer = b""
        self._skip = skip
        self._remaining = limit

    def readable(self) -> bool:
        return True

    def _next_chunk(self) -> bytes | None:
        while True:
            if self._remaining == 0:
                return None
            try:
                chunk = next(self._chunks)
            except StopIteration:
                return None
            except requests.exceptions.RequestException as e:
                raise TransportError(f"Download interrupted: {e}") from e
            if self._skip:
                dropped = min(self._skip, len(chunk))
                chunk = chunk[dropped:]
                self._skip -= dropped
            if self._remaining is not None:
                chunk = chunk[:self._remaining]
                self._remaining -= len(chunk)
            if chunk:
                return chunk

    def readinto(self, b) -> int:
        if not self._buffer:
            chunk = self._next_chunk()
            if chunk is None:
                return 0
            self._buffer = chunk
        n = min(len(b), len(self._buffer))
        b[:n] = self._buffer[:n]
        self._buffer = self._buffer[n:]
        return n

    def close(self) -> None:
        if not self.closed:
            self._response.close()
        super().close()


def open_stream(resp: requests.Response, offset: int, limit: int, chunk_size: int) -> ResponseStream:
    """Stream a successful GET body, trimming it if a requested range was ignored."""
    if resp.status_code == 200 and (offset or limit):
        logger.debug("Server ignored Range (offset=%d, limit=%d), trimming locally", offset, limit)
        return ResponseStream(resp, chunk_size, skip=offset, limit=limit or None)
    return ResponseStream(resp, chunk_size)


def call(operation: str, request: Callable[[], requests.Response]) -> requests.Response:
    """Run a request, turning connection-level failures into TransportError."""
    try:
        return request()
    except requests.exceptions.RequestException as e:
        raise TransportError(f"{operation} failed: {e}") from e


def check_response(resp: requests.Response, operation: str, key: str = "") -> requests.Response:
    """Map a non-2xx response onto the storage error kinds."""
    status = resp.status_code
    if 200 <= status < 300:
        return resp

    target = key or "bucket"
    if status == 404:
        raise NotFoundError(f"{target}: not found")
    if status == 416:
        raise RangeNotSatisfiableError(f"{target}: requested range not satisfiable")
    if status in REDIRECT_CODES:
        location = resp.headers.get("Location", "unknown")
        raise TransportError(
            f"{operation} redirected to: {location}", status_code=status, detail=location
        )
    detail = resp.text
    raise TransportError(
        f"{operation} failed for {target}: {status} {detail}", status_code=status, detail=detail
    )
