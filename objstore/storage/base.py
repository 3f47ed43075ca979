"""Storage driver contract and the behavior shared by every driver."""

import io
import logging
from typing import BinaryIO, Protocol

from objstore.storage.listing import Listing, PageCursor
from objstore.storage.objects import Object

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 1000


class ObjectStorage(Protocol):
    """Protocol for storage drivers (cloud, self-hosted or local)."""

    def identity(self) -> str:
        """Canonical ``scheme://container`` string for this driver."""
        ...

    def create(self) -> None:
        """Ensure the container exists. Succeeds if the caller already owns it."""
        ...

    def get(self, key: str, offset: int = 0, limit: int = 0) -> BinaryIO:
        """Open a stream over ``key``, optionally restricted to a byte range."""
        ...

    def put(self, key: str, data: BinaryIO | bytes) -> None:
        """Upload ``data`` as ``key``, replacing any existing object."""
        ...

    def copy(self, dst: str, src: str) -> None:
        """Copy ``src`` to ``dst`` within the container."""
        ...

    def exists(self, key: str) -> None:
        """Return if ``key`` exists, raise NotFoundError otherwise."""
        ...

    def delete(self, key: str) -> None:
        """Delete ``key``. Raises NotFoundError if it is already absent."""
        ...

    def list(self, prefix: str = "", marker: str = "", limit: int = DEFAULT_PAGE_SIZE) -> list[Object]:
        """Return one page of objects, continuing the previous page if ``marker`` is set."""
        ...

    def start_listing(self, prefix: str = "", page_size: int = DEFAULT_PAGE_SIZE) -> Listing:
        """Start an independent listing sequence."""
        ...


def format_range(offset: int, limit: int) -> str | None:
    """Build an HTTP Range header value, or None for a whole-object read."""
    if offset < 0 or limit < 0:
        raise ValueError(f"Invalid range: offset={offset}, limit={limit}")
    if offset == 0 and limit == 0:
        return None
    if limit > 0:
        return f"bytes={offset}-{offset + limit - 1}"
    return f"bytes={offset}-"


def as_stream(data: BinaryIO | bytes) -> BinaryIO:
    """Wrap raw bytes so drivers can treat every payload as a stream."""
    if isinstance(data, (bytes, bytearray, memoryview)):
        return io.BytesIO(bytes(data))
    return data


def read_all(data: BinaryIO | bytes) -> bytes:
    """Buffer a payload fully, for backends that need the length up front."""
    if isinstance(data, (bytes, bytearray, memoryview)):
        return bytes(data)
    return data.read()


class BaseStorage:
    """Shared driver behavior.

    Subclasses implement ``_list_page`` plus the object operations; listing,
    the delete pre-check and the copy fallback are provided here.
    """

    scheme = ""

    def __init__(self):
        self._cursor = PageCursor(self._list_page)

    def identity(self) -> str:
        raise NotImplementedError

    def __str__(self) -> str:
        return self.identity()

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.identity()}>"

    def _list_page(self, prefix: str, token: str, limit: int) -> tuple[list[Object], str]:
        """Fetch one native page. Returns the objects and the next token ("" at the end)."""
        raise NotImplementedError

    def get(self, key: str, offset: int = 0, limit: int = 0) -> BinaryIO:
        raise NotImplementedError

    def put(self, key: str, data: BinaryIO | bytes) -> None:
        raise NotImplementedError

    def exists(self, key: str) -> None:
        raise NotImplementedError

    def _delete(self, key: str) -> None:
        raise NotImplementedError

    def delete(self, key: str) -> None:
        """Delete ``key``; a missing key raises NotFoundError from the pre-check."""
        self.exists(key)
        logger.debug("Deleting %s/%s", self.identity(), key)
        self._delete(key)

    def copy(self, dst: str, src: str) -> None:
        """Copy through the client for backends without a server-side copy."""
        with self.get(src) as reader:
            self.put(dst, reader)

    def list(self, prefix: str = "", marker: str = "", limit: int = DEFAULT_PAGE_SIZE) -> list[Object]:
        """Return one page of objects.

        Not safe for concurrent listing sequences on the same driver; use
        :meth:`start_listing` for that.
        """
        return self._cursor.list(prefix, marker, limit)

    def start_listing(self, prefix: str = "", page_size: int = DEFAULT_PAGE_SIZE) -> Listing:
        return Listing(self._list_page, prefix, page_size)
