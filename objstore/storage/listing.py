"""Paginated listing: the per-driver cursor and independent listing iterators.

Every backend has its own continuation-token format. Drivers expose a single
primitive, ``fetch(prefix, token, limit) -> (objects, next_token)``, where an
empty ``next_token`` means there are no more pages. The classes here turn that
primitive into the two listing styles callers use:

* :class:`PageCursor` backs ``driver.list(prefix, marker, limit)``. The cursor
  lives on the driver instance, so interleaved listing sequences on the same
  driver corrupt each other.
* :class:`Listing` is returned by ``driver.start_listing(prefix)`` and owns its
  cursor, so any number of listings can run against one driver.
"""

import enum
import logging
from typing import Callable, Iterator

from objstore.storage.objects import Object

logger = logging.getLogger(__name__)

PageFetcher = Callable[[str, str, int], tuple[list[Object], str]]


class ListingState(enum.Enum):
    """Where a listing sequence stands."""

    FRESH = "fresh"
    HAS_MORE = "has_more"
    EXHAUSTED = "exhausted"


class PageCursor:
    """Continuation token held by a driver between ``list()`` calls."""

    def __init__(self, fetch: PageFetcher):
        self._fetch = fetch
        self.token = ""
        self.state = ListingState.FRESH

    def list(self, prefix: str, marker: str, limit: int) -> list[Object]:
        """Return one page of objects.

        An empty ``marker`` starts a new sequence. A non-empty ``marker`` only
        signals continuation: the real cursor is the held token, and when none
        is held the sequence is over and an empty page is returned without
        calling the backend.
        """
        if marker:
            if not self.token:
                self.state = ListingState.EXHAUSTED
                return []
            token = self.token
        else:
            token = ""

        try:
            objects, next_token = self._fetch(prefix, token, limit)
        except Exception:
            self.reset()
            raise

        self.token = next_token or ""
        self.state = ListingState.HAS_MORE if self.token else ListingState.EXHAUSTED
        return objects

    def reset(self) -> None:
        self.token = ""
        self.state = ListingState.FRESH


class Listing:
    """Iterator over one listing sequence, independent of other listings."""

    def __init__(self, fetch: PageFetcher, prefix: str = "", page_size: int = 1000):
        if page_size <= 0:
            raise ValueError(f"page_size must be positive, got {page_size}")
        self._fetch = fetch
        self.prefix = prefix
        self.page_size = page_size
        self._token = ""
        self.state = ListingState.FRESH

    @property
    def exhausted(self) -> bool:
        return self.state is ListingState.EXHAUSTED

    def next_page(self) -> list[Object]:
        """Fetch the next page. Returns ``[]`` once the listing is exhausted.

        If the backend call fails the listing goes back to ``FRESH``, so a
        retry starts again from the first page.
        """
        if self.state is ListingState.EXHAUSTED:
            return []

        token = self._token if self.state is ListingState.HAS_MORE else ""
        try:
            objects, next_token = self._fetch(self.prefix, token, self.page_size)
        except Exception:
            logger.debug("Listing of prefix %r failed, resetting cursor", self.prefix)
            self._token = ""
            self.state = ListingState.FRESH
            raise

        self._token = next_token or ""
        self.state = ListingState.HAS_MORE if self._token else ListingState.EXHAUSTED
        return objects

    def pages(self) -> Iterator[list[Object]]:
        """Yield non-empty pages until the listing is exhausted."""
        while not self.exhausted:
            page = self.next_page()
            if page:
                yield page

    def __iter__(self) -> Iterator[Object]:
        for page in self.pages():
            yield from page
