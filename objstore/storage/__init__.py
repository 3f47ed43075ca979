"""Storage driver contract, pagination and the bundled drivers."""

from objstore.storage.base import BaseStorage, ObjectStorage, format_range
from objstore.storage.listing import Listing, ListingState, PageCursor
from objstore.storage.objects import Object, parse_timestamp
from objstore.storage.registry import DriverRegistry, default_registry

__all__ = [
    "BaseStorage",
    "DriverRegistry",
    "Listing",
    "ListingState",
    "Object",
    "ObjectStorage",
    "PageCursor",
    "default_registry",
    "format_range",
    "parse_timestamp",
]
