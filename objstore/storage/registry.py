"""Mapping from URI scheme to driver constructor."""

import logging
from typing import Callable
from urllib.parse import urlsplit

from objstore.errors import UnsupportedSchemeError
from objstore.storage.base import ObjectStorage

logger = logging.getLogger(__name__)

Constructor = Callable[..., ObjectStorage]


class DriverRegistry:
    """Factory map built once at startup and handed to whatever needs drivers."""

    def __init__(self):
        self._constructors: dict[str, Constructor] = {}

    def register(self, scheme: str, constructor: Constructor) -> None:
        """Register ``constructor(endpoint, access_key, secret_key, **options)`` for ``scheme``.

        Registering a scheme twice replaces the earlier constructor.
        """
        scheme = scheme.lower()
        if scheme in self._constructors:
            logger.warning("Driver for scheme %r registered twice, replacing", scheme)
        self._constructors[scheme] = constructor

    def schemes(self) -> list[str]:
        return sorted(self._constructors)

    def __contains__(self, scheme: str) -> bool:
        return scheme.lower() in self._constructors

    def resolve(self, uri: str, access_key: str = "", secret_key: str = "", **options) -> ObjectStorage:
        """Build a driver for ``uri``.

        Raises:
            UnsupportedSchemeError: No driver is registered for the scheme.
            ConfigurationError: The driver rejected the endpoint or credentials.
        """
        scheme = urlsplit(uri).scheme.lower() if "://" in uri else ""
        constructor = self._constructors.get(scheme)
        if constructor is None:
            raise UnsupportedSchemeError(
                f"Unsupported storage scheme {scheme!r} in {uri!r}, "
                f"expected one of: {', '.join(self.schemes())}"
            )
        logger.debug("Resolving %s with the %s driver", uri, scheme)
        return constructor(uri, access_key, secret_key, **options)


def default_registry() -> DriverRegistry:
    """Registry holding every bundled driver."""
    from objstore.storage.gs import new_gs
    from objstore.storage.local import new_local
    from objstore.storage.s3 import new_minio, new_s3

    registry = DriverRegistry()
    registry.register("file", new_local)
    registry.register("gs", new_gs)
    registry.register("s3", new_s3)
    registry.register("minio", new_minio)
    return registry
