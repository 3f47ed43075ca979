"""Uniform object storage across cloud, self-hosted and local backends."""

from objstore.errors import (
    AlreadyExistsError,
    ConfigurationError,
    InvalidKeyError,
    NotFoundError,
    RangeNotSatisfiableError,
    StorageError,
    TransportError,
    UnsupportedSchemeError,
)
from objstore.storage import DriverRegistry, Object, ObjectStorage, default_registry

__version__ = "0.1.0"

__all__ = [
    "AlreadyExistsError",
    "ConfigurationError",
    "DriverRegistry",
    "InvalidKeyError",
    "NotFoundError",
    "Object",
    "ObjectStorage",
    "RangeNotSatisfiableError",
    "StorageError",
    "TransportError",
    "UnsupportedSchemeError",
    "default_registry",
]
