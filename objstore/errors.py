"""Error kinds shared by every storage driver."""


class StorageError(Exception):
    """Base exception for object storage operations."""
    pass


class NotFoundError(StorageError):
    """The key or container does not exist."""
    pass


class AlreadyExistsError(StorageError):
    """The container already exists and is owned by the caller."""
    pass


class InvalidKeyError(StorageError, ValueError):
    """The key cannot be stored: it escapes the container, uses a reserved
    name, or collides with an existing object's path."""
    pass


class RangeNotSatisfiableError(StorageError):
    """The requested byte range lies outside the object."""
    pass


class UnsupportedSchemeError(StorageError):
    """No driver is registered for the URI scheme."""
    pass


class ConfigurationError(StorageError):
    """A driver could not be built: bad endpoint or missing credentials."""
    pass


class TransportError(StorageError):
    """Network or backend failure, with the backend's detail preserved."""

    def __init__(self, message: str, status_code: int | None = None, detail: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.detail = detail
