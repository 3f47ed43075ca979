"""Configuration management using TOML."""

import os
from dataclasses import dataclass
from pathlib import Path

try:
    import tomllib
except ImportError:
    import tomli as tomllib

from objstore.storage import DriverRegistry, ObjectStorage

DEFAULT_CONFIG_PATH = "objstore.toml"


@dataclass
class StoreConfig:
    """Configuration for a single named store."""

    name: str
    uri: str
    enabled: bool = True
    access_key: str | None = None
    secret_key: str | None = None

    def validate(self) -> None:
        """Validate store configuration."""
        if not self.uri or "://" not in self.uri:
            raise ValueError(
                f"Store '{self.name}' has an invalid uri {self.uri!r}, expected scheme://container"
            )

    def credentials(self) -> tuple[str, str]:
        """Access and secret keys, falling back to ACCESS_KEY / SECRET_KEY."""
        access_key = self.access_key or os.environ.get("ACCESS_KEY", "")
        secret_key = self.secret_key or os.environ.get("SECRET_KEY", "")
        return access_key, secret_key


@dataclass
class StorageSettings:
    """Settings passed to every driver."""

    timeout_seconds: int = 300
    page_size: int = 1000
    chunk_size: int = 64 * 1024

    def driver_options(self) -> dict:
        return {"timeout": self.timeout_seconds, "chunk_size": self.chunk_size}


@dataclass
class Config:
    """Complete configuration."""

    storage: StorageSettings
    stores: list[StoreConfig]

    @classmethod
    def from_file(cls, config_path: str | Path = DEFAULT_CONFIG_PATH) -> "Config":
        """Load configuration from TOML file."""
        config_path = Path(config_path)

        if not config_path.exists():
            raise FileNotFoundError(
                f"Configuration file not found: {config_path}\n"
                f"Copy objstore.toml.example to objstore.toml and edit it with your stores."
            )

        with open(config_path, "rb") as f:
            data = tomllib.load(f)

        storage_data = data.get("storage", {})
        storage = StorageSettings(
            timeout_seconds=storage_data.get("timeout_seconds", 300),
            page_size=storage_data.get("page_size", 1000),
            chunk_size=storage_data.get("chunk_size", 64 * 1024),
        )

        stores = []
        for store_data in data.get("stores", []):
            store = StoreConfig(
                name=store_data["name"],
                uri=store_data["uri"],
                enabled=store_data.get("enabled", True),
                access_key=store_data.get("access_key"),
                secret_key=store_data.get("secret_key"),
            )
            stores.append(store)

        return cls(storage=storage, stores=stores)

    @classmethod
    def empty(cls) -> "Config":
        return cls(storage=StorageSettings(), stores=[])

    def get_enabled_stores(self) -> list[StoreConfig]:
        """Get list of enabled stores."""
        return [s for s in self.stores if s.enabled]

    def get_store(self, name: str) -> StoreConfig | None:
        """Get store by name."""
        for store in self.stores:
            if store.name == name:
                return store
        return None

    def validate(self) -> None:
        """Validate all enabled stores."""
        if self.storage.page_size <= 0:
            raise ValueError(f"page_size must be positive, got {self.storage.page_size}")
        for store in self.get_enabled_stores():
            store.validate()

    def open_store(self, target: str, registry: DriverRegistry) -> ObjectStorage:
        """Build a driver for a configured store name or a bare URI."""
        store = self.get_store(target)
        if store is None:
            store = StoreConfig(name=target, uri=target)
        store.validate()
        access_key, secret_key = store.credentials()
        return registry.resolve(store.uri, access_key, secret_key, **self.storage.driver_options())
