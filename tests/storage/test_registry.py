"""Tests for the driver registry."""

import pytest

from objstore.errors import UnsupportedSchemeError
from objstore.storage.local import LocalStorage
from objstore.storage.registry import DriverRegistry, default_registry


class TestDriverRegistry:
    def test_resolve_passes_endpoint_and_keys(self):
        calls = []
        registry = DriverRegistry()
        registry.register("mem", lambda endpoint, ak, sk, **options: calls.append((endpoint, ak, sk, options)) or "driver")

        driver = registry.resolve("mem://bucket.region/path", "ak", "sk", timeout=5)

        assert driver == "driver"
        assert calls == [("mem://bucket.region/path", "ak", "sk", {"timeout": 5})]

    def test_scheme_is_case_insensitive(self):
        registry = DriverRegistry()
        registry.register("MEM", lambda endpoint, ak, sk, **options: endpoint)

        assert registry.resolve("Mem://bucket") == "Mem://bucket"
        assert "mem" in registry

    def test_last_registration_wins(self):
        registry = DriverRegistry()
        registry.register("mem", lambda endpoint, ak, sk, **options: "first")
        registry.register("mem", lambda endpoint, ak, sk, **options: "second")

        assert registry.resolve("mem://bucket") == "second"

    def test_unknown_scheme(self):
        registry = DriverRegistry()

        with pytest.raises(UnsupportedSchemeError, match="ftp"):
            registry.resolve("ftp://bucket")

    def test_uri_without_scheme(self):
        registry = default_registry()

        with pytest.raises(UnsupportedSchemeError):
            registry.resolve("just-a-bucket")

    def test_registries_are_independent(self):
        first = DriverRegistry()
        second = DriverRegistry()
        first.register("mem", lambda endpoint, ak, sk, **options: None)

        assert "mem" not in second


class TestDefaultRegistry:
    def test_bundled_schemes(self):
        assert default_registry().schemes() == ["file", "gs", "minio", "s3"]

    def test_resolves_local_driver(self, tmp_path):
        driver = default_registry().resolve(f"file://{tmp_path}")

        assert isinstance(driver, LocalStorage)
        assert driver.base_path == tmp_path
