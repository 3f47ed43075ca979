"""Tests for the shared driver helpers."""

import io

import pytest

from objstore.errors import NotFoundError
from objstore.storage.base import BaseStorage, format_range
from objstore.storage.objects import Object, parse_timestamp


class DictStore(BaseStorage):
    """Minimal driver without a native copy."""

    def __init__(self):
        super().__init__()
        self.blobs = {}
        self.deleted = []

    def identity(self) -> str:
        return "dict://test"

    def get(self, key, offset=0, limit=0):
        if key not in self.blobs:
            raise NotFoundError(key)
        data = self.blobs[key]
        end = offset + limit if limit else len(data)
        return io.BytesIO(data[offset:end])

    def put(self, key, data):
        self.blobs[key] = data if isinstance(data, bytes) else data.read()

    def exists(self, key):
        if key not in self.blobs:
            raise NotFoundError(key)

    def _delete(self, key):
        self.deleted.append(key)
        del self.blobs[key]

    def _list_page(self, prefix, token, limit):
        return [], ""


class TestFormatRange:
    @pytest.mark.parametrize(
        "offset,limit,expected",
        [
            (0, 0, None),
            (5, 10, "bytes=5-14"),
            (95, 0, "bytes=95-"),
            (0, 1, "bytes=0-0"),
        ],
    )
    def test_values(self, offset, limit, expected):
        assert format_range(offset, limit) == expected

    def test_negative(self):
        with pytest.raises(ValueError):
            format_range(-1, 0)


class TestParseTimestamp:
    def test_rfc3339(self):
        assert parse_timestamp("1970-01-01T00:01:40Z") == 100
        assert parse_timestamp("1970-01-01T01:01:40+01:00") == 100

    def test_fraction(self):
        assert parse_timestamp("1970-01-01T00:01:40.999Z") == 100

    @pytest.mark.parametrize("value", [None, "", "garbage", "2024-13-45T00:00:00Z"])
    def test_unparsable(self, value):
        assert parse_timestamp(value) == 0


class TestBaseStorage:
    def test_copy_falls_back_to_get_put(self):
        store = DictStore()
        store.put("src", b"content")

        store.copy("dst", "src")

        assert store.blobs["dst"] == b"content"

    def test_copy_missing_source(self):
        with pytest.raises(NotFoundError):
            DictStore().copy("dst", "src")

    def test_delete_precheck(self):
        store = DictStore()

        with pytest.raises(NotFoundError):
            store.delete("missing")
        assert store.deleted == []

    def test_str_is_identity(self):
        assert str(DictStore()) == "dict://test"

    def test_object_is_immutable(self):
        obj = Object("key", 1, 2, 3)

        with pytest.raises(AttributeError):
            obj.size = 5
