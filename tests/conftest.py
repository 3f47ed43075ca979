"""Shared fixtures."""

from unittest.mock import MagicMock

import pytest

from objstore.storage.local import LocalStorage


def build_response(status_code=200, content=b"", json_data=None, text=None, headers=None):
    """Mock of a requests.Response."""
    resp = MagicMock()
    resp.status_code = status_code
    resp.content = content
    resp.text = text if text is not None else content.decode("utf-8", errors="replace")
    resp.headers = headers or {}
    resp.json.return_value = json_data if json_data is not None else {}
    resp.iter_content.return_value = iter([content] if content else [])
    return resp


@pytest.fixture
def make_response():
    """Factory for mocked HTTP responses."""
    return build_response


@pytest.fixture
def session():
    """Mock requests session handed to the HTTP drivers."""
    return MagicMock()


@pytest.fixture
def local_store(tmp_path):
    """Local driver over an empty, created container."""
    store = LocalStorage(tmp_path / "bucket")
    store.create()
    return store
