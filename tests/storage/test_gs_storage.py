"""Tests for the Google Cloud Storage driver."""

from datetime import datetime, timezone
from unittest.mock import MagicMock, patch

import google.auth.exceptions
import pytest
import requests

from objstore.errors import (
    ConfigurationError,
    NotFoundError,
    RangeNotSatisfiableError,
    TransportError,
)
from objstore.storage.gs import API_URL, UPLOAD_URL, GCSStorage, new_gs, parse_endpoint


@pytest.fixture
def store(session):
    return GCSStorage("bucket", "us-east1", "my-project", session)


def listing(*names, next_token=None):
    data = {
        "items": [
            {
                "name": name,
                "size": "42",
                "timeCreated": "2024-01-02T03:04:05.678Z",
                "updated": "2024-01-03T03:04:05Z",
            }
            for name in names
        ]
    }
    if next_token:
        data["nextPageToken"] = next_token
    return data


class TestGet:
    def test_bounded_range_header(self, store, session, make_response):
        session.get.return_value = make_response(206, content=b"0123456789")

        with store.get("dir/key", 5, 10) as reader:
            assert reader.read() == b"0123456789"

        args, kwargs = session.get.call_args
        assert args[0] == f"{API_URL}/b/bucket/o/dir%2Fkey"
        assert kwargs["params"] == {"alt": "media"}
        assert kwargs["headers"] == {"Range": "bytes=5-14"}
        assert kwargs["stream"] is True

    def test_open_range_header(self, store, session, make_response):
        session.get.return_value = make_response(206, content=b"tail")

        store.get("key", 95, 0).close()

        assert session.get.call_args.kwargs["headers"] == {"Range": "bytes=95-"}

    def test_ignored_range_is_trimmed(self, store, session, make_response):
        data = bytes(range(100))
        session.get.return_value = make_response(200, content=data)

        with store.get("key", 5, 10) as reader:
            assert reader.read() == data[5:15]

    def test_ignored_open_range_is_trimmed(self, store, session, make_response):
        resp = make_response(200)
        resp.iter_content.return_value = iter([bytes(range(60)), bytes(range(60, 100))])
        session.get.return_value = resp

        with store.get("key", 55, 0) as reader:
            assert reader.read() == bytes(range(55, 100))

    def test_whole_object_has_no_range(self, store, session, make_response):
        session.get.return_value = make_response(200, content=b"all")

        store.get("key").close()

        assert session.get.call_args.kwargs["headers"] == {}

    def test_close_releases_response(self, store, session, make_response):
        resp = make_response(200, content=b"all")
        session.get.return_value = resp

        store.get("key").close()

        resp.close.assert_called_once()

    def test_not_found(self, store, session, make_response):
        resp = make_response(404, text="No such object")
        session.get.return_value = resp

        with pytest.raises(NotFoundError):
            store.get("missing")
        resp.close.assert_called_once()

    def test_range_not_satisfiable(self, store, session, make_response):
        session.get.return_value = make_response(416)

        with pytest.raises(RangeNotSatisfiableError):
            store.get("key", 1000, 0)

    def test_transport_failure(self, store, session):
        session.get.side_effect = requests.exceptions.ConnectionError("connection reset")

        with pytest.raises(TransportError, match="connection reset"):
            store.get("key")

    def test_server_error_keeps_detail(self, store, session, make_response):
        session.get.return_value = make_response(503, text="backend overloaded")

        with pytest.raises(TransportError) as exc_info:
            store.get("key")

        assert exc_info.value.status_code == 503
        assert exc_info.value.detail == "backend overloaded"


class TestPutCopyDelete:
    def test_put(self, store, session, make_response):
        session.post.return_value = make_response(200)

        store.put("dir/key", b"payload")

        args, kwargs = session.post.call_args
        assert args[0] == f"{UPLOAD_URL}/b/bucket/o"
        assert kwargs["params"] == {"uploadType": "media", "name": "dir/key"}
        assert kwargs["data"].read() == b"payload"

    def test_copy(self, store, session, make_response):
        session.post.return_value = make_response(200)

        store.copy("dst/key", "src/key")

        url = session.post.call_args.args[0]
        assert url == f"{API_URL}/b/bucket/o/src%2Fkey/copyTo/b/bucket/o/dst%2Fkey"

    def test_copy_missing_source(self, store, session, make_response):
        session.post.return_value = make_response(404)

        with pytest.raises(NotFoundError):
            store.copy("dst", "missing")

    def test_exists_reads_metadata_only(self, store, session, make_response):
        session.get.return_value = make_response(200, json_data={"name": "key"})

        store.exists("key")

        kwargs = session.get.call_args.kwargs
        assert kwargs["params"] == {"fields": "name"}
        assert "stream" not in kwargs

    def test_delete(self, store, session, make_response):
        session.get.return_value = make_response(200)
        session.delete.return_value = make_response(204)

        store.delete("key")

        session.delete.assert_called_once()
        assert session.delete.call_args.args[0] == f"{API_URL}/b/bucket/o/key"

    def test_exists_and_delete_keep_list_cursor(self, store, session, make_response):
        session.get.side_effect = [
            make_response(json_data=listing("a", next_token="tok-1")),
            make_response(200, json_data={"name": "key"}),
            make_response(200, json_data={"name": "key"}),
        ]
        session.delete.return_value = make_response(204)
        store.list("", "", 1)

        store.exists("key")
        store.delete("key")

        assert store._cursor.token == "tok-1"

    def test_delete_missing_skips_delete_call(self, store, session, make_response):
        session.get.return_value = make_response(404)

        with pytest.raises(NotFoundError):
            store.delete("key")

        session.delete.assert_not_called()


class TestList:
    def test_translates_items(self, store, session, make_response):
        session.get.return_value = make_response(json_data=listing("a", "b"))

        objects = store.list("", "", 100)

        assert [o.key for o in objects] == ["a", "b"]
        assert objects[0].size == 42
        created = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc).timestamp()
        updated = datetime(2024, 1, 3, 3, 4, 5, tzinfo=timezone.utc).timestamp()
        assert objects[0].ctime == int(created)
        assert objects[0].mtime == int(updated)

    def test_bad_timestamps_default_to_zero(self, store, session, make_response):
        data = {"items": [{"name": "a", "size": "1", "timeCreated": "yesterday"}]}
        session.get.return_value = make_response(json_data=data)

        [obj] = store.list("", "", 10)

        assert obj.ctime == 0
        assert obj.mtime == 0

    def test_continuation_uses_page_token(self, store, session, make_response):
        session.get.side_effect = [
            make_response(json_data=listing("a", next_token="tok-1")),
            make_response(json_data=listing("b")),
        ]

        store.list("p", "", 1)
        store.list("p", "a", 1)

        first, second = session.get.call_args_list
        assert first.kwargs["params"] == {"prefix": "p", "maxResults": 1}
        assert second.kwargs["params"] == {"prefix": "p", "maxResults": 1, "pageToken": "tok-1"}

    def test_last_page_then_marker(self, store, session, make_response):
        session.get.return_value = make_response(json_data=listing("a"))

        store.list("", "", 10)

        assert store.list("", "a", 10) == []
        assert session.get.call_count == 1

    def test_empty_bucket(self, store, session, make_response):
        session.get.return_value = make_response(json_data={"kind": "storage#objects"})

        assert store.list("", "", 100) == []

    def test_error_resets_token(self, store, session, make_response):
        session.get.side_effect = [
            make_response(json_data=listing("a", next_token="tok-1")),
            make_response(500, text="internal error"),
        ]
        store.list("", "", 1)

        with pytest.raises(TransportError):
            store.list("", "a", 1)

        assert store._cursor.token == ""


class TestCreate:
    def test_existing_bucket_is_not_recreated(self, store, session, make_response):
        session.get.return_value = make_response(json_data=listing())

        store.create()
        store.create()

        session.post.assert_not_called()
        assert session.get.call_args.kwargs["params"]["maxResults"] == 1

    def test_creates_missing_bucket(self, store, session, make_response):
        session.get.return_value = make_response(404)
        session.post.return_value = make_response(200)

        store.create()

        args, kwargs = session.post.call_args
        assert args[0] == f"{API_URL}/b"
        assert kwargs["params"] == {"project": "my-project"}
        assert kwargs["json"] == {"name": "bucket", "storageClass": "REGIONAL", "location": "us-east1"}

    def test_already_owned_is_success(self, store, session, make_response):
        session.get.return_value = make_response(403, text="forbidden")
        session.post.return_value = make_response(
            409, text="You already own this bucket. Please select another name."
        )

        store.create()

    def test_conflict_with_other_owner_surfaces(self, store, session, make_response):
        session.get.return_value = make_response(403, text="forbidden")
        session.post.return_value = make_response(
            409, text="The requested bucket name is not available."
        )

        with pytest.raises(TransportError) as exc_info:
            store.create()
        assert exc_info.value.status_code == 409

    def test_existence_check_does_not_touch_cursor(self, store, session, make_response):
        session.get.side_effect = [
            make_response(json_data=listing("a", next_token="tok-1")),
            make_response(json_data=listing("b")),
        ]
        store.list("", "", 1)

        store.create()

        assert store._cursor.token == "tok-1"


class TestNewGS:
    def test_parse_endpoint(self):
        assert parse_endpoint("gs://bucket.europe-west1") == ("bucket", "europe-west1")
        assert parse_endpoint("gs://bucket") == ("bucket", None)

    def test_invalid_endpoint(self):
        with pytest.raises(ConfigurationError):
            parse_endpoint("bucket")

    def test_builds_driver(self, monkeypatch):
        monkeypatch.delenv("GOOGLE_CLOUD_PROJECT", raising=False)
        credentials = MagicMock()
        with patch("google.auth.default", return_value=(credentials, "cred-project")), \
                patch("objstore.storage.gs.AuthorizedSession") as session_cls:
            store = new_gs("gs://bucket.us-east1", timeout=30)

        assert store.bucket == "bucket"
        assert store.region == "us-east1"
        assert store.project == "cred-project"
        assert store.timeout == 30
        session_cls.assert_called_once_with(credentials)

    def test_env_project_wins(self, monkeypatch):
        monkeypatch.setenv("GOOGLE_CLOUD_PROJECT", "env-project")
        with patch("google.auth.default", return_value=(MagicMock(), "cred-project")), \
                patch("objstore.storage.gs.AuthorizedSession"):
            store = new_gs("gs://bucket.us-east1")

        assert store.project == "env-project"

    def test_missing_project(self, monkeypatch):
        monkeypatch.delenv("GOOGLE_CLOUD_PROJECT", raising=False)
        with patch("google.auth.default", return_value=(MagicMock(), None)):
            with pytest.raises(ConfigurationError, match="GOOGLE_CLOUD_PROJECT"):
                new_gs("gs://bucket.us-east1")

    def test_missing_credentials(self):
        error = google.auth.exceptions.DefaultCredentialsError("no credentials")
        with patch("google.auth.default", side_effect=error):
            with pytest.raises(ConfigurationError, match="credentials"):
                new_gs("gs://bucket.us-east1")
