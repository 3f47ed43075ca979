"""Google Cloud Storage driver using the JSON API over an authorized requests session."""

import logging
import os
from typing import BinaryIO
from urllib.parse import quote, urlsplit

import google.auth
import google.auth.exceptions
import requests
from google.auth.transport.requests import AuthorizedSession

from objstore.errors import AlreadyExistsError, ConfigurationError, StorageError
from objstore.storage.base import BaseStorage, as_stream, format_range
from objstore.storage.http import call, check_response, open_stream
from objstore.storage.objects import Object, parse_timestamp

logger = logging.getLogger(__name__)

API_URL = "https://storage.googleapis.com/storage/v1"
UPLOAD_URL = "https://storage.googleapis.com/upload/storage/v1"
SCOPE = "https://www.googleapis.com/auth/devstorage.full_control"

ALREADY_OWNED = "You already own this bucket"


class GCSStorage(BaseStorage):
    """Storage driver for one Google Cloud Storage bucket."""

    scheme = "gs"

    def __init__(
        self,
        bucket: str,
        region: str | None,
        project: str,
        session: requests.Session,
        timeout: int = 300,
        chunk_size: int = 64 * 1024,
    ):
        super().__init__()
        self.bucket = bucket
        self.region = region
        self.project = project
        self.session = session
        self.timeout = timeout
        self.chunk_size = chunk_size

    def identity(self) -> str:
        return f"gs://{self.bucket}"

    def _object_url(self, key: str) -> str:
        return f"{API_URL}/b/{self.bucket}/o/{quote(key, safe='')}"

    def create(self) -> None:
        """Create the bucket unless it is already reachable or owned by us."""
        try:
            self._list_page("", "", 1)
            return
        except StorageError as e:
            logger.debug("Listing %s failed (%s), creating it", self.identity(), e)

        try:
            self._insert_bucket()
        except AlreadyExistsError:
            logger.info("Bucket %s already owned by this project", self.bucket)

    def _insert_bucket(self) -> None:
        body = {"name": self.bucket}
        if self.region:
            body["storageClass"] = "REGIONAL"
            body["location"] = self.region
        resp = call(
            "Create bucket",
            lambda: self.session.post(
                f"{API_URL}/b",
                params={"project": self.project},
                json=body,
                timeout=self.timeout,
            ),
        )
        if resp.status_code == 409 and ALREADY_OWNED in resp.text:
            raise AlreadyExistsError(f"{self.identity()}: {ALREADY_OWNED}")
        check_response(resp, "Create bucket")
        logger.info("Created bucket %s in %s", self.bucket, self.region or "default location")

    def get(self, key: str, offset: int = 0, limit: int = 0) -> BinaryIO:
        headers = {}
        byte_range = format_range(offset, limit)
        if byte_range:
            headers["Range"] = byte_range

        logger.debug("GET %s/%s range=%s", self.identity(), key, byte_range)
        resp = call(
            "Download",
            lambda: self.session.get(
                self._object_url(key),
                params={"alt": "media"},
                headers=headers,
                stream=True,
                timeout=self.timeout,
            ),
        )
        try:
            check_response(resp, "Download", key)
        except StorageError:
            resp.close()
            raise
        return open_stream(resp, offset, limit, self.chunk_size)

    def put(self, key: str, data: BinaryIO | bytes) -> None:
        logger.debug("PUT %s/%s", self.identity(), key)
        resp = call(
            "Upload",
            lambda: self.session.post(
                f"{UPLOAD_URL}/b/{self.bucket}/o",
                params={"uploadType": "media", "name": key},
                data=as_stream(data),
                headers={"Content-Type": "application/octet-stream"},
                timeout=self.timeout,
            ),
        )
        check_response(resp, "Upload", key)

    def copy(self, dst: str, src: str) -> None:
        url = f"{self._object_url(src)}/copyTo/b/{self.bucket}/o/{quote(dst, safe='')}"
        resp = call("Copy", lambda: self.session.post(url, json={}, timeout=self.timeout))
        check_response(resp, "Copy", src)

    def exists(self, key: str) -> None:
        # Metadata-only request; never reads the object body.
        resp = call(
            "Stat",
            lambda: self.session.get(
                self._object_url(key), params={"fields": "name"}, timeout=self.timeout
            ),
        )
        check_response(resp, "Stat", key)

    def _delete(self, key: str) -> None:
        resp = call(
            "Delete", lambda: self.session.delete(self._object_url(key), timeout=self.timeout)
        )
        check_response(resp, "Delete", key)

    def _list_page(self, prefix: str, token: str, limit: int) -> tuple[list[Object], str]:
        params = {"prefix": prefix, "maxResults": limit}
        if token:
            params["pageToken"] = token

        resp = call(
            "List",
            lambda: self.session.get(
                f"{API_URL}/b/{self.bucket}/o", params=params, timeout=self.timeout
            ),
        )
        check_response(resp, "List")
        data = resp.json()

        objects = [
            Object(
                key=item["name"],
                size=int(item.get("size", 0)),
                ctime=parse_timestamp(item.get("timeCreated")),
                mtime=parse_timestamp(item.get("updated")),
            )
            for item in data.get("items", [])
        ]
        return objects, data.get("nextPageToken", "")


def parse_endpoint(endpoint: str) -> tuple[str, str | None]:
    """Split ``gs://bucket.region`` into bucket and region."""
    uri = urlsplit(endpoint)
    if not uri.scheme or not uri.netloc:
        raise ConfigurationError(f"Invalid endpoint: {endpoint}")
    host_parts = uri.netloc.split(".")
    bucket = host_parts[0]
    if not bucket:
        raise ConfigurationError(f"Invalid endpoint: {endpoint}, missing bucket name")
    region = host_parts[1] if len(host_parts) > 1 and host_parts[1] else None
    return bucket, region


def new_gs(endpoint: str, access_key: str = "", secret_key: str = "", **options) -> GCSStorage:
    """Build a GCS driver from ambient Google credentials. Keys are unused."""
    bucket, region = parse_endpoint(endpoint)

    try:
        credentials, project = google.auth.default(scopes=[SCOPE])
    except google.auth.exceptions.DefaultCredentialsError as e:
        raise ConfigurationError(f"Failed to find Google credentials: {e}") from e

    project = os.environ.get("GOOGLE_CLOUD_PROJECT") or project
    if not project:
        raise ConfigurationError("GOOGLE_CLOUD_PROJECT environment variable must be set")

    return GCSStorage(
        bucket,
        region,
        project,
        AuthorizedSession(credentials),
        timeout=options.get("timeout", 300),
        chunk_size=options.get("chunk_size", 64 * 1024),
    )
