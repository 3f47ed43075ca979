"""S3-compatible storage driver using requests + AWS4Auth (AWS, MinIO and other providers)."""

import logging
from typing import BinaryIO
from urllib.parse import quote, urlsplit
from xml.etree import ElementTree

import requests
from requests.adapters import HTTPAdapter
from requests_aws4auth import AWS4Auth

from objstore.errors import AlreadyExistsError, ConfigurationError, StorageError, TransportError
from objstore.storage.base import BaseStorage, format_range, read_all
from objstore.storage.http import call, check_response, open_stream
from objstore.storage.objects import Object, parse_timestamp

logger = logging.getLogger(__name__)

S3_NS = {"s3": "http://s3.amazonaws.com/doc/2006-03-01/"}
DEFAULT_REGION = "us-east-1"


class S3Storage(BaseStorage):
    """Storage driver for one bucket of an S3-compatible service (path-style addressing)."""

    scheme = "s3"

    def __init__(
        self,
        endpoint: str,
        access_key: str,
        secret_key: str,
        bucket: str,
        region: str | None = None,
        timeout: int = 300,
        chunk_size: int = 64 * 1024,
        pool_size: int = 10,
        session: requests.Session | None = None,
    ):
        super().__init__()
        self.bucket = bucket
        self.region = region
        self.endpoint = endpoint.rstrip("/")
        self.base_url = f"{self.endpoint}/{bucket}"
        self.timeout = timeout
        self.chunk_size = chunk_size

        if session is None:
            session = requests.Session()
            # AWS4Auth with empty region works for most S3-compatible providers
            session.auth = AWS4Auth(access_key, secret_key, region or "", "s3")
            adapter = HTTPAdapter(pool_connections=pool_size, pool_maxsize=pool_size)
            session.mount("http://", adapter)
            session.mount("https://", adapter)
            session.max_redirects = 0
        self.session = session

    def identity(self) -> str:
        return f"{self.scheme}://{self.bucket}"

    def _url(self, key: str) -> str:
        return f"{self.base_url}/{quote(key, safe='/')}"

    def create(self) -> None:
        """Create the bucket unless it is already reachable or owned by us."""
        try:
            self._list_page("", "", 1)
            return
        except StorageError as e:
            logger.debug("Listing %s failed (%s), creating it", self.identity(), e)

        try:
            self._create_bucket()
        except AlreadyExistsError:
            logger.info("Bucket %s already owned by these credentials", self.bucket)

    def _create_bucket(self) -> None:
        body = b""
        if self.region and self.region != DEFAULT_REGION:
            body = (
                '<CreateBucketConfiguration xmlns="http://s3.amazonaws.com/doc/2006-03-01/">'
                f"<LocationConstraint>{self.region}</LocationConstraint>"
                "</CreateBucketConfiguration>"
            ).encode()
        resp = call(
            "Create bucket",
            lambda: self.session.put(
                self.base_url, data=body, timeout=self.timeout, allow_redirects=False
            ),
        )
        if resp.status_code == 409 and "BucketAlreadyOwnedByYou" in resp.text:
            raise AlreadyExistsError(f"{self.identity()}: bucket already owned by you")
        check_response(resp, "Create bucket")
        logger.info("Created bucket %s at %s", self.bucket, self.endpoint)

    def get(self, key: str, offset: int = 0, limit: int = 0) -> BinaryIO:
        headers = {}
        byte_range = format_range(offset, limit)
        if byte_range:
            headers["Range"] = byte_range

        logger.debug("GET %s/%s range=%s", self.identity(), key, byte_range)
        resp = call(
            "Download",
            lambda: self.session.get(
                self._url(key),
                headers=headers,
                stream=True,
                timeout=self.timeout,
                allow_redirects=False,
            ),
        )
        try:
            check_response(resp, "Download", key)
        except StorageError:
            resp.close()
            raise
        return open_stream(resp, offset, limit, self.chunk_size)

    def put(self, key: str, data: BinaryIO | bytes) -> None:
        # SigV4 signs the payload hash, so the body is buffered.
        content = read_all(data)
        logger.debug("PUT %s/%s (%d bytes)", self.identity(), key, len(content))
        resp = call(
            "Upload",
            lambda: self.session.put(
                self._url(key),
                data=content,
                headers={"Content-Type": "application/octet-stream"},
                timeout=self.timeout,
                allow_redirects=False,
            ),
        )
        check_response(resp, "Upload", key)

    def copy(self, dst: str, src: str) -> None:
        resp = call(
            "Copy",
            lambda: self.session.put(
                self._url(dst),
                headers={"x-amz-copy-source": f"/{self.bucket}/{quote(src, safe='/')}"},
                timeout=self.timeout,
                allow_redirects=False,
            ),
        )
        check_response(resp, "Copy", src)
        # A copy can fail after the 200 status line has been sent.
        if b"<Error>" in resp.content:
            raise TransportError(
                f"Copy failed for {src}: {resp.text}", status_code=resp.status_code, detail=resp.text
            )

    def exists(self, key: str) -> None:
        resp = call(
            "Stat",
            lambda: self.session.head(self._url(key), timeout=self.timeout, allow_redirects=False),
        )
        check_response(resp, "Stat", key)

    def _delete(self, key: str) -> None:
        resp = call(
            "Delete",
            lambda: self.session.delete(self._url(key), timeout=self.timeout, allow_redirects=False),
        )
        check_response(resp, "Delete", key)

    def _list_page(self, prefix: str, token: str, limit: int) -> tuple[list[Object], str]:
        params = {"list-type": "2", "prefix": prefix, "max-keys": str(limit)}
        if token:
            params["continuation-token"] = token

        resp = call(
            "List",
            lambda: self.session.get(
                self.base_url, params=params, timeout=self.timeout, allow_redirects=False
            ),
        )
        check_response(resp, "List")

        try:
            root = ElementTree.fromstring(resp.content)
        except ElementTree.ParseError as e:
            raise TransportError(f"List returned malformed XML: {e}", detail=resp.text) from e

        objects = []
        for content in root.findall(".//s3:Contents", S3_NS):
            key = content.findtext("s3:Key", default="", namespaces=S3_NS)
            if not key:
                continue
            # S3 keeps no creation time; report LastModified for both.
            mtime = parse_timestamp(content.findtext("s3:LastModified", namespaces=S3_NS))
            size = int(content.findtext("s3:Size", default="0", namespaces=S3_NS))
            objects.append(Object(key=key, size=size, ctime=mtime, mtime=mtime))

        next_token = ""
        if root.findtext(".//s3:IsTruncated", namespaces=S3_NS) == "true":
            next_token = root.findtext(".//s3:NextContinuationToken", default="", namespaces=S3_NS)
        return objects, next_token


class MinioStorage(S3Storage):
    """S3Storage reporting the ``minio`` scheme."""

    scheme = "minio"


def _require_keys(endpoint: str, access_key: str, secret_key: str) -> None:
    if not access_key or not secret_key:
        raise ConfigurationError(f"Access key and secret key are required for {endpoint}")


def new_s3(endpoint: str, access_key: str = "", secret_key: str = "", **options) -> S3Storage:
    """Build a driver for ``s3://bucket.region`` on AWS."""
    uri = urlsplit(endpoint)
    if not uri.netloc:
        raise ConfigurationError(f"Invalid endpoint: {endpoint}")
    bucket, _, rest = uri.netloc.partition(".")
    region = rest.split(".")[0] if rest else DEFAULT_REGION
    _require_keys(endpoint, access_key, secret_key)

    host = "s3.amazonaws.com" if region == DEFAULT_REGION else f"s3.{region}.amazonaws.com"
    return S3Storage(
        f"https://{host}",
        access_key,
        secret_key,
        bucket,
        region=region,
        timeout=options.get("timeout", 300),
        chunk_size=options.get("chunk_size", 64 * 1024),
    )


def new_minio(endpoint: str, access_key: str = "", secret_key: str = "", **options) -> MinioStorage:
    """Build a driver for ``minio://host:port/bucket`` (plain HTTP, path-style)."""
    uri = urlsplit(endpoint)
    bucket = uri.path.strip("/").split("/")[0]
    if not uri.netloc or not bucket:
        raise ConfigurationError(f"Invalid endpoint: {endpoint}, expected minio://host:port/bucket")
    _require_keys(endpoint, access_key, secret_key)

    return MinioStorage(
        f"http://{uri.netloc}",
        access_key,
        secret_key,
        bucket,
        region=options.get("region", DEFAULT_REGION),
        timeout=options.get("timeout", 300),
        chunk_size=options.get("chunk_size", 64 * 1024),
    )
