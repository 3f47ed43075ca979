"""Local filesystem storage driver.

Keys map to paths below the container directory. Uploads are written to a
temporary file beside the target and renamed over it; path components starting
with ``.tmp-`` are reserved for those files and rejected as keys.
"""

import bisect
import io
import logging
import os
import shutil
import tempfile
from pathlib import Path
from typing import BinaryIO
from urllib.parse import unquote, urlsplit

from objstore.errors import (
    ConfigurationError,
    InvalidKeyError,
    NotFoundError,
    RangeNotSatisfiableError,
    StorageError,
)
from objstore.storage.base import BaseStorage, as_stream
from objstore.storage.objects import Object

logger = logging.getLogger(__name__)

TMP_PREFIX = ".tmp-"

# A concurrent delete may prune the directory between mkdir and mkstemp.
MKDIR_ATTEMPTS = 10


class LocalStorage(BaseStorage):
    """Storage driver using a local directory as the container."""

    scheme = "file"

    def __init__(self, base_path: str | Path):
        super().__init__()
        self.base_path = Path(base_path)

    def identity(self) -> str:
        return f"file://{self.base_path.absolute()}"

    def _resolve(self, key: str) -> Path:
        """Resolve a key to a full path inside the container."""
        if any(part.startswith(TMP_PREFIX) for part in key.split("/")):
            raise InvalidKeyError(f"{key}: path components starting with {TMP_PREFIX!r} are reserved")
        path = (self.base_path / key).resolve()
        base = self.base_path.resolve()
        if path != base and base not in path.parents:
            raise InvalidKeyError(f"Key escapes the container: {key}")
        return path

    def _file(self, key: str) -> Path:
        path = self._resolve(key)
        if not path.is_file():
            raise NotFoundError(f"{key}: not found")
        return path

    def _blocked_by_object(self, path: Path) -> bool:
        """True if an object sits where one of ``path``'s directories should be."""
        base = self.base_path.resolve()
        for parent in path.parents:
            if parent == base:
                return False
            if parent.is_file():
                return True
        return False

    def create(self) -> None:
        self.base_path.mkdir(parents=True, exist_ok=True)

    def get(self, key: str, offset: int = 0, limit: int = 0) -> BinaryIO:
        if offset < 0 or limit < 0:
            raise ValueError(f"Invalid range: offset={offset}, limit={limit}")
        path = self._file(key)
        size = path.stat().st_size
        # Same rule as an HTTP 416: a ranged read must start inside the object.
        if (offset or limit) and offset >= size:
            raise RangeNotSatisfiableError(f"{key}: offset {offset} beyond size {size}")

        f = path.open("rb")
        if offset:
            f.seek(offset)
        if limit == 0:
            return f
        with f:
            return io.BytesIO(f.read(limit))

    def _open_temp(self, key: str, path: Path) -> tuple[int, str]:
        """Create the parent directories and a temporary file inside them."""
        for _ in range(MKDIR_ATTEMPTS):
            try:
                path.parent.mkdir(parents=True, exist_ok=True)
                return tempfile.mkstemp(prefix=TMP_PREFIX, dir=path.parent)
            except (FileExistsError, FileNotFoundError, NotADirectoryError) as e:
                if self._blocked_by_object(path):
                    raise InvalidKeyError(f"{key}: collides with an existing object") from e
                last_error = e
                logger.debug("Directory for %s vanished during put, retrying", key)
        raise StorageError(f"{key}: could not create parent directory") from last_error

    def put(self, key: str, data: BinaryIO | bytes) -> None:
        """Write to a temporary file, then rename it over the key."""
        path = self._resolve(key)
        fd, tmp_name = self._open_temp(key, path)
        try:
            with os.fdopen(fd, "wb") as out:
                shutil.copyfileobj(as_stream(data), out)
            try:
                os.replace(tmp_name, path)
            except OSError as e:
                if path.is_dir():
                    raise InvalidKeyError(f"{key}: collides with a directory of other objects") from e
                raise
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def copy(self, dst: str, src: str) -> None:
        with self._file(src).open("rb") as reader:
            self.put(dst, reader)

    def exists(self, key: str) -> None:
        self._file(key)

    def _delete(self, key: str) -> None:
        path = self._resolve(key)
        try:
            path.unlink()
        except FileNotFoundError:
            raise NotFoundError(f"{key}: not found") from None
        self._prune(path.parent)

    def _prune(self, directory: Path) -> None:
        """Remove directories emptied by a delete, up to the container root."""
        base = self.base_path.resolve()
        while directory != base and base in directory.parents:
            try:
                directory.rmdir()
            except OSError:
                return
            directory = directory.parent

    def _keys(self, prefix: str) -> list[str]:
        if not self.base_path.is_dir():
            raise NotFoundError(f"{self.identity()}: container does not exist")
        keys = []
        for dirpath, _, filenames in os.walk(self.base_path):
            for name in filenames:
                if name.startswith(TMP_PREFIX):
                    continue
                key = Path(dirpath, name).relative_to(self.base_path).as_posix()
                if key.startswith(prefix):
                    keys.append(key)
        keys.sort()
        return keys

    def _list_page(self, prefix: str, token: str, limit: int) -> tuple[list[Object], str]:
        keys = self._keys(prefix)
        start = bisect.bisect_right(keys, token) if token else 0
        page = keys[start:start + limit]

        objects = []
        for key in page:
            try:
                st = (self.base_path / key).stat()
            except FileNotFoundError:
                # Deleted between the walk and the stat.
                continue
            objects.append(Object(key=key, size=st.st_size, ctime=int(st.st_ctime), mtime=int(st.st_mtime)))

        more = start + limit < len(keys)
        return objects, (page[-1] if more and page else "")


def new_local(endpoint: str, access_key: str = "", secret_key: str = "", **options) -> LocalStorage:
    """Build a driver for ``file:///path/to/dir``. Keys and options are unused."""
    uri = urlsplit(endpoint)
    path = unquote(uri.netloc + uri.path)
    if not path:
        raise ConfigurationError(f"Invalid endpoint: {endpoint}, missing directory")
    return LocalStorage(path)
