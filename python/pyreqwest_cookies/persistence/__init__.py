"""Persistence of cookies into a newline-delimited JSON file."""

import asyncio
import io
import logging
import os
import threading
import time
from collections.abc import Iterable
from pathlib import Path
from typing import TYPE_CHECKING, Any, BinaryIO, Self

import orjson

from pyreqwest_cookies.cookie import StoredCookie
from pyreqwest_cookies.exceptions import PersistenceError, SnapshotDecodeError

if TYPE_CHECKING:
    from pyreqwest_cookies.store import CookieJarStore, SyncCookieJarStore

logger = logging.getLogger(__name__)

__all__ = ["BaseFilePersistence", "FilePersistence", "SyncFilePersistence", "decode_cookies", "encode_cookies"]

_STR_FIELDS = ("name", "value", "domain", "path")
_BOOL_FIELDS = ("secure", "http_only", "host_only", "path_specified")
_SAME_SITE_VALUES = (None, "Strict", "Lax", "None")


def encode_cookies(cookies: Iterable[StoredCookie], now: float | None = None) -> bytes:
    """Encode cookies as ndjson, one cookie object per line. Session and expired cookies are skipped."""
    now = time.time() if now is None else now
    return b"".join(
        orjson.dumps(cookie) + b"\n" for cookie in cookies if not cookie.is_session and not cookie.is_expired(now)
    )


def decode_cookies(data: bytes, now: float | None = None) -> list[StoredCookie]:
    """Decode ndjson cookie records. Records expired at `now` (default: current time) are dropped.

    Raises:
        SnapshotDecodeError: A line is not a valid cookie record.
    """
    cookies = []
    for lineno, line in enumerate(data.splitlines(), start=1):
        if not line.strip():
            continue
        try:
            cookie = _cookie_from_record(orjson.loads(line))
        except (TypeError, ValueError) as e:  # orjson.JSONDecodeError is a ValueError
            raise SnapshotDecodeError(f"Invalid cookie record on line {lineno}", {"line": lineno}) from e
        if not cookie.is_expired(now):
            cookies.append(cookie)
    return cookies


def _cookie_from_record(record: Any) -> StoredCookie:
    if not isinstance(record, dict):
        raise TypeError("cookie record must be a JSON object")
    cookie = StoredCookie(**record)
    if (
        not all(isinstance(getattr(cookie, name), str) for name in _STR_FIELDS)
        or not all(isinstance(getattr(cookie, name), bool) for name in _BOOL_FIELDS)
        or not (cookie.expires is None or (isinstance(cookie.expires, int) and not isinstance(cookie.expires, bool)))
        or cookie.same_site not in _SAME_SITE_VALUES
    ):
        raise ValueError("cookie record has invalid field types")
    return cookie


class BaseFilePersistence:
    """Common base of `FilePersistence` and `SyncFilePersistence`.

    Wraps a binary file opened for reading and writing. Every save replaces the whole content of the file.
    """

    def __init__(self, file: BinaryIO, *, owns_file: bool = False, fsync: bool = True, skip_unchanged: bool = False):
        """Wrap an open file. Prefer `from_path` or `from_file`.

        Args:
            file: Binary file opened for both reading and writing
            owns_file: Close the file in `close()`
            fsync: Flush saved content to stable storage with os.fsync
            skip_unchanged: Skip a save when the content equals the previously saved content
        """
        self._file = file
        self._owns_file = owns_file
        self._fsync = fsync
        self._skip_unchanged = skip_unchanged
        self._last_payload: bytes | None = None

    @classmethod
    def from_path(cls, path: str | os.PathLike[str], *, fsync: bool = True, skip_unchanged: bool = False) -> Self:
        """Open the file at path for reading and writing, creating it (and its parent directories) if missing."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(path, os.O_RDWR | os.O_CREAT, 0o600)
        return cls(os.fdopen(fd, "r+b"), owns_file=True, fsync=fsync, skip_unchanged=skip_unchanged)

    @classmethod
    def from_file(cls, file: BinaryIO, *, fsync: bool = True, skip_unchanged: bool = False) -> Self:
        """Use an already open binary file. The caller stays responsible for closing it."""
        return cls(file, fsync=fsync, skip_unchanged=skip_unchanged)

    @property
    def file(self) -> BinaryIO:
        return self._file

    def load(self) -> list[StoredCookie]:
        """Read the whole file and decode the cookies in it. A file that fails to decode gives no cookies."""
        self._file.seek(0)
        data = self._file.read()
        try:
            return decode_cookies(data)
        except SnapshotDecodeError as e:
            logger.warning("Ignoring unreadable cookie file %s: %s", getattr(self._file, "name", "?"), e.message)
            return []

    def close(self) -> None:
        """Close the file if it was opened by `from_path`."""
        if self._owns_file:
            self._file.close()

    def _should_write(self, payload: bytes) -> bool:
        return not (self._skip_unchanged and payload == self._last_payload)

    def _write(self, payload: bytes) -> None:
        try:
            self._file.seek(0)
            self._file.write(payload)
            self._file.truncate(len(payload))
            self._file.flush()
            if self._fsync:
                self._sync_to_disk()
        except (OSError, ValueError, OverflowError, TypeError) as e:  # TypeError: file opened in text mode
            raise PersistenceError(f"Failed to save cookies: {e}", {"causes": [repr(e)]}) from e
        self._last_payload = payload

    def _sync_to_disk(self) -> None:
        try:
            fileno = self._file.fileno()
        except io.UnsupportedOperation:
            return  # in-memory file
        os.fsync(fileno)


class FilePersistence(BaseFilePersistence):
    """File persistence for asyncio. Saves are serialized, file I/O runs in a worker thread."""

    def __init__(self, file: BinaryIO, *, owns_file: bool = False, fsync: bool = True, skip_unchanged: bool = False):
        super().__init__(file, owns_file=owns_file, fsync=fsync, skip_unchanged=skip_unchanged)
        self._lock = asyncio.Lock()

    async def save(self, cookies: Iterable[StoredCookie]) -> bool:
        """Replace the file content with the given cookies. Returns False when the save was skipped.

        Raises:
            PersistenceError: Writing the file failed.
        """
        async with self._lock:
            return await self._save(encode_cookies(cookies))

    async def save_store(self, store: "CookieJarStore") -> bool:
        """Replace the file content with the persistent cookies of store.

        The snapshot is taken while holding the file lock, so the last save to finish always writes the newest
        jar state.

        Raises:
            PersistenceError: Writing the file failed.
        """
        async with self._lock:
            return await self._save(encode_cookies(await store.snapshot()))

    async def _save(self, payload: bytes) -> bool:
        if not self._should_write(payload):
            return False
        await asyncio.to_thread(self._write, payload)
        return True


class SyncFilePersistence(BaseFilePersistence):
    """File persistence for threads. Saves are serialized."""

    def __init__(self, file: BinaryIO, *, owns_file: bool = False, fsync: bool = True, skip_unchanged: bool = False):
        super().__init__(file, owns_file=owns_file, fsync=fsync, skip_unchanged=skip_unchanged)
        self._lock = threading.Lock()

    def save(self, cookies: Iterable[StoredCookie]) -> bool:
        """Replace the file content with the given cookies. Returns False when the save was skipped.

        Raises:
            PersistenceError: Writing the file failed.
        """
        with self._lock:
            return self._save(encode_cookies(cookies))

    def save_store(self, store: "SyncCookieJarStore") -> bool:
        """Replace the file content with the persistent cookies of store, snapshotted under the file lock.

        Raises:
            PersistenceError: Writing the file failed.
        """
        with self._lock:
            return self._save(encode_cookies(store.snapshot()))

    def _save(self, payload: bytes) -> bool:
        if not self._should_write(payload):
            return False
        self._write(payload)
        return True
