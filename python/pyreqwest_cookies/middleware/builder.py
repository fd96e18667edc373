"""Builders for cookie middlewares."""

import asyncio
import os
from collections.abc import Iterable
from typing import BinaryIO, Self, TypeVar

from pyreqwest_cookies.cookie import CookieEngine, StoredCookie
from pyreqwest_cookies.middleware.cookie import CookieMiddleware, SyncCookieMiddleware
from pyreqwest_cookies.persistence import BaseFilePersistence, FilePersistence, SyncFilePersistence
from pyreqwest_cookies.store import CookieJarStore, SyncCookieJarStore

_P = TypeVar("_P", bound=BaseFilePersistence)


class BaseCookieMiddlewareBuilder:
    """Common base of `CookieMiddlewareBuilder` and `SyncCookieMiddlewareBuilder`."""

    def __init__(self) -> None:
        self._engine: CookieEngine | None = None
        self._cookies: list[StoredCookie] = []
        self._path: str | os.PathLike[str] | None = None
        self._file: BinaryIO | None = None
        self._fsync = True
        self._skip_unchanged_saves = False

    def engine(self, engine: CookieEngine) -> Self:
        """Use the given cookie engine instead of a new `CookieJarEngine`."""
        self._engine = engine
        return self

    def cookies(self, cookies: Iterable[StoredCookie]) -> Self:
        """Add initial cookies to the jar. Cookies loaded from a persistence file are added after these."""
        self._cookies.extend(cookies)
        return self

    def persist_to_path(self, path: str | os.PathLike[str]) -> Self:
        """Load cookies from path (created if missing) and save persistent cookies into it after each response."""
        self._path = path
        self._file = None
        return self

    def persist_to_file(self, file: BinaryIO) -> Self:
        """Load cookies from an open binary read/write file and save persistent cookies into it after responses."""
        self._file = file
        self._path = None
        return self

    def fsync(self, enable: bool) -> Self:
        """Flush saved cookies to stable storage with os.fsync. Enabled by default."""
        self._fsync = enable
        return self

    def skip_unchanged_saves(self, enable: bool) -> Self:
        """Skip writing the file when the persistent cookies did not change. Disabled by default."""
        self._skip_unchanged_saves = enable
        return self

    def _persistence(self, persistence_type: type[_P]) -> _P | None:
        if self._path is not None:
            return persistence_type.from_path(
                self._path, fsync=self._fsync, skip_unchanged=self._skip_unchanged_saves
            )
        if self._file is not None:
            return persistence_type.from_file(
                self._file, fsync=self._fsync, skip_unchanged=self._skip_unchanged_saves
            )
        return None

    def _initial_cookies(self, persistence: BaseFilePersistence | None) -> list[StoredCookie]:
        if persistence is None:
            return [*self._cookies]
        return [*self._cookies, *persistence.load()]


class CookieMiddlewareBuilder(BaseCookieMiddlewareBuilder):
    """Builder for `CookieMiddleware`."""

    def build(self) -> CookieMiddleware:
        """Build the middleware. Opens and reads the persistence file, if configured.

        The file is read with blocking I/O. Use `build_async` from code running inside an event loop.
        """
        persistence = self._persistence(FilePersistence)
        store = CookieJarStore(self._engine, self._initial_cookies(persistence))
        return CookieMiddleware(store, persistence)

    async def build_async(self) -> CookieMiddleware:
        """Build the middleware, opening and reading the persistence file in a worker thread."""
        persistence = await asyncio.to_thread(self._persistence, FilePersistence)
        cookies = await asyncio.to_thread(self._initial_cookies, persistence)
        return CookieMiddleware(CookieJarStore(self._engine, cookies), persistence)


class SyncCookieMiddlewareBuilder(BaseCookieMiddlewareBuilder):
    """Builder for `SyncCookieMiddleware`."""

    def build(self) -> SyncCookieMiddleware:
        """Build the middleware. Reads the persistence file, if configured."""
        persistence = self._persistence(SyncFilePersistence)
        store = SyncCookieJarStore(self._engine, self._initial_cookies(persistence))
        return SyncCookieMiddleware(store, persistence)
