"""Cookie stores shared by middlewares and concurrent requests."""

import logging
import time
from collections.abc import Iterable, Sequence
from typing import Any

from pyreqwest_cookies.cookie import CookieAction, CookieEngine, CookieJarEngine, StoredCookie
from pyreqwest_cookies.exceptions import CookieParseError
from pyreqwest_cookies.store._locks import AsyncRWLock, RWLock

logger = logging.getLogger(__name__)

__all__ = ["BaseCookieJarStore", "CookieJarStore", "SyncCookieJarStore", "format_cookie_header"]


def format_cookie_header(cookies: Sequence[StoredCookie]) -> str | None:
    """Join cookies into a Cookie header value. None when there are no cookies."""
    if not cookies:
        return None
    return "; ".join(cookie.stripped() for cookie in cookies)


class BaseCookieJarStore:
    """Common base of `CookieJarStore` and `SyncCookieJarStore`. Holds the engine, does no locking."""

    def __init__(self, engine: CookieEngine | None = None, cookies: Iterable[StoredCookie] = ()) -> None:
        """Create a store.

        Args:
            engine: Cookie engine owning the jar. Defaults to an empty `CookieJarEngine`.
            cookies: Cookies restored into the engine, for example ones loaded from a file.
        """
        self._engine: CookieEngine = engine if engine is not None else CookieJarEngine()
        for cookie in cookies:
            self._engine.restore(cookie)

    @property
    def engine(self) -> CookieEngine:
        return self._engine

    def _matches(self, url: Any) -> list[StoredCookie]:
        matches = self._engine.matches(str(url))
        # Clients SHOULD send cookies with longer paths first (RFC 6265 5.4)
        matches.sort(key=lambda cookie: len(cookie.path), reverse=True)
        return matches

    def _parse(self, set_cookie: str, request_url: Any) -> CookieAction:
        action = self._engine.parse(set_cookie, str(request_url))
        logger.debug("cookie action %s: %s", action.value, set_cookie)
        return action

    def _parse_all(self, set_cookies: Iterable[str], request_url: Any) -> list[CookieParseError]:
        errors: list[CookieParseError] = []
        for set_cookie in set_cookies:
            try:
                self._parse(set_cookie, request_url)
            except CookieParseError as e:
                logger.debug("cookie parse error: %s (%r)", e.message, set_cookie)
                errors.append(e)
        return errors

    def _snapshot(self) -> list[StoredCookie]:
        now = time.time()
        return [cookie for cookie in self._engine.cookies() if not cookie.is_session and not cookie.is_expired(now)]

    def _get(self, domain: str, path: str, name: str) -> StoredCookie | None:
        return next((cookie for cookie in self._engine.cookies() if cookie.key == (domain, path, name)), None)


class CookieJarStore(BaseCookieJarStore):
    """Cookie store for asyncio. Reads run concurrently, writes are exclusive."""

    def __init__(self, engine: CookieEngine | None = None, cookies: Iterable[StoredCookie] = ()) -> None:
        super().__init__(engine, cookies)
        self._lock = AsyncRWLock()

    async def matches(self, url: Any) -> list[StoredCookie]:
        """Return cookies to send to url, longest path first."""
        async with self._lock.read():
            return self._matches(url)

    async def cookie_header(self, url: Any) -> str | None:
        """Return the Cookie header value for url, or None if no cookies match."""
        return format_cookie_header(await self.matches(url))

    async def parse(self, set_cookie: str, request_url: Any) -> CookieAction:
        """Apply one Set-Cookie value received from request_url. Raises `CookieParseError` on bad values."""
        async with self._lock.write():
            return self._parse(set_cookie, request_url)

    async def store_response_cookies(self, set_cookies: Iterable[str], request_url: Any) -> list[CookieParseError]:
        """Apply all Set-Cookie values of a response. Bad values are skipped and returned, the rest are applied."""
        async with self._lock.write():
            return self._parse_all(set_cookies, request_url)

    async def snapshot(self) -> list[StoredCookie]:
        """Return the persistent, unexpired cookies."""
        async with self._lock.read():
            return self._snapshot()

    async def cookies(self) -> list[StoredCookie]:
        async with self._lock.read():
            return self._engine.cookies()

    async def get(self, domain: str, path: str, name: str) -> StoredCookie | None:
        async with self._lock.read():
            return self._get(domain, path, name)

    async def remove(self, domain: str, path: str, name: str) -> StoredCookie | None:
        async with self._lock.write():
            return self._engine.remove(domain, path, name)

    async def clear(self) -> None:
        async with self._lock.write():
            self._engine.clear()


class SyncCookieJarStore(BaseCookieJarStore):
    """Cookie store for threads. Reads run concurrently, writes are exclusive."""

    def __init__(self, engine: CookieEngine | None = None, cookies: Iterable[StoredCookie] = ()) -> None:
        super().__init__(engine, cookies)
        self._lock = RWLock()

    def matches(self, url: Any) -> list[StoredCookie]:
        """Return cookies to send to url, longest path first."""
        with self._lock.read():
            return self._matches(url)

    def cookie_header(self, url: Any) -> str | None:
        """Return the Cookie header value for url, or None if no cookies match."""
        return format_cookie_header(self.matches(url))

    def parse(self, set_cookie: str, request_url: Any) -> CookieAction:
        """Apply one Set-Cookie value received from request_url. Raises `CookieParseError` on bad values."""
        with self._lock.write():
            return self._parse(set_cookie, request_url)

    def store_response_cookies(self, set_cookies: Iterable[str], request_url: Any) -> list[CookieParseError]:
        """Apply all Set-Cookie values of a response. Bad values are skipped and returned, the rest are applied."""
        with self._lock.write():
            return self._parse_all(set_cookies, request_url)

    def snapshot(self) -> list[StoredCookie]:
        """Return the persistent, unexpired cookies."""
        with self._lock.read():
            return self._snapshot()

    def cookies(self) -> list[StoredCookie]:
        with self._lock.read():
            return self._engine.cookies()

    def get(self, domain: str, path: str, name: str) -> StoredCookie | None:
        with self._lock.read():
            return self._get(domain, path, name)

    def remove(self, domain: str, path: str, name: str) -> StoredCookie | None:
        with self._lock.write():
            return self._engine.remove(domain, path, name)

    def clear(self) -> None:
        with self._lock.write():
            self._engine.clear()
