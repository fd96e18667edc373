"""Cookie jar middlewares for the asynchronous and synchronous pyreqwest clients."""

import os
from typing import TYPE_CHECKING, Any, BinaryIO, Self

from pyreqwest_cookies.cookie import CookieEngine
from pyreqwest_cookies.exceptions import CookieParseError, PersistenceError
from pyreqwest_cookies.middleware.types import (
    InterceptedRequest,
    InterceptedResponse,
    NextHandler,
    SyncNextHandler,
)
from pyreqwest_cookies.persistence import FilePersistence, SyncFilePersistence
from pyreqwest_cookies.store import CookieJarStore, SyncCookieJarStore

if TYPE_CHECKING:
    from pyreqwest_cookies.middleware.builder import CookieMiddlewareBuilder, SyncCookieMiddlewareBuilder

COOKIE = "cookie"
SET_COOKIE = "set-cookie"


class CookieMiddleware:
    """Cookie jar middleware for the asynchronous pyreqwest `Client`.

    Before a request is sent, cookies matching its URL are put into the `Cookie` header. After the response is
    received, its `Set-Cookie` headers are stored into the jar and, when persistence is configured, the jar's
    persistent cookies are written to the file. Copies of a middleware share the same jar and file.

    Example:
        ```python
        middleware = CookieMiddleware()
        async with ClientBuilder().with_middleware(middleware).build() as client:
            await client.get(url).build().send()
            await client.get(url).build().send()  # sends cookies received from the first request
        ```
    """

    def __init__(self, cookie_store: CookieJarStore | None = None, persistence: FilePersistence | None = None) -> None:
        """Create a middleware.

        Args:
            cookie_store: Store holding the jar. Defaults to a new empty store.
            persistence: File where persistent cookies are saved after each response.
        """
        self._cookie_store = cookie_store if cookie_store is not None else CookieJarStore()
        self._persistence = persistence

    @classmethod
    def new(cls) -> Self:
        """Create a middleware with an empty jar and no persistence."""
        return cls()

    @classmethod
    def with_cookie_store(cls, cookie_store: CookieJarStore | CookieEngine) -> Self:
        """Create a middleware using an existing cookie store, or a new store around an existing engine."""
        if not isinstance(cookie_store, CookieJarStore):
            cookie_store = CookieJarStore(cookie_store)
        return cls(cookie_store)

    @classmethod
    def from_path(cls, path: str | os.PathLike[str]) -> Self:
        """Load cookies from the file at path (created if missing) and keep saving cookies into it.

        Reads the file with blocking I/O. Inside a running event loop prefer
        `await CookieMiddleware.builder().persist_to_path(path).build_async()`.
        """
        return cls.builder().persist_to_path(path).build()

    @classmethod
    def from_file(cls, file: BinaryIO) -> Self:
        """Load cookies from an open binary read/write file and keep saving cookies into it."""
        return cls.builder().persist_to_file(file).build()

    @staticmethod
    def builder() -> "CookieMiddlewareBuilder":
        from pyreqwest_cookies.middleware.builder import CookieMiddlewareBuilder

        return CookieMiddlewareBuilder()

    @property
    def cookie_store(self) -> CookieJarStore:
        return self._cookie_store

    @property
    def persistence(self) -> FilePersistence | None:
        return self._persistence

    def clone(self) -> Self:
        """Return a new middleware sharing this middleware's jar and file."""
        return type(self)(self._cookie_store, self._persistence)

    def __copy__(self) -> Self:
        return self.clone()

    async def __call__(self, request: InterceptedRequest, next_handler: NextHandler) -> Any:
        url = str(request.url)
        await self.set_cookies(request)
        response = await next_handler.run(request)
        try:
            await self.store_cookies(url, response)
        except PersistenceError as e:
            e.response = response
            raise
        return response

    async def set_cookies(self, request: InterceptedRequest) -> None:
        """Set the `Cookie` header of request from the jar, replacing any previous value."""
        header = await self._cookie_store.cookie_header(request.url)
        _apply_cookie_header(request, header)

    async def store_cookies(self, request_url: Any, response: InterceptedResponse) -> list[CookieParseError]:
        """Store the `Set-Cookie` values of response, then save. Returns the values that failed to parse.

        Raises:
            PersistenceError: Saving to the file failed.
        """
        errors = await self._cookie_store.store_response_cookies(response.headers.getall(SET_COOKIE), request_url)
        await self.save()
        return errors

    async def save(self) -> bool:
        """Save the jar's persistent cookies. Returns False if there is no persistence or the save was skipped."""
        if self._persistence is None:
            return False
        return await self._persistence.save_store(self._cookie_store)

    def close(self) -> None:
        """Close the persistence file if the middleware opened it."""
        if self._persistence is not None:
            self._persistence.close()


class SyncCookieMiddleware:
    """Cookie jar middleware for the synchronous pyreqwest `SyncClient`. Same behavior as `CookieMiddleware`."""

    def __init__(
        self, cookie_store: SyncCookieJarStore | None = None, persistence: SyncFilePersistence | None = None
    ) -> None:
        """Create a middleware.

        Args:
            cookie_store: Store holding the jar. Defaults to a new empty store.
            persistence: File where persistent cookies are saved after each response.
        """
        self._cookie_store = cookie_store if cookie_store is not None else SyncCookieJarStore()
        self._persistence = persistence

    @classmethod
    def new(cls) -> Self:
        """Create a middleware with an empty jar and no persistence."""
        return cls()

    @classmethod
    def with_cookie_store(cls, cookie_store: SyncCookieJarStore | CookieEngine) -> Self:
        """Create a middleware using an existing cookie store, or a new store around an existing engine."""
        if not isinstance(cookie_store, SyncCookieJarStore):
            cookie_store = SyncCookieJarStore(cookie_store)
        return cls(cookie_store)

    @classmethod
    def from_path(cls, path: str | os.PathLike[str]) -> Self:
        """Load cookies from the file at path (created if missing) and keep saving cookies into it."""
        return cls.builder().persist_to_path(path).build()

    @classmethod
    def from_file(cls, file: BinaryIO) -> Self:
        """Load cookies from an open binary read/write file and keep saving cookies into it."""
        return cls.builder().persist_to_file(file).build()

    @staticmethod
    def builder() -> "SyncCookieMiddlewareBuilder":
        from pyreqwest_cookies.middleware.builder import SyncCookieMiddlewareBuilder

        return SyncCookieMiddlewareBuilder()

    @property
    def cookie_store(self) -> SyncCookieJarStore:
        return self._cookie_store

    @property
    def persistence(self) -> SyncFilePersistence | None:
        return self._persistence

    def clone(self) -> Self:
        """Return a new middleware sharing this middleware's jar and file."""
        return type(self)(self._cookie_store, self._persistence)

    def __copy__(self) -> Self:
        return self.clone()

    def __call__(self, request: InterceptedRequest, next_handler: SyncNextHandler) -> Any:
        url = str(request.url)
        self.set_cookies(request)
        response = next_handler.run(request)
        try:
            self.store_cookies(url, response)
        except PersistenceError as e:
            e.response = response
            raise
        return response

    def set_cookies(self, request: InterceptedRequest) -> None:
        """Set the `Cookie` header of request from the jar, replacing any previous value."""
        _apply_cookie_header(request, self._cookie_store.cookie_header(request.url))

    def store_cookies(self, request_url: Any, response: InterceptedResponse) -> list[CookieParseError]:
        """Store the `Set-Cookie` values of response, then save. Returns the values that failed to parse.

        Raises:
            PersistenceError: Saving to the file failed.
        """
        errors = self._cookie_store.store_response_cookies(response.headers.getall(SET_COOKIE), request_url)
        self.save()
        return errors

    def save(self) -> bool:
        """Save the jar's persistent cookies. Returns False if there is no persistence or the save was skipped."""
        if self._persistence is None:
            return False
        return self._persistence.save_store(self._cookie_store)

    def close(self) -> None:
        """Close the persistence file if the middleware opened it."""
        if self._persistence is not None:
            self._persistence.close()


def _apply_cookie_header(request: InterceptedRequest, header: str | None) -> None:
    if header is None:
        request.headers.pop(COOKIE, None)
    else:
        request.headers[COOKIE] = header
