"""Request and response interfaces the cookie middlewares rely on.

pyreqwest `Request`, `Response`, `SyncResponse`, `Next` and `SyncNext` satisfy these.
"""

from typing import Any, Protocol


class HeadersType(Protocol):
    """Case-insensitive multi-value header map, such as pyreqwest `HeaderMap`."""

    def __getitem__(self, key: str) -> str: ...

    def __setitem__(self, key: str, value: str) -> None: ...

    def pop(self, key: str, default: Any = ..., /) -> Any: ...

    def getall(self, key: str) -> list[str]:
        """Return all values of a header, in the order received."""
        ...


class InterceptedRequest(Protocol):
    """Outgoing request handed to a middleware."""

    @property
    def url(self) -> Any: ...

    @property
    def headers(self) -> HeadersType: ...


class InterceptedResponse(Protocol):
    """Response returned from the rest of the middleware chain."""

    @property
    def headers(self) -> HeadersType: ...


class NextHandler(Protocol):
    async def run(self, request: Any) -> Any: ...


class SyncNextHandler(Protocol):
    def run(self, request: Any) -> Any: ...
