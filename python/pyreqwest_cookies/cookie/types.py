"""Cookie engine types and interfaces."""

from typing import TYPE_CHECKING, Literal, Protocol, TypeAlias

if TYPE_CHECKING:
    from pyreqwest_cookies.cookie.stored import CookieAction, StoredCookie

SameSite: TypeAlias = Literal["Strict", "Lax", "None"]


class CookieEngine(Protocol):
    """Cookie engine that owns the parsing and matching rules of the jar.

    The engine holds at most one cookie per (domain, path, name). It is not required to be thread-safe,
    the cookie store serializes writes and keeps reads apart from them.
    """

    def parse(self, set_cookie: str, request_url: str) -> "CookieAction":
        """Apply one Set-Cookie header value received from request_url.

        Args:
            set_cookie: A single Set-Cookie header value
            request_url: The URL of the request that received the header

        Returns:
            Whether the cookie was inserted, updated or expired.

        Raises:
            CookieParseError: The value is malformed or rejected, the jar is left unchanged.
        """
        ...

    def matches(self, url: str) -> list["StoredCookie"]:
        """Return unexpired cookies whose domain, path and secure constraints are satisfied by url."""
        ...

    def cookies(self) -> list["StoredCookie"]:
        """Return all stored cookies, including session ones."""
        ...

    def restore(self, cookie: "StoredCookie") -> None:
        """Insert a previously stored cookie as is."""
        ...

    def remove(self, domain: str, path: str, name: str) -> "StoredCookie | None":
        """Remove a cookie, returning it if it was in the jar."""
        ...

    def clear(self) -> None:
        """Remove all cookies."""
        ...

    def clear_expired(self) -> None:
        """Remove expired cookies."""
        ...
