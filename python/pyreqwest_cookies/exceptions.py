"""Exception classes."""

from collections.abc import Mapping
from typing import Any


class CookieJarError(Exception):
    """Base class for all cookie jar errors."""

    def __init__(self, message: str, details: Mapping[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details: dict[str, Any] = dict(details or {})


class CookieParseError(CookieJarError, ValueError):
    """A single Set-Cookie value was malformed or rejected by the cookie policy."""


class SnapshotDecodeError(CookieJarError, ValueError):
    """Persisted cookie file could not be decoded."""


class PersistenceError(CookieJarError):
    """Writing the persisted cookie file failed.

    When raised from a middleware the HTTP response was already received, it is available via `response`.
    """

    def __init__(self, message: str, details: Mapping[str, Any] | None = None, response: Any = None) -> None:
        super().__init__(message, details)
        self.response = response
