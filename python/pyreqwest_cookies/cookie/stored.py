import time
from dataclasses import dataclass
from enum import Enum

from pyreqwest_cookies.cookie.types import SameSite


class CookieAction(Enum):
    """What a successfully parsed Set-Cookie value did to the jar."""

    INSERTED = "inserted"
    UPDATED = "updated"
    EXPIRED = "expired"


@dataclass(frozen=True, slots=True)
class StoredCookie:
    """A cookie accepted by the engine, as held in the jar.

    Identified by (domain, path, name). `expires` is an absolute unix timestamp, None for a session cookie.
    """

    name: str
    value: str
    domain: str
    path: str = "/"
    expires: int | None = None
    secure: bool = False
    http_only: bool = False
    host_only: bool = True
    path_specified: bool = True
    same_site: SameSite | None = None

    @property
    def key(self) -> tuple[str, str, str]:
        """The (domain, path, name) identity of the cookie."""
        return self.domain, self.path, self.name

    @property
    def is_session(self) -> bool:
        """Whether the cookie lives only for the session (no Expires / Max-Age)."""
        return self.expires is None

    def is_expired(self, now: float | None = None) -> bool:
        if self.expires is None:
            return False
        return self.expires <= (time.time() if now is None else now)

    def stripped(self) -> str:
        """Return just the 'name=value' pair."""
        return f"{self.name}={self.value}"

    def __str__(self) -> str:
        return self.stripped()
