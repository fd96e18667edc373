"""Cookie records and engines."""

from pyreqwest_cookies.cookie.engine import CookieJarEngine, default_policy
from pyreqwest_cookies.cookie.stored import CookieAction, StoredCookie
from pyreqwest_cookies.cookie.types import CookieEngine, SameSite

__all__ = ["CookieAction", "CookieEngine", "CookieJarEngine", "SameSite", "StoredCookie", "default_policy"]
