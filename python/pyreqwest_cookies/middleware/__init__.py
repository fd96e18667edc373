"""Cookie middlewares and their builders."""

from pyreqwest_cookies.middleware.builder import CookieMiddlewareBuilder, SyncCookieMiddlewareBuilder
from pyreqwest_cookies.middleware.cookie import CookieMiddleware, SyncCookieMiddleware

__all__ = [
    "CookieMiddleware",
    "CookieMiddlewareBuilder",
    "SyncCookieMiddleware",
    "SyncCookieMiddlewareBuilder",
]
