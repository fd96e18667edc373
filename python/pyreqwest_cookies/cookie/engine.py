"""Cookie engine backed by the standard library `http.cookiejar` rules."""

import time
from collections.abc import Iterable
from http.cookiejar import Cookie, CookieJar, DefaultCookiePolicy, parse_ns_headers
from urllib.parse import urlsplit

from pyreqwest_cookies.cookie.stored import CookieAction, StoredCookie
from pyreqwest_cookies.cookie.types import SameSite
from pyreqwest_cookies.exceptions import CookieParseError


_SAME_SITE: dict[str, SameSite] = {"strict": "Strict", "lax": "Lax", "none": "None"}


def default_policy() -> DefaultCookiePolicy:
    """Cookie policy where cookies without a Domain attribute are only sent back to the exact host."""
    return DefaultCookiePolicy(strict_ns_domain=DefaultCookiePolicy.DomainStrictNonDomain)


class CookieJarEngine:
    """Cookie engine using `http.cookiejar.CookieJar` for attribute parsing and `DefaultCookiePolicy` for matching.

    Implements the `CookieEngine` protocol. Not thread-safe on its own, use it through a cookie store.
    """

    def __init__(self, policy: DefaultCookiePolicy | None = None) -> None:
        """Create an empty engine.

        Args:
            policy: Policy deciding which cookies are accepted and returned. Defaults to `default_policy()`.
        """
        self._policy = policy or default_policy()
        self._jar = CookieJar(self._policy)

    @property
    def policy(self) -> DefaultCookiePolicy:
        return self._policy

    def parse(self, set_cookie: str, request_url: str) -> CookieAction:
        """Apply one Set-Cookie header value received from request_url."""
        attrs = parse_ns_headers([set_cookie])
        if not attrs or attrs[0][0][1] is None:
            raise CookieParseError(
                "Set-Cookie value has no name=value pair", {"set_cookie": set_cookie, "url": request_url}
            )

        request = _EngineRequest(request_url)
        cookies = self._jar.make_cookies(_EngineResponse([set_cookie]), request)
        if not cookies:
            if _requests_expiry(attrs[0][1:]):
                # The jar already dropped any previous cookie with the same key.
                return CookieAction.EXPIRED
            raise CookieParseError(
                "Set-Cookie value has invalid attributes", {"set_cookie": set_cookie, "url": request_url}
            )

        cookie = cookies[0]
        if not self._policy.set_ok(cookie, request):
            raise CookieParseError(
                "Set-Cookie value rejected by cookie policy", {"set_cookie": set_cookie, "url": request_url}
            )

        existed = self._find(cookie.domain, cookie.path, cookie.name) is not None
        self._jar.set_cookie(cookie)
        return CookieAction.UPDATED if existed else CookieAction.INSERTED

    def matches(self, url: str) -> list[StoredCookie]:
        """Return unexpired cookies whose domain, path and secure constraints are satisfied by url."""
        request = _EngineRequest(url)
        now = time.time()
        return [_to_stored(cookie) for cookie in self._jar if self._return_ok(cookie, request, now)]

    def cookies(self) -> list[StoredCookie]:
        return [_to_stored(cookie) for cookie in self._jar]

    def restore(self, cookie: StoredCookie) -> None:
        self._jar.set_cookie(_from_stored(cookie))

    def remove(self, domain: str, path: str, name: str) -> StoredCookie | None:
        for candidate in (domain, f".{domain}"):
            if (cookie := self._find(candidate, path, name)) is not None:
                self._jar.clear(cookie.domain, cookie.path, cookie.name)
                return _to_stored(cookie)
        return None

    def clear(self) -> None:
        self._jar.clear()

    def clear_expired(self) -> None:
        self._jar.clear_expired_cookies()

    def _find(self, domain: str, path: str, name: str) -> Cookie | None:
        for cookie in self._jar:
            if cookie.domain == domain and cookie.path == path and cookie.name == name:
                return cookie
        return None

    def _return_ok(self, cookie: Cookie, request: "_EngineRequest", now: float) -> bool:
        policy = self._policy
        return (
            not cookie.is_expired(now)
            and policy.domain_return_ok(cookie.domain, request)
            and policy.path_return_ok(cookie.path, request)
            and policy.return_ok_version(cookie, request)
            and policy.return_ok_verifiability(cookie, request)
            and policy.return_ok_secure(cookie, request)
            and policy.return_ok_port(cookie, request)
            and policy.return_ok_domain(cookie, request)
        )


class _EngineRequest:
    """The part of `urllib.request.Request` that `http.cookiejar` reads."""

    def __init__(self, url: str) -> None:
        parts = urlsplit(url)
        self._url = url
        self.type = parts.scheme
        self.host = parts.netloc.rpartition("@")[2]
        self.origin_req_host = parts.hostname or ""
        self.unverifiable = False

    def get_full_url(self) -> str:
        return self._url

    def get_header(self, header_name: str, default: str | None = None) -> str | None:
        return self.host if header_name.lower() == "host" else default

    def has_header(self, header_name: str) -> bool:
        return header_name.lower() == "host"

    def header_items(self) -> list[tuple[str, str]]:
        return [("Host", self.host)]


class _EngineHeaders:
    def __init__(self, set_cookies: Iterable[str]) -> None:
        self._set_cookies = list(set_cookies)

    def get_all(self, name: str, default: list[str]) -> list[str]:
        if name.lower() == "set-cookie":
            return [*self._set_cookies]
        return default


class _EngineResponse:
    """The part of `http.client.HTTPResponse` that `http.cookiejar` reads."""

    def __init__(self, set_cookies: Iterable[str]) -> None:
        self._headers = _EngineHeaders(set_cookies)

    def info(self) -> _EngineHeaders:
        return self._headers


def _requests_expiry(attrs: list[tuple[str, str | float | None]]) -> bool:
    max_age = next((value for key, value in attrs if key == "max-age"), None)
    if max_age is not None:
        try:
            return int(max_age) <= 0
        except ValueError:
            return False
    expires = next((value for key, value in attrs if key == "expires"), None)
    return isinstance(expires, (int, float)) and expires <= time.time()


def _nonstandard_attr(cookie: Cookie, name: str) -> tuple[bool, str | None]:
    for key, value in cookie._rest.items():  # noqa: SLF001
        if key.lower() == name:
            return True, value
    return False, None


def _to_stored(cookie: Cookie) -> StoredCookie:
    http_only, _ = _nonstandard_attr(cookie, "httponly")
    _, same_site = _nonstandard_attr(cookie, "samesite")
    host_only = not cookie.domain_specified
    return StoredCookie(
        name=cookie.name,
        value=cookie.value or "",
        domain=cookie.domain if host_only else cookie.domain.removeprefix("."),
        path=cookie.path,
        expires=None if cookie.expires is None else int(cookie.expires),  # Expires parses to a float
        secure=bool(cookie.secure),
        http_only=http_only,
        host_only=host_only,
        path_specified=cookie.path_specified,
        same_site=_SAME_SITE.get((same_site or "").lower()),
    )


def _from_stored(stored: StoredCookie) -> Cookie:
    rest: dict[str, str | None] = {}
    if stored.http_only:
        rest["HttpOnly"] = None
    if stored.same_site is not None:
        rest["SameSite"] = stored.same_site
    return Cookie(
        version=0,
        name=stored.name,
        value=stored.value,
        port=None,
        port_specified=False,
        domain=stored.domain if stored.host_only else f".{stored.domain}",
        domain_specified=not stored.host_only,
        domain_initial_dot=not stored.host_only,
        path=stored.path,
        path_specified=stored.path_specified,
        secure=stored.secure,
        expires=stored.expires,
        discard=stored.expires is None,
        comment=None,
        comment_url=None,
        rest=rest,
    )
