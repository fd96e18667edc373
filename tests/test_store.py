import asyncio
import time
from concurrent.futures import ThreadPoolExecutor

import pytest
from pyreqwest_cookies.cookie import CookieAction, StoredCookie
from pyreqwest_cookies.exceptions import CookieParseError
from pyreqwest_cookies.store import CookieJarStore, SyncCookieJarStore, format_cookie_header

URL = "http://example.com/"


class FakeEngine:
    """Engine returning cookies in insertion order, without any matching rules."""

    def __init__(self) -> None:
        self.jar: dict[tuple[str, str, str], StoredCookie] = {}

    def parse(self, set_cookie: str, request_url: str) -> CookieAction:
        pair, _, path = set_cookie.partition(";")
        name, sep, value = pair.partition("=")
        if not sep:
            raise CookieParseError("bad cookie", {"set_cookie": set_cookie, "url": request_url})
        cookie = StoredCookie(name, value, "fake", path.strip() or "/")
        action = CookieAction.UPDATED if cookie.key in self.jar else CookieAction.INSERTED
        self.jar[cookie.key] = cookie
        return action

    def matches(self, url: str) -> list[StoredCookie]:
        return list(self.jar.values())

    def cookies(self) -> list[StoredCookie]:
        return list(self.jar.values())

    def restore(self, cookie: StoredCookie) -> None:
        self.jar[cookie.key] = cookie

    def remove(self, domain: str, path: str, name: str) -> StoredCookie | None:
        return self.jar.pop((domain, path, name), None)

    def clear(self) -> None:
        self.jar.clear()

    def clear_expired(self) -> None:
        self.jar = {k: v for k, v in self.jar.items() if not v.is_expired()}


def test_format_cookie_header():
    assert format_cookie_header([]) is None
    assert format_cookie_header([StoredCookie("a", "1", "x")]) == "a=1"
    assert format_cookie_header([StoredCookie("a", "1", "x"), StoredCookie("b", "", "x")]) == "a=1; b="


async def test_matches_longest_path_first():
    store = CookieJarStore(FakeEngine())
    for set_cookie in ["a=1; /", "b=2; /foo/bar", "c=3; /", "d=4; /foo"]:
        await store.parse(set_cookie, URL)

    assert await store.cookie_header(URL) == "b=2; d=4; a=1; c=3"


async def test_matches_same_name_by_path():
    store = CookieJarStore()
    await store.parse("key=root; Path=/", URL)
    await store.parse("key=foo; Path=/foo", URL)

    assert await store.cookie_header("http://example.com/foo/bar") == "key=foo; key=root"
    assert await store.cookie_header("http://example.com/bar") == "key=root"
    assert await store.cookie_header("http://other.invalid/") is None


async def test_overwrite():
    store = CookieJarStore()
    assert await store.parse("key=val1; Path=/", URL) == CookieAction.INSERTED
    assert await store.parse("key=val2; Path=/", URL) == CookieAction.UPDATED

    assert [str(c) for c in await store.cookies()] == ["key=val2"]
    assert await store.get("example.com", "/", "key") == StoredCookie("key", "val2", "example.com")


async def test_store_response_cookies_independent_failures():
    store = CookieJarStore()
    errors = await store.store_response_cookies(
        ["first=1; Path=/", "garbage", "second=2; Path=/", "third=3; Domain=other.invalid", "fourth=4; Path=/"],
        URL,
    )

    assert [e.details["set_cookie"] for e in errors] == ["garbage", "third=3; Domain=other.invalid"]
    assert sorted(str(c) for c in await store.cookies()) == ["first=1", "fourth=4", "second=2"]


async def test_parse_error_raised():
    store = CookieJarStore()
    with pytest.raises(CookieParseError, match="no name=value pair"):
        await store.parse("garbage", URL)


async def test_snapshot_skips_session_and_expired():
    now = int(time.time())
    store = CookieJarStore(
        cookies=[
            StoredCookie("session", "1", "example.com"),
            StoredCookie("persistent", "1", "example.com", expires=now + 100),
            StoredCookie("expired", "1", "example.com", expires=now - 100),
        ]
    )

    assert [c.name for c in await store.snapshot()] == ["persistent"]
    assert sorted(c.name for c in await store.cookies()) == ["expired", "persistent", "session"]


async def test_remove_and_clear():
    store = CookieJarStore()
    await store.store_response_cookies(["a=1; Path=/", "b=2; Path=/"], URL)

    assert await store.remove("example.com", "/", "a") == StoredCookie("a", "1", "example.com")
    assert await store.remove("example.com", "/", "a") is None
    assert await store.cookie_header(URL) == "b=2"

    await store.clear()
    assert await store.cookies() == []


async def test_concurrent_writes_are_not_lost():
    store = CookieJarStore()

    await asyncio.gather(*(store.parse(f"key{i}=val{i}; Path=/", URL) for i in range(50)))
    await asyncio.gather(*(store.store_response_cookies([f"other{i}=val; Path=/"], URL) for i in range(50)))

    assert len(await store.cookies()) == 100


async def test_concurrent_reads_and_writes():
    store = CookieJarStore()

    async def write(i: int) -> None:
        await store.parse(f"key{i}=val; Path=/", URL)

    async def read() -> int:
        return len(await store.matches(URL))

    results = await asyncio.gather(*(coro for i in range(20) for coro in (write(i), read())))

    assert all(0 <= count <= 20 for count in results[1::2])
    assert len(await store.matches(URL)) == 20


def test_sync_store():
    store = SyncCookieJarStore()
    store.parse("key=root; Path=/", URL)
    store.parse("key=foo; Path=/foo", URL)
    errors = store.store_response_cookies(["bad", "other=1; Path=/; Max-Age=100"], URL)

    assert len(errors) == 1
    assert store.cookie_header("http://example.com/foo/") == "key=foo; key=root; other=1"
    assert [c.name for c in store.snapshot()] == ["other"]
    assert store.get("example.com", "/foo", "key") == StoredCookie("key", "foo", "example.com", "/foo")
    assert store.remove("example.com", "/foo", "key") is not None

    store.clear()
    assert store.cookies() == []


def test_sync_store_threads():
    store = SyncCookieJarStore()

    def write_and_read(i: int) -> None:
        store.parse(f"key{i}=val; Path=/", URL)
        assert store.get("example.com", "/", f"key{i}") is not None

    with ThreadPoolExecutor(max_workers=8) as executor:
        list(executor.map(write_and_read, range(100)))

    assert len(store.matches(URL)) == 100
