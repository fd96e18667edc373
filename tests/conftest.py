from collections.abc import Generator
from pathlib import Path
from tempfile import NamedTemporaryFile
from typing import IO

import pytest

from tests.servers.cookie_server import CookieServer


@pytest.fixture
def cookie_server() -> CookieServer:
    return CookieServer()


@pytest.fixture
def cookie_path(tmp_path: Path) -> Path:
    return tmp_path / "cookies.ndjson"


@pytest.fixture
def cookie_file() -> Generator[IO[bytes], None, None]:
    with NamedTemporaryFile(suffix=".ndjson") as tmp:
        yield tmp
