from __future__ import annotations

from typing import Any, Callable

import httpx
import pytest
import pytest_asyncio

from bookshelf.core.cache import ResultCache
from bookshelf.core.fetcher import RateLimitedFetcher

JPEG = b"\xff\xd8\xff\xe0" + b"0" * 2048


class FakeWeb:
    """Routes requests by URL fragment and records every request."""

    def __init__(self) -> None:
        self.routes: list[tuple[str, Callable[[], httpx.Response]]] = []
        self.requests: list[httpx.Request] = []

    def json(self, fragment: str, payload: Any, status: int = 200) -> None:
        self.routes.append((fragment, lambda: httpx.Response(status, json=payload)))

    def image(self, fragment: str, content_type: str = "image/jpeg", body: bytes = JPEG) -> None:
        self.routes.append(
            (fragment, lambda: httpx.Response(200, content=body, headers={"content-type": content_type}))
        )

    def html(self, fragment: str, body: str) -> None:
        self.routes.append(
            (fragment, lambda: httpx.Response(200, text=body, headers={"content-type": "text/html; charset=utf-8"}))
        )

    def status(self, fragment: str, code: int) -> None:
        self.routes.append((fragment, lambda: httpx.Response(code, text="nope")))

    def fail(self, fragment: str) -> None:
        def raise_error() -> httpx.Response:
            raise httpx.ConnectError("connection refused")

        self.routes.append((fragment, raise_error))

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        url = str(request.url)
        for fragment, respond in self.routes:
            if fragment in url:
                return respond()
        return httpx.Response(404, json={"error": "not found"})

    def called(self, fragment: str) -> int:
        return sum(1 for r in self.requests if fragment in str(r.url))

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


@pytest.fixture
def web() -> FakeWeb:
    return FakeWeb()


@pytest.fixture
def cache() -> ResultCache:
    return ResultCache()


@pytest_asyncio.fixture
async def fetcher(web):
    async with httpx.AsyncClient(transport=web.transport) as client:
        yield RateLimitedFetcher(client, delay=0)


@pytest.fixture
def site_root(tmp_path):
    covers = tmp_path / "assets" / "covers"
    covers.mkdir(parents=True)
    (covers / "placeholder.svg").write_text("<svg/>")
    (tmp_path / "data").mkdir()
    return tmp_path
