"""Rate-limited HTTP access for provider lookups."""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, Iterable

import httpx
import structlog

from .errors import FetchError, NetworkError, RejectedError

log = structlog.get_logger()

IMAGE_TYPES = ("image/",)
JSON_TYPES = ("application/json",)
HTML_TYPES = ("text/html", "text/plain")

DEFAULT_DELAY = 0.2  # seconds slept after every remote call
DEFAULT_USER_AGENT = "Bookshelf/0.1.0"


class RateLimitedFetcher:
    """GET with a fixed post-call delay and status/content-type validation.

    Every attempted call is followed by ``delay`` seconds of sleep, so the
    throttle accumulates across a whole fallback chain, not just the call
    that wins. One fetcher is shared by everything resolved in a run.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        delay: float = DEFAULT_DELAY,
        timeout: float = 10,
        user_agent: str = DEFAULT_USER_AGENT,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self.client = client
        self.delay = delay
        self.timeout = timeout
        self.user_agent = user_agent
        self._sleep = sleep
        self.calls = 0

    async def request(self, url: str, accept: Iterable[str]) -> httpx.Response:
        """Single validated GET.

        Raises NetworkError on transport failure and RejectedError on a
        non-2xx status or a content type outside ``accept``.
        """
        self.calls += 1
        try:
            resp = await self.client.get(
                url,
                follow_redirects=True,
                timeout=self.timeout,
                headers={"User-Agent": self.user_agent},
            )
        except httpx.InvalidURL as e:
            raise RejectedError(url, f"invalid url: {e}") from e
        except httpx.HTTPError as e:
            raise NetworkError(url, str(e) or type(e).__name__) from e
        finally:
            if self.delay:
                await self._sleep(self.delay)

        if not resp.is_success:
            raise RejectedError(url, f"status {resp.status_code}")
        content_type = resp.headers.get("content-type", "").lower()
        if not any(content_type.startswith(prefix) for prefix in accept):
            raise RejectedError(url, f"content-type {content_type or 'missing'}")
        return resp

    async def fetch_validated(
        self, url: str | None, accept: Iterable[str] = IMAGE_TYPES
    ) -> str | None:
        """Return ``url`` if it resolves to an accepted resource, else None."""
        if not url:
            return None
        try:
            await self.request(url, accept)
        except NetworkError as e:
            log.warning("remote_check_failed", url=url, error=e.reason)
            return None
        except RejectedError as e:
            log.debug("remote_check_rejected", url=url, reason=e.reason)
            return None
        return url

    async def get_json(self, url: str) -> Any:
        resp = await self.request(url, JSON_TYPES)
        try:
            return resp.json()
        except ValueError as e:
            raise RejectedError(url, "invalid json") from e

    async def get_text(self, url: str, accept: Iterable[str] = HTML_TYPES) -> str:
        resp = await self.request(url, accept)
        return resp.text

    async def download(self, url: str) -> tuple[bytes, str] | None:
        """Fetch image bytes. Returns (content, content_type) or None."""
        try:
            resp = await self.request(url, IMAGE_TYPES)
        except FetchError as e:
            log.warning("image_download_failed", url=url, error=e.reason)
            return None
        return resp.content, resp.headers.get("content-type", "")
