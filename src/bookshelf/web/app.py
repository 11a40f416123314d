"""FastAPI service backing the reading-list page."""

from __future__ import annotations

import asyncio
import os
from datetime import datetime, timezone
from typing import Any

import httpx
import structlog
import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from ..core.cache import ResultCache
from ..core.catalog import load_catalog
from ..core.config import Settings
from ..core.errors import CatalogError
from ..core.fetcher import RateLimitedFetcher
from ..core.identity import derive_key, shelf_order
from ..core.models import PLACEHOLDER_COVER, BookRecord
from ..core.resolver import CoverResolver, DetailService

log = structlog.get_logger()

CATALOG_ERROR = "Could not load books right now."


def create_app(
    settings: Settings,
    cache: ResultCache | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    """Build the app around one settings object and one per-process cache."""
    result_cache = cache if cache is not None else ResultCache()

    app = FastAPI(title="Bookshelf", docs_url=None, redoc_url=None)
    app.state.settings = settings
    app.state.cache = result_cache

    def client() -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=transport)

    def fetcher(http: httpx.AsyncClient) -> RateLimitedFetcher:
        return RateLimitedFetcher(
            http,
            delay=settings.delay,
            timeout=settings.http_timeout,
            user_agent=settings.user_agent,
        )

    def books_or_error() -> list[dict[str, Any]] | JSONResponse:
        try:
            return load_catalog(settings.catalog_path)
        except CatalogError as e:
            log.error("catalog_load_failed", error=str(e))
            return JSONResponse({"error": CATALOG_ERROR}, status_code=500)

    @app.middleware("http")
    async def security_headers(request: Request, call_next):
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        return response

    @app.get("/health")
    async def health():
        return {
            "status": "ok",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "version": "0.1.0",
            "environment": os.environ.get("ENV", "dev"),
            "cached_details": len(result_cache.details),
        }

    @app.get("/api/books")
    async def list_books(resolve: bool = False):
        books = books_or_error()
        if isinstance(books, JSONResponse):
            return books

        shelf = sorted(
            ((raw, BookRecord.from_dict(raw)) for raw in books),
            key=lambda pair: shelf_order(pair[1]),
        )
        records = [book for _, book in shelf]
        listing = [
            {**raw, "key": derive_key(book), "cover": raw.get("cover") or PLACEHOLDER_COVER}
            for raw, book in shelf
        ]
        if resolve:
            # one task per card; each book's own chain stays sequential
            async with client() as http:
                resolver = CoverResolver(fetcher(http), settings.root)
                covers = await asyncio.gather(*(resolver.resolve(book) for book in records))
            for item, cover in zip(listing, covers):
                item["cover"] = cover.cover
                item["coverRemote"] = cover.cover_remote
        return {"books": listing}

    @app.get("/api/books/{key:path}")
    async def book_details(key: str):
        books = books_or_error()
        if isinstance(books, JSONResponse):
            return books

        records = (BookRecord.from_dict(b) for b in books)
        match = next((book for book in records if derive_key(book) == key), None)
        if match is None:
            return JSONResponse({"error": "Book not found."}, status_code=404)

        async with client() as http:
            service = DetailService(fetcher(http), result_cache, settings.root)
            detail = await service.details(match)
        return detail.to_dict()

    app.mount("/", StaticFiles(directory=str(settings.root), html=True, check_dir=False), name="site")
    return app


app = create_app(Settings.from_env())


def main():
    port = int(os.environ.get("PORT", "8000"))
    is_dev = os.environ.get("ENV", "dev") == "dev"
    uvicorn.run(
        "bookshelf.web.app:app",
        host="0.0.0.0",
        port=port,
        reload=is_dev,
    )
