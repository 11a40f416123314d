"""Build-time cover resolution for the book catalog.

Usage: ``bookshelf-covers [--download]``

Metadata mode (default) validates remote covers and records ``coverRemote``
without downloading. Download mode also stores the winning image under
``assets/covers/`` and points ``cover`` at it.
"""

from __future__ import annotations

import argparse
import asyncio
from dataclasses import asdict

import httpx
import structlog

from .core.catalog import CatalogSummary, load_catalog, process_catalog, save_catalog
from .core.config import Settings
from .core.errors import CatalogError
from .core.fetcher import RateLimitedFetcher
from .core.images import CoverStore
from .core.resolver import CoverResolver

log = structlog.get_logger()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="bookshelf-covers", description=__doc__.splitlines()[0])
    parser.add_argument(
        "--download",
        action="store_true",
        help="download resolved cover images into the assets directory",
    )
    return parser


async def run(settings: Settings, download: bool = False) -> CatalogSummary:
    books = load_catalog(settings.catalog_path)
    async with httpx.AsyncClient() as client:
        fetcher = RateLimitedFetcher(
            client,
            delay=settings.delay,
            timeout=settings.http_timeout,
            user_agent=settings.user_agent,
        )
        resolver = CoverResolver(fetcher, settings.root)
        store = CoverStore(fetcher, settings.root) if download else None
        summary = await process_catalog(books, resolver, store)
    save_catalog(settings.catalog_path, books)
    return summary


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    mode = "download" if args.download else "metadata"
    try:
        settings = Settings.from_env()
        summary = asyncio.run(run(settings, download=args.download))
    except CatalogError as e:
        log.error("cover_resolution_failed", mode=mode, error=str(e))
        return 1
    except Exception:
        log.exception("cover_resolution_failed", mode=mode)
        return 1
    log.info("covers_processed", mode=mode, **asdict(summary))
    return 0
