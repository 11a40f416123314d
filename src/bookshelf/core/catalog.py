"""Read, resolve and rewrite the JSON book catalog."""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import structlog

from .errors import CatalogError
from .identity import slugify
from .images import CoverStore
from .models import PLACEHOLDER_COVER, BookRecord
from .resolver import CoverResolver

log = structlog.get_logger()


def load_catalog(path: Path) -> list[dict[str, Any]]:
    """Load the catalog as a list of raw book objects."""
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        raise CatalogError(f"cannot read catalog {path}: {e}") from e
    if not isinstance(data, list) or not all(isinstance(b, dict) for b in data):
        raise CatalogError(f"catalog {path} is not a JSON array of objects")
    return data


def dump_catalog(books: list[dict[str, Any]]) -> str:
    return json.dumps(books, indent=2, ensure_ascii=False) + "\n"


def save_catalog(path: Path, books: list[dict[str, Any]]) -> None:
    """Rewrite the whole catalog file in place."""
    try:
        path.write_text(dump_catalog(books), encoding="utf-8")
    except OSError as e:
        raise CatalogError(f"cannot write catalog {path}: {e}") from e
    log.info("catalog_written", path=str(path), books=len(books))


@dataclass
class CatalogSummary:
    total: int = 0
    local: int = 0
    remote: int = 0
    downloaded: int = 0
    placeholder: int = 0


async def process_book(
    entry: dict[str, Any],
    resolver: CoverResolver,
    store: CoverStore | None = None,
) -> str:
    """Resolve one catalog entry in place. Returns how its cover was settled."""
    book = BookRecord.from_dict(entry)
    resolved = await resolver.resolve(book)

    if resolved.local:
        entry["cover"] = resolved.cover
        return "local"

    entry["cover"] = PLACEHOLDER_COVER
    entry["coverRemote"] = resolved.cover_remote

    if store is not None and resolved.cover_remote:
        saved = await store.save(resolved.cover_remote, slugify(book))
        if saved:
            entry["cover"] = saved
            return "downloaded"

    return "remote" if resolved.cover_remote else "placeholder"


async def process_catalog(
    books: list[dict[str, Any]],
    resolver: CoverResolver,
    store: CoverStore | None = None,
) -> CatalogSummary:
    """Resolve covers for every entry, one at a time.

    Entries are processed sequentially so the fetcher's delay is the only
    throttle on outbound calls. Passing a ``store`` enables download mode.
    """
    summary = CatalogSummary(total=len(books))
    for entry in books:
        result = await process_book(entry, resolver, store)
        setattr(summary, result, getattr(summary, result) + 1)
        log.debug("cover_processed", title=entry.get("title", ""), result=result, cover=entry["cover"])
    return summary
