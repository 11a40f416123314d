"""Local cover override and existence checks."""

from __future__ import annotations

from pathlib import Path

import structlog

from .models import PLACEHOLDER_COVER, BookRecord

log = structlog.get_logger()


def normalize_cover_path(path: str) -> str:
    """Root-relative path with exactly one leading slash."""
    return "/" + path.lstrip("/")


def local_file(root: Path, cover_path: str) -> Path:
    return root / cover_path.lstrip("/")


def exists_locally(root: Path, cover_path: str) -> bool:
    try:
        return local_file(root, cover_path).exists()
    except OSError:
        return False


def resolve_local(book: BookRecord, root: Path) -> str | None:
    """Return a local cover path if the override or existing cover is on disk.

    The override is checked first. A missing override is logged and the
    existing ``cover`` is tried next; only leading-slash paths count as local,
    and the placeholder never does.
    """
    if book.cover_override:
        normalized = normalize_cover_path(book.cover_override)
        if exists_locally(root, normalized):
            return normalized
        log.warning("cover_override_missing", title=book.title, override=book.cover_override)

    if book.cover.startswith("/") and book.cover != PLACEHOLDER_COVER:
        normalized = normalize_cover_path(book.cover)
        if exists_locally(root, normalized):
            return normalized

    return None
