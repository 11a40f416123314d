"""Identifier normalization and cache-key derivation."""

from __future__ import annotations

import math
import re
from urllib.parse import quote

from .models import BookRecord

_NON_ISBN = re.compile(r"[^0-9X]", re.IGNORECASE)
_NON_SLUG = re.compile(r"[^a-z0-9]+")
_SERIES_NAME = re.compile(r"\(([^#)]+)#\d+")
_SERIES_NUMBER = re.compile(r"#(\d+)")


def normalize_isbn(value: str | None) -> str:
    """Strip everything but digits and X/x."""
    return _NON_ISBN.sub("", value or "")


def isbn_candidates(book: BookRecord) -> list[str]:
    """Normalized ISBNs in lookup order: isbn13, isbn10, isbn."""
    candidates = []
    for raw in (book.isbn13, book.isbn10, book.isbn):
        isbn = normalize_isbn(raw)
        if isbn:
            candidates.append(isbn)
    return candidates


def primary_isbn(book: BookRecord) -> str:
    """First ISBN field as written in the catalog (not normalized)."""
    return book.isbn13 or book.isbn10 or book.isbn


def derive_key(book: BookRecord) -> str:
    """Stable cache key: isbn13, isbn10, isbn, id, then "title|author"."""
    return (
        book.isbn13
        or book.isbn10
        or book.isbn
        or book.id
        or f"{book.title}|{book.author}"
    )


def rating_key(book: BookRecord) -> str:
    return book.goodreads_id or book.id


def author_last_name(author: str) -> str:
    parts = author.split()
    return parts[-1].lower() if parts else ""


def series_name(title: str) -> str:
    """Series label from titles like "Dune Messiah (Dune #2)"."""
    match = _SERIES_NAME.search(title or "")
    return match.group(1).strip().lower() if match else ""


def series_number(title: str) -> float:
    match = _SERIES_NUMBER.search(title or "")
    return int(match.group(1)) if match else math.inf


def shelf_order(book: BookRecord) -> tuple[str, str, float, str]:
    """Sort key: author last name, series, position in series, title."""
    return (
        author_last_name(book.author),
        series_name(book.title),
        series_number(book.title),
        book.title.casefold(),
    )


def slugify(book: BookRecord) -> str:
    """Filesystem-safe name built from title, author and ISBN."""
    base = f"{book.title or 'book'}-{book.author or 'author'}"
    isbn = book.isbn13 or book.isbn10
    joined = "-".join(part for part in (base, isbn) if part)
    slug = _NON_SLUG.sub("-", joined.lower()).strip("-")
    return slug[:80]


def encode_component(value: str) -> str:
    """Percent-encode a URL component the way encodeURIComponent does."""
    return quote(value, safe="!*'()")
