"""Provider adapters for Google Books, Open Library and Goodreads.

Each adapter takes the shared fetcher and a read-only ``BookRecord`` and
returns a partial result, or None when the provider has nothing. Candidates
that fail a cross-check raise ``RejectedError``. Transport failures surface
as ``NetworkError`` from the fetcher. Both are caught by the chain runner.
"""

from __future__ import annotations

import re
from typing import Any

import structlog

from .errors import RejectedError
from .fetcher import HTML_TYPES, RateLimitedFetcher
from .identity import author_last_name, encode_component, normalize_isbn
from .models import BookRecord, CoverPartial, MetadataPartial, RatingPartial

log = structlog.get_logger()

GOOGLE_VOLUMES = "https://www.googleapis.com/books/v1/volumes"
OPENLIBRARY = "https://openlibrary.org"
OPENLIBRARY_COVERS = "https://covers.openlibrary.org/b"
GOODREADS_SHOW = "https://www.goodreads.com/book/show"
RELAY = "https://api.allorigins.win/raw"

_METADATA_FIELDS = "items(volumeInfo(title,authors,description,imageLinks,industryIdentifiers))"
_RATING_MARKER = re.compile(r'itemprop="ratingValue"[^>]*>([0-9.]+)')
_TITLE_PREFIX = 10


def _mapping(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _strings(values: Any) -> list[str]:
    if not isinstance(values, list):
        return []
    return [v for v in values if isinstance(v, str)]


def best_image(image_links: dict[str, Any] | None) -> str:
    """Largest available Google Books thumbnail."""
    links = _mapping(image_links)
    for size in ("extraLarge", "large", "thumbnail", "smallThumbnail"):
        if isinstance(links.get(size), str) and links[size]:
            return links[size]
    return ""


def _first_volume(data: Any) -> dict[str, Any] | None:
    items = _mapping(data).get("items")
    if not isinstance(items, list) or not items:
        return None
    return _mapping(items[0])


# --- Google Books metadata ---------------------------------------------------


def google_isbn_url(isbn: str) -> str:
    return f"{GOOGLE_VOLUMES}?q=isbn:{encode_component(isbn)}&maxResults=1&fields={_METADATA_FIELDS}"


def google_title_url(title: str, author: str) -> str:
    query = f"intitle:{encode_component(title)}"
    if author:
        query += f"+inauthor:{encode_component(author)}"
    return f"{GOOGLE_VOLUMES}?q={query}&maxResults=1&fields={_METADATA_FIELDS}"


def volume_matches(volume: dict[str, Any], isbn: str, author: str) -> bool:
    """Cross-check a fuzzy ISBN hit against the queried ISBN or author."""
    wanted = normalize_isbn(isbn).upper()
    if wanted:
        idents = volume.get("industryIdentifiers")
        for ident in idents if isinstance(idents, list) else []:
            if not isinstance(ident, dict) or not isinstance(ident.get("identifier"), str):
                continue
            if normalize_isbn(ident.get("identifier")).upper() == wanted:
                return True

    last_name = author_last_name(author)
    if last_name:
        volume_authors = " ".join(_strings(volume.get("authors"))).lower()
        if last_name in volume_authors:
            return True
    return False


async def _metadata_from_volume(
    fetcher: RateLimitedFetcher, volume: dict[str, Any]
) -> MetadataPartial:
    cover = await fetcher.fetch_validated(best_image(volume.get("imageLinks")))
    return MetadataPartial(
        source="google_books",
        description=_description_text(volume.get("description")),
        cover_remote=cover or "",
    )


async def google_by_isbn(
    fetcher: RateLimitedFetcher, book: BookRecord, isbn: str
) -> MetadataPartial | None:
    """Google Books lookup by ISBN, accepted only if it cross-checks."""
    item = _first_volume(await fetcher.get_json(google_isbn_url(isbn)))
    if item is None:
        return None
    volume = _mapping(item.get("volumeInfo"))
    if not volume_matches(volume, isbn, book.author):
        raise RejectedError(google_isbn_url(isbn), "identifier and author mismatch")
    log.debug("google_books_hit", isbn=isbn, title=volume.get("title", ""))
    return await _metadata_from_volume(fetcher, volume)


async def google_by_title(
    fetcher: RateLimitedFetcher, book: BookRecord
) -> MetadataPartial | None:
    """Google Books free-text lookup; first result is taken as-is."""
    title = book.lookup_title or book.title
    item = _first_volume(await fetcher.get_json(google_title_url(title, book.author)))
    if item is None:
        return None
    log.debug("google_books_title_hit", title=title)
    return await _metadata_from_volume(fetcher, _mapping(item.get("volumeInfo")))


# --- Open Library description ------------------------------------------------


def _description_text(value: Any) -> str:
    if isinstance(value, dict):
        value = value.get("value", "")
    return value if isinstance(value, str) else ""


async def openlibrary_description(
    fetcher: RateLimitedFetcher, isbn: str
) -> MetadataPartial | None:
    """Find the work by ISBN, then read its description."""
    results = await fetcher.get_json(
        f"{OPENLIBRARY}/search.json?isbn={encode_component(isbn)}"
    )
    docs = _mapping(results).get("docs")
    first = _mapping(docs[0]) if isinstance(docs, list) and docs else {}
    work_key = first.get("key")
    if not isinstance(work_key, str) or not work_key:
        return None
    work = await fetcher.get_json(f"{OPENLIBRARY}{work_key}.json")
    description = _description_text(_mapping(work).get("description"))
    if not description:
        return None
    log.debug("works_data_found", isbn=isbn, works_key=work_key)
    return MetadataPartial(source="open_library", description=description)


# --- Goodreads rating --------------------------------------------------------


def goodreads_url(goodreads_id: str) -> str:
    page = f"{GOODREADS_SHOW}/{goodreads_id}"
    return f"{RELAY}?url={encode_component(page)}"


def extract_rating(html: str) -> str | None:
    """Pull the decimal rating that follows the ratingValue marker."""
    match = _RATING_MARKER.search(html or "")
    if not match:
        return None
    try:
        return f"{float(match.group(1)):.2f}"
    except ValueError:
        return None


async def goodreads_rating(
    fetcher: RateLimitedFetcher, goodreads_id: str
) -> RatingPartial | None:
    if not goodreads_id:
        return None
    html = await fetcher.get_text(goodreads_url(goodreads_id), HTML_TYPES)
    rating = extract_rating(html)
    if rating is None:
        return None
    return RatingPartial(source="goodreads", rating=rating)


# --- Cover adapters ----------------------------------------------------------


def _cover(url: str | None, source: str) -> CoverPartial | None:
    if not url:
        return None
    return CoverPartial(source=source, cover_remote=url)


async def cover_remote_url(fetcher: RateLimitedFetcher, url: str) -> CoverPartial | None:
    return _cover(await fetcher.fetch_validated(url), "cover_remote")


async def openlibrary_cover_isbn(
    fetcher: RateLimitedFetcher, isbn: str
) -> CoverPartial | None:
    url = f"{OPENLIBRARY_COVERS}/isbn/{isbn}-L.jpg?default=false"
    return _cover(await fetcher.fetch_validated(url), "open_library")


async def openlibrary_cover_olid(
    fetcher: RateLimitedFetcher, olid: str
) -> CoverPartial | None:
    url = f"{OPENLIBRARY_COVERS}/olid/{olid}-L.jpg?default=false"
    return _cover(await fetcher.fetch_validated(url), "open_library")


async def google_cover_volume(
    fetcher: RateLimitedFetcher, volume_id: str
) -> CoverPartial | None:
    data = await fetcher.get_json(
        f"{GOOGLE_VOLUMES}/{encode_component(volume_id)}?fields=volumeInfo(imageLinks)"
    )
    links = _mapping(_mapping(data).get("volumeInfo")).get("imageLinks")
    return _cover(await fetcher.fetch_validated(best_image(links)), "google_books")


async def google_cover_isbn(
    fetcher: RateLimitedFetcher, isbn: str
) -> CoverPartial | None:
    data = await fetcher.get_json(
        f"{GOOGLE_VOLUMES}?q=isbn:{encode_component(isbn)}"
        "&maxResults=1&fields=items(id,volumeInfo/imageLinks)"
    )
    item = _first_volume(data)
    if item is None:
        return None
    links = _mapping(item.get("volumeInfo")).get("imageLinks")
    return _cover(await fetcher.fetch_validated(best_image(links)), "google_books")


def search_matches(volume: dict[str, Any], title: str, author: str) -> bool:
    """Author substring match and title prefix match, case-insensitive."""
    author = author.lower()
    author_ok = any(author in name.lower() for name in _strings(volume.get("authors")))
    volume_title = volume.get("title") if isinstance(volume.get("title"), str) else ""
    title_ok = title.lower()[:_TITLE_PREFIX] in volume_title.lower()
    return author_ok and title_ok


async def google_cover_search(
    fetcher: RateLimitedFetcher, book: BookRecord
) -> CoverPartial | None:
    """Last-resort free-text search, guarded by title and author checks."""
    if not book.title or not book.author:
        return None
    query = encode_component(f"intitle:{book.title}+inauthor:{book.author}")
    url = (
        f"{GOOGLE_VOLUMES}?q={query}&maxResults=1"
        "&fields=items(volumeInfo/title,volumeInfo/authors,volumeInfo/imageLinks)"
    )
    item = _first_volume(await fetcher.get_json(url))
    if item is None:
        return None
    volume = _mapping(item.get("volumeInfo"))
    if not search_matches(volume, book.title, book.author):
        raise RejectedError(url, "title or author mismatch")
    return _cover(await fetcher.fetch_validated(best_image(volume.get("imageLinks"))), "google_books")
