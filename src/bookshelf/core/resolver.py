"""Fallback-chain resolution of covers, descriptions and ratings."""

from __future__ import annotations

from dataclasses import dataclass
from functools import partial
from pathlib import Path
from typing import Awaitable, Callable, Iterable

import structlog

from . import providers
from .cache import MISSING, ResultCache
from .errors import FetchError, Outcome, OutcomeKind, RejectedError
from .fetcher import RateLimitedFetcher
from .identity import derive_key, isbn_candidates, primary_isbn, rating_key
from .local import resolve_local
from .models import (
    PLACEHOLDER_COVER,
    BookDetail,
    BookRecord,
    MetadataPartial,
    Partial,
    Resolution,
)

log = structlog.get_logger()


@dataclass(frozen=True)
class Attempt:
    """One step of a fallback chain.

    ``run`` is a zero-argument coroutine factory; None marks an adapter whose
    required identifier is absent.
    """

    provider: str
    run: Callable[[], Awaitable[Partial | None]] | None = None
    skip_reason: str = ""

    @classmethod
    def skipped(cls, provider: str, reason: str) -> Attempt:
        return cls(provider=provider, skip_reason=reason)


async def run_chain(attempts: Iterable[Attempt]) -> Resolution:
    """Run attempts in order until the merged result is complete.

    Provider failures never propagate: rejections, network errors and
    unexpected payloads are recorded as outcomes and the next attempt runs.
    """
    merged: Partial | None = None
    outcomes: list[Outcome] = []

    for attempt in attempts:
        if attempt.run is None:
            outcomes.append(Outcome(OutcomeKind.SKIPPED, attempt.provider, attempt.skip_reason))
            continue
        try:
            result = await attempt.run()
        except RejectedError as e:
            log.debug("provider_rejected", provider=attempt.provider, url=e.url, reason=e.reason)
            outcomes.append(Outcome(OutcomeKind.REJECTED, attempt.provider, e.reason))
            continue
        except FetchError as e:
            log.warning("provider_failed", provider=attempt.provider, url=e.url, error=e.reason)
            outcomes.append(Outcome(OutcomeKind.NETWORK, attempt.provider, e.reason))
            continue
        except Exception as e:
            # malformed provider payloads must not abort the chain
            log.warning("provider_failed", provider=attempt.provider, error=repr(e))
            outcomes.append(Outcome(OutcomeKind.ERROR, attempt.provider, repr(e)))
            continue

        if result is None or result.is_empty():
            outcomes.append(Outcome(OutcomeKind.NOT_FOUND, attempt.provider))
            continue

        outcomes.append(Outcome(OutcomeKind.FOUND, attempt.provider))
        merged = result if merged is None else merged.merge(result)
        if merged.is_complete():
            break

    return Resolution(value=merged, outcomes=outcomes)


@dataclass
class ResolvedCover:
    cover: str
    cover_remote: str | None = None
    local: bool = False
    resolution: Resolution | None = None


class CoverResolver:
    """Cover precedence: local file, then remote providers, then placeholder.

    Remote order: existing coverRemote, Open Library by each ISBN, Open
    Library by OLID, Google Books by volume id, Google Books by each ISBN,
    and a guarded title/author search as the last resort.
    """

    def __init__(self, fetcher: RateLimitedFetcher, root: Path) -> None:
        self.fetcher = fetcher
        self.root = root

    def attempts(self, book: BookRecord) -> list[Attempt]:
        f = self.fetcher
        isbns = isbn_candidates(book)
        chain: list[Attempt] = []

        if book.cover_remote:
            chain.append(Attempt("cover_remote", partial(providers.cover_remote_url, f, book.cover_remote)))
        for isbn in isbns:
            chain.append(Attempt("open_library_isbn", partial(providers.openlibrary_cover_isbn, f, isbn)))
        if book.olid:
            chain.append(Attempt("open_library_olid", partial(providers.openlibrary_cover_olid, f, book.olid)))
        else:
            chain.append(Attempt.skipped("open_library_olid", "no olid"))
        if book.google_volume_id:
            chain.append(
                Attempt("google_volume", partial(providers.google_cover_volume, f, book.google_volume_id))
            )
        else:
            chain.append(Attempt.skipped("google_volume", "no volume id"))
        for isbn in isbns:
            chain.append(Attempt("google_isbn", partial(providers.google_cover_isbn, f, isbn)))
        if book.title and book.author:
            chain.append(Attempt("google_search", partial(providers.google_cover_search, f, book)))
        else:
            chain.append(Attempt.skipped("google_search", "title and author required"))
        return chain

    async def resolve_remote(self, book: BookRecord) -> Resolution:
        return await run_chain(self.attempts(book))

    async def resolve(self, book: BookRecord) -> ResolvedCover:
        local = resolve_local(book, self.root)
        if local:
            return ResolvedCover(cover=local, cover_remote=book.cover_remote or None, local=True)

        resolution = await self.resolve_remote(book)
        remote = resolution.value.cover_remote if resolution.value else ""
        if not remote:
            log.debug("cover_not_found", title=book.title, outcomes=len(resolution.outcomes))
        return ResolvedCover(
            cover=remote or PLACEHOLDER_COVER,
            cover_remote=remote or None,
            resolution=resolution,
        )


class MetadataResolver:
    """Description (and incidental cover) lookup, cached by derived key."""

    def __init__(self, fetcher: RateLimitedFetcher, cache: ResultCache) -> None:
        self.fetcher = fetcher
        self.cache = cache

    def attempts(self, book: BookRecord) -> list[Attempt]:
        f = self.fetcher
        isbn = primary_isbn(book)
        if isbn:
            return [
                Attempt("google_books_isbn", partial(providers.google_by_isbn, f, book, isbn)),
                Attempt("open_library", partial(providers.openlibrary_description, f, isbn)),
            ]
        if book.lookup_title or book.title:
            return [
                Attempt("google_books_title", partial(providers.google_by_title, f, book)),
                Attempt.skipped("open_library", "no isbn"),
            ]
        return [Attempt.skipped("google_books", "no isbn or title")]

    async def lookup(self, book: BookRecord) -> MetadataPartial:
        key = derive_key(book)
        cached = self.cache.metadata.get(key)
        if cached is not MISSING:
            return cached

        resolution = await run_chain(self.attempts(book))
        info = resolution.value if isinstance(resolution.value, MetadataPartial) else MetadataPartial()
        self.cache.metadata.put(key, info)
        return info


class RatingResolver:
    """Goodreads rating lookup; unavailable ratings are cached as None."""

    def __init__(self, fetcher: RateLimitedFetcher, cache: ResultCache) -> None:
        self.fetcher = fetcher
        self.cache = cache

    async def rating(self, book: BookRecord) -> str | None:
        key = rating_key(book)
        if not key:
            return None
        cached = self.cache.ratings.get(key)
        if cached is not MISSING:
            return cached

        resolution = await run_chain(
            [Attempt("goodreads", partial(providers.goodreads_rating, self.fetcher, key))]
        )
        rating = resolution.value.rating if resolution.value else None
        self.cache.ratings.put(key, rating)
        return rating


class DetailService:
    """Merged details for one book, as shown by the details view."""

    def __init__(self, fetcher: RateLimitedFetcher, cache: ResultCache, root: Path) -> None:
        self.cache = cache
        self.root = root
        self.metadata = MetadataResolver(fetcher, cache)
        self.ratings = RatingResolver(fetcher, cache)

    def _cover(self, book: BookRecord, info: MetadataPartial) -> str:
        local = resolve_local(book, self.root)
        if local:
            return local
        if book.cover and not book.cover.startswith("/"):
            return book.cover
        return book.cover_remote or info.cover_remote or PLACEHOLDER_COVER

    async def details(self, book: BookRecord) -> BookDetail:
        key = derive_key(book)
        cached = self.cache.details.get(key)
        if cached is not MISSING:
            return cached

        info = await self.metadata.lookup(book)
        rating = await self.ratings.rating(book)
        detail = BookDetail(
            key=key,
            title=book.title,
            author=book.author,
            cover=self._cover(book, info),
            description=book.description or info.description,
            goodreads_id=rating_key(book),
            goodreads_rating=rating,
            wk_rating=book.wk_rating,
        )
        self.cache.details.put(key, detail)
        return detail
