"""Error types and attempt outcomes for the resolution pipeline."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class BookshelfError(Exception):
    """Base class for bookshelf errors."""


class FetchError(BookshelfError):
    """A remote call did not produce a usable response."""

    kind = "network"

    def __init__(self, url: str, reason: str) -> None:
        super().__init__(f"{reason} ({url})")
        self.url = url
        self.reason = reason


class NetworkError(FetchError):
    """Connection failure, timeout or other transport error."""


class RejectedError(FetchError):
    """A response or candidate failed status, content-type or match validation."""

    kind = "rejected"


class CatalogError(BookshelfError):
    """The catalog file could not be read or written."""


class OutcomeKind(str, Enum):
    FOUND = "found"
    NOT_FOUND = "not_found"
    REJECTED = "rejected"
    NETWORK = "network"
    ERROR = "error"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class Outcome:
    kind: OutcomeKind
    provider: str
    detail: str = ""
