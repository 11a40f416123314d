"""Data models for book records and resolution results."""

from __future__ import annotations

import html
import re
from dataclasses import dataclass, field, fields, replace
from typing import Any

from .errors import Outcome

PLACEHOLDER_COVER = "/assets/covers/placeholder.svg"
NO_DESCRIPTION = "No description yet. ISBNs should pull one soon."
NOT_RATED = "Not rated yet"

_TAG = re.compile(r"<[^>]+>")


def strip_tags(text: str) -> str:
    """Provider descriptions may carry markup; render them as plain text."""
    return html.unescape(_TAG.sub("", text or "")).strip()


# JSON field name -> attribute name
_RECORD_FIELDS = {
    "title": "title",
    "author": "author",
    "lookupTitle": "lookup_title",
    "isbn13": "isbn13",
    "isbn10": "isbn10",
    "isbn": "isbn",
    "id": "id",
    "goodreadsId": "goodreads_id",
    "olid": "olid",
    "googleVolumeId": "google_volume_id",
    "cover": "cover",
    "coverRemote": "cover_remote",
    "coverOverride": "cover_override",
    "description": "description",
}


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


@dataclass(frozen=True)
class BookRecord:
    """Read-only view of one catalog entry."""

    title: str = ""
    author: str = ""
    lookup_title: str = ""
    isbn13: str = ""
    isbn10: str = ""
    isbn: str = ""
    id: str = ""
    goodreads_id: str = ""
    olid: str = ""
    google_volume_id: str = ""
    cover: str = ""
    cover_remote: str = ""
    cover_override: str = ""
    description: str = ""
    wk_rating: float | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> BookRecord:
        values: dict[str, Any] = {
            attr: _text(data.get(key)) for key, attr in _RECORD_FIELDS.items()
        }
        rating = data.get("wkRating")
        if isinstance(rating, (int, float)) and not isinstance(rating, bool):
            values["wk_rating"] = float(rating)
        return cls(**values)


@dataclass
class Partial:
    """Base for partial results merged with "first non-empty wins"."""

    source: str = ""

    def merge(self, other: Partial | None) -> Partial:
        if other is None:
            return self
        updates = {}
        for f in fields(self):
            if not getattr(self, f.name) and getattr(other, f.name, None):
                updates[f.name] = getattr(other, f.name)
        return replace(self, **updates) if updates else self

    def is_complete(self) -> bool:
        return all(getattr(self, f.name) for f in fields(self) if f.name != "source")

    def is_empty(self) -> bool:
        return not any(getattr(self, f.name) for f in fields(self) if f.name != "source")


@dataclass
class MetadataPartial(Partial):
    description: str = ""
    cover_remote: str = ""

    def is_complete(self) -> bool:
        return bool(self.description)


@dataclass
class CoverPartial(Partial):
    cover_remote: str = ""


@dataclass
class RatingPartial(Partial):
    rating: str = ""


@dataclass
class Resolution:
    """Merged result of a fallback chain plus the outcome of every attempt."""

    value: Partial | None = None
    outcomes: list[Outcome] = field(default_factory=list)

    @property
    def found(self) -> bool:
        return self.value is not None


@dataclass
class BookDetail:
    """Merged record shown in the details view."""

    key: str
    title: str
    author: str
    cover: str = PLACEHOLDER_COVER
    description: str = ""
    goodreads_id: str = ""
    goodreads_rating: str | None = None
    wk_rating: float | None = None

    @property
    def goodreads_url(self) -> str | None:
        if not self.goodreads_id:
            return None
        return f"https://www.goodreads.com/book/show/{self.goodreads_id}"

    def display_description(self) -> str:
        return strip_tags(self.description) or NO_DESCRIPTION

    def display_goodreads(self) -> str:
        if self.goodreads_rating:
            return f"{self.goodreads_rating} / 5"
        return "View on Goodreads" if self.goodreads_url else "N/A"

    def display_wk_rating(self) -> str:
        if self.wk_rating is None:
            return NOT_RATED
        return f"{self.wk_rating:.1f} / 5"

    def to_dict(self) -> dict[str, Any]:
        return {
            "key": self.key,
            "title": self.title,
            "author": self.author,
            "cover": self.cover or PLACEHOLDER_COVER,
            "description": self.description or None,
            "descriptionText": self.display_description(),
            "goodreadsUrl": self.goodreads_url,
            "goodreadsRating": self.goodreads_rating,
            "goodreadsText": self.display_goodreads(),
            "wkRating": self.wk_rating,
            "wkText": self.display_wk_rating(),
        }
