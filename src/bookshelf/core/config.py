"""Runtime settings read from the environment."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

DEFAULT_CATALOG = "data/books.json"
DEFAULT_RATE_LIMIT_MS = 200
DEFAULT_HTTP_TIMEOUT = 10.0
COVERS_SUBDIR = "assets/covers"


@dataclass(frozen=True)
class Settings:
    root: Path
    catalog_path: Path
    rate_limit_ms: int = DEFAULT_RATE_LIMIT_MS
    http_timeout: float = DEFAULT_HTTP_TIMEOUT
    contact_email: str = ""

    @property
    def delay(self) -> float:
        return self.rate_limit_ms / 1000

    @property
    def user_agent(self) -> str:
        # Open Library asks clients to identify themselves
        if self.contact_email:
            return f"Bookshelf/0.1.0 ({self.contact_email})"
        return "Bookshelf/0.1.0"

    @classmethod
    def from_env(cls) -> Settings:
        load_dotenv()
        root = Path(os.environ.get("BOOKSHELF_ROOT", ".")).resolve()
        catalog = Path(os.environ.get("BOOKSHELF_CATALOG", DEFAULT_CATALOG))
        if not catalog.is_absolute():
            catalog = root / catalog
        return cls(
            root=root,
            catalog_path=catalog,
            rate_limit_ms=int(os.environ.get("BOOKSHELF_RATE_LIMIT_MS", DEFAULT_RATE_LIMIT_MS)),
            http_timeout=float(os.environ.get("BOOKSHELF_HTTP_TIMEOUT", DEFAULT_HTTP_TIMEOUT)),
            contact_email=os.environ.get("BOOKSHELF_CONTACT_EMAIL", ""),
        )
