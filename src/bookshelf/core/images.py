"""Store downloaded cover images under the site's assets directory."""

from __future__ import annotations

from pathlib import Path

import structlog

from .config import COVERS_SUBDIR
from .fetcher import RateLimitedFetcher
from .local import normalize_cover_path

log = structlog.get_logger()


def mime_to_ext(content_type: str) -> str:
    if "png" in content_type:
        return "png"
    if "webp" in content_type:
        return "webp"
    if "svg" in content_type:
        return "svg"
    return "jpg"


class CoverStore:
    """Download cover images and return their root-relative paths."""

    def __init__(self, fetcher: RateLimitedFetcher, root: Path) -> None:
        self.fetcher = fetcher
        self.root = root
        self.covers_dir = root / COVERS_SUBDIR

    async def save(self, url: str, slug: str) -> str | None:
        """Fetch ``url`` and write it as ``{slug}.{ext}``. Returns the cover path or None."""
        downloaded = await self.fetcher.download(url)
        if downloaded is None:
            return None
        content, content_type = downloaded

        filename = f"{slug}.{mime_to_ext(content_type)}"
        self.covers_dir.mkdir(parents=True, exist_ok=True)
        dest = self.covers_dir / filename
        try:
            dest.write_bytes(content)
        except OSError as e:
            log.warning("image_write_failed", url=url, path=str(dest), error=str(e))
            return None
        log.debug("image_saved", url=url, path=str(dest), size=len(content))
        return normalize_cover_path(f"{COVERS_SUBDIR}/{filename}")
