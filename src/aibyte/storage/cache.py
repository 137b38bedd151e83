"""Flat-file article cache: one JSON file per content hash.

The cache is the pipeline's only persistent state and its deduplication
mechanism. It assumes a single writer; the pipeline schedules each hash at
most once per run.
"""

import json
import logging
from pathlib import Path
from typing import Iterator, Optional

from pydantic import ValidationError

from ..news.models import CachedArticle
from ..utils.jsonio import write_json

logger = logging.getLogger(__name__)


class CacheStore:
    """Reads and writes CachedArticle files under a cache directory."""

    def __init__(self, cache_dir: Path):
        self.cache_dir = Path(cache_dir)

    def ensure_dir(self) -> None:
        self.cache_dir.mkdir(parents=True, exist_ok=True)

    def path_for(self, content_hash: str) -> Path:
        return self.cache_dir / f"{content_hash}.json"

    def exists(self, content_hash: str) -> bool:
        return self.path_for(content_hash).is_file()

    def read(self, content_hash: str) -> Optional[CachedArticle]:
        """
        Read one cache entry.

        Returns:
            The article, or None if the file is missing, unreadable or corrupt
            (a corrupt entry is treated as a cache miss and gets reprocessed)
        """
        path = self.path_for(content_hash)
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            article = CachedArticle.model_validate(data)
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError, json.JSONDecodeError, ValidationError) as e:
            logger.warning("[CACHE] Skipping unreadable cache file %s: %s", path.name, e)
            return None

        if article.content_hash != content_hash:
            logger.warning(
                "[CACHE] Skipping %s: content_hash %s does not match filename",
                path.name,
                article.content_hash[:12],
            )
            return None
        return article

    def write(self, article: CachedArticle) -> Path:
        """Persist an article under its content hash (whole-file replace)."""
        path = self.path_for(article.content_hash)
        write_json(path, article.model_dump(mode="json"))
        return path

    def hashes(self) -> list[str]:
        """Content hashes of all cache files, sorted for a stable load order."""
        if not self.cache_dir.is_dir():
            return []
        return sorted(p.stem for p in self.cache_dir.glob("*.json"))

    def load_all(self) -> Iterator[CachedArticle]:
        """Yield every readable cache entry; corrupt files are logged and skipped."""
        for content_hash in self.hashes():
            article = self.read(content_hash)
            if article is not None:
                yield article

    def count(self) -> int:
        return len(self.hashes())
