# hotprices/storage/page_cache.py

"""On-disk cache of raw fetched pages for resumable scrapes."""

import logging
import shutil
from collections.abc import Callable
from pathlib import Path

from hotprices.storage.file_manager import FileManager

logger = logging.getLogger("hotprices.cache")


class PageCache:
    """Stores each fetched page under ``root/<key>``.

    A scrape that is aborted part-way can be rerun for the same day and
    will read already-fetched pages from disk instead of the network.
    The cache is removed once the snapshot built from it is published.
    """

    def __init__(self, root: Path) -> None:
        self.root = root
        self.hits: int = 0
        self.misses: int = 0

    def get_or_fetch(self, key: str, fetch: Callable[[], str]) -> str:
        """Return the cached page for ``key`` or fetch and store it."""
        path = self.root / key
        if path.exists():
            self.hits += 1
            logger.debug("Loading '%s' from cache", key)
            return path.read_text(encoding="utf-8")

        self.misses += 1
        logger.debug("Loading '%s' from backend", key)
        text = fetch()
        FileManager.write_atomic(path, text.encode("utf-8"))
        return text

    def clear(self) -> None:
        """Remove the whole cache directory."""
        if self.root.exists():
            logger.info("Removing cache directory %s", self.root)
            shutil.rmtree(self.root)


class NullCache(PageCache):
    """Pass-through cache used when no cache directory is configured."""

    def __init__(self) -> None:
        super().__init__(Path())

    def get_or_fetch(self, key: str, fetch: Callable[[], str]) -> str:
        self.misses += 1
        return fetch()

    def clear(self) -> None:
        return None
