# hotprices/scrapers/base_adapter.py

"""Abstract base class for the retailer adapters."""

import hashlib
import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

from hotprices.errors import FetchFatalError
from hotprices.models.product import Category, ProductRecord, Retailer
from hotprices.scrapers.fetch_client import FetchClient
from hotprices.storage.page_cache import NullCache, PageCache


@dataclass
class Page:
    """Raw entries of one catalog page and the token of the next one."""

    entries: list[dict[str, Any]] = field(
        default_factory=lambda: list[dict[str, Any]]()
    )
    next_token: str | None = None


class RetailerAdapter(ABC):
    """Shared capability set of every retailer adapter.

    An adapter lists the browsable categories, fetches one page of a
    category at a time, and maps each raw entry to a ProductRecord.
    ``normalize`` returns ``None`` for entries that are intentionally
    skipped and raises NormalizeError for malformed ones.
    """

    retailer: Retailer

    def __init__(
        self,
        client: FetchClient | None = None,
        cache: PageCache | None = None,
    ) -> None:
        self.logger = logging.getLogger(f"hotprices.{self.retailer}")
        self.client = client or FetchClient(
            str(self.retailer), headers=self._default_headers()
        )
        self.cache: PageCache = cache or NullCache()

    def _default_headers(self) -> dict[str, str]:
        """Headers added to the default browser headers."""
        return {}

    def _load_json(self, key: str, fetch: Any) -> Any:
        """Read a page through the cache and decode it."""
        text = self.cache.get_or_fetch(key, fetch)
        try:
            return json.loads(text)
        except json.JSONDecodeError as exc:
            raise FetchFatalError(
                f"[{self.retailer}] Malformed JSON for {key}: {exc}"
            ) from exc

    @staticmethod
    def checksum(raw: Any) -> str:
        """Stable digest of a raw entry for change detection."""
        encoded = json.dumps(
            raw, sort_keys=True, separators=(",", ":"), default=str
        )
        return hashlib.sha1(encoded.encode("utf-8")).hexdigest()

    @abstractmethod
    def list_categories(self) -> list[Category]:
        """Return the categories to paginate, in catalog order."""
        ...

    @abstractmethod
    def fetch_page(
        self, category: Category, page_token: str | None
    ) -> Page:
        """Fetch one page; ``page_token`` is ``None`` for the first page."""
        ...

    @abstractmethod
    def normalize(
        self, raw: dict[str, Any], category: Category
    ) -> ProductRecord | None:
        """Map a raw entry to a ProductRecord, or ``None`` to skip it."""
        ...
