# hotprices/services/snapshot_builder.py

"""Drives a retailer adapter across its catalog into one Snapshot."""

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import date, datetime
from zoneinfo import ZoneInfo

from hotprices.config.settings import Settings
from hotprices.errors import FetchError, NormalizeError, RunDeadlineExceeded
from hotprices.filters.deduplicator import ProductDeduplicator
from hotprices.filters.product_validator import ProductValidator
from hotprices.models.product import Category, ProductRecord
from hotprices.models.snapshot import Snapshot
from hotprices.scrapers.base_adapter import RetailerAdapter

logger = logging.getLogger("hotprices.builder")


@dataclass
class BuildStats:
    """Counters collected while building one snapshot."""

    categories: int = 0
    pages: int = 0
    normalized: int = 0
    skipped: int = 0
    failures: int = 0
    invalid_count: int = 0
    deduplicated_count: int = 0
    page_errors: list[str] = field(
        default_factory=lambda: list[str]()
    )

    @property
    def attempted(self) -> int:
        """Entries that were expected to yield a record."""
        return self.normalized + self.failures


def retailer_today(tz_name: str | None = None) -> date:
    """Current calendar day in the retailers' local timezone."""
    tz = ZoneInfo(tz_name or Settings.RETAILER_TIMEZONE)
    return datetime.now(tz).date()


class SnapshotBuilder:
    """Paginate every category of one adapter and assemble a Snapshot.

    Failing to list categories, or to fetch the first page of the run,
    is fatal: the site is unreachable and an empty catalog would be
    meaningless. A page failing later on is logged and ends that
    category; catalog-level validation then decides whether what was
    collected is still publishable.
    """

    def __init__(
        self,
        adapter: RetailerAdapter,
        quick_mode: bool = False,
        min_product_count: int | None = None,
        deadline: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.settings = Settings()
        self.adapter = adapter
        self.quick_mode = quick_mode
        if min_product_count is None:
            min_product_count = (
                self.settings.QUICK_MIN_PRODUCT_COUNT
                if quick_mode
                else self.settings.MIN_PRODUCT_COUNT
            )
        self.min_product_count = min_product_count
        self.deadline = (
            deadline if deadline is not None
            else self.settings.RUN_DEADLINE
        )
        self._clock = clock
        self._started_at = 0.0
        self._page_fetched = False
        self.stats = BuildStats()

    # ── Private helpers ──────────────────────────────────

    @property
    def _name(self) -> str:
        return str(self.adapter.retailer)

    def _check_deadline(self) -> None:
        elapsed = self._clock() - self._started_at
        if elapsed > self.deadline:
            raise RunDeadlineExceeded(
                f"[{self._name}] Run exceeded its {self.deadline:.0f}s "
                f"deadline after {elapsed:.0f}s"
            )

    def _categories(self) -> list[Category]:
        self._check_deadline()
        categories = self.adapter.list_categories()
        if self.quick_mode:
            categories = categories[: self.settings.QUICK_MAX_CATEGORIES]
        logger.info(
            "[%s] Scraping %d categories%s",
            self._name,
            len(categories),
            " (quick mode)" if self.quick_mode else "",
        )
        return categories

    def _normalize_all(
        self, entries: list[dict], category: Category
    ) -> list[ProductRecord]:
        records: list[ProductRecord] = []
        for raw in entries:
            try:
                record = self.adapter.normalize(raw, category)
            except NormalizeError as exc:
                self.stats.failures += 1
                logger.warning(
                    "[%s] Dropped entry in %s: %s",
                    self._name,
                    category.id,
                    exc,
                )
                continue
            if record is None:
                self.stats.skipped += 1
                continue
            self.stats.normalized += 1
            records.append(record)
        return records

    def _scrape_category(self, category: Category) -> list[ProductRecord]:
        """Paginate one category until the adapter reports the end."""
        records: list[ProductRecord] = []
        token: str | None = None
        pages = 0
        while True:
            self._check_deadline()
            try:
                page = self.adapter.fetch_page(category, token)
            except FetchError as exc:
                if not self._page_fetched:
                    raise
                message = (
                    f"{category.id} page token {token or 'first'}: {exc}"
                )
                self.stats.page_errors.append(message)
                logger.error(
                    "[%s] Giving up on %s", self._name, message
                )
                break
            self._page_fetched = True
            pages += 1
            self.stats.pages += 1
            records.extend(self._normalize_all(page.entries, category))

            if page.next_token is None or page.next_token == token:
                break
            if self.quick_mode and pages >= self.settings.QUICK_MAX_PAGES:
                break
            token = page.next_token

        logger.debug(
            "[%s] %s: %d products over %d pages",
            self._name,
            category.id,
            len(records),
            pages,
        )
        return records

    # ── Public API ───────────────────────────────────────

    def build(self, today: date | None = None) -> Snapshot:
        """Scrape the full catalog and return a validated Snapshot.

        Raises FetchError if the site is unreachable,
        RunDeadlineExceeded if the overall deadline passes, and
        BuildValidationError if the result is not publishable.
        """
        day = today or retailer_today(self.settings.RETAILER_TIMEZONE)
        self.stats = BuildStats()
        self._started_at = self._clock()
        self._page_fetched = False

        collected: list[ProductRecord] = []
        categories = self._categories()
        for category in categories:
            self.stats.categories += 1
            collected.extend(self._scrape_category(category))

        valid, self.stats.invalid_count = ProductValidator.validate(
            collected
        )
        unique, self.stats.deduplicated_count = (
            ProductDeduplicator.deduplicate(valid)
        )
        ProductValidator.check_catalog(
            self._name,
            count=len(unique),
            failures=self.stats.failures,
            attempted=self.stats.attempted,
            min_count=self.min_product_count,
            max_failure_rate=self.settings.MAX_NORMALIZE_FAILURE_RATE,
        )

        snapshot = Snapshot.from_records(
            self.adapter.retailer, day, unique, partial=self.quick_mode
        )
        logger.info(
            "[%s] Built snapshot for %s with %d products "
            "(%d skipped, %d failed, %d duplicates)",
            self._name,
            day.isoformat(),
            len(snapshot),
            self.stats.skipped,
            self.stats.failures,
            self.stats.deduplicated_count,
        )
        return snapshot
