# hotprices/services/sync.py

"""Scrape one retailer and publish its daily snapshot."""

import logging
from datetime import date
from pathlib import Path

from hotprices.config.settings import Settings
from hotprices.models.product import Retailer
from hotprices.scrapers.base_adapter import RetailerAdapter
from hotprices.scrapers.coles_adapter import ColesAdapter
from hotprices.scrapers.woolies_adapter import WooliesAdapter
from hotprices.services.snapshot_builder import SnapshotBuilder, retailer_today
from hotprices.storage.page_cache import PageCache
from hotprices.storage.snapshot_store import (
    PARTIAL_MARKER,
    SnapshotStore,
    get_snapshot_path,
)

logger = logging.getLogger("hotprices.sync")

ADAPTERS: dict[Retailer, type[RetailerAdapter]] = {
    Retailer.WOOLIES: WooliesAdapter,
    Retailer.COLES: ColesAdapter,
}


def create_adapter(
    retailer: Retailer, cache: PageCache | None = None
) -> RetailerAdapter:
    """Instantiate the adapter variant for ``retailer``."""
    return ADAPTERS[retailer](cache=cache)


def print_save_path(
    retailer: Retailer,
    day: date | None = None,
    output_dir: Path | None = None,
    quick_mode: bool = False,
) -> str:
    """Path the snapshot for ``day`` is (or would be) saved at.

    Pure: no network access and no filesystem writes.
    """
    return str(
        get_snapshot_path(
            Path(output_dir or Settings.OUTPUT_DIR),
            retailer,
            day or retailer_today(),
            partial=quick_mode,
        )
    )


def scrape(
    retailer: Retailer,
    output_dir: Path | None = None,
    skip_if_exists: bool = False,
    quick_mode: bool = False,
    cache_dir: Path | None = None,
    today: date | None = None,
    adapter: RetailerAdapter | None = None,
) -> Path:
    """Scrape ``retailer`` and return the published snapshot's path.

    Raw pages are cached under ``<cache_dir>/<retailer>/<day>`` while
    the scrape runs, so an aborted run resumes where it stopped. The
    cache is removed once the snapshot has been published. Quick-mode
    snapshots are saved beside, never over, the full snapshot of the day.
    """
    day = today or retailer_today()
    store = SnapshotStore(output_dir)
    path = store.path(retailer, day, partial=quick_mode)
    if skip_if_exists and path.is_file():
        logger.info("[%s] Snapshot %s already exists, skipping", retailer, path)
        return path

    cache_name = day.isoformat() + (PARTIAL_MARKER if quick_mode else "")
    cache = PageCache(
        Path(cache_dir or Settings.CACHE_DIR) / str(retailer) / cache_name
    )
    if adapter is None:
        adapter = create_adapter(retailer, cache)

    snapshot = SnapshotBuilder(adapter, quick_mode=quick_mode).build(day)
    path = store.write(snapshot)
    cache.clear()
    return path
