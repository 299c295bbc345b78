# tests/test_sync.py

"""Tests for scraping a retailer into a published snapshot."""

import json
import tempfile
import unittest
from datetime import date
from pathlib import Path
from typing import Any
from unittest.mock import MagicMock, patch

from hotprices.config.settings import Settings
from hotprices.errors import BuildValidationError
from hotprices.models.product import Category, ProductRecord, Retailer
from hotprices.scrapers.base_adapter import Page, RetailerAdapter
from hotprices.scrapers.coles_adapter import ColesAdapter
from hotprices.scrapers.woolies_adapter import WooliesAdapter
from hotprices.services.sync import (
    ADAPTERS,
    create_adapter,
    print_save_path,
    scrape,
)
from hotprices.storage.page_cache import PageCache
from hotprices.storage.snapshot_store import SnapshotStore

DAY = date(2024, 3, 1)


class _CachingAdapter(RetailerAdapter):
    """Two single-page categories served through the page cache."""

    retailer = Retailer.WOOLIES
    instances: list["_CachingAdapter"] = []

    def __init__(self, cache: PageCache | None = None) -> None:
        super().__init__(client=MagicMock(), cache=cache)
        _CachingAdapter.instances.append(self)

    def list_categories(self) -> list[Category]:
        return [Category("fruit", ("Fruit",)), Category("dairy", ("Dairy",))]

    def fetch_page(self, category: Category, page_token: str | None) -> Page:
        entries = self._load_json(
            f"categories/{category.id}.json",
            lambda: json.dumps([{"id": f"{category.id}-1", "price": 250}]),
        )
        return Page(entries, None)

    def normalize(
        self, raw: dict[str, Any], category: Category
    ) -> ProductRecord | None:
        return ProductRecord(
            retailer=self.retailer,
            product_id=raw["id"],
            name=f"Item {raw['id']}",
            price=raw["price"],
            category_path=category.path,
        )


class TestPrintSavePath(unittest.TestCase):
    """The save path is a pure function of retailer and day."""

    def test_path_layout(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = print_save_path(Retailer.COLES, DAY, Path(tmp))
            self.assertEqual(path, str(Path(tmp) / "coles" / "2024-03-01.json.gz"))
            self.assertEqual(list(Path(tmp).iterdir()), [])

    def test_quick_mode_path(self) -> None:
        path = print_save_path(Retailer.COLES, DAY, Path("out"), quick_mode=True)
        self.assertEqual(path, str(Path("out") / "coles" / "2024-03-01.quick.json.gz"))

    def test_stable_across_calls(self) -> None:
        first = print_save_path(Retailer.WOOLIES, DAY, Path("out"))
        second = print_save_path(Retailer.WOOLIES, DAY, Path("out"))
        self.assertEqual(first, second)


class TestCreateAdapter(unittest.TestCase):
    """Every retailer maps to its adapter variant."""

    def test_registry_covers_all_retailers(self) -> None:
        self.assertEqual(set(ADAPTERS), set(Retailer))
        self.assertIs(ADAPTERS[Retailer.WOOLIES], WooliesAdapter)
        self.assertIs(ADAPTERS[Retailer.COLES], ColesAdapter)

    def test_adapter_gets_cache(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            cache = PageCache(Path(tmp))
            adapter = create_adapter(Retailer.COLES, cache)
            self.assertIsInstance(adapter, ColesAdapter)
            self.assertIs(adapter.cache, cache)


class TestScrape(unittest.TestCase):
    """Building, publishing and cleaning up after a scrape."""

    def setUp(self) -> None:
        tmp = tempfile.TemporaryDirectory()
        self.addCleanup(tmp.cleanup)
        self.output_dir = Path(tmp.name) / "output"
        self.cache_dir = Path(tmp.name) / "cache"
        _CachingAdapter.instances = []
        patcher = patch.dict(ADAPTERS, {Retailer.WOOLIES: _CachingAdapter})
        patcher.start()
        self.addCleanup(patcher.stop)

    def _scrape(self, **kwargs: Any) -> Path:
        kwargs.setdefault("quick_mode", True)
        return scrape(
            Retailer.WOOLIES,
            output_dir=self.output_dir,
            cache_dir=self.cache_dir,
            today=DAY,
            **kwargs,
        )

    def test_writes_snapshot(self) -> None:
        path = self._scrape()
        self.assertEqual(
            path, self.output_dir / "woolies" / "2024-03-01.quick.json.gz"
        )
        snapshot = SnapshotStore(self.output_dir).read(
            Retailer.WOOLIES, DAY, partial=True
        )
        self.assertEqual(sorted(snapshot.records), ["dairy-1", "fruit-1"])
        self.assertTrue(snapshot.partial)

    def test_full_scrape_is_not_partial(self) -> None:
        with patch.object(Settings, "MIN_PRODUCT_COUNT", 1):
            self._scrape(quick_mode=False)
        snapshot = SnapshotStore(self.output_dir).read(Retailer.WOOLIES, DAY)
        self.assertFalse(snapshot.partial)

    def test_cache_removed_after_publish(self) -> None:
        self._scrape()
        adapter = _CachingAdapter.instances[0]
        self.assertEqual(adapter.cache.misses, 2)
        self.assertFalse(
            (self.cache_dir / "woolies" / "2024-03-01.quick").exists()
        )

    def test_skip_if_exists_does_not_scrape(self) -> None:
        first = self._scrape()
        _CachingAdapter.instances = []
        second = self._scrape(skip_if_exists=True)
        self.assertEqual(first, second)
        self.assertEqual(_CachingAdapter.instances, [])

    def test_quick_run_keeps_full_snapshot(self) -> None:
        with patch.object(Settings, "MIN_PRODUCT_COUNT", 1):
            full_path = self._scrape(quick_mode=False)
        before = full_path.read_bytes()
        quick_path = self._scrape()
        self.assertNotEqual(full_path, quick_path)
        self.assertEqual(full_path.read_bytes(), before)
        snapshot = SnapshotStore(self.output_dir).read(Retailer.WOOLIES, DAY)
        self.assertFalse(snapshot.partial)

    def test_quick_snapshot_does_not_satisfy_skip(self) -> None:
        self._scrape()
        _CachingAdapter.instances = []
        with patch.object(Settings, "MIN_PRODUCT_COUNT", 1):
            path = self._scrape(quick_mode=False, skip_if_exists=True)
        self.assertEqual(len(_CachingAdapter.instances), 1)
        self.assertEqual(path.name, "2024-03-01.json.gz")

    def test_rejected_snapshot_not_written(self) -> None:
        with patch.object(Settings, "MIN_PRODUCT_COUNT", 10):
            with self.assertRaises(BuildValidationError):
                self._scrape(quick_mode=False)
        self.assertFalse(SnapshotStore(self.output_dir).exists(Retailer.WOOLIES, DAY))
        # Fetched pages survive so a rerun can resume from them
        self.assertTrue(
            (self.cache_dir / "woolies" / "2024-03-01" / "categories").is_dir()
        )

    def test_explicit_adapter_used(self) -> None:
        adapter = _CachingAdapter()
        self._scrape(adapter=adapter)
        self.assertEqual(adapter.cache.misses, 2)


if __name__ == "__main__":
    unittest.main()
