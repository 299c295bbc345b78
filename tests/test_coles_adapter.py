# tests/test_coles_adapter.py

"""Tests for the Coles adapter using fixture responses."""

import json
import unittest
from pathlib import Path
from typing import Any
from unittest.mock import MagicMock

from bs4 import BeautifulSoup

from hotprices.errors import FetchFatalError, NormalizeError
from hotprices.models.product import Category, Retailer, Unit, UnitPrice
from hotprices.scrapers.coles_adapter import ColesAdapter
from hotprices.scrapers.fetch_client import RawResponse

FIXTURES_DIR = Path(__file__).parent / "fixtures"

PANTRY = Category(id="pantry", path=("Pantry",))


def _text(fixture_name: str) -> str:
    return (FIXTURES_DIR / fixture_name).read_text(encoding="utf-8")


def _raw(fixture_name: str) -> RawResponse:
    return RawResponse(url="https://www.coles.com.au", status=200, text=_text(fixture_name))


def _results() -> list[dict[str, Any]]:
    data = json.loads(_text("coles_browse.json"))
    return data["pageProps"]["searchResults"]["results"]


def _mock_client() -> MagicMock:
    client = MagicMock()
    client.get_page.return_value = BeautifulSoup(_text("coles_index.html"), "lxml")
    client.get.side_effect = lambda url, **kwargs: (
        _raw("coles_categories.json")
        if "categories" in url
        else _raw("coles_browse.json")
    )
    return client


class TestColesSetup(unittest.TestCase):
    """API key and build id from the homepage."""

    def test_parse_setup_data(self) -> None:
        api_key, version = ColesAdapter.parse_setup_data(_text("coles_index.html"))
        self.assertEqual(api_key, "abc123")
        self.assertEqual(version, "20240101.01_v3.60.0")

    def test_missing_next_data_is_fatal(self) -> None:
        with self.assertRaisesRegex(FetchFatalError, "__NEXT_DATA__"):
            ColesAdapter.parse_setup_data("<html><body></body></html>")

    def test_malformed_next_data_is_fatal(self) -> None:
        html = '<script id="__NEXT_DATA__">{"buildId": "x"}</script>'
        with self.assertRaises(FetchFatalError):
            ColesAdapter.parse_setup_data(html)

    def test_subscription_key_header_set_once(self) -> None:
        client = _mock_client()
        adapter = ColesAdapter(client=client)
        adapter.list_categories()
        adapter.fetch_page(PANTRY, None)
        client.get_page.assert_called_once_with(ColesAdapter.BASE_URL)
        client.set_header.assert_called_once_with(
            "ocp-apim-subscription-key", "abc123"
        )


class TestColesCatalog(unittest.TestCase):
    """Category listing and cursor pagination."""

    def setUp(self) -> None:
        self.client = _mock_client()
        self.adapter = ColesAdapter(client=self.client)

    def test_list_categories_skips_promotions(self) -> None:
        categories = self.adapter.list_categories()
        self.assertEqual([c.id for c in categories], ["meat-seafood", "pantry"])
        self.assertEqual(categories[0].path, ("Meat & Seafood",))

    def test_versioned_browse_url(self) -> None:
        self.adapter.fetch_page(PANTRY, None)
        url = self.client.get.call_args.args[0]
        self.assertEqual(
            url,
            "https://www.coles.com.au/_next/data/20240101.01_v3.60.0"
            "/en/browse/pantry.json",
        )
        self.assertEqual(
            self.client.get.call_args.kwargs["params"],
            {"page": 1, "slug": "pantry"},
        )

    def test_cursor_counts_seen_results(self) -> None:
        page = self.adapter.fetch_page(PANTRY, None)
        self.assertEqual(len(page.entries), 4)
        self.assertEqual(page.next_token, "2:4")

        page = self.adapter.fetch_page(PANTRY, "13:48")
        self.assertEqual(self.client.get.call_args.kwargs["params"]["page"], 13)
        self.assertIsNone(page.next_token)

    def test_empty_results_end_pagination(self) -> None:
        self.client.get.side_effect = None
        self.client.get.return_value = RawResponse(
            url="", status=200,
            text='{"pageProps": {"searchResults": {"results": [], "noOfResults": 99}}}',
        )
        self.assertIsNone(self.adapter.fetch_page(PANTRY, "3:20").next_token)


class TestColesNormalize(unittest.TestCase):
    """Field mapping of search results."""

    def setUp(self) -> None:
        self.adapter = ColesAdapter(client=MagicMock())
        self.results = _results()

    def test_product_fields(self) -> None:
        record = self.adapter.normalize(self.results[0], PANTRY)
        assert record is not None
        self.assertEqual(record.retailer, Retailer.COLES)
        self.assertEqual(record.product_id, "42")
        self.assertEqual(record.name, "Brand name Product name")
        self.assertEqual(record.description, "BRAND NAME PRODUCT NAME 150G")
        self.assertEqual(record.price, 670)
        self.assertEqual((record.quantity, record.unit), (150.0, Unit.GRAMS))
        self.assertEqual(record.unit_price, UnitPrice(447, 100.0, Unit.GRAMS))
        self.assertEqual(record.category_path, ("Pantry", "Chips"))
        self.assertTrue(record.is_special)
        self.assertFalse(record.is_weighted)

    def test_ad_tile_is_skipped(self) -> None:
        self.assertIsNone(self.adapter.normalize(self.results[1], PANTRY))

    def test_weighted_promotion_with_comparable_fallback(self) -> None:
        record = self.adapter.normalize(self.results[2], PANTRY)
        assert record is not None
        self.assertEqual(record.name, "Coles Lamb Cutlets")
        self.assertEqual(record.price, 1500)
        self.assertTrue(record.is_special)
        self.assertTrue(record.is_weighted)
        self.assertEqual(record.unit_price, UnitPrice(3000, 1000.0, Unit.GRAMS))
        self.assertEqual(record.category_path, ("Pantry",))

    def test_missing_pricing_fails(self) -> None:
        with self.assertRaisesRegex(NormalizeError, "missing field pricing"):
            self.adapter.normalize(self.results[3], PANTRY)

    def test_empty_size_fails(self) -> None:
        raw = dict(self.results[0], size="")
        with self.assertRaisesRegex(NormalizeError, "empty field size"):
            self.adapter.normalize(raw, PANTRY)

    def test_missing_type_fails(self) -> None:
        with self.assertRaises(NormalizeError):
            self.adapter.normalize({"id": 1}, PANTRY)


if __name__ == "__main__":
    unittest.main()
