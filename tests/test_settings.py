# tests/test_settings.py

"""Tests for the Settings configuration class."""

import unittest
from pathlib import Path

from hotprices.config.settings import Settings
from hotprices.models.product import Retailer


class TestSettings(unittest.TestCase):
    """Verify Settings constants and retailer registry."""

    def test_request_delay_is_positive_float(self) -> None:
        """REQUEST_DELAY must be a positive number."""
        self.assertIsInstance(Settings.REQUEST_DELAY, float)
        self.assertGreater(Settings.REQUEST_DELAY, 0)

    def test_request_timeout_is_positive_int(self) -> None:
        """REQUEST_TIMEOUT must be a positive integer."""
        self.assertIsInstance(Settings.REQUEST_TIMEOUT, int)
        self.assertGreater(Settings.REQUEST_TIMEOUT, 0)

    def test_max_retries_is_positive(self) -> None:
        """MAX_RETRIES must be >= 1."""
        self.assertGreaterEqual(Settings.MAX_RETRIES, 1)

    def test_backoff_is_capped(self) -> None:
        """A single backoff never exceeds MAX_BACKOFF."""
        self.assertLessEqual(Settings.BACKOFF_BASE, Settings.MAX_BACKOFF)

    def test_discontinued_after_positive(self) -> None:
        """DISCONTINUED_AFTER must be >= 1."""
        self.assertGreaterEqual(Settings.DISCONTINUED_AFTER, 1)

    def test_failure_rate_is_a_fraction(self) -> None:
        """MAX_NORMALIZE_FAILURE_RATE is 5%."""
        self.assertAlmostEqual(Settings.MAX_NORMALIZE_FAILURE_RATE, 0.05)

    def test_quick_threshold_below_full_threshold(self) -> None:
        """Quick runs accept far smaller catalogs."""
        self.assertLess(
            Settings.QUICK_MIN_PRODUCT_COUNT, Settings.MIN_PRODUCT_COUNT
        )

    def test_available_retailers_match_enum(self) -> None:
        """Registry ids are exactly the Retailer values."""
        ids = {r["id"] for r in Settings.AVAILABLE_RETAILERS}
        self.assertEqual(ids, {r.value for r in Retailer})

    def test_each_retailer_has_required_keys(self) -> None:
        """Every retailer must have id and label keys."""
        for entry in Settings.AVAILABLE_RETAILERS:
            with self.subTest(retailer=entry.get("id", "?")):
                self.assertIn("id", entry)
                self.assertIn("label", entry)

    def test_path_constants_are_paths(self) -> None:
        """Path-typed settings are Path instances."""
        self.assertIsInstance(Settings.BASE_DIR, Path)
        self.assertIsInstance(Settings.OUTPUT_DIR, Path)
        self.assertIsInstance(Settings.DATA_DIR, Path)
        self.assertIsInstance(Settings.CACHE_DIR, Path)
        self.assertIsInstance(Settings.LOGS_DIR, Path)

    def test_canonical_filename(self) -> None:
        """The umbrella history file keeps its well-known name."""
        self.assertEqual(
            Settings.CANONICAL_FILENAME, "latest-canonical.json.gz"
        )

    def test_impersonate_browser_is_string(self) -> None:
        """IMPERSONATE_BROWSER must be a non-empty string."""
        self.assertIsInstance(Settings.IMPERSONATE_BROWSER, str)
        self.assertTrue(len(Settings.IMPERSONATE_BROWSER) > 0)

    def test_default_headers_has_accept_language(self) -> None:
        """DEFAULT_HEADERS must include Accept-Language."""
        self.assertIn("Accept-Language", Settings.DEFAULT_HEADERS)


if __name__ == "__main__":
    unittest.main()
