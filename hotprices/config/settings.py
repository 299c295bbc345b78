# hotprices/config/settings.py

"""Central configuration for the hotprices scraper and history engine."""

import os
from pathlib import Path

from curl_cffi.requests import BrowserTypeLiteral
from dotenv import load_dotenv

load_dotenv()


def _env_float(name: str, default: float) -> float:
    """Read a float policy override from ``HOTPRICES_<name>``."""
    raw = os.getenv(f"HOTPRICES_{name}")
    return float(raw) if raw else default


def _env_int(name: str, default: int) -> int:
    """Read an int policy override from ``HOTPRICES_<name>``."""
    raw = os.getenv(f"HOTPRICES_{name}")
    return int(raw) if raw else default


class Settings:
    """Central configuration for the hotprices engine."""

    # --- Fetching ---
    REQUEST_DELAY: float = _env_float("REQUEST_DELAY", 1.0)   # Min secs between requests
    REQUEST_TIMEOUT: int = _env_int("REQUEST_TIMEOUT", 30)    # Per HTTP call
    MAX_RETRIES: int = _env_int("MAX_RETRIES", 10)            # Attempts per request
    BACKOFF_BASE: float = 1.0                                 # Seconds, doubled per retry
    MAX_BACKOFF: float = 120.0                                # Cap for a single backoff
    BACKOFF_JITTER: float = 1.0                               # Max random seconds added
    RUN_DEADLINE: float = _env_float("RUN_DEADLINE", 4 * 3600.0)
    CHALLENGE_MARKERS: list[str] = [
        "challenges.cloudflare.com",
        "cdn-cgi/challenge-platform",
        "cf-turnstile",
        "cf_chl_opt",
        "incapsula incident",
        "_incapsula_resource",
    ]

    # --- Snapshot validation ---
    MIN_PRODUCT_COUNT: int = _env_int("MIN_PRODUCT_COUNT", 5000)
    QUICK_MIN_PRODUCT_COUNT: int = _env_int("QUICK_MIN_PRODUCT_COUNT", 1)
    MAX_NORMALIZE_FAILURE_RATE: float = _env_float(
        "MAX_NORMALIZE_FAILURE_RATE", 0.05
    )
    QUICK_MAX_CATEGORIES: int = 2
    QUICK_MAX_PAGES: int = 1

    # --- History ---
    DISCONTINUED_AFTER: int = _env_int("DISCONTINUED_AFTER", 3)
    EXPORT_HISTORY_DAYS: int = _env_int("EXPORT_HISTORY_DAYS", 365)
    EXPORT_DISCONTINUED_DAYS: int = _env_int("EXPORT_DISCONTINUED_DAYS", 30)

    # Calendar day of a scrape is taken in the retailers' local time
    RETAILER_TIMEZONE: str = "Australia/Sydney"

    # --- Browser Impersonation ---
    IMPERSONATE_BROWSER: BrowserTypeLiteral = "chrome131"
    DEFAULT_HEADERS: dict[str, str] = {
        "Accept": (
            "text/html,application/xhtml+xml,"
            "application/xml;q=0.9,image/avif,"
            "image/webp,image/apng,*/*;q=0.8"
        ),
        "Accept-Language": "en-AU,en;q=0.9",
        "sec-ch-ua": (
            '"Google Chrome";v="131", '
            '"Chromium";v="131", '
            '"Not_A Brand";v="24"'
        ),
        "sec-ch-ua-mobile": "?0",
        "sec-ch-ua-platform": '"Windows"',
        "Upgrade-Insecure-Requests": "1",
    }

    # --- Paths ---
    BASE_DIR: Path = Path(__file__).resolve().parent.parent.parent
    OUTPUT_DIR: Path = BASE_DIR / "output"
    DATA_DIR: Path = BASE_DIR / "static" / "data"
    CACHE_DIR: Path = BASE_DIR / "cache"
    LOGS_DIR: Path = BASE_DIR / "logs"
    CANONICAL_FILENAME: str = "latest-canonical.json.gz"

    # --- Retailers (closed set, see hotprices.models.product.Retailer) ---
    AVAILABLE_RETAILERS: list[dict[str, str]] = [
        {"id": "woolies", "label": "Woolworths"},
        {"id": "coles", "label": "Coles"},
    ]
