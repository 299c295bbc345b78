# hotprices/scrapers/coles_adapter.py

"""Adapter for coles.com.au via the Next.js data routes."""

import json
import re
from typing import Any

from bs4 import BeautifulSoup

from hotprices.errors import FetchFatalError, NormalizeError
from hotprices.filters.unit_parser import parse_str_unit
from hotprices.models.product import (
    Category,
    ProductRecord,
    Retailer,
    UnitPrice,
    to_cents,
)
from hotprices.scrapers.base_adapter import Page, RetailerAdapter


class ColesAdapter(RetailerAdapter):
    """Adapter for Coles.

    The homepage embeds a ``__NEXT_DATA__`` script holding the API
    subscription key and the current build id. The build id versions
    the ``/_next/data`` browse routes, which are walked page by page
    with an opaque ``"<page>:<seen>"`` cursor until ``noOfResults``
    products have been seen.
    """

    retailer = Retailer.COLES

    BASE_URL = "https://www.coles.com.au"
    STORE_ID = "0584"
    CATEGORIES_URL = (
        f"{BASE_URL}/api/bff/products/categories?storeId={STORE_ID}"
    )
    BROWSE_URL = "{base}/_next/data/{version}/en/browse/{slug}.json"

    SKIP_CATEGORIES: frozenset[str] = frozenset({
        "down-down", "back-to-school",
    })
    IGNORED_RESULT_TYPES: frozenset[str] = frozenset({
        "SINGLE_TILE", "CONTENT_ASSOCIATION",
    })
    _COMPARABLE_RE = re.compile(r"\$(?P<price>[0-9.,]+) per (?P<measure>.+)")

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self._version: str | None = None

    def _default_headers(self) -> dict[str, str]:
        return {"Origin": self.BASE_URL, "Referer": self.BASE_URL}

    def _setup(self) -> None:
        """Read the API key and build id from the homepage once."""
        if self._version is not None:
            return
        html = self.cache.get_or_fetch(
            "index.html", lambda: str(self.client.get_page(self.BASE_URL))
        )
        api_key, version = self.parse_setup_data(html)
        self.client.set_header("ocp-apim-subscription-key", api_key)
        self._version = version
        self.logger.info("[coles] Using build version %s", version)

    @staticmethod
    def parse_setup_data(html: str) -> tuple[str, str]:
        """Extract (api key, build id) from the homepage HTML."""
        soup = BeautifulSoup(html, "lxml")
        script = soup.select_one("script#__NEXT_DATA__")
        if script is None:
            raise FetchFatalError(
                "[coles] couldn't find __NEXT_DATA__ script in HTML"
            )
        try:
            next_data: dict[str, Any] = json.loads(script.get_text())
            api_key = str(
                next_data["runtimeConfig"]["BFF_API_SUBSCRIPTION_KEY"]
            )
            version = str(next_data["buildId"])
        except (json.JSONDecodeError, KeyError, TypeError) as exc:
            raise FetchFatalError(
                f"[coles] Invalid __NEXT_DATA__ payload: {exc}"
            ) from exc
        return api_key, version

    def list_categories(self) -> list[Category]:
        """Return the top-level Coles catalog groups."""
        self._setup()
        data = self._load_json(
            "categories.json",
            lambda: self.client.get(self.CATEGORIES_URL).text,
        )
        try:
            groups: list[dict[str, Any]] = data["catalogGroupView"]
        except (KeyError, TypeError) as exc:
            raise FetchFatalError(
                "[coles] Category list missing 'catalogGroupView'"
            ) from exc

        categories = [
            Category(
                id=str(g["seoToken"]),
                path=(str(g.get("name") or g["seoToken"]),),
            )
            for g in groups
            if g.get("seoToken") not in self.SKIP_CATEGORIES
        ]
        self.logger.debug("[coles] Loaded %d categories", len(categories))
        return categories

    @staticmethod
    def _decode_token(page_token: str | None) -> tuple[int, int]:
        if not page_token:
            return 1, 0
        page, seen = page_token.split(":", 1)
        return int(page), int(seen)

    def fetch_page(
        self, category: Category, page_token: str | None
    ) -> Page:
        """Fetch the page addressed by ``page_token`` for a category."""
        self._setup()
        page, seen = self._decode_token(page_token)
        url = self.BROWSE_URL.format(
            base=self.BASE_URL, version=self._version, slug=category.id
        )
        data = self._load_json(
            f"categories/{category.id}/page_{page}.json",
            lambda: self.client.get(
                url, params={"page": page, "slug": category.id}
            ).text,
        )
        try:
            search_results = data["pageProps"]["searchResults"]
            results: list[dict[str, Any]] = search_results["results"] or []
            total = int(search_results["noOfResults"])
        except (KeyError, TypeError, ValueError) as exc:
            raise FetchFatalError(
                f"[coles] Unexpected browse response for "
                f"{category.id} page {page}"
            ) from exc

        seen += len(results)
        next_token = (
            f"{page + 1}:{seen}" if results and seen < total else None
        )
        return Page(entries=results, next_token=next_token)

    # ── Normalisation ────────────────────────────────────

    def _unit_price(self, pricing: dict[str, Any]) -> UnitPrice | None:
        """Unit price from ``pricing.unit``, else the comparable text."""
        unit: dict[str, Any] = pricing.get("unit") or {}
        try:
            if unit.get("price") is not None and unit.get("ofMeasureUnits"):
                measure = (
                    f"{unit.get('ofMeasureQuantity') or 1}"
                    f"{unit['ofMeasureUnits']}"
                )
                quantity, canonical = parse_str_unit(measure)
                return UnitPrice(to_cents(unit["price"]), quantity, canonical)
            match = self._COMPARABLE_RE.search(
                str(pricing.get("comparable") or "")
            )
            if match:
                measure = match.group("measure")
                if not measure[0].isdigit():
                    measure = f"1{measure}"
                quantity, canonical = parse_str_unit(measure)
                return UnitPrice(
                    to_cents(match.group("price")), quantity, canonical
                )
        except NormalizeError:
            pass
        return None

    def normalize(
        self, raw: dict[str, Any], category: Category
    ) -> ProductRecord | None:
        """Map a Coles search result to a ProductRecord."""
        if not isinstance(raw, dict):
            raise NormalizeError(f"Invalid object type value for {raw!r}")
        result_type = raw.get("_type")
        if not isinstance(result_type, str):
            raise NormalizeError("Missing key _type")
        if (
            result_type in self.IGNORED_RESULT_TYPES
            and raw.get("adId") is not None
        ):
            self.logger.debug("[coles] Skipping ad tile %s", raw.get("adId"))
            return None

        product_id = raw.get("id")
        if not product_id:
            raise NormalizeError("Missing key id")
        pricing: dict[str, Any] | None = raw.get("pricing")
        if not pricing:
            raise NormalizeError("missing field pricing")
        price = to_cents(pricing.get("now"))

        name = str(raw.get("name") or "").strip()
        brand = str(raw.get("brand") or "").strip()
        if brand:
            name = f"{brand} {name}"

        size = str(raw.get("size") or "")
        if not size:
            raise NormalizeError("empty field size")
        quantity, unit = parse_str_unit(size)

        heirs: list[dict[str, Any]] = raw.get("onlineHeirs") or []
        path = category.path
        if heirs and heirs[0].get("category"):
            heir = str(heirs[0]["category"])
            if heir not in path:
                path = path + (heir,)

        was = pricing.get("was") or 0
        return ProductRecord(
            retailer=self.retailer,
            product_id=str(product_id),
            name=name,
            price=price,
            category_path=path,
            description=str(raw.get("description") or ""),
            quantity=quantity,
            unit=unit,
            unit_price=self._unit_price(pricing),
            is_special=bool(pricing.get("promotionType"))
            or to_cents(was) > price,
            is_weighted=bool((pricing.get("unit") or {}).get("isWeighted")),
            checksum=self.checksum(raw),
        )
