# hotprices/scrapers/woolies_adapter.py

"""Adapter for woolworths.com.au via the browse JSON API."""

from decimal import Decimal, InvalidOperation
from typing import Any

from bs4 import BeautifulSoup

from hotprices.errors import FetchFatalError, NormalizeError
from hotprices.filters.unit_parser import parse_str_unit
from hotprices.models.product import (
    Category,
    ProductRecord,
    Retailer,
    Unit,
    UnitPrice,
    to_cents,
)
from hotprices.scrapers.base_adapter import Page, RetailerAdapter


class WooliesAdapter(RetailerAdapter):
    """Adapter for Woolworths.

    Categories come from the ``PiesCategoriesWithSpecials`` endpoint.
    Each category is paginated with offset-style page numbers through a
    POST to the browse API until ``TotalRecordCount`` is reached.
    Products arrive grouped in ``Bundles``.
    """

    retailer = Retailer.WOOLIES

    BASE_URL = "https://www.woolworths.com.au"
    CATEGORIES_URL = f"{BASE_URL}/apis/ui/PiesCategoriesWithSpecials"
    BROWSE_URL = f"{BASE_URL}/apis/ui/browse/category"
    REFERER = f"{BASE_URL}/shop/browse/fruit-veg"
    PAGE_SIZE = 36

    # Minimum plausible quantity derived from the cup price
    MIN_DERIVED_QUANTITY = 10.0

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self._started = False
        self._slugs: dict[str, str] = {}

    def _default_headers(self) -> dict[str, str]:
        return {
            "Origin": self.BASE_URL,
            "Referer": self.REFERER,
            "Accept": "application/json, text/plain, */*",
        }

    def _start(self) -> None:
        """Visit the homepage once so the session holds its cookies."""
        if self._started:
            return
        self.client.get(self.BASE_URL)
        self._started = True
        self.logger.info("[woolies] Session started")

    @staticmethod
    def _is_filtered(item: dict[str, Any]) -> bool:
        """Specials, front-of-store and liquor are not product aisles."""
        node_id = str(item.get("NodeId", ""))
        description = str(item.get("Description", ""))
        if node_id == "specialsgroup":
            return True
        if description == "Front of Store":
            return True
        return (
            description == "Beer, Wine & Spirits"
            or node_id == "1_8E4DA6F"
        )

    def list_categories(self) -> list[Category]:
        """Return the browsable Woolworths categories."""
        self._start()
        data = self._load_json(
            "categories.json",
            lambda: self.client.get(self.CATEGORIES_URL).text,
        )
        try:
            items: list[dict[str, Any]] = data["Categories"]
        except (KeyError, TypeError) as exc:
            raise FetchFatalError(
                "[woolies] Category list missing 'Categories'"
            ) from exc

        categories: list[Category] = []
        for item in items:
            if self._is_filtered(item):
                continue
            node_id = str(item["NodeId"])
            self._slugs[node_id] = str(
                item.get("UrlFriendlyName") or "fruit-veg"
            )
            categories.append(
                Category(
                    id=node_id,
                    path=(str(item.get("Description", node_id)),),
                )
            )
        self.logger.debug(
            "[woolies] Loaded %d categories", len(categories)
        )
        return categories

    def _browse_payload(self, category: Category, page: int) -> dict[str, Any]:
        slug = self._slugs.get(category.id, "fruit-veg")
        return {
            "categoryId": category.id,
            "pageNumber": page,
            "pageSize": self.PAGE_SIZE,
            "sortType": "Name",
            "url": f"/shop/browse/{slug}",
            "location": f"/shop/browse/{slug}",
            "formatObject": f'{{"name":"{category.path[-1]}"}}',
            "isSpecial": False,
            "isBundle": False,
            "isMobile": False,
            "filters": [
                {"Items": [{"Term": "Woolworths"}], "Key": "SoldBy"}
            ],
            "token": "",
            "gpBoost": 0,
            "isHideUnavailableProducts": False,
            "enableAdReRanking": False,
            "groupEdmVariants": True,
            "categoryVersion": "v2",
        }

    def fetch_page(
        self, category: Category, page_token: str | None
    ) -> Page:
        """Fetch page ``page_token`` (1-based) of a category."""
        page = int(page_token) if page_token else 1
        data = self._load_json(
            f"categories/{category.id}/page_{page}.json",
            lambda: self.client.post(
                self.BROWSE_URL,
                self._browse_payload(category, page),
            ).text,
        )
        try:
            bundles: list[dict[str, Any]] = data["Bundles"] or []
            total = int(data["TotalRecordCount"])
        except (KeyError, TypeError, ValueError) as exc:
            raise FetchFatalError(
                f"[woolies] Unexpected browse response for "
                f"{category.id} page {page}"
            ) from exc

        entries: list[dict[str, Any]] = [
            product
            for bundle in bundles
            for product in (bundle.get("Products") or [])
        ]
        offset = page * self.PAGE_SIZE
        next_token = str(page + 1) if bundles and offset < total else None
        return Page(entries=entries, next_token=next_token)

    # ── Normalisation ────────────────────────────────────

    @staticmethod
    def _clean_description(text: str) -> str:
        """Strip the HTML markup Woolworths embeds in descriptions."""
        if "<" not in text:
            return text.strip()
        return BeautifulSoup(text, "lxml").get_text(" ", strip=True)

    def _price(self, raw: dict[str, Any], name: str) -> int | None:
        """Current price in cents; ``None`` marks a skippable row."""
        price = raw.get("Price")
        if price is not None:
            return to_cents(price)
        was_price = raw.get("WasPrice") or 0
        if not raw.get("IsInStock") and was_price > 0:
            return to_cents(was_price)
        if raw.get("IsAvailable") is False:
            return None
        raise NormalizeError(f"Missing price on {name}")

    def _unit_price(self, raw: dict[str, Any]) -> UnitPrice | None:
        cup_price = raw.get("CupPrice")
        cup_measure = raw.get("CupMeasure")
        if cup_price is None or not cup_measure:
            return None
        try:
            quantity, unit = parse_str_unit(str(cup_measure))
            return UnitPrice(
                price=to_cents(cup_price), quantity=quantity, unit=unit
            )
        except NormalizeError:
            return None

    def _quantity_and_unit(
        self, raw: dict[str, Any], price: int
    ) -> tuple[float, Unit]:
        """Package quantity from the size, or derived from the cup price."""
        package_size = str(raw.get("PackageSize") or "")
        try:
            return parse_str_unit(package_size)
        except NormalizeError:
            pass

        unit_word = str(raw.get("Unit") or "").lower()
        if unit_word == "each" and package_size.lower() == "each":
            return 1.0, Unit.EACH

        cup_measure = raw.get("CupMeasure")
        if not cup_measure:
            raise NormalizeError(
                "Missing CupMeasure, ran out of options to convert"
            )
        std_quantity, unit = parse_str_unit(str(cup_measure))

        cup_price = raw.get("CupPrice")
        if not cup_price:
            raise NormalizeError(
                "Missing cup price, unable to calculate quantity"
            )
        try:
            cup_cents = Decimal(str(cup_price)) * 100
        except InvalidOperation as exc:
            raise NormalizeError(f"Invalid cup price {cup_price!r}") from exc
        if not cup_cents.is_finite() or cup_cents <= 0:
            raise NormalizeError(
                f"Cup price {cup_price!r} too small to derive a quantity"
            )
        quantity = float(
            round(Decimal(price) / cup_cents * Decimal(str(std_quantity)))
        )
        if quantity < self.MIN_DERIVED_QUANTITY:
            self.logger.warning(
                "[woolies] Low quantity of %s converting %s",
                quantity,
                raw.get("Stockcode"),
            )
            raise NormalizeError("Low quantity for conversion")
        return quantity, unit

    def normalize(
        self, raw: dict[str, Any], category: Category
    ) -> ProductRecord | None:
        """Map a Woolworths bundle product to a ProductRecord."""
        stockcode = raw.get("Stockcode")
        if not stockcode:
            raise NormalizeError("Missing Stockcode")
        name = str(raw.get("DisplayName") or raw.get("Name") or "").strip()
        if not name:
            raise NormalizeError(f"Missing name for {stockcode}")

        price = self._price(raw, name)
        if price is None:
            self.logger.debug(
                "[woolies] Skipping unavailable placeholder %s", stockcode
            )
            return None

        if raw.get("CupMeasure") == "1EA":
            quantity, unit = 1.0, Unit.EACH
        else:
            quantity, unit = self._quantity_and_unit(raw, price)

        was_price = raw.get("WasPrice")
        was_cents = to_cents(was_price) if was_price else 0
        return ProductRecord(
            retailer=self.retailer,
            product_id=str(stockcode),
            name=name,
            price=price,
            category_path=category.path,
            description=self._clean_description(
                str(raw.get("Description") or "")
            ),
            quantity=quantity,
            unit=unit,
            unit_price=self._unit_price(raw),
            is_special=bool(raw.get("IsOnSpecial")) or was_cents > price,
            is_weighted=str(raw.get("Unit") or "").lower() == "kg",
            checksum=self.checksum(raw),
        )
