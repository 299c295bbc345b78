# hotprices/models/product.py

"""Product data model shared by every retailer adapter."""

from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from enum import Enum

from hotprices.errors import NormalizeError


class Retailer(str, Enum):
    """The closed set of supported retailers."""

    WOOLIES = "woolies"
    COLES = "coles"

    def __str__(self) -> str:
        return self.value


class Unit(str, Enum):
    """Canonical measurement unit of a product's package size."""

    EACH = "each"
    GRAMS = "g"
    MILLILITRE = "ml"
    CENTIMETRE = "cm"


@dataclass(frozen=True)
class UnitPrice:
    """Price per standard measure, e.g. 447 cents per 100 g."""

    price: int
    quantity: float
    unit: Unit


@dataclass(frozen=True)
class Category:
    """One browsable catalog category of a retailer."""

    id: str
    path: tuple[str, ...]


@dataclass(frozen=True)
class ProductRecord:
    """One retailer's view of one product at scrape time.

    ``price`` is in cents. Identity is ``(retailer, product_id)``;
    the name may change without the identity changing.
    """

    retailer: Retailer
    product_id: str
    name: str
    price: int
    category_path: tuple[str, ...] = ()
    description: str = ""
    quantity: float = 1.0
    unit: Unit = Unit.EACH
    unit_price: UnitPrice | None = None
    is_special: bool = False
    is_weighted: bool = False
    checksum: str = field(default="", compare=False)

    @property
    def identity(self) -> tuple[Retailer, str]:
        """Stable key distinguishing this product across snapshots."""
        return (self.retailer, self.product_id)


def to_cents(value: object) -> int:
    """Convert a retailer price (``6.7``, ``"12.02"``, ``"$4.47"``) to cents.

    Floats are converted through their shortest ``repr`` so ``6.7``
    becomes 670 rather than 669. Rounds half-up to the nearest cent.
    """
    if value is None or isinstance(value, bool):
        raise NormalizeError(f"Invalid price value: {value!r}")
    text = str(value).strip().replace("$", "").replace(",", "")
    try:
        amount = Decimal(text)
    except InvalidOperation as exc:
        raise NormalizeError(f"Invalid price value: {value!r}") from exc
    if not amount.is_finite() or amount < 0:
        raise NormalizeError(f"Invalid price value: {value!r}")
    cents = (amount * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return int(cents)
