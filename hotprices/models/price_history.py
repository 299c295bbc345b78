# hotprices/models/price_history.py

"""Canonical per-product price history models."""

import bisect
import copy
from dataclasses import dataclass, field
from datetime import date
from enum import Enum

from hotprices.models.product import ProductRecord, Retailer, Unit, UnitPrice


class ProductStatus(str, Enum):
    """Lifecycle of a product in the canonical history."""

    ACTIVE = "active"
    DISCONTINUED = "discontinued"


@dataclass(frozen=True)
class PriceObservation:
    """A single daily price observation for a product."""

    date: date
    price: int
    is_special: bool = False


@dataclass
class CanonicalHistoryEntry:
    """Display metadata plus the chronological price series of a product."""

    product_id: str
    name: str
    category_path: tuple[str, ...] = ()
    description: str = ""
    quantity: float = 1.0
    unit: Unit = Unit.EACH
    unit_price: UnitPrice | None = None
    is_weighted: bool = False
    status: ProductStatus = ProductStatus.ACTIVE
    missed_snapshots: int = 0
    last_seen: date | None = None
    observations: list[PriceObservation] = field(
        default_factory=lambda: list[PriceObservation]()
    )

    @classmethod
    def from_record(cls, record: ProductRecord) -> "CanonicalHistoryEntry":
        """Start a new entry from the first sighting of a product."""
        entry = cls(product_id=record.product_id, name=record.name)
        entry.refresh_metadata(record)
        return entry

    def refresh_metadata(self, record: ProductRecord) -> None:
        """Adopt the latest observed display metadata."""
        self.name = record.name
        self.category_path = record.category_path
        self.description = record.description
        self.quantity = record.quantity
        self.unit = record.unit
        self.unit_price = record.unit_price
        self.is_weighted = record.is_weighted

    def upsert_observation(self, observation: PriceObservation) -> None:
        """Insert in date order, replacing any observation for that day."""
        dates = [o.date for o in self.observations]
        idx = bisect.bisect_left(dates, observation.date)
        if idx < len(dates) and dates[idx] == observation.date:
            self.observations[idx] = observation
        else:
            self.observations.insert(idx, observation)

    @property
    def latest(self) -> PriceObservation | None:
        """Most recent observation, if any."""
        return self.observations[-1] if self.observations else None


@dataclass
class CanonicalHistory:
    """Every product ever seen at one retailer, keyed by product id."""

    retailer: Retailer
    entries: dict[str, CanonicalHistoryEntry] = field(
        default_factory=lambda: dict[str, CanonicalHistoryEntry]()
    )
    last_merged: date | None = None

    @classmethod
    def empty(cls, retailer: Retailer) -> "CanonicalHistory":
        """Initial state for a retailer with no prior history."""
        return cls(retailer=retailer)

    def copy(self) -> "CanonicalHistory":
        """Deep copy so a merge never touches the caller's instance."""
        return copy.deepcopy(self)

    def active_count(self) -> int:
        """Number of entries currently ACTIVE."""
        return sum(
            1 for e in self.entries.values()
            if e.status is ProductStatus.ACTIVE
        )

    def __len__(self) -> int:
        return len(self.entries)
