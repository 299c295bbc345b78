# hotprices/models/snapshot.py

"""Immutable dated catalog snapshot for one retailer."""

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from datetime import date
from types import MappingProxyType

from hotprices.errors import DuplicateProductError
from hotprices.models.product import ProductRecord, Retailer


@dataclass(frozen=True)
class Snapshot:
    """All products of one retailer observed on one calendar day.

    ``partial`` marks quick-mode scrapes that intentionally cover only
    part of the catalog.
    """

    retailer: Retailer
    date: date
    records: Mapping[str, ProductRecord] = field(
        default_factory=lambda: MappingProxyType({})
    )
    partial: bool = False

    @classmethod
    def from_records(
        cls,
        retailer: Retailer,
        day: date,
        records: Iterable[ProductRecord],
        partial: bool = False,
    ) -> "Snapshot":
        """Build a snapshot, rejecting duplicate or foreign identities."""
        by_id: dict[str, ProductRecord] = {}
        for record in records:
            if record.retailer != retailer:
                raise ValueError(
                    f"{record.retailer} product {record.product_id} "
                    f"in {retailer} snapshot"
                )
            if record.product_id in by_id:
                raise DuplicateProductError(
                    str(retailer), record.product_id
                )
            by_id[record.product_id] = record
        return cls(
            retailer=retailer,
            date=day,
            records=MappingProxyType(by_id),
            partial=partial,
        )

    def __len__(self) -> int:
        return len(self.records)

    def __iter__(self) -> Iterator[ProductRecord]:
        return iter(self.records.values())

    def __contains__(self, product_id: object) -> bool:
        return product_id in self.records
