# hotprices/filters/product_validator.py

"""Record and catalog sanity checks run before a snapshot is assembled."""

import logging

from hotprices.errors import BuildValidationError
from hotprices.models.product import ProductRecord

logger = logging.getLogger("hotprices.filters")


class ProductValidator:
    """Drop implausible records and reject implausible catalogs."""

    @staticmethod
    def validate(
        records: list[ProductRecord],
    ) -> tuple[list[ProductRecord], int]:
        """Drop records with empty names or zero prices.

        Returns the valid records and the count of dropped items.
        """
        valid: list[ProductRecord] = []
        dropped = 0

        for record in records:
            if not record.name.strip():
                logger.debug(
                    "Dropped product with empty name (id=%s)",
                    record.product_id,
                )
                dropped += 1
                continue
            if record.price <= 0:
                logger.debug(
                    "Dropped product with zero price (name=%s, id=%s)",
                    record.name,
                    record.product_id,
                )
                dropped += 1
                continue
            valid.append(record)

        if dropped:
            logger.info(
                "Validation dropped %d invalid products",
                dropped,
            )

        return valid, dropped

    @staticmethod
    def check_catalog(
        retailer: str,
        count: int,
        failures: int,
        attempted: int,
        min_count: int,
        max_failure_rate: float,
    ) -> None:
        """Raise BuildValidationError for a broken or near-empty scrape."""
        if count < min_count:
            raise BuildValidationError(
                f"[{retailer}] Only {count} products scraped, "
                f"expected at least {min_count}"
            )
        if attempted and failures / attempted > max_failure_rate:
            raise BuildValidationError(
                f"[{retailer}] {failures}/{attempted} products failed to "
                f"normalise, above the {max_failure_rate:.0%} limit"
            )
