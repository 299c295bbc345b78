# hotprices/filters/deduplicator.py

"""Product deduplication across a retailer's overlapping categories."""

import logging

from hotprices.models.product import ProductRecord, Retailer

logger = logging.getLogger("hotprices.filters")


class ProductDeduplicator:
    """Collapse records that share a product identity.

    Retailer categories are not exclusive, so the same product is often
    listed under several of them. The first sighting wins and keeps its
    category path; later sightings are discarded.
    """

    @staticmethod
    def deduplicate(
        records: list[ProductRecord],
    ) -> tuple[list[ProductRecord], int]:
        """Keep the first record per identity, in input order.

        Returns the deduplicated list and the count of removed dupes.
        """
        if not records:
            return [], 0

        seen: set[tuple[Retailer, str]] = set()
        kept: list[ProductRecord] = []
        removed = 0

        for record in records:
            key = record.identity
            if key in seen:
                logger.debug(
                    "Dropped duplicate %s seen again under %s",
                    record.product_id,
                    " > ".join(record.category_path),
                )
                removed += 1
                continue
            seen.add(key)
            kept.append(record)

        if removed:
            logger.info(
                "Deduplication removed %d duplicate products",
                removed,
            )

        return kept, removed
