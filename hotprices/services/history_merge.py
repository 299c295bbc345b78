# hotprices/services/history_merge.py

"""Folds dated snapshots into a retailer's canonical price history."""

import logging
from collections.abc import Sequence
from dataclasses import dataclass

from hotprices.config.settings import Settings
from hotprices.errors import MergeError, MergeOrderError, PartialSnapshotError
from hotprices.models.price_history import (
    CanonicalHistory,
    CanonicalHistoryEntry,
    PriceObservation,
    ProductStatus,
)
from hotprices.models.snapshot import Snapshot

logger = logging.getLogger("hotprices.merge")


@dataclass
class MergeStats:
    """What one snapshot changed in the history."""

    added: int = 0
    updated: int = 0
    reactivated: int = 0
    missing: int = 0
    discontinued: int = 0


class HistoryMergeEngine:
    """Applies snapshots to a CanonicalHistory in date order.

    The prior history is never modified: every merge works on a deep
    copy that is returned only once all snapshots have been applied.
    Re-merging a snapshot dated on the watermark overwrites that day's
    observations and leaves absence counters alone, so applying the same
    snapshot twice is a no-op.
    """

    def __init__(self, discontinued_after: int | None = None) -> None:
        if discontinued_after is None:
            discontinued_after = Settings.DISCONTINUED_AFTER
        if discontinued_after < 1:
            raise ValueError("discontinued_after must be at least 1")
        self.discontinued_after = discontinued_after

    # ── Private helpers ──────────────────────────────────

    def _check(
        self,
        history: CanonicalHistory,
        snapshots: Sequence[Snapshot],
        allow_partial: bool,
    ) -> None:
        """Reject the whole batch before anything is applied."""
        watermark = history.last_merged
        for snapshot in snapshots:
            if snapshot.retailer != history.retailer:
                raise MergeError(
                    f"Cannot merge a {snapshot.retailer} snapshot into "
                    f"{history.retailer} history"
                )
            if snapshot.partial and not allow_partial:
                raise PartialSnapshotError(
                    f"[{snapshot.retailer}] Snapshot for "
                    f"{snapshot.date.isoformat()} is a quick-mode partial "
                    "scrape; pass allow_partial to merge it"
                )
            if watermark is not None and snapshot.date < watermark:
                raise MergeOrderError(
                    f"[{snapshot.retailer}] Snapshot for "
                    f"{snapshot.date.isoformat()} is older than the "
                    f"history watermark {watermark.isoformat()}"
                )
            watermark = snapshot.date

    def _apply(
        self, history: CanonicalHistory, snapshot: Snapshot
    ) -> MergeStats:
        stats = MergeStats()
        rerun = history.last_merged == snapshot.date

        for record in snapshot:
            entry = history.entries.get(record.product_id)
            if entry is None:
                entry = CanonicalHistoryEntry.from_record(record)
                history.entries[record.product_id] = entry
                stats.added += 1
            else:
                if entry.status is ProductStatus.DISCONTINUED:
                    stats.reactivated += 1
                entry.refresh_metadata(record)
                stats.updated += 1
            entry.status = ProductStatus.ACTIVE
            entry.missed_snapshots = 0
            entry.last_seen = snapshot.date
            entry.upsert_observation(
                PriceObservation(
                    date=snapshot.date,
                    price=record.price,
                    is_special=record.is_special,
                )
            )

        # Partial scrapes and same-day reruns say nothing new about absence
        if not snapshot.partial and not rerun:
            for product_id, entry in history.entries.items():
                if product_id in snapshot:
                    continue
                entry.missed_snapshots += 1
                stats.missing += 1
                if (
                    entry.status is ProductStatus.ACTIVE
                    and entry.missed_snapshots >= self.discontinued_after
                ):
                    entry.status = ProductStatus.DISCONTINUED
                    stats.discontinued += 1

        if history.last_merged is None or snapshot.date > history.last_merged:
            history.last_merged = snapshot.date
        return stats

    # ── Public API ───────────────────────────────────────

    def merge(
        self,
        history: CanonicalHistory,
        snapshots: Sequence[Snapshot],
        allow_partial: bool = False,
    ) -> CanonicalHistory:
        """Return a new history with ``snapshots`` applied in order.

        Raises MergeOrderError for a snapshot older than the watermark
        and PartialSnapshotError for an unflagged quick-mode snapshot.
        """
        self._check(history, snapshots, allow_partial)
        merged = history.copy()
        for snapshot in snapshots:
            stats = self._apply(merged, snapshot)
            logger.info(
                "[%s] Merged %s: %d new, %d updated, %d reactivated, "
                "%d missing, %d discontinued",
                merged.retailer,
                snapshot.date.isoformat(),
                stats.added,
                stats.updated,
                stats.reactivated,
                stats.missing,
                stats.discontinued,
            )
        return merged


def merge(
    history: CanonicalHistory | None,
    snapshots: Sequence[Snapshot],
    allow_partial: bool = False,
) -> CanonicalHistory:
    """Merge ``snapshots`` into ``history`` (or a fresh one) in order."""
    if history is None:
        if not snapshots:
            raise MergeError("Nothing to merge into an empty history")
        history = CanonicalHistory.empty(snapshots[0].retailer)
    return HistoryMergeEngine().merge(
        history, snapshots, allow_partial=allow_partial
    )
