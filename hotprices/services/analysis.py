# hotprices/services/analysis.py

"""Merge stored snapshots into the canonical history and export it."""

import logging
from collections.abc import Iterable
from datetime import date
from pathlib import Path

from hotprices.models.price_history import CanonicalHistory
from hotprices.models.product import Retailer
from hotprices.models.snapshot import Snapshot
from hotprices.services.history_merge import HistoryMergeEngine
from hotprices.services.snapshot_builder import retailer_today
from hotprices.storage.history_store import HistoryStore
from hotprices.storage.snapshot_store import SnapshotStore

logger = logging.getLogger("hotprices.analysis")


def _days_to_merge(
    store: SnapshotStore,
    retailer: Retailer,
    prior: CanonicalHistory,
    day: date,
    backfill: bool,
    allow_partial: bool,
) -> list[date]:
    if not backfill:
        return [day]
    stored = set(store.available_days(retailer))
    if allow_partial:
        stored.update(store.available_days(retailer, partial=True))
    days = sorted(
        d for d in stored
        if d <= day and (prior.last_merged is None or d > prior.last_merged)
    )
    if not days:
        logger.info("[%s] Nothing newer than the watermark to backfill", retailer)
    return days


def _read(
    store: SnapshotStore, retailer: Retailer, day: date, allow_partial: bool
) -> Snapshot:
    """The full snapshot of ``day``, else its quick-mode one if allowed."""
    if allow_partial and not store.exists(retailer, day):
        return store.read(retailer, day, partial=True)
    return store.read(retailer, day)


def run_analysis(
    day: date | None = None,
    retailers: Iterable[Retailer] | None = None,
    output_dir: Path | None = None,
    data_dir: Path | None = None,
    compress: bool = False,
    history: bool = False,
    allow_partial: bool = False,
) -> dict[Retailer, CanonicalHistory]:
    """Fold the stored snapshot(s) into the canonical history.

    With ``history`` set every stored snapshot newer than each
    retailer's watermark (up to ``day``) is merged in date order,
    otherwise only the snapshot for ``day``. Quick-mode snapshots are
    only considered with ``allow_partial``, and only for days without a
    full snapshot. Everything is loaded, merged and encoded before the
    first file is written.
    """
    day = day or retailer_today()
    selected = list(retailers) if retailers else list(Retailer)
    snapshots = SnapshotStore(output_dir)
    history_store = HistoryStore(output_dir, data_dir)
    engine = HistoryMergeEngine()

    histories = history_store.load()
    merged = dict(histories)
    for retailer in selected:
        prior = histories[retailer]
        loaded: list[Snapshot] = [
            _read(snapshots, retailer, d, allow_partial)
            for d in _days_to_merge(
                snapshots, retailer, prior, day, history, allow_partial
            )
        ]
        merged[retailer] = engine.merge(
            prior, loaded, allow_partial=allow_partial
        )
        logger.info(
            "[%s] History now holds %d products (%d active)",
            retailer,
            len(merged[retailer]),
            merged[retailer].active_count(),
        )

    history_store.publish(merged, compressed=compress)
    return merged
