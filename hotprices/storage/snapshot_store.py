# hotprices/storage/snapshot_store.py

"""Durable per-retailer, per-day snapshot files."""

import logging
from datetime import date
from pathlib import Path

from hotprices.config.settings import Settings
from hotprices.errors import SnapshotNotFoundError
from hotprices.models.product import Retailer
from hotprices.models.snapshot import Snapshot
from hotprices.storage.codec import decode_snapshot, encode_snapshot
from hotprices.storage.file_manager import FileManager

logger = logging.getLogger("hotprices.storage")

SNAPSHOT_SUFFIX = ".json.gz"
PARTIAL_MARKER = ".quick"


def get_snapshot_path(
    output_dir: Path, retailer: Retailer, day: date, partial: bool = False
) -> Path:
    """Where the snapshot of ``retailer`` for ``day`` lives.

    Pure and stable: ``<output_dir>/<retailer>/<YYYY-MM-DD>.json.gz``.
    Quick-mode scrapes go to ``<YYYY-MM-DD>.quick.json.gz`` so they
    never replace a full snapshot of the same day.
    """
    marker = PARTIAL_MARKER if partial else ""
    return (
        Path(output_dir)
        / str(retailer)
        / f"{day.isoformat()}{marker}{SNAPSHOT_SUFFIX}"
    )


class SnapshotStore:
    """Reads and atomically publishes snapshot files."""

    def __init__(self, output_dir: Path | None = None) -> None:
        self.output_dir = Path(output_dir or Settings.OUTPUT_DIR)

    def path(
        self, retailer: Retailer, day: date, partial: bool = False
    ) -> Path:
        return get_snapshot_path(self.output_dir, retailer, day, partial)

    def exists(
        self, retailer: Retailer, day: date, partial: bool = False
    ) -> bool:
        return self.path(retailer, day, partial).is_file()

    def read(
        self, retailer: Retailer, day: date, partial: bool = False
    ) -> Snapshot:
        """Load a snapshot.

        Raises SnapshotNotFoundError when no file exists, and CodecError
        when the file exists but cannot be decoded.
        """
        path = self.path(retailer, day, partial)
        if not path.is_file():
            raise SnapshotNotFoundError(str(path))
        return decode_snapshot(FileManager.read_bytes(path))

    def write(self, snapshot: Snapshot) -> Path:
        """Publish ``snapshot``, replacing any file for the same day."""
        data = encode_snapshot(snapshot)
        path = FileManager.write_atomic(
            self.path(snapshot.retailer, snapshot.date, snapshot.partial),
            data,
        )
        logger.info(
            "[%s] Saved %d products to %s",
            snapshot.retailer,
            len(snapshot),
            path,
        )
        return path

    def available_days(
        self, retailer: Retailer, partial: bool = False
    ) -> list[date]:
        """Dates with a stored full (or quick-mode) snapshot, oldest first."""
        root = self.output_dir / str(retailer)
        if not root.is_dir():
            return []
        days: list[date] = []
        for path in root.glob(f"*{SNAPSHOT_SUFFIX}"):
            stem = path.name[: -len(SNAPSHOT_SUFFIX)]
            if stem.endswith(PARTIAL_MARKER) != partial:
                continue
            stem = stem.removesuffix(PARTIAL_MARKER)
            try:
                days.append(date.fromisoformat(stem))
            except ValueError:
                logger.debug("Ignoring unexpected file %s", path)
        return sorted(days)
