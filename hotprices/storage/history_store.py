# hotprices/storage/history_store.py

"""Umbrella canonical history file and per-retailer site exports."""

import logging
from collections.abc import Mapping
from datetime import date, timedelta
from pathlib import Path
from typing import Any

from hotprices.config.settings import Settings
from hotprices.errors import CodecError
from hotprices.models.price_history import CanonicalHistory, ProductStatus
from hotprices.models.product import Retailer
from hotprices.storage.codec import (
    FORMAT_VERSION,
    compress,
    decode_json,
    decompress,
    encode_json,
    entry_to_dict,
    history_from_dict,
    history_to_dict,
)
from hotprices.storage.file_manager import FileManager

logger = logging.getLogger("hotprices.storage")


def export_filename(retailer: Retailer, compressed: bool) -> str:
    suffix = ".gz" if compressed else ""
    return f"latest-canonical.{retailer}.compressed.json{suffix}"


def build_export(
    history: CanonicalHistory,
    history_days: int,
    discontinued_days: int,
) -> list[dict[str, Any]]:
    """Public view of one retailer's history.

    Keeps ACTIVE products plus DISCONTINUED ones last seen within
    ``discontinued_days`` of the watermark, with each price series
    trimmed to the last ``history_days``.
    """
    if history.last_merged is None:
        return []
    history_cutoff = history.last_merged - timedelta(days=history_days)
    discontinued_cutoff = history.last_merged - timedelta(
        days=discontinued_days
    )

    products: list[dict[str, Any]] = []
    for product_id in sorted(history.entries):
        entry = history.entries[product_id]
        if entry.status is ProductStatus.DISCONTINUED and (
            entry.last_seen is None or entry.last_seen < discontinued_cutoff
        ):
            continue
        data = entry_to_dict(entry)
        data["id"] = product_id
        data["history"] = [
            o for o in data["history"]
            if date.fromisoformat(o["date"]) >= history_cutoff
        ]
        del data["missed_snapshots"]
        products.append(data)
    return products


class HistoryStore:
    """Loads and publishes the canonical history of every retailer."""

    def __init__(
        self,
        output_dir: Path | None = None,
        data_dir: Path | None = None,
    ) -> None:
        self.settings = Settings()
        self.output_dir = Path(output_dir or self.settings.OUTPUT_DIR)
        self.data_dir = Path(data_dir or self.settings.DATA_DIR)

    @property
    def canonical_path(self) -> Path:
        return self.output_dir / self.settings.CANONICAL_FILENAME

    def load(self) -> dict[Retailer, CanonicalHistory]:
        """Read the umbrella file; a missing file means no history yet."""
        histories = {r: CanonicalHistory.empty(r) for r in Retailer}
        path = self.canonical_path
        if not path.is_file():
            logger.info("No canonical history at %s, starting fresh", path)
            return histories

        document = decode_json(decompress(FileManager.read_bytes(path)))
        try:
            stored = document["retailers"]
            for name, data in stored.items():
                history = history_from_dict(data)
                if history.retailer.value != name:
                    raise CodecError(
                        f"History filed under {name} is for "
                        f"{history.retailer}"
                    )
                histories[history.retailer] = history
        except (AttributeError, KeyError, TypeError) as exc:
            raise CodecError(
                f"Invalid canonical history file {path}: {exc}"
            ) from exc

        logger.debug(
            "Loaded history for %s",
            ", ".join(f"{r}={len(h)}" for r, h in histories.items()),
        )
        return histories

    def _encode_canonical(
        self, histories: Mapping[Retailer, CanonicalHistory]
    ) -> bytes:
        document = {
            "version": FORMAT_VERSION,
            "retailers": {
                str(r): history_to_dict(h) for r, h in histories.items()
            },
        }
        return compress(encode_json(document))

    def _encode_exports(
        self,
        histories: Mapping[Retailer, CanonicalHistory],
        compressed: bool,
    ) -> list[tuple[Retailer, Path, bytes, int]]:
        encoded: list[tuple[Retailer, Path, bytes, int]] = []
        for retailer, history in histories.items():
            products = build_export(
                history,
                self.settings.EXPORT_HISTORY_DAYS,
                self.settings.EXPORT_DISCONTINUED_DAYS,
            )
            data = encode_json(products)
            if compressed:
                data = compress(data)
            path = self.data_dir / export_filename(retailer, compressed)
            encoded.append((retailer, path, data, len(products)))
        return encoded

    def _write_exports(
        self, encoded: list[tuple[Retailer, Path, bytes, int]]
    ) -> list[Path]:
        paths: list[Path] = []
        for retailer, path, data, count in encoded:
            FileManager.write_atomic(path, data)
            logger.info(
                "[%s] Exported %d products to %s", retailer, count, path
            )
            paths.append(path)
        return paths

    def save(self, histories: Mapping[Retailer, CanonicalHistory]) -> Path:
        """Atomically replace the umbrella file."""
        path = FileManager.write_atomic(
            self.canonical_path, self._encode_canonical(histories)
        )
        logger.info("Saved canonical history to %s", path)
        return path

    def export(
        self,
        histories: Mapping[Retailer, CanonicalHistory],
        compressed: bool = False,
    ) -> list[Path]:
        """Write one filtered export per retailer into the data dir."""
        return self._write_exports(self._encode_exports(histories, compressed))

    def publish(
        self,
        histories: Mapping[Retailer, CanonicalHistory],
        compressed: bool = False,
    ) -> Path:
        """Encode everything, then write the exports and the umbrella file.

        Nothing is written unless every file encodes. The umbrella file
        is written last, so its watermark never runs ahead of the exports.
        """
        canonical = self._encode_canonical(histories)
        exports = self._encode_exports(histories, compressed)
        self._write_exports(exports)
        path = FileManager.write_atomic(self.canonical_path, canonical)
        logger.info("Saved canonical history to %s", path)
        return path
