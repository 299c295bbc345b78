# hotprices/storage/codec.py

"""Deterministic JSON encoding and gzip compression of datasets.

Encoding sorts keys and uses compact separators, and compression pins
the gzip timestamp, so serialising unchanged data always yields the
same bytes.
"""

import gzip
import json
import zlib
from datetime import date
from typing import Any

from hotprices.errors import CodecError, DuplicateProductError
from hotprices.models.price_history import (
    CanonicalHistory,
    CanonicalHistoryEntry,
    PriceObservation,
    ProductStatus,
)
from hotprices.models.product import ProductRecord, Retailer, Unit, UnitPrice
from hotprices.models.snapshot import Snapshot

FORMAT_VERSION = 1


# ── Bytes ────────────────────────────────────────────────


def encode_json(data: Any) -> bytes:
    """Serialise ``data`` to canonical UTF-8 JSON."""
    try:
        text = json.dumps(
            data,
            sort_keys=True,
            separators=(",", ":"),
            ensure_ascii=False,
            allow_nan=False,
        )
    except (TypeError, ValueError) as exc:
        raise CodecError(f"Failed to encode JSON: {exc}") from exc
    return text.encode("utf-8")


def decode_json(data: bytes) -> Any:
    try:
        return json.loads(data.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise CodecError(f"Failed to decode JSON: {exc}") from exc


def compress(data: bytes) -> bytes:
    """Gzip ``data`` with a fixed timestamp."""
    return gzip.compress(data, compresslevel=9, mtime=0)


def decompress(data: bytes) -> bytes:
    try:
        return gzip.decompress(data)
    except (OSError, EOFError, zlib.error) as exc:
        raise CodecError(f"Failed to decompress data: {exc}") from exc


# ── Field helpers ────────────────────────────────────────


def _unit_price_to_dict(unit_price: UnitPrice | None) -> dict | None:
    if unit_price is None:
        return None
    return {
        "price": unit_price.price,
        "quantity": unit_price.quantity,
        "unit": unit_price.unit.value,
    }


def _unit_price_from_dict(data: dict | None) -> UnitPrice | None:
    if data is None:
        return None
    return UnitPrice(
        price=int(data["price"]),
        quantity=float(data["quantity"]),
        unit=Unit(data["unit"]),
    )


def _optional_date(value: str | None) -> date | None:
    return date.fromisoformat(value) if value else None


# ── Snapshots ────────────────────────────────────────────


def record_to_dict(record: ProductRecord) -> dict[str, Any]:
    return {
        "id": record.product_id,
        "name": record.name,
        "price": record.price,
        "category_path": list(record.category_path),
        "description": record.description,
        "quantity": record.quantity,
        "unit": record.unit.value,
        "unit_price": _unit_price_to_dict(record.unit_price),
        "is_special": record.is_special,
        "is_weighted": record.is_weighted,
        "checksum": record.checksum,
    }


def record_from_dict(
    retailer: Retailer, data: dict[str, Any]
) -> ProductRecord:
    return ProductRecord(
        retailer=retailer,
        product_id=str(data["id"]),
        name=str(data["name"]),
        price=int(data["price"]),
        category_path=tuple(data.get("category_path") or ()),
        description=str(data.get("description") or ""),
        quantity=float(data.get("quantity", 1.0)),
        unit=Unit(data.get("unit", Unit.EACH.value)),
        unit_price=_unit_price_from_dict(data.get("unit_price")),
        is_special=bool(data.get("is_special", False)),
        is_weighted=bool(data.get("is_weighted", False)),
        checksum=str(data.get("checksum") or ""),
    )


def snapshot_to_dict(snapshot: Snapshot) -> dict[str, Any]:
    """Plain-data form of a snapshot, products ordered by id."""
    return {
        "version": FORMAT_VERSION,
        "retailer": snapshot.retailer.value,
        "date": snapshot.date.isoformat(),
        "partial": snapshot.partial,
        "products": [
            record_to_dict(snapshot.records[pid])
            for pid in sorted(snapshot.records)
        ],
    }


def snapshot_from_dict(data: dict[str, Any]) -> Snapshot:
    try:
        retailer = Retailer(data["retailer"])
        return Snapshot.from_records(
            retailer,
            date.fromisoformat(data["date"]),
            (record_from_dict(retailer, p) for p in data["products"]),
            partial=bool(data.get("partial", False)),
        )
    except (DuplicateProductError, KeyError, TypeError, ValueError) as exc:
        raise CodecError(f"Invalid snapshot document: {exc}") from exc


def encode_snapshot(snapshot: Snapshot) -> bytes:
    return compress(encode_json(snapshot_to_dict(snapshot)))


def decode_snapshot(data: bytes) -> Snapshot:
    return snapshot_from_dict(decode_json(decompress(data)))


# ── Canonical history ────────────────────────────────────


def entry_to_dict(entry: CanonicalHistoryEntry) -> dict[str, Any]:
    return {
        "name": entry.name,
        "category_path": list(entry.category_path),
        "description": entry.description,
        "quantity": entry.quantity,
        "unit": entry.unit.value,
        "unit_price": _unit_price_to_dict(entry.unit_price),
        "is_weighted": entry.is_weighted,
        "status": entry.status.value,
        "missed_snapshots": entry.missed_snapshots,
        "last_seen": entry.last_seen.isoformat() if entry.last_seen else None,
        "history": [
            {
                "date": o.date.isoformat(),
                "price": o.price,
                "special": o.is_special,
            }
            for o in entry.observations
        ],
    }


def entry_from_dict(
    product_id: str, data: dict[str, Any]
) -> CanonicalHistoryEntry:
    observations = [
        PriceObservation(
            date=date.fromisoformat(o["date"]),
            price=int(o["price"]),
            is_special=bool(o.get("special", False)),
        )
        for o in data.get("history") or []
    ]
    observations.sort(key=lambda o: o.date)
    return CanonicalHistoryEntry(
        product_id=product_id,
        name=str(data["name"]),
        category_path=tuple(data.get("category_path") or ()),
        description=str(data.get("description") or ""),
        quantity=float(data.get("quantity", 1.0)),
        unit=Unit(data.get("unit", Unit.EACH.value)),
        unit_price=_unit_price_from_dict(data.get("unit_price")),
        is_weighted=bool(data.get("is_weighted", False)),
        status=ProductStatus(data.get("status", ProductStatus.ACTIVE.value)),
        missed_snapshots=int(data.get("missed_snapshots", 0)),
        last_seen=_optional_date(data.get("last_seen")),
        observations=observations,
    )


def history_to_dict(history: CanonicalHistory) -> dict[str, Any]:
    """Plain-data form of a canonical history."""
    return {
        "version": FORMAT_VERSION,
        "retailer": history.retailer.value,
        "last_merged": (
            history.last_merged.isoformat() if history.last_merged else None
        ),
        "products": {
            pid: entry_to_dict(entry)
            for pid, entry in history.entries.items()
        },
    }


def history_from_dict(data: dict[str, Any]) -> CanonicalHistory:
    try:
        return CanonicalHistory(
            retailer=Retailer(data["retailer"]),
            entries={
                str(pid): entry_from_dict(str(pid), entry)
                for pid, entry in sorted(data["products"].items())
            },
            last_merged=_optional_date(data.get("last_merged")),
        )
    except (AttributeError, KeyError, TypeError, ValueError) as exc:
        raise CodecError(f"Invalid history document: {exc}") from exc


def encode_history(history: CanonicalHistory) -> bytes:
    """Compressed canonical bytes of one retailer's history."""
    return compress(encode_json(history_to_dict(history)))


def decode_history(data: bytes) -> CanonicalHistory:
    """Inverse of ``encode_history``."""
    return history_from_dict(decode_json(decompress(data)))
