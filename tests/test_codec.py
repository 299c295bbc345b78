# tests/test_codec.py

"""Tests for deterministic encoding and compression."""

import gzip
import unittest
from datetime import date

from hotprices.errors import CodecError
from hotprices.models.price_history import (
    CanonicalHistory,
    CanonicalHistoryEntry,
    PriceObservation,
    ProductStatus,
)
from hotprices.models.product import ProductRecord, Retailer, Unit, UnitPrice
from hotprices.models.snapshot import Snapshot
from hotprices.storage.codec import (
    compress,
    decode_history,
    decode_json,
    decode_snapshot,
    decompress,
    encode_history,
    encode_json,
    encode_snapshot,
    history_to_dict,
)


def _record(product_id: str, price: int) -> ProductRecord:
    return ProductRecord(
        retailer=Retailer.WOOLIES,
        product_id=product_id,
        name=f"Prödüct {product_id}",
        price=price,
        category_path=("Pantry", "Snacks"),
        description="Crunchy",
        quantity=150.0,
        unit=Unit.GRAMS,
        unit_price=UnitPrice(447, 100.0, Unit.GRAMS),
        is_special=True,
        is_weighted=False,
        checksum="abc",
    )


def _history() -> CanonicalHistory:
    history = CanonicalHistory.empty(Retailer.WOOLIES)
    for pid, price in (("2", 250), ("1", 100)):
        entry = CanonicalHistoryEntry.from_record(_record(pid, price))
        entry.last_seen = date(2024, 1, 2)
        entry.upsert_observation(PriceObservation(date(2024, 1, 1), price + 50))
        entry.upsert_observation(
            PriceObservation(date(2024, 1, 2), price, is_special=True)
        )
        history.entries[pid] = entry
    history.entries["2"].status = ProductStatus.DISCONTINUED
    history.entries["2"].missed_snapshots = 4
    history.last_merged = date(2024, 1, 2)
    return history


class TestBytes(unittest.TestCase):
    """JSON and gzip primitives."""

    def test_encode_sorts_keys_compactly(self) -> None:
        self.assertEqual(encode_json({"b": 1, "a": [1, 2]}), b'{"a":[1,2],"b":1}')

    def test_encode_rejects_unserialisable(self) -> None:
        with self.assertRaises(CodecError):
            encode_json({"when": date(2024, 1, 1)})

    def test_encode_rejects_nan(self) -> None:
        with self.assertRaises(CodecError):
            encode_json({"x": float("nan")})

    def test_compress_is_deterministic(self) -> None:
        data = b"x" * 1000
        self.assertEqual(compress(data), compress(data))

    def test_compress_is_standard_gzip(self) -> None:
        self.assertEqual(gzip.decompress(compress(b"hello")), b"hello")

    def test_decompress_inverts_compress(self) -> None:
        for data in (b"", b"{}", "ünïcode".encode("utf-8") * 100):
            with self.subTest(size=len(data)):
                self.assertEqual(decompress(compress(data)), data)

    def test_decompress_garbage_raises(self) -> None:
        with self.assertRaises(CodecError):
            decompress(b"not gzip at all")

    def test_decode_json_garbage_raises(self) -> None:
        with self.assertRaises(CodecError):
            decode_json(b"{oops")


class TestHistoryCodec(unittest.TestCase):
    """CanonicalHistory round trip and determinism."""

    def test_round_trip(self) -> None:
        history = _history()
        self.assertEqual(decode_history(encode_history(history)), history)

    def test_round_trip_empty(self) -> None:
        history = CanonicalHistory.empty(Retailer.COLES)
        self.assertEqual(decode_history(encode_history(history)), history)

    def test_serialisation_is_byte_identical(self) -> None:
        self.assertEqual(encode_history(_history()), encode_history(_history()))

    def test_insertion_order_does_not_matter(self) -> None:
        a = _history()
        b = _history()
        b.entries = dict(reversed(list(b.entries.items())))
        self.assertEqual(encode_history(a), encode_history(b))

    def test_prices_stay_integers(self) -> None:
        data = history_to_dict(_history())
        prices = [o["price"] for o in data["products"]["1"]["history"]]
        self.assertTrue(all(isinstance(p, int) for p in prices))

    def test_invalid_document_raises(self) -> None:
        with self.assertRaises(CodecError):
            decode_history(compress(b'{"retailer": "aldi", "products": {}}'))
        with self.assertRaises(CodecError):
            decode_history(compress(b"[]"))


class TestSnapshotCodec(unittest.TestCase):
    """Snapshot round trip."""

    def test_round_trip(self) -> None:
        snapshot = Snapshot.from_records(
            Retailer.WOOLIES,
            date(2024, 1, 1),
            [_record("1", 100), _record("2", 200)],
            partial=True,
        )
        decoded = decode_snapshot(encode_snapshot(snapshot))
        self.assertEqual(decoded, snapshot)
        self.assertTrue(decoded.partial)
        self.assertEqual(decoded.records["1"].checksum, "abc")

    def test_duplicate_ids_in_file_raise(self) -> None:
        doc = (
            b'{"retailer":"coles","date":"2024-01-01","products":['
            b'{"id":"1","name":"a","price":1},{"id":"1","name":"b","price":2}]}'
        )
        with self.assertRaises(CodecError):
            decode_snapshot(compress(doc))


if __name__ == "__main__":
    unittest.main()
