# tests/test_unit_parser.py

"""Tests for package size parsing."""

import unittest

from hotprices.errors import NormalizeError
from hotprices.filters.unit_parser import normalise_unit, parse_str_unit
from hotprices.models.product import Unit


class TestParseStrUnit(unittest.TestCase):
    """parse_str_unit converts to canonical units."""

    def test_known_sizes(self) -> None:
        cases = {
            "150g": (150.0, Unit.GRAMS),
            "1kg": (1000.0, Unit.GRAMS),
            "1.5 KG": (1500.0, Unit.GRAMS),
            "500mg": (0.5, Unit.GRAMS),
            "375ml": (375.0, Unit.MILLILITRE),
            "2L": (2000.0, Unit.MILLILITRE),
            "30cm": (30.0, Unit.CENTIMETRE),
            "20m": (2000.0, Unit.CENTIMETRE),
            "2 dozen": (24.0, Unit.EACH),
            "6 pack": (6.0, Unit.EACH),
            "1EA": (1.0, Unit.EACH),
            "approx. 500g": (500.0, Unit.GRAMS),
        }
        for size, expected in cases.items():
            with self.subTest(size=size):
                self.assertEqual(parse_str_unit(size), expected)

    def test_multipack_multiplied_out(self) -> None:
        """8x70g is 560 grams."""
        self.assertEqual(parse_str_unit("8x70g"), (560.0, Unit.GRAMS))
        self.assertEqual(parse_str_unit("4 x 1.25l"), (5000.0, Unit.MILLILITRE))

    def test_no_number_raises(self) -> None:
        with self.assertRaisesRegex(NormalizeError, "regex didn't match"):
            parse_str_unit("per kg")

    def test_unknown_unit_raises(self) -> None:
        with self.assertRaisesRegex(NormalizeError, "unknown unit"):
            parse_str_unit("3 furlongs")


class TestNormaliseUnit(unittest.TestCase):
    """normalise_unit factor table."""

    def test_each_words(self) -> None:
        for word in ("ea", "each", "pk", "bunch"):
            with self.subTest(word=word):
                self.assertEqual(normalise_unit(word), (1.0, Unit.EACH))

    def test_kilogram_factor(self) -> None:
        self.assertEqual(normalise_unit("kg"), (1000.0, Unit.GRAMS))


if __name__ == "__main__":
    unittest.main()
