# hotprices/filters/unit_parser.py

"""Parse retailer package sizes like ``150g`` or ``2 dozen``."""

import re

from hotprices.errors import NormalizeError
from hotprices.models.product import Unit

_UNIT_RE = re.compile(r"(?P<quantity>[0-9]+(?:\.[0-9]+)?) ?(?P<unit>[a-z]+)")
_MULTIPACK_RE = re.compile(
    r"(?P<count>[0-9]+) ?x ?(?P<quantity>[0-9]+(?:\.[0-9]+)?) ?(?P<unit>[a-z]+)"
)

_EACH_WORDS: frozenset[str] = frozenset({
    "ea", "each", "pk", "pack", "bunch", "sheets", "sachets",
    "capsules", "ss", "set", "pair", "pairs", "piece", "tablets",
    "rolls",
})

_FACTORS: dict[str, tuple[float, Unit]] = {
    "g": (1.0, Unit.GRAMS),
    "kg": (1000.0, Unit.GRAMS),
    "mg": (0.001, Unit.GRAMS),
    "ml": (1.0, Unit.MILLILITRE),
    "l": (1000.0, Unit.MILLILITRE),
    "cm": (1.0, Unit.CENTIMETRE),
    "m": (100.0, Unit.CENTIMETRE),
    "metre": (100.0, Unit.CENTIMETRE),
    "dozen": (12.0, Unit.EACH),
}


def normalise_unit(unit: str) -> tuple[float, Unit]:
    """Return the (factor, canonical unit) for a raw unit word."""
    if unit in _FACTORS:
        return _FACTORS[unit]
    if unit in _EACH_WORDS:
        return 1.0, Unit.EACH
    raise NormalizeError(f"unknown unit: {unit}")


def parse_str_unit(size: str) -> tuple[float, Unit]:
    """Parse a size string into a (quantity, unit) in canonical units.

    ``"8x70g"`` multipacks are multiplied out to ``(560.0, GRAMS)``.
    """
    size = size.lower().strip()
    multi = _MULTIPACK_RE.search(size)
    if multi:
        factor, unit = normalise_unit(multi.group("unit"))
        count = float(multi.group("count"))
        return round(count * float(multi.group("quantity")) * factor, 6), unit

    match = _UNIT_RE.search(size)
    if not match:
        raise NormalizeError(f"regex didn't match for {size}")
    factor, unit = normalise_unit(match.group("unit"))
    return round(float(match.group("quantity")) * factor, 6), unit
