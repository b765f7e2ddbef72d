"""Fixed-point money helpers.

Amounts are carried as ``Decimal`` during computation and persisted as
integer minor units (cents). Every aggregation step rounds half-up to the
currency's minor unit.
"""

from decimal import ROUND_HALF_UP, Decimal

CENT = Decimal("0.01")
MINOR_UNITS_PER_MAJOR = 100


def to_decimal(value) -> Decimal:
    """Coerce ints, strings, floats and Decimals into a Decimal without float drift."""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def quantize(amount) -> Decimal:
    return to_decimal(amount).quantize(CENT, rounding=ROUND_HALF_UP)


def to_minor_units(amount) -> int:
    return int((to_decimal(amount) * MINOR_UNITS_PER_MAJOR).to_integral_value(rounding=ROUND_HALF_UP))


def from_minor_units(minor: int) -> Decimal:
    return (Decimal(int(minor)) / MINOR_UNITS_PER_MAJOR).quantize(CENT)
