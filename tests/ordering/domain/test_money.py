"""Tests for fixed-point money helpers."""

from decimal import Decimal

from ordering.tax.money import from_minor_units, quantize, to_decimal, to_minor_units


class TestQuantize:
    def test_rounds_half_up(self):
        assert quantize(Decimal("2.005")) == Decimal("2.01")
        assert quantize(Decimal("2.004")) == Decimal("2.00")

    def test_floats_are_read_through_their_string_form(self):
        assert to_decimal(0.1) == Decimal("0.1")
        assert quantize(1.005) == Decimal("1.01")


class TestMinorUnits:
    def test_to_minor_units(self):
        assert to_minor_units(Decimal("27.00")) == 2700
        assert to_minor_units("19.995") == 2000

    def test_from_minor_units(self):
        assert from_minor_units(2700) == Decimal("27.00")
        assert from_minor_units(5) == Decimal("0.05")
