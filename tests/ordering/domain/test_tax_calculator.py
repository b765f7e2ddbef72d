"""Tests for the tax calculator: flat and per-line modes."""

from decimal import Decimal

import pytest
from ordering.errors import TaxUnavailable
from ordering.tax.calculator import TaxableItem, TaxCalculator
from ordering.tax.provider import StaticTaxRateProvider, TaxRateProvider


class _UnavailableProvider(TaxRateProvider):
    def rate_for(self, region_code):
        raise TaxUnavailable("rate table offline")


def _calculator(rates=None, category_rates=None):
    return TaxCalculator(StaticTaxRateProvider(rates or {"CA": "8", "NY": "4"}), category_rates)


class TestFlatMode:
    def test_single_jurisdiction_scenario(self):
        result = _calculator().compute_tax(
            [
                TaxableItem(price=Decimal("10.00"), quantity=2, jurisdiction="CA"),
                TaxableItem(price=Decimal("5.00"), quantity=1, jurisdiction="CA"),
            ]
        )
        assert result.subtotal == Decimal("25.00")
        assert result.tax_amount == Decimal("2.00")
        assert result.total_amount == Decimal("27.00")
        assert result.is_flat

    def test_breakdown_has_one_line(self):
        result = _calculator().compute_tax([TaxableItem(price=Decimal("25.00"), quantity=1, jurisdiction="ca")])
        assert len(result.breakdown) == 1
        line = result.breakdown[0]
        assert line.label == "CA"
        assert line.rate == Decimal("8")
        assert line.amount == Decimal("2.00")

    def test_tax_is_computed_once_off_the_subtotal(self):
        # Three lines of 0.15 at 10% would round to 0.02 each (0.06) if taxed separately
        calculator = _calculator({"CA": "10"})
        items = [TaxableItem(price=Decimal("0.15"), quantity=1, jurisdiction="CA") for _ in range(3)]
        result = calculator.compute_tax(items)
        assert result.subtotal == Decimal("0.45")
        assert result.tax_amount == Decimal("0.05")

    def test_unknown_region_is_zero(self):
        result = _calculator().compute_tax([TaxableItem(price=Decimal("25.00"), quantity=1, jurisdiction="TX")])
        assert result.tax_amount == Decimal("0.00")
        assert result.total_amount == Decimal("25.00")

    def test_empty_items(self):
        result = _calculator().compute_tax([])
        assert result.subtotal == Decimal("0.00")
        assert result.tax_amount == Decimal("0.00")
        assert result.breakdown == ()


class TestPerLineMode:
    def test_multiple_jurisdictions(self):
        result = _calculator().compute_tax(
            [
                TaxableItem(price=Decimal("10.00"), quantity=1, jurisdiction="CA"),
                TaxableItem(price=Decimal("10.00"), quantity=1, jurisdiction="NY"),
            ]
        )
        assert not result.is_flat
        assert result.line_taxes == (Decimal("0.80"), Decimal("0.40"))
        assert result.tax_amount == Decimal("1.20")
        assert {line.label for line in result.breakdown} == {"CA", "NY"}

    def test_category_rate_overrides_region_rate(self):
        calculator = _calculator(category_rates={"Books": "0", "candles": "12"})
        result = calculator.compute_tax(
            [
                TaxableItem(price=Decimal("20.00"), quantity=1, jurisdiction="CA", category="books"),
                TaxableItem(price=Decimal("10.00"), quantity=2, jurisdiction="CA", category="Candles"),
                TaxableItem(price=Decimal("5.00"), quantity=1, jurisdiction="CA"),
            ]
        )
        assert result.line_taxes == (Decimal("0.00"), Decimal("2.40"), Decimal("0.40"))
        assert result.line_rates == (Decimal("0"), Decimal("12"), Decimal("8"))
        assert result.tax_amount == Decimal("2.80")
        assert result.total_amount == Decimal("47.80")

    def test_lines_are_rounded_before_summing(self):
        calculator = _calculator({"CA": "10", "NY": "10"})
        result = calculator.compute_tax(
            [
                TaxableItem(price=Decimal("0.15"), quantity=1, jurisdiction="CA"),
                TaxableItem(price=Decimal("0.15"), quantity=1, jurisdiction="NY"),
            ]
        )
        assert result.tax_amount == Decimal("0.04")


class TestLookupFailure:
    def test_unavailable_rates_propagate(self):
        calculator = TaxCalculator(_UnavailableProvider())
        with pytest.raises(TaxUnavailable):
            calculator.compute_tax([TaxableItem(price=Decimal("1.00"), quantity=1, jurisdiction="CA")])
