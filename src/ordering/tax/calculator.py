"""Tax calculator.

Computes subtotal, tax and total for a set of priced lines. When every line
ships to the same jurisdiction and no category carries its own rate, tax is
computed once off the subtotal (flat). Otherwise each line is taxed at its
own rate and the rounded line taxes are summed.

All arithmetic is done in ``Decimal``; amounts are rounded half-up to the
cent at the end of each aggregation step.
"""

from collections.abc import Iterable
from dataclasses import dataclass, field
from decimal import Decimal

from ordering.tax.money import quantize, to_decimal
from ordering.tax.provider import TaxRateProvider
from ordering.tax.rate import normalize_region_code

HUNDRED = Decimal("100")


@dataclass(frozen=True)
class TaxableItem:
    price: Decimal
    quantity: int
    jurisdiction: str
    category: str | None = None

    @property
    def line_subtotal(self) -> Decimal:
        return to_decimal(self.price) * self.quantity


@dataclass(frozen=True)
class TaxBreakdownLine:
    label: str  # jurisdiction code or product category
    rate: Decimal
    amount: Decimal


@dataclass(frozen=True)
class TaxResult:
    subtotal: Decimal
    tax_amount: Decimal
    total_amount: Decimal
    breakdown: tuple[TaxBreakdownLine, ...] = ()
    # Per-line tax, in input order, when tax was computed line by line.
    line_taxes: tuple[Decimal, ...] | None = None
    line_rates: tuple[Decimal, ...] = field(default=())

    @property
    def is_flat(self) -> bool:
        return self.line_taxes is None


class TaxCalculator:
    def __init__(self, provider: TaxRateProvider, category_rates: dict | None = None) -> None:
        self.provider = provider
        self.category_rates = {
            str(category).strip().lower(): to_decimal(rate) for category, rate in (category_rates or {}).items()
        }

    def rate_for(self, jurisdiction: str) -> Decimal:
        rate = self.provider.rate_for(normalize_region_code(jurisdiction))
        return Decimal("0") if rate is None else to_decimal(rate)

    def _category_rate(self, item: TaxableItem) -> Decimal | None:
        if not item.category:
            return None
        return self.category_rates.get(item.category.strip().lower())

    def compute_tax(self, items: Iterable[TaxableItem]) -> TaxResult:
        items = list(items)
        subtotal = quantize(sum((item.line_subtotal for item in items), Decimal("0")))

        jurisdictions = {normalize_region_code(item.jurisdiction) for item in items}
        has_category_rates = any(self._category_rate(item) is not None for item in items)

        if len(jurisdictions) <= 1 and not has_category_rates:
            return self._compute_flat(items, subtotal, next(iter(jurisdictions), ""))
        return self._compute_per_line(items, subtotal)

    def _compute_flat(self, items, subtotal, jurisdiction) -> TaxResult:
        if not items:
            return TaxResult(subtotal=subtotal, tax_amount=quantize(0), total_amount=subtotal)

        rate = self.rate_for(jurisdiction)
        tax_amount = quantize(subtotal * rate / HUNDRED)
        return TaxResult(
            subtotal=subtotal,
            tax_amount=tax_amount,
            total_amount=quantize(subtotal + tax_amount),
            breakdown=(TaxBreakdownLine(label=jurisdiction, rate=rate, amount=tax_amount),),
            line_rates=tuple(rate for _ in items),
        )

    def _compute_per_line(self, items, subtotal) -> TaxResult:
        jurisdiction_rates: dict[str, Decimal] = {}
        grouped: dict[tuple[str, Decimal], Decimal] = {}
        line_taxes = []
        line_rates = []

        for item in items:
            rate = self._category_rate(item)
            if rate is not None:
                label = item.category.strip().lower()
            else:
                label = normalize_region_code(item.jurisdiction)
                if label not in jurisdiction_rates:
                    jurisdiction_rates[label] = self.rate_for(label)
                rate = jurisdiction_rates[label]

            line_tax = quantize(item.line_subtotal * rate / HUNDRED)
            line_taxes.append(line_tax)
            line_rates.append(rate)
            grouped[(label, rate)] = grouped.get((label, rate), Decimal("0")) + line_tax

        tax_amount = quantize(sum(line_taxes, Decimal("0")))
        return TaxResult(
            subtotal=subtotal,
            tax_amount=tax_amount,
            total_amount=quantize(subtotal + tax_amount),
            breakdown=tuple(
                TaxBreakdownLine(label=label, rate=rate, amount=quantize(amount))
                for (label, rate), amount in grouped.items()
            ),
            line_taxes=tuple(line_taxes),
            line_rates=tuple(line_rates),
        )
