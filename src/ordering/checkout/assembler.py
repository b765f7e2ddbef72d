"""Order assembler.

Turns validated lines into the frozen contents of an order: item snapshots,
tax and totals in minor units. Nothing is persisted here.

In flat mode the order's tax is a single figure computed off the subtotal and
is then shared out across items in proportion to each item's subtotal. Each
share is rounded on its own, so the item taxes may differ from the order's
tax total by a minor unit; the order total is authoritative and the drift is
left as is.
"""

import json
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal

from ordering.checkout.caller import Authenticated, Guest
from ordering.tax.calculator import TaxableItem, TaxCalculator, TaxResult
from ordering.tax.money import to_minor_units


@dataclass(frozen=True)
class AssembledOrder:
    order_id: str
    items: list[dict]
    shipping_address: dict
    subtotal: int
    tax_total: int
    grand_total: int
    currency: str
    tax_region: str
    tax: TaxResult
    customer_id: str | None = None
    guest_contact: dict | None = field(default=None)

    @property
    def idempotency_key(self) -> str:
        return f"order-{self.order_id}"

    def place_order_kwargs(self) -> dict:
        """Keyword arguments for the ``PlaceOrder`` command."""
        return {
            "order_id": self.order_id,
            "customer_id": self.customer_id,
            "guest_contact": json.dumps(self.guest_contact) if self.guest_contact else None,
            "items": json.dumps(self.items),
            "shipping_address": json.dumps(self.shipping_address),
            "subtotal": self.subtotal,
            "tax_total": self.tax_total,
            "grand_total": self.grand_total,
            "currency": self.currency,
            "tax_region": self.tax_region,
            "idempotency_key": self.idempotency_key,
        }


def distribute_tax(tax_minor: int, line_subtotals: list[int]) -> list[int]:
    """Share ``tax_minor`` across lines by subtotal, rounding each share half-up."""
    total = sum(line_subtotals)
    if not total:
        return [0 for _ in line_subtotals]
    return [
        int((Decimal(tax_minor) * line / total).to_integral_value(rounding=ROUND_HALF_UP))
        for line in line_subtotals
    ]


def _owner(caller):
    match caller:
        case Authenticated(account_id=account_id):
            return str(account_id), None
        case Guest(contact=contact):
            return None, contact.as_dict()
        case _:
            raise TypeError(f"Unsupported caller: {caller!r}")


def assemble(order_id, valid_items, shipping_address: dict, owner, currency: str, calculator: TaxCalculator):
    region = shipping_address["state"]
    tax = calculator.compute_tax(
        TaxableItem(price=item.unit_price, quantity=item.quantity, jurisdiction=region, category=item.category)
        for item in valid_items
    )

    unit_prices = [to_minor_units(item.unit_price) for item in valid_items]
    line_subtotals = [price * item.quantity for price, item in zip(unit_prices, valid_items, strict=True)]
    subtotal = to_minor_units(tax.subtotal)
    tax_total = to_minor_units(tax.tax_amount)

    if tax.is_flat:
        item_taxes = distribute_tax(tax_total, line_subtotals)
    else:
        item_taxes = [to_minor_units(line_tax) for line_tax in tax.line_taxes]

    rates = tax.line_rates or tuple(Decimal("0") for _ in valid_items)
    items = [
        {
            "product_id": item.product_id,
            "name": item.name,
            "category": item.category,
            "quantity": item.quantity,
            "unit_price": unit_price,
            "selected_color": item.selected_color,
            "selected_fragrance": item.selected_fragrance,
            "tax_rate": float(rate),
            "tax_amount": item_tax,
        }
        for item, unit_price, item_tax, rate in zip(valid_items, unit_prices, item_taxes, rates, strict=True)
    ]

    customer_id, guest_contact = _owner(owner)
    return AssembledOrder(
        order_id=str(order_id),
        items=items,
        shipping_address=dict(shipping_address),
        subtotal=subtotal,
        tax_total=tax_total,
        grand_total=subtotal + tax_total,
        currency=currency,
        tax_region=region,
        tax=tax,
        customer_id=customer_id,
        guest_contact=guest_contact,
    )
