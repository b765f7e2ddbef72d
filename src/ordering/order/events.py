"""Domain events for the Order aggregate.

Amounts are integer minor units in the order's currency.
"""

from protean.fields import DateTime, Identifier, Integer, String, Text

from ordering.domain import ordering


@ordering.event(part_of="Order")
class OrderPlaced:
    """A priced, tax-computed order was persisted and awaits payment."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True, max_length=20)
    customer_id = Identifier()
    guest_email = String(max_length=254)
    items = Text(required=True)  # JSON: list of {product_id, quantity, unit_price, tax_amount}
    subtotal = Integer(required=True)
    tax_total = Integer(required=True)
    grand_total = Integer(required=True)
    currency = String(required=True, max_length=3)
    tax_region = String(max_length=2)
    placed_at = DateTime(required=True)


@ordering.event(part_of="Order")
class PaymentSessionAttached:
    """The payment provider opened a checkout session for the order."""

    __version__ = 1

    order_id = Identifier(required=True)
    payment_reference = String(required=True, max_length=255)
    amount = Integer(required=True)
    currency = String(required=True, max_length=3)


@ordering.event(part_of="Order")
class OrderPaymentSucceeded:
    __version__ = 1

    order_id = Identifier(required=True)
    payment_reference = String(max_length=255)
    amount = Integer()
    recorded_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderPaymentFailed:
    __version__ = 1

    order_id = Identifier(required=True)
    payment_reference = String(max_length=255)
    recorded_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderPaymentRefunded:
    __version__ = 1

    order_id = Identifier(required=True)
    payment_reference = String(max_length=255)
    amount = Integer()
    recorded_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderProcessing:
    """Fulfillment started on the order."""

    __version__ = 1

    order_id = Identifier(required=True)
    started_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderShipped:
    __version__ = 1

    order_id = Identifier(required=True)
    shipped_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderDelivered:
    __version__ = 1

    order_id = Identifier(required=True)
    delivered_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderCancelled:
    """The order was cancelled before shipping."""

    __version__ = 1

    order_id = Identifier(required=True)
    reason = String(max_length=500)
    cancelled_by = String(required=True, max_length=50)
    cancelled_at = DateTime(required=True)


@ordering.event(part_of="Order")
class GuestOrderAssociated:
    """A guest order was linked to the account registered with its email."""

    __version__ = 1

    order_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    guest_email = String(required=True, max_length=254)
    associated_at = DateTime(required=True)
