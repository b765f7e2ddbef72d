"""Order placement: command and handler.

The checkout pipeline assembles and prices the order; this command persists
it as a pending order in its own unit of work.
"""

import json

import structlog
from protean import handle
from protean.fields import Identifier, Integer, String, Text
from protean.utils.globals import current_domain

from ordering.domain import ordering
from ordering.order.order import Order

logger = structlog.get_logger(__name__)


def _load(value):
    return json.loads(value) if isinstance(value, str) else value


@ordering.command(part_of="Order")
class PlaceOrder:
    order_id = Identifier(required=True)
    customer_id = Identifier()
    guest_contact = Text()  # JSON: {email, first_name, last_name, phone}
    items = Text(required=True)  # JSON: list of item dicts
    shipping_address = Text(required=True)  # JSON: address dict
    subtotal = Integer(required=True)
    tax_total = Integer(required=True)
    grand_total = Integer(required=True)
    currency = String(max_length=3, default="USD")
    tax_region = String(max_length=2)
    idempotency_key = String(max_length=255)


@ordering.command_handler(part_of=Order)
class PlaceOrderHandler:
    @handle(PlaceOrder)
    def place_order(self, command):
        order = Order.place(
            order_id=command.order_id,
            items_data=_load(command.items),
            shipping_address=_load(command.shipping_address),
            pricing={
                "subtotal": command.subtotal,
                "tax_total": command.tax_total,
                "grand_total": command.grand_total,
                "currency": command.currency or "USD",
            },
            customer_id=command.customer_id,
            guest_contact=_load(command.guest_contact) if command.guest_contact else None,
            tax_region=command.tax_region,
            idempotency_key=command.idempotency_key,
        )
        current_domain.repository_for(Order).add(order)

        logger.info(
            "Order placed",
            order_id=str(order.id),
            order_number=order.order_number,
            grand_total=order.pricing.grand_total,
            currency=order.pricing.currency,
        )
        return str(order.id)
