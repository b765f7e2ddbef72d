"""Order fulfillment: commands and handler.

Moves an order through processing, shipment and delivery. Illegal moves are
logged and the order is left as it was.
"""

import structlog
from protean import handle
from protean.fields import Identifier
from protean.utils.globals import current_domain

from ordering.domain import ordering
from ordering.errors import StateViolation
from ordering.order.order import Order

logger = structlog.get_logger(__name__)


@ordering.command(part_of="Order")
class MarkProcessing:
    """Signal that the warehouse has started picking and packing."""

    order_id = Identifier(required=True)


@ordering.command(part_of="Order")
class RecordShipment:
    order_id = Identifier(required=True)


@ordering.command(part_of="Order")
class RecordDelivery:
    """Record that the carrier has confirmed delivery to the customer."""

    order_id = Identifier(required=True)


@ordering.command_handler(part_of=Order)
class RecordFulfillmentHandler:
    def _transition(self, order_id, action):
        repo = current_domain.repository_for(Order)
        order = repo.get(order_id)
        previous = order.status
        try:
            getattr(order, action)()
        except StateViolation:
            logger.warning("Rejected order status transition", order_id=str(order_id), status=previous, action=action)
            raise
        repo.add(order)
        logger.info("Order status changed", order_id=str(order_id), previous=previous, status=order.status)

    @handle(MarkProcessing)
    def mark_processing(self, command):
        self._transition(command.order_id, "mark_processing")

    @handle(RecordShipment)
    def record_shipment(self, command):
        self._transition(command.order_id, "record_shipment")

    @handle(RecordDelivery)
    def record_delivery(self, command):
        self._transition(command.order_id, "record_delivery")
