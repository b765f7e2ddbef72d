"""Order cancellation: command and handler."""

import structlog
from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from ordering.domain import ordering
from ordering.errors import StateViolation
from ordering.order.order import CancellationActor, Order

logger = structlog.get_logger(__name__)


@ordering.command(part_of="Order")
class CancelOrder:
    order_id = Identifier(required=True)
    reason = String(max_length=500)
    cancelled_by = String(max_length=50, default=CancellationActor.CUSTOMER.value)


@ordering.command_handler(part_of=Order)
class CancelOrderHandler:
    @handle(CancelOrder)
    def cancel_order(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        try:
            order.cancel(
                reason=command.reason,
                cancelled_by=command.cancelled_by or CancellationActor.CUSTOMER.value,
            )
        except StateViolation:
            logger.warning("Rejected order cancellation", order_id=str(command.order_id), status=order.status)
            raise
        repo.add(order)
        logger.info("Order cancelled", order_id=str(command.order_id), cancelled_by=order.cancelled_by)
