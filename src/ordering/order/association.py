"""Guest order association: command and handler.

When a shopper signs up or signs in with the email they used as a guest,
their earlier guest orders move to the account.
"""

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from ordering.domain import ordering
from ordering.order.order import Order, normalize_email

logger = structlog.get_logger(__name__)


@ordering.command(part_of="Order")
class AssociateGuestOrders:
    customer_id = Identifier(required=True)
    email = String(required=True, max_length=254)


@ordering.command_handler(part_of=Order)
class AssociateGuestOrdersHandler:
    @handle(AssociateGuestOrders)
    def associate_guest_orders(self, command):
        """Returns the number of orders moved to the account."""
        email = normalize_email(command.email)
        if not email:
            raise ValidationError({"email": ["Email is required"]})

        repo = current_domain.repository_for(Order)
        orders = repo.find_by_guest_email(email)
        for order in orders:
            order.associate_with_customer(command.customer_id)
            repo.add(order)

        if orders:
            logger.info(
                "Associated guest orders with account",
                customer_id=str(command.customer_id),
                count=len(orders),
            )
        return len(orders)
