"""Order payment: commands and handler.

Attaches the provider's checkout session to a pending order and applies the
provider's status callbacks. Callbacks are looked up by provider reference
and are idempotent: one that repeats the current payment status changes
nothing.
"""

import structlog
from protean import handle
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.fields import Identifier, Integer, String
from protean.utils.globals import current_domain

from ordering.domain import ordering
from ordering.errors import StateViolation
from ordering.order.order import Order, PaymentStatus

logger = structlog.get_logger(__name__)

_CALLBACK_STATUSES = {status.value for status in PaymentStatus} - {PaymentStatus.PENDING.value}


@ordering.command(part_of="Order")
class AttachPaymentSession:
    order_id = Identifier(required=True)
    payment_reference = String(required=True, max_length=255)
    redirect_url = String(max_length=1000)
    amount = Integer(required=True)
    currency = String(required=True, max_length=3)


@ordering.command(part_of="Order")
class ProcessPaymentCallback:
    payment_reference = String(required=True, max_length=255)
    status = String(required=True, max_length=20)  # succeeded | failed | refunded


@ordering.command_handler(part_of=Order)
class OrderPaymentHandler:
    @handle(AttachPaymentSession)
    def attach_payment_session(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        try:
            attached = order.attach_payment_session(
                payment_reference=command.payment_reference,
                redirect_url=command.redirect_url,
                amount=command.amount,
                currency=command.currency,
            )
        except StateViolation:
            logger.warning(
                "Rejected payment session for order",
                order_id=command.order_id,
                payment_reference=command.payment_reference,
                current_reference=order.payment_reference,
            )
            raise

        if attached:
            repo.add(order)
        return attached

    @handle(ProcessPaymentCallback)
    def process_payment_callback(self, command):
        if command.status not in _CALLBACK_STATUSES:
            raise ValidationError({"status": [f"Unsupported payment status: {command.status}"]})

        repo = current_domain.repository_for(Order)
        order = repo.find_by_payment_reference(command.payment_reference)
        if order is None:
            raise ObjectNotFoundError({"payment_reference": [f"No order for reference {command.payment_reference}"]})

        try:
            changed = order.record_payment_status(command.status)
        except StateViolation:
            logger.warning(
                "Rejected payment status transition",
                order_id=str(order.id),
                payment_status=order.payment_status,
                target=command.status,
            )
            raise

        if not changed:
            logger.info("Ignoring duplicate payment callback", order_id=str(order.id), status=command.status)
            return False

        repo.add(order)
        logger.info("Recorded payment status", order_id=str(order.id), status=command.status)
        return True
