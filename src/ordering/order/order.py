"""Order aggregate (CQRS): the immutable record produced by checkout.

An order is created once, fully priced, with status ``pending`` and payment
status ``pending``. After that only the two state machines, the cancellation
details and ``updated_at`` move; items, pricing, owner and address are frozen.
Orders are never deleted.

Fulfillment state machine:
    pending → processing → shipped → delivered
    pending | processing → cancelled
    delivered, cancelled are terminal

Payment state machine (independent of fulfillment):
    pending → succeeded | failed
    succeeded → refunded
"""

import json
from datetime import UTC, datetime
from enum import Enum

from protean import atomic_change, invariant
from protean.exceptions import ValidationError
from protean.fields import (
    DateTime,
    Float,
    HasMany,
    Identifier,
    Integer,
    String,
    ValueObject,
)

from ordering.domain import ordering
from ordering.errors import StateViolation
from ordering.order.events import (
    GuestOrderAssociated,
    OrderCancelled,
    OrderDelivered,
    OrderPaymentFailed,
    OrderPaymentRefunded,
    OrderPaymentSucceeded,
    OrderPlaced,
    OrderProcessing,
    OrderShipped,
    PaymentSessionAttached,
)


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class OrderStatus(Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class PaymentStatus(Enum):
    PENDING = "pending"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    REFUNDED = "refunded"


class CancellationActor(Enum):
    CUSTOMER = "Customer"
    SYSTEM = "System"
    ADMIN = "Admin"


# State machine transition maps
_VALID_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.PROCESSING, OrderStatus.CANCELLED},
    OrderStatus.PROCESSING: {OrderStatus.SHIPPED, OrderStatus.CANCELLED},
    OrderStatus.SHIPPED: {OrderStatus.DELIVERED},
    OrderStatus.DELIVERED: set(),  # Terminal
    OrderStatus.CANCELLED: set(),  # Terminal
}

_VALID_PAYMENT_TRANSITIONS = {
    PaymentStatus.PENDING: {PaymentStatus.SUCCEEDED, PaymentStatus.FAILED},
    PaymentStatus.SUCCEEDED: {PaymentStatus.REFUNDED},
    PaymentStatus.FAILED: set(),
    PaymentStatus.REFUNDED: set(),
}


def _payment_successors(status):
    """Every payment status reachable from ``status``."""
    reached = set()
    pending = [status]
    while pending:
        for nxt in _VALID_PAYMENT_TRANSITIONS[pending.pop()]:
            if nxt not in reached:
                reached.add(nxt)
                pending.append(nxt)
    return reached


def normalize_email(email) -> str:
    return str(email or "").strip().lower()


def order_number_for(order_id) -> str:
    """Customer-facing order number: ``ORD-`` plus the id's last 8 hex digits."""
    return "ORD-" + str(order_id).replace("-", "")[-8:].upper()


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@ordering.value_object(part_of="Order")
class ShippingAddress:
    """The delivery address captured at checkout time.

    ``state`` is the two-letter region code that selects the tax rate.
    """

    street = String(required=True, max_length=255)
    city = String(required=True, max_length=100)
    state = String(required=True, max_length=2)
    postal_code = String(required=True, max_length=20)
    country = String(required=True, max_length=100)


@ordering.value_object(part_of="Order")
class ContactDetails:
    """Contact details of a guest who checked out without an account."""

    email = String(required=True, max_length=254)
    first_name = String(required=True, max_length=100)
    last_name = String(required=True, max_length=100)
    phone = String(max_length=30)


@ordering.value_object(part_of="Order")
class OrderPricing:
    """Financial summary of an order in integer minor units.

    Prices are locked at checkout and never change, even if catalogue prices
    or tax rates change later.
    """

    subtotal = Integer(default=0)
    tax_total = Integer(default=0)
    grand_total = Integer(default=0)
    currency = String(max_length=3, default="USD")


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@ordering.entity(part_of="Order")
class OrderItem:
    """A line frozen at order time with the live catalogue price and its share of tax."""

    product_id = Identifier(required=True)
    name = String(required=True, max_length=255)
    category = String(max_length=100)
    quantity = Integer(required=True, min_value=1)
    unit_price = Integer(required=True, min_value=0)
    selected_color = String(max_length=50)
    selected_fragrance = String(max_length=50)
    tax_rate = Float(default=0.0)
    tax_amount = Integer(default=0)

    @property
    def line_subtotal(self):
        return self.unit_price * self.quantity


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@ordering.aggregate
class Order:
    customer_id = Identifier()
    guest_contact = ValueObject(ContactDetails)
    items = HasMany(OrderItem)
    pricing = ValueObject(OrderPricing)
    tax_region = String(max_length=2)
    shipping_address = ValueObject(ShippingAddress)
    status = String(choices=OrderStatus, default=OrderStatus.PENDING.value)
    payment_reference = String(max_length=255)
    payment_status = String(choices=PaymentStatus, default=PaymentStatus.PENDING.value)
    payment_amount = Integer()
    payment_currency = String(max_length=3)
    payment_redirect_url = String(max_length=1000)
    idempotency_key = String(max_length=255)
    order_number = String(max_length=20)
    cancellation_reason = String(max_length=500)
    cancelled_by = String(max_length=50)
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def order_must_have_exactly_one_owner(self):
        if bool(self.customer_id) == bool(self.guest_contact):
            raise ValidationError({"owner": ["An order belongs to either a customer or a guest contact"]})

    @invariant.post
    def totals_must_match_items(self):
        if not self.pricing or not self.items:
            return
        subtotal = sum(item.line_subtotal for item in self.items)
        if self.pricing.subtotal != subtotal:
            raise ValidationError({"pricing": ["Subtotal does not match the order items"]})
        if self.pricing.grand_total != self.pricing.subtotal + self.pricing.tax_total:
            raise ValidationError({"pricing": ["Grand total must equal subtotal plus tax"]})

    # -------------------------------------------------------------------
    # Factory method
    # -------------------------------------------------------------------
    @classmethod
    def place(
        cls,
        order_id,
        items_data,
        shipping_address,
        pricing,
        customer_id=None,
        guest_contact=None,
        tax_region=None,
        idempotency_key=None,
    ):
        """Create a pending order from assembled checkout data.

        Args:
            order_id: Identity generated by the checkout pipeline.
            items_data: List of dicts matching the OrderItem fields.
            shipping_address: Dict with street, city, state, postal_code, country.
            pricing: Dict with subtotal, tax_total, grand_total, currency.
            customer_id: The account placing the order, if any.
            guest_contact: Dict with email, first_name, last_name, phone for guests.
        """
        if not items_data:
            raise ValidationError({"items": ["An order needs at least one item"]})

        if guest_contact:
            # Guest orders are matched to accounts by email
            guest_contact = {**guest_contact, "email": normalize_email(guest_contact.get("email"))}

        now = datetime.now(UTC)
        order = cls(
            id=str(order_id),
            customer_id=customer_id,
            guest_contact=ContactDetails(**guest_contact) if guest_contact else None,
            items=[OrderItem(**item) for item in items_data],
            pricing=OrderPricing(**pricing),
            tax_region=tax_region,
            shipping_address=ShippingAddress(**shipping_address),
            status=OrderStatus.PENDING.value,
            payment_status=PaymentStatus.PENDING.value,
            idempotency_key=idempotency_key,
            order_number=order_number_for(order_id),
            created_at=now,
            updated_at=now,
        )

        order.raise_(
            OrderPlaced(
                order_id=str(order.id),
                order_number=order.order_number,
                customer_id=str(customer_id) if customer_id else None,
                guest_email=order.guest_contact.email if order.guest_contact else None,
                items=json.dumps(
                    [
                        {
                            "product_id": str(item.product_id),
                            "quantity": item.quantity,
                            "unit_price": item.unit_price,
                            "tax_amount": item.tax_amount,
                        }
                        for item in order.items
                    ]
                ),
                subtotal=order.pricing.subtotal,
                tax_total=order.pricing.tax_total,
                grand_total=order.pricing.grand_total,
                currency=order.pricing.currency,
                tax_region=tax_region,
                placed_at=now,
            )
        )
        return order

    # -------------------------------------------------------------------
    # State transition helpers
    # -------------------------------------------------------------------
    def _assert_can_transition(self, target_status):
        """Validate that the current state allows transition to target."""
        current = OrderStatus(self.status)
        if target_status not in _VALID_TRANSITIONS[current]:
            raise StateViolation({"status": [f"Cannot transition from {current.value} to {target_status.value}"]})

    def _assert_can_transition_payment(self, target_status):
        current = PaymentStatus(self.payment_status)
        if target_status not in _VALID_PAYMENT_TRANSITIONS[current]:
            raise StateViolation(
                {"payment_status": [f"Cannot transition payment from {current.value} to {target_status.value}"]}
            )

    @property
    def awaiting_payment(self):
        return (
            OrderStatus(self.status) == OrderStatus.PENDING
            and PaymentStatus(self.payment_status) == PaymentStatus.PENDING
        )

    # -------------------------------------------------------------------
    # Payment
    # -------------------------------------------------------------------
    def attach_payment_session(self, payment_reference, redirect_url, amount, currency):
        """Record the provider's session for this order.

        Re-attaching the same reference is a no-op, which is what a retried
        checkout sees because the gateway returns the original session.
        """
        if self.payment_reference == payment_reference:
            return False
        if self.payment_reference:
            raise StateViolation({"payment_reference": ["Order already has a different payment session"]})
        if not self.awaiting_payment:
            raise StateViolation({"status": ["Payment sessions can only be attached to orders awaiting payment"]})
        if amount != self.pricing.grand_total:
            raise ValidationError({"amount": ["Payment amount does not match the order total"]})

        self.payment_reference = payment_reference
        self.payment_redirect_url = redirect_url
        self.payment_amount = amount
        self.payment_currency = currency
        self.updated_at = datetime.now(UTC)

        self.raise_(
            PaymentSessionAttached(
                order_id=str(self.id),
                payment_reference=payment_reference,
                amount=amount,
                currency=currency,
            )
        )
        return True

    def record_payment_status(self, target):
        """Move the payment state machine.

        Returns False when the order is already in ``target`` or has moved
        past it, e.g. a ``succeeded`` callback redelivered after a refund.
        """
        target_status = PaymentStatus(target)
        current = PaymentStatus(self.payment_status)
        if current == target_status or current in _payment_successors(target_status):
            return False

        self._assert_can_transition_payment(target_status)
        now = datetime.now(UTC)
        self.payment_status = target_status.value
        self.updated_at = now

        if target_status == PaymentStatus.SUCCEEDED:
            event = OrderPaymentSucceeded(
                order_id=str(self.id),
                payment_reference=self.payment_reference,
                amount=self.payment_amount,
                recorded_at=now,
            )
        elif target_status == PaymentStatus.FAILED:
            event = OrderPaymentFailed(
                order_id=str(self.id),
                payment_reference=self.payment_reference,
                recorded_at=now,
            )
        else:
            event = OrderPaymentRefunded(
                order_id=str(self.id),
                payment_reference=self.payment_reference,
                amount=self.payment_amount,
                recorded_at=now,
            )
        self.raise_(event)
        return True

    # -------------------------------------------------------------------
    # Fulfillment
    # -------------------------------------------------------------------
    def mark_processing(self):
        """Mark order as being processed (fulfillment started)."""
        self._assert_can_transition(OrderStatus.PROCESSING)
        now = datetime.now(UTC)
        self.status = OrderStatus.PROCESSING.value
        self.updated_at = now
        self.raise_(OrderProcessing(order_id=str(self.id), started_at=now))

    def record_shipment(self):
        self._assert_can_transition(OrderStatus.SHIPPED)
        now = datetime.now(UTC)
        self.status = OrderStatus.SHIPPED.value
        self.updated_at = now
        self.raise_(OrderShipped(order_id=str(self.id), shipped_at=now))

    def record_delivery(self):
        self._assert_can_transition(OrderStatus.DELIVERED)
        now = datetime.now(UTC)
        self.status = OrderStatus.DELIVERED.value
        self.updated_at = now
        self.raise_(OrderDelivered(order_id=str(self.id), delivered_at=now))

    # -------------------------------------------------------------------
    # Guest association
    # -------------------------------------------------------------------
    def associate_with_customer(self, customer_id):
        """Hand a guest order over to the account registered with its email.

        The guest contact is dropped; the order belongs to the account from
        now on.
        """
        if self.customer_id or not self.guest_contact:
            raise StateViolation({"customer_id": ["Only guest orders can be associated with an account"]})

        guest_email = self.guest_contact.email
        now = datetime.now(UTC)
        with atomic_change(self):
            self.customer_id = str(customer_id)
            self.guest_contact = None
            self.updated_at = now

        self.raise_(
            GuestOrderAssociated(
                order_id=str(self.id),
                customer_id=str(customer_id),
                guest_email=guest_email,
                associated_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Cancellation
    # -------------------------------------------------------------------
    def cancel(self, reason=None, cancelled_by=CancellationActor.CUSTOMER.value):
        """Cancel a pending or processing order."""
        self._assert_can_transition(OrderStatus.CANCELLED)
        try:
            actor = CancellationActor(cancelled_by)
        except ValueError as exc:
            raise ValidationError({"cancelled_by": [f"Unknown actor: {cancelled_by}"]}) from exc
        now = datetime.now(UTC)
        self.status = OrderStatus.CANCELLED.value
        self.cancellation_reason = reason
        self.cancelled_by = actor.value
        self.updated_at = now

        self.raise_(
            OrderCancelled(
                order_id=str(self.id),
                reason=reason,
                cancelled_by=actor.value,
                cancelled_at=now,
            )
        )


@ordering.repository(part_of=Order)
class OrderRepository:
    def find_by_payment_reference(self, payment_reference):
        results = self._dao.query.filter(payment_reference=payment_reference).all().items
        return results[0] if results else None

    def find_by_customer(self, customer_id):
        """Orders of a customer, newest first."""
        results = self._dao.query.filter(customer_id=str(customer_id)).all().items
        return sorted(results, key=lambda order: order.created_at, reverse=True)

    def find_by_guest_email(self, email):
        """Guest orders placed with ``email`` that no account has claimed yet, newest first."""
        results = self._dao.query.filter(guest_contact_email=normalize_email(email)).all().items
        return sorted(results, key=lambda order: order.created_at, reverse=True)
