"""Application tests for order placement, payment callbacks and lifecycle commands."""

import json

import pytest
from ordering.errors import StateViolation
from ordering.order.association import AssociateGuestOrders
from ordering.order.cancellation import CancelOrder
from ordering.order.fulfillment import MarkProcessing, RecordDelivery, RecordShipment
from ordering.order.order import Order, OrderStatus, PaymentStatus
from ordering.order.payment import AttachPaymentSession, ProcessPaymentCallback
from ordering.order.placement import PlaceOrder
from protean import current_domain
from protean.exceptions import ObjectNotFoundError, ValidationError

ORDER_ID = "9b2f6c1e-3d4a-4b5c-8d7e-0f1a2b3c4d5e"


def _place_order(order_id=ORDER_ID, customer_id="cust-001"):
    return current_domain.process(
        PlaceOrder(
            order_id=order_id,
            customer_id=customer_id,
            items=json.dumps(
                [{"product_id": "prod-001", "name": "Candle", "quantity": 2, "unit_price": 1250, "tax_amount": 200}]
            ),
            shipping_address=json.dumps(
                {"street": "1 Main St", "city": "LA", "state": "CA", "postal_code": "90001", "country": "US"}
            ),
            subtotal=2500,
            tax_total=200,
            grand_total=2700,
            currency="USD",
            tax_region="CA",
            idempotency_key=f"order-{order_id}",
        ),
        asynchronous=False,
    )


def _attach(order_id=ORDER_ID, reference="cs_1"):
    return current_domain.process(
        AttachPaymentSession(
            order_id=order_id,
            payment_reference=reference,
            redirect_url=f"https://pay.example/{reference}",
            amount=2700,
            currency="USD",
        ),
        asynchronous=False,
    )


def _callback(status, reference="cs_1"):
    return current_domain.process(
        ProcessPaymentCallback(payment_reference=reference, status=status), asynchronous=False
    )


def _order(order_id=ORDER_ID):
    return current_domain.repository_for(Order).get(order_id)


class TestPlaceOrder:
    def test_persists_pending_order(self):
        order_id = _place_order()

        order = _order(order_id)
        assert order.status == OrderStatus.PENDING.value
        assert order.payment_status == PaymentStatus.PENDING.value
        assert order.pricing.grand_total == 2700
        assert order.items[0].tax_amount == 200
        assert order.idempotency_key == f"order-{ORDER_ID}"

    def test_guest_order(self):
        current_domain.process(
            PlaceOrder(
                order_id=ORDER_ID,
                guest_contact=json.dumps({"email": "g@example.com", "first_name": "G", "last_name": "Guest"}),
                items=json.dumps([{"product_id": "prod-001", "name": "Candle", "quantity": 1, "unit_price": 1000}]),
                shipping_address=json.dumps(
                    {"street": "1 St", "city": "NYC", "state": "NY", "postal_code": "10001", "country": "US"}
                ),
                subtotal=1000,
                tax_total=40,
                grand_total=1040,
            ),
            asynchronous=False,
        )
        assert _order().guest_contact.email == "g@example.com"

    def test_orders_by_customer_newest_first(self):
        _place_order(order_id="order-001")
        _place_order(order_id="order-002")
        _place_order(order_id="order-003", customer_id="cust-002")

        orders = current_domain.repository_for(Order).find_by_customer("cust-001")
        assert [str(o.id) for o in orders] == ["order-002", "order-001"]


class TestPaymentCallbacks:
    def test_attach_then_succeed(self):
        _place_order()
        assert _attach() is True

        assert _callback("succeeded") is True

        order = _order()
        assert order.payment_reference == "cs_1"
        assert order.payment_status == PaymentStatus.SUCCEEDED.value

    def test_reattaching_same_session_is_a_no_op(self):
        _place_order()
        _attach()
        assert _attach() is False

    def test_second_session_is_rejected(self):
        _place_order()
        _attach()
        with pytest.raises(StateViolation):
            _attach(reference="cs_2")
        assert _order().payment_reference == "cs_1"

    def test_duplicate_callback_is_ignored(self):
        _place_order()
        _attach()
        _callback("succeeded")

        assert _callback("succeeded") is False
        assert _order().payment_status == PaymentStatus.SUCCEEDED.value

    def test_unknown_reference(self):
        with pytest.raises(ObjectNotFoundError):
            _callback("succeeded", reference="cs_unknown")

    def test_unsupported_status(self):
        _place_order()
        _attach()
        with pytest.raises(ValidationError):
            _callback("pending")

    def test_illegal_transition_leaves_order_unchanged(self):
        _place_order()
        _attach()
        _callback("failed")

        with pytest.raises(StateViolation):
            _callback("succeeded")
        assert _order().payment_status == PaymentStatus.FAILED.value

    def test_refund(self):
        _place_order()
        _attach()
        _callback("succeeded")
        _callback("refunded")

        assert _order().payment_status == PaymentStatus.REFUNDED.value


class TestLifecycleCommands:
    def test_full_fulfillment(self):
        _place_order()
        current_domain.process(MarkProcessing(order_id=ORDER_ID), asynchronous=False)
        current_domain.process(RecordShipment(order_id=ORDER_ID), asynchronous=False)
        current_domain.process(RecordDelivery(order_id=ORDER_ID), asynchronous=False)

        assert _order().status == OrderStatus.DELIVERED.value

    def test_illegal_transition_leaves_order_unchanged(self):
        _place_order()
        with pytest.raises(StateViolation):
            current_domain.process(RecordDelivery(order_id=ORDER_ID), asynchronous=False)
        assert _order().status == OrderStatus.PENDING.value

    def test_cancel(self):
        _place_order()
        current_domain.process(CancelOrder(order_id=ORDER_ID, reason="Ordered twice"), asynchronous=False)

        order = _order()
        assert order.status == OrderStatus.CANCELLED.value
        assert order.cancellation_reason == "Ordered twice"
        assert order.cancelled_by == "Customer"

    def test_cannot_cancel_shipped_order(self):
        _place_order()
        current_domain.process(MarkProcessing(order_id=ORDER_ID), asynchronous=False)
        current_domain.process(RecordShipment(order_id=ORDER_ID), asynchronous=False)

        with pytest.raises(StateViolation):
            current_domain.process(CancelOrder(order_id=ORDER_ID), asynchronous=False)
        assert _order().status == OrderStatus.SHIPPED.value

    def test_unknown_order(self):
        with pytest.raises(ObjectNotFoundError):
            current_domain.process(MarkProcessing(order_id="missing"), asynchronous=False)


def _place_guest_order(order_id, email):
    current_domain.process(
        PlaceOrder(
            order_id=order_id,
            guest_contact=json.dumps({"email": email, "first_name": "Gina", "last_name": "Guest"}),
            items=json.dumps([{"product_id": "prod-001", "name": "Candle", "quantity": 1, "unit_price": 1000}]),
            shipping_address=json.dumps(
                {"street": "1 St", "city": "NYC", "state": "NY", "postal_code": "10001", "country": "US"}
            ),
            subtotal=1000,
            tax_total=0,
            grand_total=1000,
        ),
        asynchronous=False,
    )


class TestGuestOrderAssociation:
    def test_guest_email_is_stored_normalized(self):
        _place_guest_order("guest-001", "  Gina@Example.COM ")
        assert _order("guest-001").guest_contact.email == "gina@example.com"

    def test_find_by_guest_email(self):
        _place_guest_order("guest-001", "gina@example.com")
        _place_guest_order("guest-002", "other@example.com")

        orders = current_domain.repository_for(Order).find_by_guest_email(" GINA@example.com")
        assert [str(o.id) for o in orders] == ["guest-001"]

    def test_moves_guest_orders_to_account(self):
        _place_guest_order("guest-001", "gina@example.com")
        _place_guest_order("guest-002", "gina@example.com")
        _place_guest_order("guest-003", "other@example.com")

        count = current_domain.process(
            AssociateGuestOrders(customer_id="cust-009", email="Gina@Example.com"), asynchronous=False
        )

        assert count == 2
        claimed = _order("guest-001")
        assert str(claimed.customer_id) == "cust-009"
        assert claimed.guest_contact is None
        assert _order("guest-003").guest_contact.email == "other@example.com"
        orders = current_domain.repository_for(Order).find_by_customer("cust-009")
        assert {str(o.id) for o in orders} == {"guest-001", "guest-002"}

    def test_second_association_finds_nothing(self):
        _place_guest_order("guest-001", "gina@example.com")
        command = AssociateGuestOrders(customer_id="cust-009", email="gina@example.com")
        current_domain.process(command, asynchronous=False)

        assert current_domain.process(command, asynchronous=False) == 0

    def test_account_orders_are_left_alone(self):
        _place_order()
        count = current_domain.process(
            AssociateGuestOrders(customer_id="cust-009", email="gina@example.com"), asynchronous=False
        )

        assert count == 0
        assert str(_order().customer_id) == "cust-001"

    def test_blank_email(self):
        with pytest.raises(ValidationError):
            current_domain.process(AssociateGuestOrders(customer_id="cust-009", email="   "), asynchronous=False)
