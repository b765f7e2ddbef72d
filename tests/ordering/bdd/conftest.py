"""Shared BDD fixtures and step definitions for the Ordering domain."""

import json

import pytest
from ordering.errors import StateViolation
from ordering.order.cancellation import CancelOrder
from ordering.order.fulfillment import MarkProcessing, RecordDelivery, RecordShipment
from ordering.order.order import Order
from ordering.order.payment import AttachPaymentSession, ProcessPaymentCallback
from ordering.order.placement import PlaceOrder
from protean import current_domain
from pytest_bdd import given, parsers, then, when

# Step wording → command class
_ACTIONS = {
    "marked processing": MarkProcessing,
    "shipped": RecordShipment,
    "delivered": RecordDelivery,
    "cancelled": CancelOrder,
}

_PATH_TO_STATUS = {
    "pending": [],
    "processing": ["marked processing"],
    "shipped": ["marked processing", "shipped"],
    "delivered": ["marked processing", "shipped", "delivered"],
    "cancelled": ["cancelled"],
}


@pytest.fixture()
def state():
    """Container for the order under test and what the When steps produced."""
    return {"order_id": None, "result": None, "error": None}


def _place_order(order_id="ord-001"):
    current_domain.process(
        PlaceOrder(
            order_id=order_id,
            customer_id="cust-001",
            items=json.dumps(
                [{"product_id": "prod-001", "name": "Candle", "quantity": 2, "unit_price": 1250, "tax_amount": 200}]
            ),
            shipping_address=json.dumps(
                {"street": "123 Main St", "city": "Springfield", "state": "IL", "postal_code": "62701", "country": "US"}
            ),
            subtotal=2500,
            tax_total=200,
            grand_total=2700,
            currency="USD",
            tax_region="IL",
        ),
        asynchronous=False,
    )
    return order_id


def _run(state, command):
    try:
        state["result"] = current_domain.process(command, asynchronous=False)
    except StateViolation as exc:
        state["error"] = exc


def _order(state):
    return current_domain.repository_for(Order).get(state["order_id"])


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given("a pending order")
def pending_order(state):
    state["order_id"] = _place_order()


@given(parsers.parse('an order that is "{status}"'))
def order_in_status(state, status):
    state["order_id"] = _place_order()
    for action in _PATH_TO_STATUS[status]:
        current_domain.process(_ACTIONS[action](order_id=state["order_id"]), asynchronous=False)


@given(parsers.parse('a pending order with payment session "{reference}"'))
def pending_order_with_session(state, reference):
    state["order_id"] = _place_order()
    current_domain.process(
        AttachPaymentSession(
            order_id=state["order_id"],
            payment_reference=reference,
            redirect_url=f"https://pay.example/{reference}",
            amount=2700,
            currency="USD",
        ),
        asynchronous=False,
    )


# ---------------------------------------------------------------------------
# When steps
# ---------------------------------------------------------------------------
@when(parsers.parse("the order is {action}"))
def order_action(state, action):
    _run(state, _ACTIONS[action](order_id=state["order_id"]))


@when(parsers.parse('the provider reports "{status}" for "{reference}"'))
def provider_reports(state, status, reference):
    _run(state, ProcessPaymentCallback(payment_reference=reference, status=status))


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.parse('the order status is "{status}"'))
def order_status_is(state, status):
    assert _order(state).status == status


@then(parsers.parse('the payment status is "{status}"'))
def payment_status_is(state, status):
    assert _order(state).payment_status == status


@then("the order is awaiting payment")
def order_awaiting_payment(state):
    order = _order(state)
    assert order.status == "pending"
    assert order.payment_status == "pending"


@then("the transition is rejected")
def transition_rejected(state):
    assert isinstance(state["error"], StateViolation)


@then("the last callback was ignored")
def last_callback_ignored(state):
    assert state["error"] is None
    assert state["result"] is False
