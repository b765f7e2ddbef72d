"""FastAPI routes for the Ordering domain: checkout, carts, orders and tax rates.

The caller is identified by headers set by the storefront's session layer:
``X-Account-Id`` for signed-in customers, or ``X-Session-Id`` (plus the
optional ``X-Session-Issued-At``) for guests.
"""

from datetime import datetime

from fastapi import APIRouter, Header, HTTPException, Query, Request
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.utils.globals import current_domain

from ordering.api.schemas import (
    AddToCartRequest,
    AssociateGuestOrdersRequest,
    AssociatedOrdersResponse,
    CancelOrderRequest,
    CartItemResponse,
    CartResponse,
    CheckoutRequest,
    CheckoutResponse,
    ConfigureTaxRateRequest,
    MergeCartRequest,
    OrderItemResponse,
    OrderResponse,
    PaymentWebhookRequest,
    RejectionSchema,
    StatusResponse,
    TaxRateIdResponse,
    TaxRateResponse,
    UpdateCartQuantityRequest,
)
from ordering.cart.items import AddToCart, RemoveFromCart, UpdateCartQuantity, find_active_cart
from ordering.cart.management import MergeGuestCart
from ordering.cart.session import validate_guest_session
from ordering.checkout.caller import Authenticated, Guest, GuestContact
from ordering.checkout.service import CheckoutService
from ordering.order.association import AssociateGuestOrders
from ordering.order.cancellation import CancelOrder
from ordering.order.fulfillment import MarkProcessing, RecordDelivery, RecordShipment
from ordering.order.order import Order
from ordering.order.payment import ProcessPaymentCallback
from ordering.tax import get_tax_rate_provider
from ordering.tax.configuration import ConfigureTaxRate
from ordering.tax.money import from_minor_units
from ordering.tax.rate import is_valid_region_code, normalize_region_code
from payments.gateway import get_gateway


def _issued_at(value):
    if not value:
        return None
    try:
        return datetime.fromisoformat(value)
    except ValueError as exc:
        raise ValidationError({"session_issued_at": ["Must be an ISO 8601 timestamp"]}) from exc


def _caller(x_account_id, x_session_id, x_session_issued_at, guest_info=None):
    if x_account_id:
        return Authenticated(account_id=x_account_id)
    if x_session_id:
        contact = GuestContact(**guest_info.model_dump()) if guest_info else None
        return Guest(session_id=x_session_id, contact=contact, session_issued_at=_issued_at(x_session_issued_at))
    raise HTTPException(status_code=401, detail="X-Account-Id or X-Session-Id header is required")


def _cart_owner(x_account_id, x_session_id, x_session_issued_at):
    """Return ``(customer_id, session_id)`` for cart commands."""
    caller = _caller(x_account_id, x_session_id, x_session_issued_at)
    if isinstance(caller, Authenticated):
        return caller.account_id, None
    return None, validate_guest_session(caller.session_id, caller.session_issued_at)


def _cart_response(cart) -> CartResponse:
    if cart is None:
        return CartResponse()
    return CartResponse(
        cart_id=str(cart.id),
        items=[
            CartItemResponse(
                item_id=str(item.id),
                product_id=str(item.product_id),
                quantity=item.quantity,
                selected_color=item.selected_color,
                selected_fragrance=item.selected_fragrance,
                unit_price=from_minor_units(item.unit_price) if item.unit_price is not None else None,
            )
            for item in cart.items
        ],
    )


def _order_response(order) -> OrderResponse:
    return OrderResponse(
        order_id=str(order.id),
        order_number=order.order_number,
        customer_id=str(order.customer_id) if order.customer_id else None,
        guest_email=order.guest_contact.email if order.guest_contact else None,
        status=order.status,
        payment_status=order.payment_status,
        payment_reference=order.payment_reference,
        items=[
            OrderItemResponse(
                product_id=str(item.product_id),
                name=item.name,
                category=item.category,
                quantity=item.quantity,
                unit_price=from_minor_units(item.unit_price),
                selected_color=item.selected_color,
                selected_fragrance=item.selected_fragrance,
                tax_rate=item.tax_rate,
                tax_amount=from_minor_units(item.tax_amount),
            )
            for item in order.items
        ],
        shipping_address=order.shipping_address.to_dict(),
        tax_region=order.tax_region,
        subtotal=from_minor_units(order.pricing.subtotal),
        tax_amount=from_minor_units(order.pricing.tax_total),
        total_amount=from_minor_units(order.pricing.grand_total),
        currency=order.pricing.currency,
        cancellation_reason=order.cancellation_reason,
        cancelled_by=order.cancelled_by,
    )


def _checkout_response(result) -> CheckoutResponse:
    return CheckoutResponse(
        order_id=result.order_id,
        order_number=result.order_number,
        payment_redirect_url=result.payment_redirect_url,
        rejected=[RejectionSchema(product_id=r.product_id, reason=r.reason) for r in result.rejected],
        subtotal=result.subtotal,
        tax_amount=result.tax_amount,
        total_amount=result.total_amount,
        currency=result.currency,
    )


# ---------------------------------------------------------------------------
# Checkout Router
# ---------------------------------------------------------------------------
checkout_router = APIRouter(prefix="/checkout", tags=["checkout"])


@checkout_router.post("/orders", status_code=201, response_model=CheckoutResponse)
async def create_order(
    body: CheckoutRequest,
    x_account_id: str | None = Header(default=None),
    x_session_id: str | None = Header(default=None),
    x_session_issued_at: str | None = Header(default=None),
) -> CheckoutResponse:
    """Turn the caller's cart (or a guest's submitted items) into a pending order."""
    caller = _caller(x_account_id, x_session_id, x_session_issued_at, body.guest_info)
    items = [item.model_dump() for item in body.items] if body.items else None
    result = CheckoutService().create_order(caller, body.shipping_address.model_dump(), items=items)
    return _checkout_response(result)


@checkout_router.post("/orders/{order_id}/retry-payment", response_model=CheckoutResponse)
async def retry_payment(order_id: str) -> CheckoutResponse:
    """Re-open the payment session of an order that is still awaiting payment."""
    result = CheckoutService().retry_payment(order_id)
    return _checkout_response(result)


@checkout_router.post("/orders/{order_id}/verify", response_model=OrderResponse)
async def verify_payment(order_id: str) -> OrderResponse:
    """Reconcile the order with the payment provider's view of its session."""
    return _order_response(CheckoutService().verify_payment(order_id))


@checkout_router.post("/webhook", response_model=StatusResponse)
async def payment_webhook(
    request: Request,
    body: PaymentWebhookRequest,
    x_gateway_signature: str = Header(default=""),
) -> StatusResponse:
    """Apply a payment status callback from the provider.

    The signature covers the raw request body exactly as the provider sent it.
    """
    payload = (await request.body()).decode("utf-8")
    if not get_gateway().verify_webhook_signature(payload, x_gateway_signature):
        raise HTTPException(status_code=401, detail="Invalid webhook signature")

    command = ProcessPaymentCallback(
        payment_reference=body.provider_reference,
        status=body.status,
    )
    changed = current_domain.process(command, asynchronous=False)
    return StatusResponse(status="processed" if changed else "ignored")


@checkout_router.get("/tax", response_model=TaxRateResponse)
async def tax_rate(region: str = Query(...)) -> TaxRateResponse:
    """Public lookup of the rate that checkout would apply for a region."""
    region_code = normalize_region_code(region)
    if not is_valid_region_code(region_code):
        raise ValidationError({"region": ["Region must be a two-letter code"]})
    rate = get_tax_rate_provider().rate_for(region_code)
    return TaxRateResponse(region=region_code, rate=rate or 0)


# ---------------------------------------------------------------------------
# Cart Router
# ---------------------------------------------------------------------------
cart_router = APIRouter(prefix="/carts", tags=["carts"])


@cart_router.get("/me", response_model=CartResponse)
async def get_cart(
    x_account_id: str | None = Header(default=None),
    x_session_id: str | None = Header(default=None),
    x_session_issued_at: str | None = Header(default=None),
) -> CartResponse:
    customer_id, session_id = _cart_owner(x_account_id, x_session_id, x_session_issued_at)
    return _cart_response(find_active_cart(customer_id, session_id))


@cart_router.post("/me/items", status_code=201, response_model=CartResponse)
async def add_cart_item(
    body: AddToCartRequest,
    x_account_id: str | None = Header(default=None),
    x_session_id: str | None = Header(default=None),
    x_session_issued_at: str | None = Header(default=None),
) -> CartResponse:
    customer_id, session_id = _cart_owner(x_account_id, x_session_id, x_session_issued_at)
    command = AddToCart(
        customer_id=customer_id,
        session_id=session_id,
        product_id=body.product_id,
        quantity=body.quantity,
        selected_color=body.selected_color,
        selected_fragrance=body.selected_fragrance,
    )
    current_domain.process(command, asynchronous=False)
    return _cart_response(find_active_cart(customer_id, session_id))


def _require_cart(customer_id, session_id):
    cart = find_active_cart(customer_id, session_id)
    if cart is None:
        raise ObjectNotFoundError({"cart": ["No active cart"]})
    return cart


@cart_router.put("/me/items/{item_id}", response_model=CartResponse)
async def update_cart_item(
    item_id: str,
    body: UpdateCartQuantityRequest,
    x_account_id: str | None = Header(default=None),
    x_session_id: str | None = Header(default=None),
    x_session_issued_at: str | None = Header(default=None),
) -> CartResponse:
    customer_id, session_id = _cart_owner(x_account_id, x_session_id, x_session_issued_at)
    cart = _require_cart(customer_id, session_id)
    command = UpdateCartQuantity(cart_id=str(cart.id), item_id=item_id, new_quantity=body.quantity)
    current_domain.process(command, asynchronous=False)
    return _cart_response(find_active_cart(customer_id, session_id))


@cart_router.delete("/me/items/{item_id}", response_model=CartResponse)
async def remove_cart_item(
    item_id: str,
    x_account_id: str | None = Header(default=None),
    x_session_id: str | None = Header(default=None),
    x_session_issued_at: str | None = Header(default=None),
) -> CartResponse:
    customer_id, session_id = _cart_owner(x_account_id, x_session_id, x_session_issued_at)
    cart = _require_cart(customer_id, session_id)
    current_domain.process(RemoveFromCart(cart_id=str(cart.id), item_id=item_id), asynchronous=False)
    return _cart_response(find_active_cart(customer_id, session_id))


@cart_router.post("/me/merge", response_model=CartResponse)
async def merge_guest_cart(
    body: MergeCartRequest,
    x_account_id: str | None = Header(default=None),
) -> CartResponse:
    """Fold the guest session's cart into the signed-in customer's cart."""
    if not x_account_id:
        raise HTTPException(status_code=401, detail="X-Account-Id header is required")

    session_id = validate_guest_session(body.session_id)
    current_domain.process(MergeGuestCart(customer_id=x_account_id, session_id=session_id), asynchronous=False)
    return _cart_response(find_active_cart(x_account_id, None))


# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


@order_router.get("", response_model=list[OrderResponse])
async def list_orders(customer_id: str = Query(...), email: str | None = Query(default=None)) -> list[OrderResponse]:
    """Orders of a customer, plus unclaimed guest orders placed with ``email``."""
    repo = current_domain.repository_for(Order)
    orders = repo.find_by_customer(customer_id)
    if email:
        orders = sorted(orders + repo.find_by_guest_email(email), key=lambda order: order.created_at, reverse=True)
    return [_order_response(order) for order in orders]


@order_router.post("/associate-guest", response_model=AssociatedOrdersResponse)
async def associate_guest_orders(
    body: AssociateGuestOrdersRequest,
    x_account_id: str | None = Header(default=None),
) -> AssociatedOrdersResponse:
    """Move guest orders placed with the account's email onto the account."""
    if not x_account_id:
        raise HTTPException(status_code=401, detail="X-Account-Id header is required")

    count = current_domain.process(
        AssociateGuestOrders(customer_id=x_account_id, email=body.email),
        asynchronous=False,
    )
    return AssociatedOrdersResponse(associated=count)


@order_router.get("/{order_id}", response_model=OrderResponse)
async def get_order(order_id: str) -> OrderResponse:
    return _order_response(current_domain.repository_for(Order).get(order_id))


@order_router.put("/{order_id}/processing", response_model=StatusResponse)
async def mark_processing(order_id: str) -> StatusResponse:
    current_domain.process(MarkProcessing(order_id=order_id), asynchronous=False)
    return StatusResponse()


@order_router.put("/{order_id}/ship", response_model=StatusResponse)
async def ship_order(order_id: str) -> StatusResponse:
    current_domain.process(RecordShipment(order_id=order_id), asynchronous=False)
    return StatusResponse()


@order_router.put("/{order_id}/deliver", response_model=StatusResponse)
async def deliver_order(order_id: str) -> StatusResponse:
    current_domain.process(RecordDelivery(order_id=order_id), asynchronous=False)
    return StatusResponse()


@order_router.put("/{order_id}/cancel", response_model=StatusResponse)
async def cancel_order(order_id: str, body: CancelOrderRequest) -> StatusResponse:
    command = CancelOrder(
        order_id=order_id,
        reason=body.reason,
        cancelled_by=body.cancelled_by,
    )
    current_domain.process(command, asynchronous=False)
    return StatusResponse()


# ---------------------------------------------------------------------------
# Tax Rate Router
# ---------------------------------------------------------------------------
tax_rate_router = APIRouter(prefix="/tax-rates", tags=["tax"])


@tax_rate_router.put("/{region_code}", response_model=TaxRateIdResponse)
async def configure_tax_rate(region_code: str, body: ConfigureTaxRateRequest) -> TaxRateIdResponse:
    """Create or update the rate for a region."""
    command = ConfigureTaxRate(
        region_code=normalize_region_code(region_code),
        rate=body.rate,
        enabled=body.enabled,
        region_name=body.region_name,
        notes=body.notes,
    )
    result = current_domain.process(command, asynchronous=False)
    return TaxRateIdResponse(tax_rate_id=result)
