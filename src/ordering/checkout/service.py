"""Checkout service: turns a cart into a pending order and a payment session.

Steps, in order:

1. Validate the shipping address and, for guests, the contact details.
2. Collect lines: the account's Active cart, or the items a guest submits.
3. Validate the lines against the live catalogue.
4. Reserve stock with a conditional decrement per line.
5. Price the order and compute tax.
6. Persist the pending order (first commit) and close the account's cart.
7. Ask the payment gateway for a checkout session. No unit of work is open
   while the gateway is called.
8. Attach the session to the order (second commit).

Any failure before the order is persisted puts the reserved stock back.
Once the order exists it is never rolled back: a gateway failure leaves it
``pending`` / ``pending`` and reports its id so payment can be retried.
"""

import re
from dataclasses import dataclass, field, replace
from decimal import Decimal
from uuid import uuid4

import structlog
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.utils.globals import current_domain

from ordering import settings
from ordering.cart.management import ConvertCart
from ordering.cart.session import validate_guest_session
from ordering.catalogue import get_catalogue
from ordering.catalogue.port import ProductCatalogue
from ordering.checkout.assembler import assemble
from ordering.checkout.caller import Authenticated, Guest, GuestContact
from ordering.checkout.lines import INSUFFICIENT_STOCK, CartLine, Rejection
from ordering.checkout.resolver import cart_lines, find_cart
from ordering.checkout.validator import NO_VALID_ITEMS, InventoryValidator, conflict_for
from ordering.errors import GatewayError, InventoryConflict, StateViolation
from ordering.order.order import Order, PaymentStatus, normalize_email, order_number_for
from ordering.order.payment import AttachPaymentSession, ProcessPaymentCallback
from ordering.order.placement import PlaceOrder
from ordering.tax import get_tax_rate_provider
from ordering.tax.calculator import TaxCalculator
from ordering.tax.money import from_minor_units
from ordering.tax.rate import is_valid_region_code, normalize_region_code
from payments.gateway import get_gateway
from payments.gateway.port import PaymentGateway, PaymentGatewayError

logger = structlog.get_logger(__name__)

ADDRESS_FIELDS = ("street", "city", "state", "postal_code", "country")
CONTACT_FIELDS = ("email", "first_name", "last_name")
_EMAIL = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


@dataclass(frozen=True)
class CheckoutResult:
    order_id: str
    order_number: str
    payment_redirect_url: str | None
    subtotal: Decimal
    tax_amount: Decimal
    total_amount: Decimal
    currency: str
    rejected: list[Rejection] = field(default_factory=list)


def validate_shipping_address(address) -> dict:
    """Return a cleaned copy of the address or raise ``ValidationError``."""
    if not isinstance(address, dict):
        raise ValidationError({"shipping_address": ["Shipping address is required"]})

    errors = {}
    cleaned = {}
    for name in ADDRESS_FIELDS:
        value = str(address.get(name) or "").strip()
        if not value:
            errors[name] = ["This field is required"]
        cleaned[name] = value

    if cleaned["state"]:
        cleaned["state"] = normalize_region_code(cleaned["state"])
        if not is_valid_region_code(cleaned["state"]):
            errors["state"] = ["State must be a two-letter region code"]

    if errors:
        raise ValidationError(errors)
    return cleaned


def validate_guest_contact(contact) -> GuestContact:
    """Return the contact with names trimmed and the email trimmed and lower-cased."""
    if contact is None:
        raise ValidationError({"guest_info": ["Guest contact details are required"]})

    errors = {}
    for name in CONTACT_FIELDS:
        if not str(getattr(contact, name, "") or "").strip():
            errors[name] = ["This field is required"]
    email = normalize_email(contact.email)
    if "email" not in errors and not _EMAIL.match(email):
        errors["email"] = ["Enter a valid email address"]
    if errors:
        raise ValidationError(errors)

    return replace(
        contact,
        email=email,
        first_name=contact.first_name.strip(),
        last_name=contact.last_name.strip(),
    )


def lines_from_items(items) -> list[CartLine]:
    """Build lines from items submitted with a guest checkout."""
    if not items:
        raise ValidationError({"items": ["Items are required for guest checkout"]})

    lines = []
    for index, item in enumerate(items):
        product_id = str(item.get("product_id") or "").strip()
        quantity = item.get("quantity")
        if not product_id:
            raise ValidationError({"items": [f"Item {index}: product_id is required"]})
        if not isinstance(quantity, int) or isinstance(quantity, bool) or quantity < 1:
            raise ValidationError({"items": [f"Item {index}: quantity must be a positive integer"]})
        lines.append(
            CartLine(
                product_id=product_id,
                quantity=quantity,
                selected_color=item.get("selected_color") or None,
                selected_fragrance=item.get("selected_fragrance") or None,
            )
        )
    return lines


class CheckoutService:
    def __init__(
        self,
        catalogue: ProductCatalogue | None = None,
        gateway: PaymentGateway | None = None,
        calculator: TaxCalculator | None = None,
    ) -> None:
        self.catalogue = catalogue or get_catalogue()
        self.gateway = gateway or get_gateway()
        self.calculator = calculator or TaxCalculator(get_tax_rate_provider(), settings.tax_category_rates())
        self.validator = InventoryValidator(self.catalogue)

    # -------------------------------------------------------------------
    # Checkout
    # -------------------------------------------------------------------
    def create_order(self, caller, shipping_address, items=None) -> CheckoutResult:
        address = validate_shipping_address(shipping_address)

        cart = None
        match caller:
            case Authenticated():
                cart = find_cart(caller)
                lines = cart_lines(cart)
            case Guest(session_id=session_id, session_issued_at=issued_at, contact=contact):
                validate_guest_session(session_id, issued_at)
                caller = replace(caller, contact=validate_guest_contact(contact))
                lines = lines_from_items(items)
            case _:
                raise TypeError(f"Unsupported caller: {caller!r}")

        if not lines:
            raise ValidationError({"cart": ["Cart is empty"]})

        result = self.validator.validate(lines, caller)
        valid, reserved = self._reserve_stock(result, caller)

        order_id = str(uuid4())
        try:
            assembled = assemble(
                order_id,
                valid,
                address,
                caller,
                settings.store_currency(),
                self.calculator,
            )
            current_domain.process(PlaceOrder(**assembled.place_order_kwargs()), asynchronous=False)
        except Exception:
            self._restore_stock(reserved)
            raise

        logger.info(
            "Checkout created pending order",
            order_id=order_id,
            lines=len(valid),
            rejected=len(result.rejected),
            grand_total=assembled.grand_total,
        )

        if cart is not None:
            self._close_cart(cart, order_id)

        redirect_url = self._open_payment_session(order_id, assembled.grand_total, assembled.currency)

        return CheckoutResult(
            order_id=order_id,
            order_number=order_number_for(order_id),
            payment_redirect_url=redirect_url,
            subtotal=from_minor_units(assembled.subtotal),
            tax_amount=from_minor_units(assembled.tax_total),
            total_amount=from_minor_units(assembled.grand_total),
            currency=assembled.currency,
            rejected=list(result.rejected),
        )

    def retry_payment(self, order_id) -> CheckoutResult:
        """Ask the gateway again for a pending order's session, under the same idempotency key."""
        order = current_domain.repository_for(Order).get(order_id)
        if not order.awaiting_payment:
            raise StateViolation({"status": [f"Order {order_id} is not awaiting payment"]})

        redirect_url = self._open_payment_session(
            str(order.id), order.pricing.grand_total, order.pricing.currency
        )
        return CheckoutResult(
            order_id=str(order.id),
            order_number=order.order_number,
            payment_redirect_url=redirect_url,
            subtotal=from_minor_units(order.pricing.subtotal),
            tax_amount=from_minor_units(order.pricing.tax_total),
            total_amount=from_minor_units(order.pricing.grand_total),
            currency=order.pricing.currency,
        )

    def verify_payment(self, order_id) -> Order:
        """Pull the payment outcome for an order from the provider.

        Covers a lost callback and a create call that timed out after the
        provider opened the session. A missing session reference is attached
        first; the provider's status is then applied like a callback would be.
        """
        order = current_domain.repository_for(Order).get(order_id)
        try:
            session = self.gateway.find_session(f"order-{order.id}")
        except PaymentGatewayError as exc:
            logger.warning("Payment session lookup failed", order_id=str(order.id), error=str(exc))
            raise GatewayError(f"Payment provider unavailable: {exc}", order_id=str(order.id)) from exc

        if session is None:
            raise ObjectNotFoundError({"payment_session": [f"No payment session for order {order.id}"]})
        if order.payment_reference and order.payment_reference != session.provider_reference:
            raise StateViolation({"payment_reference": ["Provider session does not belong to this order"]})

        if not order.payment_reference:
            self._attach_session(str(order.id), session, order.pricing.grand_total, order.pricing.currency)

        if session.status != PaymentStatus.PENDING.value:
            current_domain.process(
                ProcessPaymentCallback(payment_reference=session.provider_reference, status=session.status),
                asynchronous=False,
            )

        logger.info("Verified payment with provider", order_id=str(order.id), provider_status=session.status)
        return current_domain.repository_for(Order).get(order_id)

    # -------------------------------------------------------------------
    # Steps
    # -------------------------------------------------------------------
    def _reserve_stock(self, result, caller):
        valid = []
        reserved = []
        for item in result.valid:
            if self.catalogue.decrement_stock(item.product_id, item.quantity):
                valid.append(item)
                reserved.append((item.product_id, item.quantity))
                continue

            # Stock went below the line quantity after validation
            rejection = Rejection(product_id=item.product_id, reason=INSUFFICIENT_STOCK)
            if isinstance(caller, Guest):
                self._restore_stock(reserved)
                raise conflict_for(rejection)

            logger.info("Dropping checkout line", product_id=item.product_id, reason=INSUFFICIENT_STOCK)
            result.rejected.append(rejection)

        if not valid:
            raise InventoryConflict(NO_VALID_ITEMS, rejected=result.rejected)
        return valid, reserved

    def _restore_stock(self, reserved):
        for product_id, quantity in reserved:
            self.catalogue.restore_stock(product_id, quantity)
        if reserved:
            logger.info("Restored reserved stock", lines=len(reserved))

    def _close_cart(self, cart, order_id):
        try:
            current_domain.process(ConvertCart(cart_id=str(cart.id), order_id=order_id), asynchronous=False)
        except ValidationError:
            # A concurrent checkout already closed this cart
            logger.warning("Cart already closed by another checkout", cart_id=str(cart.id), order_id=order_id)

    def _open_payment_session(self, order_id, amount, currency):
        idempotency_key = f"order-{order_id}"
        try:
            session = self.gateway.create_payment_session(
                amount_minor_units=amount,
                currency=currency,
                order_id=order_id,
                idempotency_key=idempotency_key,
            )
        except PaymentGatewayError as exc:
            logger.warning("Payment session request failed", order_id=order_id, error=str(exc))
            raise GatewayError(f"Payment provider unavailable: {exc}", order_id=order_id) from exc

        self._attach_session(order_id, session, amount, currency)
        return session.redirect_url

    def _attach_session(self, order_id, session, amount, currency):
        current_domain.process(
            AttachPaymentSession(
                order_id=order_id,
                payment_reference=session.provider_reference,
                redirect_url=session.redirect_url,
                amount=amount,
                currency=currency,
            ),
            asynchronous=False,
        )
        logger.info(
            "Attached payment session to order",
            order_id=order_id,
            payment_reference=session.provider_reference,
        )
