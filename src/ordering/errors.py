"""Checkout error taxonomy.

Input problems are reported with Protean's ``ValidationError`` so they look
the same as field validation failures raised by aggregates and commands.
Everything else that can stop a checkout derives from ``CheckoutError``;
``retryable`` tells the caller whether trying again may succeed.
"""

from protean.exceptions import ValidationError


class CheckoutError(Exception):
    """Base class for failures of the checkout pipeline."""

    retryable = False

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InventoryConflict(CheckoutError):
    """One or more cart lines cannot be fulfilled from current stock."""

    def __init__(self, message: str, rejected=None) -> None:
        super().__init__(message)
        self.rejected = list(rejected or [])


class TaxUnavailable(CheckoutError):
    """The tax rate table could not be read."""

    retryable = True


class GatewayError(CheckoutError):
    """The payment provider was unreachable or rejected the session request.

    ``order_id`` is set when the pending order was already persisted, so the
    caller can retry payment for it instead of checking out again.
    """

    retryable = True

    def __init__(self, message: str, order_id: str | None = None) -> None:
        super().__init__(message)
        self.order_id = order_id


class StateViolation(ValidationError):
    """An illegal order or payment status transition was attempted."""
