"""Payment gateway factory.

Provides get_gateway() / set_gateway() to swap implementations. FakeGateway
is the only adapter shipped; a production provider plugs in through
set_gateway() at application start-up.
"""

import os

from payments.gateway.fake_adapter import FakeGateway
from payments.gateway.port import PaymentGateway

_current_gateway: PaymentGateway | None = None


def get_gateway() -> PaymentGateway:
    """Return the current payment gateway. Defaults to FakeGateway."""
    global _current_gateway
    if _current_gateway is None:
        adapter = os.environ.get("PAYMENT_GATEWAY", "fake")
        if adapter != "fake":
            raise ValueError(f"Unknown payment gateway: {adapter}")
        checkout_url = os.environ.get("CHECKOUT_BASE_URL")
        _current_gateway = FakeGateway(checkout_url) if checkout_url else FakeGateway()
    return _current_gateway


def set_gateway(gateway: PaymentGateway) -> None:
    """Override the active payment gateway (useful for tests)."""
    global _current_gateway
    _current_gateway = gateway


def reset_gateway() -> None:
    """Reset to default gateway."""
    global _current_gateway
    _current_gateway = None
