"""Payment gateway port (abstract interface).

Defines the contract that all payment gateway adapters must implement. The
storefront treats the provider as a black box: it asks for a hosted payment
session for an amount in minor currency units and later receives the outcome
through a signed webhook.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


class PaymentGatewayError(Exception):
    """The provider rejected the request or could not be reached."""


class GatewayTimeoutError(PaymentGatewayError):
    """The provider did not answer in time; the outcome is unknown."""


@dataclass(frozen=True)
class PaymentSession:
    """A hosted checkout session created by the provider."""

    provider_reference: str
    redirect_url: str
    amount: int
    currency: str
    status: str = "pending"  # pending | succeeded | failed | refunded


class PaymentGateway(ABC):
    """Abstract payment gateway interface."""

    @abstractmethod
    def create_payment_session(
        self,
        amount_minor_units: int,
        currency: str,
        order_id: str,
        idempotency_key: str,
    ) -> PaymentSession:
        """Create (or return the existing) payment session for an idempotency key."""
        ...

    @abstractmethod
    def find_session(self, idempotency_key: str) -> PaymentSession | None:
        """Look up a session by idempotency key.

        Used to reconcile an order with the provider when its callback never
        arrived or the create call timed out.
        """
        ...

    @abstractmethod
    def verify_webhook_signature(
        self,
        payload: str,
        signature: str,
    ) -> bool:
        """Verify that a webhook payload is authentically from the gateway."""
        ...
