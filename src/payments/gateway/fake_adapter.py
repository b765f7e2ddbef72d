"""Configurable fake payment gateway for development and testing.

This adapter simulates a hosted-checkout provider without any external
calls. Sessions are keyed by idempotency key, so repeating a request returns
the original session instead of opening a second charge. It can be
configured at runtime to reject requests or to time out, including the case
where the provider created the session but the response was lost.
"""

from dataclasses import replace
from uuid import uuid4

from payments.gateway.port import (
    GatewayTimeoutError,
    PaymentGateway,
    PaymentGatewayError,
    PaymentSession,
)


class FakeGateway(PaymentGateway):
    """Configurable fake payment gateway."""

    def __init__(self, checkout_url: str = "https://checkout.fake-gateway.test") -> None:
        self.checkout_url = checkout_url.rstrip("/")
        self.should_succeed: bool = True
        self.failure_reason: str = "Gateway rejected the request"
        self.timeout: bool = False
        self.create_before_timeout: bool = False
        self.sessions: dict[str, PaymentSession] = {}
        self.calls: list[dict] = []

    def configure(
        self,
        should_succeed: bool = True,
        failure_reason: str = "Gateway rejected the request",
        timeout: bool = False,
        create_before_timeout: bool = False,
    ) -> None:
        """Configure gateway behavior at runtime."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason
        self.timeout = timeout
        self.create_before_timeout = create_before_timeout

    def create_payment_session(
        self,
        amount_minor_units: int,
        currency: str,
        order_id: str,
        idempotency_key: str,
    ) -> PaymentSession:
        self.calls.append(
            {
                "method": "create_payment_session",
                "amount": amount_minor_units,
                "currency": currency,
                "order_id": order_id,
                "idempotency_key": idempotency_key,
            }
        )

        if self.timeout:
            if self.create_before_timeout:
                self._open_session(amount_minor_units, currency, idempotency_key)
            raise GatewayTimeoutError("Timed out waiting for the payment provider")

        if not self.should_succeed:
            raise PaymentGatewayError(self.failure_reason)

        return self._open_session(amount_minor_units, currency, idempotency_key)

    def _open_session(self, amount_minor_units, currency, idempotency_key) -> PaymentSession:
        existing = self.sessions.get(idempotency_key)
        if existing is not None:
            if existing.amount != amount_minor_units or existing.currency != currency.upper():
                raise PaymentGatewayError("Idempotency key was already used with different parameters")
            return existing

        reference = f"fake_cs_{uuid4().hex[:16]}"
        session = PaymentSession(
            provider_reference=reference,
            redirect_url=f"{self.checkout_url}/pay/{reference}",
            amount=amount_minor_units,
            currency=currency.upper(),
        )
        self.sessions[idempotency_key] = session
        return session

    def find_session(self, idempotency_key: str) -> PaymentSession | None:
        return self.sessions.get(idempotency_key)

    def settle_session(self, idempotency_key: str, status: str = "succeeded") -> PaymentSession:
        """Simulate the shopper finishing (or abandoning) the hosted payment page."""
        session = replace(self.sessions[idempotency_key], status=status)
        self.sessions[idempotency_key] = session
        return session

    def verify_webhook_signature(self, payload: str, signature: str) -> bool:  # noqa: ARG002
        return signature == "test-signature"
