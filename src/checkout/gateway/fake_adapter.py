"""Configurable fake payment gateway for development and testing.

No network calls. Intent creation and refunds can be switched to fail at
runtime, and signatures are real HMACs over fixed test secrets so tests can
sign payloads with ``sign_webhook`` / ``sign_payment``.
"""

from uuid import uuid4

from checkout.gateway.port import (
    GatewayError,
    GatewayRefund,
    PaymentGateway,
    PaymentIntent,
    compute_signature,
    signature_matches,
)

TEST_KEY_ID = "rzp_test_fake"
TEST_KEY_SECRET = "test-key-secret"
TEST_WEBHOOK_SECRET = "test-webhook-secret"


class FakeGateway(PaymentGateway):
    """Configurable fake payment gateway."""

    def __init__(
        self,
        key_id: str = TEST_KEY_ID,
        key_secret: str = TEST_KEY_SECRET,
        webhook_secret: str = TEST_WEBHOOK_SECRET,
    ) -> None:
        self.key_id = key_id
        self.key_secret = key_secret
        self.webhook_secret = webhook_secret
        self.should_succeed: bool = True
        self.failure_reason: str = "Gateway unavailable"
        self.calls: list[dict] = []

    def configure(self, should_succeed: bool, failure_reason: str = "Gateway unavailable") -> None:
        """Configure gateway behavior at runtime."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    def create_intent(self, amount: int, currency: str, receipt: str, metadata: dict) -> PaymentIntent:
        self.calls.append(
            {
                "method": "create_intent",
                "amount": amount,
                "currency": currency,
                "receipt": receipt,
                "metadata": dict(metadata),
            }
        )

        if not self.should_succeed:
            raise GatewayError(self.failure_reason)

        return PaymentIntent(
            intent_id=f"order_fake{uuid4().hex[:14]}",
            amount=amount,
            currency=currency,
            receipt=receipt,
        )

    def refund(self, gateway_payment_id: str, amount: int, notes: dict | None = None) -> GatewayRefund:
        self.calls.append(
            {
                "method": "refund",
                "gateway_payment_id": gateway_payment_id,
                "amount": amount,
                "notes": dict(notes or {}),
            }
        )

        if not self.should_succeed:
            raise GatewayError(self.failure_reason)

        return GatewayRefund(
            refund_id=f"rfnd_fake{uuid4().hex[:14]}",
            gateway_payment_id=gateway_payment_id,
            amount=amount,
        )

    def verify_webhook_signature(self, raw_payload: bytes, signature: str | None) -> bool:
        return signature_matches(raw_payload, signature, self.webhook_secret)

    def verify_payment_signature(self, gateway_order_id: str, gateway_payment_id: str, signature: str | None) -> bool:
        return signature_matches(f"{gateway_order_id}|{gateway_payment_id}", signature, self.key_secret)

    def sign_webhook(self, raw_payload: bytes | str) -> str:
        return compute_signature(raw_payload, self.webhook_secret)

    def sign_payment(self, gateway_order_id: str, gateway_payment_id: str) -> str:
        return compute_signature(f"{gateway_order_id}|{gateway_payment_id}", self.key_secret)
