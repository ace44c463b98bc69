"""Payment gateway port (abstract interface).

Defines the contract every gateway adapter implements: creating a remote
payment intent, refunding a captured payment, verifying signed callbacks and
turning a callback body into a ``GatewayEvent``. Callback bodies follow the Razorpay webhook layout::

    {"event": "payment.captured",
     "payload": {"payment": {"entity": {"id": ..., "order_id": ...,
                                        "amount": ..., "notes": {"order_id": ..., "user_id": ...}}},
                 "dispute": {"entity": {...}}}}
"""

import hashlib
import hmac
import json
from abc import ABC, abstractmethod
from dataclasses import dataclass, field


@dataclass(frozen=True)
class PaymentIntent:
    """A remote order the client pays against in the gateway's checkout UI."""

    intent_id: str
    amount: int  # minor units
    currency: str
    receipt: str
    status: str = "created"


@dataclass(frozen=True)
class GatewayRefund:
    refund_id: str
    gateway_payment_id: str
    amount: int  # minor units
    status: str = "processed"


@dataclass(frozen=True)
class GatewayEvent:
    event_type: str
    order_id: str | None = None
    user_id: str | None = None
    gateway_order_id: str | None = None
    gateway_payment_id: str | None = None
    amount: int | None = None
    raw: dict = field(default_factory=dict, compare=False)


class GatewayError(Exception):
    """The gateway could not be reached or refused the request."""


def compute_signature(payload: bytes | str, secret: str) -> str:
    """Hex HMAC-SHA256 of ``payload`` keyed with ``secret``."""
    if isinstance(payload, str):
        payload = payload.encode("utf-8")
    return hmac.new(secret.encode("utf-8"), payload, hashlib.sha256).hexdigest()


def signature_matches(payload: bytes | str, signature: str | None, secret: str) -> bool:
    if not signature or not secret:
        return False
    return hmac.compare_digest(compute_signature(payload, secret), signature)


def parse_event(raw_payload: bytes | str) -> GatewayEvent:
    """Interpret a verified callback body.

    Raises:
        ValueError: when the body is not a JSON object with an ``event`` key.
    """
    body = json.loads(raw_payload)
    if not isinstance(body, dict) or not body.get("event"):
        raise ValueError("Webhook body has no event type")

    payload = body.get("payload") or {}
    payment = (payload.get("payment") or {}).get("entity") or {}
    notes = payment.get("notes") or {}
    if not notes:
        # Dispute payloads may carry the notes on the dispute entity instead
        notes = ((payload.get("dispute") or {}).get("entity") or {}).get("notes") or {}

    return GatewayEvent(
        event_type=body["event"],
        order_id=notes.get("order_id"),
        user_id=notes.get("user_id"),
        gateway_order_id=payment.get("order_id"),
        gateway_payment_id=payment.get("id"),
        amount=payment.get("amount"),
        raw=body,
    )


class PaymentGateway(ABC):
    """Abstract payment gateway interface."""

    key_id: str = ""

    @abstractmethod
    def create_intent(self, amount: int, currency: str, receipt: str, metadata: dict) -> PaymentIntent:
        """Create a remote payment intent for ``amount`` minor units.

        Raises:
            GatewayError: on timeout, transport failure or a rejected request.
        """
        ...

    @abstractmethod
    def refund(self, gateway_payment_id: str, amount: int, notes: dict | None = None) -> GatewayRefund:
        """Return ``amount`` minor units of a captured payment to the customer.

        Raises:
            GatewayError: on timeout, transport failure or a rejected request.
        """
        ...

    @abstractmethod
    def verify_webhook_signature(self, raw_payload: bytes, signature: str | None) -> bool:
        """Verify that a webhook body was signed by the gateway."""
        ...

    @abstractmethod
    def verify_payment_signature(self, gateway_order_id: str, gateway_payment_id: str, signature: str | None) -> bool:
        """Verify the signature the checkout UI hands back to the client after payment."""
        ...

    def parse_event(self, raw_payload: bytes) -> GatewayEvent:
        return parse_event(raw_payload)
