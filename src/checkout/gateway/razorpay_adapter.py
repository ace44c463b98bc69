"""Razorpay payment gateway adapter.

Creates orders through the Orders REST API and refunds through the
Payments API, both with HTTP basic auth, and verifies callbacks with HMAC-SHA256, as described in Razorpay's webhook
and standard checkout documentation.
"""

import requests
import structlog

from checkout.gateway.port import GatewayError, GatewayRefund, PaymentGateway, PaymentIntent, signature_matches

logger = structlog.get_logger(__name__)

API_BASE_URL = "https://api.razorpay.com/v1"


class RazorpayGateway(PaymentGateway):
    def __init__(
        self,
        key_id: str,
        key_secret: str,
        webhook_secret: str,
        timeout: float = 10.0,
        base_url: str = API_BASE_URL,
        session: requests.Session | None = None,
    ) -> None:
        self.key_id = key_id
        self.key_secret = key_secret
        self.webhook_secret = webhook_secret
        self.timeout = timeout
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()

    def create_intent(self, amount: int, currency: str, receipt: str, metadata: dict) -> PaymentIntent:
        try:
            response = self.session.post(
                f"{self.base_url}/orders",
                auth=(self.key_id, self.key_secret),
                json={
                    "amount": amount,
                    "currency": currency,
                    "receipt": receipt,
                    "notes": metadata,
                },
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise GatewayError(f"Razorpay request failed: {exc}") from exc

        if not response.ok:
            logger.error(
                "Razorpay order creation rejected",
                status_code=response.status_code,
                body=response.text[:500],
                receipt=receipt,
            )
            raise GatewayError(f"Razorpay returned HTTP {response.status_code}")

        body = response.json()
        return PaymentIntent(
            intent_id=body["id"],
            amount=body.get("amount", amount),
            currency=body.get("currency", currency),
            receipt=body.get("receipt", receipt),
            status=body.get("status", "created"),
        )

    def refund(self, gateway_payment_id: str, amount: int, notes: dict | None = None) -> GatewayRefund:
        try:
            response = self.session.post(
                f"{self.base_url}/payments/{gateway_payment_id}/refund",
                auth=(self.key_id, self.key_secret),
                json={"amount": amount, "speed": "normal", "notes": notes or {}},
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise GatewayError(f"Razorpay request failed: {exc}") from exc

        if not response.ok:
            logger.error(
                "Razorpay refund rejected",
                status_code=response.status_code,
                body=response.text[:500],
                gateway_payment_id=gateway_payment_id,
            )
            raise GatewayError(f"Razorpay returned HTTP {response.status_code}")

        body = response.json()
        return GatewayRefund(
            refund_id=body["id"],
            gateway_payment_id=body.get("payment_id", gateway_payment_id),
            amount=body.get("amount", amount),
            status=body.get("status", "processed"),
        )

    def verify_webhook_signature(self, raw_payload: bytes, signature: str | None) -> bool:
        return signature_matches(raw_payload, signature, self.webhook_secret)

    def verify_payment_signature(self, gateway_order_id: str, gateway_payment_id: str, signature: str | None) -> bool:
        return signature_matches(f"{gateway_order_id}|{gateway_payment_id}", signature, self.key_secret)
