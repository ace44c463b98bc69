"""Integration tests for gateway adapter selection and the Razorpay adapter.

The HTTP session is mocked; no request leaves the process.
"""

from unittest.mock import MagicMock

import pytest
import requests
from checkout.config import Settings, set_settings
from checkout.gateway import get_gateway, reset_gateway
from checkout.gateway.fake_adapter import FakeGateway
from checkout.gateway.port import GatewayError, compute_signature
from checkout.gateway.razorpay_adapter import RazorpayGateway


def _gateway(session):
    return RazorpayGateway(
        key_id="rzp_test_key",
        key_secret="key-secret",
        webhook_secret="hook-secret",
        timeout=3.0,
        session=session,
    )


def _response(status_code=200, body=None):
    response = MagicMock()
    response.ok = 200 <= status_code < 300
    response.status_code = status_code
    response.json.return_value = body or {}
    response.text = str(body)
    return response


class TestRazorpayGateway:
    def test_create_intent_posts_order(self):
        session = MagicMock()
        session.post.return_value = _response(
            body={"id": "order_Rz1", "amount": 95000, "currency": "INR", "receipt": "ORD-1", "status": "created"}
        )

        intent = _gateway(session).create_intent(95000, "INR", "ORD-1", {"order_id": "o-1", "user_id": "u-1"})

        assert intent.intent_id == "order_Rz1"
        assert intent.amount == 95000
        _, kwargs = session.post.call_args
        assert session.post.call_args.args[0] == "https://api.razorpay.com/v1/orders"
        assert kwargs["auth"] == ("rzp_test_key", "key-secret")
        assert kwargs["json"]["notes"] == {"order_id": "o-1", "user_id": "u-1"}
        assert kwargs["timeout"] == 3.0

    def test_rejected_request(self):
        session = MagicMock()
        session.post.return_value = _response(status_code=400, body={"error": {"description": "bad amount"}})

        with pytest.raises(GatewayError):
            _gateway(session).create_intent(100, "INR", "ORD-1", {})

    def test_transport_failure(self):
        session = MagicMock()
        session.post.side_effect = requests.Timeout("read timed out")

        with pytest.raises(GatewayError):
            _gateway(session).create_intent(100, "INR", "ORD-1", {})

    def test_refund_posts_to_payment(self):
        session = MagicMock()
        session.post.return_value = _response(
            body={"id": "rfnd_Rz1", "payment_id": "pay_1", "amount": 50000, "status": "processed"}
        )

        refund = _gateway(session).refund("pay_1", 50000, notes={"order_id": "o-1"})

        assert refund.refund_id == "rfnd_Rz1"
        assert refund.amount == 50000
        _, kwargs = session.post.call_args
        assert session.post.call_args.args[0] == "https://api.razorpay.com/v1/payments/pay_1/refund"
        assert kwargs["json"] == {"amount": 50000, "speed": "normal", "notes": {"order_id": "o-1"}}
        assert kwargs["auth"] == ("rzp_test_key", "key-secret")

    def test_rejected_refund(self):
        session = MagicMock()
        session.post.return_value = _response(status_code=400, body={"error": {"description": "fully refunded"}})

        with pytest.raises(GatewayError):
            _gateway(session).refund("pay_1", 100)

    def test_signatures_use_their_own_secrets(self):
        gateway = _gateway(MagicMock())
        body = b'{"event":"payment.captured"}'

        assert gateway.verify_webhook_signature(body, compute_signature(body, "hook-secret"))
        assert not gateway.verify_webhook_signature(body, compute_signature(body, "key-secret"))
        assert gateway.verify_payment_signature("order_1", "pay_1", compute_signature("order_1|pay_1", "key-secret"))


class TestGatewaySelection:
    def test_fake_by_default(self):
        reset_gateway()
        set_settings(Settings(environment="test"))

        assert isinstance(get_gateway(), FakeGateway)

    def test_razorpay_from_settings(self):
        reset_gateway()
        set_settings(
            Settings(
                environment="test",
                payment_gateway="razorpay",
                gateway_key_id="rzp_live_x",
                gateway_key_secret="s",
                gateway_webhook_secret="w",
            )
        )

        gateway = get_gateway()

        assert isinstance(gateway, RazorpayGateway)
        assert gateway.key_id == "rzp_live_x"

    def test_unknown_gateway(self):
        reset_gateway()
        set_settings(Settings(environment="test", payment_gateway="paypal"))

        with pytest.raises(ValueError):
            get_gateway()
