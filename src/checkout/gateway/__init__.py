"""Payment gateway factory.

Provides get_gateway() / set_gateway() to swap implementations:
- FakeGateway for development and testing
- RazorpayGateway when PAYMENT_GATEWAY=razorpay
"""

from checkout.config import get_settings
from checkout.gateway.port import PaymentGateway

_current_gateway: PaymentGateway | None = None


def get_gateway() -> PaymentGateway:
    """Return the current payment gateway, chosen from settings on first use."""
    global _current_gateway
    if _current_gateway is None:
        settings = get_settings()
        if settings.payment_gateway == "razorpay":
            from checkout.gateway.razorpay_adapter import RazorpayGateway

            _current_gateway = RazorpayGateway(
                key_id=settings.gateway_key_id,
                key_secret=settings.gateway_key_secret,
                webhook_secret=settings.gateway_webhook_secret,
                timeout=settings.gateway_timeout_seconds,
            )
        elif settings.payment_gateway == "fake":
            from checkout.gateway.fake_adapter import FakeGateway

            _current_gateway = FakeGateway()
        else:
            raise ValueError(f"Unknown payment gateway: {settings.payment_gateway}")
    return _current_gateway


def set_gateway(gateway: PaymentGateway) -> None:
    """Override the active payment gateway (useful for tests)."""
    global _current_gateway
    _current_gateway = gateway


def reset_gateway() -> None:
    """Reset to the settings-driven default."""
    global _current_gateway
    _current_gateway = None
