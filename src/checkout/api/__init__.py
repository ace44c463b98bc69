"""Checkout API package."""

from checkout.api.routes import checkout_router, invoice_router, order_router, payment_router

__all__ = ["checkout_router", "order_router", "payment_router", "invoice_router"]
