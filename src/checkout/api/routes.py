"""FastAPI routes for checkout, payments, orders and invoices."""

import structlog
from fastapi import APIRouter, Depends, Header, Request
from protean.utils.globals import current_domain

from checkout.api.identity import current_user_id
from checkout.api.schemas import (
    AddToCartRequest,
    CancelOrderResponse,
    CartResponse,
    CheckoutRequestSchema,
    CheckoutResponse,
    InvoiceResponse,
    PaymentVerificationResponse,
    RefundRequest,
    RefundResponse,
    VerifyPaymentRequest,
    WebhookAckResponse,
)
from checkout.cart.management import AddToCart
from checkout.errors import SignatureInvalid
from checkout.identity.role import ensure_owner_or_admin
from checkout.invoice.issuance import ensure_invoice
from checkout.orchestration.cancellation import cancel_order_for_customer
from checkout.orchestration.checkout import CheckoutOrchestrator, CheckoutRequest
from checkout.order.order import load_order
from checkout.payment.reconciliation import WebhookReconciler
from checkout.payment.refund import refund_order

logger = structlog.get_logger(__name__)

# ---------------------------------------------------------------------------
# Checkout Router
# ---------------------------------------------------------------------------
checkout_router = APIRouter(tags=["checkout"])


@checkout_router.post("/checkout", response_model=CheckoutResponse)
async def create_checkout(body: CheckoutRequestSchema, user_id: str = Depends(current_user_id)) -> CheckoutResponse:
    """Price the caller's cart, reserve stock, place the order and open a payment intent."""
    result = CheckoutOrchestrator().checkout(
        CheckoutRequest(
            user_id=user_id,
            shipping_address=body.shipping_address.model_dump(exclude_none=True),
            coupon_code=body.coupon_code,
        )
    )
    return CheckoutResponse(
        order_id=result.order_id,
        order_number=result.order_number,
        gateway_order_id=result.gateway_order_id,
        amount=result.amount,
        currency=result.currency,
        key_id=result.key_id,
    )


@checkout_router.post("/cart/items", status_code=201, response_model=CartResponse)
async def add_to_cart(body: AddToCartRequest, user_id: str = Depends(current_user_id)) -> CartResponse:
    cart_id = current_domain.process(
        AddToCart(
            user_id=user_id,
            product_id=body.product_id,
            variant_id=body.variant_id,
            bundle_id=body.bundle_id,
            quantity=body.quantity,
        ),
        asynchronous=False,
    )
    return CartResponse(cart_id=cart_id)


# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


@order_router.post("/{order_id}/cancel", response_model=CancelOrderResponse)
async def cancel_order(order_id: str, user_id: str = Depends(current_user_id)) -> CancelOrderResponse:
    """Cancel the caller's pending order and release its stock."""
    outcome = cancel_order_for_customer(order_id, user_id)
    return CancelOrderResponse(success=True, order_id=outcome.order_id, message=outcome.message)


@order_router.post("/{order_id}/refund", response_model=RefundResponse)
async def refund_payment(
    order_id: str, body: RefundRequest | None = None, user_id: str = Depends(current_user_id)
) -> RefundResponse:
    """Refund the order's captured payment. Admins only."""
    body = body or RefundRequest()
    result = refund_order(order_id, user_id, amount=body.amount, reason=body.reason)
    return RefundResponse(
        success=True,
        order_id=result.order_id,
        gateway_refund_id=result.gateway_refund_id,
        amount=result.amount,
        coupon_restored=result.coupon_restored,
    )


# ---------------------------------------------------------------------------
# Payment Router
# ---------------------------------------------------------------------------
payment_router = APIRouter(prefix="/payments", tags=["payments"])


@payment_router.post("/verify", response_model=PaymentVerificationResponse)
async def verify_payment(
    body: VerifyPaymentRequest, user_id: str = Depends(current_user_id)
) -> PaymentVerificationResponse:
    """Confirm a payment reported by the checkout UI."""
    result = WebhookReconciler().verify_client_payment(
        order_id=body.order_id,
        user_id=user_id,
        gateway_order_id=body.gateway_order_id,
        gateway_payment_id=body.gateway_payment_id,
        signature=body.signature,
    )
    return PaymentVerificationResponse(
        success=True,
        order_id=result.order_id or body.order_id,
        status=result.outcome,
        invoice_number=result.invoice_number,
    )


@payment_router.post("/webhook", response_model=WebhookAckResponse)
async def process_webhook(
    request: Request,
    x_razorpay_signature: str = Header(default=""),
) -> WebhookAckResponse:
    """Apply a gateway webhook. Always 200 once the signature is verified."""
    raw_payload = await request.body()
    reconciler = WebhookReconciler()
    try:
        result = reconciler.handle_webhook(raw_payload, x_razorpay_signature or None)
    except SignatureInvalid:
        raise
    except Exception:
        # Signature was valid; a non-2xx here would only make the gateway retry
        logger.exception("Webhook processing failed, acknowledged anyway")
        return WebhookAckResponse(status="ok", event="unknown", outcome="error")

    return WebhookAckResponse(status="ok", event=result.event_type, outcome=result.outcome)


# ---------------------------------------------------------------------------
# Invoice Router
# ---------------------------------------------------------------------------
invoice_router = APIRouter(prefix="/invoices", tags=["invoices"])


@invoice_router.post("/{order_id}", response_model=InvoiceResponse)
async def generate_invoice(order_id: str, user_id: str = Depends(current_user_id)) -> InvoiceResponse:
    """Issue or regenerate an order's invoice. Admins and the order's owner only."""
    order = load_order(order_id)
    ensure_owner_or_admin(order.user_id, user_id)
    result = ensure_invoice(order.id)
    return InvoiceResponse(order_id=str(order.id), invoice_number=result.invoice_number, pdf_url=result.pdf_url)
