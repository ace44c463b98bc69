"""Pydantic request/response schemas for the Checkout API.

These are external contracts, kept separate from the internal Protean
commands.
"""

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Shared sub-models
# ---------------------------------------------------------------------------
class ShippingAddressSchema(BaseModel):
    full_name: str | None = None
    phone: str | None = None
    email: str | None = None
    address_line_1: str | None = None
    address_line_2: str | None = None
    city: str | None = None
    state: str | None = None
    pincode: str | None = None
    country: str | None = None


# ---------------------------------------------------------------------------
# Request Schemas
# ---------------------------------------------------------------------------
class CheckoutRequestSchema(BaseModel):
    shipping_address: ShippingAddressSchema
    coupon_code: str | None = Field(default=None, max_length=50)

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "shipping_address": {
                        "full_name": "Asha Rao",
                        "phone": "9800000000",
                        "email": "asha@example.com",
                        "address_line_1": "12 MG Road",
                        "city": "Bengaluru",
                        "state": "Karnataka",
                        "pincode": "560001",
                        "country": "India",
                    },
                    "coupon_code": "WELCOME10",
                }
            ]
        }
    }


class AddToCartRequest(BaseModel):
    product_id: str
    variant_id: str | None = None
    bundle_id: str | None = None
    quantity: int = Field(ge=1)


class VerifyPaymentRequest(BaseModel):
    order_id: str
    gateway_order_id: str
    gateway_payment_id: str
    signature: str


class RefundRequest(BaseModel):
    amount: int | None = Field(default=None, ge=1)
    reason: str | None = Field(default=None, max_length=500)


# ---------------------------------------------------------------------------
# Response Schemas
# ---------------------------------------------------------------------------
class CheckoutResponse(BaseModel):
    order_id: str
    order_number: str
    gateway_order_id: str
    amount: int
    currency: str
    key_id: str


class CartResponse(BaseModel):
    cart_id: str


class CancelOrderResponse(BaseModel):
    success: bool
    order_id: str
    message: str


class PaymentVerificationResponse(BaseModel):
    success: bool
    order_id: str
    status: str
    invoice_number: str | None = None


class WebhookAckResponse(BaseModel):
    status: str
    event: str
    outcome: str


class RefundResponse(BaseModel):
    success: bool
    order_id: str
    gateway_refund_id: str
    amount: int
    coupon_restored: bool


class InvoiceResponse(BaseModel):
    order_id: str
    invoice_number: str
    pdf_url: str
