"""Error taxonomy for checkout, reconciliation and invoicing.

Every error carries a ``public_message`` that is safe to show the caller and
an HTTP ``status_code``. Internal detail goes to the log, never to the
response, except for the validation, stock and rate-limit messages which
are written for the shopper.
"""

GENERIC_ORDER_MESSAGE = "Unable to process your order at this time. Please try again."


class CheckoutError(Exception):
    status_code = 400
    public_message = GENERIC_ORDER_MESSAGE

    def __init__(self, public_message: str | None = None, *, detail: str | None = None):
        self.public_message = public_message or self.public_message
        self.detail = detail
        super().__init__(detail or self.public_message)


class CheckoutValidationError(CheckoutError):
    """Bad shipping address, empty cart or unusable cart line."""

    status_code = 400


class StockUnavailable(CheckoutError):
    status_code = 409
    public_message = "Some items in your cart are no longer available."


class RateLimited(CheckoutError):
    status_code = 429
    public_message = (
        "You have too many pending orders. Please complete or cancel them before creating a new one."
    )


class GatewayUnavailable(CheckoutError):
    status_code = 502
    public_message = "Payment service temporarily unavailable. Please try again."


class SignatureInvalid(CheckoutError):
    status_code = 401
    public_message = "Invalid signature"


class NotAuthorized(CheckoutError):
    status_code = 403
    public_message = "You are not allowed to access this order."


class Unauthenticated(CheckoutError):
    status_code = 401
    public_message = "Authentication required"


class OrderNotFound(CheckoutError):
    status_code = 404
    public_message = "Order not found"


class PaymentNotRefundable(CheckoutError):
    status_code = 409
    public_message = "This payment cannot be refunded."


class CheckoutFailed(CheckoutError):
    """Any unexpected failure; the caller only sees the generic message."""

    status_code = 500
