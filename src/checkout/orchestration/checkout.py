"""Checkout orchestrator: turns a user's cart into a pending, stock-backed order
and a remote payment intent.

Steps, each a precondition for the next:
    1. rate limit on recent pending orders
    2. shipping address validation
    3. cart and live catalogue lookup
    4. authoritative pricing
    5. stock reservation           } one saga: a failed order write
    6. order persistence           } releases the reservation
    7. remote payment intent, then the local transaction record

When step 7 fails the order stays pending with its stock attributed to it.
The stale-order sweep cancels it later and returns the stock.
"""

import json
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

import structlog
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.utils.globals import current_domain

from checkout.cart.cart import ShoppingCart
from checkout.catalogue.bundle import Bundle
from checkout.catalogue.coupon import Coupon, normalize_code
from checkout.catalogue.product import Product
from checkout.catalogue.store_settings import current_shipping_terms
from checkout.config import get_settings
from checkout.errors import (
    CheckoutFailed,
    CheckoutValidationError,
    GatewayUnavailable,
    RateLimited,
    StockUnavailable,
)
from checkout.gateway import get_gateway
from checkout.gateway.port import GatewayError
from checkout.inventory import get_ledger
from checkout.inventory.port import InsufficientStock, StockItem
from checkout.order.order import Order
from checkout.order.placement import PlaceOrder
from checkout.orchestration.saga import SagaFailed, SagaStep, run_saga
from checkout.payment.recording import OpenTransaction
from checkout.pricing.engine import CatalogPrice, PricedOrder, PricingLine, price_order

logger = structlog.get_logger(__name__)

EMPTY_CART_MESSAGE = "Unable to process order. Your cart is empty."
ADDRESS_MESSAGE = "Unable to process order. Please check your shipping information."
UNAVAILABLE_ITEM_MESSAGE = "Unable to process order. Some items in your cart are no longer available."

REQUIRED_ADDRESS_FIELDS = ("address_line_1", "city", "pincode")
ADDRESS_FIELDS = (
    "full_name",
    "phone",
    "email",
    "address_line_1",
    "address_line_2",
    "city",
    "state",
    "pincode",
    "country",
)


@dataclass(frozen=True)
class CheckoutRequest:
    user_id: str
    shipping_address: dict
    coupon_code: str | None = None


@dataclass(frozen=True)
class CheckoutResult:
    """What the client needs to open the gateway's payment UI."""

    order_id: str
    order_number: str
    gateway_order_id: str
    amount: int  # minor units, as the gateway expects
    currency: str
    key_id: str


@dataclass(frozen=True)
class _CartLine:
    product: Product
    variant: object | None
    bundle: Bundle | None
    quantity: int


def validate_shipping_address(address: dict | None) -> dict:
    """Return the cleaned address, or raise when a required field is blank."""
    if not isinstance(address, dict):
        raise CheckoutValidationError(ADDRESS_MESSAGE, detail="Shipping address missing")

    cleaned = {}
    for name in ADDRESS_FIELDS:
        value = address.get(name)
        if isinstance(value, str):
            value = value.strip()
        if value not in (None, ""):
            cleaned[name] = str(value)

    missing = [name for name in REQUIRED_ADDRESS_FIELDS if name not in cleaned]
    if missing:
        raise CheckoutValidationError(ADDRESS_MESSAGE, detail=f"Missing address fields: {', '.join(missing)}")
    return cleaned


class CheckoutOrchestrator:
    def __init__(self, ledger=None, gateway=None, settings=None):
        self.ledger = ledger or get_ledger()
        self.gateway = gateway or get_gateway()
        self.settings = settings or get_settings()

    def checkout(self, request: CheckoutRequest) -> CheckoutResult:
        log = logger.bind(user_id=str(request.user_id))

        self._enforce_rate_limit(request.user_id)
        address = validate_shipping_address(request.shipping_address)
        cart_lines = self._load_cart(request.user_id)
        priced = self._price(cart_lines, request.coupon_code)

        items_data = self._order_items(cart_lines, priced)
        stock_items = [
            StockItem(product_id=item["product_id"], quantity=item["quantity"], variant_id=item["variant_id"])
            for item in items_data
        ]

        try:
            results = run_saga(
                [
                    SagaStep(
                        "reserve_stock",
                        lambda _: self.ledger.reserve(stock_items),
                        compensate=lambda _: self.ledger.release(stock_items),
                    ),
                    SagaStep(
                        "persist_order",
                        lambda _: current_domain.process(
                            PlaceOrder(
                                user_id=request.user_id,
                                items=json.dumps(items_data),
                                shipping_address=json.dumps(address),
                                subtotal=priced.subtotal,
                                bundle_savings=priced.bundle_adjustment,
                                shipping_amount=priced.shipping,
                                discount_amount=priced.discount,
                                total_amount=priced.grand_total,
                                currency=self.settings.currency,
                                coupon_code=priced.coupon_code,
                            ),
                            asynchronous=False,
                        ),
                    ),
                ]
            )
        except SagaFailed as exc:
            if isinstance(exc.error, InsufficientStock):
                log.info("Checkout rejected, stock unavailable", shortfalls=exc.error.shortfalls)
                raise StockUnavailable() from exc
            log.error(
                "Checkout failed while placing order",
                step=exc.step,
                error=str(exc.error),
                rollback_complete=exc.rollback_complete,
            )
            raise CheckoutFailed(detail=str(exc.error)) from exc

        order_id = results["persist_order"]
        order = current_domain.repository_for(Order).get(order_id)
        log = log.bind(order_id=order_id, order_number=order.order_number)

        amount = order.total_amount * 100
        try:
            intent = self.gateway.create_intent(
                amount=amount,
                currency=order.currency,
                receipt=order.order_number,
                metadata={"order_id": order_id, "user_id": str(request.user_id)},
            )
        except GatewayError as exc:
            # Stock stays attributed to the pending order until the stale sweep reclaims it
            log.error("Payment intent creation failed", error=str(exc))
            raise GatewayUnavailable(detail=str(exc)) from exc

        current_domain.process(
            OpenTransaction(
                order_id=order_id,
                gateway_order_id=intent.intent_id,
                amount=order.total_amount,
                currency=order.currency,
            ),
            asynchronous=False,
        )

        log.info("Checkout completed", gateway_order_id=intent.intent_id, total_amount=order.total_amount)
        return CheckoutResult(
            order_id=order_id,
            order_number=order.order_number,
            gateway_order_id=intent.intent_id,
            amount=intent.amount,
            currency=intent.currency,
            key_id=self.gateway.key_id,
        )

    # -------------------------------------------------------------------
    # Steps
    # -------------------------------------------------------------------
    def _enforce_rate_limit(self, user_id):
        since = datetime.now(UTC) - timedelta(minutes=self.settings.rate_limit_window_minutes)
        recent = current_domain.repository_for(Order).count_recent_pending(user_id, since)
        if recent >= self.settings.rate_limit_max_pending:
            logger.warning("Checkout rate limited", user_id=str(user_id), pending_orders=recent)
            raise RateLimited(detail=f"{recent} pending orders in the last window")

    def _load_cart(self, user_id) -> list[_CartLine]:
        cart = current_domain.repository_for(ShoppingCart).for_user(user_id)
        if cart is None or not cart.items:
            raise CheckoutValidationError(EMPTY_CART_MESSAGE)

        product_repo = current_domain.repository_for(Product)
        bundle_repo = current_domain.repository_for(Bundle)

        lines = []
        for item in cart.items:
            try:
                product = product_repo.get(str(item.product_id))
                variant = product.find_variant(item.variant_id) if item.variant_id else None
                bundle = bundle_repo.get(str(item.bundle_id)) if item.bundle_id else None
            except ObjectNotFoundError:
                raise CheckoutValidationError(
                    UNAVAILABLE_ITEM_MESSAGE, detail=f"Catalogue record missing for cart item {item.id}"
                ) from None
            except ValidationError as exc:
                raise CheckoutValidationError(UNAVAILABLE_ITEM_MESSAGE, detail=str(exc)) from None

            if not product.is_active or (bundle is not None and not bundle.is_active):
                raise CheckoutValidationError(UNAVAILABLE_ITEM_MESSAGE, detail=f"Inactive item {item.product_id}")

            lines.append(_CartLine(product=product, variant=variant, bundle=bundle, quantity=item.quantity))

        # Stable line order keeps pricing and stock locking independent of storage order
        lines.sort(key=lambda line: (str(line.bundle.id) if line.bundle else "", str(line.product.id)))
        return lines

    def _price(self, cart_lines: list[_CartLine], coupon_code: str | None) -> PricedOrder:
        coupon = None
        code = normalize_code(coupon_code)
        if code:
            record = current_domain.repository_for(Coupon).find_by_code(code)
            coupon = record.terms() if record else None

        pricing_lines = [
            PricingLine(
                product_id=str(line.product.id),
                variant_id=str(line.variant.id) if line.variant else None,
                quantity=line.quantity,
                price=CatalogPrice(
                    base_price=line.product.base_price,
                    discount_price=line.product.discount_price,
                    variant_absolute_price=line.variant.absolute_price if line.variant else None,
                    variant_price_adjustment=line.variant.price_adjustment if line.variant else None,
                ),
                bundle=line.bundle.terms() if line.bundle else None,
            )
            for line in cart_lines
        ]
        return price_order(pricing_lines, coupon, current_shipping_terms())

    def _order_items(self, cart_lines: list[_CartLine], priced: PricedOrder) -> list[dict]:
        return [
            {
                "product_id": priced_line.product_id,
                "variant_id": priced_line.variant_id,
                "bundle_id": priced_line.bundle_id,
                "product_name": line.product.name,
                "variant_name": line.variant.name if line.variant else None,
                "sku": (line.variant.sku if line.variant and line.variant.sku else line.product.sku),
                "quantity": priced_line.quantity,
                "unit_price": priced_line.unit_price,
                "line_total": priced_line.line_total,
            }
            for line, priced_line in zip(cart_lines, priced.lines, strict=True)
        ]
