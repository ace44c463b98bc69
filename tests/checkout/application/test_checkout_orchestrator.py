"""Application tests for the checkout orchestrator.

Covers:
- A successful checkout reserves stock, places a pending order at the
  server-computed total and opens a payment transaction
- Variants, bundles and coupons are priced from the live catalogue
- Empty cart, bad address, inactive items and rate limiting are rejected
  before any stock moves
- Insufficient stock and a failed order write leave stock untouched
- A gateway failure leaves the order pending with its stock held
"""

from datetime import UTC, datetime, timedelta
from unittest.mock import patch

import pytest
from checkout.catalogue.product import Product
from checkout.errors import (
    CheckoutFailed,
    CheckoutValidationError,
    GatewayUnavailable,
    RateLimited,
    StockUnavailable,
)
from checkout.order.order import Order, OrderStatus
from checkout.payment.transaction import PaymentTransaction, TransactionStatus
from protean import current_domain


class TestSuccessfulCheckout:
    def test_checkout_places_pending_order(self, make_product, fill_cart, checkout_cart, ledger, gateway):
        product = make_product(base_price=500.0, stock=10)
        fill_cart("user-1", product, quantity=2)

        result = checkout_cart("user-1")

        order = current_domain.repository_for(Order).get(result.order_id)
        assert order.status == OrderStatus.PENDING.value
        assert order.total_amount == 1000
        assert order.shipping_amount == 0.0
        assert order.items[0].unit_price == 500.0
        assert order.items[0].sku == "PRODUCT-A"
        assert order.shipping_address.pincode == "560001"
        assert ledger.available(str(product.id)) == 8

        assert result.amount == 100000
        assert result.currency == "INR"
        assert result.key_id == gateway.key_id
        assert gateway.calls[0]["receipt"] == order.order_number
        assert gateway.calls[0]["metadata"]["order_id"] == result.order_id

    def test_checkout_opens_transaction(self, placed_order):
        result, _ = placed_order

        transaction = current_domain.repository_for(PaymentTransaction).for_order(result.order_id)
        assert transaction.status == TransactionStatus.CREATED.value
        assert transaction.gateway_order_id == result.gateway_order_id
        assert transaction.amount == 1000

    def test_coupon_discount_is_applied(self, make_product, make_coupon, fill_cart, checkout_cart):
        product = make_product(base_price=500.0)
        make_coupon(code="SAVE10", discount_value=10.0, max_discount_amount=50.0)
        fill_cart("user-1", product, quantity=2)

        result = checkout_cart("user-1", coupon_code=" save10 ")

        order = current_domain.repository_for(Order).get(result.order_id)
        assert order.discount_amount == 50.0
        assert order.total_amount == 950
        assert order.coupon_code == "SAVE10"

    def test_unknown_coupon_is_ignored(self, make_product, fill_cart, checkout_cart):
        product = make_product(base_price=500.0)
        fill_cart("user-1", product, quantity=2)

        result = checkout_cart("user-1", coupon_code="NOPE")

        order = current_domain.repository_for(Order).get(result.order_id)
        assert order.discount_amount == 0.0
        assert order.coupon_code is None
        assert order.total_amount == 1000

    def test_shipping_charged_below_threshold(self, make_product, fill_cart, checkout_cart):
        product = make_product(base_price=200.0)
        fill_cart("user-1", product, quantity=1)

        result = checkout_cart("user-1")

        order = current_domain.repository_for(Order).get(result.order_id)
        assert order.shipping_amount == 50.0
        assert order.total_amount == 250

    def test_variant_price_and_stock(self, make_product, fill_cart, checkout_cart, ledger):
        product = make_product(
            base_price=500.0, stock=3, variants=[{"name": "Large", "sku": "A-L", "price_adjustment": 100.0}]
        )
        variant = product.variants[0]
        fill_cart("user-1", product, quantity=1, variant=variant)

        result = checkout_cart("user-1")

        order = current_domain.repository_for(Order).get(result.order_id)
        assert order.items[0].unit_price == 600.0
        assert order.items[0].variant_name == "Large"
        assert order.items[0].sku == "A-L"
        assert ledger.available(str(product.id), variant_id=str(variant.id)) == 2

    def test_bundle_price(self, make_product, make_bundle, fill_cart, checkout_cart):
        first = make_product(name="Product A", base_price=500.0)
        second = make_product(name="Product B", base_price=300.0)
        bundle = make_bundle(price_type="fixed", price_value=700.0)
        fill_cart("user-1", first, quantity=1, bundle=bundle)
        fill_cart("user-1", second, quantity=1, bundle=bundle)

        result = checkout_cart("user-1")

        order = current_domain.repository_for(Order).get(result.order_id)
        assert order.subtotal == 700.0
        assert order.bundle_savings == 100.0
        assert order.total_amount == 700

    def test_client_cannot_influence_price(self, make_product, fill_cart, checkout_cart):
        product = make_product(base_price=500.0)
        fill_cart("user-1", product, quantity=1)
        product.base_price = 650.0
        current_domain.repository_for(Product).add(product)

        result = checkout_cart("user-1")

        order = current_domain.repository_for(Order).get(result.order_id)
        assert order.items[0].unit_price == 650.0


class TestRejectedCheckout:
    def test_empty_cart(self, checkout_cart):
        with pytest.raises(CheckoutValidationError) as exc_info:
            checkout_cart("user-without-cart")

        assert "cart is empty" in exc_info.value.public_message

    @pytest.mark.parametrize("missing", ["address_line_1", "city", "pincode"])
    def test_incomplete_address(self, make_product, fill_cart, checkout_cart, address, ledger, missing):
        product = make_product(stock=10)
        fill_cart("user-1", product, quantity=1)
        address[missing] = "   "

        with pytest.raises(CheckoutValidationError) as exc_info:
            checkout_cart("user-1", shipping_address=address)

        assert "shipping information" in exc_info.value.public_message
        assert ledger.available(str(product.id)) == 10

    def test_inactive_product(self, make_product, fill_cart, checkout_cart):
        product = make_product()
        fill_cart("user-1", product, quantity=1)
        product.is_active = False
        current_domain.repository_for(Product).add(product)

        with pytest.raises(CheckoutValidationError):
            checkout_cart("user-1")

    def test_insufficient_stock(self, make_product, fill_cart, checkout_cart, ledger):
        product = make_product(stock=1)
        fill_cart("user-1", product, quantity=2)

        with pytest.raises(StockUnavailable):
            checkout_cart("user-1")

        assert ledger.available(str(product.id)) == 1
        assert current_domain.repository_for(Order).pending_for_user("user-1") == []

    def test_one_short_line_rejects_the_whole_cart(self, make_product, fill_cart, checkout_cart, ledger):
        plenty = make_product(name="Product A", stock=10)
        scarce = make_product(name="Product B", stock=0)
        fill_cart("user-1", plenty, quantity=1)
        fill_cart("user-1", scarce, quantity=1)

        with pytest.raises(StockUnavailable):
            checkout_cart("user-1")

        assert ledger.available(str(plenty.id)) == 10

    def test_rate_limit(self, make_product, fill_cart, checkout_cart):
        product = make_product(stock=100)
        fill_cart("user-1", product, quantity=1)
        for _ in range(5):
            checkout_cart("user-1")

        with pytest.raises(RateLimited):
            checkout_cart("user-1")

    def test_rate_limit_is_per_user(self, make_product, fill_cart, checkout_cart):
        product = make_product(stock=100)
        fill_cart("user-1", product, quantity=1)
        fill_cart("user-2", product, quantity=1)
        for _ in range(5):
            checkout_cart("user-1")

        result = checkout_cart("user-2")

        assert result.order_id

    def test_rate_limit_only_counts_the_recent_window(self, make_product, fill_cart, checkout_cart):
        product = make_product(stock=100)
        fill_cart("user-1", product, quantity=1)
        for _ in range(5):
            checkout_cart("user-1")

        repo = current_domain.repository_for(Order)
        for order in repo.pending_for_user("user-1"):
            order.created_at = datetime.now(UTC) - timedelta(hours=1)
            repo.add(order)

        assert repo.count_recent_pending("user-1", datetime.now(UTC) - timedelta(minutes=15)) == 0
        assert checkout_cart("user-1").order_id


class TestCompensation:
    def test_failed_order_write_releases_stock(self, make_product, fill_cart, checkout_cart, ledger):
        product = make_product(stock=10)
        fill_cart("user-1", product, quantity=3)

        with patch("checkout.order.placement.Order.place", side_effect=RuntimeError("database down")):
            with pytest.raises(CheckoutFailed):
                checkout_cart("user-1")

        assert ledger.available(str(product.id)) == 10

    def test_gateway_failure_leaves_order_pending(self, make_product, fill_cart, checkout_cart, ledger, gateway):
        product = make_product(stock=10)
        fill_cart("user-1", product, quantity=2)
        gateway.configure(should_succeed=False, failure_reason="timeout")

        with pytest.raises(GatewayUnavailable):
            checkout_cart("user-1")

        pending = current_domain.repository_for(Order).pending_for_user("user-1")
        assert len(pending) == 1
        assert ledger.available(str(product.id)) == 8
        assert current_domain.repository_for(PaymentTransaction).for_order(pending[0].id) is None
