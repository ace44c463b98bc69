"""Domain tests for the Order aggregate.

Covers:
- Order.place() snapshots items, pricing and address as a pending order
- pending -> paid and pending -> cancelled transitions
- paid and cancelled are terminal
- reservation_items() reflects exactly the ordered quantities
"""

import re

import pytest
from checkout.order.events import OrderCancelled, OrderPaid, OrderPlaced
from checkout.order.order import Order, OrderStatus, PaymentStatus, generate_order_number
from protean.exceptions import ValidationError

ADDRESS = {"full_name": "Asha Rao", "address_line_1": "12 MG Road", "city": "Bengaluru", "pincode": "560001"}
ITEMS = [
    {
        "product_id": "prod-a",
        "variant_id": None,
        "bundle_id": None,
        "product_name": "Product A",
        "variant_name": None,
        "sku": "PRODUCT-A",
        "quantity": 2,
        "unit_price": 500.0,
        "line_total": 1000.0,
    },
    {
        "product_id": "prod-b",
        "variant_id": "var-1",
        "bundle_id": None,
        "product_name": "Product B",
        "variant_name": "Large",
        "sku": "PRODUCT-B-L",
        "quantity": 1,
        "unit_price": 250.0,
        "line_total": 250.0,
    },
]
PRICING = {
    "subtotal": 1250.0,
    "bundle_savings": 0.0,
    "shipping_amount": 0.0,
    "discount_amount": 0.0,
    "total_amount": 1250,
}


def _place_order():
    return Order.place(user_id="user-1", items_data=ITEMS, shipping_address=ADDRESS, pricing=PRICING)


class TestOrderPlacement:
    def test_new_order_is_pending(self):
        order = _place_order()

        assert order.status == OrderStatus.PENDING.value
        assert order.payment_status == PaymentStatus.PENDING.value
        assert order.total_amount == 1250
        assert len(order.items) == 2
        assert order.shipping_address.city == "Bengaluru"

    def test_place_raises_order_placed(self):
        order = _place_order()

        assert len(order._events) == 1
        event = order._events[0]
        assert isinstance(event, OrderPlaced)
        assert event.item_count == 2
        assert event.total_amount == 1250

    def test_order_needs_items(self):
        with pytest.raises(ValidationError):
            Order.place(user_id="user-1", items_data=[], shipping_address=ADDRESS, pricing=PRICING)

    def test_order_number_format(self):
        assert re.fullmatch(r"ORD-\d+-[0-9A-F]{4}", generate_order_number())

    def test_reservation_items_match_order_lines(self):
        order = _place_order()

        held = {(i.product_id, i.variant_id): i.quantity for i in order.reservation_items()}
        assert held == {("prod-a", None): 2, ("prod-b", "var-1"): 1}


class TestOrderTransitions:
    def test_mark_paid(self):
        order = _place_order()

        order.mark_paid(gateway_payment_id="pay_123")

        assert order.status == OrderStatus.PAID.value
        assert order.payment_status == PaymentStatus.SUCCESS.value
        assert order.paid_at is not None
        assert isinstance(order._events[-1], OrderPaid)

    def test_cancel(self):
        order = _place_order()

        order.cancel(reason="payment_failed")

        assert order.status == OrderStatus.CANCELLED.value
        assert order.payment_status == PaymentStatus.FAILED.value
        assert order.cancellation_reason == "payment_failed"
        assert isinstance(order._events[-1], OrderCancelled)

    def test_paid_order_cannot_be_cancelled(self):
        order = _place_order()
        order.mark_paid()

        with pytest.raises(ValidationError):
            order.cancel(reason="payment_failed")

    def test_cancelled_order_cannot_be_paid(self):
        order = _place_order()
        order.cancel(reason="payment_timeout")

        with pytest.raises(ValidationError):
            order.mark_paid()

    def test_paid_order_cannot_be_paid_twice(self):
        order = _place_order()
        order.mark_paid()

        with pytest.raises(ValidationError):
            order.mark_paid()
