"""Application tests for customer cancellation and the stale-order sweep.

Covers:
- A customer cancels their own pending order and gets the stock back
- Another user cannot cancel it
- Settled orders report "Order already processed"
- The sweep cancels only pending orders older than the threshold
"""

from datetime import UTC, datetime, timedelta

import pytest
from checkout.errors import NotAuthorized, OrderNotFound
from checkout.orchestration.cancellation import cancel_order_for_customer, sweep_stale_orders
from checkout.order.order import Order, OrderStatus
from checkout.payment.reconciliation import WebhookReconciler
from checkout.payment.transaction import PaymentTransaction, TransactionStatus
from protean import current_domain


def _order(order_id):
    return current_domain.repository_for(Order).get(order_id)


class TestCustomerCancellation:
    def test_cancel_pending_order(self, placed_order, ledger):
        result, product = placed_order

        outcome = cancel_order_for_customer(result.order_id, "user-1")

        assert outcome.cancelled is True
        assert outcome.message == "Order cancelled"
        order = _order(result.order_id)
        assert order.status == OrderStatus.CANCELLED.value
        assert order.cancellation_reason == "cancelled_by_customer"
        assert ledger.available(str(product.id)) == 10
        transaction = current_domain.repository_for(PaymentTransaction).for_order(result.order_id)
        assert transaction.status == TransactionStatus.FAILED.value

    def test_other_user_cannot_cancel(self, placed_order, ledger):
        result, product = placed_order

        with pytest.raises(NotAuthorized):
            cancel_order_for_customer(result.order_id, "user-2")

        assert _order(result.order_id).status == OrderStatus.PENDING.value
        assert ledger.available(str(product.id)) == 8

    def test_cancelling_twice_releases_once(self, placed_order, ledger):
        result, product = placed_order
        cancel_order_for_customer(result.order_id, "user-1")

        outcome = cancel_order_for_customer(result.order_id, "user-1")

        assert outcome.cancelled is False
        assert outcome.message == "Order already processed"
        assert ledger.available(str(product.id)) == 10

    def test_paid_order_is_already_processed(self, placed_order, gateway, webhook_body, ledger):
        result, product = placed_order
        body = webhook_body("payment.captured", result.order_id, gateway_order_id=result.gateway_order_id)
        WebhookReconciler().handle_webhook(body, gateway.sign_webhook(body))

        outcome = cancel_order_for_customer(result.order_id, "user-1")

        assert outcome.message == "Order already processed"
        assert _order(result.order_id).status == OrderStatus.PAID.value
        assert ledger.available(str(product.id)) == 8

    def test_unknown_order(self):
        with pytest.raises(OrderNotFound):
            cancel_order_for_customer("missing-order", "user-1")


class TestStaleOrderSweep:
    def test_old_pending_orders_are_cancelled(self, placed_order, ledger):
        result, product = placed_order

        report = sweep_stale_orders(as_of=datetime.now(UTC) + timedelta(hours=5))

        assert report.cancelled == [result.order_id]
        order = _order(result.order_id)
        assert order.status == OrderStatus.CANCELLED.value
        assert order.cancellation_reason == "payment_timeout"
        assert ledger.available(str(product.id)) == 10

    def test_recent_orders_are_left_alone(self, placed_order, ledger):
        result, product = placed_order

        report = sweep_stale_orders(as_of=datetime.now(UTC) + timedelta(hours=3))

        assert report.cancelled == []
        assert _order(result.order_id).status == OrderStatus.PENDING.value
        assert ledger.available(str(product.id)) == 8

    def test_custom_threshold(self, placed_order):
        result, _ = placed_order

        report = sweep_stale_orders(as_of=datetime.now(UTC) + timedelta(hours=2), older_than_hours=1)

        assert report.cancelled == [result.order_id]

    def test_paid_orders_are_never_swept(self, placed_order, gateway, webhook_body, ledger):
        result, product = placed_order
        body = webhook_body("payment.captured", result.order_id, gateway_order_id=result.gateway_order_id)
        WebhookReconciler().handle_webhook(body, gateway.sign_webhook(body))

        report = sweep_stale_orders(as_of=datetime.now(UTC) + timedelta(days=1))

        assert report.cancelled == []
        assert ledger.available(str(product.id)) == 8

    def test_one_failure_does_not_stop_the_sweep(self, make_product, fill_cart, checkout_cart, ledger, monkeypatch):
        product = make_product(stock=10)
        fill_cart("user-1", product, quantity=1)
        fill_cart("user-2", product, quantity=1)
        first = checkout_cart("user-1")
        second = checkout_cart("user-2")

        original_release = ledger.release
        calls = []

        def flaky_release(items):
            calls.append(items)
            if len(calls) == 1:
                raise RuntimeError("ledger unavailable")
            original_release(items)

        monkeypatch.setattr(ledger, "release", flaky_release)

        report = sweep_stale_orders(as_of=datetime.now(UTC) + timedelta(hours=5))

        assert len(report.failed) == 1
        assert len(report.cancelled) == 1
        assert set(report.failed + report.cancelled) == {first.order_id, second.order_id}
