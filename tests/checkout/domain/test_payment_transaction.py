"""Domain tests for the PaymentTransaction aggregate.

Covers:
- created -> success and created -> failed, each only once
- late capture after a failure, recorded once
- dispute lifecycle: dispute, won/closed back to success, lost
- repeated, out-of-order and uncaptured dispute statuses are no-ops
- refunds only from a captured, undisputed payment
"""

from checkout.payment.events import DisputeStatusChanged, TransactionCaptured, TransactionRefunded
from checkout.payment.transaction import PaymentTransaction, TransactionStatus


def _open():
    return PaymentTransaction.open(order_id="order-1", gateway_order_id="order_gw1", amount=1000, currency="INR")


class TestCaptureAndFailure:
    def test_open_starts_created(self):
        transaction = _open()

        assert transaction.status == TransactionStatus.CREATED.value
        assert transaction.amount == 1000

    def test_capture_records_payment_id_and_signature(self):
        transaction = _open()

        assert transaction.record_capture("pay_1", signature="sig") is True
        assert transaction.status == TransactionStatus.SUCCESS.value
        assert transaction.gateway_payment_id == "pay_1"
        assert transaction.gateway_signature == "sig"
        assert isinstance(transaction._events[-1], TransactionCaptured)

    def test_second_capture_is_a_noop(self):
        transaction = _open()
        transaction.record_capture("pay_1")
        event_count = len(transaction._events)

        assert transaction.record_capture("pay_2") is False
        assert transaction.gateway_payment_id == "pay_1"
        assert len(transaction._events) == event_count

    def test_failure_after_capture_is_a_noop(self):
        transaction = _open()
        transaction.record_capture("pay_1")

        assert transaction.record_failure("pay_1") is False
        assert transaction.status == TransactionStatus.SUCCESS.value

    def test_failure_from_created(self):
        transaction = _open()

        assert transaction.record_failure("pay_9") is True
        assert transaction.status == TransactionStatus.FAILED.value

    def test_late_capture_after_failure(self):
        transaction = _open()
        transaction.record_failure("pay_1")

        assert transaction.record_late_capture("pay_2") is True
        assert transaction.status == TransactionStatus.SUCCESS.value
        assert transaction.gateway_payment_id == "pay_2"
        assert transaction.record_late_capture("pay_2") is False


class TestDisputes:
    def test_dispute_then_won(self):
        transaction = _open()
        transaction.record_capture("pay_1")

        assert transaction.record_dispute_status(TransactionStatus.DISPUTE, "payment.dispute.created")
        assert transaction.status == TransactionStatus.DISPUTE.value

        assert transaction.record_dispute_status(TransactionStatus.SUCCESS, "payment.dispute.won")
        assert transaction.status == TransactionStatus.SUCCESS.value

    def test_dispute_lost(self):
        transaction = _open()
        transaction.record_capture("pay_1")
        transaction.record_dispute_status(TransactionStatus.DISPUTE, "payment.dispute.created")

        transaction.record_dispute_status(TransactionStatus.DISPUTE_LOST, "payment.dispute.lost")

        assert transaction.status == TransactionStatus.DISPUTE_LOST.value
        event = transaction._events[-1]
        assert isinstance(event, DisputeStatusChanged)
        assert event.previous_status == TransactionStatus.DISPUTE.value

    def test_repeated_status_is_a_noop(self):
        transaction = _open()
        transaction.record_capture("pay_1")
        transaction.record_dispute_status(TransactionStatus.DISPUTE, "payment.dispute.created")
        event_count = len(transaction._events)

        assert transaction.record_dispute_status(TransactionStatus.DISPUTE, "payment.dispute.under_review") is False
        assert len(transaction._events) == event_count

    def test_lost_dispute_is_terminal(self):
        transaction = _open()
        transaction.record_capture("pay_1")
        transaction.record_dispute_status(TransactionStatus.DISPUTE, "payment.dispute.created")
        transaction.record_dispute_status(TransactionStatus.DISPUTE_LOST, "payment.dispute.lost")

        assert transaction.record_dispute_status(TransactionStatus.SUCCESS, "payment.dispute.closed") is False
        assert transaction.record_dispute_status(TransactionStatus.DISPUTE, "payment.dispute.created") is False
        assert transaction.status == TransactionStatus.DISPUTE_LOST.value

    def test_uncaptured_payment_cannot_be_disputed(self):
        transaction = _open()
        transaction.record_failure("pay_1")

        assert transaction.record_dispute_status(TransactionStatus.SUCCESS, "payment.dispute.won") is False
        assert transaction.record_dispute_status(TransactionStatus.DISPUTE, "payment.dispute.created") is False
        assert transaction.status == TransactionStatus.FAILED.value

    def test_won_needs_an_open_dispute(self):
        transaction = _open()
        transaction.record_capture("pay_1")
        event_count = len(transaction._events)

        assert transaction.record_dispute_status(TransactionStatus.SUCCESS, "payment.dispute.won") is False
        assert len(transaction._events) == event_count


class TestRefunds:
    def test_refund_captured_payment(self):
        transaction = _open()
        transaction.record_capture("pay_1")

        assert transaction.record_refund("rfnd_1", 1000) is True
        assert transaction.status == TransactionStatus.REFUNDED.value
        assert transaction.gateway_refund_id == "rfnd_1"
        assert transaction.refunded_amount == 1000
        assert isinstance(transaction._events[-1], TransactionRefunded)

    def test_refund_only_once(self):
        transaction = _open()
        transaction.record_capture("pay_1")
        transaction.record_refund("rfnd_1", 1000)

        assert transaction.record_refund("rfnd_2", 1000) is False
        assert transaction.gateway_refund_id == "rfnd_1"

    def test_uncaptured_or_disputed_payment_is_not_refundable(self):
        pending = _open()
        disputed = _open()
        disputed.record_capture("pay_1")
        disputed.record_dispute_status(TransactionStatus.DISPUTE, "payment.dispute.created")

        assert pending.is_refundable is False
        assert disputed.is_refundable is False
        assert pending.record_refund("rfnd_1", 1000) is False
