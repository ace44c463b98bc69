"""PaymentTransaction aggregate (CQRS): one remote payment attempt for an order.

State Machine:
    CREATED -> SUCCESS | FAILED
    FAILED -> SUCCESS       (capture reported after the order was cancelled)
    SUCCESS -> DISPUTE | REFUNDED
    DISPUTE -> SUCCESS (won/closed) | DISPUTE_LOST (lost)
    DISPUTE_LOST and REFUNDED are terminal.
"""

from datetime import UTC, datetime
from enum import Enum

from protean.fields import DateTime, Identifier, Integer, String

from checkout.domain import checkout
from checkout.payment.events import (
    DisputeStatusChanged,
    TransactionCaptured,
    TransactionFailed,
    TransactionOpened,
    TransactionRefunded,
)


class TransactionStatus(Enum):
    CREATED = "created"
    SUCCESS = "success"
    FAILED = "failed"
    DISPUTE = "dispute"
    DISPUTE_LOST = "dispute_lost"
    REFUNDED = "refunded"


_DISPUTE_TRANSITIONS = {
    TransactionStatus.SUCCESS: {TransactionStatus.DISPUTE},
    TransactionStatus.DISPUTE: {TransactionStatus.SUCCESS, TransactionStatus.DISPUTE_LOST},
}


@checkout.aggregate
class PaymentTransaction:
    order_id = Identifier(required=True)
    gateway_order_id = String(required=True, max_length=255)
    gateway_payment_id = String(max_length=255)
    gateway_signature = String(max_length=255)
    gateway_refund_id = String(max_length=255)
    amount = Integer(required=True, min_value=0)
    refunded_amount = Integer(min_value=0)
    currency = String(max_length=3, default="INR")
    status = String(choices=TransactionStatus, default=TransactionStatus.CREATED.value)
    created_at = DateTime()
    updated_at = DateTime()

    @classmethod
    def open(cls, order_id, gateway_order_id, amount, currency):
        now = datetime.now(UTC)
        transaction = cls(
            order_id=order_id,
            gateway_order_id=gateway_order_id,
            amount=amount,
            currency=currency,
            status=TransactionStatus.CREATED.value,
            created_at=now,
            updated_at=now,
        )
        transaction.raise_(
            TransactionOpened(
                transaction_id=str(transaction.id),
                order_id=str(order_id),
                gateway_order_id=gateway_order_id,
                amount=amount,
                currency=currency,
                opened_at=now,
            )
        )
        return transaction

    def record_capture(self, gateway_payment_id, signature=None) -> bool:
        """Mark the attempt captured. Returns False when it already left CREATED."""
        if self.status != TransactionStatus.CREATED.value:
            return False
        return self._capture(gateway_payment_id, signature)

    def record_late_capture(self, gateway_payment_id) -> bool:
        """Record money taken for an order that was already cancelled, so it can be refunded.

        Returns False once the capture is on record or the payment has moved on.
        """
        if self.status not in (TransactionStatus.CREATED.value, TransactionStatus.FAILED.value):
            return False
        return self._capture(gateway_payment_id)

    def _capture(self, gateway_payment_id, signature=None) -> bool:
        now = datetime.now(UTC)
        self.status = TransactionStatus.SUCCESS.value
        self.gateway_payment_id = gateway_payment_id
        if signature:
            self.gateway_signature = signature
        self.updated_at = now

        self.raise_(
            TransactionCaptured(
                transaction_id=str(self.id),
                order_id=str(self.order_id),
                gateway_payment_id=gateway_payment_id,
                captured_at=now,
            )
        )
        return True

    def record_failure(self, gateway_payment_id=None) -> bool:
        if self.status != TransactionStatus.CREATED.value:
            return False

        now = datetime.now(UTC)
        self.status = TransactionStatus.FAILED.value
        if gateway_payment_id:
            self.gateway_payment_id = gateway_payment_id
        self.updated_at = now

        self.raise_(
            TransactionFailed(
                transaction_id=str(self.id),
                order_id=str(self.order_id),
                gateway_payment_id=gateway_payment_id,
                failed_at=now,
            )
        )
        return True

    def record_dispute_status(self, new_status: TransactionStatus, gateway_event: str) -> bool:
        """Move along the dispute lifecycle.

        Only captured payments can be disputed, and a lost dispute is final.
        Repeated or out-of-order statuses return False and change nothing.
        """
        current = TransactionStatus(self.status)
        if new_status not in _DISPUTE_TRANSITIONS.get(current, set()):
            return False

        previous_status = self.status
        now = datetime.now(UTC)
        self.status = new_status.value
        self.updated_at = now

        self.raise_(
            DisputeStatusChanged(
                transaction_id=str(self.id),
                order_id=str(self.order_id),
                previous_status=previous_status,
                new_status=new_status.value,
                gateway_event=gateway_event,
                changed_at=now,
            )
        )
        return True

    @property
    def is_refundable(self) -> bool:
        return self.status == TransactionStatus.SUCCESS.value and bool(self.gateway_payment_id)

    def record_refund(self, gateway_refund_id, amount) -> bool:
        if not self.is_refundable:
            return False

        now = datetime.now(UTC)
        self.status = TransactionStatus.REFUNDED.value
        self.gateway_refund_id = gateway_refund_id
        self.refunded_amount = amount
        self.updated_at = now

        self.raise_(
            TransactionRefunded(
                transaction_id=str(self.id),
                order_id=str(self.order_id),
                gateway_payment_id=self.gateway_payment_id,
                gateway_refund_id=gateway_refund_id,
                amount=amount,
                refunded_at=now,
            )
        )
        return True


@checkout.repository(part_of=PaymentTransaction)
class PaymentTransactionRepository:
    def for_order(self, order_id) -> PaymentTransaction | None:
        """The most recent transaction opened for ``order_id``."""
        results = self._dao.query.filter(order_id=str(order_id)).all().items
        if not results:
            return None
        return max(results, key=lambda t: t.created_at.timestamp() if t.created_at else 0.0)

    def by_gateway_order_id(self, gateway_order_id) -> PaymentTransaction | None:
        results = self._dao.query.filter(gateway_order_id=gateway_order_id).all().items
        return results[0] if results else None
