"""Payment transaction commands and handler.

Handlers look the transaction up by order id. A missing transaction is
logged and reported as "nothing changed" instead of raising, since gateway
callbacks can arrive for attempts this store never opened.
"""

import structlog
from protean import handle
from protean.fields import Identifier, Integer, String
from protean.utils.globals import current_domain

from checkout.domain import checkout
from checkout.payment.transaction import PaymentTransaction, TransactionStatus

logger = structlog.get_logger(__name__)


@checkout.command(part_of="PaymentTransaction")
class OpenTransaction:
    order_id = Identifier(required=True)
    gateway_order_id = String(required=True, max_length=255)
    amount = Integer(required=True)
    currency = String(max_length=3, default="INR")


@checkout.command(part_of="PaymentTransaction")
class RecordTransactionCapture:
    order_id = Identifier(required=True)
    gateway_payment_id = String(required=True, max_length=255)
    signature = String(max_length=255)


@checkout.command(part_of="PaymentTransaction")
class RecordLateCapture:
    order_id = Identifier(required=True)
    gateway_payment_id = String(required=True, max_length=255)


@checkout.command(part_of="PaymentTransaction")
class RecordTransactionFailure:
    order_id = Identifier(required=True)
    gateway_payment_id = String(max_length=255)


@checkout.command(part_of="PaymentTransaction")
class RecordDisputeStatus:
    order_id = Identifier(required=True)
    status = String(required=True, choices=TransactionStatus)
    gateway_event = String(required=True, max_length=100)


@checkout.command(part_of="PaymentTransaction")
class RecordTransactionRefund:
    order_id = Identifier(required=True)
    gateway_refund_id = String(required=True, max_length=255)
    amount = Integer(required=True, min_value=1)


@checkout.command_handler(part_of=PaymentTransaction)
class PaymentTransactionHandler:
    @handle(OpenTransaction)
    def open_transaction(self, command):
        transaction = PaymentTransaction.open(
            order_id=command.order_id,
            gateway_order_id=command.gateway_order_id,
            amount=command.amount,
            currency=command.currency or "INR",
        )
        current_domain.repository_for(PaymentTransaction).add(transaction)
        return str(transaction.id)

    @handle(RecordTransactionCapture)
    def record_capture(self, command):
        repo = current_domain.repository_for(PaymentTransaction)
        transaction = repo.for_order(command.order_id)
        if transaction is None:
            logger.warning("No payment transaction for order", order_id=str(command.order_id))
            return False

        changed = transaction.record_capture(command.gateway_payment_id, signature=command.signature)
        if changed:
            repo.add(transaction)
        return changed

    @handle(RecordTransactionFailure)
    def record_failure(self, command):
        repo = current_domain.repository_for(PaymentTransaction)
        transaction = repo.for_order(command.order_id)
        if transaction is None:
            logger.warning("No payment transaction for order", order_id=str(command.order_id))
            return False

        changed = transaction.record_failure(command.gateway_payment_id)
        if changed:
            repo.add(transaction)
        return changed

    @handle(RecordDisputeStatus)
    def record_dispute_status(self, command):
        repo = current_domain.repository_for(PaymentTransaction)
        transaction = repo.for_order(command.order_id)
        if transaction is None:
            logger.warning("No payment transaction for order", order_id=str(command.order_id))
            return False

        changed = transaction.record_dispute_status(TransactionStatus(command.status), command.gateway_event)
        if changed:
            repo.add(transaction)
        return changed

    @handle(RecordLateCapture)
    def record_late_capture(self, command):
        repo = current_domain.repository_for(PaymentTransaction)
        transaction = repo.for_order(command.order_id)
        if transaction is None:
            logger.warning("No payment transaction for order", order_id=str(command.order_id))
            return False

        changed = transaction.record_late_capture(command.gateway_payment_id)
        if changed:
            repo.add(transaction)
        return changed

    @handle(RecordTransactionRefund)
    def record_refund(self, command):
        repo = current_domain.repository_for(PaymentTransaction)
        transaction = repo.for_order(command.order_id)
        if transaction is None:
            logger.warning("No payment transaction for order", order_id=str(command.order_id))
            return False

        changed = transaction.record_refund(command.gateway_refund_id, command.amount)
        if changed:
            repo.add(transaction)
        return changed
