"""Webhook reconciler: applies verified gateway events to orders, stock and invoices.

Every state-changing branch is gated on the persisted state it is about to
change, so gateway retries and duplicate deliveries are absorbed as no-ops:

    payment.captured   order pending -> paid, transaction -> success, cart
                       cleared, coupon redeemed; invoice issued if none exists.
                       A capture without a payment id is ignored. A capture
                       for a cancelled order is recorded once for refund.
    payment.failed     only while pending: order cancelled, stock released
    payment.dispute.*  transaction dispute status + audit entry, only for a
                       captured payment and only along the dispute lifecycle;
                       never touches stock or order status
    anything else      acknowledged and ignored
"""

import json
from dataclasses import dataclass

import structlog
from protean.utils.globals import current_domain

from checkout.audit.log import RecordAuditEntry
from checkout.cart.management import ClearCart
from checkout.catalogue.coupon import RedeemCoupon
from checkout.config import get_settings
from checkout.errors import CheckoutValidationError, NotAuthorized, OrderNotFound, SignatureInvalid
from checkout.gateway import get_gateway
from checkout.gateway.port import GatewayEvent
from checkout.invoice.invoice import find_invoice
from checkout.invoice.issuance import ensure_invoice
from checkout.notifications import get_email_adapter
from checkout.notifications.email_port import EmailMessage
from checkout.orchestration.cancellation import CancellationReason, release_and_cancel
from checkout.order.lifecycle import MarkOrderPaid
from checkout.order.order import Order, OrderStatus, load_order
from checkout.payment.recording import RecordDisputeStatus, RecordLateCapture, RecordTransactionCapture
from checkout.payment.transaction import PaymentTransaction, TransactionStatus

logger = structlog.get_logger(__name__)

PAYMENT_CAPTURED = "payment.captured"
PAYMENT_FAILED = "payment.failed"
DISPUTE_PREFIX = "payment.dispute."

DISPUTE_STATUSES = {
    "payment.dispute.created": TransactionStatus.DISPUTE,
    "payment.dispute.under_review": TransactionStatus.DISPUTE,
    "payment.dispute.action_required": TransactionStatus.DISPUTE,
    # won and closed only resolve an open dispute; after a loss they change nothing
    "payment.dispute.won": TransactionStatus.SUCCESS,
    "payment.dispute.closed": TransactionStatus.SUCCESS,
    "payment.dispute.lost": TransactionStatus.DISPUTE_LOST,
}

VERIFICATION_FAILED_MESSAGE = "Payment could not be verified. Please contact support if the amount was debited."


class Outcome:
    CAPTURED = "captured"
    DUPLICATE = "duplicate"
    CANCELLED = "cancelled"
    DISPUTE_UPDATED = "dispute_updated"
    REFUND_REQUIRED = "refund_required"
    IGNORED = "ignored"


@dataclass(frozen=True)
class ReconciliationResult:
    event_type: str
    outcome: str
    order_id: str | None = None
    invoice_number: str | None = None


class WebhookReconciler:
    def __init__(self, gateway=None):
        self.gateway = gateway or get_gateway()

    # -------------------------------------------------------------------
    # Entry points
    # -------------------------------------------------------------------
    def handle_webhook(self, raw_payload: bytes, signature: str | None) -> ReconciliationResult:
        """Verify and apply one webhook delivery.

        Raises:
            SignatureInvalid: when the signature is absent or does not match.
        """
        if not self.gateway.verify_webhook_signature(raw_payload, signature):
            raise SignatureInvalid(detail="Webhook signature missing or invalid")

        try:
            event = self.gateway.parse_event(raw_payload)
        except ValueError as exc:
            logger.warning("Unreadable webhook body acknowledged", error=str(exc))
            return ReconciliationResult(event_type="unknown", outcome=Outcome.IGNORED)

        order_id = self._resolve_order_id(event)
        log = logger.bind(event_type=event.event_type, order_id=order_id)
        log.info("Webhook received", gateway_payment_id=event.gateway_payment_id)

        if event.event_type == PAYMENT_CAPTURED:
            return self.apply_capture(order_id, event.gateway_payment_id)
        if event.event_type == PAYMENT_FAILED:
            return self.apply_failure(order_id, event)
        if event.event_type.startswith(DISPUTE_PREFIX):
            return self.apply_dispute(order_id, event)

        log.info("Unhandled webhook event acknowledged")
        return ReconciliationResult(event_type=event.event_type, outcome=Outcome.IGNORED, order_id=order_id)

    def verify_client_payment(
        self, order_id, user_id, gateway_order_id: str, gateway_payment_id: str, signature: str
    ) -> ReconciliationResult:
        """Apply the capture the checkout UI reports, once its signature checks out."""
        if not self.gateway.verify_payment_signature(gateway_order_id, gateway_payment_id, signature):
            logger.warning("Payment signature mismatch", order_id=str(order_id), gateway_order_id=gateway_order_id)
            raise CheckoutValidationError(VERIFICATION_FAILED_MESSAGE, detail="Payment signature mismatch")

        order = load_order(order_id)
        if str(order.user_id) != str(user_id):
            raise NotAuthorized()

        transaction = current_domain.repository_for(PaymentTransaction).for_order(order.id)
        if transaction is None or transaction.gateway_order_id != gateway_order_id:
            raise CheckoutValidationError(VERIFICATION_FAILED_MESSAGE, detail="Gateway order does not match order")

        return self.apply_capture(str(order.id), gateway_payment_id, signature=signature)

    # -------------------------------------------------------------------
    # Event branches
    # -------------------------------------------------------------------
    def apply_capture(self, order_id, gateway_payment_id, signature=None) -> ReconciliationResult:
        if not gateway_payment_id:
            logger.warning("Capture without a payment id ignored", order_id=order_id)
            return ReconciliationResult(event_type=PAYMENT_CAPTURED, outcome=Outcome.IGNORED, order_id=order_id)

        order = self._find_order(order_id)
        if order is None:
            return ReconciliationResult(event_type=PAYMENT_CAPTURED, outcome=Outcome.IGNORED, order_id=order_id)

        log = logger.bind(order_id=str(order.id), order_number=order.order_number)

        if order.status == OrderStatus.CANCELLED.value:
            recorded = current_domain.process(
                RecordLateCapture(order_id=str(order.id), gateway_payment_id=gateway_payment_id),
                asynchronous=False,
            )
            if not recorded:
                log.info("Capture for cancelled order already on record", gateway_payment_id=gateway_payment_id)
                return ReconciliationResult(
                    event_type=PAYMENT_CAPTURED, outcome=Outcome.DUPLICATE, order_id=str(order.id)
                )

            log.error("Payment captured for a cancelled order, refund required", gateway_payment_id=gateway_payment_id)
            self._audit(
                order,
                "payment.captured_after_cancellation",
                {"gateway_payment_id": gateway_payment_id, "total_amount": order.total_amount},
            )
            return ReconciliationResult(
                event_type=PAYMENT_CAPTURED, outcome=Outcome.REFUND_REQUIRED, order_id=str(order.id)
            )

        transitioned = current_domain.process(
            MarkOrderPaid(order_id=str(order.id), gateway_payment_id=gateway_payment_id),
            asynchronous=False,
        )
        current_domain.process(
            RecordTransactionCapture(
                order_id=str(order.id),
                gateway_payment_id=gateway_payment_id,
                signature=signature,
            ),
            asynchronous=False,
        )

        if transitioned:
            current_domain.process(ClearCart(user_id=str(order.user_id)), asynchronous=False)
            if order.coupon_code:
                current_domain.process(
                    RedeemCoupon(code=order.coupon_code, order_id=str(order.id)),
                    asynchronous=False,
                )
            log.info("Order paid", gateway_payment_id=gateway_payment_id)

        invoice_number = self._issue_invoice_once(str(order.id))
        return ReconciliationResult(
            event_type=PAYMENT_CAPTURED,
            outcome=Outcome.CAPTURED if transitioned else Outcome.DUPLICATE,
            order_id=str(order.id),
            invoice_number=invoice_number,
        )

    def apply_failure(self, order_id, event: GatewayEvent) -> ReconciliationResult:
        order = self._find_order(order_id)
        if order is None:
            return ReconciliationResult(event_type=PAYMENT_FAILED, outcome=Outcome.IGNORED, order_id=order_id)

        if not order.is_pending:
            logger.info("Payment failure ignored, order not pending", order_id=str(order.id), status=order.status)
            return ReconciliationResult(event_type=PAYMENT_FAILED, outcome=Outcome.IGNORED, order_id=str(order.id))

        cancelled = release_and_cancel(order, CancellationReason.PAYMENT_FAILED, event.gateway_payment_id)
        return ReconciliationResult(
            event_type=PAYMENT_FAILED,
            outcome=Outcome.CANCELLED if cancelled else Outcome.IGNORED,
            order_id=str(order.id),
        )

    def apply_dispute(self, order_id, event: GatewayEvent) -> ReconciliationResult:
        status = DISPUTE_STATUSES.get(event.event_type)
        order = self._find_order(order_id)
        if status is None or order is None:
            logger.info("Dispute event ignored", event_type=event.event_type, order_id=order_id)
            return ReconciliationResult(event_type=event.event_type, outcome=Outcome.IGNORED, order_id=order_id)

        changed = current_domain.process(
            RecordDisputeStatus(order_id=str(order.id), status=status.value, gateway_event=event.event_type),
            asynchronous=False,
        )
        if not changed:
            transaction = current_domain.repository_for(PaymentTransaction).for_order(order.id)
            repeated = transaction is not None and transaction.status == status.value
            logger.info(
                "Dispute event not applied",
                order_id=str(order.id),
                event_type=event.event_type,
                transaction_status=transaction.status if transaction else None,
            )
            return ReconciliationResult(
                event_type=event.event_type,
                outcome=Outcome.DUPLICATE if repeated else Outcome.IGNORED,
                order_id=str(order.id),
            )

        dispute = ((event.raw.get("payload") or {}).get("dispute") or {}).get("entity") or {}
        self._audit(
            order,
            event.event_type,
            {
                "dispute_id": dispute.get("id"),
                "amount": dispute.get("amount"),
                "reason_code": dispute.get("reason_code"),
                "gateway_payment_id": event.gateway_payment_id,
                "transaction_status": status.value,
            },
        )
        logger.info("Dispute recorded", order_id=str(order.id), event_type=event.event_type, status=status.value)
        return ReconciliationResult(
            event_type=event.event_type, outcome=Outcome.DISPUTE_UPDATED, order_id=str(order.id)
        )

    # -------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------
    def _resolve_order_id(self, event: GatewayEvent) -> str | None:
        if event.order_id:
            return event.order_id
        if event.gateway_order_id:
            transaction = current_domain.repository_for(PaymentTransaction).by_gateway_order_id(event.gateway_order_id)
            if transaction is not None:
                return str(transaction.order_id)
        return None

    def _find_order(self, order_id) -> Order | None:
        if not order_id:
            logger.warning("Gateway event carries no order reference")
            return None
        try:
            return load_order(order_id)
        except OrderNotFound:
            logger.warning("Gateway event for unknown order", order_id=str(order_id))
            return None

    def _issue_invoice_once(self, order_id: str) -> str | None:
        """Issue the invoice if the order has none yet, then email it."""
        existing = find_invoice(order_id)
        if existing is not None:
            return existing.invoice_number

        try:
            result = ensure_invoice(order_id)
        except Exception:
            # The order stays paid; the invoice can be regenerated on demand
            logger.exception("Invoice generation failed after capture", order_id=order_id)
            return None

        if result.newly_issued:
            send_invoice_email(load_order(order_id), result.invoice_number, result.pdf_url)
        return result.invoice_number

    def _audit(self, order: Order, action: str, details: dict) -> None:
        current_domain.process(
            RecordAuditEntry(
                actor="payment_gateway",
                action=action,
                entity_type="order",
                entity_id=str(order.id),
                details=json.dumps(details),
            ),
            asynchronous=False,
        )


def send_invoice_email(order: Order, invoice_number: str, pdf_url: str) -> bool:
    """Email the invoice link to the order's contact address. Failures are logged, never raised."""
    address = order.shipping_address
    recipient = address.email if address else None
    if not recipient:
        logger.info("No contact email on order, invoice email skipped", order_id=str(order.id))
        return False

    body = (
        f"Thank you for your order {order.order_number}.\n\n"
        f"Your invoice {invoice_number} for {order.currency} {order.total_amount} is available at:\n{pdf_url}\n"
    )
    html_body = (
        f"<p>Thank you for your order <strong>{order.order_number}</strong>.</p>"
        f'<p>Your invoice {invoice_number} is available <a href="{pdf_url}">here</a>.</p>'
    )
    message = EmailMessage(
        to=recipient,
        subject=f"Invoice {invoice_number} for order {order.order_number}",
        text=body,
        html=html_body,
        reply_to=get_settings().store_support_email,
    )
    try:
        result = get_email_adapter().send(message)
    except Exception:
        logger.exception("Invoice email failed", order_id=str(order.id))
        return False

    if not result.delivered:
        logger.warning("Invoice email not delivered", order_id=str(order.id), error=result.error)
        return False
    return True
