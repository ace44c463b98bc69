"""Admin refunds of captured payments.

The gateway refund runs first and local records change only after the money
has moved. A transaction leaves ``success`` for ``refunded`` once, so a repeat
request for the same payment is rejected before it reaches the gateway.
Coupon usage is handed back only for orders that were paid, since only those
redeemed it.
"""

import json
from dataclasses import dataclass

import structlog
from protean.utils.globals import current_domain

from checkout.audit.log import RecordAuditEntry
from checkout.catalogue.coupon import RestoreCouponUsage
from checkout.errors import (
    CheckoutValidationError,
    GatewayUnavailable,
    NotAuthorized,
    PaymentNotRefundable,
)
from checkout.gateway import get_gateway
from checkout.gateway.port import GatewayError
from checkout.identity.role import is_admin
from checkout.order.lifecycle import MarkOrderRefunded
from checkout.order.order import OrderStatus, load_order
from checkout.payment.recording import RecordTransactionRefund
from checkout.payment.transaction import PaymentTransaction

logger = structlog.get_logger(__name__)

DEFAULT_REASON = "Admin initiated refund"


@dataclass(frozen=True)
class RefundResult:
    order_id: str
    transaction_id: str
    gateway_refund_id: str
    amount: int
    coupon_restored: bool


def refund_order(order_id, requested_by, amount: int | None = None, reason: str | None = None) -> RefundResult:
    """Refund ``amount`` (the full amount paid when omitted) of an order's captured payment.

    Raises:
        NotAuthorized: unless ``requested_by`` is an admin.
        PaymentNotRefundable: when the payment is not captured, is disputed or was already refunded.
        CheckoutValidationError: when ``amount`` is not between 1 and the amount paid.
        GatewayUnavailable: when the gateway refuses or cannot be reached.
    """
    if not is_admin(requested_by):
        raise NotAuthorized("Only administrators can issue refunds.")

    order = load_order(order_id)
    reason = reason or DEFAULT_REASON
    log = logger.bind(order_id=str(order.id), order_number=order.order_number, requested_by=str(requested_by))

    transaction = current_domain.repository_for(PaymentTransaction).for_order(order.id)
    if transaction is None or not transaction.is_refundable:
        raise PaymentNotRefundable(
            detail=f"Transaction status {transaction.status if transaction else None} is not refundable"
        )

    amount = transaction.amount if amount is None else amount
    if amount < 1 or amount > transaction.amount:
        raise CheckoutValidationError(
            "Refund amount must be at least 1 and no more than the amount paid.",
            detail=f"Requested {amount}, paid {transaction.amount}",
        )

    try:
        refund = get_gateway().refund(
            transaction.gateway_payment_id,
            amount * 100,
            notes={"order_id": str(order.id), "reason": reason},
        )
    except GatewayError as exc:
        log.error("Gateway refund failed", error=str(exc))
        raise GatewayUnavailable(detail=str(exc)) from exc

    current_domain.process(
        RecordTransactionRefund(order_id=str(order.id), gateway_refund_id=refund.refund_id, amount=amount),
        asynchronous=False,
    )
    current_domain.process(MarkOrderRefunded(order_id=str(order.id), amount=amount), asynchronous=False)

    coupon_restored = False
    if order.coupon_code and order.status == OrderStatus.PAID.value:
        coupon_restored = current_domain.process(
            RestoreCouponUsage(code=order.coupon_code, order_id=str(order.id)),
            asynchronous=False,
        )

    current_domain.process(
        RecordAuditEntry(
            actor=str(requested_by),
            action="refund_processed",
            entity_type="payment",
            entity_id=str(transaction.id),
            details=json.dumps(
                {
                    "order_id": str(order.id),
                    "amount": amount,
                    "gateway_refund_id": refund.refund_id,
                    "reason": reason,
                }
            ),
        ),
        asynchronous=False,
    )
    log.info("Refund processed", amount=amount, gateway_refund_id=refund.refund_id)

    return RefundResult(
        order_id=str(order.id),
        transaction_id=str(transaction.id),
        gateway_refund_id=refund.refund_id,
        amount=amount,
        coupon_restored=bool(coupon_restored),
    )
