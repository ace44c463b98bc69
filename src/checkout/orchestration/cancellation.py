"""Cancelling pending orders and returning their stock.

Three callers share ``release_and_cancel``: the payment-failed webhook, a
customer cancelling their own order, and the stale-order sweep. The order
transition runs first and is gated on the order still being pending, so
only the caller that actually cancelled it releases stock. A capture that
won the race leaves the stock alone.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta

import structlog
from protean.utils.globals import current_domain

from checkout.config import get_settings
from checkout.errors import NotAuthorized
from checkout.inventory import get_ledger
from checkout.order.lifecycle import CancelOrder
from checkout.order.order import Order, load_order
from checkout.payment.recording import RecordTransactionFailure

logger = structlog.get_logger(__name__)


class CancellationReason:
    PAYMENT_FAILED = "payment_failed"
    CUSTOMER_CANCELLED = "cancelled_by_customer"
    STALE = "payment_timeout"


def release_and_cancel(order: Order, reason: str, gateway_payment_id: str | None = None) -> bool:
    """Cancel a pending order, then release exactly the stock its items hold.

    Returns False, touching nothing, when the order is no longer pending.
    """
    cancelled = current_domain.process(CancelOrder(order_id=str(order.id), reason=reason), asynchronous=False)
    if not cancelled:
        return False

    get_ledger().release(order.reservation_items())
    current_domain.process(
        RecordTransactionFailure(order_id=str(order.id), gateway_payment_id=gateway_payment_id),
        asynchronous=False,
    )
    logger.info("Order cancelled and stock released", order_id=str(order.id), reason=reason)
    return True


@dataclass(frozen=True)
class CancellationOutcome:
    order_id: str
    cancelled: bool
    message: str


def cancel_order_for_customer(order_id, user_id) -> CancellationOutcome:
    """Cancel the caller's own pending order. Already-settled orders are reported, not rejected."""
    order = load_order(order_id)
    if str(order.user_id) != str(user_id):
        raise NotAuthorized()

    if not order.is_pending:
        return CancellationOutcome(order_id=str(order.id), cancelled=False, message="Order already processed")

    cancelled = release_and_cancel(order, CancellationReason.CUSTOMER_CANCELLED)
    return CancellationOutcome(
        order_id=str(order.id),
        cancelled=cancelled,
        message="Order cancelled" if cancelled else "Order already processed",
    )


@dataclass
class SweepReport:
    cutoff: datetime
    cancelled: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)


def sweep_stale_orders(as_of: datetime | None = None, older_than_hours: int | None = None) -> SweepReport:
    """Cancel every pending order older than the threshold and release its stock.

    A failure on one order is logged and recorded; the sweep carries on.
    """
    as_of = as_of or datetime.now(UTC)
    hours = older_than_hours or get_settings().stale_order_hours
    report = SweepReport(cutoff=as_of - timedelta(hours=hours))

    stale = current_domain.repository_for(Order).stale_pending(report.cutoff)
    logger.info("Sweeping stale pending orders", cutoff=report.cutoff.isoformat(), candidates=len(stale))

    for order in stale:
        try:
            if release_and_cancel(order, CancellationReason.STALE):
                report.cancelled.append(str(order.id))
            else:
                report.skipped.append(str(order.id))
        except Exception:
            logger.exception("Failed to cancel stale order", order_id=str(order.id))
            report.failed.append(str(order.id))

    logger.info(
        "Stale order sweep finished",
        cancelled=len(report.cancelled),
        skipped=len(report.skipped),
        failed=len(report.failed),
    )
    return report
