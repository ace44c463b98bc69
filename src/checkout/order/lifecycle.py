"""Order lifecycle commands: payment capture, cancellation and refund.

Handlers re-read the order inside their own unit of work. Capture and
cancellation only act while the order is still pending; a refund is recorded
once. They report whether they changed anything, so a duplicate or
out-of-order gateway event turns into a no-op rather than an error.
"""

import structlog
from protean import handle
from protean.fields import Identifier, Integer, String
from protean.utils.globals import current_domain

from checkout.domain import checkout
from checkout.order.order import Order

logger = structlog.get_logger(__name__)


@checkout.command(part_of="Order")
class MarkOrderPaid:
    order_id = Identifier(required=True)
    gateway_payment_id = String(max_length=255)


@checkout.command(part_of="Order")
class CancelOrder:
    order_id = Identifier(required=True)
    reason = String(required=True, max_length=500)


@checkout.command(part_of="Order")
class MarkOrderRefunded:
    order_id = Identifier(required=True)
    amount = Integer(required=True, min_value=1)


@checkout.command_handler(part_of=Order)
class OrderLifecycleHandler:
    @handle(MarkOrderPaid)
    def mark_order_paid(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        if not order.is_pending:
            logger.info("Order not pending, capture ignored", order_id=str(order.id), status=order.status)
            return False

        order.mark_paid(gateway_payment_id=command.gateway_payment_id)
        repo.add(order)
        return True

    @handle(CancelOrder)
    def cancel_order(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        if not order.is_pending:
            logger.info("Order not pending, cancellation ignored", order_id=str(order.id), status=order.status)
            return False

        order.cancel(reason=command.reason)
        repo.add(order)
        return True

    @handle(MarkOrderRefunded)
    def mark_order_refunded(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        changed = order.mark_refunded(command.amount)
        if changed:
            repo.add(order)
        return changed
