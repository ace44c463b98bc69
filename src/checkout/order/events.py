"""Domain events for the Order aggregate."""

from protean.fields import DateTime, Identifier, Integer, String

from checkout.domain import checkout


@checkout.event(part_of="Order")
class OrderPlaced:
    """A priced, stock-backed order was persisted and awaits payment."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    user_id = Identifier(required=True)
    total_amount = Integer(required=True)
    currency = String(required=True)
    item_count = Integer(required=True)
    coupon_code = String()
    placed_at = DateTime(required=True)


@checkout.event(part_of="Order")
class OrderPaid:
    """The gateway confirmed capture of the order's payment."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    user_id = Identifier(required=True)
    gateway_payment_id = String()
    total_amount = Integer(required=True)
    paid_at = DateTime(required=True)


@checkout.event(part_of="Order")
class OrderCancelled:
    """A pending order was cancelled and its stock returned."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    user_id = Identifier(required=True)
    reason = String(required=True)
    cancelled_at = DateTime(required=True)


@checkout.event(part_of="Order")
class OrderRefunded:
    """Money captured for the order was returned to the customer."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    user_id = Identifier(required=True)
    amount = Integer(required=True)
    refunded_at = DateTime(required=True)
