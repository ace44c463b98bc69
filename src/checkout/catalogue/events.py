"""Domain events for catalogue records that checkout mutates."""

from protean.fields import Identifier, Integer, String

from checkout.domain import checkout


@checkout.event(part_of="Coupon")
class CouponRedeemed:
    """A coupon was used by an order whose payment was captured."""

    __version__ = 1

    coupon_id = Identifier(required=True)
    code = String(required=True)
    order_id = Identifier(required=True)
    times_used = Integer(required=True)


@checkout.event(part_of="Coupon")
class CouponUsageRestored:
    """A refunded order gave back its coupon use."""

    __version__ = 1

    coupon_id = Identifier(required=True)
    code = String(required=True)
    order_id = Identifier(required=True)
    times_used = Integer(required=True)
