"""Coupon aggregate, its lookup repository and the redemption commands."""

from datetime import UTC

from protean import handle
from protean.fields import Boolean, DateTime, Float, Identifier, Integer, String
from protean.utils.globals import current_domain

from checkout.catalogue.events import CouponRedeemed, CouponUsageRestored
from checkout.domain import checkout
from checkout.pricing.engine import CouponTerms, DiscountType


@checkout.aggregate
class Coupon:
    code = String(required=True, max_length=50, unique=True)
    discount_type = String(required=True, choices=DiscountType, default=DiscountType.PERCENTAGE.value)
    discount_value = Float(default=0.0, min_value=0.0)
    min_order_value = Float(default=0.0, min_value=0.0)
    max_discount_amount = Float(min_value=0.0)
    usage_limit = Integer(min_value=0)
    times_used = Integer(default=0, min_value=0)
    valid_until = DateTime()
    is_active = Boolean(default=True)

    def terms(self) -> CouponTerms:
        valid_until = self.valid_until
        if valid_until is not None and valid_until.tzinfo is None:
            valid_until = valid_until.replace(tzinfo=UTC)
        return CouponTerms(
            code=self.code,
            discount_type=self.discount_type,
            discount_value=self.discount_value or 0.0,
            min_order_value=self.min_order_value or 0.0,
            max_discount_amount=self.max_discount_amount,
            usage_limit=self.usage_limit,
            times_used=self.times_used or 0,
            valid_until=valid_until,
            is_active=bool(self.is_active),
        )

    def redeem(self, order_id):
        self.times_used = (self.times_used or 0) + 1
        self.raise_(
            CouponRedeemed(
                coupon_id=str(self.id),
                code=self.code,
                order_id=str(order_id),
                times_used=self.times_used,
            )
        )

    def restore_usage(self, order_id):
        self.times_used = max(0, (self.times_used or 0) - 1)
        self.raise_(
            CouponUsageRestored(
                coupon_id=str(self.id),
                code=self.code,
                order_id=str(order_id),
                times_used=self.times_used,
            )
        )


@checkout.repository(part_of=Coupon)
class CouponRepository:
    def find_by_code(self, code: str) -> Coupon | None:
        """Case-insensitive coupon lookup. Codes are stored upper-cased."""
        if not code:
            return None
        results = self._dao.query.filter(code=code.strip().upper()).all().items
        return results[0] if results else None


def normalize_code(code: str | None) -> str | None:
    return code.strip().upper() if code and code.strip() else None


@checkout.command(part_of="Coupon")
class RedeemCoupon:
    code = String(required=True, max_length=50)
    order_id = Identifier(required=True)


@checkout.command(part_of="Coupon")
class RestoreCouponUsage:
    code = String(required=True, max_length=50)
    order_id = Identifier(required=True)


@checkout.command_handler(part_of=Coupon)
class CouponUsageHandler:
    @handle(RedeemCoupon)
    def redeem_coupon(self, command):
        repo = current_domain.repository_for(Coupon)
        coupon = repo.find_by_code(command.code)
        if coupon is None:
            return False
        coupon.redeem(command.order_id)
        repo.add(coupon)
        return True

    @handle(RestoreCouponUsage)
    def restore_coupon_usage(self, command):
        repo = current_domain.repository_for(Coupon)
        coupon = repo.find_by_code(command.code)
        if coupon is None:
            return False
        coupon.restore_usage(command.order_id)
        repo.add(coupon)
        return True
