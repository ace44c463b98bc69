"""Pricing Engine: authoritative, server-side order totals.

Nothing in here trusts a client-supplied price. Callers hand in the live
catalogue figures for each cart line (product base/discount price, variant
overrides, bundle rule) plus an optional coupon and the store's shipping
terms, and get back a ``PricedOrder``.

Rules:
    unit price   = variant absolute price, else base + variant adjustment,
                   else product discount price, else base price
    bundle       = fixed            -> price_value x bundle quantity
                   percentage_disc. -> member subtotal x (1 - pct/100)
                   fixed_discount   -> max(0, member subtotal - value x bundle qty)
    coupon       = applied once to the combined subtotal; invalid coupons
                   silently count as no coupon
    shipping     = 0 when subtotal >= threshold or coupon waives it
    grand total  = max(0, subtotal + shipping - discount), rounded half-up
                   to a whole currency unit

The module is pure: no repositories, no clock unless one is passed in.
"""

import math
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum


class BundlePriceType(Enum):
    FIXED = "fixed"
    PERCENTAGE_DISCOUNT = "percentage_discount"
    FIXED_DISCOUNT = "fixed_discount"


class DiscountType(Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"
    FREE_SHIPPING = "free_shipping"


# ---------------------------------------------------------------------------
# Inputs
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class CatalogPrice:
    """Live catalogue figures for one cart line."""

    base_price: float
    discount_price: float | None = None
    variant_absolute_price: float | None = None
    variant_price_adjustment: float | None = None


@dataclass(frozen=True)
class BundleTerms:
    bundle_id: str
    price_type: str
    price_value: float


@dataclass(frozen=True)
class PricingLine:
    product_id: str
    quantity: int
    price: CatalogPrice
    variant_id: str | None = None
    bundle: BundleTerms | None = None


@dataclass(frozen=True)
class CouponTerms:
    code: str
    discount_type: str
    discount_value: float
    min_order_value: float = 0.0
    max_discount_amount: float | None = None
    usage_limit: int | None = None
    times_used: int = 0
    valid_until: datetime | None = None
    is_active: bool = True

    def is_applicable(self, subtotal: float, now: datetime) -> bool:
        if not self.is_active:
            return False
        if self.valid_until is not None and self.valid_until < now:
            return False
        if self.usage_limit is not None and self.times_used >= self.usage_limit:
            return False
        return subtotal >= (self.min_order_value or 0.0)


@dataclass(frozen=True)
class ShippingTerms:
    flat_cost: float
    free_shipping_threshold: float


# ---------------------------------------------------------------------------
# Outputs
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class PricedLine:
    product_id: str
    variant_id: str | None
    bundle_id: str | None
    unit_price: float
    quantity: int
    line_total: float


@dataclass(frozen=True)
class BundleGroup:
    bundle_id: str
    price_type: str
    price_value: float
    member_lines: tuple[PricedLine, ...]
    price: float


@dataclass(frozen=True)
class PricedOrder:
    lines: tuple[PricedLine, ...]
    bundles: tuple[BundleGroup, ...]
    subtotal: float
    discount: float
    shipping: float
    grand_total: int
    coupon_code: str | None = None
    free_shipping: bool = False
    bundle_adjustment: float = field(default=0.0)


# ---------------------------------------------------------------------------
# Rules
# ---------------------------------------------------------------------------
def resolve_unit_price(price: CatalogPrice) -> float:
    """Resolve the authoritative unit price for one line.

    Zero-valued overrides count as "not set", matching how the catalogue
    stores absent variant pricing.
    """
    if price.variant_absolute_price:
        return float(price.variant_absolute_price)
    if price.variant_price_adjustment:
        return float(price.base_price) + float(price.variant_price_adjustment)
    return float(price.discount_price or price.base_price)


def bundle_price(
    price_type: str,
    price_value: float,
    member_subtotal: float,
    bundle_quantity: int,
    surplus_subtotal: float = 0.0,
) -> float:
    """Effective price of one bundle group. Never negative.

    ``bundle_quantity`` is the number of complete sets in the cart. A fixed
    price covers those sets only; ``surplus_subtotal`` (member units beyond
    the complete sets, at their own unit price) is charged on top.
    """
    if price_type == BundlePriceType.FIXED.value:
        price = price_value * bundle_quantity + surplus_subtotal
    elif price_type == BundlePriceType.PERCENTAGE_DISCOUNT.value:
        price = member_subtotal * (1 - price_value / 100)
    elif price_type == BundlePriceType.FIXED_DISCOUNT.value:
        price = member_subtotal - price_value * bundle_quantity
    else:
        price = member_subtotal
    return max(0.0, price)


def coupon_discount(coupon: CouponTerms | None, subtotal: float, now: datetime) -> tuple[float, bool, str | None]:
    """Return ``(discount, free_shipping, applied_code)`` for a coupon.

    An unusable coupon yields ``(0.0, False, None)`` instead of an error.
    """
    if coupon is None or not coupon.is_applicable(subtotal, now):
        return 0.0, False, None

    if coupon.discount_type == DiscountType.PERCENTAGE.value:
        discount = subtotal * (coupon.discount_value / 100)
        if coupon.max_discount_amount:
            discount = min(discount, coupon.max_discount_amount)
        return discount, False, coupon.code
    if coupon.discount_type == DiscountType.FIXED.value:
        return float(coupon.discount_value), False, coupon.code
    if coupon.discount_type == DiscountType.FREE_SHIPPING.value:
        return 0.0, True, coupon.code
    return 0.0, False, None


def round_half_up(amount: float) -> int:
    return int(math.floor(amount + 0.5))


def price_order(
    lines: list[PricingLine],
    coupon: CouponTerms | None,
    shipping: ShippingTerms,
    now: datetime | None = None,
) -> PricedOrder:
    """Price a whole cart."""
    now = now or datetime.now(UTC)

    priced_lines = []
    standalone_total = 0.0
    groups: dict[str, tuple[BundleTerms, list[PricedLine]]] = {}

    for line in lines:
        unit_price = resolve_unit_price(line.price)
        priced = PricedLine(
            product_id=line.product_id,
            variant_id=line.variant_id,
            bundle_id=line.bundle.bundle_id if line.bundle else None,
            unit_price=unit_price,
            quantity=line.quantity,
            line_total=unit_price * line.quantity,
        )
        priced_lines.append(priced)

        if line.bundle is not None:
            groups.setdefault(line.bundle.bundle_id, (line.bundle, []))[1].append(priced)
        else:
            standalone_total += priced.line_total

    bundles = []
    bundles_total = 0.0
    for bundle_id, (terms, members) in groups.items():
        member_subtotal = sum(member.line_total for member in members)
        # Complete sets: the smallest member quantity, whatever order the lines arrive in
        sets = min(member.quantity for member in members)
        surplus = sum((member.quantity - sets) * member.unit_price for member in members)
        price = bundle_price(terms.price_type, terms.price_value, member_subtotal, sets, surplus_subtotal=surplus)
        bundles.append(
            BundleGroup(
                bundle_id=bundle_id,
                price_type=terms.price_type,
                price_value=terms.price_value,
                member_lines=tuple(members),
                price=price,
            )
        )
        bundles_total += price

    subtotal = standalone_total + bundles_total
    discount, free_shipping, applied_code = coupon_discount(coupon, subtotal, now)

    shipping_amount = (
        0.0 if subtotal >= shipping.free_shipping_threshold or free_shipping else float(shipping.flat_cost)
    )
    grand_total = round_half_up(max(0.0, subtotal + shipping_amount - discount))

    return PricedOrder(
        lines=tuple(priced_lines),
        bundles=tuple(bundles),
        subtotal=subtotal,
        discount=discount,
        shipping=shipping_amount,
        grand_total=grand_total,
        coupon_code=applied_code,
        free_shipping=free_shipping,
        bundle_adjustment=sum(line.line_total for line in priced_lines) - subtotal,
    )
