"""Order aggregate (CQRS): the durable record of an attempted purchase.

Every figure on the order is a snapshot taken at checkout. Invoices are
rendered from these fields, never from live catalogue prices.

State Machine:
    PENDING -> PAID       (payment captured; stock stays decremented)
    PENDING -> CANCELLED  (payment failed, customer cancelled or stale sweep;
                           stock is returned)
    PAID and CANCELLED are terminal.

A refund leaves the status alone and moves payment_status to refunded.
"""

from datetime import UTC, datetime
from enum import Enum
from uuid import uuid4

from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.fields import (
    DateTime,
    Float,
    HasMany,
    Identifier,
    Integer,
    String,
    ValueObject,
)
from protean.utils.globals import current_domain

from checkout.domain import checkout
from checkout.errors import OrderNotFound
from checkout.inventory.port import StockItem
from checkout.order.events import OrderCancelled, OrderPaid, OrderPlaced, OrderRefunded


class OrderStatus(Enum):
    PENDING = "pending"
    PAID = "paid"
    CANCELLED = "cancelled"


class PaymentStatus(Enum):
    PENDING = "pending"
    SUCCESS = "success"
    FAILED = "failed"
    REFUNDED = "refunded"


_VALID_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.PAID, OrderStatus.CANCELLED},
    OrderStatus.PAID: set(),  # Terminal
    OrderStatus.CANCELLED: set(),  # Terminal
}


def generate_order_number(now=None) -> str:
    now = now or datetime.now(UTC)
    return f"ORD-{int(now.timestamp() * 1000)}-{uuid4().hex[:4].upper()}"


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@checkout.value_object(part_of="Order")
class ShippingAddress:
    """Delivery address captured at checkout time."""

    full_name = String(max_length=255)
    phone = String(max_length=30)
    email = String(max_length=255)
    address_line_1 = String(required=True, max_length=255)
    address_line_2 = String(max_length=255)
    city = String(required=True, max_length=100)
    state = String(max_length=100)
    pincode = String(required=True, max_length=20)
    country = String(max_length=100)


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@checkout.entity(part_of="Order")
class OrderItem:
    """A priced line, frozen at checkout."""

    product_id = Identifier(required=True)
    variant_id = Identifier()
    bundle_id = Identifier()
    product_name = String(required=True, max_length=255)
    variant_name = String(max_length=255)
    sku = String(max_length=50)
    quantity = Integer(required=True, min_value=1)
    unit_price = Float(required=True, min_value=0.0)
    line_total = Float(required=True, min_value=0.0)


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@checkout.aggregate
class Order:
    order_number = String(required=True, max_length=50, unique=True)
    user_id = Identifier(required=True)
    items = HasMany(OrderItem)
    subtotal = Float(required=True, min_value=0.0)
    bundle_savings = Float(default=0.0)
    shipping_amount = Float(default=0.0, min_value=0.0)
    discount_amount = Float(default=0.0, min_value=0.0)
    total_amount = Integer(required=True, min_value=0)
    currency = String(max_length=3, default="INR")
    coupon_code = String(max_length=50)
    shipping_address = ValueObject(ShippingAddress)
    status = String(choices=OrderStatus, default=OrderStatus.PENDING.value)
    payment_status = String(choices=PaymentStatus, default=PaymentStatus.PENDING.value)
    cancellation_reason = String(max_length=500)
    created_at = DateTime()
    updated_at = DateTime()
    paid_at = DateTime()

    # -------------------------------------------------------------------
    # Factory method
    # -------------------------------------------------------------------
    @classmethod
    def place(cls, user_id, items_data, shipping_address, pricing, currency="INR", coupon_code=None):
        """Create a pending order from a priced cart.

        Args:
            user_id: The customer placing the order.
            items_data: List of dicts with product_id, variant_id, bundle_id,
                        product_name, variant_name, sku, quantity, unit_price,
                        line_total.
            shipping_address: Dict of ShippingAddress fields.
            pricing: Dict with subtotal, bundle_savings, shipping_amount,
                     discount_amount, total_amount.
        """
        if not items_data:
            raise ValidationError({"items": ["An order needs at least one item"]})

        now = datetime.now(UTC)
        order = cls(
            order_number=generate_order_number(now),
            user_id=user_id,
            shipping_address=ShippingAddress(**shipping_address),
            subtotal=pricing["subtotal"],
            bundle_savings=pricing.get("bundle_savings", 0.0),
            shipping_amount=pricing.get("shipping_amount", 0.0),
            discount_amount=pricing.get("discount_amount", 0.0),
            total_amount=pricing["total_amount"],
            currency=currency,
            coupon_code=coupon_code,
            status=OrderStatus.PENDING.value,
            payment_status=PaymentStatus.PENDING.value,
            created_at=now,
            updated_at=now,
        )
        for item in items_data:
            order.add_items(OrderItem(**item))

        order.raise_(
            OrderPlaced(
                order_id=str(order.id),
                order_number=order.order_number,
                user_id=str(user_id),
                total_amount=order.total_amount,
                currency=currency,
                item_count=len(items_data),
                coupon_code=coupon_code,
                placed_at=now,
            )
        )
        return order

    # -------------------------------------------------------------------
    # State transition helper
    # -------------------------------------------------------------------
    def _assert_can_transition(self, target_status):
        current = OrderStatus(self.status)
        if target_status not in _VALID_TRANSITIONS.get(current, set()):
            raise ValidationError({"status": [f"Cannot transition from {current.value} to {target_status.value}"]})

    @property
    def is_pending(self) -> bool:
        return self.status == OrderStatus.PENDING.value

    def reservation_items(self) -> list[StockItem]:
        """The exact stock quantities this order holds."""
        return [
            StockItem(
                product_id=str(item.product_id),
                quantity=item.quantity,
                variant_id=str(item.variant_id) if item.variant_id else None,
            )
            for item in self.items
        ]

    # -------------------------------------------------------------------
    # Lifecycle transitions
    # -------------------------------------------------------------------
    def mark_paid(self, gateway_payment_id=None):
        self._assert_can_transition(OrderStatus.PAID)
        now = datetime.now(UTC)
        self.status = OrderStatus.PAID.value
        self.payment_status = PaymentStatus.SUCCESS.value
        self.paid_at = now
        self.updated_at = now

        self.raise_(
            OrderPaid(
                order_id=str(self.id),
                order_number=self.order_number,
                user_id=str(self.user_id),
                gateway_payment_id=gateway_payment_id,
                total_amount=self.total_amount,
                paid_at=now,
            )
        )

    def cancel(self, reason):
        self._assert_can_transition(OrderStatus.CANCELLED)
        now = datetime.now(UTC)
        self.status = OrderStatus.CANCELLED.value
        self.payment_status = PaymentStatus.FAILED.value
        self.cancellation_reason = reason
        self.updated_at = now

        self.raise_(
            OrderCancelled(
                order_id=str(self.id),
                order_number=self.order_number,
                user_id=str(self.user_id),
                reason=reason,
                cancelled_at=now,
            )
        )

    def mark_refunded(self, amount) -> bool:
        if self.payment_status == PaymentStatus.REFUNDED.value:
            return False

        now = datetime.now(UTC)
        self.payment_status = PaymentStatus.REFUNDED.value
        self.updated_at = now

        self.raise_(
            OrderRefunded(
                order_id=str(self.id),
                order_number=self.order_number,
                user_id=str(self.user_id),
                amount=amount,
                refunded_at=now,
            )
        )
        return True


def _as_utc(value: datetime) -> datetime:
    return value.replace(tzinfo=UTC) if value.tzinfo is None else value


@checkout.repository(part_of=Order)
class OrderRepository:
    def pending_for_user(self, user_id) -> list[Order]:
        return self._dao.query.filter(user_id=str(user_id), status=OrderStatus.PENDING.value).all().items

    def count_recent_pending(self, user_id, since: datetime) -> int:
        """Pending orders the user created at or after ``since``."""
        return (
            self._dao.query.filter(
                user_id=str(user_id),
                status=OrderStatus.PENDING.value,
                created_at__gte=_as_utc(since),
            )
            .all()
            .total
        )

    def stale_pending(self, older_than: datetime) -> list[Order]:
        """Pending orders created before ``older_than``."""
        return (
            self._dao.query.filter(status=OrderStatus.PENDING.value, created_at__lt=_as_utc(older_than)).all().items
        )


def load_order(order_id) -> Order:
    try:
        return current_domain.repository_for(Order).get(str(order_id))
    except ObjectNotFoundError:
        raise OrderNotFound(detail=f"Order {order_id} not found") from None
