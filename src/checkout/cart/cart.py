"""Shopping Cart aggregate (CQRS).

Checkout only ever reads the cart and clears it once payment is captured;
the lines it holds are intent, never prices.
"""

from datetime import UTC, datetime

from protean.exceptions import ValidationError
from protean.fields import DateTime, HasMany, Identifier, Integer

from checkout.cart.events import CartCleared, CartItemAdded
from checkout.domain import checkout


@checkout.entity(part_of="ShoppingCart")
class CartItem:
    product_id = Identifier(required=True)
    variant_id = Identifier()
    bundle_id = Identifier()
    quantity = Integer(required=True, min_value=1)
    added_at = DateTime()


@checkout.aggregate
class ShoppingCart:
    user_id = Identifier(required=True, unique=True)
    items = HasMany(CartItem)
    created_at = DateTime()
    updated_at = DateTime()

    @classmethod
    def create(cls, user_id):
        now = datetime.now(UTC)
        return cls(user_id=user_id, created_at=now, updated_at=now)

    def add_item(self, product_id, quantity, variant_id=None, bundle_id=None):
        """Add a line, merging with an existing line for the same product/variant/bundle."""
        if quantity < 1:
            raise ValidationError({"quantity": ["Quantity must be at least 1"]})

        def _key(pid, vid, bid):
            return (str(pid), str(vid) if vid else None, str(bid) if bid else None)

        wanted = _key(product_id, variant_id, bundle_id)
        existing = next(
            (i for i in self.items if _key(i.product_id, i.variant_id, i.bundle_id) == wanted),
            None,
        )

        now = datetime.now(UTC)
        if existing:
            existing.quantity += quantity
        else:
            self.add_items(
                CartItem(
                    product_id=product_id,
                    variant_id=variant_id,
                    bundle_id=bundle_id,
                    quantity=quantity,
                    added_at=now,
                )
            )
        self.updated_at = now

        self.raise_(
            CartItemAdded(
                cart_id=str(self.id),
                user_id=str(self.user_id),
                product_id=str(product_id),
                variant_id=str(variant_id) if variant_id else None,
                bundle_id=str(bundle_id) if bundle_id else None,
                quantity=quantity,
            )
        )

    def clear(self):
        items_removed = len(self.items)
        for item in list(self.items):
            self.remove_items(item)
        self.updated_at = datetime.now(UTC)

        self.raise_(
            CartCleared(
                cart_id=str(self.id),
                user_id=str(self.user_id),
                items_removed=items_removed,
            )
        )


@checkout.repository(part_of=ShoppingCart)
class ShoppingCartRepository:
    def for_user(self, user_id) -> ShoppingCart | None:
        results = self._dao.query.filter(user_id=str(user_id)).all().items
        return results[0] if results else None
