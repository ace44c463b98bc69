"""Domain events for the ShoppingCart aggregate."""

from protean.fields import Identifier, Integer

from checkout.domain import checkout


@checkout.event(part_of="ShoppingCart")
class CartItemAdded:
    """An item was added to the cart, or its quantity increased."""

    __version__ = 1

    cart_id = Identifier(required=True)
    user_id = Identifier(required=True)
    product_id = Identifier(required=True)
    variant_id = Identifier()
    bundle_id = Identifier()
    quantity = Integer(required=True)


@checkout.event(part_of="ShoppingCart")
class CartCleared:
    """All items were removed from the cart after a captured payment."""

    __version__ = 1

    cart_id = Identifier(required=True)
    user_id = Identifier(required=True)
    items_removed = Integer(required=True)
