"""Cart management: add-to-cart and clear-cart commands and handler."""

from protean import handle
from protean.fields import Identifier, Integer
from protean.utils.globals import current_domain

from checkout.cart.cart import ShoppingCart
from checkout.domain import checkout


@checkout.command(part_of="ShoppingCart")
class AddToCart:
    user_id = Identifier(required=True)
    product_id = Identifier(required=True)
    variant_id = Identifier()
    bundle_id = Identifier()
    quantity = Integer(required=True, min_value=1)


@checkout.command(part_of="ShoppingCart")
class ClearCart:
    user_id = Identifier(required=True)


@checkout.command_handler(part_of=ShoppingCart)
class ManageCartHandler:
    @handle(AddToCart)
    def add_to_cart(self, command):
        repo = current_domain.repository_for(ShoppingCart)
        cart = repo.for_user(command.user_id) or ShoppingCart.create(user_id=command.user_id)
        cart.add_item(
            product_id=command.product_id,
            quantity=command.quantity,
            variant_id=command.variant_id,
            bundle_id=command.bundle_id,
        )
        repo.add(cart)
        return str(cart.id)

    @handle(ClearCart)
    def clear_cart(self, command):
        repo = current_domain.repository_for(ShoppingCart)
        cart = repo.for_user(command.user_id)
        if cart is None or not cart.items:
            return 0

        items_removed = len(cart.items)
        cart.clear()
        repo.add(cart)
        return items_removed
