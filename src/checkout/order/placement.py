"""Order placement: command and handler."""

import json

from protean import handle
from protean.fields import Float, Identifier, Integer, String, Text
from protean.utils.globals import current_domain

from checkout.domain import checkout
from checkout.order.order import Order


@checkout.command(part_of="Order")
class PlaceOrder:
    user_id = Identifier(required=True)
    items = Text(required=True)  # JSON: list of priced item dicts
    shipping_address = Text(required=True)  # JSON: address dict
    subtotal = Float(required=True)
    bundle_savings = Float(default=0.0)
    shipping_amount = Float(default=0.0)
    discount_amount = Float(default=0.0)
    total_amount = Integer(required=True)
    currency = String(max_length=3, default="INR")
    coupon_code = String(max_length=50)


@checkout.command_handler(part_of=Order)
class PlaceOrderHandler:
    @handle(PlaceOrder)
    def place_order(self, command):
        items_data = json.loads(command.items) if isinstance(command.items, str) else command.items
        shipping_address = (
            json.loads(command.shipping_address)
            if isinstance(command.shipping_address, str)
            else command.shipping_address
        )

        order = Order.place(
            user_id=command.user_id,
            items_data=items_data,
            shipping_address=shipping_address,
            pricing={
                "subtotal": command.subtotal,
                "bundle_savings": command.bundle_savings or 0.0,
                "shipping_amount": command.shipping_amount or 0.0,
                "discount_amount": command.discount_amount or 0.0,
                "total_amount": command.total_amount,
            },
            currency=command.currency or "INR",
            coupon_code=command.coupon_code,
        )
        current_domain.repository_for(Order).add(order)
        return str(order.id)
