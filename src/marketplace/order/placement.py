"""Order placement — command and handler.

The cart and checkout live outside this service; this is the point where a
completed checkout is handed over as an order.
"""

import json

from protean import handle
from protean.fields import Identifier, String, Text
from protean.utils.globals import current_domain

from marketplace.domain import marketplace
from marketplace.order.order import Order


@marketplace.command(part_of="Order")
class PlaceOrder:
    """Record a completed checkout as a new pending order."""

    customer_id = Identifier(required=True)
    items = Text(required=True)  # JSON list of item dicts
    shipping_address = Text()  # JSON address dict
    shipping_method = String(max_length=30)
    payment_method = String(max_length=50)
    order_number = String(max_length=50)


@marketplace.command_handler(part_of=Order)
class PlaceOrderHandler:
    @handle(PlaceOrder)
    def place_order(self, command):
        items_data = json.loads(command.items) if isinstance(command.items, str) else command.items
        shipping_address = None
        if command.shipping_address:
            shipping_address = (
                json.loads(command.shipping_address)
                if isinstance(command.shipping_address, str)
                else command.shipping_address
            )

        order = Order.place(
            customer_id=command.customer_id,
            items_data=items_data,
            shipping_address=shipping_address,
            shipping_method=command.shipping_method,
            payment_method=command.payment_method,
            order_number=command.order_number,
        )
        current_domain.repository_for(Order).add(order)
        return str(order.id)
