"""Order status and tracking updates — commands and handler.

Both commands load the order, apply the change on the aggregate and
persist it. History, broadcast and notification happen afterwards in
``marketplace.order.side_effects``.
"""

from protean import handle
from protean.fields import Identifier, String, Text
from protean.utils.globals import current_domain

from marketplace.domain import marketplace
from marketplace.order.order import Order


@marketplace.command(part_of="Order")
class UpdateOrderStatus:
    """Move an order to a new lifecycle status."""

    order_id = Identifier(required=True)
    status = String(max_length=50)  # validated by the aggregate
    actor_id = Identifier()
    reason = String(max_length=500)
    notes = Text()


@marketplace.command(part_of="Order")
class AddTracking:
    """Attach a carrier and tracking number to an order."""

    order_id = Identifier(required=True)
    tracking_number = String(max_length=255)
    carrier = String(max_length=100)
    actor_id = Identifier()


@marketplace.command_handler(part_of=Order)
class OrderStatusHandler:
    @handle(UpdateOrderStatus)
    def update_status(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.update_status(
            command.status,
            actor_id=command.actor_id,
            reason=command.reason,
            notes=command.notes,
        )
        repo.add(order)
        return order

    @handle(AddTracking)
    def add_tracking(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.add_tracking(
            tracking_number=command.tracking_number,
            carrier=command.carrier,
            actor_id=command.actor_id,
        )
        repo.add(order)
        return order
