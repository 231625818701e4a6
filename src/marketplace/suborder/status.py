"""Sub-order status and tracking updates — commands and handler."""

from protean import handle
from protean.fields import Identifier, String, Text
from protean.utils.globals import current_domain

from marketplace.domain import marketplace
from marketplace.suborder.suborder import SubOrder


@marketplace.command(part_of="SubOrder")
class UpdateSubOrderStatus:
    """A seller moves their sub-order to a new status."""

    sub_order_id = Identifier(required=True)
    status = String(max_length=50)
    actor_id = Identifier()
    notes = Text()


@marketplace.command(part_of="SubOrder")
class AddSubOrderTracking:
    """A seller attaches tracking to their sub-order."""

    sub_order_id = Identifier(required=True)
    tracking_number = String(max_length=255)
    carrier = String(max_length=100)
    actor_id = Identifier()


@marketplace.command_handler(part_of=SubOrder)
class SubOrderStatusHandler:
    @handle(UpdateSubOrderStatus)
    def update_status(self, command):
        repo = current_domain.repository_for(SubOrder)
        sub_order = repo.get(command.sub_order_id)
        sub_order.update_status(command.status, actor_id=command.actor_id, notes=command.notes)
        repo.add(sub_order)
        return sub_order

    @handle(AddSubOrderTracking)
    def add_tracking(self, command):
        repo = current_domain.repository_for(SubOrder)
        sub_order = repo.get(command.sub_order_id)
        sub_order.add_tracking(
            tracking_number=command.tracking_number,
            carrier=command.carrier,
            actor_id=command.actor_id,
        )
        repo.add(sub_order)
        return sub_order
