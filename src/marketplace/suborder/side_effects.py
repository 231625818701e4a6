"""Side effects of sub-order status and tracking changes.

History rows are filed under the sub-order id. Watchers of the sub-order
and of its parent order both receive the broadcast, and the buyer of the
parent order is notified.
"""

import structlog
from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain
from protean.utils.mixins import handle

from marketplace.domain import marketplace
from marketplace.order.order import Order
from marketplace.order.side_effects import StatusChange, current_dispatcher
from marketplace.projections.status_history import TargetKind
from marketplace.suborder.events import SubOrderStatusChanged, SubOrderTrackingAdded
from marketplace.suborder.suborder import SubOrder

logger = structlog.get_logger(__name__)


def _buyer_of(parent_order_id: str) -> str | None:
    try:
        return str(current_domain.repository_for(Order).get(parent_order_id).customer_id)
    except ObjectNotFoundError:
        logger.warning("Sub-order parent not found, skipping buyer notification", parent_order_id=parent_order_id)
        return None


@marketplace.event_handler(part_of=SubOrder)
class SubOrderStatusSideEffects:
    @handle(SubOrderStatusChanged)
    def on_status_changed(self, event: SubOrderStatusChanged) -> None:
        current_dispatcher().status_changed(
            StatusChange(
                order_id=str(event.sub_order_id),
                recipient_id=_buyer_of(str(event.parent_order_id)),
                previous_status=event.previous_status,
                new_status=event.new_status,
                occurred_at=event.changed_at,
                actor_id=str(event.actor_id) if event.actor_id else None,
                notes=event.notes,
                tracking_number=event.tracking_number,
                carrier=event.carrier,
                target_kind=TargetKind.SUB_ORDER,
                also_broadcast_to=(str(event.parent_order_id),),
            )
        )

    @handle(SubOrderTrackingAdded)
    def on_tracking_added(self, event: SubOrderTrackingAdded) -> None:
        current_dispatcher().tracking_added(
            StatusChange(
                order_id=str(event.sub_order_id),
                recipient_id=_buyer_of(str(event.parent_order_id)),
                previous_status=event.status,
                new_status=event.status,
                occurred_at=event.added_at,
                actor_id=str(event.actor_id) if event.actor_id else None,
                tracking_number=event.tracking_number,
                carrier=event.carrier,
                target_kind=TargetKind.SUB_ORDER,
                also_broadcast_to=(str(event.parent_order_id),),
            )
        )
