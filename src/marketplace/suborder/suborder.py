"""SubOrder aggregate (CQRS) — one seller's portion of a parent order.

Sub-orders are created by the commission splitter when the parent order is
paid, one per distinct seller. Each seller then ships and updates their
sub-order independently of the parent.

State Machine (strict policy):
    PENDING → PROCESSING → SHIPPED → DELIVERED
    {PENDING, PROCESSING} → CANCELLED
"""

from datetime import UTC, datetime
from enum import Enum

from protean.exceptions import ValidationError
from protean.fields import DateTime, HasMany, Integer, String

from marketplace.domain import marketplace
from marketplace.lifecycle import assert_can_transition, parse_status
from marketplace.suborder.events import SubOrderCreated, SubOrderStatusChanged, SubOrderTrackingAdded


class SubOrderStatus(Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


_VALID_TRANSITIONS = {
    SubOrderStatus.PENDING: {SubOrderStatus.PROCESSING, SubOrderStatus.CANCELLED},
    SubOrderStatus.PROCESSING: {SubOrderStatus.SHIPPED, SubOrderStatus.CANCELLED},
    SubOrderStatus.SHIPPED: {SubOrderStatus.DELIVERED},
    SubOrderStatus.DELIVERED: set(),
    SubOrderStatus.CANCELLED: set(),
}


@marketplace.entity(part_of="SubOrder")
class SubOrderItem:
    product_id = String(required=True, max_length=255)
    title = String(max_length=255)
    quantity = Integer(required=True, min_value=1)
    unit_price = Integer(required=True, min_value=0)


@marketplace.aggregate
class SubOrder:
    parent_order_id = String(required=True, max_length=255)
    seller_id = String(required=True, max_length=255)
    items = HasMany(SubOrderItem)
    subtotal = Integer(default=0, min_value=0)
    status = String(
        choices=SubOrderStatus,
        default=SubOrderStatus.PENDING.value,
    )
    tracking_number = String(max_length=255)
    carrier = String(max_length=100)
    created_at = DateTime()
    updated_at = DateTime()
    shipped_at = DateTime()
    delivered_at = DateTime()

    @classmethod
    def carve(cls, parent_order_id: str, seller_id: str, items_data: list[dict]):
        """Create the sub-order for one seller's group of parent order items."""
        now = datetime.now(UTC)
        sub_order = cls(
            parent_order_id=parent_order_id,
            seller_id=seller_id,
            status=SubOrderStatus.PENDING.value,
            created_at=now,
            updated_at=now,
        )
        for item_data in items_data:
            sub_order.add_items(SubOrderItem(**item_data))
        sub_order.subtotal = sum(item.unit_price * item.quantity for item in sub_order.items)

        sub_order.raise_(
            SubOrderCreated(
                sub_order_id=str(sub_order.id),
                parent_order_id=parent_order_id,
                seller_id=seller_id,
                subtotal=sub_order.subtotal,
                created_at=now,
            )
        )
        return sub_order

    def update_status(self, new_status, actor_id=None, notes=None) -> SubOrderStatus:
        """Move the sub-order to ``new_status``. Returns the previous status."""
        target = parse_status(new_status, SubOrderStatus)
        current = SubOrderStatus(self.status)
        assert_can_transition(current, target, _VALID_TRANSITIONS)

        now = datetime.now(UTC)
        self.status = target.value
        self.updated_at = now
        if target == SubOrderStatus.SHIPPED and self.shipped_at is None:
            self.shipped_at = now
        elif target == SubOrderStatus.DELIVERED:
            self.delivered_at = now

        self.raise_(
            SubOrderStatusChanged(
                sub_order_id=str(self.id),
                parent_order_id=self.parent_order_id,
                seller_id=self.seller_id,
                previous_status=current.value,
                new_status=target.value,
                actor_id=actor_id,
                notes=notes,
                tracking_number=self.tracking_number,
                carrier=self.carrier,
                changed_at=now,
            )
        )
        return current

    def add_tracking(self, tracking_number, carrier, actor_id=None) -> None:
        if not tracking_number or not carrier:
            raise ValidationError({"tracking": ["Tracking number and carrier are required"]})

        now = datetime.now(UTC)
        self.tracking_number = tracking_number
        self.carrier = carrier
        self.updated_at = now

        self.raise_(
            SubOrderTrackingAdded(
                sub_order_id=str(self.id),
                parent_order_id=self.parent_order_id,
                seller_id=self.seller_id,
                status=self.status,
                tracking_number=tracking_number,
                carrier=carrier,
                actor_id=actor_id,
                added_at=now,
            )
        )

