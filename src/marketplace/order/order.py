"""Order aggregate (CQRS) — a buyer's checkout across one or more sellers.

The Order is the buyer-facing record. It is stored as current state, and
every change raises a domain event that handlers turn into history rows,
realtime broadcasts and notifications. The aggregate methods themselves
perform no I/O.

State Machine (strict policy):
    PENDING → CONFIRMED → PROCESSING → SHIPPED → OUT_FOR_DELIVERY → DELIVERED
    SHIPPED → DELIVERED
    {PENDING, CONFIRMED, PROCESSING} → CANCELLED
    {DELIVERED, CANCELLED} → REFUNDED

Under the default lenient policy any status may follow any other, but
unknown statuses are always rejected.
"""

import json
from datetime import UTC, datetime
from enum import Enum
from uuid import uuid4

from protean.exceptions import ValidationError
from protean.fields import DateTime, HasMany, Integer, String, Text

from marketplace.domain import marketplace
from marketplace.lifecycle import assert_can_transition, parse_status
from marketplace.order.events import OrderPaid, OrderPlaced, OrderStatusChanged, TrackingAdded


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class OrderStatus(Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    OUT_FOR_DELIVERY = "out_for_delivery"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"


class PaymentStatus(Enum):
    UNPAID = "unpaid"
    PAID = "paid"


class ShippingMethod(Enum):
    STANDARD = "standard"
    EXPRESS = "express"
    OVERNIGHT = "overnight"
    TWO_DAY = "two_day"
    ECONOMY = "economy"


# State machine transition map, enforced only under the strict policy
_VALID_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.CONFIRMED, OrderStatus.CANCELLED},
    OrderStatus.CONFIRMED: {OrderStatus.PROCESSING, OrderStatus.CANCELLED},
    OrderStatus.PROCESSING: {OrderStatus.SHIPPED, OrderStatus.CANCELLED},
    OrderStatus.SHIPPED: {OrderStatus.OUT_FOR_DELIVERY, OrderStatus.DELIVERED},
    OrderStatus.OUT_FOR_DELIVERY: {OrderStatus.DELIVERED},
    OrderStatus.DELIVERED: {OrderStatus.REFUNDED},
    OrderStatus.CANCELLED: {OrderStatus.REFUNDED},
    OrderStatus.REFUNDED: set(),  # Terminal
}


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@marketplace.entity(part_of="Order")
class OrderItem:
    """A purchased product line. ``seller_id`` decides which sub-order and
    earning the line is settled under."""

    product_id = String(required=True, max_length=255)
    seller_id = String(max_length=255)
    title = String(max_length=255)
    quantity = Integer(required=True, min_value=1)
    unit_price = Integer(required=True, min_value=0)  # minor units

    @property
    def line_total(self) -> int:
        return self.unit_price * self.quantity


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@marketplace.aggregate
class Order:
    order_number = String(max_length=50)
    customer_id = String(required=True, max_length=255)
    amount = Integer(default=0, min_value=0)  # minor units
    status = String(
        choices=OrderStatus,
        default=OrderStatus.PENDING.value,
    )
    items = HasMany(OrderItem)
    shipping_address = Text()  # JSON: address dict
    shipping_method = String(
        choices=ShippingMethod,
        default=ShippingMethod.STANDARD.value,
    )
    payment_method = String(max_length=50)
    payment_status = String(
        choices=PaymentStatus,
        default=PaymentStatus.UNPAID.value,
    )
    payment_id = String(max_length=255)
    tracking_number = String(max_length=255)
    carrier = String(max_length=100)
    created_at = DateTime()
    updated_at = DateTime()
    paid_at = DateTime()
    shipped_at = DateTime()
    delivered_at = DateTime()

    # -------------------------------------------------------------------
    # Factory method
    # -------------------------------------------------------------------
    @classmethod
    def place(
        cls,
        customer_id: str,
        items_data: list[dict],
        shipping_address: dict | None = None,
        shipping_method: str | None = None,
        payment_method: str | None = None,
        order_number: str | None = None,
    ):
        """Create an order from a checkout hand-off.

        Args:
            customer_id: The buyer.
            items_data: List of dicts with product_id, seller_id, title,
                        quantity, unit_price (minor units).
            shipping_address: Free-form address dict, stored as JSON.
            shipping_method: One of ShippingMethod values (default standard).
            payment_method: Label of the payment method used at checkout.
            order_number: Human-facing number; generated when omitted.
        """
        if not items_data:
            raise ValidationError({"items": ["An order needs at least one item"]})

        now = datetime.now(UTC)
        order = cls(
            order_number=order_number or f"ORD-{now:%Y%m%d}-{uuid4().hex[:6].upper()}",
            customer_id=customer_id,
            status=OrderStatus.PENDING.value,
            shipping_address=json.dumps(shipping_address or {}),
            shipping_method=shipping_method or ShippingMethod.STANDARD.value,
            payment_method=payment_method,
            created_at=now,
            updated_at=now,
        )
        for item_data in items_data:
            order.add_items(OrderItem(**item_data))
        order.amount = sum(item.line_total for item in order.items)

        order.raise_(
            OrderPlaced(
                order_id=str(order.id),
                order_number=order.order_number,
                customer_id=str(customer_id),
                amount=order.amount,
                items=json.dumps(items_data),
                placed_at=now,
            )
        )
        return order

    # -------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------
    def update_status(self, new_status, actor_id=None, reason=None, notes=None) -> OrderStatus:
        """Move the order to ``new_status`` and raise OrderStatusChanged.

        Returns the previous status.
        """
        target = parse_status(new_status, OrderStatus)
        current = OrderStatus(self.status)
        assert_can_transition(current, target, _VALID_TRANSITIONS)

        now = datetime.now(UTC)
        self.status = target.value
        self.updated_at = now
        if target == OrderStatus.SHIPPED and self.shipped_at is None:
            self.shipped_at = now
        elif target == OrderStatus.DELIVERED:
            self.delivered_at = now

        self.raise_(
            OrderStatusChanged(
                order_id=str(self.id),
                customer_id=str(self.customer_id),
                previous_status=current.value,
                new_status=target.value,
                actor_id=actor_id,
                reason=reason,
                notes=notes,
                tracking_number=self.tracking_number,
                carrier=self.carrier,
                changed_at=now,
            )
        )
        return current

    def add_tracking(self, tracking_number, carrier, actor_id=None) -> None:
        """Attach carrier tracking. The status is left unchanged."""
        if not tracking_number or not carrier:
            raise ValidationError({"tracking": ["Tracking number and carrier are required"]})

        now = datetime.now(UTC)
        self.tracking_number = tracking_number
        self.carrier = carrier
        self.updated_at = now

        self.raise_(
            TrackingAdded(
                order_id=str(self.id),
                customer_id=str(self.customer_id),
                status=self.status,
                tracking_number=tracking_number,
                carrier=carrier,
                actor_id=actor_id,
                added_at=now,
            )
        )

    def record_payment(self, payment_id, payment_method=None) -> None:
        """Mark the order paid. Raising OrderPaid triggers the commission split."""
        if PaymentStatus(self.payment_status) == PaymentStatus.PAID:
            raise ValidationError({"payment_status": ["Order is already paid"]})
        if OrderStatus(self.status) in (OrderStatus.CANCELLED, OrderStatus.REFUNDED):
            raise ValidationError({"status": [f"Cannot record payment for a {self.status} order"]})

        now = datetime.now(UTC)
        self.payment_status = PaymentStatus.PAID.value
        self.payment_id = payment_id
        if payment_method:
            self.payment_method = payment_method
        self.paid_at = now
        self.updated_at = now

        self.raise_(
            OrderPaid(
                order_id=str(self.id),
                customer_id=str(self.customer_id),
                amount=self.amount,
                payment_id=payment_id,
                payment_method=self.payment_method,
                paid_at=now,
            )
        )

    def seller_ids(self) -> set[str]:
        return {item.seller_id for item in self.items if item.seller_id}

    def address(self) -> dict:
        return json.loads(self.shipping_address) if self.shipping_address else {}
