"""Domain events for the Order aggregate.

Events are immutable facts raised by the aggregate when it changes. They act
as the aggregate's outbox: the write path only raises them, and handlers
deliver the side effects (history, realtime broadcast, notifications,
commission split) once the write has been committed.
"""

from protean.fields import DateTime, Identifier, Integer, String, Text

from marketplace.domain import marketplace


@marketplace.event(part_of="Order")
class OrderPlaced:
    """A buyer's checkout was handed over as a new order."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    customer_id = Identifier(required=True)
    amount = Integer(required=True)
    items = Text(required=True)  # JSON: list of item dicts
    placed_at = DateTime(required=True)


@marketplace.event(part_of="Order")
class OrderStatusChanged:
    """An order moved from one status to another."""

    __version__ = 1

    order_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    previous_status = String(required=True)
    new_status = String(required=True)
    actor_id = Identifier()
    reason = String(max_length=500)
    notes = Text()
    tracking_number = String(max_length=255)
    carrier = String(max_length=100)
    changed_at = DateTime(required=True)


@marketplace.event(part_of="Order")
class TrackingAdded:
    """A carrier and tracking number were attached to an order."""

    __version__ = 1

    order_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    status = String(required=True)
    tracking_number = String(required=True, max_length=255)
    carrier = String(required=True, max_length=100)
    actor_id = Identifier()
    added_at = DateTime(required=True)


@marketplace.event(part_of="Order")
class OrderPaid:
    """Payment for the order was confirmed; its proceeds can be split."""

    __version__ = 1

    order_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    amount = Integer(required=True)
    payment_id = String(max_length=255)
    payment_method = String(max_length=50)
    paid_at = DateTime(required=True)
