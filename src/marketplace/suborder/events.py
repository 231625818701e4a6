"""Domain events for the SubOrder aggregate."""

from protean.fields import DateTime, Identifier, Integer, String, Text

from marketplace.domain import marketplace


@marketplace.event(part_of="SubOrder")
class SubOrderCreated:
    """A seller's share of a paid order was carved out as a sub-order."""

    __version__ = 1

    sub_order_id = Identifier(required=True)
    parent_order_id = Identifier(required=True)
    seller_id = String(required=True)
    subtotal = Integer(required=True)
    created_at = DateTime(required=True)


@marketplace.event(part_of="SubOrder")
class SubOrderStatusChanged:
    """A seller moved their sub-order to a new status."""

    __version__ = 1

    sub_order_id = Identifier(required=True)
    parent_order_id = Identifier(required=True)
    seller_id = String(required=True)
    previous_status = String(required=True)
    new_status = String(required=True)
    actor_id = Identifier()
    notes = Text()
    tracking_number = String(max_length=255)
    carrier = String(max_length=100)
    changed_at = DateTime(required=True)


@marketplace.event(part_of="SubOrder")
class SubOrderTrackingAdded:
    """A seller attached carrier tracking to their sub-order."""

    __version__ = 1

    sub_order_id = Identifier(required=True)
    parent_order_id = Identifier(required=True)
    seller_id = String(required=True)
    status = String(required=True)
    tracking_number = String(required=True, max_length=255)
    carrier = String(required=True, max_length=100)
    actor_id = Identifier()
    added_at = DateTime(required=True)
