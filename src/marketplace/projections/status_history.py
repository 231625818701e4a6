"""Order status history — append-only audit trail of status and tracking changes.

Rows are written by the status side-effect dispatcher and never updated or
deleted. A row belongs to either a parent order or a sub-order, told apart
by ``target_kind``.
"""

import json
import uuid
from datetime import UTC, datetime
from enum import Enum

from protean.fields import DateTime, Identifier, String, Text
from protean.utils.globals import current_domain

from marketplace.domain import marketplace
from marketplace.utils.repository import fetch_all


class TargetKind(Enum):
    ORDER = "order"
    SUB_ORDER = "sub_order"


@marketplace.projection
class OrderStatusEvent:
    event_id = Identifier(identifier=True, required=True)
    order_id = Identifier(required=True)
    target_kind = String(choices=TargetKind, default=TargetKind.ORDER.value)
    previous_status = String(max_length=50)
    new_status = String(required=True, max_length=50)
    actor_id = Identifier()
    reason = String(max_length=500)
    notes = Text()
    tracking_number = String(max_length=255)
    carrier = String(max_length=100)
    event_metadata = Text()  # JSON: extra event data
    occurred_at = DateTime(required=True)


def append_status_event(
    order_id,
    previous_status,
    new_status,
    actor_id=None,
    reason=None,
    notes=None,
    tracking_number=None,
    carrier=None,
    metadata=None,
    occurred_at=None,
    target_kind=TargetKind.ORDER,
) -> OrderStatusEvent:
    record = OrderStatusEvent(
        event_id=str(uuid.uuid4()),
        order_id=order_id,
        target_kind=target_kind.value,
        previous_status=previous_status,
        new_status=new_status,
        actor_id=actor_id,
        reason=reason,
        notes=notes,
        tracking_number=tracking_number,
        carrier=carrier,
        event_metadata=json.dumps(metadata) if metadata else None,
        occurred_at=occurred_at or datetime.now(UTC),
    )
    current_domain.repository_for(OrderStatusEvent).add(record)
    return record


def history_for(order_id) -> list[OrderStatusEvent]:
    """All history rows for an order or sub-order, oldest first."""
    rows = fetch_all(OrderStatusEvent, order_id=str(order_id))
    return sorted(rows, key=lambda row: row.occurred_at)
