"""Order detail read model — timeline, tracking, delivery estimate and sub-orders."""

import json
from datetime import date, datetime, timedelta

from protean.utils.globals import current_domain

from marketplace.order.order import Order, OrderStatus, ShippingMethod
from marketplace.projections.status_history import history_for
from marketplace.queries.access import Caller, Role
from marketplace.queries.lookup import ChildOrder, OrderRecord, ParentOrder, sub_orders_of
from marketplace.suborder.suborder import SubOrder

# Days between an order being placed and leaving the warehouse
PROCESSING_DAYS = 2

TRANSIT_DAYS = {
    ShippingMethod.STANDARD.value: 7,
    ShippingMethod.EXPRESS.value: 3,
    ShippingMethod.OVERNIGHT.value: 1,
    ShippingMethod.TWO_DAY.value: 2,
    ShippingMethod.ECONOMY.value: 10,
}


def estimated_delivery(
    status: str,
    created_at: datetime | None,
    shipped_at: datetime | None,
    shipping_method: str | None,
) -> date | None:
    if status == OrderStatus.DELIVERED.value:
        return None
    if shipped_at is not None:
        base = shipped_at
    elif created_at is not None:
        base = created_at + timedelta(days=PROCESSING_DAYS)
    else:
        return None
    transit = TRANSIT_DAYS.get(shipping_method or "", TRANSIT_DAYS[ShippingMethod.STANDARD.value])
    return (base + timedelta(days=transit)).date()


def timeline(order_id: str) -> list[dict]:
    entries = []
    for row in history_for(order_id):
        entries.append(
            {
                "id": str(row.event_id),
                "status": row.new_status,
                "previous_status": row.previous_status,
                "changed_by": str(row.actor_id) if row.actor_id else None,
                "reason": row.reason,
                "notes": row.notes,
                "tracking_number": row.tracking_number,
                "carrier": row.carrier,
                "metadata": json.loads(row.event_metadata) if row.event_metadata else None,
                "timestamp": row.occurred_at,
            }
        )
    return entries


def _tracking_info(tracking_number, carrier, shipped_at, delivered_at) -> dict | None:
    if not tracking_number:
        return None
    return {
        "tracking_number": tracking_number,
        "carrier": carrier,
        "shipped_at": shipped_at,
        "delivered_at": delivered_at,
    }


def _sub_order_items(sub_order: SubOrder) -> list[dict]:
    return [
        {
            "product_id": item.product_id,
            "seller_id": sub_order.seller_id,
            "title": item.title,
            "quantity": item.quantity,
            "unit_price": item.unit_price,
        }
        for item in sub_order.items
    ]


def _sub_order_summary(sub_order: SubOrder, shipping_method: str | None) -> dict:
    return {
        "id": str(sub_order.id),
        "seller_id": sub_order.seller_id,
        "status": sub_order.status,
        "subtotal": sub_order.subtotal,
        "tracking_number": sub_order.tracking_number,
        "carrier": sub_order.carrier,
        "shipped_at": sub_order.shipped_at,
        "delivered_at": sub_order.delivered_at,
        "items": _sub_order_items(sub_order),
        "timeline": timeline(str(sub_order.id)),
        "estimated_delivery": estimated_delivery(
            sub_order.status, sub_order.created_at, sub_order.shipped_at, shipping_method
        ),
    }


def sub_order_tracking(order_id: str) -> list[dict]:
    """Per-seller shipment progress for a parent order, each with its own timeline."""
    order = current_domain.repository_for(Order).get(order_id)
    return [_sub_order_summary(so, order.shipping_method) for so in sub_orders_of(order_id)]


def _parent_detail(order: Order, caller: Caller) -> dict:
    items = [
        {
            "product_id": item.product_id,
            "seller_id": item.seller_id,
            "title": item.title,
            "quantity": item.quantity,
            "unit_price": item.unit_price,
        }
        for item in order.items
    ]
    sub_orders = [_sub_order_summary(so, order.shipping_method) for so in sub_orders_of(order.id)]
    if caller.role is Role.SELLER:
        items = [item for item in items if item["seller_id"] == caller.user_id]
        sub_orders = [so for so in sub_orders if so["seller_id"] == caller.user_id]

    return {
        "id": str(order.id),
        "source": "orders",
        "order_number": order.order_number,
        "parent_order_id": None,
        "seller_id": None,
        "customer_id": str(order.customer_id),
        "status": order.status,
        "amount": order.amount,
        "payment_status": order.payment_status,
        "payment_method": order.payment_method,
        "shipping_address": order.address(),
        "shipping_method": order.shipping_method,
        "tracking_number": order.tracking_number,
        "carrier": order.carrier,
        "created_at": order.created_at,
        "updated_at": order.updated_at,
        "shipped_at": order.shipped_at,
        "delivered_at": order.delivered_at,
        "items": items,
        "timeline": timeline(str(order.id)),
        "tracking_info": _tracking_info(order.tracking_number, order.carrier, order.shipped_at, order.delivered_at),
        "estimated_delivery": estimated_delivery(order.status, order.created_at, order.shipped_at, order.shipping_method),
        "sub_orders": sub_orders,
        # Owned by the returns service
        "refund_requests": [],
        "replacement_requests": [],
    }


def _child_detail(sub_order: SubOrder, parent: Order | None) -> dict:
    """A sub-order reshaped into the parent order contract."""
    shipping_method = parent.shipping_method if parent is not None else None
    return {
        "id": str(sub_order.id),
        "source": "sub_orders",
        "order_number": f"SUB-{str(sub_order.id)[:8]}",
        "parent_order_id": sub_order.parent_order_id,
        "seller_id": sub_order.seller_id,
        "customer_id": str(parent.customer_id) if parent is not None else None,
        "status": sub_order.status,
        "amount": sub_order.subtotal,
        "payment_status": parent.payment_status if parent is not None else None,
        "payment_method": parent.payment_method if parent is not None else None,
        "shipping_address": parent.address() if parent is not None else {},
        "shipping_method": shipping_method,
        "tracking_number": sub_order.tracking_number,
        "carrier": sub_order.carrier,
        "created_at": sub_order.created_at,
        "updated_at": sub_order.updated_at,
        "shipped_at": sub_order.shipped_at,
        "delivered_at": sub_order.delivered_at,
        "items": _sub_order_items(sub_order),
        "timeline": timeline(str(sub_order.id)),
        "tracking_info": _tracking_info(
            sub_order.tracking_number, sub_order.carrier, sub_order.shipped_at, sub_order.delivered_at
        ),
        "estimated_delivery": estimated_delivery(
            sub_order.status, sub_order.created_at, sub_order.shipped_at, shipping_method
        ),
        "sub_orders": [],
        "refund_requests": [],
        "replacement_requests": [],
    }


def order_detail(record: OrderRecord, caller: Caller) -> dict:
    if isinstance(record, ParentOrder):
        return _parent_detail(record.order, caller)
    if isinstance(record, ChildOrder):
        return _child_detail(record.sub_order, record.parent)
    raise TypeError(f"Unsupported order record: {type(record).__name__}")
