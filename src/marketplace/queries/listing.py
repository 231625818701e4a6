"""Paginated, role-scoped order listing."""

import math

from marketplace.lifecycle import parse_status
from marketplace.order.order import Order, OrderStatus
from marketplace.queries.access import Caller, Role
from marketplace.utils.repository import fetch_all, fetch_page

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 20
MAX_LIMIT = 100


def _matches_search(order: Order, term: str) -> bool:
    term = term.lower()
    if term in (order.order_number or "").lower():
        return True
    return any(term in (item.title or "").lower() for item in order.items)


def _summary(order: Order, caller: Caller) -> dict:
    items = order.items
    if caller.role is Role.SELLER:
        items = [item for item in items if item.seller_id == caller.user_id]
    return {
        "id": str(order.id),
        "order_number": order.order_number,
        "customer_id": str(order.customer_id),
        "status": order.status,
        "amount": order.amount,
        "payment_status": order.payment_status,
        "item_count": sum(item.quantity for item in items),
        "tracking_number": order.tracking_number,
        "carrier": order.carrier,
        "created_at": order.created_at,
    }


def list_orders(
    caller: Caller,
    status: str | None = None,
    search: str | None = None,
    page: int = DEFAULT_PAGE,
    limit: int = DEFAULT_LIMIT,
) -> dict:
    """Orders the caller may see, newest first.

    ``status`` of ``all`` (or nothing) means no status filter; any other
    value must be a known status. ``search`` matches the order number or
    an item title, case-insensitively.

    Buyer and admin listings without a search are paged by the database.
    Seller scope and search look inside order items, so those listings
    are filtered from a scan.
    """
    page = max(page, 1)
    limit = min(max(limit, 1), MAX_LIMIT)
    start = (page - 1) * limit

    criteria = {}
    if caller.role is Role.CUSTOMER:
        criteria["customer_id"] = caller.user_id
    if status and status.lower() != "all":
        criteria["status"] = parse_status(status, OrderStatus).value

    if caller.role is not Role.SELLER and not search:
        orders, total = fetch_page(Order, offset=start, limit=limit, order_by="-created_at", **criteria)
    else:
        orders = fetch_all(Order, **criteria)
        if caller.role is Role.SELLER:
            orders = [order for order in orders if caller.user_id in order.seller_ids()]
        if search:
            orders = [order for order in orders if _matches_search(order, search.strip())]
        orders.sort(key=lambda order: order.created_at, reverse=True)
        total = len(orders)
        orders = orders[start : start + limit]

    return {
        "orders": [_summary(order, caller) for order in orders],
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "total_pages": math.ceil(total / limit) if total else 0,
        },
    }
