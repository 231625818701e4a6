"""Resolve an id that may name a parent order or a seller's sub-order.

Buyers hold parent order ids while sellers are handed sub-order ids, and
both end up on the same order pages. ``find_order_or_sub_order`` is the one
place that decides which kind of record an id refers to.
"""

from dataclasses import dataclass

from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from marketplace.exceptions import AccessDenied
from marketplace.order.order import Order
from marketplace.queries.access import Caller, Role
from marketplace.suborder.suborder import SubOrder
from marketplace.utils.repository import fetch_all


@dataclass(frozen=True)
class ParentOrder:
    order: Order

    @property
    def id(self) -> str:
        return str(self.order.id)

    @property
    def customer_id(self) -> str:
        return str(self.order.customer_id)


@dataclass(frozen=True)
class ChildOrder:
    sub_order: SubOrder
    parent: Order | None

    @property
    def id(self) -> str:
        return str(self.sub_order.id)

    @property
    def customer_id(self) -> str | None:
        return str(self.parent.customer_id) if self.parent is not None else None


OrderRecord = ParentOrder | ChildOrder


def find_order_or_sub_order(order_id: str) -> OrderRecord:
    """Look ``order_id`` up as a parent order, then as a sub-order.

    Raises ObjectNotFoundError when neither exists.
    """
    try:
        return ParentOrder(current_domain.repository_for(Order).get(order_id))
    except ObjectNotFoundError:
        pass

    try:
        sub_order = current_domain.repository_for(SubOrder).get(order_id)
    except ObjectNotFoundError:
        raise ObjectNotFoundError({"_entity": f"Order {order_id} not found"}) from None

    try:
        parent = current_domain.repository_for(Order).get(sub_order.parent_order_id)
    except ObjectNotFoundError:
        parent = None
    return ChildOrder(sub_order=sub_order, parent=parent)


def sub_orders_of(order_id: str) -> list[SubOrder]:
    return sorted(fetch_all(SubOrder, parent_order_id=str(order_id)), key=lambda so: so.seller_id)


def seller_has_stake(seller_id: str, record: OrderRecord) -> bool:
    if isinstance(record, ChildOrder):
        return record.sub_order.seller_id == seller_id
    if seller_id in record.order.seller_ids():
        return True
    return any(so.seller_id == seller_id for so in sub_orders_of(record.id))


def can_view(caller: Caller, record: OrderRecord) -> bool:
    if caller.role is Role.ADMIN:
        return True
    if caller.role is Role.CUSTOMER:
        return record.customer_id == caller.user_id
    return seller_has_stake(caller.user_id, record)


def assert_can_view(caller: Caller, record: OrderRecord) -> None:
    if not can_view(caller, record):
        raise AccessDenied("You do not have access to this order")


def assert_can_manage(caller: Caller, record: OrderRecord) -> None:
    """Status and tracking changes are made by admins and by sellers with a
    stake in the order. Buyers cannot change status."""
    if caller.role is Role.ADMIN:
        return
    if caller.role is Role.SELLER and seller_has_stake(caller.user_id, record):
        return
    raise AccessDenied("You are not allowed to update this order")
