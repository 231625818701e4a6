"""Commission splitter — turns a paid order into per-seller sub-orders and earnings.

For every distinct seller on the order:

- the seller's items are carved out as a SubOrder (reused if one already
  exists for that order and seller),
- commission is computed on the seller's gross at the active rate,
- a pending Earning is recorded, unless one already exists for the
  seller and sub-order.

Seller groups are committed one at a time. A group that fails is logged
and reported without undoing the groups that succeeded, so running the
split again only fills in what is missing.
"""

from collections import defaultdict
from dataclasses import dataclass
from datetime import date

import structlog
from protean.exceptions import ValidationError
from protean.fields import Identifier
from protean.utils.globals import current_domain
from protean.utils.mixins import handle

from marketplace import settings
from marketplace.domain import marketplace
from marketplace.earning.commission import active_commission_rate, commission_for
from marketplace.earning.earning import Earning
from marketplace.order.events import OrderPaid
from marketplace.order.order import Order, PaymentStatus
from marketplace.suborder.suborder import SubOrder
from marketplace.utils.repository import fetch_all

logger = structlog.get_logger(__name__)

# Seller ids left behind by catalogue imports that do not belong to a real seller
PLACEHOLDER_SELLER_IDS = frozenset({"placeholder-seller-id", "default-seller"})


@dataclass(frozen=True)
class SplitResult:
    order_id: str
    sub_order_ids: tuple[str, ...] = ()
    earning_ids: tuple[str, ...] = ()
    skipped_product_ids: tuple[str, ...] = ()
    failed_seller_ids: tuple[str, ...] = ()

    @property
    def succeeded(self) -> bool:
        return not self.failed_seller_ids


def group_items_by_seller(order: Order) -> tuple[dict[str, list[dict]], list[str]]:
    """Partition the order's items by seller.

    Returns the groups and the product ids of items that could not be
    attributed to a real seller.
    """
    groups: dict[str, list[dict]] = defaultdict(list)
    skipped: list[str] = []
    for item in order.items:
        seller_id = (item.seller_id or "").strip()
        if not seller_id or seller_id in PLACEHOLDER_SELLER_IDS:
            skipped.append(item.product_id)
            continue
        groups[seller_id].append(
            {
                "product_id": item.product_id,
                "title": item.title,
                "quantity": item.quantity,
                "unit_price": item.unit_price,
            }
        )
    return dict(groups), skipped


def _sub_order_for(order: Order, seller_id: str, items: list[dict]) -> SubOrder:
    existing = fetch_all(SubOrder, parent_order_id=str(order.id), seller_id=seller_id)
    if existing:
        return existing[0]

    sub_order = SubOrder.carve(parent_order_id=str(order.id), seller_id=seller_id, items_data=items)
    current_domain.repository_for(SubOrder).add(sub_order)
    return sub_order


def _earning_for(order: Order, sub_order: SubOrder, rate: float, holding_days: int, today: date | None) -> Earning | None:
    existing = fetch_all(Earning, seller_id=sub_order.seller_id, sub_order_id=str(sub_order.id))
    if existing:
        logger.info(
            "Earning already recorded, skipping",
            order_id=str(order.id),
            seller_id=sub_order.seller_id,
            earning_id=str(existing[0].id),
        )
        return None

    earning = Earning.record(
        seller_id=sub_order.seller_id,
        sub_order_id=str(sub_order.id),
        order_id=str(order.id),
        gross_amount=sub_order.subtotal,
        commission_rate=rate,
        commission_amount=commission_for(sub_order.subtotal, rate),
        holding_days=holding_days,
        today=today,
    )
    current_domain.repository_for(Earning).add(earning)
    return earning


def split_and_create_earnings(order: Order, today: date | None = None) -> SplitResult:
    groups, skipped = group_items_by_seller(order)
    if skipped:
        logger.warning(
            "Order items without a real seller were not split",
            order_id=str(order.id),
            product_ids=skipped,
        )

    rate = active_commission_rate()
    holding_days = settings.holding_period_days()

    sub_order_ids: list[str] = []
    earning_ids: list[str] = []
    failed: list[str] = []
    total_commission = 0

    for seller_id, items in groups.items():
        try:
            sub_order = _sub_order_for(order, seller_id, items)
            earning = _earning_for(order, sub_order, rate, holding_days, today)
        except Exception as e:
            logger.error(
                "Failed to split seller share of order",
                order_id=str(order.id),
                seller_id=seller_id,
                error=str(e),
            )
            failed.append(seller_id)
            continue

        sub_order_ids.append(str(sub_order.id))
        if earning is not None:
            earning_ids.append(str(earning.id))
            total_commission += earning.commission_amount

    if earning_ids and not failed and len(earning_ids) == len(groups):
        split_gross = sum(sum(i["unit_price"] * i["quantity"] for i in items) for items in groups.values())
        drift = total_commission - commission_for(split_gross, rate)
        if drift:
            logger.debug("Per-seller commission rounding drift", order_id=str(order.id), drift=drift)

    logger.info(
        "Order split into seller earnings",
        order_id=str(order.id),
        sellers=len(groups),
        earnings_created=len(earning_ids),
        failed_sellers=failed,
    )
    return SplitResult(
        order_id=str(order.id),
        sub_order_ids=tuple(sub_order_ids),
        earning_ids=tuple(earning_ids),
        skipped_product_ids=tuple(skipped),
        failed_seller_ids=tuple(failed),
    )


@marketplace.command(part_of="Order")
class SplitOrder:
    """Re-run the split for a paid order, creating only what is missing."""

    order_id = Identifier(required=True)


@marketplace.command_handler(part_of=Order)
class SplitOrderHandler:
    @handle(SplitOrder)
    def split_order(self, command):
        order = current_domain.repository_for(Order).get(command.order_id)
        if PaymentStatus(order.payment_status) != PaymentStatus.PAID:
            raise ValidationError({"payment_status": ["Only paid orders can be split"]})
        return split_and_create_earnings(order)


@marketplace.event_handler(part_of=Order)
class OrderPaidSplitter:
    """Splits an order into seller earnings as soon as it is paid."""

    @handle(OrderPaid)
    def on_order_paid(self, event: OrderPaid) -> None:
        try:
            order = current_domain.repository_for(Order).get(event.order_id)
        except Exception:
            logger.error("Failed to load paid order for splitting", order_id=str(event.order_id))
            return

        split_and_create_earnings(order)
