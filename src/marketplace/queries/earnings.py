"""Seller earnings summary."""

from marketplace.earning.earning import Earning, EarningStatus
from marketplace.utils.repository import fetch_all


def seller_earnings_summary(seller_id: str) -> dict:
    earnings = sorted(fetch_all(Earning, seller_id=seller_id), key=lambda e: e.created_at, reverse=True)

    totals = {status.value: 0 for status in EarningStatus}
    for earning in earnings:
        totals[earning.status] += earning.net_amount

    return {
        "seller_id": seller_id,
        "pending_amount": totals[EarningStatus.PENDING.value],
        "available_amount": totals[EarningStatus.AVAILABLE.value],
        "paid_amount": totals[EarningStatus.PAID.value],
        "earnings": [
            {
                "id": str(earning.id),
                "order_id": earning.order_id,
                "sub_order_id": earning.sub_order_id,
                "gross_amount": earning.gross_amount,
                "commission_rate": earning.commission_rate,
                "commission_amount": earning.commission_amount,
                "net_amount": earning.net_amount,
                "status": earning.status,
                "available_date": earning.available_date,
                "payout_id": earning.payout_id,
            }
            for earning in earnings
        ],
    }
