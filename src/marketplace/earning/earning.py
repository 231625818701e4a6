"""Earning aggregate (CQRS) — what a seller is owed for one sub-order.

An earning is created by the commission splitter in PENDING state with an
``available_date`` at the end of the holding period. The settlement pass
promotes it to AVAILABLE once that date has arrived, and the payout
process marks it PAID.

State Machine:
    PENDING → AVAILABLE → PAID
"""

from datetime import UTC, date, datetime, timedelta
from enum import Enum

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import Date, DateTime, Float, Integer, String

from marketplace import settings
from marketplace.domain import marketplace
from marketplace.earning.events import EarningBecameAvailable, EarningPaid, EarningRecorded


class EarningStatus(Enum):
    PENDING = "pending"
    AVAILABLE = "available"
    PAID = "paid"


def settlement_day(as_of: datetime | None = None) -> date:
    """Calendar day in the settlement timezone at ``as_of``. Naive values are
    already local."""
    as_of = as_of or datetime.now(UTC)
    if as_of.tzinfo is None:
        return as_of.date()
    return as_of.astimezone(settings.settlement_timezone()).date()


_VALID_TRANSITIONS = {
    EarningStatus.PENDING: {EarningStatus.AVAILABLE},
    EarningStatus.AVAILABLE: {EarningStatus.PAID},
    EarningStatus.PAID: set(),
}


@marketplace.aggregate
class Earning:
    seller_id = String(required=True, max_length=255)
    sub_order_id = String(required=True, max_length=255)
    order_id = String(required=True, max_length=255)
    gross_amount = Integer(required=True, min_value=0)
    commission_rate = Float(required=True, min_value=0.0, max_value=100.0)
    commission_amount = Integer(required=True, min_value=0)
    net_amount = Integer(required=True, min_value=0)
    status = String(
        choices=EarningStatus,
        default=EarningStatus.PENDING.value,
    )
    available_date = Date(required=True)
    payout_id = String(max_length=255)
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def net_is_gross_less_commission(self):
        if self.gross_amount is None or self.commission_amount is None or self.net_amount is None:
            return
        if self.net_amount != self.gross_amount - self.commission_amount:
            raise ValidationError({"net_amount": ["Net amount must equal gross amount less commission"]})

    @classmethod
    def record(
        cls,
        seller_id: str,
        sub_order_id: str,
        order_id: str,
        gross_amount: int,
        commission_rate: float,
        commission_amount: int,
        holding_days: int,
        today: date | None = None,
    ):
        """Record a pending earning that becomes available after ``holding_days``."""
        now = datetime.now(UTC)
        available_date = (today or settlement_day(now)) + timedelta(days=holding_days)
        earning = cls(
            seller_id=seller_id,
            sub_order_id=sub_order_id,
            order_id=order_id,
            gross_amount=gross_amount,
            commission_rate=commission_rate,
            commission_amount=commission_amount,
            net_amount=gross_amount - commission_amount,
            status=EarningStatus.PENDING.value,
            available_date=available_date,
            created_at=now,
            updated_at=now,
        )
        earning.raise_(
            EarningRecorded(
                earning_id=str(earning.id),
                seller_id=seller_id,
                sub_order_id=sub_order_id,
                order_id=order_id,
                gross_amount=gross_amount,
                commission_amount=commission_amount,
                net_amount=earning.net_amount,
                available_date=available_date,
                recorded_at=now,
            )
        )
        return earning

    def _assert_can_transition(self, target_status: EarningStatus) -> None:
        current = EarningStatus(self.status)
        if target_status not in _VALID_TRANSITIONS.get(current, set()):
            raise ValidationError({"status": [f"Cannot transition from {current.value} to {target_status.value}"]})

    def is_due(self, as_of: date) -> bool:
        """Pending and past its holding period on ``as_of``."""
        return EarningStatus(self.status) == EarningStatus.PENDING and self.available_date <= as_of

    def make_available(self) -> None:
        self._assert_can_transition(EarningStatus.AVAILABLE)
        now = datetime.now(UTC)
        self.status = EarningStatus.AVAILABLE.value
        self.updated_at = now
        self.raise_(
            EarningBecameAvailable(
                earning_id=str(self.id),
                seller_id=self.seller_id,
                net_amount=self.net_amount,
                available_at=now,
            )
        )

    def mark_paid(self, payout_id: str) -> None:
        """Record that the payout process has paid this earning out."""
        if not payout_id:
            raise ValidationError({"payout_id": ["Payout id is required"]})
        self._assert_can_transition(EarningStatus.PAID)
        now = datetime.now(UTC)
        self.status = EarningStatus.PAID.value
        self.payout_id = payout_id
        self.updated_at = now
        self.raise_(
            EarningPaid(
                earning_id=str(self.id),
                seller_id=self.seller_id,
                payout_id=payout_id,
                net_amount=self.net_amount,
                paid_at=now,
            )
        )
