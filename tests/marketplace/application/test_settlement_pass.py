"""Application tests for the earnings settlement pass and payout bookkeeping."""

from datetime import date, datetime, time
from unittest.mock import patch

import pytest
from protean import current_domain
from protean.exceptions import ValidationError

from manage import _parse_as_of
from marketplace.domain import marketplace
from marketplace.earning import settlement
from marketplace.earning.earning import Earning, EarningStatus
from marketplace.earning.payout import MarkEarningPaid
from marketplace.earning.settlement import RunSettlementPass, run_settlement_pass
from marketplace.queries.earnings import seller_earnings_summary
from marketplace.utils import repository
from server import run_pass


def _record_earning(seller_id="seller-a", recorded_on=date(2026, 3, 1), gross=10000, commission=1000):
    earning = Earning.record(
        seller_id=seller_id,
        sub_order_id=f"sub-{seller_id}-{recorded_on.isoformat()}",
        order_id="ord-001",
        gross_amount=gross,
        commission_rate=10.0,
        commission_amount=commission,
        holding_days=7,
        today=recorded_on,
    )
    current_domain.repository_for(Earning).add(earning)
    return str(earning.id)


def _noon(day):
    return datetime.combine(day, time(12, 0))


def _status(earning_id):
    return current_domain.repository_for(Earning).get(earning_id).status


class TestSettlementPass:
    def test_promotes_due_earnings(self):
        earning_id = _record_earning()

        result = run_settlement_pass(_noon(date(2026, 3, 8)))

        assert result.succeeded
        assert result.promoted_count == 1
        assert result.total_amount_promoted == 9000
        assert _status(earning_id) == EarningStatus.AVAILABLE.value

    def test_second_pass_promotes_nothing(self):
        _record_earning("seller-a")
        _record_earning("seller-b")

        first = run_settlement_pass(_noon(date(2026, 3, 10)))
        second = run_settlement_pass(_noon(date(2026, 3, 10)))

        assert first.promoted_count == 2
        assert second.promoted_count == 0
        assert second.total_amount_promoted == 0
        assert second.succeeded

    def test_future_dated_earnings_stay_pending(self):
        due = _record_earning("seller-a", recorded_on=date(2026, 3, 1))
        not_yet = _record_earning("seller-b", recorded_on=date(2026, 3, 5))

        result = run_settlement_pass(_noon(date(2026, 3, 8)))

        assert result.promoted_count == 1
        assert _status(due) == EarningStatus.AVAILABLE.value
        assert _status(not_yet) == EarningStatus.PENDING.value

    def test_due_rows_are_found_behind_many_future_rows(self, monkeypatch):
        monkeypatch.setattr(repository, "SCAN_LIMIT", 3)
        for seller_id in ("seller-b", "seller-c", "seller-d"):
            _record_earning(seller_id, recorded_on=date(2026, 3, 20))
        due = _record_earning("seller-a", recorded_on=date(2026, 3, 1))

        result = run_settlement_pass(_noon(date(2026, 3, 8)))

        assert result.promoted_count == 1
        assert _status(due) == EarningStatus.AVAILABLE.value

    def test_paid_earnings_are_not_touched(self):
        earning_id = _record_earning()
        run_settlement_pass(_noon(date(2026, 3, 8)))
        current_domain.process(MarkEarningPaid(earning_id=earning_id, payout_id="po-1"), asynchronous=False)

        result = run_settlement_pass(_noon(date(2026, 3, 9)))

        assert result.promoted_count == 0
        assert _status(earning_id) == EarningStatus.PAID.value

    def test_read_failure_is_reported_not_raised(self):
        _record_earning()
        with patch.object(settlement, "_due_earnings", side_effect=RuntimeError("connection refused")):
            result = run_settlement_pass(_noon(date(2026, 3, 8)))

        assert not result.succeeded
        assert result.promoted_count == 0
        assert "connection refused" in result.error

    def test_row_failure_leaves_row_pending_and_others_promoted(self):
        ok = _record_earning("seller-a")
        broken = _record_earning("seller-b")
        original = Earning.make_available

        def flaky(self):
            if self.seller_id == "seller-b":
                raise RuntimeError("write conflict")
            return original(self)

        with patch.object(Earning, "make_available", flaky):
            result = run_settlement_pass(_noon(date(2026, 3, 8)))

        assert not result.succeeded
        assert result.promoted_count == 1
        assert _status(ok) == EarningStatus.AVAILABLE.value
        assert _status(broken) == EarningStatus.PENDING.value

        retry = run_settlement_pass(_noon(date(2026, 3, 8)))
        assert retry.promoted_count == 1
        assert _status(broken) == EarningStatus.AVAILABLE.value


class TestSettlementCommands:
    def test_run_settlement_pass_command(self):
        _record_earning()
        result = current_domain.process(RunSettlementPass(as_of=_noon(date(2026, 3, 8))), asynchronous=False)
        assert result.promoted_count == 1

    def test_mark_paid_requires_available(self):
        earning_id = _record_earning()
        with pytest.raises(ValidationError):
            current_domain.process(MarkEarningPaid(earning_id=earning_id, payout_id="po-1"), asynchronous=False)


class TestManualSettlement:
    def test_as_of_date_settles_that_day(self):
        due = _record_earning("seller-a", recorded_on=date(2026, 1, 24))

        result = run_pass(marketplace, as_of=_parse_as_of("2026-01-31"))

        assert result.promoted_count == 1
        assert _status(due) == EarningStatus.AVAILABLE.value

    def test_as_of_date_does_not_reach_the_next_day(self):
        not_yet = _record_earning("seller-a", recorded_on=date(2026, 1, 25))

        result = run_pass(marketplace, as_of=_parse_as_of("2026-01-31"))

        assert result.promoted_count == 0
        assert _status(not_yet) == EarningStatus.PENDING.value


class TestSellerEarningsSummary:
    def test_totals_by_status(self):
        paid = _record_earning("seller-a", recorded_on=date(2026, 2, 1))
        _record_earning("seller-a", recorded_on=date(2026, 3, 1))
        _record_earning("seller-a", recorded_on=date(2026, 3, 20), gross=5000, commission=500)
        _record_earning("seller-b", recorded_on=date(2026, 3, 1))

        run_settlement_pass(_noon(date(2026, 3, 10)))
        current_domain.process(MarkEarningPaid(earning_id=paid, payout_id="po-1"), asynchronous=False)

        summary = seller_earnings_summary("seller-a")

        assert summary["paid_amount"] == 9000
        assert summary["available_amount"] == 9000
        assert summary["pending_amount"] == 4500
        assert len(summary["earnings"]) == 3
