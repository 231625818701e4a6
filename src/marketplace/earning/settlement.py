"""Settlement pass — promotes earnings whose holding period has elapsed.

Selects pending earnings with ``available_date`` on or before the pass's
calendar day and makes each of them available. Every row is re-loaded and
re-checked before it is promoted, so two passes racing over the same rows
promote each earning once.

A pass never raises to its host. Failures are logged and reported in the
SettlementResult; rows that were not promoted stay pending for the next
pass.
"""

from dataclasses import dataclass
from datetime import date, datetime

import structlog
from protean import handle
from protean.fields import DateTime
from protean.utils.globals import current_domain

from marketplace.domain import marketplace
from marketplace.earning.earning import Earning, EarningStatus, settlement_day
from marketplace.utils.repository import fetch_all

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class SettlementResult:
    promoted_count: int = 0
    total_amount_promoted: int = 0
    succeeded: bool = True
    error: str | None = None


def _due_earnings(today: date) -> list[Earning]:
    return fetch_all(Earning, status=EarningStatus.PENDING.value, available_date__lte=today)


def run_settlement_pass(as_of: datetime | None = None) -> SettlementResult:
    today = settlement_day(as_of)
    repo = current_domain.repository_for(Earning)

    try:
        due = _due_earnings(today)
    except Exception as e:
        logger.error("Settlement pass could not read pending earnings", settlement_day=str(today), error=str(e))
        return SettlementResult(succeeded=False, error=str(e))

    promoted = 0
    total = 0
    failures = 0
    for candidate in due:
        try:
            earning = repo.get(candidate.id)
            # Another pass may have promoted it since it was selected
            if not earning.is_due(today):
                continue
            earning.make_available()
            repo.add(earning)
        except Exception as e:
            failures += 1
            logger.error(
                "Failed to promote earning",
                earning_id=str(candidate.id),
                seller_id=candidate.seller_id,
                error=str(e),
            )
            continue

        promoted += 1
        total += earning.net_amount

    logger.info(
        "Settlement pass finished",
        settlement_day=str(today),
        promoted_count=promoted,
        total_amount_promoted=total,
        failures=failures,
    )
    return SettlementResult(
        promoted_count=promoted,
        total_amount_promoted=total,
        succeeded=failures == 0,
        error=f"{failures} earning(s) could not be promoted" if failures else None,
    )


@marketplace.command(part_of="Earning")
class RunSettlementPass:
    """Run a settlement pass now (manual trigger or scheduler tick)."""

    as_of = DateTime()


@marketplace.command_handler(part_of=Earning)
class SettlementHandler:
    @handle(RunSettlementPass)
    def run_pass(self, command):
        return run_settlement_pass(command.as_of)
