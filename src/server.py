"""Settlement scheduler for the marketplace domain.

Runs the earnings settlement pass once a day at SETTLEMENT_RUN_AT
(default 00:00) in SETTLEMENT_TIMEZONE (default America/New_York). The
HTTP API can trigger extra passes at any time; passes are idempotent.

Usage:
    python src/server.py           # Run the daily scheduler
    python src/server.py --once    # Run one pass now and exit
"""

import argparse
import asyncio
from datetime import UTC, datetime, time, timedelta
from zoneinfo import ZoneInfo

import structlog

from marketplace import settings
from marketplace.domain import marketplace
from marketplace.earning.settlement import RunSettlementPass, SettlementResult
from marketplace.utils.logging import configure_logging

logger = structlog.get_logger(__name__)


def next_run_after(now: datetime, run_at: time, tz: ZoneInfo) -> datetime:
    """First occurrence of ``run_at`` in ``tz`` strictly after ``now``."""
    local_now = now.astimezone(tz)
    candidate = datetime.combine(local_now.date(), run_at, tzinfo=tz)
    if candidate <= local_now:
        candidate = datetime.combine(local_now.date() + timedelta(days=1), run_at, tzinfo=tz)
    return candidate


def run_pass(domain=marketplace, as_of: datetime | None = None) -> SettlementResult:
    with domain.domain_context():
        return domain.process(RunSettlementPass(as_of=as_of or datetime.now(UTC)), asynchronous=False)


async def run_scheduler(domain=marketplace) -> None:
    while True:
        now = datetime.now(UTC)
        next_run = next_run_after(now, settings.settlement_run_at(), settings.settlement_timezone())
        logger.info("Next settlement pass scheduled", run_at=next_run.isoformat())
        await asyncio.sleep((next_run - now).total_seconds())

        try:
            result = await asyncio.to_thread(run_pass, domain)
        except Exception as e:
            logger.error("Settlement pass crashed", error=str(e))
            continue

        if not result.succeeded:
            logger.warning("Settlement pass reported failures", error=result.error)


def main():
    parser = argparse.ArgumentParser(description="Marketplace settlement scheduler")
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run a single settlement pass immediately and exit",
    )
    args = parser.parse_args()

    configure_logging()
    marketplace.init()

    if args.once:
        result = run_pass()
        print(f"Promoted {result.promoted_count} earning(s), total {result.total_amount_promoted}")
        return

    asyncio.run(run_scheduler())


if __name__ == "__main__":
    main()
