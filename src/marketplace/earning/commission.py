"""Commission configuration and calculation.

The marketplace charges one global commission percentage. It is stored as
data (CommissionSetting) so operators can change it without a deploy; the
most recently activated setting wins. Without any setting, the configured
default applies.
"""

from datetime import UTC, datetime
from decimal import ROUND_HALF_UP, Decimal

import structlog
from protean import handle
from protean.fields import DateTime, Float, Identifier, String
from protean.utils.globals import current_domain

from marketplace import settings
from marketplace.domain import marketplace
from marketplace.utils.repository import fetch_page

logger = structlog.get_logger(__name__)


@marketplace.aggregate
class CommissionSetting:
    rate_percent = Float(required=True, min_value=0.0, max_value=100.0)
    set_by = String(max_length=255)
    activated_at = DateTime(required=True)


@marketplace.command(part_of="CommissionSetting")
class SetCommissionRate:
    """Activate a new global commission rate for future splits."""

    rate_percent = Float(required=True, min_value=0.0, max_value=100.0)
    set_by = Identifier()


@marketplace.command_handler(part_of=CommissionSetting)
class CommissionSettingHandler:
    @handle(SetCommissionRate)
    def set_rate(self, command):
        setting = CommissionSetting(
            rate_percent=command.rate_percent,
            set_by=command.set_by,
            activated_at=datetime.now(UTC),
        )
        current_domain.repository_for(CommissionSetting).add(setting)
        logger.info("Commission rate changed", rate_percent=command.rate_percent, set_by=command.set_by)
        return str(setting.id)


def active_commission_rate() -> float:
    """Percentage to apply to new earnings."""
    latest, _ = fetch_page(CommissionSetting, offset=0, limit=1, order_by="-activated_at")
    if not latest:
        return settings.default_commission_rate()
    return latest[0].rate_percent


def commission_for(gross_amount: int, rate_percent: float) -> int:
    """Commission in minor units, rounded half-up to a whole unit."""
    raw = Decimal(gross_amount) * Decimal(str(rate_percent)) / Decimal(100)
    return int(raw.quantize(Decimal(1), rounding=ROUND_HALF_UP))
