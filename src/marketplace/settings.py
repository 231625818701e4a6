"""Runtime settings read from the environment.

Values are read on every call so tests can adjust them with
``monkeypatch.setenv`` without reloading modules.
"""

import os
from datetime import time
from enum import Enum
from zoneinfo import ZoneInfo


class TransitionPolicy(Enum):
    LENIENT = "lenient"
    STRICT = "strict"


DEFAULT_COMMISSION_RATE = 15.0
DEFAULT_HOLDING_DAYS = 7
DEFAULT_SETTLEMENT_RUN_AT = "00:00"
DEFAULT_SETTLEMENT_TIMEZONE = "America/New_York"


def transition_policy() -> TransitionPolicy:
    """Which status transitions the engine accepts.

    ``lenient`` allows any known status to follow any other; ``strict``
    only allows the forward lifecycle graph.
    """
    raw = os.getenv("ORDER_TRANSITION_POLICY", TransitionPolicy.LENIENT.value).strip().lower()
    try:
        return TransitionPolicy(raw)
    except ValueError:
        raise ValueError(f"Unknown ORDER_TRANSITION_POLICY: {raw}") from None


def default_commission_rate() -> float:
    """Commission percentage used when no rate has been configured."""
    return float(os.getenv("DEFAULT_COMMISSION_RATE", DEFAULT_COMMISSION_RATE))


def holding_period_days() -> int:
    return int(os.getenv("EARNINGS_HOLDING_DAYS", DEFAULT_HOLDING_DAYS))


def settlement_run_at() -> time:
    """Time of day at which the daily settlement pass runs."""
    raw = os.getenv("SETTLEMENT_RUN_AT", DEFAULT_SETTLEMENT_RUN_AT)
    hours, _, minutes = raw.partition(":")
    return time(hour=int(hours), minute=int(minutes or 0))


def settlement_timezone() -> ZoneInfo:
    return ZoneInfo(os.getenv("SETTLEMENT_TIMEZONE", DEFAULT_SETTLEMENT_TIMEZONE))
