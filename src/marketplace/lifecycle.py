"""Status parsing and transition checks shared by orders and sub-orders."""

from enum import Enum

from protean.exceptions import ValidationError

from marketplace import settings
from marketplace.settings import TransitionPolicy


def parse_status(value, statuses: type[Enum]) -> Enum:
    """Convert raw input into a member of ``statuses``.

    This is the only place where a free-form status string is accepted.
    Anything outside the closed set is rejected before any state changes.
    """
    if isinstance(value, statuses):
        return value
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValidationError({"status": ["Status is required"]})
    try:
        return statuses(str(value).strip().lower())
    except ValueError:
        allowed = ", ".join(s.value for s in statuses)
        raise ValidationError({"status": [f"Invalid status '{value}'. Must be one of: {allowed}"]}) from None


def assert_can_transition(current: Enum, target: Enum, graph: dict) -> None:
    """Reject ``current -> target`` when the strict policy is active and the
    edge is not part of ``graph``."""
    if settings.transition_policy() is TransitionPolicy.LENIENT:
        return
    if target not in graph.get(current, set()):
        raise ValidationError({"status": [f"Cannot transition from {current.value} to {target.value}"]})
