"""Buyer notification registry.

Order and sub-order status handlers hand buyer-facing messages (in-app and
email) to whatever notifier is registered here. Nothing in this package
delivers them itself: FakeNotifier records the hand-offs until a deployment
or a test registers another NotificationPort with set_notifier().
"""

from marketplace.notify.fake import FakeNotifier
from marketplace.notify.port import NotificationPort

_current_notifier: NotificationPort | None = None


def get_notifier() -> NotificationPort:
    """Notifier for buyer messages; a recording FakeNotifier until one is set."""
    global _current_notifier
    if _current_notifier is None:
        _current_notifier = FakeNotifier()
    return _current_notifier


def set_notifier(notifier: NotificationPort) -> None:
    global _current_notifier
    _current_notifier = notifier


def reset_notifier() -> None:
    """Drop the registered notifier so the next lookup starts a fresh FakeNotifier."""
    global _current_notifier
    _current_notifier = None
