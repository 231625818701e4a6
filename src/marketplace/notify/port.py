"""Notification port — abstract interface to the notification service.

The notification service owns templating and channel delivery. The
marketplace only hands it a structured payload.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field


@dataclass(frozen=True)
class NotificationPayload:
    recipient_id: str
    notification_type: str
    title: str
    message: str
    priority: str
    channels: tuple[str, ...]
    action_url: str | None = None
    action_text: str | None = None
    metadata: dict = field(default_factory=dict)


class NotificationPort(ABC):
    """Abstract interface for notification dispatch adapters."""

    @abstractmethod
    def dispatch(self, payload: NotificationPayload) -> dict:
        """Hand a notification to the notification service.

        Returns:
            dict with keys: notification_id, status ("queued" or "failed"), error (optional)
        """
        ...
