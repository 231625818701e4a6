"""Fake notifier — records dispatched notifications for testing."""

from uuid import uuid4

from marketplace.notify.port import NotificationPayload, NotificationPort


class FakeNotifier(NotificationPort):
    """Notifier that records payloads in memory for test assertions."""

    def __init__(self):
        self.dispatched: list[NotificationPayload] = []
        self.should_succeed = True
        self.failure_reason = "Notification service unavailable"

    def configure(self, should_succeed: bool = True, failure_reason: str = "Notification service unavailable"):
        """Configure the fake notifier behavior for testing."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    def dispatch(self, payload: NotificationPayload) -> dict:
        if not self.should_succeed:
            raise ConnectionError(self.failure_reason)

        self.dispatched.append(payload)
        return {"notification_id": f"ntf-{uuid4().hex[:12]}", "status": "queued"}

    def reset(self):
        """Clear dispatched notifications (useful between tests)."""
        self.dispatched.clear()
        self.should_succeed = True
        self.failure_reason = "Notification service unavailable"
