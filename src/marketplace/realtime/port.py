"""Realtime broadcast port (abstract interface).

Status and tracking changes are pushed to whoever is watching an order.
Delivery is best-effort: nothing is persisted or replayed, and a publish
never fails the caller.
"""

from abc import ABC, abstractmethod


class BroadcastGateway(ABC):
    """Abstract broadcast gateway interface."""

    @abstractmethod
    def publish(self, order_id: str, event: str, payload: dict) -> None:
        """Send ``payload`` as ``event`` to every subscriber of ``order_id``."""
        ...


class NoOpGateway(BroadcastGateway):
    """Gateway used when no realtime transport has been installed."""

    def publish(self, order_id: str, event: str, payload: dict) -> None:
        return None
