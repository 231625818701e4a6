"""Status side-effect dispatcher.

Runs after an order's status or tracking change has been committed:

1. append a row to the status history,
2. publish the change to realtime subscribers,
3. hand a notification to the notification service.

Each step is best-effort. A failure is logged with the order id and the
remaining steps still run; nothing is raised back to the request that made
the change.
"""

from dataclasses import dataclass, field
from datetime import datetime

import structlog
from protean.utils.mixins import handle

from marketplace.domain import marketplace
from marketplace.notify import get_notifier
from marketplace.notify.policy import status_update_payload, tracking_added_payload, template_for
from marketplace.notify.port import NotificationPort
from marketplace.order.events import OrderStatusChanged, TrackingAdded
from marketplace.order.order import Order
from marketplace.projections.status_history import TargetKind, append_status_event
from marketplace.realtime import get_gateway
from marketplace.realtime.port import BroadcastGateway

logger = structlog.get_logger(__name__)

STATUS_UPDATE_EVENT = "status_update"
TRACKING_UPDATE_EVENT = "tracking_update"


@dataclass(frozen=True)
class StatusChange:
    """A committed change, as seen by the dispatcher."""

    order_id: str
    recipient_id: str | None
    previous_status: str
    new_status: str
    occurred_at: datetime
    actor_id: str | None = None
    reason: str | None = None
    notes: str | None = None
    tracking_number: str | None = None
    carrier: str | None = None
    target_kind: TargetKind = TargetKind.ORDER
    # Extra order ids whose watchers should also see the change
    also_broadcast_to: tuple[str, ...] = field(default_factory=tuple)


class StatusChangeDispatcher:
    def __init__(self, gateway: BroadcastGateway, notifier: NotificationPort):
        self.gateway = gateway
        self.notifier = notifier

    def status_changed(self, change: StatusChange) -> None:
        self._record_history(change)
        self._broadcast(
            change,
            STATUS_UPDATE_EVENT,
            {
                "orderId": change.order_id,
                "status": change.new_status,
                "previousStatus": change.previous_status,
                "timestamp": change.occurred_at.isoformat(),
                "message": template_for(change.new_status).message,
                "changedBy": change.actor_id,
                "notes": change.notes,
            },
        )
        if change.recipient_id:
            self._notify(
                change,
                lambda: status_update_payload(
                    order_id=change.order_id,
                    recipient_id=change.recipient_id,
                    previous_status=change.previous_status,
                    new_status=change.new_status,
                    tracking_number=change.tracking_number,
                    carrier=change.carrier,
                ),
            )

    def tracking_added(self, change: StatusChange) -> None:
        self._record_history(
            change,
            notes=f"Tracking information added: {change.carrier} - {change.tracking_number}",
            metadata={"action": "tracking_added"},
        )
        self._broadcast(
            change,
            TRACKING_UPDATE_EVENT,
            {
                "orderId": change.order_id,
                "trackingNumber": change.tracking_number,
                "carrier": change.carrier,
                "timestamp": change.occurred_at.isoformat(),
                "message": f"Tracking information added: {change.carrier} - {change.tracking_number}",
            },
        )
        if change.recipient_id:
            self._notify(
                change,
                lambda: tracking_added_payload(
                    order_id=change.order_id,
                    recipient_id=change.recipient_id,
                    tracking_number=change.tracking_number,
                    carrier=change.carrier,
                ),
            )

    # -------------------------------------------------------------------
    # Steps
    # -------------------------------------------------------------------
    def _record_history(self, change: StatusChange, notes=None, metadata=None) -> None:
        try:
            append_status_event(
                order_id=change.order_id,
                previous_status=change.previous_status,
                new_status=change.new_status,
                actor_id=change.actor_id,
                reason=change.reason,
                notes=notes or change.notes,
                tracking_number=change.tracking_number,
                carrier=change.carrier,
                metadata=metadata,
                occurred_at=change.occurred_at,
                target_kind=change.target_kind,
            )
        except Exception as e:
            logger.error(
                "Failed to record status history",
                order_id=change.order_id,
                new_status=change.new_status,
                error=str(e),
            )

    def _broadcast(self, change: StatusChange, event: str, payload: dict) -> None:
        for order_id in (change.order_id, *change.also_broadcast_to):
            try:
                self.gateway.publish(order_id, event, payload)
            except Exception as e:
                logger.warning(
                    "Realtime broadcast failed",
                    order_id=order_id,
                    event_name=event,
                    error=str(e),
                )

    def _notify(self, change: StatusChange, build_payload) -> None:
        try:
            self.notifier.dispatch(build_payload())
        except Exception as e:
            logger.error(
                "Failed to hand notification to notification service",
                order_id=change.order_id,
                recipient_id=change.recipient_id,
                error=str(e),
            )


def current_dispatcher() -> StatusChangeDispatcher:
    """Dispatcher wired to the currently installed gateway and notifier."""
    return StatusChangeDispatcher(gateway=get_gateway(), notifier=get_notifier())


@marketplace.event_handler(part_of=Order)
class OrderStatusSideEffects:
    """Delivers the side effects of committed order status and tracking changes."""

    @handle(OrderStatusChanged)
    def on_status_changed(self, event: OrderStatusChanged) -> None:
        current_dispatcher().status_changed(
            StatusChange(
                order_id=str(event.order_id),
                recipient_id=str(event.customer_id),
                previous_status=event.previous_status,
                new_status=event.new_status,
                occurred_at=event.changed_at,
                actor_id=str(event.actor_id) if event.actor_id else None,
                reason=event.reason,
                notes=event.notes,
                tracking_number=event.tracking_number,
                carrier=event.carrier,
            )
        )

    @handle(TrackingAdded)
    def on_tracking_added(self, event: TrackingAdded) -> None:
        current_dispatcher().tracking_added(
            StatusChange(
                order_id=str(event.order_id),
                recipient_id=str(event.customer_id),
                previous_status=event.status,
                new_status=event.status,
                occurred_at=event.added_at,
                actor_id=str(event.actor_id) if event.actor_id else None,
                tracking_number=event.tracking_number,
                carrier=event.carrier,
            )
        )
