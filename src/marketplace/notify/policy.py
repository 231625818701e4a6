"""Notification policy — which channels, wording and priority each status gets."""

from dataclasses import dataclass
from enum import Enum

from marketplace.notify.port import NotificationPayload


class Channel(Enum):
    IN_APP = "in_app"
    EMAIL = "email"


class Priority(Enum):
    MEDIUM = "medium"
    HIGH = "high"


STATUS_UPDATE_TYPE = "order_status_update"
TRACKING_ADDED_TYPE = "order_tracking_added"


@dataclass(frozen=True)
class StatusTemplate:
    title: str
    message: str
    priority: Priority


_IN_APP_ONLY = (Channel.IN_APP.value,)
_IN_APP_AND_EMAIL = (Channel.IN_APP.value, Channel.EMAIL.value)

# Statuses the buyer also hears about by email
_EMAIL_STATUSES = {"shipped", "out_for_delivery", "delivered"}

_STATUS_TEMPLATES = {
    "confirmed": StatusTemplate(
        "Order Confirmed",
        "Your order has been confirmed and is being prepared for shipment.",
        Priority.HIGH,
    ),
    "processing": StatusTemplate(
        "Order Processing",
        "Your order is being processed and will be shipped soon.",
        Priority.MEDIUM,
    ),
    "shipped": StatusTemplate(
        "Order Shipped",
        "Great news! Your order has been shipped and is on its way.",
        Priority.HIGH,
    ),
    "out_for_delivery": StatusTemplate(
        "Out for Delivery",
        "Your order is out for delivery and will arrive soon!",
        Priority.HIGH,
    ),
    "delivered": StatusTemplate(
        "Order Delivered",
        "Your order has been delivered. We hope you enjoy your purchase!",
        Priority.HIGH,
    ),
    "cancelled": StatusTemplate(
        "Order Cancelled",
        "Your order has been cancelled.",
        Priority.HIGH,
    ),
    "refunded": StatusTemplate(
        "Order Refunded",
        "Your order has been refunded. The amount will be credited to your account.",
        Priority.HIGH,
    ),
}


def channels_for(status: str) -> tuple[str, ...]:
    return _IN_APP_AND_EMAIL if status in _EMAIL_STATUSES else _IN_APP_ONLY


def template_for(status: str) -> StatusTemplate:
    template = _STATUS_TEMPLATES.get(status)
    if template is None:
        return StatusTemplate(
            "Order Status Updated",
            f"Your order status has been updated to {status}",
            Priority.MEDIUM,
        )
    return template


def status_update_payload(
    order_id: str,
    recipient_id: str,
    previous_status: str,
    new_status: str,
    tracking_number: str | None = None,
    carrier: str | None = None,
) -> NotificationPayload:
    template = template_for(new_status)
    return NotificationPayload(
        recipient_id=recipient_id,
        notification_type=STATUS_UPDATE_TYPE,
        title=template.title,
        message=template.message,
        priority=template.priority.value,
        channels=channels_for(new_status),
        action_url=f"/orders/{order_id}",
        action_text="View Order",
        metadata={
            "order_id": order_id,
            "previous_status": previous_status,
            "new_status": new_status,
            "tracking_number": tracking_number,
            "carrier": carrier,
        },
    )


def tracking_added_payload(order_id: str, recipient_id: str, tracking_number: str, carrier: str) -> NotificationPayload:
    return NotificationPayload(
        recipient_id=recipient_id,
        notification_type=TRACKING_ADDED_TYPE,
        title="Tracking Information Added",
        message=f"Your order is now trackable with {carrier}. Tracking number: {tracking_number}",
        priority=Priority.MEDIUM.value,
        channels=_IN_APP_ONLY,
        action_url=f"/orders/{order_id}",
        action_text="Track Order",
        metadata={
            "order_id": order_id,
            "tracking_number": tracking_number,
            "carrier": carrier,
        },
    )
