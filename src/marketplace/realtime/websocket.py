"""WebSocket endpoint for live order tracking.

Clients connect to ``/ws/order-tracking`` and exchange JSON messages of the
form ``{"event": <name>, "data": {...}}``.

Incoming events:
    subscribe_order    {"orderId": ...}  start receiving updates for an order
    unsubscribe_order  {"orderId": ...}  stop receiving them
    ping               {}                liveness check, answered with pong

Outgoing events:
    subscribed, initial_status, unsubscribed, pong, error,
    status_update, tracking_update

Connections idle for an hour are closed.
"""

import asyncio
import json
from datetime import UTC, datetime

import structlog
from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect
from protean.exceptions import ObjectNotFoundError

from marketplace.api.dependencies import current_caller
from marketplace.domain import marketplace
from marketplace.exceptions import AccessDenied
from marketplace.queries.access import Caller, Role, caller_from, require_role
from marketplace.queries.lookup import ChildOrder, can_view, find_order_or_sub_order
from marketplace.realtime import get_gateway
from marketplace.realtime.rooms import QueueSubscriber, RoomGateway

logger = structlog.get_logger(__name__)

INACTIVITY_TIMEOUT_SECONDS = 60 * 60

VALIDATION_ERROR = "validation_error"
AUTHORIZATION_ERROR = "authorization_error"
SUBSCRIPTION_ERROR = "subscription_error"


def _message(event: str, data: dict) -> dict:
    return {"event": event, "data": data}


def _error(error_type: str, message: str) -> dict:
    return _message("error", {"type": error_type, "message": message})


class TrackingSession:
    """One client connection's subscriptions."""

    def __init__(self, caller: Caller, subscriber: QueueSubscriber, gateway: RoomGateway):
        self.caller = caller
        self.subscriber = subscriber
        self.gateway = gateway
        self.order_ids: set[str] = set()

    def reply(self, message: dict) -> None:
        self.subscriber.deliver(message)

    def handle(self, message) -> None:
        if not isinstance(message, dict):
            self.reply(_error(VALIDATION_ERROR, "Messages must be JSON objects"))
            return

        event = message.get("event")
        data = message.get("data") or {}
        if event == "ping":
            self.reply(_message("pong", {"timestamp": datetime.now(UTC).isoformat()}))
        elif event == "subscribe_order":
            self.subscribe(data.get("orderId"))
        elif event == "unsubscribe_order":
            self.unsubscribe(data.get("orderId"))
        else:
            self.reply(_error(VALIDATION_ERROR, f"Unknown event: {event}"))

    def subscribe(self, order_id) -> None:
        if not order_id:
            self.reply(_error(VALIDATION_ERROR, "Order ID is required"))
            return

        try:
            record = find_order_or_sub_order(str(order_id))
        except ObjectNotFoundError:
            self.reply(_error(SUBSCRIPTION_ERROR, "Order not found"))
            return

        if not can_view(self.caller, record):
            self.reply(_error(AUTHORIZATION_ERROR, "You do not have access to this order"))
            return

        self.gateway.subscribe(record.id, self.subscriber)
        self.order_ids.add(record.id)
        logger.info("Client subscribed to order", order_id=record.id, user_id=self.caller.user_id)

        target = record.sub_order if isinstance(record, ChildOrder) else record.order
        self.reply(_message("subscribed", {"orderId": record.id, "message": "Subscribed to order updates"}))
        self.reply(
            _message(
                "initial_status",
                {
                    "orderId": record.id,
                    "status": target.status,
                    "trackingNumber": target.tracking_number,
                    "carrier": target.carrier,
                    "updatedAt": target.updated_at.isoformat() if target.updated_at else None,
                },
            )
        )

    def unsubscribe(self, order_id) -> None:
        if not order_id:
            self.reply(_error(VALIDATION_ERROR, "Order ID is required"))
            return

        self.gateway.unsubscribe(str(order_id), self.subscriber)
        self.order_ids.discard(str(order_id))
        self.reply(_message("unsubscribed", {"orderId": str(order_id)}))

    def close(self) -> None:
        self.gateway.unsubscribe_all(self.subscriber)
        self.subscriber.close()


async def _forward(websocket: WebSocket, subscriber: QueueSubscriber) -> None:
    while True:
        message = await subscriber.queue.get()
        await websocket.send_json(message)


async def _stop_sender(sender: asyncio.Task, user_id: str) -> None:
    sender.cancel()
    try:
        await sender
    except asyncio.CancelledError:
        pass
    except Exception as e:
        logger.info("Tracking connection stopped sending", user_id=user_id, error=str(e))


tracking_router = APIRouter(tags=["realtime"])


@tracking_router.websocket("/ws/order-tracking")
async def order_tracking(websocket: WebSocket):
    try:
        caller = caller_from(
            websocket.headers.get("x-user-id") or websocket.query_params.get("user_id"),
            websocket.headers.get("x-user-role") or websocket.query_params.get("role"),
        )
    except AccessDenied:
        await websocket.close(code=1008)
        return

    gateway = get_gateway()
    if not isinstance(gateway, RoomGateway):
        # Realtime transport not installed
        await websocket.close(code=1013)
        return

    await websocket.accept()
    subscriber = QueueSubscriber()
    session = TrackingSession(caller, subscriber, gateway)
    sender = asyncio.create_task(_forward(websocket, subscriber))
    timed_out = False

    try:
        with marketplace.domain_context():
            while True:
                try:
                    raw = await asyncio.wait_for(websocket.receive_text(), timeout=INACTIVITY_TIMEOUT_SECONDS)
                except TimeoutError:
                    timed_out = True
                    logger.info("Closing idle tracking connection", user_id=caller.user_id)
                    break

                try:
                    message = json.loads(raw)
                except json.JSONDecodeError:
                    session.reply(_error(VALIDATION_ERROR, "Messages must be valid JSON"))
                    continue
                session.handle(message)
    except WebSocketDisconnect:
        pass
    finally:
        session.close()
        await _stop_sender(sender, caller.user_id)

    if timed_out:
        await websocket.close(code=1000)


@tracking_router.get("/ws/order-tracking/stats")
async def connection_stats(caller: Caller = Depends(current_caller)) -> dict:
    require_role(caller, Role.ADMIN)
    gateway = get_gateway()
    if not isinstance(gateway, RoomGateway):
        return {"total_orders": 0, "total_connections": 0, "orders": []}
    return gateway.stats()
