"""In-process room gateway — fans order events out to live subscribers.

Each order id is a room. Subscribers join and leave rooms; ``publish``
delivers to the room's current members in emit order and evicts any member
that can no longer receive.
"""

import asyncio
import threading
from abc import ABC, abstractmethod

import structlog

from marketplace.realtime.port import BroadcastGateway

logger = structlog.get_logger(__name__)


class SubscriberGone(Exception):
    """The subscriber disconnected or cannot keep up."""


class Subscriber(ABC):
    @abstractmethod
    def deliver(self, message: dict) -> None:
        """Queue ``message`` for the client. Raises SubscriberGone when the
        client can no longer receive."""
        ...


class QueueSubscriber(Subscriber):
    """Buffers messages on an asyncio queue drained by a connection task.

    Must be created inside the event loop that owns the connection.
    Deliveries from other threads are handed to that loop.
    """

    def __init__(self, maxsize: int = 100):
        self.queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)
        self.closed = False
        self._loop = asyncio.get_running_loop()

    def deliver(self, message: dict) -> None:
        if self.closed:
            raise SubscriberGone()

        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None

        if running is self._loop:
            self._put(message)
        else:
            self._loop.call_soon_threadsafe(self._put, message)

    def _put(self, message: dict) -> None:
        try:
            self.queue.put_nowait(message)
        except asyncio.QueueFull:
            # Slow consumer, stop feeding it
            self.closed = True

    def close(self) -> None:
        self.closed = True


class RoomGateway(BroadcastGateway):
    def __init__(self):
        self._rooms: dict[str, list[Subscriber]] = {}
        self._lock = threading.Lock()

    @staticmethod
    def room_for(order_id: str) -> str:
        return f"order:{order_id}"

    def subscribe(self, order_id: str, subscriber: Subscriber) -> None:
        room = self.room_for(order_id)
        with self._lock:
            members = self._rooms.setdefault(room, [])
            if subscriber not in members:
                members.append(subscriber)

    def unsubscribe(self, order_id: str, subscriber: Subscriber) -> None:
        room = self.room_for(order_id)
        with self._lock:
            members = self._rooms.get(room, [])
            if subscriber in members:
                members.remove(subscriber)
            if not members:
                self._rooms.pop(room, None)

    def unsubscribe_all(self, subscriber: Subscriber) -> None:
        with self._lock:
            for room in list(self._rooms):
                members = self._rooms[room]
                if subscriber in members:
                    members.remove(subscriber)
                if not members:
                    del self._rooms[room]

    def publish(self, order_id: str, event: str, payload: dict) -> None:
        with self._lock:
            members = list(self._rooms.get(self.room_for(order_id), []))

        message = {"event": event, "data": payload}
        for subscriber in members:
            try:
                subscriber.deliver(message)
            except Exception as exc:
                logger.info(
                    "Dropping realtime subscriber",
                    order_id=order_id,
                    event_name=event,
                    reason=type(exc).__name__,
                )
                self.unsubscribe(order_id, subscriber)

    def stats(self) -> dict:
        with self._lock:
            rooms = {room: len(members) for room, members in self._rooms.items()}

        return {
            "total_orders": len(rooms),
            "total_connections": sum(rooms.values()),
            "orders": [
                {"order_id": room.removeprefix("order:"), "connections": count}
                for room, count in sorted(rooms.items())
            ],
        }
