"""Room-addressed event fan-out.

Publishers address a named room; every subscriber of that room receives
the message on its own queue. Delivery is best-effort: a subscriber whose
queue is full misses the message and a warning is logged. Clients treat
messages as hints to re-read state, never as the state itself.
"""

import asyncio
from collections import defaultdict
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any, Protocol

import structlog

from dailycart.domain.base import utc_now

logger = structlog.get_logger()

ADMIN_ROOM = "admin"


# ============================================================================
# Room Names
# ============================================================================


def order_room(order_id: str) -> str:
    return f"order:{order_id}"


def branch_room(branch_id: str) -> str:
    return f"branch:{branch_id}"


def customer_room(customer_id: str) -> str:
    return f"customer:{customer_id}"


def partner_room(partner_id: str) -> str:
    return f"partner:{partner_id}"


def wallet_room(branch_id: str) -> str:
    return f"wallet:{branch_id}"


def parse_room(room: str) -> tuple[str, str | None]:
    """Split ``kind:id`` into its parts; ``admin`` has no id."""
    if room == ADMIN_ROOM:
        return ADMIN_ROOM, None
    kind, sep, ident = room.partition(":")
    if not sep or not ident:
        return room, None
    return kind, ident


# ============================================================================
# Fan-out
# ============================================================================


class EventFanout(Protocol):
    """Anything that can deliver a named event to a room."""

    async def publish(self, room: str, event: str, payload: dict[str, Any]) -> None: ...


@dataclass(frozen=True)
class FanoutMessage:
    """A message as delivered to a subscriber."""

    room: str
    event: str
    payload: dict[str, Any]
    sent_at: str = field(default_factory=lambda: utc_now().isoformat())

    def to_dict(self) -> dict[str, Any]:
        return {"room": self.room, "event": self.event, "payload": self.payload, "sent_at": self.sent_at}


class Subscription:
    """A subscriber's queue across one or more rooms."""

    def __init__(self, fanout: "InMemoryEventFanout", rooms: frozenset[str], max_size: int) -> None:
        self.rooms = rooms
        self.queue: asyncio.Queue[FanoutMessage] = asyncio.Queue(maxsize=max_size)
        self._fanout = fanout

    async def get(self) -> FanoutMessage:
        return await self.queue.get()

    def close(self) -> None:
        self._fanout.unsubscribe(self)


class InMemoryEventFanout:
    """Process-local fan-out backed by one asyncio queue per subscriber."""

    def __init__(self, max_queue_size: int = 1000) -> None:
        self._subscribers: dict[str, set[Subscription]] = defaultdict(set)
        self._max_queue_size = max_queue_size

    def subscribe(self, rooms: Iterable[str]) -> Subscription:
        subscription = Subscription(self, frozenset(rooms), self._max_queue_size)
        for room in subscription.rooms:
            self._subscribers[room].add(subscription)
        logger.debug("Subscribed to rooms", rooms=sorted(subscription.rooms))
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        for room in subscription.rooms:
            members = self._subscribers.get(room)
            if members is None:
                continue
            members.discard(subscription)
            if not members:
                del self._subscribers[room]

    def subscriber_count(self, room: str) -> int:
        return len(self._subscribers.get(room, ()))

    async def publish(self, room: str, event: str, payload: dict[str, Any]) -> None:
        message = FanoutMessage(room=room, event=event, payload=payload)
        for subscription in list(self._subscribers.get(room, ())):
            try:
                subscription.queue.put_nowait(message)
            except asyncio.QueueFull:
                logger.warning("Subscriber queue full, dropping message", room=room, fanout_event=event)
        logger.debug("Published", room=room, fanout_event=event)
