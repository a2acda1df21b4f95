"""Tests for the in-memory fan-out."""

import pytest

from dailycart.infrastructure.fanout import (
    ADMIN_ROOM,
    FanoutMessage,
    InMemoryEventFanout,
    branch_room,
    order_room,
    parse_room,
    wallet_room,
)


class TestRooms:
    """Tests for room naming."""

    @pytest.mark.parametrize(
        ("room", "expected"),
        [
            (order_room("o-1"), ("order", "o-1")),
            (wallet_room("b-1"), ("wallet", "b-1")),
            (ADMIN_ROOM, ("admin", None)),
            ("garbage", ("garbage", None)),
            ("branch:", ("branch:", None)),
        ],
    )
    def test_parse_room(self, room: str, expected: tuple) -> None:
        assert parse_room(room) == expected


class TestInMemoryEventFanout:
    """Tests for publish and subscribe."""

    @pytest.mark.asyncio
    async def test_subscriber_receives_room_messages(self) -> None:
        fanout = InMemoryEventFanout()
        subscription = fanout.subscribe([branch_room("b-1")])

        await fanout.publish(branch_room("b-1"), "newOrder", {"order_id": "o-1"})
        await fanout.publish(branch_room("b-2"), "newOrder", {"order_id": "o-2"})

        message = await subscription.get()
        assert message.event == "newOrder"
        assert message.payload == {"order_id": "o-1"}
        assert subscription.queue.empty()

    @pytest.mark.asyncio
    async def test_one_queue_across_rooms(self) -> None:
        fanout = InMemoryEventFanout()
        subscription = fanout.subscribe([branch_room("b-1"), wallet_room("b-1")])

        await fanout.publish(wallet_room("b-1"), "walletUpdated", {})
        await fanout.publish(branch_room("b-1"), "newOrder", {})

        assert [(await subscription.get()).event for _ in range(2)] == ["walletUpdated", "newOrder"]

    @pytest.mark.asyncio
    async def test_full_queue_drops_message(self) -> None:
        """A slow subscriber misses messages instead of blocking publishers."""
        fanout = InMemoryEventFanout(max_queue_size=1)
        subscription = fanout.subscribe([ADMIN_ROOM])

        await fanout.publish(ADMIN_ROOM, "branchAutoClosed", {"n": 1})
        await fanout.publish(ADMIN_ROOM, "branchAutoClosed", {"n": 2})

        assert subscription.queue.qsize() == 1
        assert (await subscription.get()).payload == {"n": 1}

    def test_close_unsubscribes(self) -> None:
        fanout = InMemoryEventFanout()
        subscription = fanout.subscribe([ADMIN_ROOM])
        assert fanout.subscriber_count(ADMIN_ROOM) == 1

        subscription.close()

        assert fanout.subscriber_count(ADMIN_ROOM) == 0

    def test_message_to_dict(self) -> None:
        data = FanoutMessage(room="admin", event="branchAutoClosed", payload={}).to_dict()

        assert set(data) == {"room", "event", "payload", "sent_at"}
