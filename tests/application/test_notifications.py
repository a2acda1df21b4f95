"""Tests for event-to-room routing."""

import pytest

from dailycart.domain.events import BranchStoreStatusChanged, WalletUpdated
from dailycart.domain.state_machines import OrderStatus


class TestOrderRouting:
    """Tests for order status broadcasts."""

    @pytest.mark.asyncio
    async def test_every_status_change_reaches_the_parties(
        self, harness, fanout, place_order, branch_owner, partner
    ) -> None:
        order = await place_order()
        await harness.order_service.mark_packed(order.id, branch_owner)
        await harness.order_service.assign_partner(order.id, branch_owner)
        fanout.clear()

        await harness.order_service.update_status(order.id, partner, OrderStatus.DELIVERED)

        order_events = [(room, event) for room, event, _ in fanout.messages if event != "walletUpdated"]
        assert order_events == [
            (f"order:{order.id}", "statusUpdate"),
            ("customer:cust-1", "statusUpdate"),
            ("branch:branch-1", "statusUpdate"),
            ("customer:cust-1", "orderDelivered"),
            ("branch:branch-1", "orderDelivered"),
        ]

    @pytest.mark.asyncio
    async def test_cancellation_reaches_assigned_partner(
        self, harness, fanout, place_order, branch_owner, partner
    ) -> None:
        order = await place_order()
        await harness.order_service.mark_packed(order.id, branch_owner)
        await harness.order_service.assign_partner(order.id, branch_owner)
        fanout.clear()

        await harness.order_service.update_status(order.id, partner, OrderStatus.CANCELLED)

        assert fanout.rooms_for("orderCancelled") == ["customer:cust-1", "branch:branch-1", "partner:partner-1"]

    @pytest.mark.asyncio
    async def test_payload_carries_order_snapshot(self, harness, fanout, place_order, branch_owner) -> None:
        """Payloads carry the persisted order so clients can render without a re-read."""
        order = await place_order()
        fanout.clear()

        await harness.order_service.mark_packed(order.id, branch_owner)

        _, _, payload = fanout.messages[0]
        assert payload["event_type"] == "order.status_changed"
        assert payload["payload"]["from_status"] == "accepted"
        assert payload["payload"]["to_status"] == "packed"
        assert payload["payload"]["actor"] == "branch:branch-1"
        assert payload["order"]["status"] == "packed"


class TestOtherRouting:
    """Tests for wallet and branch broadcasts."""

    @pytest.mark.asyncio
    async def test_wallet_event(self, harness, fanout) -> None:
        await harness.notifier.publish([WalletUpdated(branch_id="branch-1", new_balance="-2.00")])

        assert fanout.messages[0][:2] == ("wallet:branch-1", "walletUpdated")

    @pytest.mark.asyncio
    async def test_manual_close_does_not_alert_admin(self, harness, fanout) -> None:
        await harness.notifier.publish(
            [BranchStoreStatusChanged(branch_id="branch-1", status="closed", automatic=False)]
        )

        assert [room for room, _, _ in fanout.messages] == ["branch:branch-1"]

    @pytest.mark.asyncio
    async def test_auto_close_alerts_admin(self, harness, fanout) -> None:
        await harness.notifier.publish(
            [BranchStoreStatusChanged(branch_id="branch-1", status="closed", automatic=True, balance="-150.00")]
        )

        assert [(room, event) for room, event, _ in fanout.messages] == [
            ("branch:branch-1", "branchStatusUpdate"),
            ("admin", "branchAutoClosed"),
        ]

    @pytest.mark.asyncio
    async def test_publish_failure_is_swallowed(self, failing_harness) -> None:
        await failing_harness.notifier.publish([WalletUpdated(branch_id="branch-1")])
