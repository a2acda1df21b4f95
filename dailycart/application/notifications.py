"""Domain event to room broadcast mapping.

Services hand the events an aggregate recorded to ``EventNotifier`` after
the aggregate is persisted. The notifier decides which rooms hear about
each event and under which client-facing event name. Publishing is
best-effort: a failed publish is logged and never undoes the write.
"""

from typing import Any

import structlog

from dailycart.domain.base import DomainEvent
from dailycart.domain.entities import Order
from dailycart.domain.events import (
    BranchStoreStatusChanged,
    OrderModified,
    OrderPlaced,
    OrderStatusChanged,
    WalletUpdated,
)
from dailycart.domain.state_machines import OrderStatus
from dailycart.infrastructure.fanout import (
    ADMIN_ROOM,
    EventFanout,
    branch_room,
    customer_room,
    order_room,
    partner_room,
    wallet_room,
)
from dailycart.infrastructure.repositories import InMemoryPartnerDirectory

logger = structlog.get_logger()


# ============================================================================
# Client Event Names
# ============================================================================

NEW_ORDER = "newOrder"
ORDER_ACCEPTED = "orderAccepted"
STATUS_UPDATE = "statusUpdate"
ORDER_READY_FOR_ASSIGNMENT = "orderReadyForAssignment"
ORDER_READY_FOR_PICKUP = "orderReadyForPickup"
ORDER_ASSIGNED = "orderAssigned"
NEW_ASSIGNMENT = "newAssignment"
ORDER_CANCELLED = "orderCancelled"
ORDER_MODIFIED = "orderModified"
ORDER_DELIVERED = "orderDelivered"
WALLET_UPDATED = "walletUpdated"
BRANCH_STATUS_UPDATE = "branchStatusUpdate"
BRANCH_AUTO_CLOSED = "branchAutoClosed"


class EventNotifier:
    """Routes domain events to rooms on an EventFanout."""

    def __init__(self, fanout: EventFanout, partners: InMemoryPartnerDirectory) -> None:
        self._fanout = fanout
        self._partners = partners

    async def publish(self, events: list[DomainEvent], order: Order | None = None) -> None:
        """Publish every event; ``order`` is the persisted snapshot for order events."""
        for event in events:
            for room, name, payload in await self._route(event, order):
                await self._send(room, name, payload)

    async def _route(self, event: DomainEvent, order: Order | None) -> list[tuple[str, str, dict[str, Any]]]:
        body = event.to_dict()
        if order is not None:
            body["order"] = order.to_dict()

        if isinstance(event, OrderPlaced):
            return [
                (branch_room(event.branch_id), NEW_ORDER, body),
                (customer_room(event.customer_id), STATUS_UPDATE, body),
            ]
        if isinstance(event, OrderStatusChanged) and order is not None:
            return await self._route_status_change(event, order, body)
        if isinstance(event, OrderModified) and order is not None:
            return [
                (order_room(order.id), ORDER_MODIFIED, body),
                (customer_room(order.customer_id), ORDER_MODIFIED, body),
                (branch_room(order.branch_id), ORDER_MODIFIED, body),
            ]
        if isinstance(event, WalletUpdated):
            return [(wallet_room(event.branch_id), WALLET_UPDATED, body)]
        if isinstance(event, BranchStoreStatusChanged):
            routes = [(branch_room(event.branch_id), BRANCH_STATUS_UPDATE, body)]
            if event.automatic and event.status == "closed":
                routes.append((ADMIN_ROOM, BRANCH_AUTO_CLOSED, body))
            return routes

        logger.warning("No route for event", event_type=event.event_type)
        return []

    async def _route_status_change(
        self, event: OrderStatusChanged, order: Order, body: dict[str, Any]
    ) -> list[tuple[str, str, dict[str, Any]]]:
        routes = [
            (order_room(order.id), STATUS_UPDATE, body),
            (customer_room(order.customer_id), STATUS_UPDATE, body),
            (branch_room(order.branch_id), STATUS_UPDATE, body),
        ]
        target = OrderStatus(event.to_status)

        if target == OrderStatus.ACCEPTED:
            routes.append((customer_room(order.customer_id), ORDER_ACCEPTED, body))
        elif target == OrderStatus.PACKED:
            if order.delivery_enabled:
                for partner in await self._partners.list_for_branch(order.branch_id):
                    routes.append((partner_room(partner.id), ORDER_READY_FOR_ASSIGNMENT, body))
            else:
                routes.append((customer_room(order.customer_id), ORDER_READY_FOR_PICKUP, body))
        elif target == OrderStatus.ASSIGNED and order.delivery_partner_id:
            routes.append((customer_room(order.customer_id), ORDER_ASSIGNED, body))
            routes.append((branch_room(order.branch_id), ORDER_ASSIGNED, body))
            routes.append((partner_room(order.delivery_partner_id), NEW_ASSIGNMENT, body))
        elif target == OrderStatus.CANCELLED:
            routes.append((customer_room(order.customer_id), ORDER_CANCELLED, body))
            routes.append((branch_room(order.branch_id), ORDER_CANCELLED, body))
            if order.delivery_partner_id:
                routes.append((partner_room(order.delivery_partner_id), ORDER_CANCELLED, body))
        elif target == OrderStatus.DELIVERED:
            routes.append((customer_room(order.customer_id), ORDER_DELIVERED, body))
            routes.append((branch_room(order.branch_id), ORDER_DELIVERED, body))

        return routes

    async def _send(self, room: str, name: str, payload: dict[str, Any]) -> None:
        try:
            await self._fanout.publish(room, name, payload)
        except Exception as exc:
            logger.warning("Fan-out publish failed", room=room, fanout_event=name, error=str(exc))
