"""Real-time subscription endpoint.

WS /realtime?token=<jwt>&rooms=<room>,<room>

Clients join rooms and receive every message published to them as JSON
``{room, event, payload, sent_at}``. Without ``rooms`` the caller joins
the default rooms of its role. A room outside the caller's reach closes
the connection with a policy violation.
"""

import asyncio

import structlog
from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect, status

from dailycart.application.container import ServiceContainer, get_container
from dailycart.domain.exceptions import AuthenticationError
from dailycart.domain.value_objects import Principal, Role
from dailycart.infrastructure.fanout import (
    ADMIN_ROOM,
    branch_room,
    customer_room,
    parse_room,
    partner_room,
    wallet_room,
)

logger = structlog.get_logger()

router = APIRouter(tags=["Realtime"])


def default_rooms(principal: Principal) -> list[str]:
    """Rooms a principal joins when it does not ask for any."""
    if principal.role == Role.CUSTOMER:
        return [customer_room(principal.subject_id)]
    if principal.role == Role.BRANCH:
        return [branch_room(principal.subject_id), wallet_room(principal.subject_id)]
    if principal.role == Role.DELIVERY_PARTNER:
        return [partner_room(principal.subject_id)]
    return [ADMIN_ROOM]


async def can_join(container: ServiceContainer, principal: Principal, room: str) -> bool:
    """Room access rules.

    Admins join anything. Everyone else joins their own room, a branch its
    wallet room too, and anyone who is a party to an order its order room.
    """
    if principal.is_admin:
        return True

    kind, ident = parse_room(room)
    if ident is None:
        return False
    if kind == "customer":
        return principal.role == Role.CUSTOMER and ident == principal.subject_id
    if kind in ("branch", "wallet"):
        return principal.role == Role.BRANCH and ident == principal.subject_id
    if kind == "partner":
        return principal.role == Role.DELIVERY_PARTNER and ident == principal.subject_id
    if kind == "order":
        order = await container.orders.get(ident)
        if order is None:
            return False
        return principal.subject_id in (order.customer_id, order.branch_id, order.delivery_partner_id)
    return False


@router.websocket("/realtime")
async def realtime(
    websocket: WebSocket,
    token: str | None = Query(default=None),
    rooms: str | None = Query(default=None),
) -> None:
    container = get_container()
    try:
        principal = container.authenticator.authenticate(token)
    except AuthenticationError as exc:
        logger.info("Realtime connection rejected", reason=exc.message)
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason=exc.message)
        return

    requested = [r.strip() for r in rooms.split(",") if r.strip()] if rooms else default_rooms(principal)
    for room in requested:
        if not await can_join(container, principal, room):
            logger.info("Realtime room refused", principal=str(principal), room=room)
            await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason=f"Not allowed to join {room}")
            return

    await websocket.accept()
    subscription = container.fanout.subscribe(requested)
    logger.info("Realtime client connected", principal=str(principal), rooms=requested)

    async def forward() -> None:
        while True:
            message = await subscription.get()
            await websocket.send_json(message.to_dict())

    await websocket.send_json({"event": "subscribed", "rooms": sorted(subscription.rooms)})
    forwarder = asyncio.create_task(forward())
    try:
        while True:
            # Inbound frames only keep the connection alive
            await websocket.receive_text()
    except WebSocketDisconnect:
        logger.info("Realtime client disconnected", principal=str(principal))
    finally:
        forwarder.cancel()
        await asyncio.gather(forwarder, return_exceptions=True)
        subscription.close()
