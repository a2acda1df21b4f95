"""Order API endpoints.

Provides endpoints for the order lifecycle:
- POST /orders - place an order (customer)
- GET /orders - list visible orders
- GET /orders/{id} - order details
- POST /orders/{id}/accept|modify|pack|assign|cancel - branch commands
- POST /orders/{id}/status - delivery partner status update
- POST /orders/{id}/collect - self-pickup collection (customer)
- POST /orders/{id}/settle-charge - apply a pending delivery charge (admin)
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, status

from dailycart.api.middleware import get_principal
from dailycart.api.schemas import (
    ErrorResponse,
    ItemRequestSchema,
    OrderAssignRequest,
    OrderCancelRequest,
    OrderCreateRequest,
    OrderModifyRequest,
    OrderModifyResponse,
    OrderResponse,
    OrdersListResponse,
    OrderStatusUpdateRequest,
    OrderTransitionResponse,
)
from dailycart.application.container import get_container
from dailycart.application.order_service import OrderService, TransitionResult
from dailycart.domain.entities import Order
from dailycart.domain.exceptions import ValidationError
from dailycart.domain.state_machines import OrderStatus
from dailycart.domain.value_objects import ItemRequest, Location, Principal

router = APIRouter(prefix="/orders", tags=["Orders"])

ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    401: {"model": ErrorResponse},
    403: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
    422: {"model": ErrorResponse},
    503: {"model": ErrorResponse},
}


# ============================================================================
# Dependencies
# ============================================================================


def get_service() -> OrderService:
    """Get the shared order service."""
    return get_container().order_service


ServiceDep = Annotated[OrderService, Depends(get_service)]
PrincipalDep = Annotated[Principal, Depends(get_principal)]


# ============================================================================
# Converters
# ============================================================================


def order_to_response(order: Order) -> OrderResponse:
    return OrderResponse.model_validate(order.to_dict())


def transition_to_response(result: TransitionResult) -> OrderTransitionResponse:
    return OrderTransitionResponse(
        order=order_to_response(result.order),
        message=result.message,
        platform_charge=result.charge.charge if result.charge else None,
        wallet_balance=result.charge.balance if result.charge else None,
        charge_pending=result.charge_failed,
    )


def to_item_requests(items: list[ItemRequestSchema]) -> list[ItemRequest]:
    return [ItemRequest(product_id=i.product_id, count=i.count, quantity=i.quantity) for i in items]


def parse_statuses(raw: str | None) -> list[OrderStatus] | None:
    """Parse a comma-separated status filter."""
    if not raw:
        return None
    statuses = []
    for part in raw.split(","):
        value = part.strip().lower()
        if not value:
            continue
        try:
            statuses.append(OrderStatus(value))
        except ValueError:
            raise ValidationError(f"Unknown order status: {value}", field="status") from None
    return statuses or None


# ============================================================================
# Endpoints
# ============================================================================


@router.post(
    "",
    response_model=OrderResponse,
    status_code=status.HTTP_201_CREATED,
    responses=ERROR_RESPONSES,
    summary="Place an order",
)
async def create_order(body: OrderCreateRequest, service: ServiceDep, principal: PrincipalDep) -> OrderResponse:
    """Place an order at a branch.

    The order is accepted immediately. Delivery is enabled only if the
    customer asked for it and the branch can deliver right now.
    """
    location = None
    if body.delivery_location is not None:
        location = Location(**body.delivery_location.model_dump())
    order = await service.create_order(
        principal,
        branch_id=body.branch_id,
        items=to_item_requests(body.items),
        delivery_requested=body.delivery_requested,
        delivery_location=location,
    )
    return order_to_response(order)


@router.get("", response_model=OrdersListResponse, responses=ERROR_RESPONSES, summary="List orders")
async def list_orders(
    service: ServiceDep,
    principal: PrincipalDep,
    status_filter: str | None = Query(default=None, alias="status", description="Comma-separated statuses"),
    branch_id: str | None = Query(default=None),
    customer_id: str | None = Query(default=None),
    partner_id: str | None = Query(default=None),
) -> OrdersListResponse:
    """List the orders visible to the caller, newest first."""
    orders = await service.list_orders(
        principal,
        statuses=parse_statuses(status_filter),
        branch_id=branch_id,
        customer_id=customer_id,
        partner_id=partner_id,
    )
    return OrdersListResponse(items=[order_to_response(o) for o in orders], total=len(orders))


@router.get("/{order_id}", response_model=OrderResponse, responses=ERROR_RESPONSES, summary="Get order details")
async def get_order(order_id: str, service: ServiceDep, principal: PrincipalDep) -> OrderResponse:
    return order_to_response(await service.get_order(order_id, principal))


@router.post(
    "/{order_id}/accept",
    response_model=OrderResponse,
    responses=ERROR_RESPONSES,
    summary="Accept a placed order (legacy)",
)
async def accept_order(order_id: str, service: ServiceDep, principal: PrincipalDep) -> OrderResponse:
    return order_to_response(await service.accept_order(order_id, principal))


@router.post(
    "/{order_id}/modify",
    response_model=OrderModifyResponse,
    responses=ERROR_RESPONSES,
    summary="Reduce or remove items",
)
async def modify_order(
    order_id: str,
    body: OrderModifyRequest,
    service: ServiceDep,
    principal: PrincipalDep,
) -> OrderModifyResponse:
    """Apply a branch's reductions.

    Items may only shrink. Lines left out of the request are removed and
    their products marked unavailable.
    """
    result = await service.modify_order(order_id, principal, to_item_requests(body.items))
    return OrderModifyResponse(
        order=order_to_response(result.order),
        message=result.message,
        changes=result.modification.change_descriptions,
        disabled_product_ids=result.disabled_product_ids,
    )


@router.post("/{order_id}/pack", response_model=OrderResponse, responses=ERROR_RESPONSES, summary="Mark packed")
async def pack_order(order_id: str, service: ServiceDep, principal: PrincipalDep) -> OrderResponse:
    return order_to_response(await service.mark_packed(order_id, principal))


@router.post(
    "/{order_id}/assign",
    response_model=OrderResponse,
    responses=ERROR_RESPONSES,
    summary="Assign a delivery partner",
)
async def assign_order(
    order_id: str,
    service: ServiceDep,
    principal: PrincipalDep,
    body: OrderAssignRequest | None = None,
) -> OrderResponse:
    partner_id = body.partner_id if body else None
    return order_to_response(await service.assign_partner(order_id, principal, partner_id))


@router.post(
    "/{order_id}/status",
    response_model=OrderTransitionResponse,
    responses=ERROR_RESPONSES,
    summary="Update delivery status",
)
async def update_order_status(
    order_id: str,
    body: OrderStatusUpdateRequest,
    service: ServiceDep,
    principal: PrincipalDep,
) -> OrderTransitionResponse:
    """Delivery partner moves the order to arriving, delivered or cancelled."""
    result = await service.update_status(order_id, principal, OrderStatus(body.status.value))
    return transition_to_response(result)


@router.post("/{order_id}/cancel", response_model=OrderResponse, responses=ERROR_RESPONSES, summary="Cancel order")
async def cancel_order(
    order_id: str,
    body: OrderCancelRequest,
    service: ServiceDep,
    principal: PrincipalDep,
) -> OrderResponse:
    """Cancel an order. Only placed, accepted or packed orders can be cancelled."""
    return order_to_response(await service.cancel_order(order_id, principal, body.reason))


@router.post(
    "/{order_id}/collect",
    response_model=OrderTransitionResponse,
    responses=ERROR_RESPONSES,
    summary="Mark a pickup order collected",
)
async def collect_order(order_id: str, service: ServiceDep, principal: PrincipalDep) -> OrderTransitionResponse:
    return transition_to_response(await service.mark_collected(order_id, principal))


@router.post(
    "/{order_id}/settle-charge",
    response_model=OrderTransitionResponse,
    responses=ERROR_RESPONSES,
    summary="Apply a pending delivery charge (admin)",
)
async def settle_order_charge(order_id: str, service: ServiceDep, principal: PrincipalDep) -> OrderTransitionResponse:
    """Charge the branch wallet for a delivered order whose charge failed.

    Repeating the call never charges the order twice.
    """
    return transition_to_response(await service.settle_charge(order_id, principal))
