"""Branch API endpoints.

- GET /branches/{id}/delivery-availability - live delivery capability
- GET /branches/{id}/operational-status - approval and solvency check
- POST /branches/{id}/open - open the store if allowed
- POST /branches/{id}/close - close the store manually
"""

from typing import Annotated

from fastapi import APIRouter, Depends

from dailycart.api.middleware import get_principal
from dailycart.api.schemas import (
    BranchCloseRequest,
    BranchResponse,
    DeliveryAvailabilityResponse,
    ErrorResponse,
    OperationalStatusResponse,
)
from dailycart.application.container import ServiceContainer, get_container
from dailycart.domain.entities import Branch
from dailycart.domain.value_objects import Principal

router = APIRouter(prefix="/branches", tags=["Branches"])

ContainerDep = Annotated[ServiceContainer, Depends(get_container)]
PrincipalDep = Annotated[Principal, Depends(get_principal)]

ERROR_RESPONSES = {
    401: {"model": ErrorResponse},
    403: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    422: {"model": ErrorResponse},
}


def branch_to_response(branch: Branch) -> BranchResponse:
    return BranchResponse(
        id=branch.id,
        name=branch.name,
        approval_status=branch.approval_status.value,
        store_status=branch.store_status.value,
        is_manually_closed=branch.is_manually_closed,
        delivery_service_available=branch.delivery_service_available,
        status_history=[entry.to_dict() for entry in branch.status_history],
    )


@router.get(
    "/{branch_id}/delivery-availability",
    response_model=DeliveryAvailabilityResponse,
    responses=ERROR_RESPONSES,
)
async def delivery_availability(
    branch_id: str,
    container: ContainerDep,
    principal: PrincipalDep,
) -> DeliveryAvailabilityResponse:
    """Whether the branch offers delivery and has a partner free right now."""
    available = await container.selector.is_delivery_available(branch_id)
    return DeliveryAvailabilityResponse(branch_id=branch_id, delivery_available=available)


@router.get(
    "/{branch_id}/operational-status",
    response_model=OperationalStatusResponse,
    responses=ERROR_RESPONSES,
)
async def operational_status(
    branch_id: str,
    container: ContainerDep,
    principal: PrincipalDep,
) -> OperationalStatusResponse:
    result = await container.gate.operational_status(branch_id)
    return OperationalStatusResponse(
        branch_id=branch_id,
        can_operate=result.can_operate,
        reason=result.reason,
        balance=result.balance,
    )


@router.post("/{branch_id}/open", response_model=BranchResponse, responses=ERROR_RESPONSES)
async def open_store(branch_id: str, container: ContainerDep, principal: PrincipalDep) -> BranchResponse:
    """Open the store. Refused while unapproved or at/below the minimum balance."""
    return branch_to_response(await container.gate.attempt_open(branch_id, principal))


@router.post("/{branch_id}/close", response_model=BranchResponse, responses=ERROR_RESPONSES)
async def close_store(
    branch_id: str,
    container: ContainerDep,
    principal: PrincipalDep,
    body: BranchCloseRequest | None = None,
) -> BranchResponse:
    reason = body.reason if body else None
    return branch_to_response(await container.gate.close(branch_id, principal, reason))
