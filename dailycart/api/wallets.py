"""Wallet API endpoints.

Branches read their own wallet; admins read any.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, status

from dailycart.api.middleware import get_principal
from dailycart.api.schemas import (
    ErrorResponse,
    PaymentCreateRequest,
    PaymentResponse,
    WalletResponse,
    WalletStatisticsResponse,
    WalletTransactionSchema,
    WalletTransactionsResponse,
)
from dailycart.application.container import ServiceContainer, get_container
from dailycart.domain.entities import WalletTransaction
from dailycart.domain.exceptions import AuthorizationError
from dailycart.domain.value_objects import Principal, Role
from dailycart.infrastructure.config import settings

router = APIRouter(prefix="/wallets", tags=["Wallets"])

ContainerDep = Annotated[ServiceContainer, Depends(get_container)]

ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    401: {"model": ErrorResponse},
    403: {"model": ErrorResponse},
}


def wallet_owner(branch_id: str, principal: Annotated[Principal, Depends(get_principal)]) -> Principal:
    """Allow the branch itself or an admin."""
    if principal.is_admin or (principal.role == Role.BRANCH and principal.subject_id == branch_id):
        return principal
    raise AuthorizationError(
        f"{principal} may not access wallet {branch_id}",
        details={"branch_id": branch_id},
    )


OwnerDep = Annotated[Principal, Depends(wallet_owner)]


def transactions_response(branch_id: str, transactions: list[WalletTransaction]) -> WalletTransactionsResponse:
    return WalletTransactionsResponse(
        branch_id=branch_id,
        items=[WalletTransactionSchema.model_validate(t.to_dict()) for t in transactions],
        total=len(transactions),
    )


@router.get("/{branch_id}", response_model=WalletResponse, responses=ERROR_RESPONSES)
async def get_wallet(branch_id: str, container: ContainerDep, principal: OwnerDep) -> WalletResponse:
    """Balance of the branch wallet, created on first access."""
    wallet = await container.ledger.get_or_create(branch_id)
    return WalletResponse(
        branch_id=branch_id,
        balance=wallet.balance,
        currency=settings.currency,
        transaction_count=len(wallet.transactions),
        created_at=wallet.created_at,
    )


@router.get("/{branch_id}/transactions", response_model=WalletTransactionsResponse, responses=ERROR_RESPONSES)
async def list_transactions(
    branch_id: str, container: ContainerDep, principal: OwnerDep
) -> WalletTransactionsResponse:
    return transactions_response(branch_id, await container.ledger.transactions(branch_id))


@router.get("/{branch_id}/payments", response_model=WalletTransactionsResponse, responses=ERROR_RESPONSES)
async def list_payments(branch_id: str, container: ContainerDep, principal: OwnerDep) -> WalletTransactionsResponse:
    return transactions_response(branch_id, await container.ledger.payments(branch_id))


@router.get("/{branch_id}/statistics", response_model=WalletStatisticsResponse, responses=ERROR_RESPONSES)
async def wallet_statistics(
    branch_id: str, container: ContainerDep, principal: OwnerDep
) -> WalletStatisticsResponse:
    stats = await container.ledger.statistics(branch_id)
    return WalletStatisticsResponse(
        branch_id=branch_id,
        total_charges=stats.total_charges,
        total_payments=stats.total_payments,
        net=stats.net,
    )


@router.post(
    "/{branch_id}/payments",
    response_model=PaymentResponse,
    status_code=status.HTTP_201_CREATED,
    responses=ERROR_RESPONSES,
)
async def create_payment(
    branch_id: str,
    body: PaymentCreateRequest,
    container: ContainerDep,
    principal: OwnerDep,
) -> PaymentResponse:
    """Record a top-up made by the branch. Subject to the minimum amount."""
    result = await container.payment_service.top_up(branch_id, body.amount, principal)
    return PaymentResponse(
        branch_id=branch_id,
        applied=result.applied,
        balance=result.balance,
        external_payment_id=result.external_payment_id,
    )
