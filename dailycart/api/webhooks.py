"""Webhook receiver endpoints.

Provides:
- POST /webhooks/payments - confirmed payment events from the payment gateway
- Deduplication by external payment id

Signature verification belongs to the gateway integration in front of
this service; the endpoint only accepts admin principals.
"""

from typing import Annotated

import structlog
from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, Field

from dailycart.api.middleware import get_principal
from dailycart.api.schemas import ErrorResponse, PaymentWebhookRequest
from dailycart.application.container import get_container
from dailycart.application.payment_service import PaymentConfirmation, PaymentService
from dailycart.domain.exceptions import AuthorizationError
from dailycart.domain.value_objects import Principal

logger = structlog.get_logger()

router = APIRouter(prefix="/webhooks", tags=["Webhooks"])


class PaymentWebhookResponse(BaseModel):
    """Response to webhook delivery."""

    success: bool = Field(..., description="Whether event was accepted")
    external_payment_id: str = Field(..., description="Gateway payment id")
    status: str = Field(..., description="processed or duplicate")
    balance: str = Field(..., description="Wallet balance after the event")


def get_service() -> PaymentService:
    """Get payment service."""
    return get_container().payment_service


def require_admin(principal: Annotated[Principal, Depends(get_principal)]) -> Principal:
    if not principal.is_admin:
        raise AuthorizationError("Payment events must come from an admin principal")
    return principal


@router.post(
    "/payments",
    response_model=PaymentWebhookResponse,
    responses={400: {"model": ErrorResponse}, 401: {"model": ErrorResponse}, 403: {"model": ErrorResponse}},
    summary="Receive confirmed payment",
)
async def receive_payment_webhook(
    request: Request,
    payload: PaymentWebhookRequest,
    service: Annotated[PaymentService, Depends(get_service)],
    principal: Annotated[Principal, Depends(require_admin)],
) -> PaymentWebhookResponse:
    """Apply a confirmed payment to the branch wallet.

    Re-delivered events return success with status="duplicate" and leave
    the wallet untouched.
    """
    logger.info(
        "Payment webhook received",
        branch_id=payload.branch_id,
        external_payment_id=payload.external_payment_id,
        request_id=getattr(request.state, "request_id", None),
    )
    result = await service.confirm_payment(
        PaymentConfirmation(
            branch_id=payload.branch_id,
            amount=payload.amount,
            external_payment_id=payload.external_payment_id,
        )
    )
    return PaymentWebhookResponse(
        success=True,
        external_payment_id=result.external_payment_id,
        status="processed" if result.applied else "duplicate",
        balance=str(result.balance),
    )
