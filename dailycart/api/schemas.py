"""API schemas for the DailyCart API.

Pydantic models for request/response validation and serialization.
Amounts are decimals and serialize as strings.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


# ============================================================================
# Common Schemas
# ============================================================================


class ErrorResponse(BaseModel):
    """Standard error response.

    All API errors follow this format for consistency.
    """

    error_code: str = Field(..., description="Machine-readable error code")
    message: str = Field(..., description="Human-readable error message")
    details: dict[str, Any] = Field(default_factory=dict, description="Additional error context")
    request_id: str | None = Field(default=None, description="Request ID for correlation")


class LocationSchema(BaseModel):
    """A point with an address."""

    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    address: str = Field(..., min_length=1)


# ============================================================================
# Order Schemas
# ============================================================================


class OrderStatusEnum(str, Enum):
    """Order status values."""

    PLACED = "placed"
    ACCEPTED = "accepted"
    PACKED = "packed"
    ASSIGNED = "assigned"
    ARRIVING = "arriving"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class ItemRequestSchema(BaseModel):
    """A requested line, at creation or in a modification."""

    product_id: str = Field(..., min_length=1)
    count: int = Field(..., description="Units, or portions for loose products")
    quantity: Decimal | None = Field(default=None, description="Weight/volume for loose products")


class OrderCreateRequest(BaseModel):
    """Request to place an order."""

    branch_id: str = Field(..., min_length=1)
    items: list[ItemRequestSchema] = Field(..., min_length=1)
    delivery_requested: bool = Field(default=True, description="Deliver rather than self-pickup")
    delivery_location: LocationSchema | None = None


class OrderItemSchema(BaseModel):
    """A resolved order line."""

    product_id: str
    name: str
    is_loose: bool
    count: int
    quantity: Decimal | None = None
    unit: str | None = None
    unit_price: Decimal
    line_total: Decimal


class OrderStatusHistorySchema(BaseModel):
    """One step of the status history."""

    status: OrderStatusEnum
    timestamp: datetime


class ModificationRecordSchema(BaseModel):
    """One branch modification."""

    modified_by: str
    changes: list[str]
    timestamp: datetime


class OrderResponse(BaseModel):
    """Full order representation."""

    id: str
    order_number: str = Field(..., description="Display id, e.g. ORDR00001")
    sequence_number: int
    customer_id: str
    branch_id: str
    delivery_partner_id: str | None = None
    status: OrderStatusEnum
    items: list[OrderItemSchema]
    total_price: Decimal
    delivery_enabled: bool
    manually_collected: bool
    charge_pending: bool = False
    delivery_location: LocationSchema
    pickup_location: LocationSchema
    status_history: list[OrderStatusHistorySchema]
    modification_history: list[ModificationRecordSchema]
    cancellation_reason: str | None = None
    created_at: datetime
    updated_at: datetime


class OrdersListResponse(BaseModel):
    """List of orders, newest first."""

    items: list[OrderResponse]
    total: int


class OrderModifyRequest(BaseModel):
    """Lines the branch keeps. Lines left out are removed."""

    items: list[ItemRequestSchema]


class OrderModifyResponse(BaseModel):
    """Outcome of a modification."""

    order: OrderResponse
    message: str
    changes: list[str]
    disabled_product_ids: list[str]


class OrderAssignRequest(BaseModel):
    """Assignment request; without a partner the first eligible one is used."""

    partner_id: str | None = None


class OrderStatusUpdateRequest(BaseModel):
    """Status update from the assigned delivery partner."""

    status: OrderStatusEnum


class OrderCancelRequest(BaseModel):
    """Request to cancel an order."""

    reason: str = Field(..., min_length=1, max_length=500)


class OrderTransitionResponse(BaseModel):
    """Order after a transition that may charge the wallet."""

    order: OrderResponse
    message: str
    platform_charge: Decimal | None = None
    wallet_balance: Decimal | None = None
    charge_pending: bool = False


# ============================================================================
# Branch Schemas
# ============================================================================


class DeliveryAvailabilityResponse(BaseModel):
    """Whether a branch can deliver right now."""

    branch_id: str
    delivery_available: bool


class OperationalStatusResponse(BaseModel):
    """Whether a branch may be open."""

    branch_id: str
    can_operate: bool
    reason: str | None = None
    balance: Decimal


class BranchStatusEntrySchema(BaseModel):
    """One open/close event."""

    status: str
    reason: str
    automatic: bool
    timestamp: datetime


class BranchResponse(BaseModel):
    """Branch store state."""

    id: str
    name: str
    approval_status: str
    store_status: str
    is_manually_closed: bool
    delivery_service_available: bool
    status_history: list[BranchStatusEntrySchema]


class BranchCloseRequest(BaseModel):
    """Manual close request."""

    reason: str | None = Field(default=None, max_length=500)


# ============================================================================
# Wallet Schemas
# ============================================================================


class TransactionTypeEnum(str, Enum):
    """Wallet transaction types."""

    PLATFORM_CHARGE = "platform_charge"
    PAYMENT = "payment"


class WalletResponse(BaseModel):
    """Wallet balance."""

    branch_id: str
    balance: Decimal
    currency: str
    transaction_count: int
    created_at: datetime


class WalletTransactionSchema(BaseModel):
    """One ledger entry. Charges are negative."""

    id: str
    order_id: str | None = None
    amount: Decimal
    type: TransactionTypeEnum
    external_payment_id: str | None = None
    timestamp: datetime


class WalletTransactionsResponse(BaseModel):
    """Ledger entries, newest first."""

    branch_id: str
    items: list[WalletTransactionSchema]
    total: int


class WalletStatisticsResponse(BaseModel):
    """Aggregates replayed from the ledger."""

    branch_id: str
    total_charges: Decimal
    total_payments: Decimal
    net: Decimal


class PaymentCreateRequest(BaseModel):
    """Manual top-up by the branch."""

    amount: Decimal = Field(..., gt=0)


class PaymentResponse(BaseModel):
    """Outcome of a payment."""

    branch_id: str
    applied: bool
    balance: Decimal
    external_payment_id: str


# ============================================================================
# Webhook Schemas
# ============================================================================


class PaymentWebhookRequest(BaseModel):
    """Confirmed payment event from the payment gateway."""

    branch_id: str = Field(..., min_length=1)
    amount: Decimal = Field(..., gt=0)
    external_payment_id: str = Field(..., min_length=1)
