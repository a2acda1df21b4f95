"""Domain layer - Entities, value objects, state machines, domain events.

This module exports the core domain building blocks:

- **Entities**: Order (aggregate root), Wallet, Branch, DeliveryPartner, Product
- **Value Objects**: Order lines, locations, principals
- **State Machines**: OrderStatus plus the branch/partner status enums
- **Rules**: Platform charge tiers and the modification validator
- **Domain Events**: Recorded by aggregates, published after persistence
- **Exceptions**: Typed rejections with machine-readable codes

Example usage:
    from decimal import Decimal

    from dailycart.domain import Order, PackedItem

    order = Order.create(
        sequence_number=1,
        customer_id="cust-1",
        branch_id="branch-1",
        items=[PackedItem("milk", "Milk", count=2, unit_price=Decimal("30"))],
        delivery_enabled=True,
    )
    print(order.display_id, order.status)  # ORDR00001 OrderStatus.ACCEPTED
"""

# Base classes
from dailycart.domain.base import AggregateRoot, DomainEvent, Entity, ValueObject, utc_now

# Rules
from dailycart.domain.charges import CHARGE_TIERS, TOP_TIER_CHARGE, platform_charge

# Entities
from dailycart.domain.entities import (
    Branch,
    BranchStatusEntry,
    DeliveryPartner,
    ModificationRecord,
    Order,
    Product,
    StatusHistoryEntry,
    TransactionType,
    Wallet,
    WalletStatistics,
    WalletTransaction,
)

# Domain Events
from dailycart.domain.events import (
    EVENT_REGISTRY,
    BranchStoreStatusChanged,
    OrderModified,
    OrderPlaced,
    OrderStatusChanged,
    WalletUpdated,
    get_event_class,
)

# Exceptions
from dailycart.domain.exceptions import (
    AuthenticationError,
    AuthorizationError,
    BusinessRuleViolation,
    ConcurrentModificationError,
    DependencyFailure,
    DomainError,
    InvalidStateTransitionError,
    NotFoundError,
    StateConflictError,
    UnexpectedStateError,
    ValidationError,
)
from dailycart.domain.modification import NO_CHANGES_MESSAGE, ModificationResult, validate_modification

# State Machines
from dailycart.domain.state_machines import (
    ApprovalStatus,
    OrderStatus,
    StoreStatus,
    validate_order_transition,
    validate_partner_transition,
)

# Value Objects
from dailycart.domain.value_objects import (
    ItemRequest,
    Location,
    LooseItem,
    OrderItem,
    PackedItem,
    Principal,
    Role,
    calculate_total,
    quantize_amount,
    quantize_quantity,
)

__all__ = [
    # Base classes
    "AggregateRoot",
    "DomainEvent",
    "Entity",
    "ValueObject",
    "utc_now",
    # Entities
    "Branch",
    "BranchStatusEntry",
    "DeliveryPartner",
    "ModificationRecord",
    "Order",
    "Product",
    "StatusHistoryEntry",
    "TransactionType",
    "Wallet",
    "WalletStatistics",
    "WalletTransaction",
    # Value Objects
    "ItemRequest",
    "Location",
    "LooseItem",
    "OrderItem",
    "PackedItem",
    "Principal",
    "Role",
    "calculate_total",
    "quantize_amount",
    "quantize_quantity",
    # Rules
    "CHARGE_TIERS",
    "TOP_TIER_CHARGE",
    "platform_charge",
    "NO_CHANGES_MESSAGE",
    "ModificationResult",
    "validate_modification",
    # State Machines
    "ApprovalStatus",
    "OrderStatus",
    "StoreStatus",
    "validate_order_transition",
    "validate_partner_transition",
    # Domain Events
    "BranchStoreStatusChanged",
    "OrderModified",
    "OrderPlaced",
    "OrderStatusChanged",
    "WalletUpdated",
    "EVENT_REGISTRY",
    "get_event_class",
    # Exceptions
    "AuthenticationError",
    "AuthorizationError",
    "BusinessRuleViolation",
    "ConcurrentModificationError",
    "DependencyFailure",
    "DomainError",
    "InvalidStateTransitionError",
    "NotFoundError",
    "StateConflictError",
    "UnexpectedStateError",
    "ValidationError",
]
