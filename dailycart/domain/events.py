"""Domain events for the delivery backend.

Aggregates record these as they change; the application layer publishes
them after the change is persisted. The notifier turns each event into
room-scoped broadcasts.
"""

from dataclasses import dataclass, field
from typing import Any, ClassVar

from dailycart.domain.base import DomainEvent


# ============================================================================
# Order Events
# ============================================================================


@dataclass(frozen=True)
class OrderPlaced(DomainEvent):
    """Event raised when a customer creates an order."""

    event_type: ClassVar[str] = "order.placed"

    order_id: str = ""
    branch_id: str = ""
    customer_id: str = ""
    total_price: str = "0"
    delivery_enabled: bool = False

    def _payload(self) -> dict[str, Any]:
        return {
            "order_id": self.order_id,
            "branch_id": self.branch_id,
            "customer_id": self.customer_id,
            "total_price": self.total_price,
            "delivery_enabled": self.delivery_enabled,
        }


@dataclass(frozen=True)
class OrderStatusChanged(DomainEvent):
    """Event raised on every order status transition."""

    event_type: ClassVar[str] = "order.status_changed"

    order_id: str = ""
    from_status: str = ""
    to_status: str = ""
    actor: str = ""
    reason: str | None = None
    delivery_partner_id: str | None = None

    def _payload(self) -> dict[str, Any]:
        return {
            "order_id": self.order_id,
            "from_status": self.from_status,
            "to_status": self.to_status,
            "actor": self.actor,
            "reason": self.reason,
            "delivery_partner_id": self.delivery_partner_id,
        }


@dataclass(frozen=True)
class OrderModified(DomainEvent):
    """Event raised when a branch changes the items of an order."""

    event_type: ClassVar[str] = "order.modified"

    order_id: str = ""
    modified_by: str = ""
    changes: tuple[str, ...] = field(default_factory=tuple)
    previous_total: str = "0"
    new_total: str = "0"

    def _payload(self) -> dict[str, Any]:
        return {
            "order_id": self.order_id,
            "modified_by": self.modified_by,
            "changes": list(self.changes),
            "previous_total": self.previous_total,
            "new_total": self.new_total,
        }


# ============================================================================
# Wallet Events
# ============================================================================


@dataclass(frozen=True)
class WalletUpdated(DomainEvent):
    """Event raised after a charge or payment lands on a wallet."""

    event_type: ClassVar[str] = "wallet.updated"

    branch_id: str = ""
    transaction_type: str = ""
    amount: str = "0"
    new_balance: str = "0"
    order_id: str | None = None

    def _payload(self) -> dict[str, Any]:
        return {
            "branch_id": self.branch_id,
            "transaction_type": self.transaction_type,
            "amount": self.amount,
            "new_balance": self.new_balance,
            "order_id": self.order_id,
        }


# ============================================================================
# Branch Events
# ============================================================================


@dataclass(frozen=True)
class BranchStoreStatusChanged(DomainEvent):
    """Event raised when a branch opens or closes its store."""

    event_type: ClassVar[str] = "branch.store_status_changed"

    branch_id: str = ""
    status: str = ""
    reason: str = ""
    automatic: bool = False
    balance: str | None = None

    def _payload(self) -> dict[str, Any]:
        return {
            "branch_id": self.branch_id,
            "status": self.status,
            "reason": self.reason,
            "automatic": self.automatic,
            "balance": self.balance,
        }


# ============================================================================
# Event Registry
# ============================================================================


EVENT_REGISTRY: dict[str, type[DomainEvent]] = {
    OrderPlaced.event_type: OrderPlaced,
    OrderStatusChanged.event_type: OrderStatusChanged,
    OrderModified.event_type: OrderModified,
    WalletUpdated.event_type: WalletUpdated,
    BranchStoreStatusChanged.event_type: BranchStoreStatusChanged,
}


def get_event_class(event_type: str) -> type[DomainEvent] | None:
    """Get event class by event type string (e.g. 'order.placed')."""
    return EVENT_REGISTRY.get(event_type)
