"""Domain entities for the delivery backend.

The Order aggregate owns the lifecycle rules. Wallet, Branch,
DeliveryPartner and Product are the records the order lifecycle reads
and writes through its collaborators.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import uuid4

from dailycart.domain.base import AggregateRoot, Entity, utc_now
from dailycart.domain.events import (
    BranchStoreStatusChanged,
    OrderModified,
    OrderPlaced,
    OrderStatusChanged,
)
from dailycart.domain.exceptions import (
    BusinessRuleViolation,
    UnexpectedStateError,
    ValidationError,
)
from dailycart.domain.modification import ModificationResult
from dailycart.domain.state_machines import (
    ApprovalStatus,
    OrderStatus,
    StoreStatus,
    validate_order_transition,
    validate_partner_transition,
)
from dailycart.domain.value_objects import (
    Location,
    OrderItem,
    calculate_total,
    quantize_amount,
)

ORDER_DISPLAY_PREFIX = "ORDR"


# ============================================================================
# Order Aggregate Root
# ============================================================================


@dataclass(frozen=True)
class StatusHistoryEntry:
    """One step of an order's status history."""

    status: OrderStatus
    timestamp: datetime = field(default_factory=utc_now)

    def to_dict(self) -> dict[str, Any]:
        return {"status": self.status.value, "timestamp": self.timestamp.isoformat()}


@dataclass(frozen=True)
class ModificationRecord:
    """One modification made by a branch."""

    modified_by: str
    changes: tuple[str, ...]
    timestamp: datetime = field(default_factory=utc_now)

    def to_dict(self) -> dict[str, Any]:
        return {
            "modified_by": self.modified_by,
            "changes": list(self.changes),
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass(kw_only=True, eq=False)
class Order(AggregateRoot[str]):
    """Order aggregate root.

    Items are stored in their resolved packed/loose form and the total is
    always recomputed from them. Status and modification histories are
    append-only.

    Attributes:
        id: Unique order identifier.
        sequence_number: Monotonic number from the order counter.
        customer_id: Customer who placed the order.
        branch_id: Branch fulfilling the order.
        items: Resolved order lines.
        total_price: Sum of the line totals.
        delivery_enabled: Whether a partner delivers it (else self-pickup).
        delivery_location: Customer location snapshot.
        pickup_location: Branch location snapshot.
        status: Current status.
        delivery_partner_id: Assigned partner, once assigned.
        manually_collected: True once a pickup order is collected.
        charge_pending: Delivered but the platform charge is not yet on the
            wallet. Cleared once an admin settles it.
        status_history: Append-only status log.
        modification_history: Append-only modification log.
        cancellation_reason: Reason given when cancelled.
    """

    id: str
    sequence_number: int
    customer_id: str
    branch_id: str
    items: list[OrderItem]
    total_price: Decimal
    delivery_enabled: bool
    delivery_location: Location
    pickup_location: Location
    status: OrderStatus = OrderStatus.PLACED
    delivery_partner_id: str | None = None
    manually_collected: bool = False
    charge_pending: bool = False
    status_history: list[StatusHistoryEntry] = field(default_factory=list)
    modification_history: list[ModificationRecord] = field(default_factory=list)
    cancellation_reason: str | None = None

    @classmethod
    def create(
        cls,
        *,
        sequence_number: int,
        customer_id: str,
        branch_id: str,
        items: list[OrderItem],
        delivery_enabled: bool,
        delivery_location: Location | None = None,
        pickup_location: Location | None = None,
        auto_accept: bool = True,
        order_id: str | None = None,
    ) -> "Order":
        """Create a new order.

        With ``auto_accept`` the order is placed and accepted in one step
        and both entries land in the status history.

        Raises:
            ValidationError: If the order has no items.
        """
        if not items:
            raise ValidationError("Order must contain at least one item", field="items")

        now = utc_now()
        order = cls(
            id=order_id or str(uuid4()),
            sequence_number=sequence_number,
            customer_id=customer_id,
            branch_id=branch_id,
            items=list(items),
            total_price=calculate_total(items),
            delivery_enabled=delivery_enabled,
            delivery_location=delivery_location or Location.default(),
            pickup_location=pickup_location or Location.default(),
            status_history=[StatusHistoryEntry(OrderStatus.PLACED, now)],
            created_at=now,
            updated_at=now,
        )
        order._record_event(
            OrderPlaced(
                aggregate_id=order.id,
                aggregate_type="Order",
                order_id=order.id,
                branch_id=branch_id,
                customer_id=customer_id,
                total_price=str(order.total_price),
                delivery_enabled=delivery_enabled,
            )
        )
        if auto_accept:
            order._transition(OrderStatus.ACCEPTED, actor="system")
        return order

    # -------------------------------------------------------------------------
    # Query Methods
    # -------------------------------------------------------------------------

    @property
    def display_id(self) -> str:
        """Human-readable id, e.g. ORDR00042."""
        return f"{ORDER_DISPLAY_PREFIX}{self.sequence_number:05d}"

    @property
    def is_pickup(self) -> bool:
        return not self.delivery_enabled

    def recomputed_total(self) -> Decimal:
        """Total recomputed from the current items."""
        return calculate_total(self.items)

    # -------------------------------------------------------------------------
    # State Transitions
    # -------------------------------------------------------------------------

    def accept(self, actor: str) -> None:
        """Branch accepts a placed order."""
        self.require_status(OrderStatus.PLACED)
        self._transition(OrderStatus.ACCEPTED, actor=actor)

    def pack(self, actor: str) -> None:
        """Branch finished packing the order."""
        self.require_status(OrderStatus.ACCEPTED)
        self._transition(OrderStatus.PACKED, actor=actor)

    def assign_partner(self, partner_id: str, actor: str) -> None:
        """Hand a packed delivery order to a partner.

        Raises:
            UnexpectedStateError: If the order is not packed.
            BusinessRuleViolation: If the order is a pickup order.
        """
        self.require_status(OrderStatus.PACKED)
        if not self.delivery_enabled:
            raise BusinessRuleViolation(
                f"Order {self.id} is a pickup order and cannot be assigned",
                details={"order_id": self.id, "delivery_enabled": False},
            )
        self.delivery_partner_id = partner_id
        self._transition(OrderStatus.ASSIGNED, actor=actor)

    def update_delivery_status(self, target: OrderStatus, actor: str) -> None:
        """Status update driven by the assigned delivery partner."""
        validate_partner_transition(self.id, self.status, target)
        self._transition(target, actor=actor)

    def cancel(self, reason: str, actor: str) -> None:
        """Branch cancels the order before it leaves the store.

        Raises:
            UnexpectedStateError: If the order is past packing.
        """
        if not self.status.is_cancellable():
            raise UnexpectedStateError(
                "Order",
                self.id,
                required_states=[OrderStatus.PLACED.value, OrderStatus.ACCEPTED.value, OrderStatus.PACKED.value],
                actual_state=self.status.value,
            )
        self.cancellation_reason = reason
        self._transition(OrderStatus.CANCELLED, actor=actor, reason=reason)

    def mark_collected(self, actor: str) -> None:
        """Customer collected a pickup order from the store.

        Raises:
            BusinessRuleViolation: Delivery order, or already collected.
            UnexpectedStateError: If the order is not packed.
        """
        if self.delivery_enabled:
            raise BusinessRuleViolation(
                f"Order {self.id} is a delivery order and cannot be collected",
                details={"order_id": self.id, "delivery_enabled": True},
            )
        if self.manually_collected:
            raise BusinessRuleViolation(
                f"Order {self.id} was already collected",
                details={"order_id": self.id},
            )
        self.require_status(OrderStatus.PACKED)
        self.manually_collected = True
        self._transition(OrderStatus.DELIVERED, actor=actor, reason="Collected by customer")

    def mark_charge_pending(self) -> None:
        """The delivery charge could not be applied."""
        self.require_status(OrderStatus.DELIVERED)
        self.charge_pending = True
        self._touch()

    def clear_charge_pending(self) -> None:
        self.charge_pending = False
        self._touch()

    def apply_modification(self, result: ModificationResult, modified_by: str) -> None:
        """Replace the items with a validated modification.

        A result without changes is a no-op.

        Raises:
            UnexpectedStateError: If the order is not accepted.
        """
        if not self.status.is_modifiable():
            raise UnexpectedStateError(
                "Order", self.id, required_states=[OrderStatus.ACCEPTED.value], actual_state=self.status.value
            )
        if not result.has_changes:
            return
        if not result.updated_items:
            raise BusinessRuleViolation(
                f"Modification would remove every item from order {self.id}; cancel it instead",
                details={"order_id": self.id},
            )

        previous_total = self.total_price
        self.items = list(result.updated_items)
        self.total_price = calculate_total(self.items)
        record = ModificationRecord(modified_by=modified_by, changes=tuple(result.change_descriptions))
        self.modification_history.append(record)
        self._touch()
        self._record_event(
            OrderModified(
                aggregate_id=self.id,
                aggregate_type="Order",
                order_id=self.id,
                modified_by=modified_by,
                changes=record.changes,
                previous_total=str(previous_total),
                new_total=str(self.total_price),
            )
        )

    def require_status(self, *statuses: OrderStatus) -> None:
        """Raise UnexpectedStateError unless the order is in one of ``statuses``."""
        if self.status not in statuses:
            raise UnexpectedStateError(
                "Order",
                self.id,
                required_states=[s.value for s in statuses],
                actual_state=self.status.value,
            )

    def _transition(self, target: OrderStatus, actor: str, reason: str | None = None) -> None:
        validate_order_transition(self.id, self.status, target)
        previous = self.status
        self.status = target
        self.status_history.append(StatusHistoryEntry(target))
        self._touch()
        self._record_event(
            OrderStatusChanged(
                aggregate_id=self.id,
                aggregate_type="Order",
                order_id=self.id,
                from_status=previous.value,
                to_status=target.value,
                actor=actor,
                reason=reason,
                delivery_partner_id=self.delivery_partner_id,
            )
        )

    def to_dict(self) -> dict[str, Any]:
        """Snapshot used in API responses and broadcast payloads."""
        return {
            "id": self.id,
            "order_number": self.display_id,
            "sequence_number": self.sequence_number,
            "customer_id": self.customer_id,
            "branch_id": self.branch_id,
            "delivery_partner_id": self.delivery_partner_id,
            "status": self.status.value,
            "items": [item.to_dict() for item in self.items],
            "total_price": str(self.total_price),
            "delivery_enabled": self.delivery_enabled,
            "manually_collected": self.manually_collected,
            "charge_pending": self.charge_pending,
            "delivery_location": self.delivery_location.to_dict(),
            "pickup_location": self.pickup_location.to_dict(),
            "status_history": [entry.to_dict() for entry in self.status_history],
            "modification_history": [record.to_dict() for record in self.modification_history],
            "cancellation_reason": self.cancellation_reason,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }


# ============================================================================
# Wallet
# ============================================================================


class TransactionType(str, Enum):
    """Kinds of wallet transactions."""

    PLATFORM_CHARGE = "platform_charge"
    PAYMENT = "payment"


@dataclass(frozen=True)
class WalletTransaction:
    """One append-only ledger entry. Charges are negative, payments positive."""

    amount: Decimal
    type: TransactionType
    order_id: str | None = None
    external_payment_id: str | None = None
    id: str = field(default_factory=lambda: str(uuid4()))
    timestamp: datetime = field(default_factory=utc_now)

    @classmethod
    def charge(cls, amount: Decimal, order_id: str | None) -> "WalletTransaction":
        return cls(amount=-quantize_amount(amount), type=TransactionType.PLATFORM_CHARGE, order_id=order_id)

    @classmethod
    def payment(cls, amount: Decimal, external_payment_id: str | None = None) -> "WalletTransaction":
        return cls(
            amount=quantize_amount(amount),
            type=TransactionType.PAYMENT,
            external_payment_id=external_payment_id,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "amount": str(self.amount),
            "type": self.type.value,
            "external_payment_id": self.external_payment_id,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass(frozen=True)
class WalletStatistics:
    """Aggregates derived from replaying a wallet's transactions."""

    total_charges: Decimal
    total_payments: Decimal
    net: Decimal

    def to_dict(self) -> dict[str, str]:
        return {
            "total_charges": str(self.total_charges),
            "total_payments": str(self.total_payments),
            "net": str(self.net),
        }


@dataclass
class Wallet:
    """Per-branch ledger.

    ``balance`` is a cache of ``sum(t.amount for t in transactions)``;
    only ``record`` changes either, and it always changes both.
    """

    branch_id: str
    balance: Decimal = Decimal("0.00")
    transactions: list[WalletTransaction] = field(default_factory=list)
    created_at: datetime = field(default_factory=utc_now)

    def record(self, transaction: WalletTransaction) -> None:
        """Increment the balance and append the entry together."""
        self.balance = quantize_amount(self.balance + transaction.amount)
        self.transactions.append(transaction)

    def replayed_balance(self) -> Decimal:
        return quantize_amount(sum((t.amount for t in self.transactions), Decimal("0")))

    def statistics(self) -> WalletStatistics:
        charges = sum(
            (-t.amount for t in self.transactions if t.type == TransactionType.PLATFORM_CHARGE),
            Decimal("0"),
        )
        payments = sum(
            (t.amount for t in self.transactions if t.type == TransactionType.PAYMENT),
            Decimal("0"),
        )
        return WalletStatistics(
            total_charges=quantize_amount(charges),
            total_payments=quantize_amount(payments),
            net=quantize_amount(payments - charges),
        )

    def payments(self) -> list[WalletTransaction]:
        return [t for t in self.transactions if t.type == TransactionType.PAYMENT]


# ============================================================================
# Branch
# ============================================================================


@dataclass(frozen=True)
class BranchStatusEntry:
    """One open/close event of a branch store."""

    status: StoreStatus
    reason: str
    automatic: bool
    timestamp: datetime = field(default_factory=utc_now)

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status.value,
            "reason": self.reason,
            "automatic": self.automatic,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass(eq=False)
class Branch(Entity[str]):
    """A store. Owned by the branch directory; the core flips its store status."""

    id: str
    name: str
    approval_status: ApprovalStatus = ApprovalStatus.PENDING
    store_status: StoreStatus = StoreStatus.OPEN
    is_manually_closed: bool = False
    delivery_service_available: bool = False
    location: Location = field(default_factory=Location.default)
    phone: str | None = None
    status_history: list[BranchStatusEntry] = field(default_factory=list)
    _events: list[BranchStoreStatusChanged] = field(default_factory=list, init=False, repr=False)

    @property
    def is_open(self) -> bool:
        return self.store_status == StoreStatus.OPEN

    def open_store(self, reason: str) -> None:
        self._set_store_status(StoreStatus.OPEN, reason, automatic=False, balance=None)
        self.is_manually_closed = False

    def close_store(self, reason: str, automatic: bool, balance: Decimal | None = None) -> None:
        self._set_store_status(StoreStatus.CLOSED, reason, automatic=automatic, balance=balance)
        self.is_manually_closed = not automatic

    def collect_events(self) -> list[BranchStoreStatusChanged]:
        events = self._events.copy()
        self._events.clear()
        return events

    def _set_store_status(
        self, status: StoreStatus, reason: str, automatic: bool, balance: Decimal | None
    ) -> None:
        self.store_status = status
        self.status_history.append(BranchStatusEntry(status=status, reason=reason, automatic=automatic))
        self._events.append(
            BranchStoreStatusChanged(
                aggregate_id=self.id,
                aggregate_type="Branch",
                branch_id=self.id,
                status=status.value,
                reason=reason,
                automatic=automatic,
                balance=str(balance) if balance is not None else None,
            )
        )


# ============================================================================
# Delivery Partner
# ============================================================================


@dataclass(eq=False)
class DeliveryPartner(Entity[str]):
    """A rider attached to one branch."""

    id: str
    branch_id: str
    name: str = ""
    status: ApprovalStatus = ApprovalStatus.PENDING
    availability: bool = True
    current_orders: set[str] = field(default_factory=set)

    @property
    def is_eligible(self) -> bool:
        """Approved and free to take an order."""
        return self.status == ApprovalStatus.APPROVED and self.availability


# ============================================================================
# Product
# ============================================================================


@dataclass(eq=False)
class Product(Entity[str]):
    """Catalog entry as the order lifecycle sees it."""

    id: str
    branch_id: str
    name: str
    price: Decimal
    is_loose: bool = False
    unit: str = "pc"
    available: bool = True
    disabled_reason: str | None = None

    def __post_init__(self) -> None:
        self.price = quantize_amount(self.price)
