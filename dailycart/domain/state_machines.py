"""State machines for domain entities.

Deterministic state machines for orders, plus the status enums used by
branches and delivery partners. The order machine is the only one with
transition rules; branch and partner statuses are owned by external
directories and only read here.
"""

from enum import Enum

from dailycart.domain.exceptions import InvalidStateTransitionError


# ============================================================================
# Order State Machine
# ============================================================================


class OrderStatus(str, Enum):
    """Order lifecycle states.

    State diagram:
        PLACED ──────────────────────────────────────► CANCELLED
          │                                              ▲
          │ accept                                       │
          ▼                                              │
        ACCEPTED ─────────────────────────────────────►──┤
          │                                              │
          │ pack                                         │
          ▼                                              │
        PACKED ───────────────────────────────────────►──┤
          │       │                                      │
          │       │ mark collected (pickup only)         │
          │       └──────────────────────┐               │
          │ assign                       │               │
          ▼                              │               │
        ASSIGNED ────────────────────────┼────────────►──┘
          │       │                      │
          │       │ deliver              │
          │ arrive└──────────────────┐   │
          ▼                          ▼   ▼
        ARRIVING ──────────────────► DELIVERED
    """

    PLACED = "placed"
    ACCEPTED = "accepted"
    PACKED = "packed"
    ASSIGNED = "assigned"
    ARRIVING = "arriving"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"

    def can_transition_to(self, target: "OrderStatus") -> bool:
        """Check if transition to target state is valid.

        Args:
            target: Target state to transition to.

        Returns:
            True if transition is valid.
        """
        return target in _ORDER_TRANSITIONS.get(self, set())

    def allowed_transitions(self) -> list["OrderStatus"]:
        """Get valid target states in declaration order.

        Returns:
            List of states that can be transitioned to.
        """
        targets = _ORDER_TRANSITIONS.get(self, set())
        return [status for status in OrderStatus if status in targets]

    def is_terminal(self) -> bool:
        """Check if this is a terminal (final) state."""
        return len(_ORDER_TRANSITIONS.get(self, set())) == 0

    def is_cancellable(self) -> bool:
        """Check if the owning branch may still cancel the order."""
        return self in BRANCH_CANCELLABLE_STATUSES

    def is_modifiable(self) -> bool:
        """Check if the branch may still change the order's items."""
        return self == OrderStatus.ACCEPTED

    def partner_targets(self) -> list["OrderStatus"]:
        """Get the states a delivery partner may move the order to."""
        targets = PARTNER_TRANSITIONS.get(self, set())
        return [status for status in OrderStatus if status in targets]


# Order state transitions (defined outside enum to avoid Enum restrictions)
_ORDER_TRANSITIONS: dict[OrderStatus, set[OrderStatus]] = {
    OrderStatus.PLACED: {OrderStatus.ACCEPTED, OrderStatus.CANCELLED},
    OrderStatus.ACCEPTED: {OrderStatus.PACKED, OrderStatus.CANCELLED},
    OrderStatus.PACKED: {
        OrderStatus.ASSIGNED,
        OrderStatus.DELIVERED,  # self-pickup
        OrderStatus.CANCELLED,
    },
    OrderStatus.ASSIGNED: {
        OrderStatus.ARRIVING,
        OrderStatus.DELIVERED,
        OrderStatus.CANCELLED,
    },
    OrderStatus.ARRIVING: {OrderStatus.DELIVERED},
    OrderStatus.DELIVERED: set(),  # Terminal state
    OrderStatus.CANCELLED: set(),  # Terminal state
}

# Subset of the machine a delivery partner drives once assigned
PARTNER_TRANSITIONS: dict[OrderStatus, set[OrderStatus]] = {
    OrderStatus.ASSIGNED: {
        OrderStatus.ARRIVING,
        OrderStatus.DELIVERED,
        OrderStatus.CANCELLED,
    },
    OrderStatus.ARRIVING: {OrderStatus.DELIVERED},
}

BRANCH_CANCELLABLE_STATUSES: frozenset[OrderStatus] = frozenset(
    {OrderStatus.PLACED, OrderStatus.ACCEPTED, OrderStatus.PACKED}
)


# ============================================================================
# Branch and Partner Statuses
# ============================================================================


class ApprovalStatus(str, Enum):
    """Admin approval of a branch or a delivery partner."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class StoreStatus(str, Enum):
    """Whether a branch is currently taking orders."""

    OPEN = "open"
    CLOSED = "closed"


# ============================================================================
# State Machine Helpers
# ============================================================================


def validate_order_transition(
    order_id: str,
    current_status: OrderStatus,
    target_status: OrderStatus,
) -> None:
    """Validate and raise if order state transition is invalid.

    Args:
        order_id: Order identifier for error message.
        current_status: Current order status.
        target_status: Target order status.

    Raises:
        InvalidStateTransitionError: If transition is not valid.
    """
    if not current_status.can_transition_to(target_status):
        raise InvalidStateTransitionError(
            entity_type="Order",
            entity_id=order_id,
            current_state=current_status.value,
            target_state=target_status.value,
            allowed_transitions=[s.value for s in current_status.allowed_transitions()],
        )


def validate_partner_transition(
    order_id: str,
    current_status: OrderStatus,
    target_status: OrderStatus,
) -> None:
    """Validate a status update requested by the assigned delivery partner.

    Raises:
        InvalidStateTransitionError: If the partner may not make this move.
    """
    if target_status not in PARTNER_TRANSITIONS.get(current_status, set()):
        raise InvalidStateTransitionError(
            entity_type="Order",
            entity_id=order_id,
            current_state=current_status.value,
            target_state=target_status.value,
            allowed_transitions=[s.value for s in current_status.partner_targets()],
        )
