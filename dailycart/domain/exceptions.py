"""Domain exceptions.

Every rejection the core can produce. Each error class carries a
machine-readable ``error_code`` and a ``details`` dict so that callers
can tell which field or which expected state caused the rejection.
"""

from typing import Any, ClassVar


class DomainError(Exception):
    """Base class for all domain exceptions.

    Attributes:
        error_code: Machine-readable error code.
        retryable: Whether the caller may retry the same command.
    """

    error_code: ClassVar[str] = "DOMAIN_ERROR"
    retryable: ClassVar[bool] = False

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        """Initialize domain error.

        Args:
            message: Human-readable error message.
            details: Optional dictionary with additional error context.
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}


# ============================================================================
# Input and Lookup Errors
# ============================================================================


class ValidationError(DomainError):
    """Malformed or missing input. Correctable by the caller."""

    error_code = "VALIDATION_ERROR"

    def __init__(self, message: str, field: str | None = None, **details: Any) -> None:
        if field is not None:
            details["field"] = field
        super().__init__(message, details=details)


class NotFoundError(DomainError):
    """A referenced entity does not exist."""

    error_code = "NOT_FOUND"

    def __init__(self, entity_type: str, entity_id: str) -> None:
        """Initialize not found error.

        Args:
            entity_type: Type of entity (e.g., "Order", "Branch").
            entity_id: ID that could not be resolved.
        """
        super().__init__(
            f"{entity_type} not found: {entity_id}",
            details={"entity_type": entity_type, "entity_id": entity_id},
        )


# ============================================================================
# Access Errors
# ============================================================================


class AuthenticationError(DomainError):
    """The request credential could not be turned into a principal."""

    error_code = "UNAUTHENTICATED"


class AuthorizationError(DomainError):
    """The principal may not act on this entity."""

    error_code = "FORBIDDEN"


# ============================================================================
# State Errors
# ============================================================================


class StateConflictError(DomainError):
    """The command is illegal in the entity's current state."""

    error_code = "STATE_CONFLICT"


class InvalidStateTransitionError(StateConflictError):
    """Raised when a transition is not an edge of the state machine."""

    def __init__(
        self,
        entity_type: str,
        entity_id: str,
        current_state: str,
        target_state: str,
        allowed_transitions: list[str] | None = None,
    ) -> None:
        """Initialize invalid state transition error.

        Args:
            entity_type: Type of entity (e.g., "Order").
            entity_id: ID of the entity.
            current_state: Current state of the entity.
            target_state: Attempted target state.
            allowed_transitions: Allowed target states from current state.
        """
        allowed = allowed_transitions or []
        message = (
            f"Cannot transition {entity_type}({entity_id}) "
            f"from '{current_state}' to '{target_state}'. "
            f"Allowed transitions: {allowed}"
        )
        super().__init__(
            message,
            details={
                "entity_type": entity_type,
                "entity_id": entity_id,
                "current_state": current_state,
                "target_state": target_state,
                "allowed_transitions": allowed,
            },
        )


class UnexpectedStateError(StateConflictError):
    """Raised when a command requires a state the entity is not in."""

    def __init__(
        self,
        entity_type: str,
        entity_id: str,
        required_states: list[str],
        actual_state: str,
    ) -> None:
        required = " or ".join(f"'{s}'" for s in required_states)
        super().__init__(
            f"{entity_type} {entity_id} must be {required} but is '{actual_state}'",
            details={
                "entity_type": entity_type,
                "entity_id": entity_id,
                "required_states": required_states,
                "actual_state": actual_state,
            },
        )


class ConcurrentModificationError(StateConflictError):
    """Raised when another write changed the entity first."""

    def __init__(self, entity_type: str, entity_id: str) -> None:
        super().__init__(
            f"{entity_type} {entity_id} is no longer in the expected state",
            details={"entity_type": entity_type, "entity_id": entity_id},
        )


# ============================================================================
# Business Rules
# ============================================================================


class BusinessRuleViolation(DomainError):
    """Well-formed input that breaks a business rule."""

    error_code = "BUSINESS_RULE_VIOLATION"


# ============================================================================
# Infrastructure
# ============================================================================


class DependencyFailure(DomainError):
    """Storage or transport unavailable. Retryable by the caller."""

    error_code = "DEPENDENCY_FAILURE"
    retryable = True

    def __init__(self, dependency: str, message: str) -> None:
        super().__init__(
            f"{dependency} unavailable: {message}",
            details={"dependency": dependency},
        )
