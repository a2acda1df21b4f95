"""Order application service.

Orchestrates the order lifecycle:
- Creating orders from a customer's basket (auto-accepted by default)
- Branch commands: accept, modify, pack, assign, cancel
- Delivery partner status updates, including delivery
- Self-pickup collection by the customer
- Settling a delivery charge that failed (admin)

Each command authorizes the principal, loads the order, applies the
transition on the aggregate, and writes it back with a version check.
Broadcasts and other side effects run after the write and never undo it.
"""

from collections.abc import Iterable
from dataclasses import dataclass, field

import structlog

from dailycart.application.delivery_service import DeliveryAssignmentSelector
from dailycart.application.notifications import EventNotifier
from dailycart.application.wallet_service import ChargeResult, WalletLedger
from dailycart.domain.base import DomainEvent
from dailycart.domain.entities import Branch, DeliveryPartner, Order
from dailycart.domain.exceptions import (
    AuthorizationError,
    BusinessRuleViolation,
    DomainError,
    NotFoundError,
    ValidationError,
)
from dailycart.domain.modification import ModificationResult, validate_modification
from dailycart.domain.state_machines import ApprovalStatus, OrderStatus
from dailycart.domain.value_objects import (
    ItemRequest,
    Location,
    LooseItem,
    OrderItem,
    PackedItem,
    Principal,
    Role,
)
from dailycart.infrastructure.config import settings
from dailycart.infrastructure.repositories import (
    InMemoryBranchDirectory,
    InMemoryOrderRepository,
    InMemoryPartnerDirectory,
    InMemoryProductCatalog,
)

logger = structlog.get_logger()


# ============================================================================
# Service Result Types
# ============================================================================


@dataclass
class TransitionResult:
    """Order after a transition, plus the wallet outcome for deliveries.

    ``charge_failed`` marks a degraded delivery: the order is delivered
    but the platform charge could not be applied.
    """

    order: Order
    charge: ChargeResult | None = None
    charge_failed: bool = False

    @property
    def message(self) -> str:
        if self.charge_failed:
            return f"Order {self.order.display_id} is {self.order.status.value}; wallet charge pending"
        return f"Order {self.order.display_id} is {self.order.status.value}"


@dataclass
class ModifyOrderResult:
    """Order after a modification and what the modification did."""

    order: Order
    modification: ModificationResult
    disabled_product_ids: list[str] = field(default_factory=list)

    @property
    def message(self) -> str:
        return self.modification.message


# ============================================================================
# Order Service
# ============================================================================


class OrderService:
    """Application service for the order state machine."""

    def __init__(
        self,
        orders: InMemoryOrderRepository,
        products: InMemoryProductCatalog,
        branches: InMemoryBranchDirectory,
        partners: InMemoryPartnerDirectory,
        selector: DeliveryAssignmentSelector,
        ledger: WalletLedger,
        notifier: EventNotifier,
        auto_accept: bool | None = None,
        partner_max_concurrent_orders: int | None = None,
    ) -> None:
        """Initialize service.

        Args:
            orders: Order store.
            products: Product catalog.
            branches: Branch directory.
            partners: Delivery partner directory.
            selector: Delivery availability and partner selection.
            ledger: Wallet ledger charged on delivery.
            notifier: Broadcasts recorded domain events.
            auto_accept: Accept orders at creation, defaults to settings.
            partner_max_concurrent_orders: Orders a partner may carry at once.
        """
        self.orders = orders
        self.products = products
        self.branches = branches
        self.partners = partners
        self.selector = selector
        self.ledger = ledger
        self.notifier = notifier
        self.auto_accept = settings.auto_accept_orders if auto_accept is None else auto_accept
        self.partner_max_concurrent_orders = (
            partner_max_concurrent_orders
            if partner_max_concurrent_orders is not None
            else settings.partner_max_concurrent_orders
        )

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    async def get_order(self, order_id: str, principal: Principal) -> Order:
        """Get an order the principal is a party to.

        Raises:
            NotFoundError: If the order does not exist.
            AuthorizationError: If the principal is not a party to it.
        """
        order = await self._load(order_id)
        if not self._can_view(order, principal):
            raise AuthorizationError(
                f"{principal} may not view order {order_id}",
                details={"order_id": order_id},
            )
        return order

    async def list_orders(
        self,
        principal: Principal,
        statuses: Iterable[OrderStatus] | None = None,
        branch_id: str | None = None,
        customer_id: str | None = None,
        partner_id: str | None = None,
    ) -> list[Order]:
        """List orders visible to the principal, newest first.

        Non-admin principals are scoped to their own orders; a filter that
        points at somebody else's orders is rejected.
        """
        if principal.role == Role.CUSTOMER:
            customer_id = self._own_scope("customer_id", customer_id, principal)
        elif principal.role == Role.BRANCH:
            branch_id = self._own_scope("branch_id", branch_id, principal)
        elif principal.role == Role.DELIVERY_PARTNER:
            partner_id = self._own_scope("partner_id", partner_id, principal)

        return await self.orders.list(
            statuses=statuses,
            branch_id=branch_id,
            customer_id=customer_id,
            partner_id=partner_id,
        )

    # -------------------------------------------------------------------------
    # Customer Commands
    # -------------------------------------------------------------------------

    async def create_order(
        self,
        principal: Principal,
        branch_id: str,
        items: list[ItemRequest],
        delivery_requested: bool = True,
        delivery_location: Location | None = None,
    ) -> Order:
        """Place an order at a branch.

        Args:
            principal: Customer placing the order.
            branch_id: Branch to order from.
            items: Requested lines.
            delivery_requested: Customer wants delivery rather than pickup.
            delivery_location: Where to deliver, if known.

        Returns:
            The created order, accepted unless auto-accept is off.

        Raises:
            AuthorizationError: If the principal is not a customer.
            NotFoundError: Unknown branch or product.
            ValidationError: Empty basket or malformed lines.
            BusinessRuleViolation: Branch closed, product unavailable or
                from another branch.
        """
        if principal.role != Role.CUSTOMER:
            raise AuthorizationError(
                "Only customers can place orders",
                details={"role": principal.role.value},
            )

        branch = await self.branches.find_by_id(branch_id)
        if branch is None:
            raise NotFoundError("Branch", branch_id)
        if branch.approval_status != ApprovalStatus.APPROVED or not branch.is_open:
            raise BusinessRuleViolation(
                f"Branch {branch_id} is not accepting orders",
                details={
                    "branch_id": branch_id,
                    "approval_status": branch.approval_status.value,
                    "store_status": branch.store_status.value,
                },
            )

        resolved = await self._resolve_items(branch, items)
        delivery_enabled = delivery_requested and await self.selector.is_delivery_available(branch_id, branch)

        order = Order.create(
            sequence_number=await self.orders.next_sequence_number(),
            customer_id=principal.subject_id,
            branch_id=branch_id,
            items=resolved,
            delivery_enabled=delivery_enabled,
            delivery_location=delivery_location,
            pickup_location=branch.location,
            auto_accept=self.auto_accept,
        )
        events = order.collect_events()
        await self.orders.add(order)

        logger.info(
            "Order created",
            order_id=order.id,
            order_number=order.display_id,
            branch_id=branch_id,
            customer_id=principal.subject_id,
            total_price=str(order.total_price),
            delivery_enabled=delivery_enabled,
            status=order.status.value,
        )
        await self.notifier.publish(events, order)
        return order

    async def mark_collected(self, order_id: str, principal: Principal) -> TransitionResult:
        """Customer picked up a packed self-pickup order."""
        order = await self._load(order_id)
        self._authorize_customer(order, principal)

        expected_version = order.version
        order.mark_collected(actor=str(principal))
        events = await self._commit(order, expected_version)

        result = await self._charge_delivered(order)
        logger.info("Order collected", order_id=order.id, branch_id=order.branch_id)
        await self.notifier.publish(events, order)
        return result

    # -------------------------------------------------------------------------
    # Branch Commands
    # -------------------------------------------------------------------------

    async def accept_order(self, order_id: str, principal: Principal) -> Order:
        """Accept a placed order.

        Only reachable when auto-accept is off; new orders are otherwise
        accepted at creation.
        """
        order = await self._load(order_id)
        self._authorize_branch(order, principal)

        logger.warning("Explicit accept is a legacy flow", order_id=order_id, auto_accept=self.auto_accept)
        expected_version = order.version
        order.accept(actor=str(principal))
        return await self._finish(order, expected_version, "Order accepted")

    async def modify_order(
        self,
        order_id: str,
        principal: Principal,
        proposed_items: list[ItemRequest],
    ) -> ModifyOrderResult:
        """Apply a branch's reductions to an accepted order.

        Products that were removed are disabled in the catalog on a
        best-effort basis; the branch is signalling they are out of stock.

        Raises:
            AuthorizationError: Principal does not own the order.
            StateConflictError: Order is not accepted.
            ValidationError / BusinessRuleViolation: Proposal rejected.
        """
        order = await self._load(order_id)
        self._authorize_branch(order, principal)
        order.require_status(OrderStatus.ACCEPTED)

        modification = validate_modification(order.items, proposed_items)
        if not modification.has_changes:
            logger.info("Order modification without changes", order_id=order_id)
            return ModifyOrderResult(order=order, modification=modification)

        expected_version = order.version
        order.apply_modification(modification, modified_by=principal.subject_id)
        events = await self._commit(order, expected_version)

        logger.info(
            "Order modified",
            order_id=order_id,
            changes=modification.change_descriptions,
            new_total=str(order.total_price),
        )
        disabled = await self._disable_products(order, modification.removed_product_ids)
        await self.notifier.publish(events, order)
        return ModifyOrderResult(order=order, modification=modification, disabled_product_ids=disabled)

    async def mark_packed(self, order_id: str, principal: Principal) -> Order:
        order = await self._load(order_id)
        self._authorize_branch(order, principal)

        expected_version = order.version
        order.pack(actor=str(principal))
        return await self._finish(order, expected_version, "Order packed")

    async def assign_partner(
        self,
        order_id: str,
        principal: Principal,
        partner_id: str | None = None,
    ) -> Order:
        """Hand a packed delivery order to a partner.

        Args:
            order_id: Order to assign.
            principal: Branch that owns the order.
            partner_id: Specific partner, or None to take the first eligible.

        Raises:
            BusinessRuleViolation: Pickup order, or no eligible partner.
            StateConflictError: The partner was taken by a concurrent assignment.
        """
        order = await self._load(order_id)
        self._authorize_branch(order, principal)
        order.require_status(OrderStatus.PACKED)
        if not order.delivery_enabled:
            raise BusinessRuleViolation(
                f"Order {order_id} is a pickup order and cannot be assigned",
                details={"order_id": order_id},
            )

        partner = await self._pick_partner(order, partner_id)
        # Reserve the slot before the order points at the partner
        await self.partners.add_current_order(partner.id, order.id, self.partner_max_concurrent_orders)

        expected_version = order.version
        order.assign_partner(partner.id, actor=str(principal))
        try:
            events = await self._commit(order, expected_version)
        except Exception:
            await self._release_partner(order)
            raise

        logger.info("Order assigned", order_id=order_id, delivery_partner_id=partner.id)
        await self.notifier.publish(events, order)
        return order

    async def cancel_order(self, order_id: str, principal: Principal, reason: str) -> Order:
        """Cancel an order that has not left the store yet."""
        order = await self._load(order_id)
        self._authorize_branch(order, principal)

        expected_version = order.version
        order.cancel(reason=reason, actor=str(principal))
        events = await self._commit(order, expected_version)
        await self._release_partner(order)

        logger.info("Order cancelled", order_id=order_id, reason=reason)
        await self.notifier.publish(events, order)
        return order

    # -------------------------------------------------------------------------
    # Delivery Partner Commands
    # -------------------------------------------------------------------------

    async def update_status(self, order_id: str, principal: Principal, target: OrderStatus) -> TransitionResult:
        """Move an assigned order along the delivery leg.

        Delivery charges the branch wallet. Delivery and cancellation free
        the partner.
        """
        order = await self._load(order_id)
        self._authorize_partner(order, principal)

        expected_version = order.version
        order.update_delivery_status(target, actor=str(principal))
        events = await self._commit(order, expected_version)

        result = TransitionResult(order=order)
        if order.status.is_terminal():
            await self._release_partner(order)
        if order.status == OrderStatus.DELIVERED:
            result = await self._charge_delivered(order)

        logger.info("Delivery status updated", order_id=order_id, status=order.status.value)
        await self.notifier.publish(events, order)
        return result

    # -------------------------------------------------------------------------
    # Admin Commands
    # -------------------------------------------------------------------------

    async def settle_charge(self, order_id: str, principal: Principal) -> TransitionResult:
        """Apply the platform charge of a delivered order whose charge failed.

        The ledger charges an order at most once, so settling an order
        that was already charged leaves the wallet unchanged.

        Raises:
            AuthorizationError: If the principal is not an admin.
            UnexpectedStateError: If the order is not delivered.
            DependencyFailure: If the wallet is still unavailable.
        """
        if not principal.is_admin:
            raise AuthorizationError(
                f"{principal} may not settle order charges",
                details={"order_id": order_id},
            )
        order = await self._load(order_id)
        order.require_status(OrderStatus.DELIVERED)

        charge = await self.ledger.apply_charge(order.branch_id, order.id, order.total_price)
        if order.charge_pending:
            expected_version = order.version
            order.clear_charge_pending()
            await self._commit(order, expected_version)

        logger.info(
            "Order charge settled",
            order_id=order_id,
            charge=str(charge.charge),
            applied=charge.applied,
            balance=str(charge.balance),
        )
        return TransitionResult(order=order, charge=charge)

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    async def _load(self, order_id: str) -> Order:
        order = await self.orders.get(order_id)
        if order is None:
            raise NotFoundError("Order", order_id)
        return order

    async def _commit(self, order: Order, expected_version: int) -> list[DomainEvent]:
        events = order.collect_events()
        await self.orders.save(order, expected_version=expected_version)
        return events

    async def _finish(self, order: Order, expected_version: int, log_message: str) -> Order:
        events = await self._commit(order, expected_version)
        logger.info(log_message, order_id=order.id, status=order.status.value)
        await self.notifier.publish(events, order)
        return order

    async def _resolve_items(self, branch: Branch, items: list[ItemRequest]) -> list[OrderItem]:
        if not items:
            raise ValidationError("Order must contain at least one item", field="items")

        resolved: list[OrderItem] = []
        seen: set[str] = set()
        for request in items:
            if request.product_id in seen:
                raise ValidationError(
                    f"Product {request.product_id} listed more than once",
                    field="items",
                    product_id=request.product_id,
                )
            seen.add(request.product_id)

            if isinstance(request.count, bool) or not isinstance(request.count, int) or request.count < 1:
                raise ValidationError(
                    f"Count for product {request.product_id} must be a positive integer",
                    field="count",
                    product_id=request.product_id,
                )

            product = await self.products.find_by_id(request.product_id)
            if product is None:
                raise NotFoundError("Product", request.product_id)
            if product.branch_id != branch.id:
                raise BusinessRuleViolation(
                    f"Product {product.name} is not sold by branch {branch.id}",
                    details={"product_id": product.id, "branch_id": branch.id},
                )
            if not product.available:
                raise BusinessRuleViolation(
                    f"Product {product.name} is currently unavailable",
                    details={"product_id": product.id},
                )

            if product.is_loose:
                if request.quantity is None:
                    raise ValidationError(
                        f"Loose product {product.name} requires a quantity",
                        field="quantity",
                        product_id=product.id,
                    )
                resolved.append(
                    LooseItem(
                        product_id=product.id,
                        name=product.name,
                        count=request.count,
                        quantity=request.quantity,
                        unit=product.unit,
                        unit_price=product.price,
                    )
                )
            else:
                resolved.append(
                    PackedItem(
                        product_id=product.id,
                        name=product.name,
                        count=request.count,
                        unit_price=product.price,
                    )
                )
        return resolved

    async def _pick_partner(self, order: Order, partner_id: str | None) -> DeliveryPartner:
        if partner_id is None:
            partner = await self.selector.find_eligible_partner(order.branch_id)
            if partner is None:
                raise BusinessRuleViolation(
                    f"No delivery partner available for branch {order.branch_id}",
                    details={"branch_id": order.branch_id},
                )
            return partner

        partner = await self.partners.find_by_id(partner_id)
        if partner is None:
            raise NotFoundError("DeliveryPartner", partner_id)
        if partner.branch_id != order.branch_id or not partner.is_eligible:
            raise BusinessRuleViolation(
                f"Delivery partner {partner_id} cannot take order {order.id}",
                details={
                    "partner_id": partner_id,
                    "partner_status": partner.status.value,
                    "availability": partner.availability,
                },
            )
        return partner

    async def _charge_delivered(self, order: Order) -> TransitionResult:
        try:
            charge = await self.ledger.apply_charge(order.branch_id, order.id, order.total_price)
        except DomainError as exc:
            # The order stays delivered and is flagged for settle_charge
            logger.error(
                "Platform charge failed for delivered order",
                order_id=order.id,
                branch_id=order.branch_id,
                total_price=str(order.total_price),
                error=str(exc),
            )
            await self._flag_charge_pending(order)
            return TransitionResult(order=order, charge_failed=True)
        return TransitionResult(order=order, charge=charge)

    async def _flag_charge_pending(self, order: Order) -> None:
        expected_version = order.version
        order.mark_charge_pending()
        try:
            await self._commit(order, expected_version)
        except Exception as exc:
            logger.error("Could not flag pending charge", order_id=order.id, error=str(exc))

    async def _release_partner(self, order: Order) -> None:
        if not order.delivery_partner_id:
            return
        try:
            await self.partners.remove_current_order(order.delivery_partner_id, order.id)
        except Exception as exc:
            logger.warning(
                "Could not release delivery partner",
                order_id=order.id,
                delivery_partner_id=order.delivery_partner_id,
                error=str(exc),
            )

    async def _disable_products(self, order: Order, product_ids: list[str]) -> list[str]:
        if not product_ids:
            return []
        try:
            disabled = await self.products.disable(
                product_ids,
                branch_id=order.branch_id,
                reason=f"Removed from order {order.display_id}",
            )
        except Exception as exc:
            logger.warning("Could not disable removed products", order_id=order.id, error=str(exc))
            return []
        if disabled:
            logger.info("Products disabled after modification", order_id=order.id, product_ids=disabled)
        return disabled

    @staticmethod
    def _can_view(order: Order, principal: Principal) -> bool:
        if principal.is_admin:
            return True
        if principal.role == Role.CUSTOMER:
            return order.customer_id == principal.subject_id
        if principal.role == Role.BRANCH:
            return order.branch_id == principal.subject_id
        if principal.role == Role.DELIVERY_PARTNER:
            return order.delivery_partner_id == principal.subject_id
        return False

    @staticmethod
    def _own_scope(name: str, requested: str | None, principal: Principal) -> str:
        if requested is not None and requested != principal.subject_id:
            raise AuthorizationError(
                f"{principal} may only list their own orders",
                details={name: requested},
            )
        return principal.subject_id

    @staticmethod
    def _authorize_branch(order: Order, principal: Principal) -> None:
        if principal.role != Role.BRANCH or principal.subject_id != order.branch_id:
            raise AuthorizationError(
                f"Only branch {order.branch_id} can do this to order {order.id}",
                details={"order_id": order.id, "role": principal.role.value},
            )

    @staticmethod
    def _authorize_partner(order: Order, principal: Principal) -> None:
        if principal.role != Role.DELIVERY_PARTNER or principal.subject_id != order.delivery_partner_id:
            raise AuthorizationError(
                f"Only the assigned delivery partner can update order {order.id}",
                details={"order_id": order.id, "role": principal.role.value},
            )

    @staticmethod
    def _authorize_customer(order: Order, principal: Principal) -> None:
        if principal.role != Role.CUSTOMER or principal.subject_id != order.customer_id:
            raise AuthorizationError(
                f"Only the customer who placed order {order.id} can do this",
                details={"order_id": order.id, "role": principal.role.value},
            )
