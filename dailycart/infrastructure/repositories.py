"""In-memory stores.

Each store keeps its records behind an ``asyncio.Lock`` and hands out deep
copies, so a caller only changes stored state by writing back through the
store. That gives the same atomicity contract a transactional document
store would: single-record compare-and-swap for orders, and atomic
increment-and-append for wallets.
"""

import asyncio
import copy
from collections.abc import Iterable

import structlog

from dailycart.domain.entities import (
    Branch,
    DeliveryPartner,
    Order,
    Product,
    TransactionType,
    Wallet,
    WalletTransaction,
)
from dailycart.domain.exceptions import ConcurrentModificationError, NotFoundError, StateConflictError
from dailycart.domain.state_machines import OrderStatus, StoreStatus

logger = structlog.get_logger()


# ============================================================================
# Orders
# ============================================================================


class InMemoryOrderRepository:
    """Order store with an atomic sequence counter and versioned writes."""

    def __init__(self) -> None:
        self._orders: dict[str, Order] = {}
        self._counter = 0
        self._lock = asyncio.Lock()

    async def next_sequence_number(self) -> int:
        """Atomically increment and return the order counter."""
        async with self._lock:
            self._counter += 1
            return self._counter

    async def add(self, order: Order) -> None:
        async with self._lock:
            if order.id in self._orders:
                raise ConcurrentModificationError("Order", order.id)
            self._orders[order.id] = copy.deepcopy(order)

    async def get(self, order_id: str) -> Order | None:
        async with self._lock:
            stored = self._orders.get(order_id)
            return copy.deepcopy(stored) if stored is not None else None

    async def save(self, order: Order, expected_version: int) -> None:
        """Write the order if nobody else wrote it since it was read.

        Args:
            order: Mutated order.
            expected_version: Version the order had when it was loaded.

        Raises:
            ConcurrentModificationError: If the stored version moved on.
        """
        async with self._lock:
            stored = self._orders.get(order.id)
            if stored is None or stored.version != expected_version:
                logger.info(
                    "Order write lost a race",
                    order_id=order.id,
                    expected_version=expected_version,
                    stored_version=stored.version if stored else None,
                )
                raise ConcurrentModificationError("Order", order.id)
            self._orders[order.id] = copy.deepcopy(order)

    async def list(
        self,
        statuses: Iterable[OrderStatus] | None = None,
        branch_id: str | None = None,
        customer_id: str | None = None,
        partner_id: str | None = None,
    ) -> list[Order]:
        """List orders newest first, filtered by any given field."""
        wanted = set(statuses) if statuses else None
        async with self._lock:
            matches = [
                order
                for order in self._orders.values()
                if (wanted is None or order.status in wanted)
                and (branch_id is None or order.branch_id == branch_id)
                and (customer_id is None or order.customer_id == customer_id)
                and (partner_id is None or order.delivery_partner_id == partner_id)
            ]
            matches.sort(key=lambda o: o.sequence_number, reverse=True)
            return copy.deepcopy(matches)


# ============================================================================
# Wallets
# ============================================================================


class InMemoryWalletStore:
    """Wallets keyed by branch id, created on first access."""

    def __init__(self) -> None:
        self._wallets: dict[str, Wallet] = {}
        self._lock = asyncio.Lock()

    async def get_or_create(self, branch_id: str) -> Wallet:
        """Atomic upsert; returns a snapshot."""
        async with self._lock:
            return copy.deepcopy(self._upsert(branch_id))

    async def append(self, branch_id: str, transaction: WalletTransaction) -> Wallet:
        """Increment the balance and append the transaction in one step.

        Returns:
            Snapshot of the wallet after the write.
        """
        async with self._lock:
            wallet = self._upsert(branch_id)
            wallet.record(transaction)
            return copy.deepcopy(wallet)

    async def append_order_charge(
        self, branch_id: str, transaction: WalletTransaction
    ) -> tuple[Wallet, WalletTransaction, bool]:
        """Append a platform charge unless the order was already charged.

        Returns:
            Wallet snapshot, the charge on record for the order, and whether
            this call applied it.
        """
        async with self._lock:
            wallet = self._upsert(branch_id)
            for existing in wallet.transactions:
                if existing.type == TransactionType.PLATFORM_CHARGE and existing.order_id == transaction.order_id:
                    return copy.deepcopy(wallet), existing, False
            wallet.record(transaction)
            return copy.deepcopy(wallet), transaction, True

    def _upsert(self, branch_id: str) -> Wallet:
        wallet = self._wallets.get(branch_id)
        if wallet is None:
            wallet = Wallet(branch_id=branch_id)
            self._wallets[branch_id] = wallet
            logger.info("Wallet created", branch_id=branch_id)
        return wallet


class InMemoryPaymentLog:
    """External payment ids that have already been applied."""

    def __init__(self) -> None:
        self._processed: set[str] = set()
        self._lock = asyncio.Lock()

    async def claim(self, external_payment_id: str) -> bool:
        """Mark a payment as processed. False if it already was."""
        async with self._lock:
            if external_payment_id in self._processed:
                return False
            self._processed.add(external_payment_id)
            return True

    async def release(self, external_payment_id: str) -> None:
        """Forget a claim whose payment could not be applied."""
        async with self._lock:
            self._processed.discard(external_payment_id)


# ============================================================================
# Catalog and Directories
# ============================================================================


class InMemoryProductCatalog:
    """Products by id."""

    def __init__(self, products: Iterable[Product] = ()) -> None:
        self._products: dict[str, Product] = {p.id: copy.deepcopy(p) for p in products}
        self._lock = asyncio.Lock()

    async def add(self, product: Product) -> None:
        async with self._lock:
            self._products[product.id] = copy.deepcopy(product)

    async def find_by_id(self, product_id: str) -> Product | None:
        async with self._lock:
            product = self._products.get(product_id)
            return copy.deepcopy(product) if product is not None else None

    async def disable(self, product_ids: Iterable[str], branch_id: str, reason: str) -> list[str]:
        """Mark products of one branch unavailable.

        Returns:
            Ids that were actually disabled.
        """
        disabled: list[str] = []
        async with self._lock:
            for product_id in product_ids:
                product = self._products.get(product_id)
                if product is None or product.branch_id != branch_id:
                    continue
                product.available = False
                product.disabled_reason = reason
                disabled.append(product_id)
        return disabled


class InMemoryBranchDirectory:
    """Branches by id."""

    def __init__(self, branches: Iterable[Branch] = ()) -> None:
        self._branches: dict[str, Branch] = {b.id: copy.deepcopy(b) for b in branches}
        self._lock = asyncio.Lock()

    async def find_by_id(self, branch_id: str) -> Branch | None:
        async with self._lock:
            branch = self._branches.get(branch_id)
            return copy.deepcopy(branch) if branch is not None else None

    async def list_open(self) -> list[Branch]:
        """Branches whose store is open, whatever their approval status."""
        async with self._lock:
            return copy.deepcopy([b for b in self._branches.values() if b.store_status == StoreStatus.OPEN])

    async def save(self, branch: Branch) -> None:
        async with self._lock:
            self._branches[branch.id] = copy.deepcopy(branch)


class InMemoryPartnerDirectory:
    """Delivery partners by id."""

    def __init__(self, partners: Iterable[DeliveryPartner] = ()) -> None:
        self._partners: dict[str, DeliveryPartner] = {p.id: copy.deepcopy(p) for p in partners}
        self._lock = asyncio.Lock()

    async def save(self, partner: DeliveryPartner) -> None:
        async with self._lock:
            self._partners[partner.id] = copy.deepcopy(partner)

    async def find_by_id(self, partner_id: str) -> DeliveryPartner | None:
        async with self._lock:
            partner = self._partners.get(partner_id)
            return copy.deepcopy(partner) if partner is not None else None

    async def list_for_branch(self, branch_id: str) -> list[DeliveryPartner]:
        async with self._lock:
            return copy.deepcopy([p for p in self._partners.values() if p.branch_id == branch_id])

    async def find_available(self, branch_id: str, limit: int | None = None) -> list[DeliveryPartner]:
        """Approved, available partners of a branch in registration order."""
        async with self._lock:
            eligible = [p for p in self._partners.values() if p.branch_id == branch_id and p.is_eligible]
            if limit is not None:
                eligible = eligible[:limit]
            return copy.deepcopy(eligible)

    async def add_current_order(self, partner_id: str, order_id: str, max_orders: int) -> DeliveryPartner:
        """Attach an order; the partner goes unavailable at capacity.

        Eligibility is checked again under the lock, so two assignments
        racing for the last free slot cannot both win.

        Raises:
            NotFoundError: Unknown partner.
            StateConflictError: Partner is no longer eligible or is at capacity.
        """
        async with self._lock:
            partner = self._require(partner_id)
            if order_id in partner.current_orders:
                return copy.deepcopy(partner)
            if not partner.is_eligible or len(partner.current_orders) >= max_orders:
                raise StateConflictError(
                    f"Delivery partner {partner_id} is no longer available",
                    details={
                        "partner_id": partner_id,
                        "partner_status": partner.status.value,
                        "availability": partner.availability,
                        "current_orders": len(partner.current_orders),
                    },
                )
            partner.current_orders.add(order_id)
            if len(partner.current_orders) >= max_orders:
                partner.availability = False
            return copy.deepcopy(partner)

    async def remove_current_order(self, partner_id: str, order_id: str) -> DeliveryPartner:
        """Detach an order; the partner is available again once it has none."""
        async with self._lock:
            partner = self._require(partner_id)
            partner.current_orders.discard(order_id)
            if not partner.current_orders:
                partner.availability = True
            return copy.deepcopy(partner)

    def _require(self, partner_id: str) -> DeliveryPartner:
        partner = self._partners.get(partner_id)
        if partner is None:
            raise NotFoundError("DeliveryPartner", partner_id)
        return partner
