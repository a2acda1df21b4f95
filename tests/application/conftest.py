"""Shared fixtures for application service tests.

Services are wired by hand against in-memory stores and a fan-out that
records every message, so tests can assert on both state and broadcasts.
"""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

import pytest

from dailycart.application.branch_service import BranchOperationalGate
from dailycart.application.delivery_service import DeliveryAssignmentSelector
from dailycart.application.notifications import EventNotifier
from dailycart.application.order_service import OrderService
from dailycart.application.payment_service import PaymentService
from dailycart.application.wallet_service import WalletLedger
from dailycart.domain.entities import Branch, DeliveryPartner, Order, Product
from dailycart.domain.state_machines import ApprovalStatus, StoreStatus
from dailycart.domain.value_objects import ItemRequest, Location, Principal, Role
from dailycart.infrastructure.repositories import (
    InMemoryBranchDirectory,
    InMemoryOrderRepository,
    InMemoryPartnerDirectory,
    InMemoryPaymentLog,
    InMemoryProductCatalog,
    InMemoryWalletStore,
)


# ============================================================================
# Recording Fan-out
# ============================================================================


@dataclass
class RecordingFanout:
    """Fan-out that keeps every published message in order."""

    messages: list[tuple[str, str, dict[str, Any]]] = field(default_factory=list)

    async def publish(self, room: str, event: str, payload: dict[str, Any]) -> None:
        self.messages.append((room, event, payload))

    def events_for(self, room: str) -> list[str]:
        return [event for r, event, _ in self.messages if r == room]

    def rooms_for(self, event: str) -> list[str]:
        return [room for room, e, _ in self.messages if e == event]

    def clear(self) -> None:
        self.messages.clear()


class FailingFanout:
    """Fan-out whose transport is down."""

    async def publish(self, room: str, event: str, payload: dict[str, Any]) -> None:
        raise ConnectionError("fan-out transport unavailable")


# ============================================================================
# Harness
# ============================================================================


BRANCH_LOCATION = Location(latitude=12.93, longitude=77.62, address="Koramangala, Bengaluru")


def seed_branches() -> list[Branch]:
    return [
        Branch(
            id="branch-1",
            name="Koramangala",
            approval_status=ApprovalStatus.APPROVED,
            delivery_service_available=True,
            location=BRANCH_LOCATION,
        ),
        Branch(
            id="branch-2",
            name="Indiranagar",
            approval_status=ApprovalStatus.APPROVED,
            delivery_service_available=False,
        ),
        Branch(
            id="branch-closed",
            name="Jayanagar",
            approval_status=ApprovalStatus.APPROVED,
            store_status=StoreStatus.CLOSED,
        ),
        Branch(id="branch-pending", name="Whitefield"),
    ]


def seed_products() -> list[Product]:
    return [
        Product(id="item1", branch_id="branch-1", name="item1", price=Decimal("50")),
        Product(id="item2", branch_id="branch-1", name="item2", price=Decimal("100")),
        Product(id="rice", branch_id="branch-1", name="Rice", price=Decimal("40"), is_loose=True, unit="kg"),
        Product(id="ghee", branch_id="branch-1", name="Ghee", price=Decimal("600"), available=False),
        Product(id="bread-2", branch_id="branch-2", name="Bread", price=Decimal("45")),
    ]


def seed_partners() -> list[DeliveryPartner]:
    return [
        DeliveryPartner(id="partner-1", branch_id="branch-1", name="Arjun", status=ApprovalStatus.APPROVED),
        DeliveryPartner(id="partner-pending", branch_id="branch-1", name="Ravi"),
        DeliveryPartner(id="partner-b2", branch_id="branch-2", name="Meera", status=ApprovalStatus.APPROVED),
    ]


@dataclass
class Harness:
    """Every store and service, wired to a RecordingFanout."""

    fanout: RecordingFanout
    orders: InMemoryOrderRepository
    products: InMemoryProductCatalog
    branches: InMemoryBranchDirectory
    partners: InMemoryPartnerDirectory
    wallets: InMemoryWalletStore
    payment_log: InMemoryPaymentLog
    notifier: EventNotifier
    ledger: WalletLedger
    selector: DeliveryAssignmentSelector
    gate: BranchOperationalGate
    order_service: OrderService
    payment_service: PaymentService


def build_harness(fanout: Any = None, auto_accept: bool = True) -> Harness:
    fanout = fanout if fanout is not None else RecordingFanout()
    orders = InMemoryOrderRepository()
    products = InMemoryProductCatalog(seed_products())
    branches = InMemoryBranchDirectory(seed_branches())
    partners = InMemoryPartnerDirectory(seed_partners())
    wallets = InMemoryWalletStore()
    payment_log = InMemoryPaymentLog()
    notifier = EventNotifier(fanout, partners)
    ledger = WalletLedger(wallets, notifier)
    selector = DeliveryAssignmentSelector(branches, partners)
    return Harness(
        fanout=fanout,
        orders=orders,
        products=products,
        branches=branches,
        partners=partners,
        wallets=wallets,
        payment_log=payment_log,
        notifier=notifier,
        ledger=ledger,
        selector=selector,
        gate=BranchOperationalGate(branches, ledger, notifier, minimum_balance=Decimal("-100")),
        order_service=OrderService(
            orders=orders,
            products=products,
            branches=branches,
            partners=partners,
            selector=selector,
            ledger=ledger,
            notifier=notifier,
            auto_accept=auto_accept,
            partner_max_concurrent_orders=1,
        ),
        payment_service=PaymentService(ledger, payment_log, min_payment_amount=Decimal("30")),
    )


@pytest.fixture
def harness() -> Harness:
    return build_harness()


@pytest.fixture
def fanout(harness: Harness) -> RecordingFanout:
    return harness.fanout


@pytest.fixture
def legacy_harness() -> Harness:
    """Harness with auto-accept off, so orders wait for an explicit accept."""
    return build_harness(auto_accept=False)


@pytest.fixture
def failing_harness() -> Harness:
    """Harness whose fan-out raises on every publish."""
    return build_harness(fanout=FailingFanout())


# ============================================================================
# Principals
# ============================================================================


@pytest.fixture
def customer() -> Principal:
    return Principal(subject_id="cust-1", role=Role.CUSTOMER)


@pytest.fixture
def other_customer() -> Principal:
    return Principal(subject_id="cust-2", role=Role.CUSTOMER)


@pytest.fixture
def branch_owner() -> Principal:
    return Principal(subject_id="branch-1", role=Role.BRANCH)


@pytest.fixture
def other_branch() -> Principal:
    return Principal(subject_id="branch-2", role=Role.BRANCH)


@pytest.fixture
def partner() -> Principal:
    return Principal(subject_id="partner-1", role=Role.DELIVERY_PARTNER)


@pytest.fixture
def admin() -> Principal:
    return Principal(subject_id="ops", role=Role.ADMIN)


# ============================================================================
# Orders
# ============================================================================


SCENARIO_A_ITEMS = [
    ItemRequest(product_id="item1", count=3),
    ItemRequest(product_id="item2", count=2),
    ItemRequest(product_id="rice", count=1, quantity=Decimal("1.5")),
]


@pytest.fixture
def place_order(harness: Harness, customer: Principal) -> Callable[..., Awaitable[Order]]:
    """Async factory placing an order at branch-1 as the default customer."""

    async def _place(
        items: list[ItemRequest] | None = None,
        delivery_requested: bool = True,
        principal: Principal | None = None,
    ) -> Order:
        return await harness.order_service.create_order(
            principal or customer,
            "branch-1",
            list(items or SCENARIO_A_ITEMS),
            delivery_requested=delivery_requested,
        )

    return _place
