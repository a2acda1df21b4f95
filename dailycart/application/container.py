"""Service wiring.

Builds the stores and services once per process so that request handlers
and the auto-close scheduler share the same state.
"""

from dataclasses import dataclass

from dailycart.application.branch_service import BranchOperationalGate
from dailycart.application.delivery_service import DeliveryAssignmentSelector
from dailycart.application.notifications import EventNotifier
from dailycart.application.order_service import OrderService
from dailycart.application.payment_service import PaymentService
from dailycart.application.scheduler import BranchAutoCloseScheduler
from dailycart.application.wallet_service import WalletLedger
from dailycart.catalog.seed import SeedData, load_configured_seed
from dailycart.infrastructure.auth import JwtAuthenticator
from dailycart.infrastructure.config import settings
from dailycart.infrastructure.fanout import InMemoryEventFanout
from dailycart.infrastructure.repositories import (
    InMemoryBranchDirectory,
    InMemoryOrderRepository,
    InMemoryPartnerDirectory,
    InMemoryPaymentLog,
    InMemoryProductCatalog,
    InMemoryWalletStore,
)


@dataclass
class ServiceContainer:
    """Every store and service of one running application."""

    orders: InMemoryOrderRepository
    products: InMemoryProductCatalog
    branches: InMemoryBranchDirectory
    partners: InMemoryPartnerDirectory
    wallets: InMemoryWalletStore
    payment_log: InMemoryPaymentLog
    fanout: InMemoryEventFanout
    notifier: EventNotifier
    authenticator: JwtAuthenticator
    ledger: WalletLedger
    selector: DeliveryAssignmentSelector
    gate: BranchOperationalGate
    order_service: OrderService
    payment_service: PaymentService
    scheduler: BranchAutoCloseScheduler

    @classmethod
    def build(cls, seed: SeedData | None = None) -> "ServiceContainer":
        """Wire every store and service, preloading the directories from ``seed``."""
        seed = seed or SeedData()
        orders = InMemoryOrderRepository()
        products = InMemoryProductCatalog(seed.products)
        branches = InMemoryBranchDirectory(seed.branches)
        partners = InMemoryPartnerDirectory(seed.partners)
        wallets = InMemoryWalletStore()
        payment_log = InMemoryPaymentLog()
        fanout = InMemoryEventFanout()

        notifier = EventNotifier(fanout, partners)
        ledger = WalletLedger(wallets, notifier)
        selector = DeliveryAssignmentSelector(branches, partners)
        gate = BranchOperationalGate(branches, ledger, notifier)

        return cls(
            orders=orders,
            products=products,
            branches=branches,
            partners=partners,
            wallets=wallets,
            payment_log=payment_log,
            fanout=fanout,
            notifier=notifier,
            authenticator=JwtAuthenticator(),
            ledger=ledger,
            selector=selector,
            gate=gate,
            order_service=OrderService(
                orders=orders,
                products=products,
                branches=branches,
                partners=partners,
                selector=selector,
                ledger=ledger,
                notifier=notifier,
            ),
            payment_service=PaymentService(ledger, payment_log),
            scheduler=BranchAutoCloseScheduler(gate),
        )


# Global container instance
_container: ServiceContainer | None = None


def get_container() -> ServiceContainer:
    """Get service container singleton."""
    global _container
    if _container is None:
        _container = ServiceContainer.build(load_configured_seed(settings.seed_file, settings.seed_demo_data))
    return _container


def reset_container(seed: SeedData | None = None) -> ServiceContainer:
    """Replace the container with a fresh one (for testing)."""
    global _container
    _container = ServiceContainer.build(seed)
    return _container
