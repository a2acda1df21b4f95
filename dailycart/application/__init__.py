"""Application layer module.

Contains application services (use cases) that orchestrate
domain logic and infrastructure.
"""

from dailycart.application.branch_service import BranchOperationalGate, OperationalStatus, SweepReport
from dailycart.application.container import ServiceContainer, get_container, reset_container
from dailycart.application.delivery_service import DeliveryAssignmentSelector
from dailycart.application.notifications import EventNotifier
from dailycart.application.order_service import ModifyOrderResult, OrderService, TransitionResult
from dailycart.application.payment_service import PaymentConfirmation, PaymentService
from dailycart.application.scheduler import BranchAutoCloseScheduler, next_run_after
from dailycart.application.wallet_service import ChargeResult, PaymentResult, WalletLedger

__all__ = [
    "BranchAutoCloseScheduler",
    "BranchOperationalGate",
    "ChargeResult",
    "DeliveryAssignmentSelector",
    "EventNotifier",
    "ModifyOrderResult",
    "OperationalStatus",
    "OrderService",
    "PaymentConfirmation",
    "PaymentResult",
    "PaymentService",
    "ServiceContainer",
    "SweepReport",
    "TransitionResult",
    "WalletLedger",
    "get_container",
    "next_run_after",
    "reset_container",
]
