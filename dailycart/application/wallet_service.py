"""Wallet ledger application service.

Each branch has one wallet. Delivered orders debit it with the platform
charge; confirmed payments credit it. Every mutation is a single atomic
increment-and-append on the wallet store, followed by a best-effort
``walletUpdated`` broadcast. An order is charged at most once.

Store errors surface as ``DependencyFailure`` so callers can tell an
unavailable ledger from a rejected command.
"""

from collections.abc import Awaitable
from dataclasses import dataclass
from decimal import Decimal
from typing import TypeVar

import structlog

from dailycart.application.notifications import EventNotifier
from dailycart.domain.charges import platform_charge
from dailycart.domain.entities import TransactionType, Wallet, WalletStatistics, WalletTransaction
from dailycart.domain.events import WalletUpdated
from dailycart.domain.exceptions import DependencyFailure, DomainError, ValidationError
from dailycart.domain.value_objects import quantize_amount
from dailycart.infrastructure.repositories import InMemoryWalletStore

logger = structlog.get_logger()

T = TypeVar("T")


@dataclass(frozen=True)
class ChargeResult:
    """Balance after a platform charge and the charge itself.

    ``applied`` is False when the order had already been charged and
    ``transaction`` is the earlier charge.
    """

    balance: Decimal
    charge: Decimal
    transaction: WalletTransaction
    applied: bool = True


@dataclass(frozen=True)
class PaymentResult:
    """Balance after a payment."""

    balance: Decimal
    transaction: WalletTransaction


class WalletLedger:
    """Per-branch ledger of platform charges and payments."""

    def __init__(self, store: InMemoryWalletStore, notifier: EventNotifier) -> None:
        self._store = store
        self._notifier = notifier

    async def get_or_create(self, branch_id: str) -> Wallet:
        return await self._call(self._store.get_or_create(branch_id))

    async def balance(self, branch_id: str) -> Decimal:
        wallet = await self._call(self._store.get_or_create(branch_id))
        return wallet.balance

    async def apply_charge(self, branch_id: str, order_id: str, total_price: Decimal) -> ChargeResult:
        """Debit the platform charge for a delivered order.

        A second call for the same order leaves the wallet alone and
        returns the charge already on record.

        Args:
            branch_id: Branch whose wallet is charged.
            order_id: Order the charge refers to.
            total_price: Order total the tier is picked from.

        Returns:
            ChargeResult with the new balance and the charged amount.

        Raises:
            DependencyFailure: If the wallet store is unavailable.
        """
        charge = platform_charge(total_price)
        wallet, transaction, applied = await self._call(
            self._store.append_order_charge(branch_id, WalletTransaction.charge(charge, order_id=order_id))
        )
        if not applied:
            logger.info("Order already charged", branch_id=branch_id, order_id=order_id)
            return ChargeResult(
                balance=wallet.balance, charge=-transaction.amount, transaction=transaction, applied=False
            )

        logger.info(
            "Platform charge applied",
            branch_id=branch_id,
            order_id=order_id,
            order_total=str(total_price),
            charge=str(charge),
            balance=str(wallet.balance),
        )
        await self._announce(wallet, transaction)
        return ChargeResult(balance=wallet.balance, charge=charge, transaction=transaction)

    async def apply_payment(
        self,
        branch_id: str,
        amount: Decimal,
        external_payment_id: str | None = None,
    ) -> PaymentResult:
        """Credit a confirmed payment.

        Raises:
            ValidationError: If the amount is not positive.
            DependencyFailure: If the wallet store is unavailable.
        """
        value = quantize_amount(amount)
        if value <= 0:
            raise ValidationError("Payment amount must be positive", field="amount", amount=str(value))

        transaction = WalletTransaction.payment(value, external_payment_id=external_payment_id)
        wallet = await self._call(self._store.append(branch_id, transaction))

        logger.info(
            "Payment applied",
            branch_id=branch_id,
            amount=str(value),
            external_payment_id=external_payment_id,
            balance=str(wallet.balance),
        )
        await self._announce(wallet, transaction)
        return PaymentResult(balance=wallet.balance, transaction=transaction)

    async def transactions(self, branch_id: str) -> list[WalletTransaction]:
        """All transactions, newest first."""
        wallet = await self._call(self._store.get_or_create(branch_id))
        return list(reversed(wallet.transactions))

    async def payments(self, branch_id: str) -> list[WalletTransaction]:
        """Payment transactions, newest first."""
        return [t for t in await self.transactions(branch_id) if t.type == TransactionType.PAYMENT]

    async def statistics(self, branch_id: str) -> WalletStatistics:
        wallet = await self._call(self._store.get_or_create(branch_id))
        return wallet.statistics()

    async def _call(self, operation: Awaitable[T]) -> T:
        try:
            return await operation
        except DomainError:
            raise
        except Exception as exc:
            logger.error("Wallet store call failed", error=str(exc))
            raise DependencyFailure("wallet store", str(exc)) from exc

    async def _announce(self, wallet: Wallet, transaction: WalletTransaction) -> None:
        event = WalletUpdated(
            aggregate_id=wallet.branch_id,
            aggregate_type="Wallet",
            branch_id=wallet.branch_id,
            transaction_type=transaction.type.value,
            amount=str(transaction.amount),
            new_balance=str(wallet.balance),
            order_id=transaction.order_id,
        )
        await self._notifier.publish([event])
