"""Payment confirmation consumer.

Confirmed payments arrive from the payment gateway, possibly more than
once. Each external payment id is applied to the wallet at most once.
"""

from dataclasses import dataclass
from decimal import Decimal

import structlog

from dailycart.application.wallet_service import WalletLedger
from dailycart.domain.exceptions import AuthorizationError, ValidationError
from dailycart.domain.value_objects import Principal, Role, quantize_amount
from dailycart.infrastructure.config import settings
from dailycart.infrastructure.repositories import InMemoryPaymentLog

logger = structlog.get_logger()


@dataclass(frozen=True)
class PaymentConfirmation:
    """A confirmed payment as reported by the gateway."""

    branch_id: str
    amount: Decimal
    external_payment_id: str


@dataclass(frozen=True)
class ConfirmationResult:
    """Outcome of consuming a confirmation."""

    applied: bool
    balance: Decimal
    external_payment_id: str


class PaymentService:
    """Applies confirmed payments and manual top-ups to branch wallets."""

    def __init__(
        self,
        ledger: WalletLedger,
        payment_log: InMemoryPaymentLog,
        min_payment_amount: Decimal | None = None,
    ) -> None:
        self._ledger = ledger
        self._payment_log = payment_log
        self.min_payment_amount = quantize_amount(
            min_payment_amount if min_payment_amount is not None else settings.min_payment_amount
        )

    async def confirm_payment(self, confirmation: PaymentConfirmation) -> ConfirmationResult:
        """Apply a confirmed payment unless it was applied before.

        Returns:
            ConfirmationResult; ``applied`` is False for a duplicate.
        """
        if not confirmation.external_payment_id:
            raise ValidationError("external_payment_id is required", field="external_payment_id")

        if not await self._payment_log.claim(confirmation.external_payment_id):
            logger.info(
                "Duplicate payment confirmation ignored",
                branch_id=confirmation.branch_id,
                external_payment_id=confirmation.external_payment_id,
            )
            balance = await self._ledger.balance(confirmation.branch_id)
            return ConfirmationResult(
                applied=False, balance=balance, external_payment_id=confirmation.external_payment_id
            )

        try:
            result = await self._ledger.apply_payment(
                confirmation.branch_id,
                confirmation.amount,
                external_payment_id=confirmation.external_payment_id,
            )
        except Exception:
            await self._payment_log.release(confirmation.external_payment_id)
            raise

        return ConfirmationResult(
            applied=True, balance=result.balance, external_payment_id=confirmation.external_payment_id
        )

    async def top_up(self, branch_id: str, amount: Decimal, principal: Principal) -> ConfirmationResult:
        """Record a payment made by the branch itself.

        Raises:
            AuthorizationError: Principal does not own the wallet.
            ValidationError: Amount below the minimum top-up.
        """
        if not principal.is_admin and (principal.role != Role.BRANCH or principal.subject_id != branch_id):
            raise AuthorizationError(
                f"{principal} may not pay into wallet {branch_id}",
                details={"branch_id": branch_id},
            )
        value = quantize_amount(amount)
        if value < self.min_payment_amount:
            raise ValidationError(
                f"Minimum payment amount is {self.min_payment_amount}",
                field="amount",
                amount=str(value),
            )
        result = await self._ledger.apply_payment(branch_id, value)
        return ConfirmationResult(
            applied=True, balance=result.balance, external_payment_id=result.transaction.id
        )
