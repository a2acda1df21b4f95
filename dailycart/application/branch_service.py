"""Branch operational gate.

A branch may take orders only while it is approved and its wallet balance
stays above the minimum. Opening is refused otherwise, and a daily sweep
force-closes open branches that have fallen to or below the minimum.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

import structlog

from dailycart.application.notifications import EventNotifier
from dailycart.application.wallet_service import WalletLedger
from dailycart.domain.entities import Branch
from dailycart.domain.exceptions import AuthorizationError, BusinessRuleViolation, NotFoundError
from dailycart.domain.state_machines import ApprovalStatus, StoreStatus
from dailycart.domain.value_objects import Principal, Role, quantize_amount
from dailycart.infrastructure.config import settings
from dailycart.infrastructure.repositories import InMemoryBranchDirectory

logger = structlog.get_logger()

MINIMUM_BALANCE = Decimal("-100")


@dataclass(frozen=True)
class OperationalStatus:
    """Whether a branch may be open right now, and why not if it may not."""

    can_operate: bool
    reason: str | None
    balance: Decimal

    def to_dict(self) -> dict[str, Any]:
        return {"can_operate": self.can_operate, "reason": self.reason, "balance": str(self.balance)}


@dataclass
class SweepReport:
    """Outcome of one auto-close sweep."""

    checked: int = 0
    closed: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)


class BranchOperationalGate:
    """Opens, closes and sweeps branch stores."""

    def __init__(
        self,
        branches: InMemoryBranchDirectory,
        ledger: WalletLedger,
        notifier: EventNotifier,
        minimum_balance: Decimal | None = None,
    ) -> None:
        self._branches = branches
        self._ledger = ledger
        self._notifier = notifier
        self.minimum_balance = quantize_amount(
            minimum_balance if minimum_balance is not None else settings.minimum_balance
        )

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    async def operational_status(self, branch_id: str) -> OperationalStatus:
        """Evaluate approval and solvency.

        Raises:
            NotFoundError: If the branch does not exist.
        """
        branch = await self._get_branch(branch_id)
        return await self._evaluate(branch)

    # -------------------------------------------------------------------------
    # Commands
    # -------------------------------------------------------------------------

    async def attempt_open(self, branch_id: str, principal: Principal) -> Branch:
        """Open the store if the branch is allowed to operate.

        Raises:
            AuthorizationError: Principal does not own the branch.
            BusinessRuleViolation: Branch not approved or wallet too low.
        """
        self._authorize(branch_id, principal)
        branch = await self._get_branch(branch_id)
        status = await self._evaluate(branch)
        if not status.can_operate:
            logger.info("Store open refused", branch_id=branch_id, reason=status.reason, balance=str(status.balance))
            raise BusinessRuleViolation(
                status.reason or "Branch cannot operate",
                details={"branch_id": branch_id, "balance": str(status.balance)},
            )
        if branch.is_open:
            return branch

        branch.open_store(reason="Opened by branch")
        await self._persist(branch)
        logger.info("Store opened", branch_id=branch_id, balance=str(status.balance))
        return branch

    async def close(self, branch_id: str, principal: Principal, reason: str | None = None) -> Branch:
        """Close the store manually. The sweep leaves it alone afterwards."""
        self._authorize(branch_id, principal)
        branch = await self._get_branch(branch_id)
        if not branch.is_open:
            return branch

        branch.close_store(reason=reason or "Closed by branch", automatic=False)
        await self._persist(branch)
        logger.info("Store closed manually", branch_id=branch_id)
        return branch

    async def sweep(self) -> SweepReport:
        """Close every open, not manually closed branch at or below the minimum.

        A failure on one branch is logged and the sweep moves on.
        """
        report = SweepReport()
        for candidate in await self._branches.list_open():
            if candidate.is_manually_closed:
                continue
            report.checked += 1
            try:
                if await self._auto_close(candidate.id):
                    report.closed.append(candidate.id)
            except Exception:
                logger.exception("Auto-close failed for branch", branch_id=candidate.id)
                report.failed.append(candidate.id)

        logger.info(
            "Auto-close sweep finished",
            checked=report.checked,
            closed=len(report.closed),
            failed=len(report.failed),
        )
        return report

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    async def _auto_close(self, branch_id: str) -> bool:
        # Re-read so a branch closed since the listing is not closed twice
        branch = await self._branches.find_by_id(branch_id)
        if branch is None or branch.store_status != StoreStatus.OPEN or branch.is_manually_closed:
            return False

        balance = await self._ledger.balance(branch_id)
        if balance > self.minimum_balance:
            return False

        branch.close_store(
            reason=f"Automatically closed: wallet balance {balance} is at or below {self.minimum_balance}",
            automatic=True,
            balance=balance,
        )
        await self._persist(branch)
        logger.warning("Store auto-closed", branch_id=branch_id, balance=str(balance))
        return True

    async def _evaluate(self, branch: Branch) -> OperationalStatus:
        balance = await self._ledger.balance(branch.id)
        if branch.approval_status != ApprovalStatus.APPROVED:
            return OperationalStatus(
                can_operate=False,
                reason=f"Branch is {branch.approval_status.value}, not approved",
                balance=balance,
            )
        if balance <= self.minimum_balance:
            return OperationalStatus(
                can_operate=False,
                reason=(
                    f"Wallet balance {balance} is at or below the minimum of "
                    f"{self.minimum_balance}. Please recharge your wallet"
                ),
                balance=balance,
            )
        return OperationalStatus(can_operate=True, reason=None, balance=balance)

    async def _get_branch(self, branch_id: str) -> Branch:
        branch = await self._branches.find_by_id(branch_id)
        if branch is None:
            raise NotFoundError("Branch", branch_id)
        return branch

    async def _persist(self, branch: Branch) -> None:
        events = branch.collect_events()
        await self._branches.save(branch)
        await self._notifier.publish(events)

    @staticmethod
    def _authorize(branch_id: str, principal: Principal) -> None:
        if principal.is_admin:
            return
        if principal.role != Role.BRANCH or principal.subject_id != branch_id:
            raise AuthorizationError(
                f"{principal} may not manage branch {branch_id}",
                details={"branch_id": branch_id, "role": principal.role.value},
            )
