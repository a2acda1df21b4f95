"""Delivery assignment selector.

Decides whether a branch can deliver right now and which partner is next
in line. Read-only; partner bookkeeping lives in the partner directory.
"""

import structlog

from dailycart.domain.entities import Branch, DeliveryPartner
from dailycart.domain.exceptions import NotFoundError
from dailycart.infrastructure.repositories import InMemoryBranchDirectory, InMemoryPartnerDirectory

logger = structlog.get_logger()


class DeliveryAssignmentSelector:
    """Live view of delivery capability per branch."""

    def __init__(self, branches: InMemoryBranchDirectory, partners: InMemoryPartnerDirectory) -> None:
        self._branches = branches
        self._partners = partners

    async def is_delivery_available(self, branch_id: str, branch: Branch | None = None) -> bool:
        """Branch offers delivery and at least one partner can take an order.

        Raises:
            NotFoundError: If the branch does not exist.
        """
        if branch is None:
            branch = await self._branches.find_by_id(branch_id)
            if branch is None:
                raise NotFoundError("Branch", branch_id)
        if not branch.delivery_service_available:
            return False
        available = await self.find_eligible_partner(branch_id) is not None
        if not available:
            logger.debug("No delivery partner available", branch_id=branch_id)
        return available

    async def find_eligible_partner(self, branch_id: str) -> DeliveryPartner | None:
        """First approved, available partner of the branch, if any."""
        available = await self._partners.find_available(branch_id, limit=1)
        return available[0] if available else None
