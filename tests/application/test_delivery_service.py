"""Tests for the delivery assignment selector."""

import pytest

from dailycart.domain.entities import DeliveryPartner
from dailycart.domain.exceptions import NotFoundError
from dailycart.domain.state_machines import ApprovalStatus


class TestDeliveryAssignmentSelector:
    """Tests for delivery availability."""

    @pytest.mark.asyncio
    async def test_available_with_approved_partner(self, harness) -> None:
        assert await harness.selector.is_delivery_available("branch-1")

    @pytest.mark.asyncio
    async def test_branch_without_delivery_service(self, harness) -> None:
        """branch-2 has an approved partner but no delivery service."""
        assert not await harness.selector.is_delivery_available("branch-2")

    @pytest.mark.asyncio
    async def test_pending_partners_do_not_count(self, harness) -> None:
        await harness.partners.save(
            DeliveryPartner(id="partner-1", branch_id="branch-1", status=ApprovalStatus.PENDING)
        )

        assert not await harness.selector.is_delivery_available("branch-1")

    @pytest.mark.asyncio
    async def test_unknown_branch(self, harness) -> None:
        with pytest.raises(NotFoundError):
            await harness.selector.is_delivery_available("nope")

    @pytest.mark.asyncio
    async def test_first_eligible_partner(self, harness) -> None:
        await harness.partners.save(
            DeliveryPartner(id="partner-3", branch_id="branch-1", status=ApprovalStatus.APPROVED)
        )

        partner = await harness.selector.find_eligible_partner("branch-1")

        assert partner.id == "partner-1"

    @pytest.mark.asyncio
    async def test_no_eligible_partner(self, harness) -> None:
        assert await harness.selector.find_eligible_partner("branch-closed") is None
