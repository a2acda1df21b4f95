"""Tests for payment confirmation and top-ups."""

from decimal import Decimal

import pytest

from dailycart.application.payment_service import PaymentConfirmation
from dailycart.domain.exceptions import AuthorizationError, ValidationError


class TestConfirmPayment:
    """Tests for gateway confirmations."""

    @pytest.mark.asyncio
    async def test_confirmation_credits_wallet(self, harness) -> None:
        result = await harness.payment_service.confirm_payment(
            PaymentConfirmation(branch_id="branch-1", amount=Decimal("500"), external_payment_id="pay_001")
        )

        assert result.applied
        assert result.balance == Decimal("500")
        (payment,) = await harness.ledger.payments("branch-1")
        assert payment.external_payment_id == "pay_001"

    @pytest.mark.asyncio
    async def test_duplicate_applied_once(self, harness) -> None:
        """Redelivered confirmations do not credit twice."""
        confirmation = PaymentConfirmation(branch_id="branch-1", amount=Decimal("500"), external_payment_id="pay_001")

        await harness.payment_service.confirm_payment(confirmation)
        duplicate = await harness.payment_service.confirm_payment(confirmation)

        assert not duplicate.applied
        assert duplicate.balance == Decimal("500")
        assert len(await harness.ledger.transactions("branch-1")) == 1

    @pytest.mark.asyncio
    async def test_failed_apply_can_be_retried(self, harness) -> None:
        """A confirmation that failed to apply is not remembered."""
        with pytest.raises(ValidationError):
            await harness.payment_service.confirm_payment(
                PaymentConfirmation(branch_id="branch-1", amount=Decimal("0"), external_payment_id="pay_002")
            )

        result = await harness.payment_service.confirm_payment(
            PaymentConfirmation(branch_id="branch-1", amount=Decimal("40"), external_payment_id="pay_002")
        )
        assert result.applied

    @pytest.mark.asyncio
    async def test_missing_external_id(self, harness) -> None:
        with pytest.raises(ValidationError):
            await harness.payment_service.confirm_payment(
                PaymentConfirmation(branch_id="branch-1", amount=Decimal("40"), external_payment_id="")
            )


class TestTopUp:
    """Tests for manual top-ups by the branch."""

    @pytest.mark.asyncio
    async def test_branch_tops_up_own_wallet(self, harness, branch_owner) -> None:
        result = await harness.payment_service.top_up("branch-1", Decimal("30"), branch_owner)

        assert result.applied
        assert result.balance == Decimal("30")
        (payment,) = await harness.ledger.payments("branch-1")
        assert result.external_payment_id == payment.id

    @pytest.mark.asyncio
    async def test_minimum_amount(self, harness, branch_owner) -> None:
        with pytest.raises(ValidationError, match="Minimum payment amount is 30.00"):
            await harness.payment_service.top_up("branch-1", Decimal("29.99"), branch_owner)

    @pytest.mark.asyncio
    async def test_other_branch_rejected(self, harness, other_branch) -> None:
        with pytest.raises(AuthorizationError):
            await harness.payment_service.top_up("branch-1", Decimal("100"), other_branch)

    @pytest.mark.asyncio
    async def test_admin_may_top_up(self, harness, admin) -> None:
        result = await harness.payment_service.top_up("branch-1", Decimal("100"), admin)

        assert result.balance == Decimal("100")
