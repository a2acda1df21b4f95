"""Tests for the wallet ledger."""

import asyncio
from decimal import Decimal

import pytest

from dailycart.domain.entities import TransactionType
from dailycart.domain.exceptions import DependencyFailure, ValidationError


class TestWalletLedger:
    """Tests for charges, payments and reads."""

    @pytest.mark.asyncio
    async def test_wallet_created_lazily(self, harness) -> None:
        """Reading the balance creates an empty wallet."""
        assert await harness.ledger.balance("branch-new") == Decimal("0")

        wallet = await harness.ledger.get_or_create("branch-new")
        assert wallet.transactions == []

    @pytest.mark.asyncio
    async def test_charge_debits_tier(self, harness) -> None:
        result = await harness.ledger.apply_charge("branch-1", "order-1", Decimal("1001"))

        assert result.charge == Decimal("4")
        assert result.balance == Decimal("-4")
        assert result.transaction.order_id == "order-1"
        assert result.transaction.type == TransactionType.PLATFORM_CHARGE

    @pytest.mark.asyncio
    async def test_balance_is_sum_of_transactions(self, harness) -> None:
        """Any mix of charges and payments keeps the cache in line with the ledger."""
        for total in ("410", "2500", "999", "3200"):
            await harness.ledger.apply_charge("branch-1", f"order-{total}", Decimal(total))
        await harness.ledger.apply_payment("branch-1", Decimal("75.50"), external_payment_id="pay-1")

        wallet = await harness.ledger.get_or_create("branch-1")

        assert wallet.balance == Decimal("57.50")
        assert wallet.balance == wallet.replayed_balance()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("amount", ["0", "-5"])
    async def test_payment_must_be_positive(self, harness, amount: str) -> None:
        with pytest.raises(ValidationError):
            await harness.ledger.apply_payment("branch-1", Decimal(amount))

        assert await harness.ledger.transactions("branch-1") == []

    @pytest.mark.asyncio
    async def test_transactions_newest_first(self, harness) -> None:
        await harness.ledger.apply_charge("branch-1", "order-1", Decimal("100"))
        await harness.ledger.apply_payment("branch-1", Decimal("50"))

        transactions = await harness.ledger.transactions("branch-1")
        payments = await harness.ledger.payments("branch-1")

        assert [t.type for t in transactions] == [TransactionType.PAYMENT, TransactionType.PLATFORM_CHARGE]
        assert [t.amount for t in payments] == [Decimal("50")]

    @pytest.mark.asyncio
    async def test_statistics(self, harness) -> None:
        await harness.ledger.apply_charge("branch-1", "order-1", Decimal("2000"))
        await harness.ledger.apply_payment("branch-1", Decimal("100"))

        stats = await harness.ledger.statistics("branch-1")

        assert stats.to_dict() == {"total_charges": "6.00", "total_payments": "100.00", "net": "94.00"}

    @pytest.mark.asyncio
    async def test_updates_broadcast_to_wallet_room(self, harness, fanout) -> None:
        await harness.ledger.apply_charge("branch-1", "order-1", Decimal("410"))

        room, event, payload = fanout.messages[-1]
        assert (room, event) == ("wallet:branch-1", "walletUpdated")
        assert payload["payload"]["new_balance"] == "-2.00"
        assert payload["payload"]["order_id"] == "order-1"

    @pytest.mark.asyncio
    async def test_order_charged_once(self, harness) -> None:
        first = await harness.ledger.apply_charge("branch-1", "order-1", Decimal("410"))
        second = await harness.ledger.apply_charge("branch-1", "order-1", Decimal("410"))

        assert first.applied
        assert not second.applied
        assert second.transaction.id == first.transaction.id
        assert await harness.ledger.balance("branch-1") == Decimal("-2")


class TestWalletConcurrency:
    """Tests for racing charges and payments on one wallet."""

    @pytest.mark.asyncio
    async def test_racing_writes_keep_balance_consistent(self, harness) -> None:
        """Interleaved charges and payments neither lose nor double an update."""
        charges = [harness.ledger.apply_charge("branch-1", f"order-{n}", Decimal("2500")) for n in range(20)]
        payments = [
            harness.ledger.apply_payment("branch-1", Decimal("10"), external_payment_id=f"pay-{n}") for n in range(15)
        ]
        duplicates = [harness.ledger.apply_charge("branch-1", "order-0", Decimal("2500")) for _ in range(5)]

        await asyncio.gather(*charges, *payments, *duplicates)

        wallet = await harness.ledger.get_or_create("branch-1")
        assert len(wallet.transactions) == 35
        assert wallet.balance == wallet.replayed_balance()
        assert wallet.balance == Decimal("30.00")  # 15 x 10 - 20 x 6


class TestWalletStoreFailure:
    """Tests for an unavailable wallet store."""

    @pytest.mark.asyncio
    async def test_store_errors_become_dependency_failures(self, harness, fanout, monkeypatch) -> None:
        async def broken_store(*args, **kwargs):
            raise ConnectionError("connection refused")

        monkeypatch.setattr(harness.wallets, "append_order_charge", broken_store)
        monkeypatch.setattr(harness.wallets, "append", broken_store)

        with pytest.raises(DependencyFailure) as charge_error:
            await harness.ledger.apply_charge("branch-1", "order-1", Decimal("410"))
        with pytest.raises(DependencyFailure):
            await harness.ledger.apply_payment("branch-1", Decimal("50"))

        assert charge_error.value.error_code == "DEPENDENCY_FAILURE"
        assert charge_error.value.details == {"dependency": "wallet store"}
        assert isinstance(charge_error.value.__cause__, ConnectionError)
        assert fanout.messages == []

    @pytest.mark.asyncio
    async def test_validation_errors_pass_through(self, harness, monkeypatch) -> None:
        async def rejecting_store(*args, **kwargs):
            raise ValidationError("bad transaction")

        monkeypatch.setattr(harness.wallets, "append", rejecting_store)

        with pytest.raises(ValidationError):
            await harness.ledger.apply_payment("branch-1", Decimal("50"))
