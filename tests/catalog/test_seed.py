"""Tests for directory seeding."""

import json
from decimal import Decimal
from pathlib import Path

import pydantic
import pytest

from dailycart.application.container import ServiceContainer
from dailycart.catalog.seed import DemoSeedConfig, SeedData, generate_demo_seed, load_configured_seed
from dailycart.domain.state_machines import ApprovalStatus


class TestDemoSeed:
    """Tests for the demo generator."""

    def test_deterministic(self) -> None:
        """The same seed yields the same data."""
        first = generate_demo_seed(DemoSeedConfig(seed=7))
        second = generate_demo_seed(DemoSeedConfig(seed=7))

        assert [(p.id, p.price) for p in first.products] == [(p.id, p.price) for p in second.products]
        assert [b.location for b in first.branches] == [b.location for b in second.branches]

    def test_shape(self) -> None:
        data = generate_demo_seed(DemoSeedConfig(branches=2, partners_per_branch=3))

        assert [b.id for b in data.branches] == ["branch-001", "branch-002"]
        assert len(data.partners) == 6
        assert all(b.approval_status == ApprovalStatus.APPROVED for b in data.branches)
        assert any(p.is_loose and p.unit == "kg" for p in data.products)
        assert {p.branch_id for p in data.products} == {"branch-001", "branch-002"}

    def test_small(self) -> None:
        data = generate_demo_seed(DemoSeedConfig.small())

        assert len(data.branches) == 1
        assert len(data.partners) == 1


class TestSeedFile:
    """Tests for loading seed files."""

    def test_round_trip_through_file(self, tmp_path: Path) -> None:
        """Exported demo data loads back unchanged."""
        data = generate_demo_seed(DemoSeedConfig.small())
        path = tmp_path / "seed.json"
        path.write_text(data.to_seed_file().model_dump_json(), encoding="utf-8")

        loaded = SeedData.from_file(path)

        assert [p.id for p in loaded.products] == [p.id for p in data.products]
        assert loaded.branches[0].location == data.branches[0].location

    def test_defaults(self, tmp_path: Path) -> None:
        path = tmp_path / "seed.json"
        path.write_text(
            json.dumps(
                {
                    "branches": [{"id": "b-1", "name": "Main"}],
                    "products": [
                        {
                            "id": "rice",
                            "branch_id": "b-1",
                            "name": "Rice",
                            "price": "40",
                            "is_loose": True,
                            "unit": "kg",
                        }
                    ],
                }
            ),
            encoding="utf-8",
        )

        loaded = SeedData.from_file(path)

        branch = loaded.branches[0]
        assert branch.approval_status == ApprovalStatus.APPROVED
        assert branch.is_open
        assert branch.location.address == "No address available"
        assert loaded.products[0].price == Decimal("40.00")
        assert loaded.partners == []

    def test_invalid_file(self, tmp_path: Path) -> None:
        path = tmp_path / "seed.json"
        path.write_text(json.dumps({"products": [{"id": "x", "name": "X", "price": "1"}]}), encoding="utf-8")

        with pytest.raises(pydantic.ValidationError):
            SeedData.from_file(path)

    def test_configured_seed(self, tmp_path: Path) -> None:
        path = tmp_path / "seed.json"
        path.write_text(json.dumps({"branches": [{"id": "b-1", "name": "Main"}]}), encoding="utf-8")

        assert load_configured_seed(None, demo=False) is None
        assert load_configured_seed(None, demo=True).branches
        assert [b.id for b in load_configured_seed(str(path), demo=True).branches] == ["b-1"]


class TestSeededContainer:
    @pytest.mark.asyncio
    async def test_directories_preloaded(self) -> None:
        container = ServiceContainer.build(generate_demo_seed(DemoSeedConfig.small()))

        assert await container.branches.find_by_id("branch-001") is not None
        assert await container.products.find_by_id("branch-001-p001") is not None
        assert await container.selector.is_delivery_available("branch-001")
