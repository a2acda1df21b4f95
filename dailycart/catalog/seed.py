"""Seed data for the branch, product and partner directories.

Directories are owned by other systems in production. A running instance
is seeded either from a JSON file (``settings.seed_file``) or from a
deterministic demo generator, so that orders can be placed against it
without those systems.
"""

import json
import random
from dataclasses import dataclass, field
from decimal import Decimal
from pathlib import Path

import structlog
from pydantic import BaseModel, Field

from dailycart.domain.entities import Branch, DeliveryPartner, Product
from dailycart.domain.state_machines import ApprovalStatus, StoreStatus
from dailycart.domain.value_objects import Location

logger = structlog.get_logger()


# ============================================================================
# Constants
# ============================================================================

# (name, base price, unit); sold in fixed units
PACKED_PRODUCTS: list[tuple[str, str, str]] = [
    ("Toned Milk 1L", "30", "pc"),
    ("Whole Wheat Bread", "50", "pc"),
    ("Eggs (12)", "84", "pc"),
    ("Salted Butter 100g", "56", "pc"),
    ("Paneer 200g", "90", "pc"),
    ("Curd 400g", "45", "pc"),
    ("Tea Powder 250g", "120", "pc"),
    ("Sunflower Oil 1L", "165", "pc"),
]

# (name, price per unit, unit); sold by weight
LOOSE_PRODUCTS: list[tuple[str, str, str]] = [
    ("Rice", "40", "kg"),
    ("Onions", "35", "kg"),
    ("Tomatoes", "30", "kg"),
    ("Potatoes", "25", "kg"),
    ("Sugar", "45", "kg"),
    ("Toor Dal", "140", "kg"),
]

BRANCH_NAMES = ["Koramangala", "Indiranagar", "Jayanagar", "Whitefield", "HSR Layout"]
PARTNER_NAMES = ["Arjun", "Meera", "Ravi", "Sana", "Vikram", "Divya"]


# ============================================================================
# Seed File Schema
# ============================================================================


class LocationSeed(BaseModel):
    latitude: float
    longitude: float
    address: str


class BranchSeed(BaseModel):
    """A branch as listed in a seed file."""

    id: str
    name: str
    approval_status: ApprovalStatus = ApprovalStatus.APPROVED
    store_status: StoreStatus = StoreStatus.OPEN
    delivery_service_available: bool = True
    location: LocationSeed | None = None
    phone: str | None = None

    def to_entity(self) -> Branch:
        location = Location(**self.location.model_dump()) if self.location else Location.default()
        return Branch(
            id=self.id,
            name=self.name,
            approval_status=self.approval_status,
            store_status=self.store_status,
            delivery_service_available=self.delivery_service_available,
            location=location,
            phone=self.phone,
        )


class ProductSeed(BaseModel):
    """A product as listed in a seed file."""

    id: str
    branch_id: str
    name: str
    price: Decimal = Field(..., ge=0)
    is_loose: bool = False
    unit: str = "pc"
    available: bool = True

    def to_entity(self) -> Product:
        return Product(
            id=self.id,
            branch_id=self.branch_id,
            name=self.name,
            price=self.price,
            is_loose=self.is_loose,
            unit=self.unit,
            available=self.available,
        )


class PartnerSeed(BaseModel):
    """A delivery partner as listed in a seed file."""

    id: str
    branch_id: str
    name: str = ""
    status: ApprovalStatus = ApprovalStatus.APPROVED
    availability: bool = True

    def to_entity(self) -> DeliveryPartner:
        return DeliveryPartner(
            id=self.id,
            branch_id=self.branch_id,
            name=self.name,
            status=self.status,
            availability=self.availability,
        )


class SeedFile(BaseModel):
    """Top-level shape of a seed file."""

    branches: list[BranchSeed] = Field(default_factory=list)
    products: list[ProductSeed] = Field(default_factory=list)
    partners: list[PartnerSeed] = Field(default_factory=list)


# ============================================================================
# Seed Data
# ============================================================================


@dataclass
class SeedData:
    """Records to preload into the directories."""

    branches: list[Branch] = field(default_factory=list)
    products: list[Product] = field(default_factory=list)
    partners: list[DeliveryPartner] = field(default_factory=list)

    @classmethod
    def from_file(cls, path: str | Path) -> "SeedData":
        """Load and validate a JSON seed file.

        Raises:
            FileNotFoundError: If the file does not exist.
            pydantic.ValidationError: If the file does not match SeedFile.
        """
        raw = json.loads(Path(path).read_text(encoding="utf-8"))
        parsed = SeedFile.model_validate(raw)
        data = cls(
            branches=[b.to_entity() for b in parsed.branches],
            products=[p.to_entity() for p in parsed.products],
            partners=[p.to_entity() for p in parsed.partners],
        )
        logger.info(
            "Seed file loaded",
            path=str(path),
            branches=len(data.branches),
            products=len(data.products),
            partners=len(data.partners),
        )
        return data

    def to_seed_file(self) -> SeedFile:
        """Inverse of ``from_file``, used to export generated data."""
        return SeedFile(
            branches=[
                BranchSeed(
                    id=b.id,
                    name=b.name,
                    approval_status=b.approval_status,
                    store_status=b.store_status,
                    delivery_service_available=b.delivery_service_available,
                    location=LocationSeed(**b.location.to_dict()),
                    phone=b.phone,
                )
                for b in self.branches
            ],
            products=[
                ProductSeed(
                    id=p.id,
                    branch_id=p.branch_id,
                    name=p.name,
                    price=p.price,
                    is_loose=p.is_loose,
                    unit=p.unit,
                    available=p.available,
                )
                for p in self.products
            ],
            partners=[
                PartnerSeed(id=p.id, branch_id=p.branch_id, name=p.name, status=p.status, availability=p.availability)
                for p in self.partners
            ],
        )


# ============================================================================
# Demo Generator
# ============================================================================


@dataclass
class DemoSeedConfig:
    """Configuration for demo data generation.

    Attributes:
        seed: Random seed for reproducibility.
        branches: Number of branches.
        partners_per_branch: Delivery partners per branch.
    """

    seed: int = 42
    branches: int = 2
    partners_per_branch: int = 2

    @classmethod
    def small(cls) -> "DemoSeedConfig":
        return cls(seed=42, branches=1, partners_per_branch=1)


def generate_demo_seed(config: DemoSeedConfig | None = None) -> SeedData:
    """Generate branches with a full grocery list and partners.

    The same config always yields the same ids, names and prices.
    """
    config = config or DemoSeedConfig()
    rng = random.Random(config.seed)
    data = SeedData()

    for b in range(config.branches):
        branch_id = f"branch-{b + 1:03d}"
        name = BRANCH_NAMES[b % len(BRANCH_NAMES)]
        data.branches.append(
            Branch(
                id=branch_id,
                name=f"DailyCart {name}",
                approval_status=ApprovalStatus.APPROVED,
                delivery_service_available=True,
                location=Location(
                    latitude=round(12.9 + rng.uniform(0, 0.1), 6),
                    longitude=round(77.55 + rng.uniform(0, 0.1), 6),
                    address=f"{name}, Bengaluru",
                ),
                phone=f"+91-80-{rng.randint(20000000, 29999999)}",
            )
        )

        catalog = [(entry, False) for entry in PACKED_PRODUCTS] + [(entry, True) for entry in LOOSE_PRODUCTS]
        for index, ((product_name, base_price, unit), is_loose) in enumerate(catalog):
            # Prices drift up to 10% per branch, rounded to whole rupees
            drift = Decimal(rng.randint(0, 10)) / Decimal(100)
            price = (Decimal(base_price) * (1 + drift)).quantize(Decimal("1"))
            data.products.append(
                Product(
                    id=f"{branch_id}-p{index + 1:03d}",
                    branch_id=branch_id,
                    name=product_name,
                    price=price,
                    is_loose=is_loose,
                    unit=unit,
                )
            )

        for p in range(config.partners_per_branch):
            data.partners.append(
                DeliveryPartner(
                    id=f"{branch_id}-dp{p + 1:02d}",
                    branch_id=branch_id,
                    name=PARTNER_NAMES[(b * config.partners_per_branch + p) % len(PARTNER_NAMES)],
                    status=ApprovalStatus.APPROVED,
                )
            )

    logger.debug(
        "Demo seed generated",
        seed=config.seed,
        branches=len(data.branches),
        products=len(data.products),
        partners=len(data.partners),
    )
    return data


def load_configured_seed(seed_file: str | None, demo: bool) -> SeedData | None:
    """Seed data selected by configuration, if any. A file wins over demo data."""
    if seed_file:
        return SeedData.from_file(seed_file)
    if demo:
        return generate_demo_seed()
    return None
