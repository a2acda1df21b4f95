"""Value Objects for the domain layer.

Value objects are immutable objects defined by their attributes. Order
lines are a tagged union, ``PackedItem | LooseItem``, resolved once when
the order is created so later code never has to ask the catalog again
how a line is priced.
"""

from dataclasses import dataclass, replace
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from enum import Enum
from typing import Any, Self

from dailycart.domain.base import ValueObject
from dailycart.domain.exceptions import ValidationError

CENT = Decimal("0.01")
QUANTITY_STEP = Decimal("0.001")


# ============================================================================
# Amounts
# ============================================================================


def to_decimal(value: Any, field: str = "amount") -> Decimal:
    """Convert an int, str, float or Decimal into a Decimal.

    Floats go through ``str`` so that 1.1 becomes Decimal("1.1") rather
    than its binary expansion.

    Raises:
        ValidationError: If the value is not numeric.
    """
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, bool):
        raise ValidationError(f"{field} must be numeric", field=field)
    elif isinstance(value, (int, str)):
        try:
            result = Decimal(value)
        except InvalidOperation:
            raise ValidationError(f"{field} must be numeric", field=field) from None
    elif isinstance(value, float):
        result = Decimal(str(value))
    else:
        raise ValidationError(f"{field} must be numeric", field=field)
    if not result.is_finite():
        raise ValidationError(f"{field} must be a finite number", field=field)
    return result


def quantize_amount(value: Any) -> Decimal:
    """Round a currency amount to two decimal places (half up)."""
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def quantize_quantity(value: Any, field: str = "quantity") -> Decimal:
    """Round a loose-product quantity to three decimal places."""
    return to_decimal(value, field=field).quantize(QUANTITY_STEP, rounding=ROUND_HALF_UP)


# ============================================================================
# Principals
# ============================================================================


class Role(str, Enum):
    """Roles an authenticated principal can hold."""

    CUSTOMER = "customer"
    BRANCH = "branch"
    DELIVERY_PARTNER = "delivery_partner"
    ADMIN = "admin"


@dataclass(frozen=True)
class Principal(ValueObject):
    """The authenticated actor behind a command.

    Attributes:
        subject_id: Customer, branch, partner or admin identifier.
        role: Role the subject acts in.
    """

    subject_id: str
    role: Role

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    def __str__(self) -> str:
        return f"{self.role.value}:{self.subject_id}"


# ============================================================================
# Locations
# ============================================================================


@dataclass(frozen=True)
class Location(ValueObject):
    """A point with a human-readable address, snapshotted onto orders."""

    latitude: float
    longitude: float
    address: str

    @classmethod
    def default(cls) -> Self:
        """Location used when nothing better is known."""
        return cls(latitude=0.0, longitude=0.0, address="No address available")

    def to_dict(self) -> dict[str, Any]:
        return {
            "latitude": self.latitude,
            "longitude": self.longitude,
            "address": self.address,
        }


# ============================================================================
# Order Lines
# ============================================================================


@dataclass(frozen=True)
class PackedItem(ValueObject):
    """A line for a product sold in fixed units, priced by count.

    Attributes:
        product_id: Catalog product identifier.
        name: Product name at order time.
        count: Number of units (>= 0).
        unit_price: Price per unit at order time.
    """

    product_id: str
    name: str
    count: int
    unit_price: Decimal

    def __post_init__(self) -> None:
        _validate_count(self.product_id, self.count)
        object.__setattr__(self, "unit_price", quantize_amount(self.unit_price))

    @property
    def is_loose(self) -> bool:
        return False

    @property
    def billable_units(self) -> Decimal:
        return Decimal(self.count)

    @property
    def line_total(self) -> Decimal:
        """Unit price times count."""
        return quantize_amount(self.unit_price * self.count)

    def with_count(self, count: int) -> "PackedItem":
        return replace(self, count=count)

    def to_dict(self) -> dict[str, Any]:
        return {
            "product_id": self.product_id,
            "name": self.name,
            "is_loose": False,
            "count": self.count,
            "quantity": None,
            "unit": None,
            "unit_price": str(self.unit_price),
            "line_total": str(self.line_total),
        }


@dataclass(frozen=True)
class LooseItem(ValueObject):
    """A line for a product sold by weight or volume, priced by quantity.

    Attributes:
        product_id: Catalog product identifier.
        name: Product name at order time.
        count: Number of portions requested (>= 0).
        quantity: Measured amount in ``unit`` (> 0).
        unit: Measurement unit, e.g. "kg".
        unit_price: Price per ``unit`` at order time.
    """

    product_id: str
    name: str
    count: int
    quantity: Decimal
    unit: str
    unit_price: Decimal

    def __post_init__(self) -> None:
        _validate_count(self.product_id, self.count)
        quantity = quantize_quantity(self.quantity)
        if quantity <= 0:
            raise ValidationError(
                f"Loose product {self.name} requires a positive quantity",
                field="quantity",
                product_id=self.product_id,
            )
        object.__setattr__(self, "quantity", quantity)
        object.__setattr__(self, "unit_price", quantize_amount(self.unit_price))

    @property
    def is_loose(self) -> bool:
        return True

    @property
    def billable_units(self) -> Decimal:
        return self.quantity

    @property
    def line_total(self) -> Decimal:
        """Unit price times measured quantity."""
        return quantize_amount(self.unit_price * self.quantity)

    def with_count(self, count: int, quantity: Decimal | None = None) -> "LooseItem":
        if quantity is None:
            return replace(self, count=count)
        return replace(self, count=count, quantity=quantity)

    def to_dict(self) -> dict[str, Any]:
        return {
            "product_id": self.product_id,
            "name": self.name,
            "is_loose": True,
            "count": self.count,
            "quantity": str(self.quantity),
            "unit": self.unit,
            "unit_price": str(self.unit_price),
            "line_total": str(self.line_total),
        }


OrderItem = PackedItem | LooseItem


@dataclass(frozen=True)
class ItemRequest(ValueObject):
    """A line as sent by a client: at order creation or in a modification.

    Attributes:
        product_id: Catalog product identifier.
        count: Requested number of units or portions.
        quantity: Requested weight/volume for loose products.
    """

    product_id: str
    count: int
    quantity: Decimal | None = None


def calculate_total(items: list[OrderItem]) -> Decimal:
    """Sum of line totals. Loose lines bill by quantity, packed by count."""
    return quantize_amount(sum((item.line_total for item in items), Decimal("0")))


def _validate_count(product_id: str, count: Any) -> None:
    if isinstance(count, bool) or not isinstance(count, int):
        raise ValidationError(
            f"Count for product {product_id} must be an integer",
            field="count",
            product_id=product_id,
        )
    if count < 0:
        raise ValidationError(
            f"Count for product {product_id} cannot be negative",
            field="count",
            product_id=product_id,
        )
