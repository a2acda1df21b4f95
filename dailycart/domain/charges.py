"""Platform charge tiers.

The platform takes a flat fee per delivered order, tiered by order value.
Upper bounds are inclusive.
"""

from decimal import Decimal
from typing import Any

from dailycart.domain.value_objects import quantize_amount

# (inclusive upper bound, fee); the last tier has no bound
CHARGE_TIERS: tuple[tuple[Decimal, Decimal], ...] = (
    (Decimal("1000"), Decimal("2")),
    (Decimal("1999"), Decimal("4")),
    (Decimal("2999"), Decimal("6")),
)
TOP_TIER_CHARGE = Decimal("8")


def platform_charge(order_total: Any) -> Decimal:
    """Fee charged to a branch for a delivered order.

    Args:
        order_total: Order value in the wallet currency.

    Returns:
        The fee, quantized to two decimal places.
    """
    total = quantize_amount(order_total)
    for upper_bound, charge in CHARGE_TIERS:
        if total <= upper_bound:
            return quantize_amount(charge)
    return quantize_amount(TOP_TIER_CHARGE)
