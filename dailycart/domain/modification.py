"""Order modification rules.

A branch packing an order may only take things away: lower a count,
drop a line, or re-weigh a loose product. ``validate_modification`` checks
a proposal against the order's current lines and returns the new lines,
the recomputed total and human-readable change descriptions. It never
touches storage.
"""

from dataclasses import dataclass, field
from decimal import Decimal

from dailycart.domain.exceptions import BusinessRuleViolation, ValidationError
from dailycart.domain.value_objects import (
    ItemRequest,
    LooseItem,
    OrderItem,
    PackedItem,
    calculate_total,
    quantize_quantity,
)

NO_CHANGES_MESSAGE = "No changes made"


@dataclass(frozen=True)
class ModificationResult:
    """Outcome of reconciling a proposal with the original lines.

    Attributes:
        updated_items: Lines that remain, in original order.
        new_total: Total recomputed from ``updated_items``.
        change_descriptions: One human-readable entry per change.
        removed_product_ids: Every product that no longer appears.
        unlisted_product_ids: Products the branch left out of the proposal
            entirely, read as out of stock.
    """

    updated_items: list[OrderItem]
    new_total: Decimal
    change_descriptions: list[str] = field(default_factory=list)
    removed_product_ids: list[str] = field(default_factory=list)
    unlisted_product_ids: list[str] = field(default_factory=list)

    @property
    def has_changes(self) -> bool:
        return bool(self.change_descriptions)

    @property
    def message(self) -> str:
        if not self.has_changes:
            return NO_CHANGES_MESSAGE
        return f"Order modified: {len(self.change_descriptions)} change(s)"


def validate_modification(
    original_items: list[OrderItem],
    proposed_items: list[ItemRequest],
) -> ModificationResult:
    """Reconcile a branch's proposed lines with the original order.

    Args:
        original_items: Lines currently on the order.
        proposed_items: Lines the branch wants to keep.

    Returns:
        ModificationResult with the surviving lines and change log.

    Raises:
        ValidationError: Duplicate products or malformed counts.
        BusinessRuleViolation: New products, increased counts, or loose
            lines without a positive quantity.
    """
    originals = {item.product_id: item for item in original_items}
    proposals: dict[str, ItemRequest] = {}
    for proposal in proposed_items:
        if proposal.product_id in proposals:
            raise ValidationError(
                f"Product {proposal.product_id} listed more than once",
                field="items",
                product_id=proposal.product_id,
            )
        if proposal.product_id not in originals:
            raise BusinessRuleViolation(
                f"Product {proposal.product_id} is not part of this order",
                details={"product_id": proposal.product_id},
            )
        _check_count(proposal)
        proposals[proposal.product_id] = proposal

    updated: list[OrderItem] = []
    changes: list[str] = []
    removed: list[str] = []
    unlisted: list[str] = []

    for original in original_items:
        proposal = proposals.get(original.product_id)
        if proposal is None:
            changes.append(_removed(original))
            removed.append(original.product_id)
            unlisted.append(original.product_id)
            continue

        if proposal.count > original.count:
            raise BusinessRuleViolation(
                f"Cannot increase {original.name} from {original.count} to {proposal.count}",
                details={
                    "product_id": original.product_id,
                    "original_count": original.count,
                    "proposed_count": proposal.count,
                },
            )

        if proposal.count == 0:
            changes.append(_removed(original))
            removed.append(original.product_id)
            continue

        if proposal.count < original.count:
            changes.append(
                f"Reduced {original.name} from {original.count} to {proposal.count}"
            )

        if isinstance(original, LooseItem):
            quantity = _loose_quantity(original, proposal)
            if quantity != original.quantity:
                changes.append(
                    f"Updated {original.name} quantity from "
                    f"{_fmt(original.quantity)} to {_fmt(quantity)} {original.unit}"
                )
            updated.append(original.with_count(proposal.count, quantity))
        else:
            updated.append(original.with_count(proposal.count))

    return ModificationResult(
        updated_items=updated,
        new_total=calculate_total(updated),
        change_descriptions=changes,
        removed_product_ids=removed,
        unlisted_product_ids=unlisted,
    )


def _check_count(proposal: ItemRequest) -> None:
    count = proposal.count
    if isinstance(count, bool) or not isinstance(count, int) or count < 0:
        raise ValidationError(
            f"Count for product {proposal.product_id} must be a non-negative integer",
            field="count",
            product_id=proposal.product_id,
        )


def _loose_quantity(original: LooseItem, proposal: ItemRequest) -> Decimal:
    if proposal.quantity is None:
        raise BusinessRuleViolation(
            f"Loose product {original.name} requires a quantity",
            details={"product_id": original.product_id},
        )
    quantity = quantize_quantity(proposal.quantity)
    if quantity <= 0:
        raise BusinessRuleViolation(
            f"Loose product {original.name} requires a positive quantity",
            details={"product_id": original.product_id, "quantity": str(quantity)},
        )
    if quantity > original.quantity:
        raise BusinessRuleViolation(
            f"Cannot increase {original.name} quantity from "
            f"{_fmt(original.quantity)} to {_fmt(quantity)} {original.unit}",
            details={
                "product_id": original.product_id,
                "original_quantity": str(original.quantity),
                "proposed_quantity": str(quantity),
            },
        )
    return quantity


def _removed(item: PackedItem | LooseItem) -> str:
    return f"Removed {item.name} ({item.count}x)"


def _fmt(quantity: Decimal) -> str:
    return format(quantity.normalize(), "f")
