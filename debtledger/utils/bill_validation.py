"""Bill validation utilities."""
import math
from typing import List

from debtledger.core.errors import BillValidationError
from debtledger.models.bill import BillItem
from debtledger.utils.money import MAX_AMOUNT


def validate_items(items: List[BillItem]) -> None:
    """
    Validate bill items.

    Rules:
    - price must be finite, non-negative and at most MAX_AMOUNT
    - quantity must be finite and non-negative
    - price * quantity must not exceed MAX_AMOUNT
    - an item may not list the same friend twice
    """
    for item in items:
        if not math.isfinite(item.price) or item.price < 0 or item.price > MAX_AMOUNT:
            raise BillValidationError(
                f"Item '{item.name}' has invalid price: {item.price}"
            )

        if not math.isfinite(item.quantity) or item.quantity < 0:
            raise BillValidationError(
                f"Item '{item.name}' has invalid quantity: {item.quantity}"
            )

        if item.line_total() > MAX_AMOUNT:
            raise BillValidationError(
                f"Item '{item.name}' line total exceeds {MAX_AMOUNT:.0f}"
            )

        if len(set(item.assigned_to)) != len(item.assigned_to):
            raise BillValidationError(
                f"Item '{item.name}' assigns the same friend more than once"
            )


def validate_charges(**charges: float) -> None:
    """Surcharges and hints (tax, service charge, subtotal, total) must be finite, non-negative and at most MAX_AMOUNT."""
    for name, value in charges.items():
        if not math.isfinite(value) or value < 0 or value > MAX_AMOUNT:
            raise BillValidationError(f"{name} must be a non-negative number up to {MAX_AMOUNT:.0f}, got {value}")


def calculate_subtotal(items: List[BillItem]) -> float:
    """Calculate subtotal from items."""
    return sum(item.line_total() for item in items)
