"""Money helpers.

Amounts are carried as floats in the currency's major unit and rounded to
the minor unit (two decimals) at every boundary. Anything with an absolute
value under one minor unit is treated as exactly zero.

MAX_AMOUNT caps every amount the ledger accepts. Floats lose the minor unit
well before that cap is reached, and the decimal context overflows above
about 1e26.
"""
import math
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any

from debtledger.core.errors import InvalidAmount

MINOR_UNIT = Decimal("0.01")
NEGLIGIBLE = 0.01
MAX_AMOUNT = 1e12


def round2(value: float) -> float:
    """Round half-up to the currency's minor unit."""
    try:
        return float(Decimal(str(value)).quantize(MINOR_UNIT, rounding=ROUND_HALF_UP))
    except InvalidOperation:
        raise InvalidAmount(f"Amount out of range: {value!r}")


def is_negligible(value: float) -> bool:
    return abs(value) < NEGLIGIBLE


def snap_to_zero(value: float) -> float:
    """Round to the minor unit, collapsing sub-unit residue to exactly 0."""
    if is_negligible(value):
        return 0.0
    return round2(value)


def validate_amount(value: Any) -> float:
    """
    Parse and validate a ledger amount.

    Accepts numbers and numeric strings. Returns the amount rounded to the
    minor unit. Raises InvalidAmount for anything non-numeric, non-finite,
    above MAX_AMOUNT, or not strictly positive after rounding.
    """
    if isinstance(value, bool) or value is None:
        raise InvalidAmount(f"Invalid amount: {value!r}")
    try:
        amount = float(Decimal(str(value).strip()))
    except (InvalidOperation, ValueError):
        raise InvalidAmount(f"Invalid amount: {value!r}")

    if not math.isfinite(amount):
        raise InvalidAmount(f"Amount must be finite: {value!r}")
    if amount > MAX_AMOUNT:
        raise InvalidAmount(f"Amount exceeds {MAX_AMOUNT:.0f}: {value!r}")

    amount = round2(amount)
    if amount <= 0:
        raise InvalidAmount(f"Amount must be positive: {value!r}")
    return amount
