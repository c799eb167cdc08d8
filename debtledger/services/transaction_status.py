"""
Transaction status rules.

A transaction counts towards its friend's balance exactly while it is
APPROVED, so the only transitions with a balance effect are the ones that
cross the APPROVED boundary:

- entering APPROVED applies the normal effect
- leaving APPROVED applies its exact inverse
- everything else (PENDING <-> REJECTED, same status) is free

Any transition is allowed; moving to the current status is a no-op.
"""

from typing import Iterable

from debtledger.models.transaction import Transaction, TransactionStatus, TransactionType
from debtledger.utils.money import snap_to_zero

APPROVED = TransactionStatus.APPROVED


def normal_effect(transaction: Transaction) -> float:
    """Balance change of an approved entry: +amount EXPENSE, -amount PAYMENT."""
    if transaction.type == TransactionType.EXPENSE:
        return transaction.amount
    return -transaction.amount


def is_noop(old_status: TransactionStatus, new_status: TransactionStatus) -> bool:
    return old_status == new_status


def status_delta(
    transaction: Transaction,
    old_status: TransactionStatus,
    new_status: TransactionStatus,
) -> float:
    """Balance delta implied by moving ``transaction`` from old to new status."""
    if is_noop(old_status, new_status):
        return 0.0
    if new_status == APPROVED:
        return normal_effect(transaction)
    if old_status == APPROVED:
        return -normal_effect(transaction)
    return 0.0


def initial_delta(transaction: Transaction) -> float:
    """Balance delta of creating ``transaction`` in its current status."""
    return normal_effect(transaction) if transaction.is_approved() else 0.0


def balance_from_history(history: Iterable[Transaction]) -> float:
    """
    Recompute a balance from scratch.

    Independent of the stored balance; used to audit it.
    """
    total = 0.0
    for tx in history:
        if tx.is_approved():
            total = snap_to_zero(total + normal_effect(tx))
    return total
