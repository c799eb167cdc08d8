"""
Settlement resolver - which expenses is a friend still on the hook for.

FIFO matching over the friend's history in date order, with creation time
breaking ties between entries on the same date:

1. Non-rejected EXPENSE entries join the back of an open queue with
   remaining = amount.
2. Each APPROVED PAYMENT pays down the queue from the front, dropping
   entries once their remaining is negligible.
3. Payment left over once the queue is empty is discarded; it is not
   carried as credit against later expenses.
4. PENDING and REJECTED payments consume nothing.

Pure derivation: nothing here is persisted, and the stored balance stays
the authoritative total.
"""

from collections import deque
from dataclasses import dataclass
from typing import Iterable, List, Set

from debtledger.models.transaction import Transaction, TransactionStatus, TransactionType
from debtledger.utils.money import is_negligible, round2


@dataclass
class OpenExpense:
    id: str
    remaining: float


def open_expenses(history: Iterable[Transaction]) -> List[OpenExpense]:
    """Expenses with an outstanding remainder, oldest first."""
    ordered = sorted(history, key=lambda tx: (tx.date, tx.created_at))
    queue: deque[OpenExpense] = deque()

    for tx in ordered:
        if tx.type == TransactionType.EXPENSE:
            if tx.status != TransactionStatus.REJECTED:
                queue.append(OpenExpense(id=tx.id, remaining=tx.amount))
        elif tx.status == TransactionStatus.APPROVED:
            pay_left = tx.amount
            while pay_left > 0 and queue:
                head = queue[0]
                applied = min(head.remaining, pay_left)
                head.remaining = round2(head.remaining - applied)
                pay_left = round2(pay_left - applied)
                if is_negligible(head.remaining):
                    queue.popleft()

    return [entry for entry in queue if not is_negligible(entry.remaining)]


def unsettled_expense_ids(history: Iterable[Transaction]) -> Set[str]:
    return {entry.id for entry in open_expenses(history)}


def outstanding_total(history: Iterable[Transaction]) -> float:
    return round2(sum(entry.remaining for entry in open_expenses(history)))
