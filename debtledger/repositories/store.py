"""
LedgerStore - persistence contract for friends, transactions and bills.

The one primitive that touches balances is ``apply``: it loads at most one
Transaction and its Friend, asks a mutation callback what to write, and
commits the transaction insert/status change together with the balance
change as a single all-or-nothing unit. Balance writes are compare-and-swap
on the value that was read, so concurrent units for the same friend never
lose an update.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Awaitable, Callable, FrozenSet, List, Optional

from debtledger.models.bill import Bill
from debtledger.models.friend import Friend
from debtledger.models.transaction import Transaction, TransactionStatus
from debtledger.utils.money import snap_to_zero

logger = logging.getLogger(__name__)

FRIENDS = "friends"
TRANSACTIONS = "transactions"
BILLS = "bills"


class DuplicateAccessCode(Exception):
    """Raised by insert_friend when the access code is already taken."""
    pass


@dataclass
class LedgerWrite:
    """What one atomic unit writes. ``None`` fields are left untouched."""
    insert_transaction: Optional[Transaction] = None
    new_status: Optional[TransactionStatus] = None
    balance_delta: float = 0.0


@dataclass
class LedgerCommit:
    friend: Friend                        # state after commit
    transaction: Optional[Transaction]    # inserted or updated entry


def plan_commit(
    friend: Friend,
    transaction: Optional[Transaction],
    write: LedgerWrite,
) -> LedgerCommit:
    """Resulting friend/transaction state once ``write`` commits."""
    result_tx = transaction
    if write.insert_transaction is not None:
        result_tx = write.insert_transaction
    if write.new_status is not None and transaction is not None:
        result_tx = transaction.model_copy(update={"status": write.new_status})

    balance = friend.balance
    if write.balance_delta:
        balance = snap_to_zero(friend.balance + write.balance_delta)

    return LedgerCommit(
        friend=friend.model_copy(update={"balance": balance}),
        transaction=result_tx,
    )


Mutation = Callable[[Friend, Optional[Transaction]], Optional[LedgerWrite]]
CommitListener = Callable[[FrozenSet[str]], Awaitable[None]]


class LedgerStore(ABC):
    def __init__(self):
        self._commit_listeners: List[CommitListener] = []

    def add_commit_listener(self, listener: CommitListener) -> Callable[[], None]:
        """Register a coroutine called after every commit; returns a remover."""
        self._commit_listeners.append(listener)

        def remove() -> None:
            if listener in self._commit_listeners:
                self._commit_listeners.remove(listener)

        return remove

    async def _notify_commit(self, collections: FrozenSet[str]) -> None:
        # A committed write must not be reported as failed because an
        # observer broke.
        for listener in list(self._commit_listeners):
            try:
                await listener(collections)
            except Exception:
                logger.exception("Commit listener failed for %s", sorted(collections))

    # ===== FRIENDS =====

    @abstractmethod
    async def insert_friend(self, friend: Friend) -> Friend:
        """Insert a friend. Raises DuplicateAccessCode on code collision."""

    @abstractmethod
    async def get_friend(self, friend_id: str) -> Optional[Friend]:
        ...

    @abstractmethod
    async def get_friend_by_access_code(self, access_code: str) -> Optional[Friend]:
        ...

    @abstractmethod
    async def list_friends(self) -> List[Friend]:
        """All friends ordered by name."""

    @abstractmethod
    async def delete_friend(self, friend_id: str) -> int:
        """
        Delete a friend and every one of its transactions atomically.

        Returns the number of transactions removed.
        Raises FriendNotFound if the friend does not exist.
        """

    # ===== TRANSACTIONS =====

    @abstractmethod
    async def get_transaction(self, transaction_id: str) -> Optional[Transaction]:
        ...

    @abstractmethod
    async def list_transactions(self, friend_id: Optional[str] = None) -> List[Transaction]:
        """Transactions newest first by date, then by creation time."""

    @abstractmethod
    async def apply(
        self,
        friend_id: Optional[str],
        transaction_id: Optional[str],
        mutate: Mutation,
    ) -> Optional[LedgerCommit]:
        """
        Run one atomic ledger unit.

        - transaction_id given: load it (TransactionNotFound if missing);
          friend_id defaults to its owner
        - load the friend (FriendNotFound if missing)
        - mutate(friend, transaction) returns the LedgerWrite, or None for
          a no-op (apply then returns None and writes nothing)

        Raises StoreUnavailable when the unit cannot commit within the
        retry budget.
        """

    # ===== BILLS =====

    @abstractmethod
    async def insert_bill(self, bill: Bill) -> Bill:
        ...

    @abstractmethod
    async def list_bills(self) -> List[Bill]:
        """Bills newest first by date, then by creation time."""
