"""
In-process LedgerStore.

Used for local runs (STORE_BACKEND=memory) and the test suite. Atomic units
for the same friend are serialized with a per-friend asyncio.Lock, and the
balance write still compares against the value read so the contract matches
the Mongo store.
"""

import asyncio
from collections import defaultdict
from typing import Dict, List, Optional

from debtledger.core.errors import FriendNotFound, StoreUnavailable, TransactionNotFound
from debtledger.models.bill import Bill
from debtledger.models.friend import Friend
from debtledger.models.transaction import Transaction
from debtledger.repositories.store import (
    BILLS,
    FRIENDS,
    TRANSACTIONS,
    DuplicateAccessCode,
    LedgerCommit,
    LedgerStore,
    Mutation,
    plan_commit,
)


class InMemoryLedgerStore(LedgerStore):

    def __init__(self):
        super().__init__()
        self._friends: Dict[str, Friend] = {}
        self._transactions: Dict[str, Transaction] = {}
        self._bills: Dict[str, Bill] = {}
        self._locks: Dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    # ===== FRIENDS =====

    async def insert_friend(self, friend: Friend) -> Friend:
        if any(f.access_code == friend.access_code for f in self._friends.values()):
            raise DuplicateAccessCode(friend.access_code)
        self._friends[friend.id] = friend.model_copy(deep=True)
        await self._notify_commit(frozenset({FRIENDS}))
        return friend

    async def get_friend(self, friend_id: str) -> Optional[Friend]:
        friend = self._friends.get(friend_id)
        return friend.model_copy(deep=True) if friend else None

    async def get_friend_by_access_code(self, access_code: str) -> Optional[Friend]:
        for friend in self._friends.values():
            if friend.access_code == access_code:
                return friend.model_copy(deep=True)
        return None

    async def list_friends(self) -> List[Friend]:
        friends = sorted(self._friends.values(), key=lambda f: f.name)
        return [f.model_copy(deep=True) for f in friends]

    async def delete_friend(self, friend_id: str) -> int:
        if friend_id not in self._friends:
            raise FriendNotFound(friend_id)
        async with self._locks[friend_id]:
            if friend_id not in self._friends:
                raise FriendNotFound(friend_id)
            doomed = [tx_id for tx_id, tx in self._transactions.items() if tx.friend_id == friend_id]
            for tx_id in doomed:
                del self._transactions[tx_id]
            del self._friends[friend_id]
        self._locks.pop(friend_id, None)
        await self._notify_commit(frozenset({FRIENDS, TRANSACTIONS}))
        return len(doomed)

    # ===== TRANSACTIONS =====

    async def get_transaction(self, transaction_id: str) -> Optional[Transaction]:
        tx = self._transactions.get(transaction_id)
        return tx.model_copy(deep=True) if tx else None

    async def list_transactions(self, friend_id: Optional[str] = None) -> List[Transaction]:
        txs = [
            tx for tx in self._transactions.values()
            if friend_id is None or tx.friend_id == friend_id
        ]
        txs.sort(key=lambda tx: (tx.date, tx.created_at), reverse=True)
        return [tx.model_copy(deep=True) for tx in txs]

    async def apply(
        self,
        friend_id: Optional[str],
        transaction_id: Optional[str],
        mutate: Mutation,
    ) -> Optional[LedgerCommit]:
        if transaction_id is not None and friend_id is None:
            existing = self._transactions.get(transaction_id)
            if existing is None:
                raise TransactionNotFound(transaction_id)
            friend_id = existing.friend_id

        # Only known friends get a lock entry
        if friend_id not in self._friends:
            raise FriendNotFound(friend_id)

        async with self._locks[friend_id]:
            transaction = None
            if transaction_id is not None:
                transaction = await self.get_transaction(transaction_id)
                if transaction is None:
                    raise TransactionNotFound(transaction_id)

            friend = await self.get_friend(friend_id)
            if friend is None:
                raise FriendNotFound(friend_id)

            write = mutate(friend, transaction)
            if write is None:
                return None

            commit = plan_commit(friend, transaction, write)

            # Compare-and-swap: the lock makes these hold, a miss means a
            # writer bypassed the lock.
            if self._friends[friend.id].balance != friend.balance:
                raise StoreUnavailable(f"Balance of friend {friend.id} changed concurrently")
            if write.new_status is not None:
                if self._transactions[transaction.id].status != transaction.status:
                    raise StoreUnavailable(f"Status of transaction {transaction.id} changed concurrently")

            if write.insert_transaction is not None:
                self._transactions[commit.transaction.id] = commit.transaction.model_copy(deep=True)
            if write.new_status is not None:
                self._transactions[transaction.id] = commit.transaction.model_copy(deep=True)
            self._friends[friend.id] = commit.friend.model_copy(deep=True)

        await self._notify_commit(frozenset({FRIENDS, TRANSACTIONS}))
        return commit

    # ===== BILLS =====

    async def insert_bill(self, bill: Bill) -> Bill:
        self._bills[bill.id] = bill.model_copy(deep=True)
        await self._notify_commit(frozenset({BILLS}))
        return bill

    async def list_bills(self) -> List[Bill]:
        bills = sorted(self._bills.values(), key=lambda b: (b.date, b.created_at), reverse=True)
        return [b.model_copy(deep=True) for b in bills]
