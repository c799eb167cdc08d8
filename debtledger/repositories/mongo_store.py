"""
MongoLedgerStore - LedgerStore on MongoDB via Motor.

Atomic units run inside a multi-document transaction
(client.start_session / session.start_transaction), which needs a replica
set. Inside the transaction every write is conditional on what was read:

- transaction status: {"_id": tx_id, "status": <old status>}
- friend balance:     {"_id": friend_id, "balance": <balance read>}

A conditional write that matches nothing aborts the transaction and the
whole unit is re-run from a fresh read, as are transactions aborted by the
server with the TransientTransactionError label. When the retry budget runs
out the caller gets StoreUnavailable.
"""

import logging
from typing import List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING
from pymongo.errors import DuplicateKeyError, PyMongoError

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

logger = logging.getLogger(__name__)

# Equal dates fall back to insertion time
NEWEST_FIRST = [("date", DESCENDING), ("created_at", DESCENDING)]


class _ConditionalWriteMissed(Exception):
    """A compare-and-swap filter matched no document."""
    pass


class MongoLedgerStore(LedgerStore):
    """Repository for friends, transactions and bills."""

    def __init__(self, db: AsyncIOMotorDatabase, max_retries: int = 5):
        super().__init__()
        self.db = db
        self.friends = db[FRIENDS]
        self.transactions = db[TRANSACTIONS]
        self.bills = db[BILLS]
        self.max_retries = max_retries

    # ===== FRIENDS =====

    async def insert_friend(self, friend: Friend) -> Friend:
        try:
            await self.friends.insert_one(friend.to_document())
        except DuplicateKeyError:
            raise DuplicateAccessCode(friend.access_code)
        except PyMongoError as exc:
            raise StoreUnavailable(f"Could not create friend: {exc}") from exc
        await self._notify_commit(frozenset({FRIENDS}))
        return friend

    async def get_friend(self, friend_id: str) -> Optional[Friend]:
        doc = await self.friends.find_one({"_id": friend_id})
        if doc:
            return Friend(**doc)
        return None

    async def get_friend_by_access_code(self, access_code: str) -> Optional[Friend]:
        doc = await self.friends.find_one({"access_code": access_code})
        if doc:
            return Friend(**doc)
        return None

    async def list_friends(self) -> List[Friend]:
        docs = await self.friends.find({}).sort("name", ASCENDING).to_list(None)
        return [Friend(**doc) for doc in docs]

    async def delete_friend(self, friend_id: str) -> int:
        async def unit(session) -> int:
            result = await self.transactions.delete_many({"friend_id": friend_id}, session=session)
            deleted = await self.friends.delete_one({"_id": friend_id}, session=session)
            if deleted.deleted_count == 0:
                raise FriendNotFound(friend_id)
            return result.deleted_count

        removed = await self._run_in_transaction(unit, f"delete friend {friend_id}")
        logger.info("Deleted friend %s with %d transactions", friend_id, removed)
        await self._notify_commit(frozenset({FRIENDS, TRANSACTIONS}))
        return removed

    # ===== TRANSACTIONS =====

    async def get_transaction(self, transaction_id: str) -> Optional[Transaction]:
        doc = await self.transactions.find_one({"_id": transaction_id})
        if doc:
            return Transaction(**doc)
        return None

    async def list_transactions(self, friend_id: Optional[str] = None) -> List[Transaction]:
        query = {"friend_id": friend_id} if friend_id is not None else {}
        docs = await self.transactions.find(query).sort(NEWEST_FIRST).to_list(None)
        return [Transaction(**doc) for doc in docs]

    async def apply(
        self,
        friend_id: Optional[str],
        transaction_id: Optional[str],
        mutate: Mutation,
    ) -> Optional[LedgerCommit]:
        async def unit(session) -> Optional[LedgerCommit]:
            return await self._apply_once(session, friend_id, transaction_id, mutate)

        commit = await self._run_in_transaction(
            unit, f"ledger write (friend={friend_id}, transaction={transaction_id})"
        )
        if commit is not None:
            await self._notify_commit(frozenset({FRIENDS, TRANSACTIONS}))
        return commit

    async def _apply_once(
        self,
        session,
        friend_id: Optional[str],
        transaction_id: Optional[str],
        mutate: Mutation,
    ) -> Optional[LedgerCommit]:
        transaction = None
        if transaction_id is not None:
            doc = await self.transactions.find_one({"_id": transaction_id}, session=session)
            if not doc:
                raise TransactionNotFound(transaction_id)
            transaction = Transaction(**doc)
            friend_id = friend_id or transaction.friend_id

        friend_doc = await self.friends.find_one({"_id": friend_id}, session=session)
        if not friend_doc:
            raise FriendNotFound(friend_id)
        friend = Friend(**friend_doc)

        write = mutate(friend, transaction)
        if write is None:
            return None

        commit = plan_commit(friend, transaction, write)

        if write.insert_transaction is not None:
            await self.transactions.insert_one(
                write.insert_transaction.to_document(), session=session
            )

        if write.new_status is not None:
            result = await self.transactions.update_one(
                {"_id": transaction.id, "status": transaction.status.value},
                {"$set": {"status": write.new_status.value}},
                session=session
            )
            if result.matched_count == 0:
                raise _ConditionalWriteMissed(f"transaction {transaction.id} status")

        if commit.friend.balance != friend.balance:
            result = await self.friends.update_one(
                {"_id": friend.id, "balance": friend.balance},
                {"$set": {"balance": commit.friend.balance}},
                session=session
            )
            if result.matched_count == 0:
                raise _ConditionalWriteMissed(f"friend {friend.id} balance")

        return commit

    async def _run_in_transaction(self, unit, label: str):
        """Run ``unit(session)`` in a Mongo transaction with bounded retries."""
        for attempt in range(1, self.max_retries + 1):
            try:
                async with await self.db.client.start_session() as session:
                    async with session.start_transaction():
                        return await unit(session)
            except _ConditionalWriteMissed as exc:
                logger.warning("Conflict on %s (%s), attempt %d/%d", label, exc, attempt, self.max_retries)
            except PyMongoError as exc:
                if not exc.has_error_label("TransientTransactionError"):
                    raise StoreUnavailable(f"{label} failed: {exc}") from exc
                logger.warning("Transient error on %s, attempt %d/%d: %s", label, attempt, self.max_retries, exc)

        raise StoreUnavailable(f"{label} did not commit after {self.max_retries} attempts")

    # ===== BILLS =====

    async def insert_bill(self, bill: Bill) -> Bill:
        try:
            await self.bills.insert_one(bill.to_document())
        except PyMongoError as exc:
            raise StoreUnavailable(f"Could not archive bill: {exc}") from exc
        await self._notify_commit(frozenset({BILLS}))
        return bill

    async def list_bills(self) -> List[Bill]:
        docs = await self.bills.find({}).sort(NEWEST_FIRST).to_list(None)
        return [Bill(**doc) for doc in docs]
