import logging
from datetime import datetime
from typing import List, Optional

from debtledger.core.errors import FriendNotFound, ProofRequired
from debtledger.models.friend import Friend
from debtledger.models.transaction import Transaction, TransactionStatus, TransactionType
from debtledger.repositories.store import LedgerStore, LedgerWrite
from debtledger.services.transaction_status import initial_delta, is_noop, status_delta
from debtledger.utils.money import round2, validate_amount

logger = logging.getLogger(__name__)

SETTLE_UP_DESCRIPTION = "Manual Settle Up (Admin)"


class LedgerService:
    """
    Balance-mutating operations.

    Every method that can move a balance goes through ``store.apply`` so the
    transaction write and the balance change commit together or not at all.
    """

    def __init__(self, store: LedgerStore):
        self.store = store

    async def record_transaction(
        self,
        friend_id: str,
        amount,
        type: TransactionType,
        description: str,
        status: TransactionStatus = TransactionStatus.APPROVED,
        proof_image: Optional[str] = None,
        date: Optional[datetime] = None,
    ) -> Transaction:
        """
        Append a transaction for a friend.

        The balance moves only when the entry is created APPROVED.
        Raises InvalidAmount, FriendNotFound or StoreUnavailable.
        """
        fields = dict(
            friend_id=friend_id,
            amount=validate_amount(amount),
            type=TransactionType(type),
            status=TransactionStatus(status),
            description=description,
            proof_image=proof_image or None,
        )
        if date is not None:
            fields["date"] = date
        transaction = Transaction(**fields)

        def mutate(friend: Friend, _existing) -> LedgerWrite:
            return LedgerWrite(
                insert_transaction=transaction,
                balance_delta=initial_delta(transaction),
            )

        commit = await self.store.apply(friend_id, None, mutate)
        logger.info(
            "Recorded %s %s of %.2f for friend %s (balance %.2f)",
            transaction.status.value, transaction.type.value, transaction.amount,
            friend_id, commit.friend.balance
        )
        return commit.transaction

    async def submit_payment(
        self,
        friend_id: str,
        amount,
        description: str,
        proof_image: Optional[str],
    ) -> Transaction:
        """Friend self-service payment: PENDING until the owner approves it."""
        if not proof_image:
            raise ProofRequired("Proof of payment is required")
        return await self.record_transaction(
            friend_id,
            amount,
            TransactionType.PAYMENT,
            description or "Manual Payment",
            status=TransactionStatus.PENDING,
            proof_image=proof_image,
        )

    async def set_status(self, transaction_id: str, new_status: TransactionStatus) -> Transaction:
        """
        Move a transaction to ``new_status`` and apply the implied balance delta.

        Same-status requests change nothing and are not errors.
        Raises TransactionNotFound, FriendNotFound or StoreUnavailable.
        """
        new_status = TransactionStatus(new_status)

        def mutate(friend: Friend, transaction: Transaction) -> Optional[LedgerWrite]:
            if is_noop(transaction.status, new_status):
                return None
            return LedgerWrite(
                new_status=new_status,
                balance_delta=status_delta(transaction, transaction.status, new_status),
            )

        commit = await self.store.apply(None, transaction_id, mutate)
        if commit is None:
            transaction = await self.store.get_transaction(transaction_id)
            logger.debug("Transaction %s already %s", transaction_id, new_status.value)
            return transaction

        logger.info(
            "Transaction %s -> %s (friend %s balance %.2f)",
            transaction_id, new_status.value, commit.friend.id, commit.friend.balance
        )
        return commit.transaction

    async def approve(self, transaction_id: str) -> Transaction:
        return await self.set_status(transaction_id, TransactionStatus.APPROVED)

    async def reject(self, transaction_id: str) -> Transaction:
        return await self.set_status(transaction_id, TransactionStatus.REJECTED)

    async def settle_debt(self, friend_id: str) -> Optional[Transaction]:
        """
        Record an approved payment for the friend's whole positive balance.

        Returns the payment, or None when the friend owes nothing.
        """
        def mutate(friend: Friend, _existing) -> Optional[LedgerWrite]:
            if friend.balance <= 0:
                return None
            payment = Transaction(
                friend_id=friend.id,
                amount=round2(friend.balance),
                type=TransactionType.PAYMENT,
                status=TransactionStatus.APPROVED,
                description=SETTLE_UP_DESCRIPTION,
            )
            return LedgerWrite(insert_transaction=payment, balance_delta=-friend.balance)

        commit = await self.store.apply(friend_id, None, mutate)
        if commit is None:
            logger.info("Friend %s has nothing to settle", friend_id)
            return None

        logger.info("Settled %.2f for friend %s", commit.transaction.amount, friend_id)
        return commit.transaction

    async def history(self, friend_id: str) -> List[Transaction]:
        """A friend's transactions, newest first."""
        if await self.store.get_friend(friend_id) is None:
            raise FriendNotFound(friend_id)
        return await self.store.list_transactions(friend_id)
