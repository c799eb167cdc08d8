"""
Change feed - push snapshots of friends and transactions to observers.

Each subscription receives the full current snapshot of its collection when
it registers and again after every commit that touches that collection.
Friend and transaction streams are independent; callers that need both
join them on friend id themselves.
"""

import inspect
import logging
from typing import Any, Callable, FrozenSet, List, Optional

from debtledger.models.friend import Friend
from debtledger.models.transaction import Transaction
from debtledger.repositories.store import FRIENDS, TRANSACTIONS, LedgerStore

logger = logging.getLogger(__name__)

Callback = Callable[[list], Any]


class Subscription:
    """Handle returned by subscribe_*; ``cancel()`` stops delivery."""

    def __init__(self, feed: "ChangeFeed", topic: str, callback: Callback, friend_id: Optional[str] = None):
        self._feed = feed
        self.topic = topic
        self.callback = callback
        self.friend_id = friend_id
        self.active = True

    def cancel(self) -> None:
        if self.active:
            self.active = False
            self._feed._remove(self)


class ChangeFeed:
    def __init__(self, store: LedgerStore):
        self.store = store
        self._subscriptions: List[Subscription] = []
        self._detach = store.add_commit_listener(self._on_commit)

    async def subscribe_friends(self, callback: Callback) -> Subscription:
        """Observe all friends (ordered by name)."""
        subscription = Subscription(self, FRIENDS, callback)
        self._subscriptions.append(subscription)
        await self._deliver(subscription, await self.store.list_friends())
        return subscription

    async def subscribe_transactions(self, callback: Callback, friend_id: Optional[str] = None) -> Subscription:
        """Observe transactions newest first, optionally only one friend's."""
        subscription = Subscription(self, TRANSACTIONS, callback, friend_id)
        self._subscriptions.append(subscription)
        await self._deliver(subscription, await self._transactions_for(friend_id))
        return subscription

    async def publish_friends(self) -> None:
        subscribers = self._active(FRIENDS)
        if not subscribers:
            return
        friends = await self.store.list_friends()
        for subscription in subscribers:
            await self._deliver(subscription, friends)

    async def publish_transactions(self) -> None:
        subscribers = self._active(TRANSACTIONS)
        if not subscribers:
            return
        everything = await self.store.list_transactions()
        for subscription in subscribers:
            if subscription.friend_id is None:
                snapshot = everything
            else:
                snapshot = self._scoped(everything, subscription.friend_id)
            await self._deliver(subscription, snapshot)

    def close(self) -> None:
        for subscription in list(self._subscriptions):
            subscription.cancel()
        self._detach()

    async def _on_commit(self, collections: FrozenSet[str]) -> None:
        if FRIENDS in collections:
            await self.publish_friends()
        if TRANSACTIONS in collections:
            await self.publish_transactions()

    async def _transactions_for(self, friend_id: Optional[str]) -> List[Transaction]:
        if friend_id is None:
            return await self.store.list_transactions()
        return self._scoped(await self.store.list_transactions(friend_id), friend_id)

    @staticmethod
    def _scoped(transactions: List[Transaction], friend_id: str) -> List[Transaction]:
        scoped = [tx for tx in transactions if tx.friend_id == friend_id]
        return sorted(scoped, key=lambda tx: (tx.date, tx.created_at), reverse=True)

    def _active(self, topic: str) -> List[Subscription]:
        return [s for s in self._subscriptions if s.topic == topic and s.active]

    def _remove(self, subscription: Subscription) -> None:
        if subscription in self._subscriptions:
            self._subscriptions.remove(subscription)

    async def _deliver(self, subscription: Subscription, snapshot: list) -> None:
        if not subscription.active:
            return
        try:
            result = subscription.callback(list(snapshot))
            if inspect.isawaitable(result):
                await result
        except Exception:
            logger.exception("Subscriber to %s failed", subscription.topic)
