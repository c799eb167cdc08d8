import pytest

from debtledger.models.transaction import TransactionType
from debtledger.services.change_feed import ChangeFeed


@pytest.mark.asyncio
async def test_friend_subscription_gets_initial_and_updates(store, friends, alice):
    feed = ChangeFeed(store)
    snapshots = []

    await feed.subscribe_friends(snapshots.append)
    await friends.create("Zed")

    assert [f.name for f in snapshots[0]] == ["Alice"]
    assert [f.name for f in snapshots[-1]] == ["Alice", "Zed"]


@pytest.mark.asyncio
async def test_balance_change_pushes_friend_snapshot(store, ledger, alice):
    feed = ChangeFeed(store)
    snapshots = []
    await feed.subscribe_friends(snapshots.append)

    await ledger.record_transaction(alice.id, 12, TransactionType.EXPENSE, "Tea")

    assert snapshots[-1][0].balance == 12


@pytest.mark.asyncio
async def test_scoped_transaction_subscription(store, ledger, alice, bob, at):
    feed = ChangeFeed(store)
    seen = []

    await feed.subscribe_transactions(seen.append, friend_id=alice.id)
    await ledger.record_transaction(alice.id, 1, TransactionType.EXPENSE, "old", date=at(0))
    await ledger.record_transaction(bob.id, 2, TransactionType.EXPENSE, "bob's", date=at(1))
    await ledger.record_transaction(alice.id, 3, TransactionType.EXPENSE, "new", date=at(2))

    assert seen[0] == []
    assert [tx.description for tx in seen[-1]] == ["new", "old"]
    assert all(tx.friend_id == alice.id for snapshot in seen for tx in snapshot)


@pytest.mark.asyncio
async def test_async_callback(store, ledger, alice):
    feed = ChangeFeed(store)
    seen = []

    async def on_change(snapshot):
        seen.append(len(snapshot))

    await feed.subscribe_transactions(on_change)
    await ledger.record_transaction(alice.id, 5, TransactionType.EXPENSE, "x")

    assert seen == [0, 1]


@pytest.mark.asyncio
async def test_cancel_stops_delivery(store, friends):
    feed = ChangeFeed(store)
    snapshots = []

    subscription = await feed.subscribe_friends(snapshots.append)
    subscription.cancel()
    await friends.create("Late")

    assert len(snapshots) == 1
    assert not subscription.active


@pytest.mark.asyncio
async def test_failing_subscriber_does_not_break_writes(store, ledger, alice):
    feed = ChangeFeed(store)
    healthy = []

    def broken(snapshot):
        raise RuntimeError("observer bug")

    await feed.subscribe_friends(broken)
    await feed.subscribe_friends(healthy.append)

    await ledger.record_transaction(alice.id, 9, TransactionType.EXPENSE, "Still works")

    assert (await store.get_friend(alice.id)).balance == 9
    assert healthy[-1][0].balance == 9


@pytest.mark.asyncio
async def test_close_detaches_from_store(store, friends):
    feed = ChangeFeed(store)
    snapshots = []
    await feed.subscribe_friends(snapshots.append)

    feed.close()
    await friends.create("After close")

    assert len(snapshots) == 1
