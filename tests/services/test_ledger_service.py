import asyncio

import pytest

from debtledger.core.errors import FriendNotFound, InvalidAmount, ProofRequired, TransactionNotFound
from debtledger.models.transaction import TransactionStatus, TransactionType
from debtledger.services.ledger_service import SETTLE_UP_DESCRIPTION
from debtledger.services.transaction_status import balance_from_history


async def balance_of(store, friend):
    return (await store.get_friend(friend.id)).balance


@pytest.mark.asyncio
async def test_record_expense_moves_balance(store, ledger, alice):
    tx = await ledger.record_transaction(alice.id, 50000, TransactionType.EXPENSE, "Dinner")

    assert tx.status == TransactionStatus.APPROVED
    assert tx.amount == 50000
    assert await balance_of(store, alice) == 50000
    assert len(await store.list_transactions(alice.id)) == 1


@pytest.mark.asyncio
async def test_pending_payment_then_approve(store, ledger, alice):
    await ledger.record_transaction(alice.id, 50000, TransactionType.EXPENSE, "Dinner")

    payment = await ledger.submit_payment(alice.id, 50000, "Bank transfer", "data:image/png;base64,AAAA")
    assert payment.status == TransactionStatus.PENDING
    assert payment.type == TransactionType.PAYMENT
    assert await balance_of(store, alice) == 50000

    approved = await ledger.approve(payment.id)
    assert approved.status == TransactionStatus.APPROVED
    assert await balance_of(store, alice) == 0


@pytest.mark.asyncio
async def test_submit_payment_requires_proof(store, ledger, alice):
    with pytest.raises(ProofRequired):
        await ledger.submit_payment(alice.id, 10, "No proof", None)
    with pytest.raises(ProofRequired):
        await ledger.submit_payment(alice.id, 10, "Empty proof", "")
    assert await store.list_transactions(alice.id) == []


@pytest.mark.asyncio
async def test_submit_payment_default_description(ledger, alice):
    payment = await ledger.submit_payment(alice.id, 10, "", "proof")
    assert payment.description == "Manual Payment"


@pytest.mark.asyncio
async def test_status_round_trip_restores_balance(store, ledger, alice):
    tx = await ledger.record_transaction(alice.id, 80, TransactionType.EXPENSE, "Taxi")
    assert await balance_of(store, alice) == 80

    await ledger.reject(tx.id)
    assert await balance_of(store, alice) == 0

    await ledger.approve(tx.id)
    assert await balance_of(store, alice) == 80

    await ledger.set_status(tx.id, TransactionStatus.PENDING)
    assert await balance_of(store, alice) == 0

    await ledger.set_status(tx.id, TransactionStatus.REJECTED)
    assert await balance_of(store, alice) == 0


@pytest.mark.asyncio
async def test_same_status_is_noop(store, ledger, alice):
    tx = await ledger.record_transaction(alice.id, 25, TransactionType.EXPENSE, "Coffee")

    await ledger.approve(tx.id)
    again = await ledger.approve(tx.id)

    assert again.id == tx.id
    assert again.status == TransactionStatus.APPROVED
    assert await balance_of(store, alice) == 25


@pytest.mark.asyncio
async def test_reject_pending_payment_changes_nothing(store, ledger, alice):
    await ledger.record_transaction(alice.id, 40, TransactionType.EXPENSE, "Lunch")
    payment = await ledger.submit_payment(alice.id, 40, "", "proof")

    rejected = await ledger.reject(payment.id)

    assert rejected.status == TransactionStatus.REJECTED
    assert await balance_of(store, alice) == 40


@pytest.mark.asyncio
async def test_pending_expense_does_not_move_balance(store, ledger, alice):
    tx = await ledger.record_transaction(
        alice.id, 15, TransactionType.EXPENSE, "Maybe", status=TransactionStatus.PENDING
    )
    assert await balance_of(store, alice) == 0

    await ledger.approve(tx.id)
    assert await balance_of(store, alice) == 15


@pytest.mark.asyncio
async def test_record_rejects_invalid_amounts(store, ledger, alice):
    for amount in (0, -10, "abc", float("nan"), float("inf"), 1e30):
        with pytest.raises(InvalidAmount):
            await ledger.record_transaction(alice.id, amount, TransactionType.EXPENSE, "Bad")
    assert await store.list_transactions(alice.id) == []
    assert await balance_of(store, alice) == 0


@pytest.mark.asyncio
async def test_record_for_missing_friend(ledger):
    with pytest.raises(FriendNotFound):
        await ledger.record_transaction("missing", 10, TransactionType.EXPENSE, "Ghost")


@pytest.mark.asyncio
async def test_set_status_missing_transaction(ledger):
    with pytest.raises(TransactionNotFound):
        await ledger.approve("missing")


@pytest.mark.asyncio
async def test_concurrent_writes_do_not_lose_updates(store, ledger, alice):
    await asyncio.gather(*(
        ledger.record_transaction(alice.id, 10, TransactionType.EXPENSE, f"Round {i}")
        for i in range(20)
    ))
    assert await balance_of(store, alice) == 200
    assert len(await store.list_transactions(alice.id)) == 20


@pytest.mark.asyncio
async def test_concurrent_approvals_apply_once(store, ledger, alice):
    tx = await ledger.record_transaction(
        alice.id, 30, TransactionType.EXPENSE, "Pending", status=TransactionStatus.PENDING
    )

    await asyncio.gather(*(ledger.approve(tx.id) for _ in range(5)))

    assert await balance_of(store, alice) == 30


@pytest.mark.asyncio
async def test_settle_debt(store, ledger, alice):
    await ledger.record_transaction(alice.id, 33.33, TransactionType.EXPENSE, "Snacks")
    await ledger.record_transaction(alice.id, 16.67, TransactionType.EXPENSE, "Drinks")

    payment = await ledger.settle_debt(alice.id)

    assert payment.type == TransactionType.PAYMENT
    assert payment.status == TransactionStatus.APPROVED
    assert payment.amount == 50.0
    assert payment.description == SETTLE_UP_DESCRIPTION
    assert await balance_of(store, alice) == 0


@pytest.mark.asyncio
async def test_settle_debt_nothing_owed(store, ledger, alice):
    assert await ledger.settle_debt(alice.id) is None
    assert await store.list_transactions(alice.id) == []


@pytest.mark.asyncio
async def test_balance_matches_history(store, ledger, alice):
    tx1 = await ledger.record_transaction(alice.id, 100, TransactionType.EXPENSE, "A")
    await ledger.record_transaction(alice.id, 19.99, TransactionType.EXPENSE, "B")
    pay = await ledger.submit_payment(alice.id, 60, "", "proof")
    await ledger.approve(pay.id)
    await ledger.reject(tx1.id)
    await ledger.record_transaction(alice.id, 0.01, TransactionType.PAYMENT, "C")

    history = await ledger.history(alice.id)
    assert balance_from_history(history) == pytest.approx(await balance_of(store, alice))


@pytest.mark.asyncio
async def test_history_newest_first(ledger, alice, at):
    await ledger.record_transaction(alice.id, 1, TransactionType.EXPENSE, "old", date=at(0))
    await ledger.record_transaction(alice.id, 2, TransactionType.EXPENSE, "new", date=at(5))

    history = await ledger.history(alice.id)

    assert [tx.description for tx in history] == ["new", "old"]


@pytest.mark.asyncio
async def test_history_missing_friend(ledger):
    with pytest.raises(FriendNotFound):
        await ledger.history("missing")
