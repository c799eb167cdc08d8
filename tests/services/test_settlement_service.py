import pytest

from debtledger.models.transaction import Transaction, TransactionStatus, TransactionType
from debtledger.services.settlement_service import open_expenses, outstanding_total, unsettled_expense_ids
from debtledger.services.transaction_status import balance_from_history

EXPENSE = TransactionType.EXPENSE
PAYMENT = TransactionType.PAYMENT


def make_tx(at, minute, amount, type=EXPENSE, status=TransactionStatus.APPROVED, id=None):
    fields = dict(friend_id="f1", amount=amount, type=type, status=status, date=at(minute))
    if id:
        fields["id"] = id
    return Transaction(**fields)


def test_partial_payment_leaves_second_expense_open(at):
    history = [
        make_tx(at, 0, 100, id="e1"),
        make_tx(at, 1, 50, id="e2"),
        make_tx(at, 2, 120, type=PAYMENT, id="p1"),
    ]

    remaining = open_expenses(history)

    assert [(e.id, e.remaining) for e in remaining] == [("e2", 30.0)]
    assert outstanding_total(history) == 30.0
    assert balance_from_history(history) == 30.0


def test_history_order_does_not_matter(at):
    history = [
        make_tx(at, 2, 120, type=PAYMENT, id="p1"),
        make_tx(at, 1, 50, id="e2"),
        make_tx(at, 0, 100, id="e1"),
    ]
    assert unsettled_expense_ids(history) == {"e2"}


def test_overpayment_is_not_carried_forward(at):
    history = [
        make_tx(at, 0, 20, id="e1"),
        make_tx(at, 1, 50, type=PAYMENT),
        make_tx(at, 2, 10, id="e2"),
    ]

    assert unsettled_expense_ids(history) == {"e2"}
    assert outstanding_total(history) == 10.0


def test_pending_and_rejected_payments_consume_nothing(at):
    history = [
        make_tx(at, 0, 40, id="e1"),
        make_tx(at, 1, 40, type=PAYMENT, status=TransactionStatus.PENDING),
        make_tx(at, 2, 40, type=PAYMENT, status=TransactionStatus.REJECTED),
    ]

    assert unsettled_expense_ids(history) == {"e1"}
    assert outstanding_total(history) == 40.0


def test_rejected_expense_is_never_open(at):
    history = [
        make_tx(at, 0, 40, status=TransactionStatus.REJECTED, id="e1"),
        make_tx(at, 1, 15, id="e2"),
    ]
    assert unsettled_expense_ids(history) == {"e2"}


def test_exact_payment_clears_queue(at):
    history = [
        make_tx(at, 0, 33.33, id="e1"),
        make_tx(at, 1, 16.67, id="e2"),
        make_tx(at, 2, 50, type=PAYMENT),
    ]
    assert open_expenses(history) == []
    assert outstanding_total(history) == 0.0


def test_empty_history():
    assert open_expenses([]) == []
    assert outstanding_total([]) == 0.0


@pytest.mark.asyncio
async def test_outstanding_matches_stored_balance(store, ledger, alice, at):
    await ledger.record_transaction(alice.id, 100, EXPENSE, "A", date=at(0))
    await ledger.record_transaction(alice.id, 50, EXPENSE, "B", date=at(1))
    await ledger.record_transaction(alice.id, 120, PAYMENT, "Pay", date=at(2))

    history = await ledger.history(alice.id)
    stored = (await store.get_friend(alice.id)).balance

    assert stored == 30.0
    assert outstanding_total(history) == stored


def test_same_date_entries_follow_creation_order(at):
    expense = Transaction(
        friend_id="f1", amount=20, type=EXPENSE, date=at(0), created_at=at(0), id="e1"
    )
    second_expense = Transaction(
        friend_id="f1", amount=10, type=EXPENSE, date=at(5), created_at=at(5), id="e2"
    )
    payment = Transaction(
        friend_id="f1", amount=30, type=PAYMENT, date=at(5), created_at=at(6), id="p1"
    )

    # The payment is listed first but was entered after the second expense.
    history = [payment, second_expense, expense]

    assert unsettled_expense_ids(history) == set()
    assert outstanding_total(history) == 0
