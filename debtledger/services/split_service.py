"""
Bill splitting.

Surcharges (tax, service charge) are spread proportionally, not evenly: the
bill total is divided by the subtotal to get one multiplier, and every
item's cost is scaled by it before being shared evenly among the friends it
is assigned to. Whoever ordered the pricier item absorbs more of the
surcharge.

Finalizing a split writes one EXPENSE per assignee. Those writes are
independent ledger units; if some fail the rest stay committed, and
``retry_failed`` re-runs only the failures so nobody is charged twice.
A client holding only the 207 response can do the same with ``resume``,
which rebuilds the split from the request and charges just the listed
friends.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Sequence

from debtledger.core.errors import BillValidationError, LedgerError
from debtledger.models.base import utcnow
from debtledger.models.bill import ADMIN_PAYER, Bill, BillItem
from debtledger.models.transaction import Transaction, TransactionType
from debtledger.repositories.store import LedgerStore
from debtledger.services.ledger_service import LedgerService
from debtledger.utils.bill_validation import calculate_subtotal, validate_charges, validate_items
from debtledger.utils.money import round2

logger = logging.getLogger(__name__)


@dataclass
class BillTotals:
    calc_subtotal: float
    subtotal: float
    total: float
    multiplier: float


def bill_totals(
    items: Sequence[BillItem],
    subtotal_hint: float = 0,
    tax: float = 0,
    service_charge: float = 0,
    total_hint: float = 0,
) -> BillTotals:
    """
    Effective subtotal/total and the surcharge multiplier.

    Hints from the receipt win when positive; otherwise the subtotal is
    computed from the items and the total from subtotal + surcharges.
    """
    calc_subtotal = calculate_subtotal(items)
    subtotal = subtotal_hint if subtotal_hint > 0 else calc_subtotal
    total = total_hint if total_hint > 0 else subtotal + tax + service_charge
    multiplier = total / subtotal if subtotal > 0 else 1
    return BillTotals(calc_subtotal=calc_subtotal, subtotal=subtotal, total=total, multiplier=multiplier)


def allocate(
    items: Sequence[BillItem],
    subtotal_hint: float = 0,
    tax: float = 0,
    service_charge: float = 0,
    total_hint: float = 0,
) -> Dict[str, float]:
    """
    Amount each assigned friend owes for the bill.

    Unassigned items are skipped (logged, not an error). Amounts are rounded
    to the minor unit; friends whose amount rounds to zero are left out.
    """
    totals = bill_totals(items, subtotal_hint, tax, service_charge, total_hint)

    owed: Dict[str, float] = {}
    for item in items:
        if not item.assigned_to:
            logger.warning("Item '%s' is not assigned to anyone; excluded from split", item.name)
            continue

        item_cost = item.price * item.quantity * totals.multiplier
        per_person = item_cost / len(item.assigned_to)
        for friend_id in item.assigned_to:
            owed[friend_id] = owed.get(friend_id, 0.0) + per_person

    allocations = {}
    for friend_id, amount in owed.items():
        amount = round2(amount)
        if amount > 0:
            allocations[friend_id] = amount
    return allocations


@dataclass
class SplitOutcome:
    """Result of finalizing a split; ``failed`` maps friend id to error."""
    title: str
    description: str
    date: datetime
    allocations: Dict[str, float]
    recorded: Dict[str, Transaction] = field(default_factory=dict)
    failed: Dict[str, str] = field(default_factory=dict)
    bill: Optional[Bill] = None
    bill_error: Optional[str] = None
    pending_bill: Optional[Bill] = None

    @property
    def complete(self) -> bool:
        return not self.failed and self.bill is not None


class SplitService:
    def __init__(self, store: LedgerStore, ledger: Optional[LedgerService] = None):
        self.store = store
        self.ledger = ledger or LedgerService(store)

    def plan(
        self,
        title: str,
        items: List[BillItem],
        subtotal: float = 0,
        tax: float = 0,
        service_charge: float = 0,
        total: float = 0,
        payer_id: str = ADMIN_PAYER,
        date: Optional[datetime] = None,
    ) -> SplitOutcome:
        """Validate the bill and work out the shares; nothing is written."""
        validate_items(items)
        validate_charges(subtotal=subtotal, tax=tax, service_charge=service_charge, total=total)

        totals = bill_totals(items, subtotal, tax, service_charge, total)
        allocations = allocate(items, subtotal, tax, service_charge, total)
        date = date or utcnow()

        return SplitOutcome(
            title=title,
            description=f"Split Bill: {title}",
            date=date,
            allocations=allocations,
            pending_bill=Bill(
                date=date,
                title=title,
                items=items,
                subtotal=totals.subtotal,
                tax=tax,
                service_charge=service_charge,
                total=totals.total,
                payer_id=payer_id,
            ),
        )

    async def finalize(
        self,
        title: str,
        items: List[BillItem],
        subtotal: float = 0,
        tax: float = 0,
        service_charge: float = 0,
        total: float = 0,
        payer_id: str = ADMIN_PAYER,
        date: Optional[datetime] = None,
    ) -> SplitOutcome:
        """
        Charge every assignee their share and archive the bill.

        Raises BillValidationError before anything is written; ledger
        failures afterwards are reported per friend in the outcome.
        """
        outcome = self.plan(title, items, subtotal, tax, service_charge, total, payer_id, date)

        await self._record(outcome, outcome.allocations.keys())
        await self._archive(outcome)
        return outcome

    async def resume(
        self,
        title: str,
        items: List[BillItem],
        failed: Iterable[str],
        bill_id: Optional[str] = None,
        subtotal: float = 0,
        tax: float = 0,
        service_charge: float = 0,
        total: float = 0,
        payer_id: str = ADMIN_PAYER,
        date: Optional[datetime] = None,
    ) -> SplitOutcome:
        """
        Finish a split that came back incomplete, from a fresh request.

        Only the friends in ``failed`` are charged; everyone else already
        was. The bill is archived unless ``bill_id`` says it already is.
        Pass the ``date`` of the first attempt so the entries line up.
        """
        outcome = self.plan(title, items, subtotal, tax, service_charge, total, payer_id, date)

        failed = list(dict.fromkeys(failed))
        unknown = [fid for fid in failed if fid not in outcome.allocations]
        if unknown:
            raise BillValidationError(f"No share in this bill for: {', '.join(unknown)}")

        outcome.failed = {fid: "retrying" for fid in failed}
        if bill_id:
            outcome.bill = outcome.pending_bill.model_copy(update={"id": bill_id})

        return await self.retry_failed(outcome)

    async def retry_failed(self, outcome: SplitOutcome) -> SplitOutcome:
        """Re-run only the assignees (and bill archive) that failed."""
        retry_ids = list(outcome.failed)
        for friend_id in retry_ids:
            del outcome.failed[friend_id]

        if retry_ids:
            logger.info("Retrying split '%s' for %s", outcome.title, retry_ids)
            await self._record(outcome, retry_ids)
        if outcome.bill is None:
            await self._archive(outcome)
        return outcome

    async def list_bills(self) -> List[Bill]:
        return await self.store.list_bills()

    async def _record(self, outcome: SplitOutcome, friend_ids: Iterable[str]) -> None:
        friend_ids = [fid for fid in friend_ids if fid not in outcome.recorded]
        results = await asyncio.gather(
            *(
                self.ledger.record_transaction(
                    friend_id,
                    outcome.allocations[friend_id],
                    TransactionType.EXPENSE,
                    outcome.description,
                    date=outcome.date,
                )
                for friend_id in friend_ids
            ),
            return_exceptions=True,
        )

        for friend_id, result in zip(friend_ids, results):
            if isinstance(result, Transaction):
                outcome.recorded[friend_id] = result
                logger.info(
                    "Split '%s': charged %s %.2f", outcome.title, friend_id, result.amount
                )
            elif isinstance(result, LedgerError):
                outcome.failed[friend_id] = str(result)
                logger.error("Split '%s': charging %s failed: %s", outcome.title, friend_id, result)
            elif isinstance(result, Exception):
                outcome.failed[friend_id] = repr(result)
                logger.error(
                    "Split '%s': charging %s failed", outcome.title, friend_id, exc_info=result
                )
            else:
                raise result

    async def _archive(self, outcome: SplitOutcome) -> None:
        try:
            outcome.bill = await self.store.insert_bill(outcome.pending_bill)
            outcome.bill_error = None
        except LedgerError as exc:
            outcome.bill_error = str(exc)
            logger.error("Split '%s': archiving bill failed: %s", outcome.title, exc)
