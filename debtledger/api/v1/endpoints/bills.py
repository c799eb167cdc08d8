from typing import List

from fastapi import APIRouter, Depends, Response, status

from debtledger.api.deps import get_split_service
from debtledger.core.auth import get_current_admin
from debtledger.schemas.bill import AllocationResponse, BillResponse, SplitRequest, SplitResponse, SplitRetryRequest
from debtledger.services.split_service import SplitOutcome, SplitService, allocate, bill_totals
from debtledger.utils.bill_validation import validate_charges, validate_items

router = APIRouter(dependencies=[Depends(get_current_admin)])


@router.post("/allocate", response_model=AllocationResponse)
async def preview_allocation(split: SplitRequest):
    """Preview each friend's share without writing anything"""
    validate_items(split.items)
    validate_charges(subtotal=split.subtotal, tax=split.tax, service_charge=split.service_charge, total=split.total)

    totals = bill_totals(split.items, split.subtotal, split.tax, split.service_charge, split.total)
    return AllocationResponse(
        allocations=allocate(split.items, split.subtotal, split.tax, split.service_charge, split.total),
        subtotal=totals.subtotal,
        total=totals.total,
        multiplier=totals.multiplier,
        unassigned_items=[item.name for item in split.items if not item.assigned_to]
    )


@router.post("/split", response_model=SplitResponse)
async def split_bill(
    split: SplitRequest,
    response: Response,
    splitter: SplitService = Depends(get_split_service)
):
    """Charge every assignee their share and archive the bill"""
    outcome = await splitter.finalize(
        split.title,
        split.items,
        subtotal=split.subtotal,
        tax=split.tax,
        service_charge=split.service_charge,
        total=split.total,
        date=split.date
    )
    return split_response(outcome, response)


@router.post("/split/retry", response_model=SplitResponse)
async def retry_split(
    split: SplitRetryRequest,
    response: Response,
    splitter: SplitService = Depends(get_split_service)
):
    """Charge only the friends a previous split reported as failed"""
    outcome = await splitter.resume(
        split.title,
        split.items,
        split.failed,
        bill_id=split.bill_id,
        subtotal=split.subtotal,
        tax=split.tax,
        service_charge=split.service_charge,
        total=split.total,
        date=split.date
    )
    return split_response(outcome, response)


@router.get("/", response_model=List[BillResponse])
async def list_bills(splitter: SplitService = Depends(get_split_service)):
    return await splitter.list_bills()


def split_response(outcome: SplitOutcome, response: Response) -> SplitResponse:
    if not outcome.complete:
        response.status_code = status.HTTP_207_MULTI_STATUS

    return SplitResponse(
        bill_id=outcome.bill.id if outcome.bill else None,
        date=outcome.date,
        allocations=outcome.allocations,
        transaction_ids={fid: tx.id for fid, tx in outcome.recorded.items()},
        failed=outcome.failed,
        bill_error=outcome.bill_error,
        complete=outcome.complete
    )
