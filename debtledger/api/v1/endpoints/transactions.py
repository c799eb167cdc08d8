from typing import List, Optional

from fastapi import APIRouter, Depends, status

from debtledger.api.deps import get_ledger_service
from debtledger.core.auth import get_current_admin
from debtledger.schemas.transaction import StatusUpdate, TransactionCreate, TransactionResponse
from debtledger.services.ledger_service import LedgerService

router = APIRouter(dependencies=[Depends(get_current_admin)])


@router.get("/", response_model=List[TransactionResponse])
async def list_transactions(
    friend_id: Optional[str] = None,
    ledger: LedgerService = Depends(get_ledger_service)
):
    """List transactions newest first, optionally for one friend"""
    if friend_id:
        return await ledger.history(friend_id)
    return await ledger.store.list_transactions()


@router.post("/", response_model=TransactionResponse, status_code=status.HTTP_201_CREATED)
async def create_transaction(
    tx_in: TransactionCreate,
    ledger: LedgerService = Depends(get_ledger_service)
):
    """Record an owner-entered expense or payment"""
    return await ledger.record_transaction(
        tx_in.friend_id,
        tx_in.amount,
        tx_in.type,
        tx_in.description or "Manual Debt",
        status=tx_in.status,
        date=tx_in.date
    )


@router.patch("/{transaction_id}/status", response_model=TransactionResponse)
async def update_status(
    transaction_id: str,
    update: StatusUpdate,
    ledger: LedgerService = Depends(get_ledger_service)
):
    """Approve, reject or reopen a transaction"""
    return await ledger.set_status(transaction_id, update.status)
