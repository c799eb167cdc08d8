from typing import List

from fastapi import APIRouter, Depends, status

from debtledger.api.deps import get_ledger_service
from debtledger.core.auth import get_current_friend
from debtledger.models.friend import Friend
from debtledger.models.transaction import TransactionType
from debtledger.schemas.friend import PortalFriendResponse
from debtledger.schemas.transaction import PaymentSubmit, PortalTransactionResponse, TransactionResponse
from debtledger.services.ledger_service import LedgerService
from debtledger.services.settlement_service import unsettled_expense_ids

router = APIRouter()


@router.get("/me", response_model=PortalFriendResponse)
async def my_balance(friend: Friend = Depends(get_current_friend)):
    return friend


@router.get("/transactions", response_model=List[PortalTransactionResponse])
async def my_transactions(
    friend: Friend = Depends(get_current_friend),
    ledger: LedgerService = Depends(get_ledger_service)
):
    """Own history newest first; open expenses are flagged ``unsettled``"""
    history = await ledger.history(friend.id)
    open_ids = unsettled_expense_ids(history)
    return [
        PortalTransactionResponse(
            **TransactionResponse.model_validate(tx).model_dump(),
            unsettled=tx.type == TransactionType.EXPENSE and tx.id in open_ids
        )
        for tx in history
    ]


@router.post("/payments", response_model=TransactionResponse, status_code=status.HTTP_201_CREATED)
async def submit_payment(
    payment: PaymentSubmit,
    friend: Friend = Depends(get_current_friend),
    ledger: LedgerService = Depends(get_ledger_service)
):
    """Submit a payment with proof; it waits for owner approval"""
    return await ledger.submit_payment(
        friend.id,
        payment.amount,
        payment.description,
        payment.proof_image
    )
