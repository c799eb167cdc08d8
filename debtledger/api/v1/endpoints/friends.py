from typing import List, Optional

from fastapi import APIRouter, Depends, status

from debtledger.api.deps import get_friend_service, get_ledger_service
from debtledger.core.auth import get_current_admin
from debtledger.schemas.friend import BalanceAudit, FriendCreate, FriendResponse
from debtledger.schemas.transaction import OpenExpenseResponse, TransactionResponse, UnsettledResponse
from debtledger.services.friend_service import FriendService
from debtledger.services.ledger_service import LedgerService
from debtledger.services.settlement_service import open_expenses, outstanding_total
from debtledger.services.transaction_status import balance_from_history
from debtledger.utils.money import is_negligible

router = APIRouter(dependencies=[Depends(get_current_admin)])


@router.get("/", response_model=List[FriendResponse])
async def list_friends(friends: FriendService = Depends(get_friend_service)):
    """List all friends ordered by name"""
    return await friends.list()


@router.post("/", response_model=FriendResponse, status_code=status.HTTP_201_CREATED)
async def create_friend(
    friend_in: FriendCreate,
    friends: FriendService = Depends(get_friend_service)
):
    """Create a friend with a fresh access code"""
    return await friends.create(friend_in.name.strip())


@router.get("/{friend_id}", response_model=FriendResponse)
async def get_friend(friend_id: str, friends: FriendService = Depends(get_friend_service)):
    return await friends.get(friend_id)


@router.delete("/{friend_id}")
async def delete_friend(friend_id: str, friends: FriendService = Depends(get_friend_service)):
    """Delete a friend and all of their transactions"""
    removed = await friends.delete(friend_id)
    return {"message": "Friend deleted successfully", "transactions_deleted": removed}


@router.post("/{friend_id}/settle", response_model=Optional[TransactionResponse])
async def settle_friend(friend_id: str, ledger: LedgerService = Depends(get_ledger_service)):
    """Record a cash payment for the friend's whole balance (null if nothing owed)"""
    return await ledger.settle_debt(friend_id)


@router.get("/{friend_id}/transactions", response_model=List[TransactionResponse])
async def friend_transactions(friend_id: str, ledger: LedgerService = Depends(get_ledger_service)):
    return await ledger.history(friend_id)


@router.get("/{friend_id}/unsettled", response_model=UnsettledResponse)
async def friend_unsettled(friend_id: str, ledger: LedgerService = Depends(get_ledger_service)):
    """Expenses still open after applying approved payments oldest-first"""
    history = await ledger.history(friend_id)
    return UnsettledResponse(
        friend_id=friend_id,
        open_expenses=[OpenExpenseResponse.model_validate(e) for e in open_expenses(history)],
        outstanding_total=outstanding_total(history)
    )


@router.get("/{friend_id}/audit", response_model=BalanceAudit)
async def audit_friend(
    friend_id: str,
    friends: FriendService = Depends(get_friend_service),
    ledger: LedgerService = Depends(get_ledger_service)
):
    """Check the stored balance against a recomputation from history"""
    friend = await friends.get(friend_id)
    history = await ledger.history(friend_id)
    derived = balance_from_history(history)
    return BalanceAudit(
        friend_id=friend_id,
        stored_balance=friend.balance,
        derived_balance=derived,
        outstanding_total=outstanding_total(history),
        consistent=is_negligible(friend.balance - derived)
    )
