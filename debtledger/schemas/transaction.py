from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from debtledger.models.transaction import TransactionStatus, TransactionType


class TransactionCreate(BaseModel):
    """Owner-entered ledger entry."""
    friend_id: str
    amount: float
    type: TransactionType = TransactionType.EXPENSE
    description: str = ""
    status: TransactionStatus = TransactionStatus.APPROVED
    date: Optional[datetime] = None


class StatusUpdate(BaseModel):
    status: TransactionStatus


class PaymentSubmit(BaseModel):
    """Friend-submitted payment awaiting approval."""
    amount: float
    description: str = ""
    proof_image: str = Field(..., min_length=1)


class TransactionResponse(BaseModel):
    id: str
    friend_id: str
    amount: float
    type: TransactionType
    status: TransactionStatus
    date: datetime
    description: str
    proof_image: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class PortalTransactionResponse(TransactionResponse):
    unsettled: bool = False  # expense still (partly) open after FIFO settlement


class OpenExpenseResponse(BaseModel):
    id: str
    remaining: float

    model_config = ConfigDict(from_attributes=True)


class UnsettledResponse(BaseModel):
    friend_id: str
    open_expenses: List[OpenExpenseResponse]
    outstanding_total: float
