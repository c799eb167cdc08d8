"""
Transaction model - one ledger entry between the owner and a friend.

Design principles:
- amount is always positive; direction comes from type
- friend_id, amount and type never change after creation
- only status moves (PENDING / APPROVED / REJECTED)
- only APPROVED entries count towards the friend's balance
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import Field, field_validator

from debtledger.models.base import LedgerModel, as_utc, utcnow


class TransactionType(str, Enum):
    EXPENSE = "EXPENSE"   # friend owes owner
    PAYMENT = "PAYMENT"   # friend pays owner


class TransactionStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class Transaction(LedgerModel):
    friend_id: str
    amount: float = Field(gt=0)
    type: TransactionType
    status: TransactionStatus = TransactionStatus.APPROVED
    date: datetime = Field(default_factory=utcnow)  # economic date, used for ordering
    description: str = ""
    proof_image: Optional[str] = None  # opaque reference to payment evidence

    @field_validator("date")
    @classmethod
    def ensure_utc(cls, value: datetime) -> datetime:
        return as_utc(value)

    def is_approved(self) -> bool:
        return self.status == TransactionStatus.APPROVED
