"""
Bill model - archived receipt of a split.

A bill never touches balances; the EXPENSE transactions created from it are
the ledger effect.
"""

from datetime import datetime
from typing import List

from pydantic import BaseModel, Field, field_validator

from debtledger.models.base import LedgerModel, as_utc, utcnow

ADMIN_PAYER = "admin"


class BillItem(BaseModel):
    name: str
    price: float           # unit price
    quantity: float = 1
    assigned_to: List[str] = []  # friend ids sharing this item

    def line_total(self) -> float:
        return self.price * self.quantity


class Bill(LedgerModel):
    date: datetime = Field(default_factory=utcnow)
    title: str
    items: List[BillItem] = []
    subtotal: float = 0.0
    tax: float = 0.0
    service_charge: float = 0.0
    total: float = 0.0
    payer_id: str = ADMIN_PAYER

    @field_validator("date")
    @classmethod
    def ensure_utc(cls, value: datetime) -> datetime:
        return as_utc(value)
