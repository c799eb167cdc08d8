"""
Friend model - a counterparty with one running balance.

Invariant:
- balance == sum(+amount for APPROVED EXPENSE) - sum(amount for APPROVED PAYMENT)
  over the friend's transactions
- balance is only written through the ledger's atomic unit
"""

from debtledger.models.base import LedgerModel


class Friend(LedgerModel):
    name: str
    access_code: str          # 6 digits, unique across friends
    balance: float = 0.0      # > 0: friend owes the owner, < 0: owner owes friend
