"""Ledger error taxonomy.

Every failure a ledger operation can surface derives from ``LedgerError`` so
callers (and the HTTP layer) can catch the whole family in one place.
"""


class LedgerError(Exception):
    """Base class for ledger failures."""
    pass


class InvalidAmount(LedgerError):
    """Amount is non-numeric, not finite, or not positive."""
    pass


class FriendNotFound(LedgerError):
    def __init__(self, friend_id: str):
        super().__init__(f"Friend {friend_id} not found")
        self.friend_id = friend_id


class TransactionNotFound(LedgerError):
    def __init__(self, transaction_id: str):
        super().__init__(f"Transaction {transaction_id} not found")
        self.transaction_id = transaction_id


class StoreUnavailable(LedgerError):
    """The store could not commit the atomic unit within the retry budget."""
    pass


class ProofRequired(LedgerError):
    """A friend-submitted payment arrived without proof of payment."""
    pass


class AccessCodeExhausted(LedgerError):
    """No unused access code could be generated."""
    pass


class BillValidationError(LedgerError):
    pass


class ReceiptExtractionError(LedgerError):
    pass
