from typing import Optional

from fastapi import Depends

from debtledger.core.config import settings
from debtledger.db.session import get_store
from debtledger.repositories.store import LedgerStore
from debtledger.services.friend_service import FriendService
from debtledger.services.ledger_service import LedgerService
from debtledger.services.receipt_service import ReceiptExtractor
from debtledger.services.split_service import SplitService


def get_ledger_service(store: LedgerStore = Depends(get_store)) -> LedgerService:
    return LedgerService(store)


def get_friend_service(store: LedgerStore = Depends(get_store)) -> FriendService:
    return FriendService(store, max_attempts=settings.ACCESS_CODE_ATTEMPTS)


def get_split_service(store: LedgerStore = Depends(get_store)) -> SplitService:
    return SplitService(store)


class ExtractorState:
    extractor: Optional[ReceiptExtractor] = None


extractors = ExtractorState()


def get_receipt_extractor() -> ReceiptExtractor:
    """Shared extractor so its HTTP connection pool is reused."""
    if extractors.extractor is None:
        extractors.extractor = ReceiptExtractor.from_settings(settings)
    return extractors.extractor


def close_receipt_extractor():
    if extractors.extractor is not None:
        extractors.extractor.close()
        extractors.extractor = None
