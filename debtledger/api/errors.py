import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from debtledger.core.errors import (
    AccessCodeExhausted,
    BillValidationError,
    FriendNotFound,
    InvalidAmount,
    LedgerError,
    ProofRequired,
    ReceiptExtractionError,
    StoreUnavailable,
    TransactionNotFound,
)

logger = logging.getLogger(__name__)

STATUS_BY_ERROR = {
    InvalidAmount: status.HTTP_400_BAD_REQUEST,
    ProofRequired: status.HTTP_400_BAD_REQUEST,
    BillValidationError: status.HTTP_400_BAD_REQUEST,
    FriendNotFound: status.HTTP_404_NOT_FOUND,
    TransactionNotFound: status.HTTP_404_NOT_FOUND,
    ReceiptExtractionError: status.HTTP_502_BAD_GATEWAY,
    StoreUnavailable: status.HTTP_503_SERVICE_UNAVAILABLE,
    AccessCodeExhausted: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def status_for(exc: LedgerError) -> int:
    for error_type, code in STATUS_BY_ERROR.items():
        if isinstance(exc, error_type):
            return code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


async def ledger_error_handler(request: Request, exc: LedgerError) -> JSONResponse:
    code = status_for(exc)
    if code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=code, content={"detail": str(exc)})


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(LedgerError, ledger_error_handler)
