from fastapi import APIRouter
from debtledger.api.v1.endpoints import auth, friends, transactions, bills, receipts, portal

api_router = APIRouter()

api_router.include_router(auth.router, prefix="/auth", tags=["authentication"])
api_router.include_router(friends.router, prefix="/friends", tags=["friends"])
api_router.include_router(transactions.router, prefix="/transactions", tags=["transactions"])
api_router.include_router(bills.router, prefix="/bills", tags=["bills"])
api_router.include_router(receipts.router, prefix="/receipts", tags=["receipts"])
api_router.include_router(portal.router, prefix="/portal", tags=["portal"])
