from fastapi import APIRouter

from leave_ledger.api.balances import balances_router
from leave_ledger.api.ledger import ledger_router
from leave_ledger.api.quotas import quotas_router

api_router = APIRouter()
api_router.include_router(ledger_router)
api_router.include_router(quotas_router)
api_router.include_router(balances_router)
