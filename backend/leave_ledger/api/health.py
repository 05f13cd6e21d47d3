import logging
from typing import Literal

from fastapi import APIRouter
from pydantic import BaseModel
from sqlalchemy import text

from leave_ledger.config import get_settings
from leave_ledger.db import SessionDep
from leave_ledger.exceptions import StoreReadError
from leave_ledger.schemas.ledger import Amount
from leave_ledger.services.snapshot_store import SnapshotStoreDep

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    """Health check response.

    ``store`` reports whether ledger configuration can be read, which is what
    a Recalculate & Save needs before it writes anything.
    """

    status: Literal["ok", "degraded", "error"]
    version: str
    environment: str
    store: Literal["ok", "unavailable"]
    monthly_accrual: Amount


@router.get("/health", response_model=HealthResponse)
async def health(session: SessionDep, store: SnapshotStoreDep) -> HealthResponse:
    """Report database and ledger store reachability plus the effective monthly accrual."""
    settings = get_settings()
    monthly_accrual = settings.default_monthly_accrual

    try:
        await session.execute(text("SELECT 1"))
    except Exception:
        logger.exception("Health check: database connectivity failed")
        return HealthResponse(
            status="degraded",
            version=settings.app_version,
            environment=settings.environment,
            store="unavailable",
            monthly_accrual=monthly_accrual,
        )

    store_status: Literal["ok", "unavailable"] = "ok"
    try:
        stored_accrual = await store.get_monthly_accrual()
    except StoreReadError:
        logger.warning("Health check: ledger store unreadable")
        store_status = "unavailable"
    else:
        if stored_accrual is not None:
            monthly_accrual = stored_accrual

    return HealthResponse(
        status="ok" if store_status == "ok" else "degraded",
        version=settings.app_version,
        environment=settings.environment,
        store=store_status,
        monthly_accrual=monthly_accrual,
    )
