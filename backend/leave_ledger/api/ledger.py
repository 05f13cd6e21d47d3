# ruff: noqa: TC001
"""Carry-forward ledger endpoints."""

from __future__ import annotations

from fastapi import APIRouter

from leave_ledger.api.deps import EmployeeDirectoryDep, LeaveRequestSourceDep, PeriodDep
from leave_ledger.config import get_settings
from leave_ledger.schemas.ledger import LedgerResponse, SaveLedgerRequest, SaveResult
from leave_ledger.services import ledger as ledger_service
from leave_ledger.services.snapshot_store import SnapshotStoreDep

ledger_router = APIRouter(
    prefix="/ledger",
    tags=["ledger"],
)


@ledger_router.get("/{month_key}", response_model=LedgerResponse)
async def get_ledger(
    period: PeriodDep,
    store: SnapshotStoreDep,
    directory: EmployeeDirectoryDep,
    requests: LeaveRequestSourceDep,
) -> LedgerResponse:
    """Ledger rows for a month, computed from the previous month's snapshots."""
    config = await ledger_service.resolve_ledger_config(store, get_settings())
    rows = await ledger_service.load_ledger(
        store, period, await directory.list_employees(), await requests.list_requests(), config
    )
    return LedgerResponse(month_key=period.month_key, monthly_accrual=config.monthly_accrual, items=rows, total=len(rows))


@ledger_router.post("/{month_key}/save", response_model=SaveResult)
async def save_ledger(
    period: PeriodDep,
    payload: SaveLedgerRequest,
    store: SnapshotStoreDep,
    directory: EmployeeDirectoryDep,
    requests: LeaveRequestSourceDep,
) -> SaveResult:
    """Recalculate & Save: persist one snapshot per employee for the month.

    With ``manual_rows`` the edited values are stored verbatim as manual
    overrides. The response lists which employees were saved, failed or
    skipped so a partial failure can be retried.
    """
    config = await ledger_service.resolve_ledger_config(store, get_settings())
    if payload.monthly_accrual is not None:
        config = ledger_service.LedgerConfig(
            default_policy_code=config.default_policy_code,
            monthly_accrual=payload.monthly_accrual,
            policy_accruals=config.policy_accruals,
        )

    employees = await directory.list_employees()
    leave_requests = await requests.list_requests()

    manual_rows = None
    if payload.manual_rows is not None:
        session = ledger_service.ManualOverrideSession(
            await ledger_service.load_ledger(store, period, employees, leave_requests, config)
        )
        for edit in payload.manual_rows:
            session.apply(edit)
        manual_rows = session.rows_to_save()

    return await ledger_service.recalculate_and_save(
        store,
        period,
        employees,
        leave_requests,
        config,
        manual_rows=manual_rows,
        monthly_accrual=payload.monthly_accrual,
    )
