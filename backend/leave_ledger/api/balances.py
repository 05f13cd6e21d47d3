# ruff: noqa: TC001
"""Quota-left balances and new-request validation."""

from __future__ import annotations

from fastapi import APIRouter, status

from leave_ledger.api.deps import EmployeeDirectoryDep, LeaveRequestSourceDep
from leave_ledger.exceptions import AppError
from leave_ledger.schemas.balance import BalanceListResponse
from leave_ledger.schemas.employee import EmployeeIdentity
from leave_ledger.schemas.leave import ValidateRequestPayload, ValidateRequestResponse
from leave_ledger.services.quota import load_quota_catalog
from leave_ledger.services.snapshot_store import SnapshotStoreDep
from leave_ledger.services.usage import (
    APPROVED_AND_PENDING,
    APPROVED_ONLY,
    balance_summary,
    requested_days,
    validate_new_request,
)

balances_router = APIRouter(tags=["balances"])


async def _resolve_employee(directory: EmployeeDirectoryDep, employee_id: str) -> EmployeeIdentity:
    employee = await directory.get_employee(employee_id)
    if employee is None:
        raise AppError(f"Employee {employee_id!r} not found", status_code=status.HTTP_404_NOT_FOUND)
    return employee


@balances_router.get("/employees/{employee_id}/balances", response_model=BalanceListResponse)
async def get_employee_balances(
    employee_id: str,
    store: SnapshotStoreDep,
    directory: EmployeeDirectoryDep,
    requests: LeaveRequestSourceDep,
) -> BalanceListResponse:
    """Quota, approved usage and remaining days per leave type."""
    employee = await _resolve_employee(directory, employee_id)
    catalog = await load_quota_catalog(store)
    items = balance_summary(employee, await requests.list_requests(), catalog, APPROVED_ONLY)
    return BalanceListResponse(employee_id=employee.id, items=items, total=len(items))


@balances_router.post("/requests/validate", response_model=ValidateRequestResponse)
async def validate_request(
    payload: ValidateRequestPayload,
    store: SnapshotStoreDep,
    directory: EmployeeDirectoryDep,
    requests: LeaveRequestSourceDep,
) -> ValidateRequestResponse:
    """Check that a new request fits the quota, counting approved and pending leave."""
    employee = await _resolve_employee(directory, payload.employee_id)
    catalog = await load_quota_catalog(store)
    days = requested_days(payload.start_date, payload.end_date, is_half_day=payload.is_half_day)
    quota, used = validate_new_request(
        employee, payload.leave_type, days, await requests.list_requests(), catalog, APPROVED_AND_PENDING
    )
    return ValidateRequestResponse(
        leave_type=payload.leave_type,
        requested_days=days,
        quota=quota,
        used=used,
        remaining_after=quota - used - days,
    )
