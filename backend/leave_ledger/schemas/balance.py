from __future__ import annotations

from pydantic import BaseModel

from leave_ledger.schemas.ledger import Amount


class BalanceLine(BaseModel):
    """Quota, usage and remaining days for one leave type."""

    leave_type: str
    quota: Amount
    used: Amount
    left: Amount


class BalanceListResponse(BaseModel):
    """All leave-type balances for an employee."""

    employee_id: str
    items: list[BalanceLine]
    total: int


class LeaveSummary(BaseModel):
    """Aggregate leave usage across all types."""

    used: Amount
    total: Amount
    left: Amount
