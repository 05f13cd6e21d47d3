from __future__ import annotations

from decimal import Decimal
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer

from leave_ledger.schemas.period import PeriodKey

# Decimals in memory, plain numbers on the wire.
Amount = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]

MONTH_KEY_PATTERN = r"^\d{4}-\d{2}$"

# ---------------------------------------------------------------------------
# Ledger rows
# ---------------------------------------------------------------------------


class LedgerRow(BaseModel):
    """Balance accounting for one employee, one month and one policy code.

    For rows produced by the formula, ``closing == opening + allocated +
    adjusted - used`` (rounded to 2 places, ``adjusted`` is always 0) and
    ``carry_forward == closing``. Manual rows hold whatever HR entered.
    """

    model_config = ConfigDict(frozen=True)

    employee_id: str
    employee_name: str = ""
    department: str = "-"
    month_key: str = Field(pattern=MONTH_KEY_PATTERN)
    policy_code: str
    opening: Amount = Decimal("0")
    allocated: Amount = Decimal("0")
    used: Amount = Decimal("0")
    adjusted: Amount = Decimal("0")
    closing: Amount = Decimal("0")
    carry_forward: Amount = Decimal("0")
    is_manual_override: bool = False
    is_locked: bool = False

    @property
    def period(self) -> PeriodKey:
        return PeriodKey.parse(self.month_key)


class LedgerResponse(BaseModel):
    """Ledger rows for a single period."""

    month_key: str
    monthly_accrual: Amount
    items: list[LedgerRow]
    total: int


# ---------------------------------------------------------------------------
# Save
# ---------------------------------------------------------------------------


class FailedRow(BaseModel):
    """An employee whose snapshot could not be written."""

    employee_id: str
    error: str


class SaveResult(BaseModel):
    """Per-employee outcome of a Recalculate & Save run.

    Writes are not atomic across employees, so a failed run reports exactly
    which rows made it and which need a retry.
    """

    month_key: str
    succeeded: list[str] = Field(default_factory=list)
    failed: list[FailedRow] = Field(default_factory=list)
    skipped: list[str] = Field(default_factory=list)
    config_saved: bool = False
    config_error: str | None = None

    @property
    def ok(self) -> bool:
        return not self.failed


class ManualRowInput(BaseModel):
    """One HR-edited row, as sent from the editable ledger table.

    Amounts arrive as free text and are coerced (invalid input becomes 0).
    """

    employee_id: str = Field(min_length=1)
    policy_code: str | None = None
    opening: str | float | None = None
    allocated: str | float | None = None
    used: str | float | None = None
    adjusted: str | float | None = None
    closing: str | float | None = None
    carry_forward: str | float | None = None


class SaveLedgerRequest(BaseModel):
    """Request body for Recalculate & Save."""

    monthly_accrual: Decimal | None = Field(default=None, ge=0)
    manual_rows: list[ManualRowInput] | None = None
