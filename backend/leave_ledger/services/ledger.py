"""Monthly carry-forward ledger.

For a target month, each employee's row is:

    opening   = closing of the same policy's snapshot for the previous month (0 if none)
    allocated = monthly accrual of the employee's policy
    used      = approved, non-WFH leave prorated into the month
    closing   = opening + allocated + adjusted - used   (adjusted is 0 unless edited)
    carry_forward = closing

Balances are not floored at zero: overdrawn employees carry a negative
balance forward.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from decimal import Decimal
from typing import TYPE_CHECKING

from leave_ledger.exceptions import LedgerError, StoreWriteError
from leave_ledger.models.enums import LedgerAmountField
from leave_ledger.schemas.ledger import FailedRow, LedgerRow, SaveResult
from leave_ledger.services.identity import compact_id, ids_match
from leave_ledger.services.rounding import ZERO, parse_amount, round2
from leave_ledger.services.usage import period_usage

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from leave_ledger.config import Settings
    from leave_ledger.schemas.employee import EmployeeRecord
    from leave_ledger.schemas.leave import LeaveRequest
    from leave_ledger.schemas.ledger import ManualRowInput
    from leave_ledger.schemas.period import PeriodKey
    from leave_ledger.services.snapshot_store import SnapshotStore

logger = logging.getLogger(__name__)

DEFAULT_POLICY_CODE = "DEFAULT"
DEFAULT_MONTHLY_ACCRUAL = Decimal("1.5")


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LedgerConfig:
    """Accrual rules applied when computing a period."""

    default_policy_code: str = DEFAULT_POLICY_CODE
    monthly_accrual: Decimal = DEFAULT_MONTHLY_ACCRUAL
    policy_accruals: Mapping[str, Decimal] = field(default_factory=dict)

    def policy_code_for(self, employee: EmployeeRecord) -> str:
        return (employee.policy_code or "").strip() or self.default_policy_code

    def accrual_for(self, policy_code: str) -> Decimal:
        return round2(self.policy_accruals.get(policy_code, self.monthly_accrual))


async def resolve_ledger_config(store: SnapshotStore, settings: Settings) -> LedgerConfig:
    """Build the config from settings, letting the stored monthly accrual win."""
    stored_accrual = await store.get_monthly_accrual()
    return LedgerConfig(
        default_policy_code=settings.default_policy_code,
        monthly_accrual=stored_accrual if stored_accrual is not None else settings.default_monthly_accrual,
    )


# ---------------------------------------------------------------------------
# Compute
# ---------------------------------------------------------------------------


def _employee_sort_key(employee: EmployeeRecord) -> tuple[str, str]:
    return (employee.name or "").casefold(), compact_id(employee.id)


def _find_snapshot(
    snapshots: Iterable[LedgerRow],
    employee_id: str,
    period: PeriodKey,
    policy_code: str,
) -> LedgerRow | None:
    for row in snapshots:
        if row.month_key == period.month_key and row.policy_code == policy_code and ids_match(row.employee_id, employee_id):
            return row
    return None


def _find_pinned(snapshots: Iterable[LedgerRow], employee_id: str) -> LedgerRow | None:
    """A manual or locked snapshot of this employee, under any policy code."""
    for row in snapshots:
        if (row.is_manual_override or row.is_locked) and ids_match(row.employee_id, employee_id):
            return row
    return None


def compute_row(
    period: PeriodKey,
    employee: EmployeeRecord,
    leave_requests: Iterable[LeaveRequest],
    config: LedgerConfig,
    prior_snapshots: Iterable[LedgerRow],
) -> LedgerRow:
    policy_code = config.policy_code_for(employee)
    prior = _find_snapshot(prior_snapshots, employee.id, period.previous(), policy_code)

    opening = round2(prior.closing) if prior is not None else round2(ZERO)
    allocated = config.accrual_for(policy_code)
    used = period_usage(leave_requests, employee, period)
    adjusted = round2(ZERO)
    closing = round2(opening + allocated + adjusted - used)

    return LedgerRow(
        employee_id=employee.id,
        employee_name=employee.name,
        department=employee.department or "-",
        month_key=period.month_key,
        policy_code=policy_code,
        opening=opening,
        allocated=allocated,
        used=used,
        adjusted=adjusted,
        closing=closing,
        carry_forward=closing,
    )


def compute_ledger(
    period: PeriodKey,
    employees: Iterable[EmployeeRecord],
    leave_requests: Iterable[LeaveRequest],
    config: LedgerConfig,
    prior_snapshots: Iterable[LedgerRow],
) -> list[LedgerRow]:
    """Compute one ledger row per employee, ordered by employee name.

    Pure: the same inputs always produce equal rows.
    """
    requests = list(leave_requests)
    snapshots = list(prior_snapshots)
    return [
        compute_row(period, employee, requests, config, snapshots)
        for employee in sorted(employees, key=_employee_sort_key)
    ]


# ---------------------------------------------------------------------------
# Manual override
# ---------------------------------------------------------------------------


class ManualOverrideSession:
    """Editable copy of computed rows for HR corrections.

    Edited values are kept verbatim (after numeric coercion) and are never
    re-derived from the formula. ``reset`` throws all edits away.
    """

    def __init__(self, computed_rows: Sequence[LedgerRow]) -> None:
        self.computed_rows: list[LedgerRow] = list(computed_rows)
        self.rows: list[LedgerRow] = list(computed_rows)

    def _index_of(self, employee_id: str) -> int:
        for index, row in enumerate(self.rows):
            if row.employee_id == employee_id:
                return index
        for index, row in enumerate(self.rows):
            if ids_match(row.employee_id, employee_id):
                return index
        raise LedgerError(f"No ledger row for employee {employee_id!r}")

    def set_amount(self, employee_id: str, field_name: LedgerAmountField | str, raw: object) -> LedgerRow:
        """Overwrite one numeric column; unparseable input is stored as 0."""
        try:
            column = LedgerAmountField(field_name)
        except ValueError as exc:
            raise LedgerError(f"{field_name!r} is not an editable ledger amount") from exc
        index = self._index_of(employee_id)
        self.rows[index] = self.rows[index].model_copy(update={column.value: parse_amount(raw)})
        return self.rows[index]

    def set_policy_code(self, employee_id: str, policy_code: str) -> LedgerRow:
        index = self._index_of(employee_id)
        self.rows[index] = self.rows[index].model_copy(update={"policy_code": str(policy_code or "")})
        return self.rows[index]

    def apply(self, edit: ManualRowInput) -> LedgerRow:
        """Apply every field present in an edit from the ledger table."""
        row = self.rows[self._index_of(edit.employee_id)]
        for column in LedgerAmountField:
            if column.value in edit.model_fields_set:
                row = self.set_amount(row.employee_id, column, getattr(edit, column.value))
        if edit.policy_code is not None:
            row = self.set_policy_code(row.employee_id, edit.policy_code)
        return row

    def reset(self) -> None:
        self.rows = list(self.computed_rows)

    @property
    def is_dirty(self) -> bool:
        return self.rows != self.computed_rows

    def rows_to_save(self) -> list[LedgerRow]:
        return [row.model_copy(update={"is_manual_override": True}) for row in self.rows]


# ---------------------------------------------------------------------------
# Read / save against the store
# ---------------------------------------------------------------------------


async def load_ledger(
    store: SnapshotStore,
    period: PeriodKey,
    employees: Iterable[EmployeeRecord],
    leave_requests: Iterable[LeaveRequest],
    config: LedgerConfig,
) -> list[LedgerRow]:
    """Rows for viewing a period.

    Computed from the previous month's snapshots, except that rows HR saved
    manually or locked for this month are shown as stored, with whatever
    policy code they were saved under.
    """
    prior = await store.list_for_period(period.previous())
    current = await store.list_for_period(period)
    rows = compute_ledger(period, employees, leave_requests, config, prior)

    shown: list[LedgerRow] = []
    for row in rows:
        stored = _find_pinned(current, row.employee_id)
        if stored is not None:
            shown.append(stored.model_copy(update={"employee_name": row.employee_name, "department": row.department}))
        else:
            shown.append(row)
    return shown


async def recalculate_and_save(
    store: SnapshotStore,
    period: PeriodKey,
    employees: Iterable[EmployeeRecord],
    leave_requests: Iterable[LeaveRequest],
    config: LedgerConfig,
    *,
    manual_rows: Sequence[LedgerRow] | None = None,
    monthly_accrual: Decimal | None = None,
) -> SaveResult:
    """Upsert one snapshot per employee for ``period``.

    Snapshots and the stored monthly accrual are read up front; if either
    read fails, ``StoreReadError`` propagates and nothing is written. Rows are
    then written one at a time in employee order. A failed row is recorded and
    the loop moves on; rows already written stay written. An employee with a
    locked snapshot for the period, under any policy code, is left untouched.
    """
    prior = await store.list_for_period(period.previous())
    current = await store.list_for_period(period)
    stored_accrual = await store.get_monthly_accrual() if monthly_accrual is not None else None

    if manual_rows is not None:
        for row in manual_rows:
            if row.month_key != period.month_key:
                raise LedgerError(f"Row for {row.employee_id} belongs to {row.month_key}, not {period.month_key}")
        rows = [row.model_copy(update={"is_manual_override": True}) for row in manual_rows]
    else:
        rows = compute_ledger(period, employees, leave_requests, config, prior)

    locked = [r for r in current if r.is_locked]
    result = SaveResult(month_key=period.month_key)

    for row in rows:
        if any(ids_match(r.employee_id, row.employee_id) for r in locked):
            result.skipped.append(row.employee_id)
            continue
        try:
            await store.put(row)
        except Exception as exc:
            logger.exception("Snapshot save failed for employee=%s period=%s", row.employee_id, period)
            result.failed.append(FailedRow(employee_id=row.employee_id, error=str(exc)))
            continue
        result.succeeded.append(row.employee_id)

    if monthly_accrual is not None and stored_accrual != monthly_accrual:
        try:
            await store.put_monthly_accrual(monthly_accrual)
            result.config_saved = True
        except StoreWriteError as exc:
            logger.exception("Saving monthly accrual %s failed", monthly_accrual)
            result.config_error = exc.message

    logger.info(
        "Ledger save for %s: succeeded=%d failed=%d skipped=%d config_saved=%s",
        period,
        len(result.succeeded),
        len(result.failed),
        len(result.skipped),
        result.config_saved,
    )
    return result
