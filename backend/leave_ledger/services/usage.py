"""Leave usage aggregation.

Two separate jobs live here:

* total usage per leave type, for quota-left displays and new-request
  validation, filtered by an explicit consumption policy;
* period-overlap usage, which attributes a prorated share of each request to
  a calendar month for the carry-forward ledger.
"""

from __future__ import annotations

import re
from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING

from leave_ledger.exceptions import InsufficientBalanceError
from leave_ledger.models.enums import LeaveStatus
from leave_ledger.schemas.balance import BalanceLine, LeaveSummary
from leave_ledger.services.identity import employees_match
from leave_ledger.services.rounding import ZERO, round2

if TYPE_CHECKING:
    from collections.abc import Iterable

    from leave_ledger.schemas.employee import EmployeeIdentity
    from leave_ledger.schemas.leave import LeaveRequest
    from leave_ledger.schemas.period import PeriodKey
    from leave_ledger.services.quota import QuotaCatalog

ConsumptionPolicy = frozenset[LeaveStatus]

# Which statuses count as "used" is chosen per call site, never defaulted:
# displays count approved leave only, while new-request validation also
# counts pending requests so two open requests cannot overdraw the quota.
APPROVED_ONLY: ConsumptionPolicy = frozenset({LeaveStatus.APPROVED})
APPROVED_AND_PENDING: ConsumptionPolicy = frozenset({LeaveStatus.APPROVED, LeaveStatus.PENDING})

WORK_FROM_HOME_CATEGORY = "Work From Home"
_WFH_RE = re.compile(r"work\s*from\s*home|wfh", re.IGNORECASE)

HALF_DAY = Decimal("0.5")


def is_work_from_home(request: LeaveRequest) -> bool:
    """WFH requests are tracked as requests but are not leave."""
    return request.request_category == WORK_FROM_HOME_CATEGORY or bool(_WFH_RE.search(request.leave_type or ""))


def days_between_inclusive(start: date, end: date) -> int:
    return (end - start).days + 1


def requested_days(start: date, end: date | None, *, is_half_day: bool = False) -> Decimal:
    """Duration of a new request: 0.5 for a half day, else inclusive calendar days."""
    if is_half_day:
        return HALF_DAY
    return Decimal(days_between_inclusive(start, end or start))


# ---------------------------------------------------------------------------
# Total usage (quota displays and validation)
# ---------------------------------------------------------------------------


def total_usage(
    requests: Iterable[LeaveRequest],
    employee: EmployeeIdentity,
    leave_type: str,
    policy: ConsumptionPolicy,
) -> Decimal:
    """Days of ``leave_type`` the employee has consumed under ``policy``."""
    wanted = leave_type.lower()
    return sum(
        (
            request.days
            for request in requests
            if request.status in policy
            and request.leave_type.lower() == wanted
            and employees_match(request.employee, employee)
        ),
        ZERO,
    )


def balance_summary(
    employee: EmployeeIdentity,
    requests: Iterable[LeaveRequest],
    catalog: QuotaCatalog,
    policy: ConsumptionPolicy = APPROVED_ONLY,
) -> list[BalanceLine]:
    """Quota, used and remaining days per configured leave type.

    ``left`` is floored at zero for display.
    """
    request_list = list(requests)
    lines: list[BalanceLine] = []
    for leave_type in catalog.leave_types:
        quota = catalog.lookup(leave_type)
        used = total_usage(request_list, employee, leave_type, policy)
        lines.append(BalanceLine(leave_type=leave_type, quota=quota, used=used, left=max(quota - used, ZERO)))
    return lines


def leave_summary(
    employee: EmployeeIdentity,
    requests: Iterable[LeaveRequest],
    catalog: QuotaCatalog,
) -> LeaveSummary:
    """Approved, non-WFH usage across all leave types against the total entitlement."""
    used = sum(
        (
            request.days
            for request in requests
            if request.status in APPROVED_ONLY
            and not is_work_from_home(request)
            and employees_match(request.employee, employee)
        ),
        ZERO,
    )
    total = catalog.total_entitlement()
    return LeaveSummary(used=used, total=total, left=max(total - used, ZERO))


def validate_new_request(
    employee: EmployeeIdentity,
    leave_type: str,
    days: Decimal,
    requests: Iterable[LeaveRequest],
    catalog: QuotaCatalog,
    policy: ConsumptionPolicy = APPROVED_AND_PENDING,
) -> tuple[Decimal, Decimal]:
    """Check a new request against its quota and return ``(quota, used)``.

    The quota is read by exact leave-type key. Raises
    ``InsufficientBalanceError`` when ``used + days`` would exceed it.
    """
    quota = catalog.get(leave_type)
    used = total_usage(requests, employee, leave_type, policy)
    if used + days > quota:
        raise InsufficientBalanceError(
            f"Insufficient leave balance: {used} of {quota} days of {leave_type} already used, "
            f"a request of {days} days would exceed the limit"
        )
    return quota, used


# ---------------------------------------------------------------------------
# Period-overlap usage (ledger)
# ---------------------------------------------------------------------------


def counts_toward_ledger(request: LeaveRequest) -> bool:
    """Only approved, non-WFH requests consume ledger balance."""
    return request.status == LeaveStatus.APPROVED and not is_work_from_home(request)


def period_overlap_usage(request: LeaveRequest, period: PeriodKey) -> Decimal:
    """Days of ``request`` attributed to ``period``.

    Multi-day requests are split in proportion to calendar days (weekends
    included) falling inside the month. A single-day half-day request always
    contributes exactly 0.5 to the month containing it.
    """
    month_start, month_end = period.start, period.end
    start, end = request.start_date, request.end_date
    if end < month_start or start > month_end:
        return ZERO

    total_span_days = max(1, days_between_inclusive(start, end))
    if request.is_half_day and total_span_days == 1:
        return HALF_DAY

    overlap_days = max(0, days_between_inclusive(max(start, month_start), min(end, month_end)))
    total_requested = max(request.days, ZERO)
    return round2(total_requested * overlap_days / total_span_days)


def period_usage(
    requests: Iterable[LeaveRequest],
    employee: EmployeeIdentity,
    period: PeriodKey,
) -> Decimal:
    """Ledger usage of ``employee`` in ``period``."""
    return round2(
        sum(
            (
                period_overlap_usage(request, period)
                for request in requests
                if counts_toward_ledger(request) and employees_match(request.employee, employee)
            ),
            ZERO,
        )
    )
