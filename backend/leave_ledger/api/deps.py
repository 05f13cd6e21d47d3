# ruff: noqa: B008
from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Path, status

from leave_ledger.exceptions import AppError
from leave_ledger.schemas.ledger import MONTH_KEY_PATTERN
from leave_ledger.schemas.period import PeriodKey
from leave_ledger.services.employee import EmployeeDirectory, get_employee_directory
from leave_ledger.services.leave_request import LeaveRequestSource, get_leave_request_source

EmployeeDirectoryDep = Annotated[EmployeeDirectory, Depends(get_employee_directory)]
LeaveRequestSourceDep = Annotated[LeaveRequestSource, Depends(get_leave_request_source)]


async def get_period(month_key: str = Path(pattern=MONTH_KEY_PATTERN)) -> PeriodKey:
    """Parse the ``{month_key}`` path segment."""
    try:
        return PeriodKey.parse(month_key)
    except ValueError as exc:
        raise AppError(str(exc), status_code=status.HTTP_422_UNPROCESSABLE_ENTITY) from exc


PeriodDep = Annotated[PeriodKey, Depends(get_period)]
