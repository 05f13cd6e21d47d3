# ruff: noqa: TC003
from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Any, Self

from pydantic import BaseModel, Field, model_validator

from leave_ledger.models.enums import LeaveStatus
from leave_ledger.schemas.employee import EmployeeIdentity
from leave_ledger.schemas.ledger import Amount


class LeaveRequest(BaseModel):
    """A leave request as supplied by the leave-request source.

    ``employee`` is the identity as the source recorded it; joining it to the
    directory goes through the identity resolver.
    """

    id: str
    employee: EmployeeIdentity
    leave_type: str
    start_date: date
    end_date: date
    days: Decimal = Field(ge=0)
    is_half_day: bool = False
    status: LeaveStatus = LeaveStatus.PENDING
    request_category: str | None = None

    @model_validator(mode="before")
    @classmethod
    def _default_end_date(cls, data: Any) -> Any:
        if isinstance(data, dict) and data.get("end_date") is None and "start_date" in data:
            data = {**data, "end_date": data["start_date"]}
        return data

    @model_validator(mode="after")
    def _validate_dates(self) -> Self:
        if self.end_date < self.start_date:
            msg = "end_date must be >= start_date"
            raise ValueError(msg)
        return self


class ValidateRequestPayload(BaseModel):
    """Request body for checking a new leave request against its quota."""

    employee_id: str = Field(min_length=1)
    leave_type: str = Field(min_length=1)
    start_date: date
    end_date: date | None = None
    is_half_day: bool = False

    @model_validator(mode="after")
    def _validate_dates(self) -> Self:
        if self.end_date is not None and self.end_date < self.start_date:
            msg = "end_date must be >= start_date"
            raise ValueError(msg)
        return self


class ValidateRequestResponse(BaseModel):
    """Outcome of a successful quota check."""

    leave_type: str
    requested_days: Amount
    quota: Amount
    used: Amount
    remaining_after: Amount
