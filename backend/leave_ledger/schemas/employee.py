from __future__ import annotations

from pydantic import BaseModel, Field


class EmployeeIdentity(BaseModel):
    """How a record refers to an employee.

    Different sources disagree on casing, padding and which fields they fill
    in, so none of these is a reliable key on its own.
    """

    id: str = ""
    name: str = ""
    email: str | None = None


class EmployeeRecord(EmployeeIdentity):
    """An employee as listed by the master directory."""

    department: str | None = None
    policy_code: str | None = Field(default=None, max_length=100)
