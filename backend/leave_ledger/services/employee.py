from __future__ import annotations

from typing import Protocol, runtime_checkable

from leave_ledger.schemas.employee import EmployeeIdentity, EmployeeRecord
from leave_ledger.services.identity import find_employee


@runtime_checkable
class EmployeeDirectory(Protocol):
    """Interface for the master employee directory."""

    async def get_employee(self, employee_id: str) -> EmployeeRecord | None:
        """Fetch an employee by any id spelling. Returns None if not found."""
        ...

    async def list_employees(self) -> list[EmployeeRecord]:
        """List all employees."""
        ...


class InMemoryEmployeeDirectory:
    """In-memory stub implementation for development."""

    def __init__(self) -> None:
        self._employees: dict[str, EmployeeRecord] = {}

    def seed(self, employee: EmployeeRecord) -> None:
        """Seed an employee for testing."""
        self._employees[employee.id] = employee

    async def get_employee(self, employee_id: str) -> EmployeeRecord | None:
        """Fetch an employee by any id spelling. Returns None if not found."""
        direct = self._employees.get(employee_id)
        if direct is not None:
            return direct
        return find_employee(EmployeeIdentity(id=employee_id), self._employees.values())

    async def list_employees(self) -> list[EmployeeRecord]:
        """List all employees."""
        return list(self._employees.values())


_employee_directory: EmployeeDirectory = InMemoryEmployeeDirectory()


def get_employee_directory() -> EmployeeDirectory:
    """FastAPI dependency for the employee directory."""
    return _employee_directory


def set_employee_directory(directory: EmployeeDirectory) -> None:
    """Override the directory (for testing or production wiring)."""
    global _employee_directory
    _employee_directory = directory
