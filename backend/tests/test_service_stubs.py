"""Tests for the in-memory employee directory and leave-request source."""

from __future__ import annotations

from datetime import date

from factories import make_employee, make_request

from leave_ledger.services.employee import EmployeeDirectory, InMemoryEmployeeDirectory
from leave_ledger.services.leave_request import InMemoryLeaveRequestSource, LeaveRequestSource

# ---------------------------------------------------------------------------
# InMemoryEmployeeDirectory tests
# ---------------------------------------------------------------------------


def test_directory_satisfies_protocol() -> None:
    assert isinstance(InMemoryEmployeeDirectory(), EmployeeDirectory)


async def test_directory_get_not_found() -> None:
    directory = InMemoryEmployeeDirectory()
    assert await directory.get_employee("E001") is None


async def test_directory_seed_and_get() -> None:
    directory = InMemoryEmployeeDirectory()
    directory.seed(make_employee("E001"))
    result = await directory.get_employee("E001")
    assert result is not None
    assert result.name == "Asha Rao"


async def test_directory_get_by_loose_id() -> None:
    directory = InMemoryEmployeeDirectory()
    directory.seed(make_employee("E007", "Ravi Kumar"))
    for spelling in ("e007", " E007 ", "7", "007"):
        result = await directory.get_employee(spelling)
        assert result is not None
        assert result.id == "E007"


async def test_directory_list() -> None:
    directory = InMemoryEmployeeDirectory()
    assert await directory.list_employees() == []
    directory.seed(make_employee("E001"))
    directory.seed(make_employee("E002", "Bhavin Shah"))
    assert len(await directory.list_employees()) == 2


# ---------------------------------------------------------------------------
# InMemoryLeaveRequestSource tests
# ---------------------------------------------------------------------------


def test_source_satisfies_protocol() -> None:
    assert isinstance(InMemoryLeaveRequestSource(), LeaveRequestSource)


async def test_source_seed_and_list() -> None:
    source = InMemoryLeaveRequestSource()
    assert await source.list_requests() == []
    request = make_request(make_employee(), date(2025, 5, 5))
    source.seed(request)
    assert await source.list_requests() == [request]
