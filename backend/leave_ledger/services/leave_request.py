from __future__ import annotations

from typing import Protocol, runtime_checkable

from leave_ledger.schemas.leave import LeaveRequest


@runtime_checkable
class LeaveRequestSource(Protocol):
    """Interface for the leave-request store."""

    async def list_requests(self) -> list[LeaveRequest]:
        """List all leave requests, each carrying the employee identity it was filed under."""
        ...


class InMemoryLeaveRequestSource:
    """In-memory stub implementation for development."""

    def __init__(self) -> None:
        self._requests: dict[str, LeaveRequest] = {}

    def seed(self, request: LeaveRequest) -> None:
        """Seed a leave request for testing."""
        self._requests[request.id] = request

    async def list_requests(self) -> list[LeaveRequest]:
        """List all leave requests."""
        return list(self._requests.values())


_leave_request_source: LeaveRequestSource = InMemoryLeaveRequestSource()


def get_leave_request_source() -> LeaveRequestSource:
    """FastAPI dependency for the leave-request source."""
    return _leave_request_source


def set_leave_request_source(source: LeaveRequestSource) -> None:
    """Override the source (for testing or production wiring)."""
    global _leave_request_source
    _leave_request_source = source
