"""Employee identity resolution across sources.

The directory, leave-request store, attendance store and payroll store each
reference employees their own way ("E007", "7", " e007 ", "007"). Every
join between them goes through the functions here.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, TypeVar

if TYPE_CHECKING:
    from collections.abc import Iterable

    from leave_ledger.schemas.employee import EmployeeIdentity

_WHITESPACE_RE = re.compile(r"\s+")
_NON_DIGIT_RE = re.compile(r"\D")

E = TypeVar("E", bound="EmployeeIdentity")


def normalize_text(value: object) -> str:
    """Trim and lowercase, treating ``None`` as empty."""
    return str(value if value is not None else "").strip().lower()


def compact_id(value: object) -> str:
    """Normalized id with all whitespace removed."""
    return _WHITESPACE_RE.sub("", normalize_text(value))


def numeric_id(value: object) -> str:
    """Digits of the id without leading zeros ("E007" -> "7", "000" -> "0").

    Returns "" when the id carries no digits at all.
    """
    digits = _NON_DIGIT_RE.sub("", compact_id(value))
    if not digits:
        return ""
    return digits.lstrip("0") or "0"


def ids_match(a: object, b: object) -> bool:
    """Whether two raw ids refer to the same employee. Symmetric, never raises."""
    compact_a = compact_id(a)
    compact_b = compact_id(b)
    if not compact_a or not compact_b:
        return False
    if compact_a == compact_b:
        return True

    num_a = numeric_id(a)
    num_b = numeric_id(b)
    return bool(num_a) and num_a == num_b


def employees_match(candidate: EmployeeIdentity, employee: EmployeeIdentity) -> bool:
    """Match two identities, falling back to email then name.

    Email and name are weaker signals and are only consulted when the ids do
    not match.
    """
    if ids_match(candidate.id, employee.id):
        return True

    candidate_email = normalize_text(candidate.email)
    if candidate_email and candidate_email == normalize_text(employee.email):
        return True

    candidate_name = normalize_text(candidate.name)
    return bool(candidate_name) and candidate_name == normalize_text(employee.name)


def find_employee(ref: EmployeeIdentity, employees: Iterable[E]) -> E | None:
    """Resolve ``ref`` against a directory.

    All id-based matches are tried before any email/name fallback, so a weak
    match never shadows a strong one elsewhere in the list.
    """
    candidates = list(employees)
    for employee in candidates:
        if ids_match(ref.id, employee.id):
            return employee
    for employee in candidates:
        if employees_match(ref, employee):
            return employee
    return None
