from __future__ import annotations

import re
from calendar import monthrange
from dataclasses import dataclass
from datetime import date
from typing import Self

_MONTH_KEY_RE = re.compile(r"^(\d{4})-(\d{2})$")


@dataclass(frozen=True, order=True)
class PeriodKey:
    """A calendar month, the accounting unit of the ledger.

    Ordered by (year, month), so periods compare chronologically.
    """

    year: int
    month: int

    def __post_init__(self) -> None:
        if not 1 <= self.month <= 12:
            msg = f"month must be between 1 and 12, got {self.month}"
            raise ValueError(msg)
        if not 1 <= self.year <= 9999:
            msg = f"year out of range: {self.year}"
            raise ValueError(msg)

    @classmethod
    def parse(cls, month_key: str) -> Self:
        """Parse a ``YYYY-MM`` month key."""
        match = _MONTH_KEY_RE.match(str(month_key).strip())
        if match is None:
            msg = f"invalid month key {month_key!r}, expected YYYY-MM"
            raise ValueError(msg)
        return cls(int(match.group(1)), int(match.group(2)))

    @classmethod
    def from_date(cls, value: date) -> Self:
        return cls(value.year, value.month)

    @property
    def month_key(self) -> str:
        return f"{self.year:04d}-{self.month:02d}"

    @property
    def start(self) -> date:
        """First day of the month."""
        return date(self.year, self.month, 1)

    @property
    def end(self) -> date:
        """Last day of the month (inclusive)."""
        _, days_in_month = monthrange(self.year, self.month)
        return date(self.year, self.month, days_in_month)

    def previous(self) -> PeriodKey:
        if self.month == 1:
            return PeriodKey(self.year - 1, 12)
        return PeriodKey(self.year, self.month - 1)

    def next(self) -> PeriodKey:
        if self.month == 12:
            return PeriodKey(self.year + 1, 1)
        return PeriodKey(self.year, self.month + 1)

    def __str__(self) -> str:
        return self.month_key
