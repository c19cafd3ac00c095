"""Month-granularity calendar helpers.

All dates that reach the engine are ``YYYY-MM`` strings. They are parsed into
:class:`YearMonth` values; anything unparseable comes back as ``None`` so that
callers can degrade instead of crashing.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date
from typing import Optional

from retireplan.core.constants import DAYS_PER_YEAR, MAX_YEAR, MIN_YEAR, MONTHS_PER_YEAR

_MONTH_PATTERN = re.compile(r"^(\d{4})-(\d{2})$")


@dataclass(frozen=True, order=True)
class YearMonth:
    year: int
    month: int

    @classmethod
    def today(cls) -> "YearMonth":
        now = date.today()
        return cls(now.year, now.month)

    @property
    def ordinal(self) -> int:
        return self.year * MONTHS_PER_YEAR + (self.month - 1)

    def shift(self, months: int) -> "YearMonth":
        ordinal = self.ordinal + months
        return YearMonth(ordinal // MONTHS_PER_YEAR, ordinal % MONTHS_PER_YEAR + 1)

    def months_until(self, other: "YearMonth") -> int:
        """Signed number of months from ``self`` to ``other``."""
        return other.ordinal - self.ordinal

    def years_until(self, other: "YearMonth") -> float:
        """Fractional years between the first days of both months (365.25-day year)."""
        start = date(self.year, self.month, 1)
        end = date(other.year, other.month, 1)
        return (end - start).days / DAYS_PER_YEAR

    def __str__(self) -> str:
        return f"{self.year:04d}-{self.month:02d}"


def parse_month(value: Optional[str]) -> Optional[YearMonth]:
    """Parse ``YYYY-MM``; return None for missing or malformed input."""
    if not isinstance(value, str):
        return None
    match = _MONTH_PATTERN.match(value.strip())
    if not match:
        return None
    year, month = int(match.group(1)), int(match.group(2))
    if not (MIN_YEAR <= year <= MAX_YEAR) or not (1 <= month <= 12):
        return None
    return YearMonth(year, month)


def is_valid_month(value: Optional[str]) -> bool:
    return parse_month(value) is not None
