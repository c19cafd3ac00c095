"""Income cadence normalization."""

from __future__ import annotations

from typing import Optional

from retireplan.core.constants import (
    AVERAGE_DAYS_PER_MONTH,
    DAYS_PER_YEAR,
    MONTHS_PER_YEAR,
    WEEKS_PER_YEAR,
)


def to_monthly(amount: float, frequency: str, custom_days: Optional[float] = None) -> float:
    """Convert ``amount`` paid at ``frequency`` into an equivalent monthly amount.

    ``one-time`` amounts are returned unchanged; deciding which month they land
    in is the income aggregator's job. Unknown cadences and non-positive custom
    periods normalize to 0.
    """
    if frequency == "daily":
        return amount * AVERAGE_DAYS_PER_MONTH
    if frequency == "weekly":
        return amount * WEEKS_PER_YEAR / MONTHS_PER_YEAR
    if frequency == "monthly":
        return amount
    if frequency == "yearly":
        return amount / MONTHS_PER_YEAR
    if frequency == "custom":
        if not custom_days or custom_days <= 0:
            return 0.0
        return amount * DAYS_PER_YEAR / custom_days / MONTHS_PER_YEAR
    if frequency == "one-time":
        return amount
    return 0.0
