"""Income aggregation for a single simulated month.

Sources are evaluated independently: a source with a malformed date contributes
nothing for that month instead of aborting the projection.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence

from retireplan.core.dates import YearMonth, parse_month
from retireplan.core.frequency import to_monthly
from retireplan.models import IncomeSource, OneOffReturn

logger = logging.getLogger(__name__)

ESCALATING_TYPES = ("salary", "rental")


@dataclass
class ActiveIncome:
    source: IncomeSource
    monthly: float


@dataclass
class IncomeBreakdown:
    total: float = 0.0
    # monthly income times contributionPercentage (0 when unset)
    contribution: float = 0.0
    # what actually reaches the portfolio: the percentage share when set, otherwise all of it
    retained: float = 0.0
    one_off: float = 0.0
    cpf_eligible: float = 0.0
    active: List[ActiveIncome] = field(default_factory=list)


def _window(source: IncomeSource) -> Optional[tuple]:
    """Return (start, end) or None when a supplied date cannot be parsed."""
    start = parse_month(source.startDate) if source.startDate else None
    end = parse_month(source.endDate) if source.endDate else None
    if (source.startDate and start is None) or (source.endDate and end is None):
        return None
    return start, end


def is_one_time(source: IncomeSource) -> bool:
    return source.type == "one-time" or source.frequency == "one-time"


def is_active(source: IncomeSource, when: YearMonth) -> bool:
    """Whether ``source`` pays anything in month ``when``. Bounds are inclusive."""
    window = _window(source)
    if window is None:
        return False
    start, end = window
    if is_one_time(source):
        return start is not None and start == when
    if source.type == "fixed-period" and end is None:
        return False
    if start is not None and when < start:
        return False
    if end is not None and when > end:
        return False
    return True


def source_monthly_amount(source: IncomeSource, when: YearMonth, projection_start: YearMonth) -> float:
    if not is_active(source, when):
        return 0.0

    base = source.amount
    if source.type in ESCALATING_TYPES and source.annualIncrease:
        start = parse_month(source.startDate) if source.startDate else None
        anchor = start or projection_start
        years_elapsed = max(0.0, anchor.years_until(when))
        base = base * (1 + source.annualIncrease) ** years_elapsed

    if is_one_time(source):
        return base
    return to_monthly(base, source.frequency, source.customFrequencyDays)


def one_off_total(returns: Iterable[OneOffReturn], when: YearMonth) -> float:
    total = 0.0
    for item in returns:
        due = parse_month(item.date)
        if due is not None and due == when:
            total += item.amount
    return total


def aggregate_income(
    sources: Sequence[IncomeSource],
    one_off_returns: Sequence[OneOffReturn],
    when: YearMonth,
    projection_start: YearMonth,
) -> IncomeBreakdown:
    """Sum every source active in ``when`` plus any one-off lump due that month."""
    breakdown = IncomeBreakdown()
    for source in sources:
        monthly = source_monthly_amount(source, when, projection_start)
        if monthly == 0.0:
            continue
        breakdown.active.append(ActiveIncome(source=source, monthly=monthly))
        breakdown.total += monthly
        if source.contributionPercentage is not None:
            share = monthly * source.contributionPercentage
            breakdown.contribution += share
            breakdown.retained += share
        else:
            breakdown.retained += monthly
        if source.cpfEligible:
            breakdown.cpf_eligible += monthly

    breakdown.one_off = one_off_total(one_off_returns, when)
    breakdown.total += breakdown.one_off
    breakdown.retained += breakdown.one_off
    return breakdown


def has_time_varying_income(sources: Sequence[IncomeSource]) -> bool:
    """True when any source's monthly amount can change over the horizon."""
    return any(
        source.startDate
        or source.endDate
        or source.annualIncrease
        or source.type in ("fixed-period", "one-time")
        or source.frequency == "one-time"
        for source in sources
    )


def sources_with_bad_dates(sources: Sequence[IncomeSource]) -> List[IncomeSource]:
    return [source for source in sources if _window(source) is None]


def log_degraded_sources(sources: Sequence[IncomeSource]) -> None:
    for source in sources_with_bad_dates(sources):
        logger.warning(
            "income source %r has an unparseable date (start=%r, end=%r); it will contribute nothing",
            source.name,
            source.startDate,
            source.endDate,
        )
