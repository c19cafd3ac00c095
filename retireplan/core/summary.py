"""Collapse a monthly series into the user-facing result."""

from __future__ import annotations

import logging
from typing import Optional, Sequence

from retireplan.core.accumulation import adjust_for_inflation, planned_monthly_income
from retireplan.core.constants import MONTHS_PER_YEAR, SUSTAINABLE_WITHDRAWAL_RATE, round2
from retireplan.models import PlanInput
from retireplan.schemas.projection import MonthlyDataPoint
from retireplan.schemas.results import CalculationResult

logger = logging.getLogger(__name__)


def _cpf_balance_at_retirement(plan: PlanInput, working: Sequence[MonthlyDataPoint]) -> float:
    if not plan.cpf_enabled:
        return 0.0
    if working and working[-1].cpf is not None:
        return round2(working[-1].cpf.accounts.total)
    return round2(plan.cpf.currentBalances.total)


def _withdrawal_too_high(retirement: Sequence[MonthlyDataPoint], total_savings: float) -> bool:
    first_year = retirement[:MONTHS_PER_YEAR]
    annual_draw = -sum(point.contributions for point in first_year)
    if annual_draw <= 0:
        return False
    if total_savings <= 0:
        return True
    return annual_draw / total_savings > SUSTAINABLE_WITHDRAWAL_RATE


def summarize(
    plan: PlanInput,
    series: Sequence[MonthlyDataPoint],
    total_savings: Optional[float] = None,
    total_contributions: Optional[float] = None,
) -> CalculationResult:
    """Build a :class:`CalculationResult` from ``series``.

    ``series`` may hold the whole run or only the retirement months; in the
    latter case the caller supplies the accumulation figures. Interest earned
    is whatever closes the gap between the balance at retirement and the
    money put in, so the three figures always reconcile.
    """
    working = [point for point in series if not point.retired]
    retirement = [point for point in series if point.retired]

    if total_savings is None:
        total_savings = working[-1].portfolioValue if working else plan.currentSavings
    if total_contributions is None:
        total_contributions = sum(point.contributions for point in working)

    total_savings = round2(total_savings)
    total_contributions = round2(total_contributions)
    interest_earned = round2(total_savings - round2(plan.currentSavings) - total_contributions)

    years_to_retirement = round2(plan.retirementAge - plan.currentAge)

    years_until_depletion = None
    depletion_age = None
    if retirement and retirement[-1].portfolioValue <= 0:
        years_until_depletion = round2((len(retirement) - 1) / MONTHS_PER_YEAR)
        depletion_age = round2(plan.retirementAge + years_until_depletion)
        logger.debug("depletion after %s years of retirement", years_until_depletion)

    warning = years_until_depletion is not None or _withdrawal_too_high(retirement, total_savings)

    return CalculationResult(
        totalSavings=total_savings,
        futureValue=total_savings,
        monthlyRetirementIncome=planned_monthly_income(plan, total_savings),
        yearsToRetirement=years_to_retirement,
        totalContributions=total_contributions,
        interestEarned=interest_earned,
        inflationAdjustedValue=adjust_for_inflation(total_savings, plan.inflationRate, years_to_retirement),
        yearsUntilDepletion=years_until_depletion,
        depletionAge=depletion_age,
        sustainabilityWarning=warning,
        cpfBalanceAtRetirement=_cpf_balance_at_retirement(plan, working),
    )
