"""Closed-form accumulation math and retirement-income helpers."""

from __future__ import annotations

import math
from typing import Optional

from retireplan.core.constants import (
    MAX_ANNUAL_RATE,
    MAX_PROJECTION_YEARS,
    MONTHS_PER_YEAR,
    SAFE_AMOUNT_CEILING,
    SAFE_WITHDRAWAL_RATE,
    round2,
)
from retireplan.domain.errors import NumericOverflowError
from retireplan.models import PlanInput


def _check_inputs(principal: float, monthly_payment: float, annual_rate: float, years: float) -> None:
    for label, value in (("principal", principal), ("monthly payment", monthly_payment)):
        if not math.isfinite(value):
            raise NumericOverflowError(f"{label} is not a finite number")
        if abs(value) > SAFE_AMOUNT_CEILING:
            raise NumericOverflowError(f"{label} exceeds the safe calculation range")
    if not math.isfinite(annual_rate) or annual_rate > MAX_ANNUAL_RATE:
        raise NumericOverflowError("annual rate must not exceed 100%")
    if not math.isfinite(years) or years > MAX_PROJECTION_YEARS:
        raise NumericOverflowError(f"horizon must not exceed {MAX_PROJECTION_YEARS} years")


def calculate_future_value(
    principal: float,
    monthly_payment: float,
    annual_rate: float,
    years: float,
) -> float:
    """Future value of ``principal`` plus end-of-month payments, compounded monthly.

    FV = P(1+r)^n + PMT((1+r)^n - 1)/r, with r the monthly rate and n the
    number of months. At a zero rate this is exactly P + PMT*n.
    """
    _check_inputs(principal, monthly_payment, annual_rate, years)
    months = years * MONTHS_PER_YEAR
    if months <= 0:
        return round2(principal)

    monthly_rate = annual_rate / MONTHS_PER_YEAR
    if monthly_rate == 0:
        return round2(principal + monthly_payment * months)

    try:
        growth = (1 + monthly_rate) ** months
    except OverflowError as exc:
        raise NumericOverflowError("compound growth overflowed") from exc

    value = principal * growth + monthly_payment * (growth - 1) / monthly_rate
    if not math.isfinite(value):
        raise NumericOverflowError("future value is not a finite number")
    if value < 0:
        raise NumericOverflowError("future value came out negative")
    return round2(value)


def calculate_total_contributions(monthly_payment: float, years: float) -> float:
    return round2(monthly_payment * MONTHS_PER_YEAR * max(years, 0))


def adjust_for_inflation(value: float, inflation_rate: float, years: float) -> float:
    """Express a future nominal ``value`` in today's money."""
    if years <= 0 or inflation_rate == 0:
        return round2(value)
    return round2(value / (1 + inflation_rate) ** years)


def calculate_monthly_income(total_savings: float, withdrawal_rate: float = SAFE_WITHDRAWAL_RATE) -> float:
    """Sustainable monthly income from a lump sum (the 4% rule by default)."""
    return round2(max(total_savings, 0.0) * withdrawal_rate / MONTHS_PER_YEAR)


def retirement_withdrawal(plan: PlanInput, balance: float) -> float:
    """Planned monthly withdrawal in retirement for the current ``balance``.

    Without a withdrawal config, ``monthlyRetirementSpending`` is a fixed
    withdrawal. The percentage strategy takes an annual share of the balance.
    """
    config = plan.withdrawalConfig
    if config is None:
        return plan.monthlyRetirementSpending or 0.0

    fixed = config.fixedAmount if config.fixedAmount is not None else (plan.monthlyRetirementSpending or 0.0)
    variable = max(balance, 0.0) * (config.percentage or 0.0) / MONTHS_PER_YEAR
    if config.strategy == "fixed":
        return fixed
    if config.strategy == "percentage":
        return variable
    return fixed + variable


def planned_monthly_income(plan: PlanInput, total_savings: float) -> float:
    planned: Optional[float] = None
    if plan.withdrawalConfig is not None or plan.monthlyRetirementSpending:
        planned = retirement_withdrawal(plan, total_savings)
    if planned:
        return round2(planned)
    return calculate_monthly_income(total_savings)
