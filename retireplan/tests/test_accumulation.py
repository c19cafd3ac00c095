from __future__ import annotations

from math import isclose

import pytest

from retireplan.core.accumulation import (
    adjust_for_inflation,
    calculate_future_value,
    calculate_monthly_income,
    calculate_total_contributions,
    planned_monthly_income,
    retirement_withdrawal,
)
from retireplan.domain.errors import NumericOverflowError
from retireplan.models import PlanInput


def test_future_value_with_monthly_payments():
    assert abs(calculate_future_value(10000, 500, 0.07, 30) - 691150) <= 100


def test_zero_rate_is_exact():
    assert calculate_future_value(10000, 500, 0, 10) == 70000


def test_zero_horizon_returns_principal():
    assert calculate_future_value(10000, 500, 0.05, 0) == 10000


@pytest.mark.parametrize(
    "principal, payment, rate, years",
    [
        (10000, 500, 1.5, 10),
        (10000, 500, 0.05, 201),
        (1e300, 0, 0.05, 10),
        (0, 1e300, 0.05, 10),
        (float("nan"), 0, 0.05, 10),
    ],
)
def test_guards_raise_instead_of_returning_garbage(principal, payment, rate, years):
    with pytest.raises(NumericOverflowError):
        calculate_future_value(principal, payment, rate, years)


def test_negative_result_is_rejected():
    with pytest.raises(NumericOverflowError):
        calculate_future_value(1000, -5000, 0.05, 10)


def test_helpers():
    assert calculate_total_contributions(500, 10) == 60000
    assert adjust_for_inflation(110, 0.10, 1) == 100
    assert adjust_for_inflation(110, 0, 5) == 110
    assert calculate_monthly_income(1_200_000) == 4000
    assert calculate_monthly_income(-5) == 0


def plan_with(**fields) -> PlanInput:
    data = {
        "currentAge": 60,
        "retirementAge": 65,
        "currentSavings": 0,
        "expectedReturnRate": 0.05,
        "inflationRate": 0.02,
    }
    data.update(fields)
    return PlanInput.model_validate(data)


def test_withdrawal_strategies():
    assert retirement_withdrawal(plan_with(), 500000) == 0
    assert retirement_withdrawal(plan_with(monthlyRetirementSpending=3000), 500000) == 3000

    fixed = plan_with(withdrawalConfig={"strategy": "fixed", "fixedAmount": 2500})
    percentage = plan_with(withdrawalConfig={"strategy": "percentage", "percentage": 0.06})
    combined = plan_with(withdrawalConfig={"strategy": "combined", "fixedAmount": 1000, "percentage": 0.06})

    assert retirement_withdrawal(fixed, 500000) == 2500
    assert isclose(retirement_withdrawal(percentage, 500000), 2500)
    assert retirement_withdrawal(percentage, -10) == 0
    assert isclose(retirement_withdrawal(combined, 500000), 3500)


def test_planned_income_falls_back_to_four_percent_rule():
    assert planned_monthly_income(plan_with(), 600000) == 2000
    assert planned_monthly_income(plan_with(monthlyRetirementSpending=3100), 600000) == 3100
