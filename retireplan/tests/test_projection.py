from __future__ import annotations

import logging
from math import isclose

import pytest

from retireplan.core.accumulation import calculate_future_value
from retireplan.core.projection import (
    apply_inflation_adjustment,
    calculate_retirement,
    generate_monthly_projections,
    uses_closed_form,
)
from retireplan.domain.errors import NumericOverflowError, PlanValidationError
from retireplan.models import PlanInput


@pytest.fixture()
def full_plan(make_plan, salary) -> PlanInput:
    """Every kind of flow at once: dated escalating salary, expenses, a CPF-funded loan, lumps."""
    return PlanInput.model_validate(
        make_plan(
            currentAge=40,
            retirementAge=50,
            currentSavings=25000,
            monthlyContribution=0,
            incomeSources=[
                salary(6000, cpfEligible=True, startDate="2025-01", endDate="2034-12", annualIncrease=0.03),
            ],
            oneOffReturns=[{"id": "r1", "date": "2026-03", "amount": 5000, "description": "Bonus"}],
            expenses=[{"id": "e1", "name": "Living", "monthlyAmount": 2500, "inflationRate": 0.03}],
            loans=[
                {
                    "id": "home",
                    "name": "Home",
                    "principal": 200000,
                    "interestRate": 0.035,
                    "termMonths": 300,
                    "startDate": "2025-01",
                    "category": "housing",
                    "useCPF": True,
                    "cpfPercentage": 50,
                }
            ],
            oneTimeExpenses=[{"id": "o1", "name": "Car", "amount": 30000, "date": "2027-06"}],
            cpf={
                "enabled": True,
                "currentBalances": {"ordinaryAccount": 40000, "specialAccount": 20000, "medisaveAccount": 15000},
            },
        )
    )


def test_closed_form_matches_future_value(make_plan):
    plan = PlanInput.model_validate(make_plan())
    result = calculate_retirement(plan)

    expected = calculate_future_value(10000, 500, 0.06, 5)
    assert uses_closed_form(plan)
    assert result.totalSavings == expected
    assert result.futureValue == expected
    assert result.totalContributions == 30000
    assert isclose(result.interestEarned, expected - 40000, abs_tol=0.01)
    assert result.yearsToRetirement == 5
    assert result.yearsUntilDepletion is None
    assert not result.sustainabilityWarning


def test_stepped_series_agrees_with_closed_form(make_plan):
    plan = PlanInput.model_validate(make_plan())
    series = generate_monthly_projections(plan)

    assert len(series) == 60
    assert not any(point.retired for point in series)
    assert isclose(series[-1].portfolioValue, calculate_future_value(10000, 500, 0.06, 5), abs_tol=0.05)


def test_series_calendar_and_ages(make_plan):
    series = generate_monthly_projections(PlanInput.model_validate(make_plan()))

    assert (series[0].year, series[0].month) == (2025, 1)
    assert (series[12].year, series[12].month) == (2026, 1)
    assert series[6].age == 30.5
    assert [point.monthIndex for point in series] == list(range(60))


def test_mode_selection_is_logged(make_plan, caplog):
    with caplog.at_level(logging.DEBUG, logger="retireplan.core.projection"):
        calculate_retirement(PlanInput.model_validate(make_plan()))
    assert "closed-form" in caplog.text


def test_full_plan_uses_stepped_mode(full_plan):
    assert not uses_closed_form(full_plan)
    assert all(point.cpf is not None for point in generate_monthly_projections(full_plan))


def test_conservation(full_plan):
    result = calculate_retirement(full_plan)

    assert isclose(
        result.totalSavings,
        full_plan.currentSavings + result.totalContributions + result.interestEarned,
        abs_tol=0.01,
    )


def test_series_balances_reconcile(full_plan):
    series = generate_monthly_projections(full_plan)

    rebuilt = full_plan.currentSavings + sum(p.contributions + p.growth for p in series)
    assert isclose(series[-1].portfolioValue, rebuilt, abs_tol=0.01 * len(series))


def test_idempotent_and_inputs_untouched(full_plan):
    before = full_plan.model_dump()

    first = calculate_retirement(full_plan)
    second = calculate_retirement(full_plan)

    assert first.model_dump() == second.model_dump()
    assert full_plan.model_dump() == before


@pytest.mark.parametrize("expenses", [[], [{"id": "e1", "name": "Rent", "monthlyAmount": 300}]])
def test_more_contribution_means_more_savings(make_plan, expenses):
    low = calculate_retirement(PlanInput.model_validate(make_plan(expenses=expenses)))
    high = calculate_retirement(PlanInput.model_validate(make_plan(monthlyContribution=600, expenses=expenses)))

    assert high.totalSavings > low.totalSavings


def test_one_time_expense_hits_its_month(make_plan):
    plan = make_plan(
        retirementAge=31,
        expectedReturnRate=0,
        monthlyContribution=0,
        oneTimeExpenses=[{"id": "o1", "name": "Laptop", "amount": 2000, "date": "2025-03"}],
    )
    series = generate_monthly_projections(PlanInput.model_validate(plan))

    assert series[1].portfolioValue == 10000
    assert series[2].portfolioValue == 8000
    assert series[2].expenses == 2000
    assert series[2].contributions == -2000


def test_employee_share_is_taken_from_take_home_pay(make_plan, salary):
    plan = make_plan(
        currentSavings=0,
        expectedReturnRate=0,
        monthlyContribution=0,
        incomeSources=[salary(5000, cpfEligible=True)],
        cpf={"enabled": True},
    )
    first = generate_monthly_projections(PlanInput.model_validate(plan))[0]

    assert first.income == 5000
    assert first.contributions == 4000
    assert first.cpf.monthlyContribution.total == 1850


def test_life_payout_starts_at_payout_age(make_plan):
    plan = make_plan(
        currentAge=64,
        retirementAge=66,
        currentSavings=0,
        expectedReturnRate=0,
        monthlyContribution=0,
        cpf={"enabled": True, "manualOverride": True, "currentBalances": {"retirementAccount": 213000}},
    )
    series = generate_monthly_projections(PlanInput.model_validate(plan))

    assert series[11].cpf.lifePayout == 0
    assert series[11].cpf.accounts.retirementAccount > 213000
    payout = series[12].cpf.lifePayout
    assert payout > 1670
    assert series[12].cpf.accounts.retirementAccount == 0
    assert series[12].income == payout
    assert series[13].cpf.lifePayout == payout


def test_depletion_is_reported(make_plan):
    plan = PlanInput.model_validate(
        make_plan(
            currentAge=60,
            retirementAge=61,
            currentSavings=100000,
            expectedReturnRate=0,
            monthlyContribution=0,
            monthlyRetirementSpending=5000,
        )
    )
    result = calculate_retirement(plan)

    assert result.totalSavings == 100000
    assert result.yearsUntilDepletion == 1.58
    assert result.depletionAge == 62.58
    assert result.sustainabilityWarning


def test_tracking_stops_at_depletion(make_plan):
    plan = PlanInput.model_validate(
        make_plan(
            currentAge=60,
            retirementAge=61,
            currentSavings=100000,
            expectedReturnRate=0,
            monthlyContribution=0,
            monthlyRetirementSpending=5000,
        )
    )
    series = generate_monthly_projections(plan, max_age=95)

    assert len(series) == 32
    assert series[-1].retired
    assert series[-1].portfolioValue == 0


def test_depleting_month_stops_at_zero(make_plan):
    plan = PlanInput.model_validate(
        make_plan(
            currentAge=60,
            retirementAge=61,
            currentSavings=100000,
            expectedReturnRate=0,
            monthlyContribution=0,
            monthlyRetirementSpending=6000,
        )
    )
    series = generate_monthly_projections(plan, max_age=95)
    result = calculate_retirement(plan)

    assert len(series) == 29
    assert all(point.portfolioValue >= 0 for point in series)
    assert series[-1].portfolioValue == 0
    assert series[-1].contributions == -4000
    assert series[-2].portfolioValue + series[-1].growth + series[-1].contributions == 0
    assert result.yearsUntilDepletion == 1.33
    assert result.depletionAge == 62.33


def test_sustainable_spending(make_plan):
    plan = PlanInput.model_validate(
        make_plan(
            currentAge=60,
            retirementAge=65,
            currentSavings=1_000_000,
            expectedReturnRate=0.05,
            monthlyContribution=0,
            monthlyRetirementSpending=2000,
        )
    )
    result = calculate_retirement(plan)

    assert result.yearsUntilDepletion is None
    assert result.depletionAge is None
    assert not result.sustainabilityWarning
    assert result.monthlyRetirementIncome == 2000


def test_high_withdrawal_rate_warns_without_depletion(make_plan):
    plan = PlanInput.model_validate(
        make_plan(
            currentAge=60,
            retirementAge=65,
            currentSavings=1_000_000,
            expectedReturnRate=0.05,
            monthlyContribution=0,
            monthlyRetirementSpending=6000,
        )
    )
    result = calculate_retirement(plan)

    assert result.yearsUntilDepletion is None
    assert result.sustainabilityWarning


def test_retirement_expenses_win_over_smaller_withdrawal(make_plan):
    plan = make_plan(
        currentAge=60,
        retirementAge=61,
        currentSavings=100000,
        expectedReturnRate=0,
        monthlyContribution=0,
        monthlyRetirementSpending=1000,
        expenses=[{"id": "e1", "name": "Care", "monthlyAmount": 2500, "startAge": 61}],
    )
    series = generate_monthly_projections(PlanInput.model_validate(plan), max_age=70)

    assert series[11].expenses == 0
    assert series[12].retired
    assert series[12].expenses == 2500


def test_inflation_adjustment_discounts_copies(make_plan):
    series = generate_monthly_projections(PlanInput.model_validate(make_plan()))
    nominal = series[11].portfolioValue

    adjusted = apply_inflation_adjustment(series, 0.02)

    assert isclose(adjusted[11].portfolioValue, nominal / 1.02, abs_tol=0.01)
    assert series[11].portfolioValue == nominal
    assert apply_inflation_adjustment(series, 0) == series


def test_invalid_plan_is_refused(make_plan):
    with pytest.raises(PlanValidationError) as excinfo:
        calculate_retirement(PlanInput.model_validate(make_plan(currentAge=10)))

    assert any(issue.field == "currentAge" for issue in excinfo.value.errors)


def test_runaway_rate_aborts(make_plan):
    with pytest.raises(NumericOverflowError):
        generate_monthly_projections(PlanInput.model_validate(make_plan(expectedReturnRate=1.5)))
