"""Month-by-month portfolio projection.

Two modes:
  - closed form, when every input is constant over the horizon (no dated or
    escalating income, no expenses, loans, one-off flows or CPF)
  - time-stepped, otherwise

Order of operations in a stepped month:
  1) income, expenses, loan payments and CPF for the month
  2) growth on the opening balance
  3) add the month's net flow
  4) deduct one-time expenses due this month

After retirement the regular contribution stops and the planned withdrawal
(or the recurring expenses, whichever is larger) is paid out instead. Tracking
stops at the terminal age or in the first month the balance reaches zero.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Iterator, List, Optional, Sequence

from retireplan.core.accumulation import calculate_future_value, retirement_withdrawal
from retireplan.core.constants import (
    DEFAULT_MAX_AGE,
    MAX_ANNUAL_RATE,
    MAX_CALCULATION_MONTHS,
    MAX_PROJECTION_YEARS,
    MONTHS_PER_YEAR,
    round2,
)
from retireplan.core.cpf import CPFLedger, check_eligible_income
from retireplan.core.cpf_config import CPF_CONFIG_2025, CPFConfig
from retireplan.core.dates import YearMonth, parse_month
from retireplan.core.expenses import aggregate_expenses
from retireplan.core.income import aggregate_income, has_time_varying_income, log_degraded_sources
from retireplan.core.loans import PreparedLoan
from retireplan.core.summary import summarize
from retireplan.domain.errors import NumericOverflowError, PlanValidationError
from retireplan.domain.validation import validate
from retireplan.models import PlanInput
from retireplan.schemas.projection import MonthlyDataPoint
from retireplan.schemas.results import CalculationResult

logger = logging.getLogger(__name__)


@dataclass
class PreparedProjection:
    plan: PlanInput
    start: YearMonth
    monthly_rate: float
    retirement_month: int
    horizon: int
    loans: List[PreparedLoan]
    config: CPFConfig


def _months_between_ages(start_age: float, end_age: float) -> int:
    return max(0, int(round((end_age - start_age) * MONTHS_PER_YEAR)))


def _projection_start(plan: PlanInput) -> YearMonth:
    if plan.projectionStart is None:
        return YearMonth.today()
    start = parse_month(plan.projectionStart)
    if start is None:
        logger.warning("projectionStart %r is not YYYY-MM; using the current month", plan.projectionStart)
        return YearMonth.today()
    return start


def prepare_projection(
    plan: PlanInput,
    max_age: Optional[float] = None,
    cpf_config: CPFConfig = CPF_CONFIG_2025,
) -> PreparedProjection:
    """Resolve everything that is fixed for a run and check the numeric guards."""
    if not math.isfinite(plan.expectedReturnRate) or plan.expectedReturnRate > MAX_ANNUAL_RATE:
        raise NumericOverflowError("annual return rate must not exceed 100%")

    retirement_month = _months_between_ages(plan.currentAge, plan.retirementAge)
    horizon = retirement_month
    if max_age is not None:
        horizon = max(horizon, _months_between_ages(plan.currentAge, max_age))
    if horizon > MAX_PROJECTION_YEARS * MONTHS_PER_YEAR:
        raise NumericOverflowError(f"horizon must not exceed {MAX_PROJECTION_YEARS} years")
    if horizon > MAX_CALCULATION_MONTHS:
        logger.debug("horizon of %s months clamped to %s", horizon, MAX_CALCULATION_MONTHS)
        horizon = MAX_CALCULATION_MONTHS

    if plan.cpf_enabled:
        check_eligible_income(plan.incomeSources, plan.cpf)
    log_degraded_sources(plan.incomeSources)

    return PreparedProjection(
        plan=plan,
        start=_projection_start(plan),
        monthly_rate=plan.expectedReturnRate / MONTHS_PER_YEAR,
        retirement_month=retirement_month,
        horizon=horizon,
        loans=[PreparedLoan.from_loan(loan) for loan in plan.loans],
        config=cpf_config,
    )


def iter_monthly_projections(
    prepared: PreparedProjection,
    first_month: int = 0,
    opening_balance: Optional[float] = None,
) -> Iterator[MonthlyDataPoint]:
    """Lazily simulate months ``first_month`` .. ``horizon - 1``.

    Each call starts from fresh state, so the sequence can be restarted by
    calling again. CPF state is only tracked from month 0.
    """
    plan = prepared.plan
    balance = plan.currentSavings if opening_balance is None else opening_balance

    ledger: Optional[CPFLedger] = None
    if plan.cpf_enabled and first_month == 0:
        ledger = CPFLedger(plan.cpf, plan.currentAge, prepared.config)

    for index in range(first_month, prepared.horizon):
        when = prepared.start.shift(index)
        age = plan.currentAge + index / MONTHS_PER_YEAR
        retired = index >= prepared.retirement_month

        income = aggregate_income(plan.incomeSources, plan.oneOffReturns, when, prepared.start)
        expenses = aggregate_expenses(
            plan.expenses,
            prepared.loans,
            plan.oneTimeExpenses,
            when,
            age,
            prepared.start,
            plan.currentAge,
        )

        snapshot = None
        cpf_draw = employee_share = life_payout = 0.0
        if ledger is not None:
            month = ledger.step(when, index, age, income.cpf_eligible, expenses.cpf_requested)
            snapshot = month.snapshot
            cpf_draw = month.loan_draw
            employee_share = month.employee_deduction
            life_payout = month.life_payout

        inflow = income.retained + life_payout - employee_share
        recurring = expenses.recurring
        if retired:
            recurring = max(retirement_withdrawal(plan, balance), recurring)
        else:
            inflow += plan.monthlyContribution

        net = inflow - recurring - (expenses.loan_total - cpf_draw)

        growth = balance * prepared.monthly_rate
        balance += growth
        balance += net
        balance -= expenses.one_time
        if not math.isfinite(balance):
            raise NumericOverflowError(f"portfolio value left the finite range in month {index}")

        flow = net - expenses.one_time
        if retired and balance < 0:
            # the portfolio can only pay out what it holds
            flow -= balance
            balance = 0.0

        yield MonthlyDataPoint(
            monthIndex=index,
            year=when.year,
            month=when.month,
            age=round(age, 4),
            income=round2(income.total + life_payout),
            expenses=round2(recurring + expenses.loan_total + expenses.one_time),
            contributions=round2(flow),
            portfolioValue=round2(balance),
            growth=round2(growth),
            retired=retired,
            cpf=snapshot,
        )

        if retired and balance <= 0:
            logger.debug("portfolio depleted in month %s at age %.2f", index, age)
            return


def generate_monthly_projections(
    plan: PlanInput,
    max_age: Optional[float] = None,
    cpf_config: CPFConfig = CPF_CONFIG_2025,
) -> List[MonthlyDataPoint]:
    """Full stepped series to retirement, or on to ``max_age`` when given."""
    prepared = prepare_projection(plan, max_age, cpf_config)
    return list(iter_monthly_projections(prepared))


def uses_closed_form(plan: PlanInput) -> bool:
    return not (
        plan.cpf_enabled
        or has_time_varying_income(plan.incomeSources)
        or plan.expenses
        or plan.loans
        or plan.oneTimeExpenses
        or plan.oneOffReturns
    )


def calculate_retirement(
    plan: PlanInput,
    max_age: Optional[float] = None,
    cpf_config: CPFConfig = CPF_CONFIG_2025,
) -> CalculationResult:
    """Validate ``plan`` and summarize its projection.

    Raises :class:`PlanValidationError` when validation finds problems and
    lets every other engine error propagate.
    """
    report = validate(plan)
    if not report.isValid:
        raise PlanValidationError(report.errors)

    terminal_age = max_age if max_age is not None else (plan.maxAge or DEFAULT_MAX_AGE)
    prepared = prepare_projection(plan, max(terminal_age, plan.retirementAge), cpf_config)

    if uses_closed_form(plan):
        logger.debug("closed-form projection over %s months", prepared.retirement_month)
        start_income = aggregate_income(plan.incomeSources, [], prepared.start, prepared.start)
        payment = plan.monthlyContribution + start_income.retained
        years = prepared.retirement_month / MONTHS_PER_YEAR
        total_savings = calculate_future_value(plan.currentSavings, payment, plan.expectedReturnRate, years)
        retirement_series = list(
            iter_monthly_projections(prepared, prepared.retirement_month, total_savings)
        )
        return summarize(
            plan,
            retirement_series,
            total_savings=total_savings,
            total_contributions=payment * prepared.retirement_month,
        )

    logger.debug("stepped projection over %s months", prepared.horizon)
    return summarize(plan, list(iter_monthly_projections(prepared)))


def apply_inflation_adjustment(
    series: Sequence[MonthlyDataPoint],
    inflation_rate: float,
) -> List[MonthlyDataPoint]:
    """Return a copy of ``series`` in today's money.

    Month ``i`` closes ``(i + 1) / 12`` years after the projection start and is
    discounted by that many years of inflation. CPF snapshots are left nominal.
    """
    adjusted: List[MonthlyDataPoint] = []
    for point in series:
        factor = (1 + inflation_rate) ** ((point.monthIndex + 1) / MONTHS_PER_YEAR)
        adjusted.append(
            point.model_copy(
                update={
                    "income": round2(point.income / factor),
                    "expenses": round2(point.expenses / factor),
                    "contributions": round2(point.contributions / factor),
                    "portfolioValue": round2(point.portfolioValue / factor),
                    "growth": round2(point.growth / factor),
                }
            )
        )
    return adjusted
