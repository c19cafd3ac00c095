from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from retireplan.core.constants import MONTHS_PER_YEAR
from retireplan.core.dates import YearMonth, parse_month
from retireplan.core.loans import PreparedLoan
from retireplan.models import OneTimeExpense, RetirementExpense


@dataclass
class LoanDue:
    prepared: PreparedLoan
    payment: float
    cpf_request: float


@dataclass
class ExpenseBreakdown:
    recurring: float = 0.0
    one_time: float = 0.0
    loans: List[LoanDue] = field(default_factory=list)

    @property
    def loan_total(self) -> float:
        return sum(item.payment for item in self.loans)

    @property
    def cpf_requested(self) -> float:
        return sum(item.cpf_request for item in self.loans)

    @property
    def total(self) -> float:
        return self.recurring + self.one_time + self.loan_total


def _uses_age_window(expense: RetirementExpense) -> bool:
    return expense.startAge is not None or expense.endAge is not None


def expense_years_active(
    expense: RetirementExpense,
    when: YearMonth,
    age: float,
    projection_start: YearMonth,
    start_age: float,
) -> Optional[float]:
    """Years since the expense started, or None when it is not active.

    An age window wins over a date window when both are present. A missing
    start means "from the beginning of the projection".
    """
    if _uses_age_window(expense):
        begin = expense.startAge if expense.startAge is not None else start_age
        if age < begin:
            return None
        if expense.endAge is not None and age >= expense.endAge:
            return None
        return age - begin

    start = parse_month(expense.startDate) if expense.startDate else projection_start
    end = parse_month(expense.endDate) if expense.endDate else None
    if start is None or (expense.endDate and end is None):
        return None
    if when < start or (end is not None and when > end):
        return None
    return start.months_until(when) / MONTHS_PER_YEAR


def recurring_expense_amount(
    expense: RetirementExpense,
    when: YearMonth,
    age: float,
    projection_start: YearMonth,
    start_age: float,
) -> float:
    years = expense_years_active(expense, when, age, projection_start, start_age)
    if years is None:
        return 0.0
    return expense.monthlyAmount * (1 + expense.inflationRate) ** years


def one_time_expenses_due(items: Sequence[OneTimeExpense], when: YearMonth) -> float:
    total = 0.0
    for item in items:
        due = parse_month(item.date)
        if due is not None and due == when:
            total += item.amount
    return total


def aggregate_expenses(
    expenses: Sequence[RetirementExpense],
    loans: Sequence[PreparedLoan],
    one_time: Sequence[OneTimeExpense],
    when: YearMonth,
    age: float,
    projection_start: YearMonth,
    start_age: float,
) -> ExpenseBreakdown:
    """Total outflow due in ``when``: inflated recurring expenses, loan payments, one-time costs."""
    breakdown = ExpenseBreakdown()
    for expense in expenses:
        breakdown.recurring += recurring_expense_amount(expense, when, age, projection_start, start_age)

    for prepared in loans:
        payment = prepared.payment_due(when)
        if payment > 0:
            breakdown.loans.append(
                LoanDue(prepared=prepared, payment=payment, cpf_request=prepared.cpf_share(payment))
            )

    breakdown.one_time = one_time_expenses_due(one_time, when)
    return breakdown
