"""Fixed-payment loan amortization.

M = P * r(1+r)^n / ((1+r)^n - 1), r = annual rate / 12, n = number of payments.
The regular payment never changes over a loan's life; extra payments only
shorten it.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from retireplan.core.constants import (
    MAX_LOAN_RATE,
    MAX_LOAN_TERM_MONTHS,
    MAX_LOAN_TERM_YEARS,
    MIN_BALANCE_THRESHOLD,
    MIN_LOAN_TERM_MONTHS,
    MIN_LOAN_TERM_YEARS,
    MONTHS_PER_YEAR,
    round2,
)
from retireplan.core.dates import YearMonth, parse_month
from retireplan.domain.errors import InvalidLoanParametersError
from retireplan.models import Loan

CPF_LOAN_CATEGORY = "housing"


def _check_principal_and_rate(principal: float, annual_rate: float) -> None:
    if not math.isfinite(principal) or principal <= 0:
        raise InvalidLoanParametersError("Principal must be positive")
    if not math.isfinite(annual_rate) or annual_rate < 0 or annual_rate > MAX_LOAN_RATE:
        raise InvalidLoanParametersError("Annual rate must be between 0% and 50%")


def _annuity_payment(principal: float, annual_rate: float, payments: float) -> float:
    monthly_rate = annual_rate / MONTHS_PER_YEAR
    if monthly_rate == 0:
        return principal / payments
    factor = (1 + monthly_rate) ** payments
    payment = principal * monthly_rate * factor / (factor - 1)
    if not math.isfinite(payment):
        raise InvalidLoanParametersError("Loan calculation resulted in an invalid number")
    return payment


def monthly_payment(principal: float, annual_rate: float, term_years: float) -> float:
    """Fixed monthly payment for a loan quoted in years."""
    _check_principal_and_rate(principal, annual_rate)
    if not math.isfinite(term_years) or term_years < MIN_LOAN_TERM_YEARS or term_years > MAX_LOAN_TERM_YEARS:
        raise InvalidLoanParametersError("Term must be between 1 and 50 years")
    return round2(_annuity_payment(principal, annual_rate, term_years * MONTHS_PER_YEAR))


def monthly_payment_for_term(principal: float, annual_rate: float, term_months: int) -> float:
    """Same as :func:`monthly_payment` for a term already expressed in months."""
    _check_principal_and_rate(principal, annual_rate)
    if term_months < MIN_LOAN_TERM_MONTHS or term_months > MAX_LOAN_TERM_MONTHS:
        raise InvalidLoanParametersError("Term must be between 1 and 600 months")
    return round2(_annuity_payment(principal, annual_rate, term_months))


def remaining_balance(principal: float, annual_rate: float, term_months: int, payments_made: int) -> float:
    """Outstanding principal after ``payments_made`` regular payments."""
    payment = monthly_payment_for_term(principal, annual_rate, term_months)
    if payments_made >= term_months:
        # the final payment absorbs any rounding residue
        return 0.0
    monthly_rate = annual_rate / MONTHS_PER_YEAR
    balance = principal
    for _ in range(max(payments_made, 0)):
        balance -= payment - balance * monthly_rate
        if balance <= MIN_BALANCE_THRESHOLD:
            return 0.0
    return round2(balance)


@dataclass
class PaymentBreakdown:
    monthIndex: int
    payment: float
    principal: float
    interest: float
    extraPayment: float
    remainingBalance: float


def _extra_payment_map(loan: Loan, start: YearMonth) -> Dict[int, float]:
    extras: Dict[int, float] = {}
    for extra in loan.extraPayments:
        due = parse_month(extra.date)
        if due is None:
            continue
        offset = start.months_until(due)
        if 0 <= offset < loan.termMonths:
            extras[offset] = extras.get(offset, 0.0) + extra.amount
    return extras


def amortization_schedule(loan: Loan) -> List[PaymentBreakdown]:
    """Month-by-month schedule, honouring any extra payments."""
    start = parse_month(loan.startDate)
    if start is None:
        raise InvalidLoanParametersError(f"Loan {loan.name!r} has an invalid start date")
    payment = monthly_payment_for_term(loan.principal, loan.interestRate, loan.termMonths)
    monthly_rate = loan.interestRate / MONTHS_PER_YEAR
    extras = _extra_payment_map(loan, start)

    schedule: List[PaymentBreakdown] = []
    balance = loan.principal
    index = 0
    while balance > MIN_BALANCE_THRESHOLD and index < loan.termMonths:
        interest = balance * monthly_rate
        regular_principal = min(payment - interest, balance)
        extra = min(extras.get(index, 0.0), balance - regular_principal)
        balance -= regular_principal + extra
        if index == loan.termMonths - 1 and balance > 0:
            # rounding residue on the final payment
            regular_principal += balance
            balance = 0.0
        schedule.append(
            PaymentBreakdown(
                monthIndex=index,
                payment=round2(interest + regular_principal),
                principal=round2(regular_principal),
                interest=round2(interest),
                extraPayment=round2(extra),
                remainingBalance=round2(max(0.0, balance)),
            )
        )
        index += 1
    return schedule


def total_interest(loan: Loan) -> float:
    return round2(sum(row.interest for row in amortization_schedule(loan)))


@dataclass
class PreparedLoan:
    """A loan resolved once per projection: start month, payment and, with extras, its schedule."""

    loan: Loan
    start: Optional[YearMonth]
    payment: float
    schedule: Optional[List[PaymentBreakdown]] = field(default=None)

    @classmethod
    def from_loan(cls, loan: Loan) -> "PreparedLoan":
        start = parse_month(loan.startDate)
        payment = monthly_payment_for_term(loan.principal, loan.interestRate, loan.termMonths)
        schedule = amortization_schedule(loan) if (loan.extraPayments and start) else None
        return cls(loan=loan, start=start, payment=payment, schedule=schedule)

    def payment_due(self, when: YearMonth) -> float:
        if self.start is None:
            return 0.0
        offset = self.start.months_until(when)
        if offset < 0:
            return 0.0
        if self.schedule is not None:
            if offset >= len(self.schedule):
                return 0.0
            row = self.schedule[offset]
            return row.payment + row.extraPayment
        return self.payment if offset < self.loan.termMonths else 0.0

    def cpf_share(self, payment: float) -> float:
        """Portion of ``payment`` requested from the ordinary account. Only housing loans qualify."""
        if not self.loan.useCPF or self.loan.category != CPF_LOAN_CATEGORY:
            return 0.0
        percentage = 100.0 if self.loan.cpfPercentage is None else self.loan.cpfPercentage
        return payment * percentage / 100.0


def loan_payment_for_month(loan: Loan, when: YearMonth) -> float:
    return PreparedLoan.from_loan(loan).payment_due(when)
