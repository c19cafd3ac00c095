"""Input validation.

``validate`` never raises for bad data. It walks the whole bundle, collects
every problem with a locator such as ``loans[1].termMonths`` and reports them
together. Calculation refuses to run while any problem remains.
"""

from __future__ import annotations

import math
from typing import Any, List, Mapping, Optional, Sequence, Union

from pydantic import ValidationError

from retireplan.core.constants import (
    CPF_AGE_55,
    MAX_ANNUAL_INCREASE,
    MAX_CURRENT_SAVINGS,
    MAX_EXPENSE_AGE,
    MAX_EXPENSE_INFLATION,
    MAX_INFLATION_RATE,
    MAX_LOAN_RATE,
    MAX_LOAN_TERM_MONTHS,
    MAX_MONTHLY_CONTRIBUTION,
    MAX_PROFILE_AGE,
    MAX_RETURN_RATE,
    MIN_EXPENSE_AGE,
    MIN_EXPENSE_INFLATION,
    MIN_LOAN_TERM_MONTHS,
    MIN_PROFILE_AGE,
)
from retireplan.core.dates import parse_month
from retireplan.models import (
    CPFSettings,
    IncomeSource,
    Loan,
    OneOffReturn,
    OneTimeExpense,
    PlanInput,
    RetirementExpense,
    WithdrawalConfig,
)
from retireplan.schemas.results import ValidationIssue, ValidationResult

MIN_LIFE_PAYOUT_AGE = 65
MAX_LIFE_PAYOUT_AGE = 70


def _between(value: Optional[float], low: float, high: float) -> bool:
    return value is not None and math.isfinite(value) and low <= value <= high


def _blank(value: Optional[str]) -> bool:
    return value is None or not value.strip()


def _check_window(
    issues: List[ValidationIssue],
    prefix: str,
    start: Optional[str],
    end: Optional[str],
) -> None:
    start_month = parse_month(start) if start else None
    end_month = parse_month(end) if end else None
    if start and start_month is None:
        issues.append(ValidationIssue(field=f"{prefix}.startDate", message="must be a YYYY-MM month"))
    if end and end_month is None:
        issues.append(ValidationIssue(field=f"{prefix}.endDate", message="must be a YYYY-MM month"))
    if start_month and end_month and end_month < start_month:
        issues.append(ValidationIssue(field=f"{prefix}.endDate", message="must not be before startDate"))


def validate_profile(plan: PlanInput) -> List[ValidationIssue]:
    issues: List[ValidationIssue] = []

    def add(field: str, message: str) -> None:
        issues.append(ValidationIssue(field=field, message=message))

    if not _between(plan.currentAge, MIN_PROFILE_AGE, MAX_PROFILE_AGE):
        add("currentAge", f"must be between {MIN_PROFILE_AGE} and {MAX_PROFILE_AGE}")
    if not _between(plan.retirementAge, MIN_PROFILE_AGE, MAX_PROFILE_AGE):
        add("retirementAge", f"must be between {MIN_PROFILE_AGE} and {MAX_PROFILE_AGE}")
    elif plan.retirementAge <= plan.currentAge:
        add("retirementAge", "must be greater than currentAge")

    if not math.isfinite(plan.currentSavings) or plan.currentSavings < 0:
        add("currentSavings", "cannot be negative")
    elif plan.currentSavings > MAX_CURRENT_SAVINGS:
        add("currentSavings", "is unrealistically high")

    if not math.isfinite(plan.monthlyContribution) or plan.monthlyContribution < 0:
        add("monthlyContribution", "cannot be negative")
    elif plan.monthlyContribution > MAX_MONTHLY_CONTRIBUTION:
        add("monthlyContribution", "is unrealistically high")

    if not _between(plan.expectedReturnRate, 0, MAX_RETURN_RATE):
        add("expectedReturnRate", "must be between 0% and 20%")
    if not _between(plan.inflationRate, 0, MAX_INFLATION_RATE):
        add("inflationRate", "must be between 0% and 15%")

    if plan.monthlyRetirementSpending is not None and not _between(
        plan.monthlyRetirementSpending, 0, math.inf
    ):
        add("monthlyRetirementSpending", "cannot be negative")
    if plan.projectionStart is not None and parse_month(plan.projectionStart) is None:
        add("projectionStart", "must be a YYYY-MM month")
    if plan.maxAge is not None:
        if not _between(plan.maxAge, MIN_PROFILE_AGE, MAX_EXPENSE_AGE):
            add("maxAge", f"must be between {MIN_PROFILE_AGE} and {MAX_EXPENSE_AGE}")
        elif plan.maxAge < plan.retirementAge:
            add("maxAge", "must not be before retirementAge")

    if plan.withdrawalConfig is not None:
        issues.extend(validate_withdrawal(plan.withdrawalConfig, plan.monthlyRetirementSpending))
    return issues


def validate_withdrawal(config: WithdrawalConfig, spending: Optional[float]) -> List[ValidationIssue]:
    issues: List[ValidationIssue] = []
    prefix = "withdrawalConfig"
    if config.fixedAmount is not None and not _between(config.fixedAmount, 0, math.inf):
        issues.append(ValidationIssue(field=f"{prefix}.fixedAmount", message="cannot be negative"))
    if config.percentage is not None and not _between(config.percentage, 0, 1):
        issues.append(ValidationIssue(field=f"{prefix}.percentage", message="must be between 0 and 1"))
    if config.strategy in ("fixed", "combined") and config.fixedAmount is None and spending is None:
        issues.append(
            ValidationIssue(field=f"{prefix}.fixedAmount", message=f"is required for the {config.strategy} strategy")
        )
    if config.strategy in ("percentage", "combined") and config.percentage is None:
        issues.append(
            ValidationIssue(field=f"{prefix}.percentage", message=f"is required for the {config.strategy} strategy")
        )
    return issues


def validate_income_source(source: IncomeSource, prefix: str) -> List[ValidationIssue]:
    issues: List[ValidationIssue] = []

    def add(field: str, message: str) -> None:
        issues.append(ValidationIssue(field=f"{prefix}.{field}", message=message))

    if _blank(source.id):
        add("id", "is required")
    if _blank(source.name):
        add("name", "is required")
    if not math.isfinite(source.amount) or source.amount <= 0:
        add("amount", "must be greater than 0")
    if source.frequency == "custom" and not _between(source.customFrequencyDays, 1e-9, math.inf):
        add("customFrequencyDays", "must be greater than 0 for a custom frequency")

    _check_window(issues, prefix, source.startDate, source.endDate)
    if source.type == "fixed-period" and not source.endDate:
        add("endDate", "is required for fixed-period income")
    if (source.type == "one-time" or source.frequency == "one-time") and not source.startDate:
        add("startDate", "is required for one-time income")

    if source.annualIncrease is not None and not _between(source.annualIncrease, 0, MAX_ANNUAL_INCREASE):
        add("annualIncrease", "must be between 0% and 20%")
    if source.contributionPercentage is not None and not _between(source.contributionPercentage, 0, 1):
        add("contributionPercentage", "must be between 0 and 1")
    return issues


def validate_roster(sources: Sequence[IncomeSource]) -> List[ValidationIssue]:
    """Ids must be unique; names must be unique ignoring case."""
    issues: List[ValidationIssue] = []
    seen_ids = set()
    seen_names = set()
    for index, source in enumerate(sources):
        if source.id in seen_ids:
            issues.append(ValidationIssue(field=f"incomeSources[{index}].id", message="duplicate id"))
        seen_ids.add(source.id)
        name = source.name.strip().casefold()
        if name and name in seen_names:
            issues.append(ValidationIssue(field=f"incomeSources[{index}].name", message="duplicate name"))
        seen_names.add(name)
    return issues


def validate_one_off_return(item: OneOffReturn, prefix: str) -> List[ValidationIssue]:
    issues: List[ValidationIssue] = []
    if parse_month(item.date) is None:
        issues.append(ValidationIssue(field=f"{prefix}.date", message="must be a YYYY-MM month"))
    if not math.isfinite(item.amount) or item.amount == 0:
        issues.append(ValidationIssue(field=f"{prefix}.amount", message="must not be zero"))
    if _blank(item.description):
        issues.append(ValidationIssue(field=f"{prefix}.description", message="is required"))
    return issues


def validate_expense(expense: RetirementExpense, prefix: str) -> List[ValidationIssue]:
    issues: List[ValidationIssue] = []

    def add(field: str, message: str) -> None:
        issues.append(ValidationIssue(field=f"{prefix}.{field}", message=message))

    if _blank(expense.name):
        add("name", "is required")
    if not _between(expense.monthlyAmount, 0, math.inf):
        add("monthlyAmount", "cannot be negative")
    if not _between(expense.inflationRate, MIN_EXPENSE_INFLATION, MAX_EXPENSE_INFLATION):
        add("inflationRate", "must be between -50% and 100%")

    _check_window(issues, prefix, expense.startDate, expense.endDate)
    if expense.startAge is not None and not _between(expense.startAge, MIN_EXPENSE_AGE, MAX_EXPENSE_AGE):
        add("startAge", f"must be between {MIN_EXPENSE_AGE} and {MAX_EXPENSE_AGE}")
    if expense.endAge is not None and not _between(expense.endAge, MIN_EXPENSE_AGE, MAX_EXPENSE_AGE):
        add("endAge", f"must be between {MIN_EXPENSE_AGE} and {MAX_EXPENSE_AGE}")
    if (
        expense.startAge is not None
        and expense.endAge is not None
        and expense.endAge <= expense.startAge
    ):
        add("endAge", "must be greater than startAge")
    return issues


def validate_loan(loan: Loan, prefix: str) -> List[ValidationIssue]:
    issues: List[ValidationIssue] = []

    def add(field: str, message: str) -> None:
        issues.append(ValidationIssue(field=f"{prefix}.{field}", message=message))

    if _blank(loan.name):
        add("name", "is required")
    if not math.isfinite(loan.principal) or loan.principal <= 0:
        add("principal", "must be greater than 0")
    if not _between(loan.interestRate, 0, MAX_LOAN_RATE):
        add("interestRate", "must be between 0% and 50%")
    if not MIN_LOAN_TERM_MONTHS <= loan.termMonths <= MAX_LOAN_TERM_MONTHS:
        add("termMonths", f"must be between {MIN_LOAN_TERM_MONTHS} and {MAX_LOAN_TERM_MONTHS} months")
    if parse_month(loan.startDate) is None:
        add("startDate", "must be a YYYY-MM month")
    if loan.cpfPercentage is not None and not _between(loan.cpfPercentage, 0, 100):
        add("cpfPercentage", "must be between 0 and 100")

    for index, extra in enumerate(loan.extraPayments):
        if parse_month(extra.date) is None:
            add(f"extraPayments[{index}].date", "must be a YYYY-MM month")
        if not math.isfinite(extra.amount) or extra.amount <= 0:
            add(f"extraPayments[{index}].amount", "must be greater than 0")
    return issues


def validate_one_time_expense(item: OneTimeExpense, prefix: str) -> List[ValidationIssue]:
    issues: List[ValidationIssue] = []
    if _blank(item.name):
        issues.append(ValidationIssue(field=f"{prefix}.name", message="is required"))
    if not math.isfinite(item.amount) or item.amount <= 0:
        issues.append(ValidationIssue(field=f"{prefix}.amount", message="must be greater than 0"))
    if parse_month(item.date) is None:
        issues.append(ValidationIssue(field=f"{prefix}.date", message="must be a YYYY-MM month"))
    return issues


def validate_cpf(settings: CPFSettings, plan: PlanInput) -> List[ValidationIssue]:
    issues: List[ValidationIssue] = []
    if not settings.enabled:
        return issues

    for name, value in settings.currentBalances.model_dump().items():
        if not math.isfinite(value) or value < 0:
            issues.append(ValidationIssue(field=f"cpf.currentBalances.{name}", message="cannot be negative"))
    if plan.currentAge < CPF_AGE_55 and settings.currentBalances.retirementAccount > 0:
        issues.append(
            ValidationIssue(
                field="cpf.currentBalances.retirementAccount",
                message=f"must be 0 before age {CPF_AGE_55}",
            )
        )
    if not settings.manualOverride and not any(source.cpfEligible for source in plan.incomeSources):
        issues.append(ValidationIssue(field="cpf.enabled", message="requires at least one CPF-eligible income source"))
    if not MIN_LIFE_PAYOUT_AGE <= settings.lifePayoutAge <= MAX_LIFE_PAYOUT_AGE:
        issues.append(
            ValidationIssue(
                field="cpf.lifePayoutAge",
                message=f"must be between {MIN_LIFE_PAYOUT_AGE} and {MAX_LIFE_PAYOUT_AGE}",
            )
        )
    return issues


def _locator(loc: Sequence[Any]) -> str:
    out = ""
    for part in loc:
        if isinstance(part, int):
            out += f"[{part}]"
        else:
            out += f".{part}" if out else str(part)
    return out or "input"


def issues_from_pydantic(exc: ValidationError) -> List[ValidationIssue]:
    return [ValidationIssue(field=_locator(err["loc"]), message=err["msg"]) for err in exc.errors()]


def collect_issues(plan: PlanInput) -> List[ValidationIssue]:
    issues = validate_profile(plan)

    for index, source in enumerate(plan.incomeSources):
        issues.extend(validate_income_source(source, f"incomeSources[{index}]"))
    issues.extend(validate_roster(plan.incomeSources))
    for index, item in enumerate(plan.oneOffReturns):
        issues.extend(validate_one_off_return(item, f"oneOffReturns[{index}]"))
    for index, expense in enumerate(plan.expenses):
        issues.extend(validate_expense(expense, f"expenses[{index}]"))
    for index, loan in enumerate(plan.loans):
        issues.extend(validate_loan(loan, f"loans[{index}]"))
    for index, item in enumerate(plan.oneTimeExpenses):
        issues.extend(validate_one_time_expense(item, f"oneTimeExpenses[{index}]"))
    if plan.cpf is not None:
        issues.extend(validate_cpf(plan.cpf, plan))
    return issues


def validate(data: Union[PlanInput, Mapping[str, Any]]) -> ValidationResult:
    """Check a plan, or a raw payload that has not been parsed yet."""
    if isinstance(data, PlanInput):
        plan = data
    else:
        try:
            plan = PlanInput.model_validate(data)
        except ValidationError as exc:
            return ValidationResult(isValid=False, errors=issues_from_pydantic(exc))

    issues = collect_issues(plan)
    return ValidationResult(isValid=not issues, errors=issues)
