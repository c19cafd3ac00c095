"""Retirement projection engine with a CPF-style mandatory savings model."""

from retireplan.core.accumulation import calculate_future_value
from retireplan.core.cpf import CPFLedger
from retireplan.core.cpf_config import CPF_CONFIG_2025, CPFConfig
from retireplan.core.expenses import aggregate_expenses
from retireplan.core.frequency import to_monthly
from retireplan.core.income import aggregate_income
from retireplan.core.loans import monthly_payment, remaining_balance
from retireplan.core.projection import (
    apply_inflation_adjustment,
    calculate_retirement,
    generate_monthly_projections,
)
from retireplan.core.summary import summarize
from retireplan.domain.errors import (
    InvalidCPFBalanceError,
    InvalidLoanParametersError,
    NoEligibleIncomeError,
    NumericOverflowError,
    PlanError,
    PlanValidationError,
)
from retireplan.domain.validation import validate
from retireplan.models import PlanInput

__all__ = [
    "CPF_CONFIG_2025",
    "CPFConfig",
    "CPFLedger",
    "InvalidCPFBalanceError",
    "InvalidLoanParametersError",
    "NoEligibleIncomeError",
    "NumericOverflowError",
    "PlanError",
    "PlanInput",
    "PlanValidationError",
    "aggregate_expenses",
    "aggregate_income",
    "apply_inflation_adjustment",
    "calculate_future_value",
    "calculate_retirement",
    "generate_monthly_projections",
    "monthly_payment",
    "remaining_balance",
    "summarize",
    "to_monthly",
    "validate",
]
