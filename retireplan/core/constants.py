"""Calendar, precision and validation constants shared by the engine."""

from __future__ import annotations

# calendar
MONTHS_PER_YEAR = 12
WEEKS_PER_YEAR = 52
AVERAGE_DAYS_PER_MONTH = 30.44
DAYS_PER_YEAR = 365.25

# horizon guards
MAX_CALCULATION_MONTHS = 1200
MAX_PROJECTION_YEARS = 200
MAX_ANNUAL_RATE = 1.0
# mirrors the 2**53 - 1 ceiling of an IEEE double's exact integer range
MAX_SAFE_INTEGER = 2**53 - 1
SAFE_AMOUNT_CEILING = MAX_SAFE_INTEGER / 1000

# ages
MIN_PROFILE_AGE = 18
MAX_PROFILE_AGE = 100
MIN_EXPENSE_AGE = 0
MAX_EXPENSE_AGE = 120
CPF_AGE_55 = 55
DEFAULT_MAX_AGE = 95

# date strings
MIN_YEAR = 1900
MAX_YEAR = 2200

# rate bounds
MAX_RETURN_RATE = 0.20
MAX_INFLATION_RATE = 0.15
MAX_LOAN_RATE = 0.50
MIN_EXPENSE_INFLATION = -0.5
MAX_EXPENSE_INFLATION = 1.0
MAX_ANNUAL_INCREASE = 0.20

# loans
MIN_LOAN_TERM_MONTHS = 1
MAX_LOAN_TERM_MONTHS = 600
MIN_LOAN_TERM_YEARS = 1
MAX_LOAN_TERM_YEARS = 50
MIN_BALANCE_THRESHOLD = 0.01

# soft limits ("unrealistically high")
MAX_MONTHLY_CONTRIBUTION = 50_000
MAX_CURRENT_SAVINGS = 100_000_000

# retirement income
SUSTAINABLE_WITHDRAWAL_RATE = 0.05
SAFE_WITHDRAWAL_RATE = 0.04


def round2(value: float) -> float:
    """Round a monetary amount to cents."""
    return round(value, 2)
