"""Aggregate results and validation reports."""

from typing import List, Optional

from pydantic import BaseModel, Field


class ValidationIssue(BaseModel):
    """One problem found in an input bundle, located by a dotted/indexed field path."""

    field: str
    message: str


class ValidationResult(BaseModel):
    isValid: bool
    errors: List[ValidationIssue] = Field(default_factory=list)

    @property
    def messages(self) -> List[str]:
        return [f"{issue.field}: {issue.message}" for issue in self.errors]


class CalculationResult(BaseModel):
    """User-facing summary of one projection run. Monetary fields are rounded to cents."""

    totalSavings: float
    futureValue: float
    monthlyRetirementIncome: float
    yearsToRetirement: float
    totalContributions: float
    interestEarned: float
    inflationAdjustedValue: float
    yearsUntilDepletion: Optional[float] = Field(
        default=None,
        description="Years after retirement until the portfolio is exhausted; null when it lasts the horizon.",
    )
    depletionAge: Optional[float] = None
    sustainabilityWarning: bool = False
    cpfBalanceAtRetirement: float = 0.0
