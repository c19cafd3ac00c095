"""Errors raised by the projection engine.

Every error derives from :class:`PlanError` so callers can catch the whole
family at the controller boundary. The engine itself never catches them.
"""

from __future__ import annotations

from typing import List, Sequence

from retireplan.schemas.results import ValidationIssue


class PlanError(ValueError):
    pass


class PlanValidationError(PlanError):
    def __init__(self, errors: Sequence[ValidationIssue]):
        self.errors: List[ValidationIssue] = list(errors)
        super().__init__(
            "Invalid input data: " + "; ".join(f"{e.field}: {e.message}" for e in self.errors)
        )


class NoEligibleIncomeError(PlanError):
    """The mandatory-savings scheme is on but nothing in the roster is CPF-eligible."""


class InvalidCPFBalanceError(PlanError):
    pass


class InvalidLoanParametersError(PlanError):
    pass


class NumericOverflowError(PlanError):
    """A calculation left the finite range or exceeded a safety ceiling."""
