"""Per-month projection records."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from retireplan.models import CPFAccounts


class CPFAllocation(BaseModel):
    model_config = ConfigDict(extra="forbid")

    toOA: float = 0.0
    toSA: float = 0.0
    toMA: float = 0.0
    toRA: float = 0.0


class CPFContribution(BaseModel):
    """Employer/employee split of one month's contribution and where it went."""

    model_config = ConfigDict(extra="forbid")

    employee: float = 0.0
    employer: float = 0.0
    total: float = 0.0
    allocation: CPFAllocation = Field(default_factory=CPFAllocation)


class CPFInterest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    oa: float = 0.0
    sa: float = 0.0
    ma: float = 0.0
    ra: float = 0.0
    extraInterest: float = 0.0
    total: float = 0.0


class CPFMonthlySnapshot(BaseModel):
    model_config = ConfigDict(extra="forbid")

    monthIndex: int
    age: int
    accounts: CPFAccounts
    monthlyContribution: CPFContribution
    monthlyInterest: CPFInterest
    yearToDateContributions: float
    consolidated: bool = False
    transferredToRA: float = 0.0
    loanDraw: float = 0.0
    lifePayout: float = 0.0


class MonthlyDataPoint(BaseModel):
    """One simulated month.

    ``contributions`` is the month's net flow into the portfolio (negative when
    outflows exceed inflows); ``growth`` is the investment return earned.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    monthIndex: int
    year: int
    month: int
    age: float
    income: float
    expenses: float
    contributions: float
    portfolioValue: float
    growth: float
    retired: bool = False
    cpf: Optional[CPFMonthlySnapshot] = None
