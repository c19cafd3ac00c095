from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

IncomeType = Literal[
    "salary", "rental", "dividend", "business", "custom", "one-time", "fixed-period"
]
IncomeFrequency = Literal["daily", "weekly", "monthly", "yearly", "custom", "one-time"]
ExpenseCategory = Literal["living", "healthcare", "travel", "other"]
LoanCategory = Literal["housing", "auto", "personal", "education", "other"]
RetirementSumTarget = Literal["basic", "full", "enhanced"]
LifePlan = Literal["standard", "basic", "escalating"]

# Models describe shape only. Range checks live in domain.validation so that
# every violation can be reported in one pass.


class IncomeSource(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: str
    name: str
    type: IncomeType
    amount: float
    frequency: IncomeFrequency
    customFrequencyDays: Optional[float] = None
    startDate: Optional[str] = None
    endDate: Optional[str] = None
    annualIncrease: Optional[float] = None
    contributionPercentage: Optional[float] = None
    cpfEligible: bool = False


class OneOffReturn(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: str
    date: str
    amount: float
    description: str = ""


class RetirementExpense(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: str
    name: str
    category: ExpenseCategory = "living"
    monthlyAmount: float
    inflationRate: float = 0.0
    startDate: Optional[str] = None
    endDate: Optional[str] = None
    startAge: Optional[float] = None
    endAge: Optional[float] = None


class ExtraPayment(BaseModel):
    model_config = ConfigDict(extra="forbid")

    date: str
    amount: float


class Loan(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: str
    name: str
    principal: float
    interestRate: float
    termMonths: int
    startDate: str
    category: LoanCategory = "other"
    useCPF: bool = False
    cpfPercentage: Optional[float] = None
    extraPayments: List[ExtraPayment] = Field(default_factory=list)


class OneTimeExpense(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: str
    name: str
    amount: float
    date: str
    category: ExpenseCategory = "other"
    description: Optional[str] = None


class CPFAccounts(BaseModel):
    model_config = ConfigDict(extra="forbid")

    ordinaryAccount: float = 0.0
    specialAccount: float = 0.0
    medisaveAccount: float = 0.0
    retirementAccount: float = 0.0

    @property
    def total(self) -> float:
        return (
            self.ordinaryAccount
            + self.specialAccount
            + self.medisaveAccount
            + self.retirementAccount
        )


class CPFSettings(BaseModel):
    """Mandatory-savings scheme switch and starting snapshot."""

    model_config = ConfigDict(extra="forbid")

    enabled: bool = False
    currentBalances: CPFAccounts = Field(default_factory=CPFAccounts)
    retirementSumTarget: RetirementSumTarget = "full"
    lifePlan: LifePlan = "standard"
    lifePayoutAge: int = 65
    # contributions are entered by hand, so salary is not auto-allocated
    manualOverride: bool = False


class WithdrawalConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    strategy: Literal["fixed", "percentage", "combined"]
    fixedAmount: Optional[float] = None
    percentage: Optional[float] = None


class PlanInput(BaseModel):
    model_config = ConfigDict(extra="forbid")

    currentAge: float
    retirementAge: float
    currentSavings: float
    expectedReturnRate: float
    inflationRate: float

    monthlyContribution: float = 0.0
    monthlyRetirementSpending: Optional[float] = None
    withdrawalConfig: Optional[WithdrawalConfig] = None
    projectionStart: Optional[str] = None
    maxAge: Optional[float] = None

    incomeSources: List[IncomeSource] = Field(default_factory=list)
    oneOffReturns: List[OneOffReturn] = Field(default_factory=list)
    expenses: List[RetirementExpense] = Field(default_factory=list)
    loans: List[Loan] = Field(default_factory=list)
    oneTimeExpenses: List[OneTimeExpense] = Field(default_factory=list)
    cpf: Optional[CPFSettings] = None

    @property
    def cpf_enabled(self) -> bool:
        return self.cpf is not None and self.cpf.enabled
