"""Mandatory-savings (CPF) jurisdiction table.

Rates and limits are data, not code: pass a different :class:`CPFConfig` to any
engine entry point to model another year or another set of bands.
``CPF_CONFIG_2025`` holds the reference values.
"""

from __future__ import annotations

from typing import List, Optional, Sequence, TypeVar

from pydantic import BaseModel, ConfigDict, Field, model_validator

from retireplan.domain.errors import PlanError


class ContributionBand(BaseModel):
    model_config = ConfigDict(extra="forbid")

    ageMin: int = Field(ge=0)
    ageMax: int = Field(ge=0)
    employerRate: float = Field(ge=0, le=1)
    employeeRate: float = Field(ge=0, le=1)
    totalRate: float = Field(ge=0, le=1)

    @model_validator(mode="after")
    def check_total(self) -> "ContributionBand":
        if abs(self.employerRate + self.employeeRate - self.totalRate) > 1e-9:
            raise ValueError("totalRate must equal employerRate + employeeRate")
        return self


class AllocationBand(BaseModel):
    model_config = ConfigDict(extra="forbid")

    ageMin: int = Field(ge=0)
    ageMax: int = Field(ge=0)
    ordinaryAccount: float = Field(ge=0, le=1)
    specialAccount: float = Field(ge=0, le=1)
    medisaveAccount: float = Field(ge=0, le=1)
    retirementAccount: float = Field(ge=0, le=1)

    @model_validator(mode="after")
    def check_shares(self) -> "AllocationBand":
        total = self.ordinaryAccount + self.specialAccount + self.medisaveAccount + self.retirementAccount
        if abs(total - 1.0) > 1e-4:
            raise ValueError(f"allocation shares must sum to 1.0, got {total}")
        return self


class InterestRates(BaseModel):
    ordinaryAccount: float = 0.025
    specialAccount: float = 0.04
    medisaveAccount: float = 0.04
    retirementAccount: float = 0.04


class ExtraInterestUnder55(BaseModel):
    rate: float = 0.01
    balanceCap: float = 60_000
    oaCap: float = 20_000


class ExtraInterestTier(BaseModel):
    rate: float
    cap: float


class ExtraInterest55Plus(BaseModel):
    firstTier: ExtraInterestTier = ExtraInterestTier(rate=0.02, cap=30_000)
    secondTier: ExtraInterestTier = ExtraInterestTier(rate=0.01, cap=30_000)


class ExtraInterest(BaseModel):
    under55: ExtraInterestUnder55 = Field(default_factory=ExtraInterestUnder55)
    age55Plus: ExtraInterest55Plus = Field(default_factory=ExtraInterest55Plus)


class WageCeilings(BaseModel):
    monthlyOrdinaryWage: Optional[float] = 7_400
    annualCPFLimit: float = 37_740


class RetirementSums(BaseModel):
    basic: float = 106_500
    full: float = 213_000
    enhanced: float = 426_000


class PayoutRange(BaseModel):
    min: float
    max: float

    @property
    def midpoint(self) -> float:
        return (self.min + self.max) / 2


class LifePayouts(BaseModel):
    """Estimated monthly CPF LIFE payouts from 65 for each retirement sum."""

    basic: PayoutRange = PayoutRange(min=860, max=930)
    full: PayoutRange = PayoutRange(min=1_610, max=1_730)
    enhanced: PayoutRange = PayoutRange(min=3_100, max=3_330)
    deferralBonusPerYear: float = 0.07
    escalationRate: float = 0.02
    planMultipliers: dict = Field(
        default_factory=lambda: {"standard": 1.0, "basic": 1.15, "escalating": 0.85}
    )


_Band = TypeVar("_Band", ContributionBand, AllocationBand)


def _check_contiguous(bands: Sequence[_Band], label: str) -> None:
    if not bands:
        raise ValueError(f"{label} must not be empty")
    if bands[0].ageMin != 0:
        raise ValueError(f"{label} must start at age 0")
    for current, following in zip(bands, bands[1:]):
        if current.ageMax + 1 != following.ageMin:
            raise ValueError(f"{label} gap or overlap between ages {current.ageMax} and {following.ageMin}")


def _find_band(bands: Sequence[_Band], age: int, label: str) -> _Band:
    for band in bands:
        if band.ageMin <= age <= band.ageMax:
            return band
    raise PlanError(f"No {label} found for age {age}")


class CPFConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    contributionRates: List[ContributionBand]
    allocationRates: List[AllocationBand]
    interestRates: InterestRates = Field(default_factory=InterestRates)
    extraInterest: ExtraInterest = Field(default_factory=ExtraInterest)
    wageCeilings: WageCeilings = Field(default_factory=WageCeilings)
    retirementSums: RetirementSums = Field(default_factory=RetirementSums)
    lifePayouts: LifePayouts = Field(default_factory=LifePayouts)
    transitionAge: int = 55
    # at the transition, fill the retirement account from OA once SA runs out
    ordinaryTopUp: bool = True

    @model_validator(mode="after")
    def check_bands(self) -> "CPFConfig":
        _check_contiguous(self.contributionRates, "contributionRates")
        _check_contiguous(self.allocationRates, "allocationRates")
        return self

    def contribution_band(self, age: int) -> ContributionBand:
        return _find_band(self.contributionRates, age, "contribution rate")

    def allocation_band(self, age: int) -> AllocationBand:
        return _find_band(self.allocationRates, age, "allocation rate")

    def retirement_sum(self, target: str) -> float:
        return getattr(self.retirementSums, target, self.retirementSums.full)


CPF_CONFIG_2025 = CPFConfig(
    contributionRates=[
        ContributionBand(ageMin=0, ageMax=55, employerRate=0.17, employeeRate=0.20, totalRate=0.37),
        ContributionBand(ageMin=56, ageMax=60, employerRate=0.155, employeeRate=0.17, totalRate=0.325),
        ContributionBand(ageMin=61, ageMax=65, employerRate=0.115, employeeRate=0.13, totalRate=0.245),
        ContributionBand(ageMin=66, ageMax=70, employerRate=0.09, employeeRate=0.105, totalRate=0.195),
        ContributionBand(ageMin=71, ageMax=120, employerRate=0.075, employeeRate=0.075, totalRate=0.15),
    ],
    allocationRates=[
        AllocationBand(ageMin=0, ageMax=35, ordinaryAccount=0.6217, specialAccount=0.1621, medisaveAccount=0.2162, retirementAccount=0),
        AllocationBand(ageMin=36, ageMax=40, ordinaryAccount=0.5677, specialAccount=0.1891, medisaveAccount=0.2432, retirementAccount=0),
        AllocationBand(ageMin=41, ageMax=45, ordinaryAccount=0.5136, specialAccount=0.2162, medisaveAccount=0.2702, retirementAccount=0),
        AllocationBand(ageMin=46, ageMax=50, ordinaryAccount=0.4595, specialAccount=0.2432, medisaveAccount=0.2973, retirementAccount=0),
        AllocationBand(ageMin=51, ageMax=55, ordinaryAccount=0.4055, specialAccount=0.3108, medisaveAccount=0.2837, retirementAccount=0),
        AllocationBand(ageMin=56, ageMax=60, ordinaryAccount=0.1231, specialAccount=0, medisaveAccount=0.3385, retirementAccount=0.5384),
        AllocationBand(ageMin=61, ageMax=65, ordinaryAccount=0.0327, specialAccount=0, medisaveAccount=0.4082, retirementAccount=0.5591),
        AllocationBand(ageMin=66, ageMax=120, ordinaryAccount=0.1026, specialAccount=0, medisaveAccount=0.3590, retirementAccount=0.5384),
    ],
)
