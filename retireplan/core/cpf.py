"""Mandatory-savings scheme (CPF-style) engine.

Four sub-accounts per member: ordinary (OA), special (SA), medisave (MA) and
retirement (RA). Each simulated month runs, in order:

  1. contribution from CPF-eligible salary, capped by the wage ceiling and the
     annual limit, split across accounts by the age band's shares
  2. base interest on every account plus the extra-interest tier
  3. the one-time consolidation at the transition age (SA -> RA up to the
     member's retirement sum; SA is closed)
  4. OA draw for housing-loan payments, never below zero
  5. CPF LIFE payouts once the payout age is reached

RA stays at 0 until the consolidation fires and SA stays at 0 afterwards.
Balances are kept in cents.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Sequence

from retireplan.core.constants import MONTHS_PER_YEAR, round2
from retireplan.core.cpf_config import CPF_CONFIG_2025, CPFConfig
from retireplan.core.cpf_life import estimate_life_payout, life_payout_for_year
from retireplan.core.dates import YearMonth
from retireplan.domain.errors import InvalidCPFBalanceError, NoEligibleIncomeError
from retireplan.models import CPFAccounts, CPFSettings, IncomeSource
from retireplan.schemas.projection import (
    CPFAllocation,
    CPFContribution,
    CPFInterest,
    CPFMonthlySnapshot,
)

logger = logging.getLogger(__name__)

AGE55_MINIMUM_WITHDRAWAL = 5_000


# ---------------------------------------------------------------------------
# contributions
# ---------------------------------------------------------------------------


def calculate_contribution(
    monthly_salary: float,
    age: int,
    year_to_date: float = 0.0,
    config: CPFConfig = CPF_CONFIG_2025,
) -> CPFContribution:
    """Contribution for one month of ``monthly_salary`` at ``age``.

    ``year_to_date`` is what has already been contributed this calendar year;
    the month is trimmed so the annual limit is never exceeded.
    """
    ceiling = config.wageCeilings.monthlyOrdinaryWage
    wage = min(monthly_salary, ceiling) if ceiling is not None else monthly_salary
    wage = max(0.0, wage)

    rates = config.contribution_band(age)
    shares = config.allocation_band(age)

    employee = wage * rates.employeeRate
    employer = wage * rates.employerRate
    total = employee + employer

    remaining = max(0.0, config.wageCeilings.annualCPFLimit - year_to_date)
    if total > remaining:
        scale = remaining / total if total > 0 else 0.0
        employee *= scale
        employer *= scale
        total = remaining

    total = round2(total)
    to_oa = round2(total * shares.ordinaryAccount)
    to_sa = round2(total * shares.specialAccount)
    to_ra = round2(total * shares.retirementAccount)
    # medisave takes the rounding residue so the parts always add up to the total
    to_ma = round2(total - to_oa - to_sa - to_ra)

    return CPFContribution(
        employee=round2(employee),
        employer=round2(employer),
        total=total,
        allocation=CPFAllocation(toOA=to_oa, toSA=to_sa, toMA=max(0.0, to_ma), toRA=to_ra),
    )


def apply_post55_contribution(
    accounts: CPFAccounts,
    allocation: CPFAllocation,
    ra_cap: float,
) -> CPFAccounts:
    """Credit a post-consolidation contribution.

    SA is closed, so any SA share lands in RA. RA is filled up to ``ra_cap``;
    the overflow goes to OA.
    """
    to_ra = allocation.toRA + allocation.toSA
    to_oa = allocation.toOA
    headroom = max(0.0, ra_cap - accounts.retirementAccount)
    if to_ra > headroom:
        to_oa += to_ra - headroom
        to_ra = headroom
    return CPFAccounts(
        ordinaryAccount=round2(accounts.ordinaryAccount + to_oa),
        specialAccount=accounts.specialAccount,
        medisaveAccount=round2(accounts.medisaveAccount + allocation.toMA),
        retirementAccount=round2(accounts.retirementAccount + to_ra),
    )


def apply_pre55_contribution(accounts: CPFAccounts, allocation: CPFAllocation) -> CPFAccounts:
    # RA does not exist yet; a table that allocates to it before the transition feeds SA instead
    return CPFAccounts(
        ordinaryAccount=round2(accounts.ordinaryAccount + allocation.toOA),
        specialAccount=round2(accounts.specialAccount + allocation.toSA + allocation.toRA),
        medisaveAccount=round2(accounts.medisaveAccount + allocation.toMA),
        retirementAccount=accounts.retirementAccount,
    )


# ---------------------------------------------------------------------------
# interest
# ---------------------------------------------------------------------------


def _extra_interest_under55(accounts: CPFAccounts, config: CPFConfig) -> dict:
    tier = config.extraInterest.under55
    oa_eligible = min(accounts.ordinaryAccount, tier.oaCap)
    sa_ma = accounts.specialAccount + accounts.medisaveAccount
    sm_eligible = min(sa_ma, max(0.0, tier.balanceCap - oa_eligible))

    sa_eligible = sm_eligible * accounts.specialAccount / sa_ma if sa_ma > 0 else 0.0
    ma_eligible = sm_eligible * accounts.medisaveAccount / sa_ma if sa_ma > 0 else 0.0

    monthly_rate = tier.rate / MONTHS_PER_YEAR
    return {
        "oa": oa_eligible * monthly_rate,
        "sa": sa_eligible * monthly_rate,
        "ma": ma_eligible * monthly_rate,
        "ra": 0.0,
    }


def _extra_interest_55_plus(accounts: CPFAccounts, config: CPFConfig) -> dict:
    tiers = config.extraInterest.age55Plus
    total_balance = accounts.total
    if total_balance <= 0:
        return {"oa": 0.0, "sa": 0.0, "ma": 0.0, "ra": 0.0}

    first = min(total_balance, tiers.firstTier.cap)
    second = min(max(0.0, total_balance - tiers.firstTier.cap), tiers.secondTier.cap)
    extra = (
        first * tiers.firstTier.rate / MONTHS_PER_YEAR
        + second * tiers.secondTier.rate / MONTHS_PER_YEAR
    )
    # distributed pro rata over every account
    return {
        "oa": extra * accounts.ordinaryAccount / total_balance,
        "sa": extra * accounts.specialAccount / total_balance,
        "ma": extra * accounts.medisaveAccount / total_balance,
        "ra": extra * accounts.retirementAccount / total_balance,
    }


def calculate_extra_interest(accounts: CPFAccounts, age: int, config: CPFConfig = CPF_CONFIG_2025) -> float:
    if age < config.transitionAge:
        parts = _extra_interest_under55(accounts, config)
    else:
        parts = _extra_interest_55_plus(accounts, config)
    return round2(sum(round2(value) for value in parts.values()))


def calculate_monthly_interest(
    accounts: CPFAccounts,
    age: int,
    config: CPFConfig = CPF_CONFIG_2025,
) -> CPFInterest:
    """Base plus extra interest earned this month on ``accounts``.

    Closed accounts hold 0, so base interest is simply applied to all four.
    """
    rates = config.interestRates
    base = {
        "oa": round2(accounts.ordinaryAccount * rates.ordinaryAccount / MONTHS_PER_YEAR),
        "sa": round2(accounts.specialAccount * rates.specialAccount / MONTHS_PER_YEAR),
        "ma": round2(accounts.medisaveAccount * rates.medisaveAccount / MONTHS_PER_YEAR),
        "ra": round2(accounts.retirementAccount * rates.retirementAccount / MONTHS_PER_YEAR),
    }
    if age < config.transitionAge:
        extra = _extra_interest_under55(accounts, config)
    else:
        extra = _extra_interest_55_plus(accounts, config)
    extra = {key: round2(value) for key, value in extra.items()}
    extra_total = round2(sum(extra.values()))

    return CPFInterest(
        oa=round2(base["oa"] + extra["oa"]),
        sa=round2(base["sa"] + extra["sa"]),
        ma=round2(base["ma"] + extra["ma"]),
        ra=round2(base["ra"] + extra["ra"]),
        extraInterest=extra_total,
        total=round2(sum(base.values()) + extra_total),
    )


def apply_monthly_interest(
    accounts: CPFAccounts,
    age: int,
    config: CPFConfig = CPF_CONFIG_2025,
) -> tuple[CPFAccounts, CPFInterest]:
    interest = calculate_monthly_interest(accounts, age, config)
    updated = CPFAccounts(
        ordinaryAccount=round2(accounts.ordinaryAccount + interest.oa),
        specialAccount=round2(accounts.specialAccount + interest.sa),
        medisaveAccount=round2(accounts.medisaveAccount + interest.ma),
        retirementAccount=round2(accounts.retirementAccount + interest.ra),
    )
    return updated, interest


# ---------------------------------------------------------------------------
# age-55 consolidation
# ---------------------------------------------------------------------------


@dataclass
class TransitionResult:
    accounts: CPFAccounts
    from_sa: float
    from_oa: float
    sa_excess_to_oa: float

    @property
    def transferred(self) -> float:
        return round2(self.from_sa + self.from_oa)


def handle_age55_transition(
    accounts: CPFAccounts,
    target: str = "full",
    config: CPFConfig = CPF_CONFIG_2025,
) -> TransitionResult:
    """Close SA and open RA, filling RA up to the target retirement sum.

    SA is drawn first, then OA when ``config.ordinaryTopUp`` is set. SA money
    above the target moves to OA rather than disappearing.
    """
    headroom = max(0.0, config.retirement_sum(target) - accounts.retirementAccount)

    from_sa = min(accounts.specialAccount, headroom)
    headroom -= from_sa
    sa_excess = accounts.specialAccount - from_sa

    from_oa = 0.0
    if config.ordinaryTopUp and headroom > 0:
        from_oa = min(accounts.ordinaryAccount, headroom)

    updated = CPFAccounts(
        ordinaryAccount=round2(accounts.ordinaryAccount - from_oa + sa_excess),
        specialAccount=0.0,
        medisaveAccount=accounts.medisaveAccount,
        retirementAccount=round2(accounts.retirementAccount + from_sa + from_oa),
    )
    return TransitionResult(
        accounts=updated,
        from_sa=round2(from_sa),
        from_oa=round2(from_oa),
        sa_excess_to_oa=round2(sa_excess),
    )


def retirement_sum_progress(ra_balance: float, target: str, config: CPFConfig = CPF_CONFIG_2025) -> dict:
    amount = config.retirement_sum(target)
    return {
        "target": amount,
        "current": round2(ra_balance),
        "shortfall": round2(max(0.0, amount - ra_balance)),
        "percentageComplete": round2(min(100.0, ra_balance / amount * 100)),
        "isMet": ra_balance >= amount,
    }


def age55_withdrawable(accounts: CPFAccounts, config: CPFConfig = CPF_CONFIG_2025) -> float:
    """5,000 or everything in OA+SA above the full retirement sum, whichever is more."""
    excess = max(0.0, accounts.ordinaryAccount + accounts.specialAccount - config.retirementSums.full)
    return round2(max(AGE55_MINIMUM_WITHDRAWAL, excess))


# ---------------------------------------------------------------------------
# ledger
# ---------------------------------------------------------------------------


def check_starting_balances(balances: CPFAccounts, start_age: float, config: CPFConfig = CPF_CONFIG_2025) -> None:
    for name, value in balances.model_dump().items():
        if not math.isfinite(value) or value < 0:
            raise InvalidCPFBalanceError(f"CPF {name} balance cannot be negative (got {value})")
    if start_age < config.transitionAge and balances.retirementAccount > 0:
        raise InvalidCPFBalanceError(
            f"A retirement account balance is only possible from age {config.transitionAge}"
        )


def check_eligible_income(sources: Sequence[IncomeSource], settings: CPFSettings) -> None:
    if settings.manualOverride:
        return
    if not any(source.cpfEligible for source in sources):
        raise NoEligibleIncomeError(
            "CPF is enabled but no income source is marked CPF-eligible"
        )


@dataclass
class CPFMonthResult:
    snapshot: CPFMonthlySnapshot
    employee_deduction: float
    loan_draw: float
    life_payout: float


class CPFLedger:
    """Account state for one projection run.

    Built from a copy of the caller's starting balances; the caller's settings
    are never mutated.
    """

    def __init__(
        self,
        settings: CPFSettings,
        start_age: float,
        config: CPFConfig = CPF_CONFIG_2025,
    ):
        check_starting_balances(settings.currentBalances, start_age, config)
        self.settings = settings
        self.config = config
        self.accounts = settings.currentBalances.model_copy(deep=True)
        self.year_to_date = 0.0
        self.consolidated = False
        self.life_started = False
        self.life_initial_payout = 0.0
        self.life_start_age = 0
        self._current_year: int | None = None

    @property
    def ra_cap(self) -> float:
        # RA is closed once annuitized; later RA shares overflow to OA
        if self.life_started:
            return 0.0
        return self.config.retirementSums.full

    def _contribute(self, salary: float, age: int) -> CPFContribution:
        if self.settings.manualOverride or salary <= 0:
            return CPFContribution()
        contribution = calculate_contribution(salary, age, self.year_to_date, self.config)
        self.year_to_date = round2(self.year_to_date + contribution.total)
        if self.consolidated:
            self.accounts = apply_post55_contribution(self.accounts, contribution.allocation, self.ra_cap)
        else:
            self.accounts = apply_pre55_contribution(self.accounts, contribution.allocation)
        return contribution

    def _consolidate(self, age: int) -> float:
        result = handle_age55_transition(self.accounts, self.settings.retirementSumTarget, self.config)
        self.accounts = result.accounts
        self.consolidated = True
        logger.debug(
            "CPF consolidation at age %s: %.2f from SA, %.2f from OA, %.2f SA excess to OA",
            age,
            result.from_sa,
            result.from_oa,
            result.sa_excess_to_oa,
        )
        return result.transferred

    def _draw_for_loans(self, requested: float) -> float:
        if requested <= 0:
            return 0.0
        draw = round2(min(self.accounts.ordinaryAccount, requested))
        if draw < requested:
            logger.debug("OA covers %.2f of %.2f requested for housing loans", draw, requested)
        self.accounts = self.accounts.model_copy(
            update={"ordinaryAccount": round2(self.accounts.ordinaryAccount - draw)}
        )
        return draw

    def _life_payout(self, age: float) -> float:
        payout_age = self.settings.lifePayoutAge
        if age < payout_age:
            return 0.0
        if not self.life_started:
            self.life_started = True
            self.life_start_age = payout_age
            self.life_initial_payout = estimate_life_payout(
                self.accounts.retirementAccount, self.settings.lifePlan, payout_age, self.config
            )
            # the RA balance buys the annuity
            self.accounts = self.accounts.model_copy(update={"retirementAccount": 0.0})
        return life_payout_for_year(
            self.life_initial_payout,
            int(math.floor(age - self.life_start_age)),
            self.settings.lifePlan,
            self.config,
        )

    def step(
        self,
        when: YearMonth,
        month_index: int,
        age: float,
        eligible_salary: float,
        loan_request: float = 0.0,
    ) -> CPFMonthResult:
        whole_age = int(math.floor(age))
        if self._current_year is not None and when.year != self._current_year:
            self.year_to_date = 0.0
        self._current_year = when.year

        contribution = self._contribute(eligible_salary, whole_age)
        self.accounts, interest = apply_monthly_interest(self.accounts, whole_age, self.config)

        transferred = 0.0
        if not self.consolidated and age >= self.config.transitionAge:
            transferred = self._consolidate(whole_age)

        loan_draw = self._draw_for_loans(loan_request)
        payout = self._life_payout(age)

        snapshot = CPFMonthlySnapshot(
            monthIndex=month_index,
            age=whole_age,
            accounts=self.accounts.model_copy(),
            monthlyContribution=contribution,
            monthlyInterest=interest,
            yearToDateContributions=self.year_to_date,
            consolidated=self.consolidated,
            transferredToRA=transferred,
            loanDraw=loan_draw,
            lifePayout=payout,
        )
        return CPFMonthResult(
            snapshot=snapshot,
            employee_deduction=contribution.employee,
            loan_draw=loan_draw,
            life_payout=payout,
        )
