"""CPF LIFE payout estimates from a retirement-account balance."""

from __future__ import annotations

from retireplan.core.constants import round2
from retireplan.core.cpf_config import CPF_CONFIG_2025, CPFConfig

BASE_PAYOUT_AGE = 65


def estimate_life_payout(
    ra_balance: float,
    plan: str = "standard",
    payout_age: int = BASE_PAYOUT_AGE,
    config: CPFConfig = CPF_CONFIG_2025,
) -> float:
    """Monthly payout at ``payout_age``, pro-rated against the nearest retirement sum."""
    if ra_balance <= 0:
        return 0.0
    sums = config.retirementSums
    payouts = config.lifePayouts

    if ra_balance <= sums.basic:
        base = payouts.basic.midpoint * ra_balance / sums.basic
    elif ra_balance <= sums.full:
        base = payouts.full.midpoint * ra_balance / sums.full
    else:
        base = payouts.enhanced.midpoint * ra_balance / sums.enhanced

    deferral_years = max(0, payout_age - BASE_PAYOUT_AGE)
    base *= (1 + payouts.deferralBonusPerYear) ** deferral_years
    return round2(base * payouts.planMultipliers.get(plan, 1.0))


def life_payout_for_year(
    initial_payout: float,
    years_since_start: int,
    plan: str,
    config: CPFConfig = CPF_CONFIG_2025,
) -> float:
    if plan == "escalating" and years_since_start > 0:
        return round2(initial_payout * (1 + config.lifePayouts.escalationRate) ** years_since_start)
    return initial_payout
