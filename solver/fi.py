"""
Financial-independence solvers. Local and synchronous.

Growth model (annual compounding, end-of-year contributions):
    FV(n) = A(1+r)^n + C((1+r)^n - 1) / r

Unreachable or undefined answers come back as ``None``; callers display that
as "not reachable", it is not a fault. Non-finite inputs never leak NaN into
a percentage.
"""

from __future__ import annotations

from typing import Optional

from core.utils import clamp, is_finite_number

MAX_YEARS = 100.0
YEARS_TOLERANCE = 0.1
DEFAULT_SWR = 0.04


def future_value(
    present_value: float,
    annual_contribution: float,
    annual_rate: float,
    years: float,
) -> float:
    compound = (1.0 + annual_rate) ** years
    fv_present = present_value * compound
    if annual_rate > 0:
        fv_contributions = annual_contribution * (compound - 1.0) / annual_rate
    else:
        fv_contributions = annual_contribution * years
    return fv_present + fv_contributions


def years_to_target(
    current_assets: float,
    annual_contribution: float,
    target: float,
    annual_rate: float,
) -> Optional[float]:
    """
    Years until assets reach ``target``.

    Returns 0 when already there, None when unreachable within MAX_YEARS.
    Binary search over [0, MAX_YEARS] narrows to YEARS_TOLERANCE (~10 steps).
    """
    if not is_finite_number(current_assets, annual_contribution, target, annual_rate):
        return None
    if current_assets >= target:
        return 0.0
    if annual_contribution <= 0 and current_assets <= 0:
        return None

    if annual_rate <= 0:
        if annual_contribution <= 0:
            return None
        return (target - current_assets) / annual_contribution

    if future_value(current_assets, annual_contribution, annual_rate, MAX_YEARS) < target:
        return None

    low, high = 0.0, MAX_YEARS
    while high - low > YEARS_TOLERANCE:
        mid = (low + high) / 2.0
        if future_value(current_assets, annual_contribution, annual_rate, mid) < target:
            low = mid
        else:
            high = mid
    return (low + high) / 2.0


def required_monthly_contribution(
    current_assets: float,
    target: float,
    years: float,
    annual_rate: float,
) -> Optional[float]:
    """
    Monthly saving needed to reach ``target`` in ``years``.

    Inverts the annuity formula:
        PMT = (T - A(1+r)^n) * r / ((1+r)^n - 1)
    """
    if not is_finite_number(current_assets, target, years, annual_rate):
        return None
    if years <= 0:
        return None
    if current_assets >= target:
        return 0.0

    if annual_rate <= 0:
        return (target - current_assets) / years / 12.0

    compound = (1.0 + annual_rate) ** years
    grown = current_assets * compound
    if grown >= target:
        return 0.0
    annual_required = (target - grown) * annual_rate / (compound - 1.0)
    return annual_required / 12.0


def coast_fi_number(target: float, years: float, annual_rate: float) -> Optional[float]:
    """Amount that compounds alone to ``target`` after ``years``."""
    if not is_finite_number(target, years, annual_rate):
        return None
    if years <= 0 or annual_rate <= 0:
        return None
    return target / (1.0 + annual_rate) ** years


def coast_fi_progress(current_assets: float, coast_number: Optional[float]) -> Optional[float]:
    if coast_number is None or not is_finite_number(current_assets, coast_number):
        return None
    if coast_number <= 0:
        return None
    return current_assets / coast_number * 100.0


def is_coast_fire(progress: Optional[float]) -> bool:
    return progress is not None and progress >= 100.0


def fi_number(annual_expenses: float, swr: float = DEFAULT_SWR) -> float:
    """Target portfolio at a safe withdrawal rate: 4% SWR -> 25x expenses."""
    if not is_finite_number(annual_expenses, swr) or swr <= 0:
        return 0.0
    return annual_expenses / swr


def fi_number_from_monthly(monthly_expenses: float, swr: float = DEFAULT_SWR) -> float:
    return fi_number(monthly_expenses * 12.0, swr)


def fi_progress(liquid_assets: float, target: float) -> float:
    """Progress in percent; may exceed 100. No expenses means already FI."""
    if not is_finite_number(liquid_assets, target):
        return 0.0
    if target <= 0:
        return 100.0
    return liquid_assets / target * 100.0


def gap_to_fi(target: float, liquid_assets: float) -> float:
    """Positive = still to go, negative = surplus."""
    return target - liquid_assets


def is_financially_independent(progress: float) -> bool:
    return progress >= 100.0


def clamp_progress(progress: Optional[float]) -> float:
    """Display-only clamp to [0, 100]; comparisons use the raw value."""
    if progress is None or not is_finite_number(progress):
        return 0.0
    return clamp(progress, 0.0, 100.0)


def years_between(current_age: Optional[float], target_age: Optional[float]) -> Optional[float]:
    if current_age is None or target_age is None:
        return None
    if not is_finite_number(current_age, target_age) or target_age <= current_age:
        return None
    return target_age - current_age


def savings_rate(monthly_investment: float, working_income_monthly: float) -> Optional[float]:
    if not is_finite_number(monthly_investment, working_income_monthly):
        return None
    if working_income_monthly <= 0 or monthly_investment <= 0:
        return None
    return monthly_investment / working_income_monthly * 100.0


def blended_return_rate(
    cash_return_rate: float,
    equity_return_rate: float,
    cash_allocation: float,
    equity_allocation: float,
) -> float:
    investable = cash_allocation + equity_allocation
    if investable <= 0:
        return 0.0
    return (
        cash_allocation / investable * cash_return_rate
        + equity_allocation / investable * equity_return_rate
    )


def real_return_rate(nominal_rate: float, inflation_rate: float) -> float:
    return nominal_rate - inflation_rate
