"""
FI metrics snapshot — the numbers the FIRE panel shows, computed locally.

When the projection service has already returned ``fiMetrics`` those values
win (so the panel matches the plan card); the local solvers fill whatever the
service left out and keep the panel responsive while a request is in flight.
The gap to FI is always local so What-If edits show up immediately.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, List, Optional

import numpy as np
import pandas as pd

from service.models import FiMetrics

from . import fi


@dataclass
class FiSnapshot:
    """Structured FIRE metrics for one set of inputs."""
    fi_number: float
    fi_progress: float
    gap_to_fi: float
    is_financially_independent: bool

    years_to_fi: Optional[float]
    savings_rate: Optional[float]

    coast_fi_number: Optional[float]
    coast_fi_progress: Optional[float]
    is_coast_fire: bool

    real_return_rate: float
    real_return_below_swr: bool

    flags: List[str] = field(default_factory=list)

    @property
    def fi_progress_display(self) -> float:
        return fi.clamp_progress(self.fi_progress)

    @property
    def coast_fi_progress_display(self) -> float:
        return fi.clamp_progress(self.coast_fi_progress)

    def to_dataframe(self) -> pd.DataFrame:
        """Convert to a display-friendly table."""
        def _opt(value, fmt):
            return fmt.format(value) if value is not None else "N/A"

        rows = [
            {"Metric": "FI Number", "Value": f"{self.fi_number:,.0f}", "Unit": ""},
            {"Metric": "FI Progress", "Value": f"{self.fi_progress:.1f}", "Unit": "%"},
            {"Metric": "Gap to FI", "Value": f"{self.gap_to_fi:,.0f}", "Unit": ""},
            {"Metric": "Years to FI", "Value": _opt(self.years_to_fi, "{:.1f}"), "Unit": "years"},
            {"Metric": "Savings Rate", "Value": _opt(self.savings_rate, "{:.1f}"), "Unit": "%"},
            {"Metric": "Coast FI Number", "Value": _opt(self.coast_fi_number, "{:,.0f}"), "Unit": ""},
            {"Metric": "Coast FI Progress", "Value": _opt(self.coast_fi_progress, "{:.1f}"), "Unit": "%"},
            {"Metric": "Real Return", "Value": f"{self.real_return_rate:.2%}", "Unit": ""},
        ]
        if self.flags:
            rows.append({"Metric": "FLAGS", "Value": " | ".join(self.flags), "Unit": ""})
        return pd.DataFrame(rows)


def compute_fi_snapshot(
    *,
    liquid_assets: float,
    monthly_expenses: float,
    monthly_investment: float = 0.0,
    working_income_monthly: float = 0.0,
    current_age: Optional[float] = None,
    retirement_age: Optional[float] = None,
    expected_return_rate: float = 0.07,
    inflation_rate: float = 0.025,
    service_metrics: Optional[FiMetrics] = None,
    swr: float = fi.DEFAULT_SWR,
) -> FiSnapshot:
    """
    Parameters
    ----------
    liquid_assets : float
        Spendable assets only; property is excluded.
    monthly_expenses : float
        Net monthly expenses in retirement (after income sources).
    expected_return_rate : float
        Nominal blended return of investable assets, as a decimal.
    service_metrics : FiMetrics, optional
        ``fiMetrics`` from the latest projection; truthy values take precedence.
    """
    sm = service_metrics

    local_fi_number = fi.fi_number_from_monthly(monthly_expenses, swr)
    fi_number = (sm.fi_number if sm and sm.fi_number else None) or local_fi_number

    local_progress = fi.fi_progress(liquid_assets, fi_number)
    progress = (sm.fi_progress if sm and sm.fi_progress else None) or local_progress

    years_to_fi = fi.years_to_target(
        liquid_assets, (monthly_investment or 0.0) * 12.0, fi_number, expected_return_rate
    )

    years_to_retirement = fi.years_between(current_age, retirement_age)
    local_coast = fi.coast_fi_number(fi_number, years_to_retirement or 0, expected_return_rate)
    coast_number = sm.coast_fi_number if sm and sm.coast_fi_number is not None else local_coast
    local_coast_progress = fi.coast_fi_progress(liquid_assets, coast_number)
    coast_progress = (
        sm.coast_fi_progress if sm and sm.coast_fi_progress is not None else local_coast_progress
    )
    coast_fire = sm.is_coast_fire if sm and sm.coast_fi_progress is not None else fi.is_coast_fire(coast_progress)

    real_rate = fi.real_return_rate(expected_return_rate, inflation_rate)
    below_swr = real_rate < swr

    flags = []
    if fi.is_financially_independent(progress):
        flags.append("FI_ACHIEVED")
    elif years_to_fi is None:
        flags.append("FI_UNREACHABLE: not reachable within 100 years")
    if coast_fire:
        flags.append("COAST_FIRE")
    if below_swr:
        flags.append(f"REAL_RETURN_BELOW_SWR: {real_rate:.2%} < {swr:.0%}")

    return FiSnapshot(
        fi_number=fi_number,
        fi_progress=progress,
        gap_to_fi=fi.gap_to_fi(fi_number, liquid_assets),
        is_financially_independent=fi.is_financially_independent(progress),
        years_to_fi=years_to_fi,
        savings_rate=fi.savings_rate(monthly_investment, working_income_monthly),
        coast_fi_number=coast_number,
        coast_fi_progress=coast_progress,
        is_coast_fire=coast_fire,
        real_return_rate=real_rate,
        real_return_below_swr=below_swr,
        flags=flags,
    )


def required_contribution_table(
    *,
    liquid_assets: float,
    fi_number: float,
    current_age: int,
    target_ages: Optional[Iterable[int]] = None,
    real_return_rate: float,
    working_income_monthly: float = 0.0,
) -> pd.DataFrame:
    """
    Monthly saving required to reach FI at each target age.

    Defaults to every fifth age from 40 to 60 that is still ahead.
    """
    if target_ages is None:
        target_ages = np.arange(40, 65, 5)
    ages = [int(a) for a in target_ages if int(a) > current_age]

    rows = []
    for age in ages:
        years = age - current_age
        required = fi.required_monthly_contribution(liquid_assets, fi_number, years, real_return_rate)
        rate = (
            required / working_income_monthly * 100.0
            if required is not None and working_income_monthly > 0
            else None
        )
        rows.append({
            "target_age": age,
            "years": years,
            "required_monthly": required,
            "required_savings_rate": rate,
        })
    return pd.DataFrame(rows, columns=["target_age", "years", "required_monthly", "required_savings_rate"])
