"""
Turn a Monte Carlo result into tables the page can chart.

The service already reports percentiles; nothing is re-simulated here. These
helpers only reshape:

  fan chart    yearly p5..p95 bands, optionally overlaid with the
               deterministic ending balance for the same year
  depletion    how many paths ran out of money at each age
  terminal     the spread of balances left at life expectancy
"""

from __future__ import annotations

from typing import Optional

import numpy as np
import pandas as pd

from service.models import MonteCarloResult, RetirementProjection

BAND_COLUMNS = ("p5", "p10", "p25", "p50", "p75", "p90", "p95")

HIGH_SUCCESS_RATE = 80.0
MEDIUM_SUCCESS_RATE = 50.0


def fan_chart_frame(
    result: MonteCarloResult,
    projection: Optional[RetirementProjection] = None,
) -> pd.DataFrame:
    """
    Parameters
    ----------
    result : MonteCarloResult
    projection : RetirementProjection, optional
        When given, adds a ``deterministic`` column matched on year.

    Returns
    -------
    DataFrame with columns year, age, p5..p95 (and deterministic), one row per year.
    """
    cols = ["year", "age", *BAND_COLUMNS]
    rows = [{c: getattr(band, c) for c in cols} for band in result.yearly_bands]
    df = pd.DataFrame(rows, columns=cols)

    if projection is not None:
        det = pd.DataFrame(
            [(y.year, y.ending_balance) for y in projection.yearly_projections],
            columns=["year", "deterministic"],
        )
        df = df.merge(det, on="year", how="left")

    return df.sort_values("year").reset_index(drop=True)


def depletion_histogram_frame(result: MonteCarloResult) -> pd.DataFrame:
    """
    Paths depleted per age, with the share of all iterations.

    Histogram keys arrive as strings (JSON object keys); non-numeric keys
    are dropped.
    """
    dist = result.depletion_age_distribution
    ages, counts = [], []
    for key, count in dist.histogram.items():
        try:
            ages.append(int(key))
        except (TypeError, ValueError):
            continue
        counts.append(int(count))

    df = pd.DataFrame({"age": ages, "count": counts}, columns=["age", "count"])
    df = df.sort_values("age").reset_index(drop=True)

    total = result.iterations or (dist.survived_count + dist.depleted_count)
    df["pct_of_paths"] = df["count"] / total * 100.0 if total else 0.0
    df["cumulative_pct"] = df["pct_of_paths"].cumsum()
    return df


def terminal_percentiles_frame(result: MonteCarloResult) -> pd.DataFrame:
    tb = result.terminal_balance_percentiles
    labels = ["p5", "p25", "p50", "p75", "p95"]
    return pd.DataFrame(
        {
            "percentile": labels,
            "level": [5, 25, 50, 75, 95],
            "balance": np.array([getattr(tb, p) for p in labels], dtype=float),
        }
    )


def success_rate_band(rate: Optional[float]) -> str:
    """``high`` (>= 80%), ``medium`` (>= 50%) or ``low``."""
    if rate is None or not np.isfinite(rate):
        return "low"
    if rate >= HIGH_SUCCESS_RATE:
        return "high"
    if rate >= MEDIUM_SUCCESS_RATE:
        return "medium"
    return "low"
