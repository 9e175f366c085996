"""
Monte Carlo — user-triggered simulation runs and chart-ready summaries.
"""

from .controller import ITERATION_OPTIONS, MonteCarloController
from .summary import (
    depletion_histogram_frame,
    fan_chart_frame,
    success_rate_band,
    terminal_percentiles_frame,
)

__all__ = [
    "ITERATION_OPTIONS",
    "MonteCarloController",
    "depletion_histogram_frame",
    "fan_chart_frame",
    "success_rate_band",
    "terminal_percentiles_frame",
]
