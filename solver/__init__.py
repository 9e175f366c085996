"""
FI solvers plus the metrics snapshot built from them.
"""

from .fi import (
    coast_fi_number,
    coast_fi_progress,
    fi_number,
    fi_progress,
    future_value,
    required_monthly_contribution,
    years_to_target,
)
from .metrics import FiSnapshot, compute_fi_snapshot, required_contribution_table

__all__ = [
    "coast_fi_number",
    "coast_fi_progress",
    "fi_number",
    "fi_progress",
    "future_value",
    "required_monthly_contribution",
    "years_to_target",
    "FiSnapshot",
    "compute_fi_snapshot",
    "required_contribution_table",
]
