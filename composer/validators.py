"""
Sanity checks for a plan before it drives projections.

Nothing here blocks composition (the composer falls back to defaults), but
suspicious inputs are worth surfacing:
- Allocations that don't sum to 100%
- Rates entered as percents instead of decimals
- Non-finite or negative amounts
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import List

from core.schema import Plan

_RATE_FIELDS = (
    "equity_return_rate",
    "cash_return_rate",
    "housing_return_rate",
    "inflation_rate",
)
_AMOUNT_FIELDS = (
    "monthly_expenses",
    "pension_monthly",
    "social_security_monthly",
    "other_income_monthly",
    "working_income_monthly",
    "working_expenses_monthly",
)
_ALLOCATION_TOLERANCE = 0.01


@dataclass
class ValidationResult:
    """Collects validation warnings/errors for a plan."""
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return len(self.errors) == 0

    def summary(self) -> str:
        lines = []
        if self.errors:
            lines.append(f"ERRORS ({len(self.errors)}):")
            for e in self.errors:
                lines.append(f"  ✗ {e}")
        if self.warnings:
            lines.append(f"WARNINGS ({len(self.warnings)}):")
            for w in self.warnings:
                lines.append(f"  ⚠ {w}")
        if not lines:
            lines.append("✓ All checks passed.")
        return "\n".join(lines)


def validate_plan(plan: Plan) -> ValidationResult:
    result = ValidationResult()

    # --- Amounts ---
    for name in _AMOUNT_FIELDS:
        value = getattr(plan, name)
        if not math.isfinite(value):
            result.warnings.append(f"{name} is not a finite number.")
        elif value < 0:
            if name == "monthly_expenses":
                result.errors.append("monthly_expenses is negative.")
            else:
                result.warnings.append(f"{name} is negative.")

    # --- Rates should be decimals (0.07, not 7.0) ---
    for name in _RATE_FIELDS:
        value = getattr(plan, name)
        if not math.isfinite(value):
            result.warnings.append(f"{name} is not a finite number.")
        elif abs(value) > 1.0:
            result.warnings.append(
                f"{name} = {value} looks like a percent; rates are decimals."
            )

    # --- Allocations ---
    total = plan.equity_allocation + plan.cash_allocation + plan.housing_allocation
    if math.isfinite(total) and abs(total - 1.0) > _ALLOCATION_TOLERANCE:
        result.warnings.append(f"Allocations sum to {total:.2f}, expected 1.00.")

    # --- Horizon ---
    if plan.life_expectancy <= 0:
        result.errors.append("life_expectancy must be positive.")
    if plan.year_of_birth is None:
        result.warnings.append("year_of_birth missing, current age unknown.")
    if plan.planning_horizon_years and plan.planning_horizon_years >= plan.life_expectancy:
        result.warnings.append("planning_horizon_years exceeds life_expectancy.")

    return result
