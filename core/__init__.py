"""
Core package — domain records and configuration, plus numeric helpers.
No business logic lives here.
"""

from .config import EngineConfig
from .schema import (
    DEFAULT_NON_SPENDABLE_CATEGORIES,
    AssetBreakdown,
    Plan,
    ProjectionContext,
    ScenarioOverrides,
    WhatIfAdjustments,
)
from .utils import is_finite_number, round_half_away, round_money, safe_float

__all__ = [
    "EngineConfig",
    "DEFAULT_NON_SPENDABLE_CATEGORIES",
    "AssetBreakdown",
    "Plan",
    "ProjectionContext",
    "ScenarioOverrides",
    "WhatIfAdjustments",
    "is_finite_number",
    "round_half_away",
    "round_money",
    "safe_float",
]
