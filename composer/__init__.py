"""
Composer package — merges plan, overrides and What-If adjustments into the
effective request, and fingerprints that state for change detection.
"""

from .adjustments import (
    EffectiveValues,
    compose,
    compose_monte_carlo,
    compose_simple,
    effective_values,
)
from .checksum import hash_string, projection_checksum
from .scenarios import DEFAULT_QUICK_SCENARIOS, QuickScenario, combine_scenarios
from .validators import ValidationResult, validate_plan

__all__ = [
    "EffectiveValues",
    "compose",
    "compose_monte_carlo",
    "compose_simple",
    "effective_values",
    "hash_string",
    "projection_checksum",
    "DEFAULT_QUICK_SCENARIOS",
    "QuickScenario",
    "combine_scenarios",
    "ValidationResult",
    "validate_plan",
]
