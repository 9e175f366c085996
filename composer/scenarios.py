"""
Quick scenarios — named What-If presets that stack on top of the sliders.

Stacking rules:
  - offsets (retirement age, return rate, inflation) add
  - percentages (expenses, contribution) multiply: 90% of 110% = 99%
  - equity split and liquidation threshold stay as the sliders set them
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Dict, Iterable, Tuple

from core.schema import WhatIfAdjustments
from core.utils import round_money


@dataclass(frozen=True)
class QuickScenario:
    id: str
    name: str
    description: str = ""
    retirement_age_offset: int = 0
    expenses_percent: float = 100.0
    return_rate_offset: float = 0.0
    inflation_offset: float = 0.0
    contribution_percent: float = 100.0


DEFAULT_QUICK_SCENARIOS: Tuple[QuickScenario, ...] = (
    QuickScenario(
        id="retire-early",
        name="Retire 5 years early",
        description="Stop working five years sooner",
        retirement_age_offset=-5,
    ),
    QuickScenario(
        id="work-longer",
        name="Work 3 more years",
        description="Delay retirement by three years",
        retirement_age_offset=3,
    ),
    QuickScenario(
        id="market-downturn",
        name="Market downturn",
        description="Returns 2 points lower for the whole horizon",
        return_rate_offset=-2.0,
    ),
    QuickScenario(
        id="high-inflation",
        name="High inflation",
        description="Inflation 1.5 points higher",
        inflation_offset=1.5,
    ),
    QuickScenario(
        id="lean",
        name="Lean spending",
        description="Spend 20% less in retirement",
        expenses_percent=80.0,
    ),
    QuickScenario(
        id="save-more",
        name="Save 25% more",
        description="Raise monthly contributions by a quarter",
        contribution_percent=125.0,
    ),
)


def scenarios_by_id(scenarios: Iterable[QuickScenario] = DEFAULT_QUICK_SCENARIOS) -> Dict[str, QuickScenario]:
    return {s.id: s for s in scenarios}


def combine_scenarios(
    adjustments: WhatIfAdjustments,
    scenarios: Iterable[QuickScenario],
) -> WhatIfAdjustments:
    """Fold selected quick scenarios into the slider adjustments."""
    combined = adjustments
    for scenario in scenarios:
        combined = replace(
            combined,
            retirement_age_offset=combined.retirement_age_offset + scenario.retirement_age_offset,
            return_rate_offset=combined.return_rate_offset + scenario.return_rate_offset,
            inflation_offset=combined.inflation_offset + scenario.inflation_offset,
            expenses_percent=round_money(
                combined.expenses_percent * scenario.expenses_percent / 100.0
            ),
            contribution_percent=round_money(
                combined.contribution_percent * scenario.contribution_percent / 100.0
            ),
        )
    return combined
