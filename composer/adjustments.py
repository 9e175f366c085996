"""
Adjustment composer — one pure function from (plan, overrides, what-if, assets)
to the request the projection service receives.

Resolution per field, always in this order:
  1. value = overrides[field] if set, else plan[field]
  2. apply the What-If transform on top of that value

Housing returns ignore the return-rate offset: the offset models investable
markets, and housing is not an investable asset here. Nothing is clamped;
negative figures propagate to whoever displays them.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from core.schema import (
    AssetBreakdown,
    Plan,
    ProjectionContext,
    ScenarioOverrides,
    WhatIfAdjustments,
)
from core.utils import round_money
from service.models import (
    MonteCarloRequest,
    ProjectionRequest,
    SimpleProjectionRequest,
)


@dataclass(frozen=True)
class EffectiveValues:
    """Resolved inputs before they are shaped into a wire request."""

    currency: str
    display_currency: Optional[str]
    current_age: Optional[int]
    retirement_age: int
    life_expectancy: int
    monthly_contribution: int
    monthly_expenses: int
    cash_return_rate: float
    equity_return_rate: float
    housing_return_rate: float
    inflation_rate: float
    equity_allocation: float
    cash_allocation: float
    pension_monthly: float
    social_security_monthly: float
    other_income_monthly: float
    rental_income_monthly: float
    target_balance: Optional[float]
    liquidation_threshold: float
    liquid_assets: float
    non_spendable_assets: float

    @property
    def blended_return_rate(self) -> float:
        """Weighted equity/cash return for investable assets only."""
        return (
            self.equity_allocation * self.equity_return_rate
            + self.cash_allocation * self.cash_return_rate
        )

    @property
    def real_return_rate(self) -> float:
        return self.blended_return_rate - self.inflation_rate


def _investable_split(plan: Plan, adjustments: WhatIfAdjustments):
    if adjustments.equity_percent is not None:
        equity = adjustments.equity_percent / 100.0
        return equity, 1.0 - equity
    investable = plan.equity_allocation + plan.cash_allocation
    if investable <= 0:
        return 0.0, 0.0
    equity = plan.equity_allocation / investable
    return equity, 1.0 - equity


def effective_values(
    plan: Plan,
    overrides: Optional[ScenarioOverrides] = None,
    adjustments: Optional[WhatIfAdjustments] = None,
    assets: Optional[AssetBreakdown] = None,
    context: Optional[ProjectionContext] = None,
) -> EffectiveValues:
    overrides = overrides or ScenarioOverrides()
    adjustments = adjustments or WhatIfAdjustments()
    assets = assets or AssetBreakdown()
    context = context or ProjectionContext.from_plan(plan, overrides)

    rate_offset = adjustments.return_rate_offset / 100.0
    equity_split, cash_split = _investable_split(plan, adjustments)

    return EffectiveValues(
        currency=plan.expenses_currency,
        display_currency=context.display_currency,
        current_age=context.current_age,
        retirement_age=int(context.retirement_age + adjustments.retirement_age_offset),
        life_expectancy=int(context.life_expectancy),
        monthly_contribution=round_money(
            context.monthly_investment * adjustments.contribution_percent / 100.0
        ),
        monthly_expenses=round_money(
            overrides.resolve("monthly_expenses", plan) * adjustments.expenses_percent / 100.0
        ),
        cash_return_rate=overrides.resolve("cash_return_rate", plan) + rate_offset,
        equity_return_rate=overrides.resolve("equity_return_rate", plan) + rate_offset,
        housing_return_rate=overrides.resolve("housing_return_rate", plan),
        inflation_rate=overrides.resolve("inflation_rate", plan)
        + adjustments.inflation_offset / 100.0,
        equity_allocation=equity_split,
        cash_allocation=cash_split,
        pension_monthly=overrides.resolve("pension_monthly", plan),
        social_security_monthly=overrides.resolve("social_security_monthly", plan),
        other_income_monthly=overrides.resolve("other_income_monthly", plan),
        rental_income_monthly=context.rental_income_monthly,
        target_balance=overrides.resolve("target_balance", plan),
        liquidation_threshold=adjustments.liquidation_threshold,
        liquid_assets=assets.liquid_assets,
        non_spendable_assets=assets.non_spendable_assets,
    )


def _positive_or_none(value: float) -> Optional[float]:
    return value if value and value > 0 else None


def _request_fields(values: EffectiveValues, context: ProjectionContext) -> dict:
    return dict(
        portfolio_ids=list(context.portfolio_ids),
        currency=values.currency,
        display_currency=values.display_currency,
        current_age=values.current_age,
        retirement_age=values.retirement_age,
        life_expectancy=values.life_expectancy,
        monthly_contribution=values.monthly_contribution,
        monthly_expenses=values.monthly_expenses,
        cash_return_rate=values.cash_return_rate,
        equity_return_rate=values.equity_return_rate,
        housing_return_rate=values.housing_return_rate,
        inflation_rate=values.inflation_rate,
        equity_allocation=values.equity_allocation,
        cash_allocation=values.cash_allocation,
        pension_monthly=values.pension_monthly,
        social_security_monthly=values.social_security_monthly,
        other_income_monthly=values.other_income_monthly,
        rental_income_monthly=_positive_or_none(values.rental_income_monthly),
        target_balance=values.target_balance,
        liquidation_threshold=values.liquidation_threshold,
        # a zero must not overwrite a good resolution on the service side
        liquid_assets=_positive_or_none(values.liquid_assets),
        non_spendable_assets=_positive_or_none(values.non_spendable_assets),
    )


def compose(
    plan: Plan,
    overrides: Optional[ScenarioOverrides] = None,
    adjustments: Optional[WhatIfAdjustments] = None,
    assets: Optional[AssetBreakdown] = None,
    context: Optional[ProjectionContext] = None,
) -> ProjectionRequest:
    """Build the deterministic projection request. Pure; same inputs, same request."""
    overrides = overrides or ScenarioOverrides()
    context = context or ProjectionContext.from_plan(plan, overrides)
    values = effective_values(plan, overrides, adjustments, assets, context)
    return ProjectionRequest(**_request_fields(values, context))


def compose_monte_carlo(
    plan: Plan,
    overrides: Optional[ScenarioOverrides] = None,
    adjustments: Optional[WhatIfAdjustments] = None,
    assets: Optional[AssetBreakdown] = None,
    context: Optional[ProjectionContext] = None,
    *,
    iterations: int,
) -> MonteCarloRequest:
    """Same composition rules as ``compose`` plus the iteration count."""
    base = compose(plan, overrides, adjustments, assets, context)
    return MonteCarloRequest(**base.model_dump(), iterations=int(iterations))


def compose_simple(
    plan: Plan,
    assets: AssetBreakdown,
    display_currency: Optional[str] = None,
) -> SimpleProjectionRequest:
    """Widget mode: the service applies the plan as stored."""
    return SimpleProjectionRequest(
        currency=plan.expenses_currency,
        display_currency=display_currency,
        liquid_assets=assets.liquid_assets,
        non_spendable_assets=assets.non_spendable_assets,
    )
