"""
Wire models for the remote projection service.

Requests are camelCase JSON; optional fields left as None are dropped from
the body. Responses keep unknown fields so presentation code can read them
without the engine having to model everything.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class ProjectionRequest(_WireModel):
    portfolio_ids: List[str] = Field(default_factory=list)
    currency: str
    display_currency: Optional[str] = None

    current_age: Optional[int] = None
    retirement_age: int
    life_expectancy: int

    monthly_contribution: float
    monthly_expenses: float

    cash_return_rate: float
    equity_return_rate: float
    housing_return_rate: float
    inflation_rate: float
    equity_allocation: float
    cash_allocation: float

    pension_monthly: float
    social_security_monthly: float
    other_income_monthly: float
    rental_income_monthly: Optional[float] = None

    target_balance: Optional[float] = None
    liquidation_threshold: float

    # only sent when > 0; zero means "holdings not loaded yet"
    liquid_assets: Optional[float] = None
    non_spendable_assets: Optional[float] = None


class MonteCarloRequest(ProjectionRequest):
    iterations: int


class SimpleProjectionRequest(_WireModel):
    currency: str
    display_currency: Optional[str] = None
    liquid_assets: float
    non_spendable_assets: float


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------
class _ResponseModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="allow"
    )


class FiMetrics(_ResponseModel):
    fi_number: float = 0.0
    fi_progress: float = 0.0
    gap_to_fi: Optional[float] = None
    net_monthly_expenses: Optional[float] = None
    total_monthly_income: Optional[float] = None
    savings_rate: Optional[float] = None
    years_to_fi: Optional[float] = None
    real_years_to_fi: Optional[float] = None
    coast_fi_number: Optional[float] = None
    coast_fi_progress: Optional[float] = None
    is_coast_fire: bool = False
    is_financially_independent: bool = False
    real_return_below_swr: Optional[bool] = None


class YearlyProjection(_ResponseModel):
    year: int
    age: Optional[int] = None
    starting_balance: float = 0.0
    investment: float = 0.0
    withdrawals: float = 0.0
    ending_balance: float = 0.0
    inflation_adjusted_expenses: float = 0.0
    currency: Optional[str] = None
    non_spendable_value: float = 0.0
    total_wealth: float = 0.0
    property_liquidated: Optional[bool] = None


class RetirementProjection(_ResponseModel):
    plan_id: Optional[str] = None
    as_of_date: Optional[str] = None
    currency: Optional[str] = None
    liquid_assets: float = 0.0
    total_assets: float = 0.0
    runway_years: Optional[float] = None
    depletion_age: Optional[float] = None
    yearly_projections: List[YearlyProjection] = Field(default_factory=list)
    fi_metrics: Optional[FiMetrics] = None
    fi_achievement_age: Optional[int] = None


class YearlyBand(_ResponseModel):
    year: int
    age: Optional[int] = None
    p5: float = 0.0
    p10: float = 0.0
    p25: float = 0.0
    p50: float = 0.0
    p75: float = 0.0
    p90: float = 0.0
    p95: float = 0.0


class TerminalBalancePercentiles(_ResponseModel):
    p5: float = 0.0
    p25: float = 0.0
    p50: float = 0.0
    p75: float = 0.0
    p95: float = 0.0


class DepletionAgeDistribution(_ResponseModel):
    histogram: Dict[str, int] = Field(default_factory=dict)
    survived_count: int = 0
    depleted_count: int = 0
    earliest_depletion_age: Optional[int] = None
    most_common_depletion_age: Optional[int] = None


class SimulationParameters(_ResponseModel):
    blended_return_rate: float = 0.0
    blended_volatility: float = 0.0
    inflation_rate: float = 0.0
    inflation_volatility: float = 0.0


class MonteCarloResult(_ResponseModel):
    iterations: int
    success_rate: float
    yearly_bands: List[YearlyBand] = Field(default_factory=list)
    terminal_balance_percentiles: TerminalBalancePercentiles = Field(
        default_factory=TerminalBalancePercentiles
    )
    depletion_age_distribution: DepletionAgeDistribution = Field(
        default_factory=DepletionAgeDistribution
    )
    parameters: SimulationParameters = Field(default_factory=SimulationParameters)
    deterministic_runway_years: Optional[float] = None
    deterministic_depletion_age: Optional[float] = None
