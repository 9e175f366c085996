"""
Domain records shared by every layer of the engine.

Three layered sources feed a projection:
  1. Plan                — the persisted baseline (read-only here)
  2. ScenarioOverrides   — sparse, in-memory field edits not yet saved
  3. WhatIfAdjustments   — dense, relative slider adjustments

Plus the asset totals supplied by the holdings view (AssetBreakdown) and the
horizon inputs the plan page derives (ProjectionContext).
"""

from __future__ import annotations

import datetime as dt
from dataclasses import asdict, dataclass, field, fields, replace
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple

from .utils import safe_float

DEFAULT_RETIREMENT_AGE = 65
DEFAULT_LIFE_EXPECTANCY = 90
DEFAULT_INVESTMENT_ALLOCATION = 0.8
DEFAULT_LIQUIDATION_THRESHOLD = 10.0

# Property typically can't be easily liquidated
DEFAULT_NON_SPENDABLE_CATEGORIES: Tuple[str, ...] = ("Property", "Real Estate")

# Plan fields that change what the projection service computes.
PLAN_PROJECTION_FIELDS: Tuple[str, ...] = (
    "monthly_expenses",
    "pension_monthly",
    "social_security_monthly",
    "other_income_monthly",
    "equity_return_rate",
    "cash_return_rate",
    "housing_return_rate",
    "inflation_rate",
    "life_expectancy",
    "planning_horizon_years",
    "target_balance",
    "equity_allocation",
    "cash_allocation",
    "housing_allocation",
    "working_income_monthly",
    "working_expenses_monthly",
    "taxes_monthly",
    "bonus_monthly",
    "investment_allocation_percent",
    "year_of_birth",
    "expenses_currency",
)


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


@dataclass(frozen=True)
class Plan:
    """Persisted plan baseline. Rates and allocations are decimals (0.07 = 7%)."""

    id: str
    name: str = ""
    expenses_currency: str = "USD"
    monthly_expenses: float = 0.0

    pension_monthly: float = 0.0
    social_security_monthly: float = 0.0
    other_income_monthly: float = 0.0

    working_income_monthly: float = 0.0
    working_expenses_monthly: float = 0.0
    taxes_monthly: float = 0.0
    bonus_monthly: float = 0.0
    investment_allocation_percent: float = DEFAULT_INVESTMENT_ALLOCATION

    equity_return_rate: float = 0.08
    cash_return_rate: float = 0.03
    housing_return_rate: float = 0.04
    inflation_rate: float = 0.025

    equity_allocation: float = 0.8
    cash_allocation: float = 0.2
    housing_allocation: float = 0.0

    target_balance: Optional[float] = None
    year_of_birth: Optional[int] = None
    life_expectancy: int = DEFAULT_LIFE_EXPECTANCY
    planning_horizon_years: int = 0

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Plan":
        """
        Build a Plan from the service's camelCase payload.

        Missing or unparseable fields fall back to the dataclass defaults;
        an absent field is normal, not an error.
        """
        defaults = cls(id="")
        values: Dict[str, Any] = {}
        for f in fields(cls):
            raw = data.get(_camel(f.name), data.get(f.name))
            default = getattr(defaults, f.name)
            if f.name in ("id", "name", "expenses_currency"):
                values[f.name] = str(raw) if raw else default
            elif f.name in ("target_balance", "year_of_birth"):
                if raw is None:
                    values[f.name] = None
                else:
                    parsed = safe_float(raw, default=None)
                    if parsed is not None and f.name == "year_of_birth":
                        parsed = int(parsed)
                    values[f.name] = parsed
            elif f.name in ("life_expectancy", "planning_horizon_years"):
                # 0 means "not set" for these, same as missing
                values[f.name] = int(safe_float(raw, default=default) or default)
            else:
                values[f.name] = safe_float(raw, default=default)
        return cls(**values)

    def current_age(self, today: Optional[dt.date] = None) -> Optional[int]:
        if not self.year_of_birth:
            return None
        today = today or dt.date.today()
        return today.year - int(self.year_of_birth)

    def retirement_age(self) -> int:
        if self.planning_horizon_years:
            return int(self.life_expectancy - self.planning_horizon_years)
        return DEFAULT_RETIREMENT_AGE

    def projection_fields(self) -> Dict[str, Any]:
        return {name: getattr(self, name) for name in PLAN_PROJECTION_FIELDS}


@dataclass(frozen=True)
class ScenarioOverrides:
    """
    Sparse patch over a Plan. ``None`` means "inherit from the plan".

    Merge semantics: ``resolve(name, plan)`` returns the override when set,
    otherwise the plan's value. What-If transforms are applied afterwards by
    the composer, never instead of this resolution.
    """

    pension_monthly: Optional[float] = None
    social_security_monthly: Optional[float] = None
    other_income_monthly: Optional[float] = None
    working_income_monthly: Optional[float] = None
    monthly_expenses: Optional[float] = None
    equity_return_rate: Optional[float] = None
    cash_return_rate: Optional[float] = None
    housing_return_rate: Optional[float] = None
    inflation_rate: Optional[float] = None
    target_balance: Optional[float] = None

    @classmethod
    def field_names(cls) -> Tuple[str, ...]:
        return tuple(f.name for f in fields(cls))

    def resolve(self, name: str, plan: Plan) -> Any:
        if name not in self.field_names():
            return getattr(plan, name)
        value = getattr(self, name)
        return getattr(plan, name) if value is None else value

    def with_values(self, **edits: Optional[float]) -> "ScenarioOverrides":
        unknown = sorted(set(edits) - set(self.field_names()))
        if unknown:
            raise ValueError(f"Unknown override fields: {unknown}")
        return replace(self, **edits)

    def cleared(self) -> "ScenarioOverrides":
        return ScenarioOverrides()

    @property
    def is_empty(self) -> bool:
        return all(getattr(self, name) is None for name in self.field_names())

    def to_dict(self) -> Dict[str, float]:
        return {
            name: getattr(self, name)
            for name in self.field_names()
            if getattr(self, name) is not None
        }


@dataclass(frozen=True)
class WhatIfAdjustments:
    """Relative slider adjustments, always fully populated."""

    retirement_age_offset: int = 0
    expenses_percent: float = 100.0
    return_rate_offset: float = 0.0   # percentage points
    inflation_offset: float = 0.0     # percentage points
    contribution_percent: float = 100.0
    equity_percent: Optional[float] = None  # None = plan's own split
    liquidation_threshold: float = DEFAULT_LIQUIDATION_THRESHOLD

    def has_changes(self) -> bool:
        return self != WhatIfAdjustments()

    def reset(self) -> "WhatIfAdjustments":
        return WhatIfAdjustments()

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class AssetBreakdown:
    """Liquid vs non-spendable totals from the holdings view (opaque input)."""

    liquid_assets: float = 0.0
    non_spendable_assets: float = 0.0

    @property
    def total_assets(self) -> float:
        return self.liquid_assets + self.non_spendable_assets

    @property
    def has_assets(self) -> bool:
        return self.liquid_assets > 0 or self.non_spendable_assets > 0

    @classmethod
    def from_positions(
        cls,
        positions: Iterable[Tuple[Optional[str], Any]],
        *,
        non_spendable_categories: Iterable[str] = DEFAULT_NON_SPENDABLE_CATEGORIES,
    ) -> "AssetBreakdown":
        """Bucket (category, market value) pairs into liquid / non-spendable."""
        illiquid = set(non_spendable_categories)
        liquid = 0.0
        non_spendable = 0.0
        for category, value in positions:
            amount = safe_float(value)
            if (category or "Uncategorised") in illiquid:
                non_spendable += amount
            else:
                liquid += amount
        return cls(liquid_assets=liquid, non_spendable_assets=non_spendable)


@dataclass(frozen=True)
class ProjectionContext:
    """Horizon inputs derived by the plan page before composing a request."""

    current_age: Optional[int] = None
    retirement_age: int = DEFAULT_RETIREMENT_AGE
    life_expectancy: int = DEFAULT_LIFE_EXPECTANCY
    monthly_investment: float = 0.0
    display_currency: Optional[str] = None
    portfolio_ids: Tuple[str, ...] = field(default_factory=tuple)
    rental_income_monthly: float = 0.0

    @classmethod
    def from_plan(
        cls,
        plan: Plan,
        overrides: Optional[ScenarioOverrides] = None,
        *,
        display_currency: Optional[str] = None,
        portfolio_ids: Iterable[str] = (),
        rental_income_monthly: float = 0.0,
        today: Optional[dt.date] = None,
    ) -> "ProjectionContext":
        overrides = overrides or ScenarioOverrides()
        working_income = overrides.resolve("working_income_monthly", plan)
        surplus = (
            working_income
            + plan.bonus_monthly
            - plan.taxes_monthly
            - plan.working_expenses_monthly
        )
        allocation = plan.investment_allocation_percent or DEFAULT_INVESTMENT_ALLOCATION
        return cls(
            current_age=plan.current_age(today),
            retirement_age=plan.retirement_age(),
            life_expectancy=plan.life_expectancy or DEFAULT_LIFE_EXPECTANCY,
            monthly_investment=surplus * allocation if surplus > 0 else 0.0,
            display_currency=display_currency,
            portfolio_ids=tuple(portfolio_ids),
            rental_income_monthly=rental_income_monthly,
        )

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["portfolio_ids"] = list(self.portfolio_ids)
        return d
