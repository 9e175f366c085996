import pytest

from composer.adjustments import compose, compose_monte_carlo, compose_simple, effective_values
from core.schema import AssetBreakdown, Plan, ProjectionContext, ScenarioOverrides, WhatIfAdjustments


def test_override_wins_then_what_if_applies(plan, assets, context):
    overrides = ScenarioOverrides(monthly_expenses=4000.0)
    adjustments = WhatIfAdjustments(expenses_percent=80.0)
    req = compose(plan, overrides, adjustments, assets, context)
    assert req.monthly_expenses == 3200


def test_expenses_percent_without_override(plan, assets, context):
    req = compose(plan, ScenarioOverrides(), WhatIfAdjustments(expenses_percent=120.0), assets, context)
    assert req.monthly_expenses == 6000


def test_compose_is_idempotent(plan, assets, context):
    overrides = ScenarioOverrides(pension_monthly=800.0, inflation_rate=0.03)
    adjustments = WhatIfAdjustments(retirement_age_offset=-3, return_rate_offset=1.5)
    first = compose(plan, overrides, adjustments, assets, context)
    second = compose(plan, overrides, adjustments, assets, context)
    assert first == second
    assert first.to_payload() == second.to_payload()


def test_rate_offsets(plan, assets, context):
    adjustments = WhatIfAdjustments(return_rate_offset=1.0, inflation_offset=0.5)
    req = compose(plan, ScenarioOverrides(), adjustments, assets, context)
    assert req.equity_return_rate == pytest.approx(0.09)
    assert req.cash_return_rate == pytest.approx(0.04)
    assert req.inflation_rate == pytest.approx(0.03)
    # housing is not an investable market
    assert req.housing_return_rate == pytest.approx(0.04)


def test_rate_override_then_offset(plan, assets, context):
    overrides = ScenarioOverrides(equity_return_rate=0.06)
    req = compose(plan, overrides, WhatIfAdjustments(return_rate_offset=-2.0), assets, context)
    assert req.equity_return_rate == pytest.approx(0.04)


def test_horizon_and_contribution(plan, assets, context):
    assert context.current_age == 40
    assert context.retirement_age == 60
    assert context.monthly_investment == pytest.approx(4000.0)

    adjustments = WhatIfAdjustments(retirement_age_offset=-5, contribution_percent=50.0)
    req = compose(plan, ScenarioOverrides(), adjustments, assets, context)
    assert req.current_age == 40
    assert req.retirement_age == 55
    assert req.life_expectancy == 90
    assert req.monthly_contribution == 2000


def test_equity_split(plan, assets, context):
    default = compose(plan, ScenarioOverrides(), WhatIfAdjustments(), assets, context)
    assert default.equity_allocation == pytest.approx(0.8)
    assert default.cash_allocation == pytest.approx(0.2)

    req = compose(plan, ScenarioOverrides(), WhatIfAdjustments(equity_percent=60.0), assets, context)
    assert req.equity_allocation == pytest.approx(0.6)
    assert req.cash_allocation == pytest.approx(0.4)


def test_negative_values_are_not_clamped(plan, assets, context):
    overrides = ScenarioOverrides(pension_monthly=-100.0)
    req = compose(plan, overrides, WhatIfAdjustments(), assets, context)
    assert req.pension_monthly == -100.0


def test_assets_only_sent_when_positive(plan, context):
    empty = compose(plan, ScenarioOverrides(), WhatIfAdjustments(), AssetBreakdown(), context)
    payload = empty.to_payload()
    assert "liquidAssets" not in payload
    assert "nonSpendableAssets" not in payload
    assert "rentalIncomeMonthly" not in payload

    loaded = compose(
        plan, ScenarioOverrides(), WhatIfAdjustments(),
        AssetBreakdown(liquid_assets=1000.0), context,
    ).to_payload()
    assert loaded["liquidAssets"] == 1000.0
    assert "nonSpendableAssets" not in loaded


def test_payload_is_camel_case(plan, assets, context):
    payload = compose(plan, ScenarioOverrides(), WhatIfAdjustments(), assets, context).to_payload()
    for key in (
        "currency", "currentAge", "retirementAge", "lifeExpectancy",
        "monthlyContribution", "monthlyExpenses", "cashReturnRate",
        "equityReturnRate", "housingReturnRate", "inflationRate",
        "pensionMonthly", "socialSecurityMonthly", "otherIncomeMonthly",
        "liquidationThreshold", "portfolioIds",
    ):
        assert key in payload
    assert payload["currency"] == "USD"
    assert payload["liquidationThreshold"] == 10.0


def test_monte_carlo_request_is_superset(plan, assets, context):
    overrides = ScenarioOverrides(monthly_expenses=4500.0)
    adjustments = WhatIfAdjustments(expenses_percent=90.0)
    base = compose(plan, overrides, adjustments, assets, context).to_payload()
    mc = compose_monte_carlo(plan, overrides, adjustments, assets, context, iterations=2000).to_payload()
    assert mc.pop("iterations") == 2000
    assert mc == base


def test_simple_request_sends_only_currency_and_assets(plan, assets):
    payload = compose_simple(plan, assets).to_payload()
    assert payload == {
        "currency": "USD",
        "liquidAssets": 500_000.0,
        "nonSpendableAssets": 300_000.0,
    }
    assert compose_simple(plan, assets, "SGD").to_payload()["displayCurrency"] == "SGD"


def test_effective_values_real_return(plan, assets, context):
    values = effective_values(plan, ScenarioOverrides(), WhatIfAdjustments(), assets, context)
    # 0.8 * 0.08 + 0.2 * 0.03
    assert values.blended_return_rate == pytest.approx(0.07)
    assert values.real_return_rate == pytest.approx(0.045)


def test_missing_plan_fields_fall_back():
    plan = Plan.from_dict({"id": "x", "monthlyExpenses": "5,000", "lifeExpectancy": 0, "equityReturnRate": None})
    assert plan.monthly_expenses == 5000.0
    assert plan.life_expectancy == 90
    assert plan.equity_return_rate == 0.08
    assert plan.retirement_age() == 65

    req = compose(plan)
    assert req.retirement_age == 65
    assert req.current_age is None
    assert req.monthly_contribution == 0


def test_retirement_age_from_planning_horizon():
    plan = Plan.from_dict({"id": "x", "lifeExpectancy": 95, "planningHorizonYears": 40})
    assert plan.retirement_age() == 55
    assert ProjectionContext.from_plan(plan).retirement_age == 55


def test_negative_surplus_invests_nothing():
    plan = Plan(id="x", working_income_monthly=3000.0, working_expenses_monthly=4000.0)
    assert ProjectionContext.from_plan(plan).monthly_investment == 0.0
