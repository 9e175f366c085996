import pytest

from composer.adjustments import compose
from core.config import EngineConfig
from core.schema import WhatIfAdjustments
from engine.projection import ProjectionController
from montecarlo.controller import ITERATION_OPTIONS, MonteCarloController
from montecarlo.summary import (
    depletion_histogram_frame,
    fan_chart_frame,
    success_rate_band,
    terminal_percentiles_frame,
)
from service.models import MonteCarloResult, RetirementProjection


@pytest.fixture
def inputs(client, timer):
    return ProjectionController(client, EngineConfig(), timer_factory=timer)


@pytest.fixture
def mc(client, inputs):
    return MonteCarloController(client, inputs)


def _load(inputs, plan, assets, context):
    inputs.set_state(plan=plan, assets=assets, context=context)


class TestController:
    def test_iteration_menu(self, mc):
        assert ITERATION_OPTIONS == (500, 1000, 2000, 5000)
        with pytest.raises(ValueError):
            mc.run(750)

    def test_not_ready_returns_none(self, mc, client, inputs, plan):
        inputs.set_state(plan=plan)
        assert mc.run(1000) is None
        assert client.monte_carlo_requests == []

    def test_never_fires_on_input_changes(self, mc, client, inputs, plan, assets, context):
        _load(inputs, plan, assets, context)
        inputs.set_state(adjustments=WhatIfAdjustments(expenses_percent=80.0))
        inputs.flush()
        assert client.monte_carlo_requests == []
        assert mc.result is None

    def test_run_uses_composer_rules(self, mc, client, inputs, plan, assets, context):
        _load(inputs, plan, assets, context)
        adjustments = WhatIfAdjustments(expenses_percent=80.0, return_rate_offset=-1.0)
        inputs.set_state(adjustments=adjustments)

        result = mc.run(2000)

        assert result.iterations == 2000
        assert mc.result is result
        assert mc.error is None
        plan_id, request = client.monte_carlo_requests[0]
        assert plan_id == "plan-1"
        payload = request.to_payload()
        assert payload.pop("iterations") == 2000
        assert payload == compose(plan, inputs.overrides, adjustments, assets, context).to_payload()

    def test_is_running_during_call(self, mc, client, inputs, plan, assets, context):
        _load(inputs, plan, assets, context)
        seen = []
        client.on_fetch = lambda: seen.append(mc.is_running)
        mc.run(500)
        assert seen == [True]
        assert mc.is_running is False

    def test_failure_keeps_previous_result(self, mc, client, inputs, plan, assets, context, service_error):
        _load(inputs, plan, assets, context)
        first = mc.run(1000)
        client.fail = service_error

        assert mc.run(1000) is None
        assert mc.result is first
        assert "503" in mc.error
        assert mc.is_running is False

    def test_clear(self, mc, inputs, plan, assets, context):
        _load(inputs, plan, assets, context)
        mc.run(500)
        mc.clear()
        assert mc.result is None


@pytest.fixture
def result():
    return MonteCarloResult.model_validate({
        "iterations": 100,
        "successRate": 85.0,
        "yearlyBands": [
            {"year": 2026, "age": 41, "p5": 90, "p10": 95, "p25": 100, "p50": 110, "p75": 120, "p90": 130, "p95": 140},
            {"year": 2025, "age": 40, "p5": 80, "p10": 85, "p25": 90, "p50": 100, "p75": 105, "p90": 110, "p95": 115},
        ],
        "terminalBalancePercentiles": {"p5": 0, "p25": 1000, "p50": 5000, "p75": 9000, "p95": 20000},
        "depletionAgeDistribution": {
            "histogram": {"75": 10, "70": 5, "unknown": 1},
            "survivedCount": 85,
            "depletedCount": 15,
        },
    })


class TestSummary:
    def test_fan_chart_sorted_by_year(self, result):
        df = fan_chart_frame(result)
        assert df["year"].tolist() == [2025, 2026]
        assert list(df.columns) == ["year", "age", "p5", "p10", "p25", "p50", "p75", "p90", "p95"]

    def test_fan_chart_with_deterministic_overlay(self, result):
        projection = RetirementProjection.model_validate({
            "yearlyProjections": [{"year": 2025, "endingBalance": 101}],
        })
        df = fan_chart_frame(result, projection)
        assert df.loc[df["year"] == 2025, "deterministic"].item() == 101
        assert df.loc[df["year"] == 2026, "deterministic"].isna().all()

    def test_depletion_histogram(self, result):
        df = depletion_histogram_frame(result)
        assert df["age"].tolist() == [70, 75]
        assert df["count"].tolist() == [5, 10]
        assert df["pct_of_paths"].tolist() == pytest.approx([5.0, 10.0])
        assert df["cumulative_pct"].tolist() == pytest.approx([5.0, 15.0])

    def test_terminal_percentiles(self, result):
        df = terminal_percentiles_frame(result)
        assert df["percentile"].tolist() == ["p5", "p25", "p50", "p75", "p95"]
        assert df["balance"].tolist() == [0.0, 1000.0, 5000.0, 9000.0, 20000.0]

    @pytest.mark.parametrize(
        "rate, band",
        [(95.0, "high"), (80.0, "high"), (79.9, "medium"), (50.0, "medium"), (49.9, "low"), (None, "low")],
    )
    def test_success_rate_band(self, rate, band):
        assert success_rate_band(rate) == band
