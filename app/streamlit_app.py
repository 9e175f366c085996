"""
Scenario Projection Engine — What-If Explorer
=============================================

One plan, three layers of edits:
  1. Scenario overrides:  field edits not yet saved to the plan
  2. What-If sliders:     relative adjustments on top of the resolved values
  3. Quick scenarios:     presets stacked onto the sliders

The deterministic projection recalculates when the inputs change (debounced);
Monte Carlo runs only when asked.

Run: streamlit run app/streamlit_app.py
"""

from __future__ import annotations

import json
import logging
import sys
from dataclasses import replace
from pathlib import Path
from typing import Optional

import pandas as pd
import streamlit as st
from dotenv import load_dotenv

try:
    import altair as alt
    _HAS_ALTAIR = True
except Exception:
    alt = None
    _HAS_ALTAIR = False

# ---------------------------------------------------------------------------
# Make project root importable
# ---------------------------------------------------------------------------
PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from core.config import EngineConfig
from core.schema import (
    DEFAULT_LIQUIDATION_THRESHOLD,
    AssetBreakdown,
    Plan,
    ScenarioOverrides,
    WhatIfAdjustments,
)

from composer.scenarios import DEFAULT_QUICK_SCENARIOS, combine_scenarios, scenarios_by_id
from composer.validators import validate_plan

from engine.projection import ProjectionController
from engine.scheduler import DeferredTimer

from montecarlo.controller import MonteCarloController
from montecarlo.summary import (
    depletion_histogram_frame,
    fan_chart_frame,
    success_rate_band,
    terminal_percentiles_frame,
)

from service.client import ProjectionClient

from solver.metrics import required_contribution_table

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Demo plan used when nothing is uploaded
# ---------------------------------------------------------------------------
DEMO_PLAN = {
    "id": "demo",
    "name": "Demo plan",
    "expensesCurrency": "USD",
    "monthlyExpenses": 5000,
    "pensionMonthly": 500,
    "socialSecurityMonthly": 1200,
    "workingIncomeMonthly": 9000,
    "workingExpensesMonthly": 4000,
    "taxesMonthly": 1500,
    "equityReturnRate": 0.08,
    "cashReturnRate": 0.03,
    "housingReturnRate": 0.04,
    "inflationRate": 0.025,
    "equityAllocation": 0.8,
    "cashAllocation": 0.2,
    "yearOfBirth": 1985,
    "lifeExpectancy": 90,
    "planningHorizonYears": 30,
}

SUCCESS_COLORS = {"high": "green", "medium": "orange", "low": "red"}

# Property is sold once liquid assets fall below this percent of their starting value.
LIQUIDATION_SLIDER = {
    "label": "Property liquidation threshold (% of initial liquid assets)",
    "min_value": 0,
    "max_value": 100,
    "value": int(DEFAULT_LIQUIDATION_THRESHOLD),
    "step": 5,
}


# ---------------------------------------------------------------------------
# Formatting / chart helpers
# ---------------------------------------------------------------------------
def _fmt_money(val, currency=""):
    if val is None:
        return "N/A"
    return f"{currency}{val:,.0f}"


def _fmt_pct(val):
    return "N/A" if val is None else f"{val:.1f}%"


def _fmt_years(val):
    return "Not reachable" if val is None else f"{val:.1f} yrs"


def _plot_balance(df, *, title, height=300):
    if not isinstance(df, pd.DataFrame) or len(df) == 0:
        st.info("No projection yet.")
        return
    ys = [c for c in ("ending_balance", "total_wealth") if c in df.columns]
    if not _HAS_ALTAIR:
        st.markdown(f"**{title}**")
        st.line_chart(df.set_index("age")[ys])
        return
    long = df.melt(id_vars=["age"], value_vars=ys, var_name="series", value_name="value")
    chart = (
        alt.Chart(long).mark_line()
        .encode(
            x=alt.X("age:Q", title="Age"),
            y=alt.Y("value:Q", title="Balance", axis=alt.Axis(format=",.0f")),
            color=alt.Color("series:N", title="Series"),
        )
        .properties(title=title, height=height)
    )
    st.altair_chart(chart, use_container_width=True)


def _plot_fan(df, *, title, height=320):
    if len(df) == 0:
        return
    x = "age" if df["age"].notna().all() else "year"
    if not _HAS_ALTAIR:
        st.markdown(f"**{title}**")
        cols = [c for c in ("p5", "p50", "p95", "deterministic") if c in df.columns]
        st.line_chart(df.set_index(x)[cols])
        return
    outer = (
        alt.Chart(df).mark_area(opacity=0.15, color="steelblue")
        .encode(x=alt.X(f"{x}:Q", title=x.title()), y=alt.Y("p5:Q", title="Balance"), y2="p95:Q")
    )
    inner = (
        alt.Chart(df).mark_area(opacity=0.3, color="steelblue")
        .encode(x=alt.X(f"{x}:Q"), y=alt.Y("p25:Q"), y2="p75:Q")
    )
    median = (
        alt.Chart(df).mark_line(color="steelblue", strokeWidth=2)
        .encode(x=alt.X(f"{x}:Q"), y=alt.Y("p50:Q"))
    )
    layers = outer + inner + median
    if "deterministic" in df.columns:
        layers = layers + (
            alt.Chart(df).mark_line(color="black", strokeDash=[4, 4])
            .encode(x=alt.X(f"{x}:Q"), y=alt.Y("deterministic:Q"))
        )
    st.altair_chart(layers.properties(title=title, height=height), use_container_width=True)


def _plot_depletion(df, *, title, height=260):
    if len(df) == 0:
        st.caption("No simulated path ran out of money.")
        return
    if not _HAS_ALTAIR:
        st.markdown(f"**{title}**")
        st.bar_chart(df.set_index("age")["count"])
        return
    chart = (
        alt.Chart(df).mark_bar(opacity=0.8, color="indianred")
        .encode(x=alt.X("age:O", title="Depletion age"), y=alt.Y("count:Q", title="Paths"))
        .properties(title=title, height=height)
    )
    st.altair_chart(chart, use_container_width=True)


# ---------------------------------------------------------------------------
# Session state
# ---------------------------------------------------------------------------
def _controllers(config: EngineConfig):
    if "projection" not in st.session_state:
        client = ProjectionClient.from_config(config)
        projection = ProjectionController(client, config, timer_factory=DeferredTimer)
        st.session_state["projection"] = projection
        st.session_state["monte_carlo"] = MonteCarloController(client, projection, config)
    return st.session_state["projection"], st.session_state["monte_carlo"]


def _load_plan(uploaded) -> Optional[Plan]:
    if uploaded is None:
        return Plan.from_dict(DEMO_PLAN)
    try:
        payload = json.load(uploaded)
    except ValueError as exc:
        logger.warning("Rejected plan upload %s: %s", getattr(uploaded, "name", "?"), exc)
        st.error(f"Could not read plan JSON: {exc}")
        return None
    # accept either a bare plan or the service's {"data": plan} envelope
    if isinstance(payload, dict) and isinstance(payload.get("data"), dict):
        payload = payload["data"]
    return Plan.from_dict(payload)


def _override_inputs(plan: Plan) -> ScenarioOverrides:
    edits = {}
    with st.expander("Scenario overrides (not saved to plan)"):
        c1, c2 = st.columns(2)
        money = [
            ("monthly_expenses", "Monthly expenses"),
            ("pension_monthly", "Pension / month"),
            ("social_security_monthly", "Social security / month"),
            ("other_income_monthly", "Other income / month"),
            ("working_income_monthly", "Working income / month"),
        ]
        for i, (name, label) in enumerate(money):
            col = c1 if i % 2 == 0 else c2
            value = col.number_input(label, value=float(getattr(plan, name)), step=100.0, key=f"ov_{name}")
            if value != getattr(plan, name):
                edits[name] = value
        rates = [
            ("equity_return_rate", "Equity return (%)"),
            ("cash_return_rate", "Cash return (%)"),
            ("inflation_rate", "Inflation (%)"),
        ]
        for i, (name, label) in enumerate(rates):
            col = c1 if i % 2 == 0 else c2
            pct = col.number_input(label, value=getattr(plan, name) * 100.0, step=0.1, format="%.2f", key=f"ov_{name}")
            if abs(pct / 100.0 - getattr(plan, name)) > 1e-9:
                edits[name] = pct / 100.0
    return ScenarioOverrides().with_values(**edits)


def _what_if_inputs(config: EngineConfig) -> WhatIfAdjustments:
    st.subheader("What-If")
    c1, c2, c3 = st.columns(3)
    with c1:
        retire = st.slider("Retirement age shift (years)", -10, 10, 0, 1)
        expenses = st.slider("Expenses (% of plan)", 50, 150, 100, 5)
    with c2:
        returns = st.slider("Return rate shift (pts)", -5.0, 5.0, 0.0, 0.5)
        inflation = st.slider("Inflation shift (pts)", -2.0, 5.0, 0.0, 0.5)
    with c3:
        contribution = st.slider("Contributions (% of plan)", 0, 200, 100, 5)
        use_equity = st.checkbox("Override equity split", value=False)
        equity = st.slider("Equity (% of investable)", 0, 100, 80, 5, disabled=not use_equity)
    threshold = st.slider(**LIQUIDATION_SLIDER)

    selected = st.multiselect(
        "Quick scenarios",
        options=[s.id for s in DEFAULT_QUICK_SCENARIOS],
        format_func=lambda sid: scenarios_by_id()[sid].name,
    )
    sliders = WhatIfAdjustments(
        retirement_age_offset=retire,
        expenses_percent=float(expenses),
        return_rate_offset=returns,
        inflation_offset=inflation,
        contribution_percent=float(contribution),
        equity_percent=float(equity) if use_equity else None,
        liquidation_threshold=float(threshold),
    )
    lookup = scenarios_by_id()
    return combine_scenarios(sliders, [lookup[sid] for sid in selected])


def _display_fi(projection: ProjectionController, currency: str):
    snap = projection.fi_snapshot()
    if snap is None:
        return
    st.subheader("Financial Independence")
    k1, k2, k3, k4, k5 = st.columns(5)
    k1.metric("FI Number", _fmt_money(snap.fi_number, currency))
    k2.metric("FI Progress", _fmt_pct(snap.fi_progress))
    k3.metric("Gap to FI", _fmt_money(snap.gap_to_fi, currency))
    k4.metric("Years to FI", _fmt_years(snap.years_to_fi))
    k5.metric("Coast FI", "Yes" if snap.is_coast_fire else "No")
    st.progress(snap.fi_progress_display / 100.0)
    if snap.real_return_below_swr:
        st.warning(
            f"Real return {snap.real_return_rate:.2%} is below the "
            f"{projection.config.safe_withdrawal_rate:.0%} withdrawal rate."
        )

    ctx = projection.context
    if ctx.current_age is not None:
        with st.expander("Target-age explorer"):
            table = required_contribution_table(
                liquid_assets=projection.assets.liquid_assets if projection.assets else 0.0,
                fi_number=snap.fi_number,
                current_age=ctx.current_age,
                real_return_rate=snap.real_return_rate,
                working_income_monthly=projection.overrides.resolve(
                    "working_income_monthly", projection.plan
                ),
            )
            st.dataframe(table, use_container_width=True, hide_index=True)

    with st.expander("All FI metrics"):
        st.dataframe(snap.to_dataframe(), use_container_width=True, hide_index=True)


def _display_projection(projection: ProjectionController):
    result = projection.projection
    if projection.error:
        st.error(f"Projection failed: {projection.error}")
    if result is None:
        st.info("Waiting for the first projection…")
        return
    df = pd.DataFrame([y.model_dump() for y in result.yearly_projections])
    if "age" in df.columns and df["age"].isna().any():
        df["age"] = df["year"]
    _plot_balance(df, title="Projected balance")
    c1, c2 = st.columns(2)
    c1.metric("Runway", _fmt_years(result.runway_years))
    c2.metric("FI achieved at", str(result.fi_achievement_age) if result.fi_achievement_age else "N/A")


def _display_monte_carlo(projection: ProjectionController, mc: MonteCarloController, config: EngineConfig):
    st.subheader("Monte Carlo")
    c1, c2 = st.columns([1, 3])
    with c1:
        iterations = st.selectbox(
            "Iterations",
            options=list(mc.iteration_options),
            index=list(mc.iteration_options).index(config.default_iterations),
        )
        clicked = st.button("Run simulation", disabled=mc.is_running or not projection.is_ready)
    if clicked:
        with st.spinner(f"Simulating {iterations:,} paths..."):
            mc.run(iterations)

    if mc.error:
        st.error(f"Simulation failed: {mc.error}")
    result = mc.result
    if result is None:
        return

    band = success_rate_band(result.success_rate)
    with c2:
        st.markdown(
            f"### :{SUCCESS_COLORS[band]}[{result.success_rate:.1f}% success] "
            f"over {result.iterations:,} paths"
        )
        st.caption(
            f"Blended return {result.parameters.blended_return_rate:.2%} "
            f"± {result.parameters.blended_volatility:.2%}"
        )
    _plot_fan(fan_chart_frame(result, projection.projection), title="Balance percentiles")
    left, right = st.columns(2)
    with left:
        _plot_depletion(depletion_histogram_frame(result), title="Depletion age")
    with right:
        tp = terminal_percentiles_frame(result)
        tp["balance"] = tp["balance"].map(lambda v: f"{v:,.0f}")
        st.dataframe(tp[["percentile", "balance"]], use_container_width=True, hide_index=True)


# ═══════════════════════════════════════════════════════════════════════════
# PAGE
# ═══════════════════════════════════════════════════════════════════════════
def render():
    load_dotenv()
    logging.basicConfig(
        level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )
    config = EngineConfig.from_env()

    st.set_page_config(page_title="Scenario Projection Engine", layout="wide")
    st.title("What-If Explorer")
    st.caption("Retirement projection: plan → overrides → What-If → projection service")

    projection, mc = _controllers(config)

    with st.sidebar:
        st.header("Plan")
        uploaded = st.file_uploader("Plan JSON", type=["json"])
        plan = _load_plan(uploaded)
        if plan is None:
            st.stop()
        display_currency = st.text_input("Display currency", value=plan.expenses_currency)

        st.header("Assets")
        liquid = st.number_input("Liquid assets", min_value=0.0, value=250_000.0, step=10_000.0)
        non_spendable = st.number_input("Property / non-spendable", min_value=0.0, value=0.0, step=10_000.0)

        if st.button("Recalculate now"):
            # back to IDLE: the set_state below calculates immediately
            projection.reset()

    vr = validate_plan(plan)
    if not vr.is_valid:
        st.error("Plan validation failed:\n" + vr.summary())
    elif vr.warnings:
        with st.expander(f"Plan warnings ({len(vr.warnings)})"):
            st.text(vr.summary())

    overrides = _override_inputs(plan)
    adjustments = _what_if_inputs(config)

    # the plan rebuilds the context; carry the display currency into it
    projection.context = replace(projection.context, display_currency=display_currency or None)
    projection.set_state(
        plan=plan,
        overrides=overrides,
        adjustments=adjustments,
        assets=AssetBreakdown(liquid_assets=liquid, non_spendable_assets=non_spendable),
    )
    # no clock between reruns: settle any pending debounce now
    projection.flush()

    _display_fi(projection, f"{display_currency} " if display_currency else "")
    st.subheader("Projection")
    _display_projection(projection)
    _display_monte_carlo(projection, mc, config)


def main():
    """Console entry point: launch the page under ``streamlit run``."""
    from streamlit.web import cli as stcli

    sys.argv = ["streamlit", "run", str(Path(__file__).resolve())]
    sys.exit(stcli.main())


if __name__ == "__main__":
    render()
