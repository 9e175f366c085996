import datetime as dt
import sys
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from core.schema import AssetBreakdown, Plan, ProjectionContext  # noqa: E402
from service.client import ProjectionServiceError  # noqa: E402
from service.models import MonteCarloResult, RetirementProjection  # noqa: E402

TODAY = dt.date(2025, 6, 1)


@pytest.fixture
def plan():
    return Plan(
        id="plan-1",
        name="Test plan",
        expenses_currency="USD",
        monthly_expenses=5000.0,
        pension_monthly=500.0,
        working_income_monthly=10000.0,
        working_expenses_monthly=4000.0,
        taxes_monthly=1000.0,
        year_of_birth=1985,
        life_expectancy=90,
        planning_horizon_years=30,
    )


@pytest.fixture
def context(plan):
    # age 40, retire at 60, invest (10000 - 1000 - 4000) * 0.8 = 4000 / month
    return ProjectionContext.from_plan(plan, today=TODAY)


@pytest.fixture
def assets():
    return AssetBreakdown(liquid_assets=500_000.0, non_spendable_assets=300_000.0)


class ManualTimer:
    """Timer factory double: nothing fires until the test says so."""

    class Handle:
        def __init__(self, delay, callback):
            self.delay = delay
            self.callback = callback
            self.cancelled = False

        def cancel(self):
            self.cancelled = True

    def __init__(self):
        self.handles = []

    def __call__(self, delay, callback):
        handle = self.Handle(delay, callback)
        self.handles.append(handle)
        return handle

    @property
    def active(self):
        return [h for h in self.handles if not h.cancelled]

    def fire(self):
        (handle,) = self.active
        handle.cancelled = True
        handle.callback()


@pytest.fixture
def timer():
    return ManualTimer()


class FakeClient:
    """Stands in for ProjectionClient; records requests, never touches the network."""

    def __init__(self):
        self.projection_requests = []
        self.monte_carlo_requests = []
        self.fail = None
        self.on_fetch = None
        self.counter = 0

    def fetch_projection(self, plan_id, request):
        self.projection_requests.append((plan_id, request))
        self.counter += 1
        marker = f"call-{self.counter}"
        if self.on_fetch is not None:
            self.on_fetch()
        if self.fail is not None:
            raise self.fail
        return RetirementProjection(plan_id=plan_id, as_of_date=marker)

    def run_monte_carlo(self, plan_id, request):
        self.monte_carlo_requests.append((plan_id, request))
        if self.on_fetch is not None:
            self.on_fetch()
        if self.fail is not None:
            raise self.fail
        return MonteCarloResult(iterations=request.iterations, success_rate=87.5)


@pytest.fixture
def client():
    return FakeClient()


@pytest.fixture
def service_error():
    return ProjectionServiceError("Failed to fetch projection: HTTP 503", status_code=503)
