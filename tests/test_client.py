import pytest
import requests

from composer.adjustments import compose, compose_monte_carlo
from core.config import EngineConfig
from service.client import ProjectionClient, ProjectionServiceError

_NOT_JSON = object()


class FakeResponse:
    def __init__(self, status_code=200, body=None):
        self.status_code = status_code
        self._body = body

    @property
    def ok(self):
        return 200 <= self.status_code < 300

    def json(self):
        if self._body is _NOT_JSON:
            raise ValueError("Expecting value")
        return self._body


class FakeSession:
    def __init__(self, response=None, exc=None):
        self.response = response
        self.exc = exc
        self.posts = []

    def post(self, url, json=None, timeout=None):
        self.posts.append({"url": url, "json": json, "timeout": timeout})
        if self.exc is not None:
            raise self.exc
        return self.response


@pytest.fixture
def request_body(plan, assets, context):
    return compose(plan, assets=assets, context=context)


def _client(session):
    return ProjectionClient("http://svc/api/independence/", timeout=5.0, session=session)


def test_fetch_projection_posts_camel_case(request_body):
    session = FakeSession(FakeResponse(200, {
        "data": {
            "planId": "plan-1",
            "yearlyProjections": [
                {"year": 2025, "age": 40, "startingBalance": 500000, "endingBalance": 540000},
            ],
            "fiMetrics": {"fiNumber": 1350000, "fiProgress": 37.0, "isCoastFire": True},
            "fiAchievementAge": 52,
            "somethingNew": "kept",
        }
    }))
    result = _client(session).fetch_projection("plan-1", request_body)

    post = session.posts[0]
    assert post["url"] == "http://svc/api/independence/projection/plan-1"
    assert post["timeout"] == 5.0
    assert post["json"]["monthlyExpenses"] == 5000
    assert "liquidAssets" in post["json"]

    assert result.plan_id == "plan-1"
    assert result.yearly_projections[0].ending_balance == 540000
    assert result.fi_metrics.fi_number == 1350000
    assert result.fi_metrics.is_coast_fire is True
    assert result.fi_achievement_age == 52


def test_run_monte_carlo(plan, assets, context):
    body = compose_monte_carlo(plan, assets=assets, context=context, iterations=500)
    session = FakeSession(FakeResponse(200, {
        "data": {
            "iterations": 500,
            "successRate": 82.4,
            "yearlyBands": [{"year": 2025, "age": 40, "p5": 1, "p50": 2, "p95": 3}],
            "depletionAgeDistribution": {"histogram": {"85": 12}, "depletedCount": 12, "survivedCount": 488},
        }
    }))
    result = _client(session).run_monte_carlo("plan-1", body)

    assert session.posts[0]["url"].endswith("/projection/plan-1/monte-carlo")
    assert session.posts[0]["json"]["iterations"] == 500
    assert result.success_rate == pytest.approx(82.4)
    assert result.yearly_bands[0].p50 == 2
    assert result.depletion_age_distribution.histogram == {"85": 12}


def test_http_error_carries_status(request_body):
    session = FakeSession(FakeResponse(500, {"message": "boom"}))
    with pytest.raises(ProjectionServiceError) as info:
        _client(session).fetch_projection("plan-1", request_body)
    assert info.value.status_code == 500


def test_transport_error_is_wrapped(request_body):
    session = FakeSession(exc=requests.ConnectionError("refused"))
    with pytest.raises(ProjectionServiceError) as info:
        _client(session).fetch_projection("plan-1", request_body)
    assert info.value.status_code is None
    assert isinstance(info.value.__cause__, requests.ConnectionError)


@pytest.mark.parametrize("body", [_NOT_JSON, {"error": "no data"}, ["not", "an", "envelope"]])
def test_unreadable_body(request_body, body):
    session = FakeSession(FakeResponse(200, body))
    with pytest.raises(ProjectionServiceError):
        _client(session).fetch_projection("plan-1", request_body)


def test_invalid_payload(plan, assets, context):
    body = compose_monte_carlo(plan, assets=assets, context=context, iterations=1000)
    session = FakeSession(FakeResponse(200, {"data": {"successRate": "high"}}))
    with pytest.raises(ProjectionServiceError) as info:
        _client(session).run_monte_carlo("plan-1", body)
    assert info.value.status_code == 200


def test_from_config():
    config = EngineConfig(api_base_url="http://x/api", request_timeout=12.0)
    client = ProjectionClient.from_config(config, session=FakeSession())
    assert client.base_url == "http://x/api"
    assert client.timeout == 12.0
