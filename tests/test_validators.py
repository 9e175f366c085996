from dataclasses import replace

import pytest

from composer.validators import validate_plan
from core.schema import Plan


@pytest.fixture
def clean_plan():
    return Plan(id="p", monthly_expenses=4000.0, year_of_birth=1980)


def test_clean_plan_passes(clean_plan):
    result = validate_plan(clean_plan)
    assert result.is_valid
    assert result.warnings == []
    assert "All checks passed" in result.summary()


def test_missing_birth_year_is_a_warning(clean_plan):
    result = validate_plan(replace(clean_plan, year_of_birth=None))
    assert result.is_valid
    assert any("year_of_birth" in w for w in result.warnings)


def test_negative_expenses_is_an_error(clean_plan):
    result = validate_plan(replace(clean_plan, monthly_expenses=-1.0))
    assert not result.is_valid
    assert "ERRORS (1)" in result.summary()


def test_negative_income_is_a_warning(clean_plan):
    result = validate_plan(replace(clean_plan, pension_monthly=-10.0))
    assert result.is_valid
    assert any("pension_monthly" in w for w in result.warnings)


def test_percent_entered_as_rate(clean_plan):
    result = validate_plan(replace(clean_plan, equity_return_rate=7.0))
    assert any("looks like a percent" in w for w in result.warnings)


def test_allocations_must_sum_to_one(clean_plan):
    result = validate_plan(replace(clean_plan, equity_allocation=0.5, cash_allocation=0.2))
    assert any("Allocations sum to 0.70" in w for w in result.warnings)


def test_horizon_checks(clean_plan):
    result = validate_plan(replace(clean_plan, life_expectancy=0))
    assert not result.is_valid

    result = validate_plan(replace(clean_plan, planning_horizon_years=95))
    assert any("planning_horizon_years" in w for w in result.warnings)


def test_warnings_use_plain_punctuation(clean_plan):
    result = validate_plan(replace(clean_plan, year_of_birth=None, inflation_rate=3.0))
    assert len(result.warnings) >= 2
    assert all("—" not in w for w in result.warnings)
