"""Tests for the multi-loan payoff projector."""

from __future__ import annotations

import logging
from datetime import date

import pytest
from hypothesis import given, strategies as st

from loan_tracker.annuity import payment_from_principal
from loan_tracker.data_models import LoanTerms
from loan_tracker.engine import replay_balance
from loan_tracker.errors import InvalidParameters
from loan_tracker.metrics import monthly_equivalent
from loan_tracker.projection import debt_free_date, project_portfolio, years_to_debt_free
from loan_tracker.utils import add_months

TODAY = date(2024, 2, 15)


def _loan(name, principal, rate, term, payment=None, start=TODAY, frequency="monthly"):
    if payment is None:
        payment = payment_from_principal(principal, rate, term)
    return LoanTerms(name, principal, rate, term, payment, frequency, start)


# ---------------------------------------------------------------------
# Deterministic scenarios
# ---------------------------------------------------------------------


def test_no_loans_is_debt_free_today():
    points = project_portfolio([], 4_000, today=TODAY)
    assert len(points) == 1
    assert points[0].total_debt == 0
    assert points[0].net_income == 4_000
    assert debt_free_date(points) == TODAY
    assert years_to_debt_free(points, TODAY) == 0


def test_two_loans_free_up_income_when_retired():
    car = _loan("Car", 12_000, 6, 12)
    home = _loan("Home", 24_000, 6, 24)
    points = project_portfolio([car, home], 5_000, today=TODAY)

    assert points[0].debt_by_loan_name == {"Car": 12_000, "Home": 24_000}
    assert points[11].debt_by_loan_name["Car"] > 0
    assert points[12].date == add_months(TODAY, 12)
    assert points[12].debt_by_loan_name["Car"] == 0

    # 2025-01 is the only January boundary before the car is paid off
    assert points[10].net_income == pytest.approx(5_000)
    assert points[11].net_income == pytest.approx(5_000 * 1.02)
    assert points[12].net_income == pytest.approx(points[11].net_income + car.regular_payment)
    assert points[13].net_income == pytest.approx(points[12].net_income)

    assert len(points) == 25
    assert points[-1].total_debt == 0
    assert debt_free_date(points) == add_months(TODAY, 24)
    assert points[24].net_income == pytest.approx(
        (5_000 * 1.02 + car.regular_payment) * 1.02 + home.regular_payment
    )


def test_total_debt_is_sum_and_non_increasing():
    loans = [_loan("A", 8_000, 4, 18), _loan("B", 30_000, 7.5, 60), _loan("C", 2_500, 0, 10)]
    points = project_portfolio(loans, 3_000, today=TODAY)
    for point in points:
        assert point.total_debt == pytest.approx(sum(point.debt_by_loan_name.values()))
    debts = [p.total_debt for p in points]
    assert all(later <= earlier for earlier, later in zip(debts, debts[1:]))
    assert debts[-1] == 0


def test_started_loan_opens_at_replayed_balance():
    start = add_months(TODAY, -10)
    loan = _loan("Van", 15_000, 5, 48, payment=400, start=start)
    points = project_portfolio([loan], 3_000, today=TODAY)
    assert points[0].debt_by_loan_name["Van"] == pytest.approx(replay_balance(15_000, 5, 400, 10))


def test_biweekly_payment_is_normalized():
    start = add_months(TODAY, -6)
    loan = _loan("Bike", 5_000, 3, 36, payment=80, start=start, frequency="biweekly")
    points = project_portfolio([loan], 3_000, today=TODAY)
    monthly = monthly_equivalent(80, "biweekly")
    assert points[0].debt_by_loan_name["Bike"] == pytest.approx(replay_balance(5_000, 3, monthly, 6))


def test_future_loan_is_left_out(caplog):
    later = _loan("Later", 10_000, 5, 24, start=add_months(TODAY, 3))
    now = _loan("Now", 1_000, 5, 6)
    with caplog.at_level(logging.WARNING, logger="loan_tracker.projection"):
        points = project_portfolio([later, now], 2_000, today=TODAY)
    assert "Later" not in points[0].debt_by_loan_name
    assert all("Later" not in p.debt_by_loan_name for p in points)
    assert "left out" in caplog.text


def test_paid_off_loan_is_left_out():
    old = _loan("Old", 1_000, 5, 6, start=add_months(TODAY, -12))
    points = project_portfolio([old], 2_000, today=TODAY)
    assert len(points) == 1
    assert points[0].debt_by_loan_name == {}


def test_under_amortizing_loan_runs_to_horizon(caplog):
    stuck = _loan("Card", 10_000, 24, 60, payment=150)
    with caplog.at_level(logging.WARNING, logger="loan_tracker.projection"):
        points = project_portfolio([stuck], 2_000, horizon_years=5, today=TODAY)
    assert len(points) == 5 * 12 + 1
    assert points[-1].date == add_months(TODAY, 60)
    assert points[-1].total_debt > 10_000
    assert debt_free_date(points) is None
    assert years_to_debt_free(points, TODAY) is None
    assert "does not cover monthly interest" in caplog.text


def test_zero_income_growth():
    points = project_portfolio([_loan("A", 6_000, 5, 24)], 2_500, today=TODAY, income_growth=0)
    assert points[11].net_income == 2_500


def test_duplicate_names_rejected():
    with pytest.raises(InvalidParameters):
        project_portfolio([_loan("Car", 1_000, 5, 6), _loan("Car", 2_000, 5, 6)], 2_000, today=TODAY)


def test_horizon_must_be_positive():
    with pytest.raises(InvalidParameters):
        project_portfolio([], 2_000, horizon_years=0, today=TODAY)


def test_years_to_debt_free():
    points = project_portfolio([_loan("Car", 12_000, 6, 12)], 5_000, today=TODAY)
    assert years_to_debt_free(points, TODAY) == 1.0


# ---------------------------------------------------------------------
# Property-based tests
# ---------------------------------------------------------------------


@given(
    principal=st.floats(min_value=500, max_value=500_000),
    rate=st.floats(min_value=0, max_value=30),
    term=st.integers(min_value=1, max_value=600),
    payment=st.floats(min_value=1, max_value=20_000),
    horizon=st.integers(min_value=1, max_value=40),
)
def test_projection_always_terminates(principal, rate, term, payment, horizon):
    loan = _loan("L", principal, rate, term, payment=payment)
    points = project_portfolio([loan], 3_000, horizon_years=horizon, today=TODAY)
    assert len(points) <= horizon * 12 + 1
    assert points[-1].total_debt == 0 or points[-1].date == add_months(TODAY, horizon * 12)
