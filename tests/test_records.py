"""Tests for record conversion, data model validation and settings."""

from __future__ import annotations

from datetime import date

import pytest

from loan_tracker.config import DEFAULT_HORIZON_YEARS, load_settings
from loan_tracker.data_models import (
    ExtraPayment,
    LoanKind,
    LoanTerms,
    MileageUpdate,
    PaymentFrequency,
    TransactionKind,
)
from loan_tracker.errors import InvalidParameters
from loan_tracker.records import (
    loan_field,
    loan_from_record,
    loan_to_record,
    mileage_update_from_record,
    savings_goal_from_record,
    savings_goal_to_record,
    serialize_projection,
    serialize_schedule,
    transaction_from_record,
    transaction_to_record,
)
from loan_tracker.engine import build_schedule
from loan_tracker.projection import project_portfolio
from loan_tracker.utils import add_months, months_between, parse_amount, parse_date

STORED = {
    "name": "Car",
    "type": "lease",
    "principal": 18_000,
    "interest_rate": 3.9,
    "term_months": 36,
    "start_date": "2024-03-01",
    "regular_payment": 420,
    "payment_frequency": "biweekly",
    "residual_value": 9_000,
}


def test_loan_from_database_record():
    loan = loan_from_record(STORED)
    assert loan.name == "Car"
    assert loan.kind is LoanKind.LEASE
    assert loan.annual_rate_percent == 3.9
    assert loan.payment_frequency is PaymentFrequency.BIWEEKLY
    assert loan.start_date == date(2024, 3, 1)
    assert loan.residual_value == 9_000
    assert loan.extra_payments == ()


def test_loan_from_display_cased_record():
    record = {
        "name": "Car",
        "principal": "18,000",
        "interestRate": 3.9,
        "termMonths": 36,
        "startDate": "2024-03-01",
        "regularPayment": 420,
        "paymentFrequency": "Monthly",
        "extraPayments": [{"amount": 500, "date": "2024-06-01"}],
    }
    loan = loan_from_record(record)
    assert loan.principal == 18_000
    assert loan.kind is LoanKind.LOAN
    assert loan.payment_frequency is PaymentFrequency.MONTHLY
    assert loan.extra_payments == (ExtraPayment(500, date(2024, 6, 1)),)


def test_loan_record_round_trip():
    loan = loan_from_record(STORED)
    assert loan_from_record(loan_to_record(loan)) == loan


@pytest.mark.parametrize(
    "field, value",
    [
        ("principal", 0),
        ("interest_rate", -1),
        ("term_months", 0),
        ("regular_payment", -5),
        ("payment_frequency", "weekly"),
        ("start_date", "soon"),
        ("type", "mortgage"),
    ],
)
def test_invalid_loan_record(field, value):
    record = dict(STORED, **{field: value})
    with pytest.raises(InvalidParameters):
        loan_from_record(record)


def test_missing_field():
    record = dict(STORED)
    del record["term_months"]
    with pytest.raises(InvalidParameters, match="term_months"):
        loan_from_record(record)


@pytest.mark.parametrize("term", [12.7, "12.7", True])
def test_fractional_term_is_rejected(term):
    with pytest.raises(InvalidParameters, match="Term in months"):
        loan_from_record(dict(STORED, term_months=term))


@pytest.mark.parametrize("term", [36, 36.0, "36"])
def test_whole_term_is_accepted(term):
    assert loan_from_record(dict(STORED, term_months=term)).term_months == 36


def test_loan_field_reads_any_accepted_key():
    assert loan_field({"termMonths": 24}, "term_months") == 24
    assert loan_field({"interest_rate": "", "annual_rate_percent": 4.5}, "annual_rate_percent") == 4.5
    assert loan_field({}, "residual_value", required=False) is None
    with pytest.raises(InvalidParameters, match="regular_payment"):
        loan_field({"regularPayment": None}, "regular_payment")


def test_lease_mileage_limit():
    loan = loan_from_record(dict(STORED, mileageLimit="45k"))
    assert loan.mileage_limit == 45_000
    assert loan_to_record(loan)["mileage_limit"] == 45_000
    with pytest.raises(InvalidParameters):
        loan_from_record(dict(STORED, mileage_limit=0))


def test_savings_goal_record():
    goal = savings_goal_from_record({"name": "Holiday", "targetAmount": "2,000", "deadline": "2025-06-01"})
    assert goal.current_amount == 0
    assert goal.deadline == date(2025, 6, 1)
    record = savings_goal_to_record(goal)
    assert record["deadline"] == "2025-06-01"
    assert record["progress_percent"] == 0
    assert savings_goal_from_record({"name": "Car", "target_amount": 400, "current_amount": 500}).progress_percent == 125


@pytest.mark.parametrize(
    "record",
    [
        {"target_amount": 100},
        {"name": "", "target_amount": 100},
        {"name": "Fund"},
        {"name": "Fund", "target_amount": 0},
        {"name": "Fund", "target_amount": 100, "current_amount": -1},
        {"name": "Fund", "target_amount": "lots"},
        {"name": "Fund", "target_amount": 100, "deadline": "someday"},
    ],
)
def test_invalid_savings_goal_record(record):
    with pytest.raises(InvalidParameters):
        savings_goal_from_record(record)


def test_mileage_update_record():
    update = mileage_update_from_record({"mileage": "12,500", "date": "2024-05-01"})
    assert update == MileageUpdate(12_500, date(2024, 5, 1))
    assert mileage_update_from_record({"mileage": 10}, today=date(2024, 6, 2)).date == date(2024, 6, 2)
    for record in ({}, {"mileage": -5}, {"mileage": None}, {"mileage": 5, "date": "later"}):
        with pytest.raises(InvalidParameters):
            mileage_update_from_record(record)


def test_transaction_to_record():
    transaction = transaction_from_record(
        {"type": "expense", "amount": 80, "category": "Food", "description": "Groceries", "date": "2024-05-02"}
    )
    assert transaction_to_record(transaction) == {
        "type": "expense",
        "amount": 80.0,
        "category": "Food",
        "description": "Groceries",
        "date": "2024-05-02",
    }


def test_loan_terms_validate_directly():
    with pytest.raises(InvalidParameters):
        LoanTerms("x", 1_000, 5, 12.5, 100, "monthly", date(2024, 1, 1))
    with pytest.raises(InvalidParameters):
        ExtraPayment(0, date(2024, 1, 1))


def test_transaction_from_record():
    transaction = transaction_from_record({"type": "expense", "amount": "1,250", "date": "2024-05-02"})
    assert transaction.kind is TransactionKind.EXPENSE
    assert transaction.amount == 1_250
    with pytest.raises(InvalidParameters):
        transaction_from_record({"type": "gift", "amount": 5, "date": "2024-05-02"})
    with pytest.raises(InvalidParameters):
        transaction_from_record({"type": "income", "date": "2024-05-02"})


def test_serialized_outputs_are_plain_json_values():
    schedule = serialize_schedule(build_schedule(1_000, 5, 2, start_date=date(2024, 1, 1)))
    assert schedule[0]["date"] == "2024-01-01"
    assert isinstance(schedule[0]["remaining_balance"], float)
    points = serialize_projection(project_portfolio([], 1_000, today=date(2024, 1, 1)))
    assert points == [{"date": "2024-01-01", "total_debt": 0, "net_income": 1_000.0, "debt_by_loan": {}}]


def test_utils():
    assert parse_date("2024-05") == date(2024, 5, 1)
    assert parse_date("2024-05-31") == date(2024, 5, 31)
    with pytest.raises(ValueError):
        parse_date("2024-13-01")
    assert add_months(date(2024, 1, 31), 1) == date(2024, 2, 29)
    assert add_months(date(2024, 3, 15), -3) == date(2023, 12, 15)
    assert months_between(date(2024, 1, 31), date(2024, 2, 1)) == 1
    assert parse_amount("2.5k") == 2_500
    assert parse_amount("1m") == 1_000_000


def test_settings_from_environment():
    settings = load_settings(
        {
            "LOAN_TRACKER_INCOME_GROWTH": "0.03",
            "LOAN_TRACKER_HORIZON_YEARS": "40",
            "LOAN_TRACKER_LOG_LEVEL": "debug",
            "LOAN_TRACKER_DATABASE_URL": "sqlite://",
        }
    )
    assert settings.income_growth == 0.03
    assert settings.horizon_years == 40
    assert settings.log_level == "DEBUG"
    assert settings.database_url == "sqlite://"


def test_settings_defaults_and_errors():
    assert load_settings({}).horizon_years == DEFAULT_HORIZON_YEARS
    with pytest.raises(InvalidParameters, match="LOAN_TRACKER_INCOME_GROWTH"):
        load_settings({"LOAN_TRACKER_INCOME_GROWTH": "lots"})
    with pytest.raises(InvalidParameters):
        load_settings({"LOAN_TRACKER_HORIZON_YEARS": "0"})
