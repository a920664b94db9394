from __future__ import annotations

from datetime import date

import pytest

from loan_tracker.config import Settings
from loan_tracker.data_models import LoanTerms
from loan_tracker_web.app import create_app
from loan_tracker_web.store import LoanStore


@pytest.fixture
def make_loan():
    def _make(**overrides) -> LoanTerms:
        fields = dict(
            name="Car",
            principal=20_000.0,
            annual_rate_percent=5.0,
            term_months=36,
            regular_payment=599.42,
            payment_frequency="monthly",
            start_date=date(2024, 1, 15),
        )
        fields.update(overrides)
        return LoanTerms(**fields)

    return _make


@pytest.fixture
def store() -> LoanStore:
    return LoanStore("sqlite://")


@pytest.fixture
def client(store):
    app = create_app(Settings(), store)
    app.config["TESTING"] = True
    return app.test_client()
