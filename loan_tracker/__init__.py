"""Loan amortization, progress and payoff projection for personal finances.

The numeric core lives in :mod:`loan_tracker.annuity`,
:mod:`loan_tracker.engine`, :mod:`loan_tracker.projection` and
:mod:`loan_tracker.metrics`. All functions are pure: they take loan records
already fetched from storage and an explicit reference date.
"""

from .annuity import payment_from_principal, principal_from_payment, total_interest
from .data_models import (
    AmortizationEntry,
    ExtraPayment,
    LoanKind,
    LoanProgress,
    LoanTerms,
    MileageUpdate,
    PaymentFrequency,
    ProjectionPoint,
    SavingsGoal,
    Transaction,
    TransactionKind,
)
from .engine import build_schedule, progress_as_of
from .errors import InvalidParameters, LoanTrackerError, RecordNotFound
from .metrics import monthly_equivalent, portfolio_metrics
from .projection import debt_free_date, project_portfolio

__all__ = [
    "AmortizationEntry",
    "ExtraPayment",
    "InvalidParameters",
    "LoanKind",
    "LoanProgress",
    "LoanTerms",
    "LoanTrackerError",
    "MileageUpdate",
    "PaymentFrequency",
    "ProjectionPoint",
    "RecordNotFound",
    "SavingsGoal",
    "Transaction",
    "TransactionKind",
    "build_schedule",
    "debt_free_date",
    "monthly_equivalent",
    "payment_from_principal",
    "portfolio_metrics",
    "principal_from_payment",
    "progress_as_of",
    "project_portfolio",
    "total_interest",
]
