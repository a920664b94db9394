"""Data models for the loan tracker.

This module defines the dataclasses that flow through the numeric core: the
canonical loan record (:class:`LoanTerms`), out-of-band extra payments,
amortization schedule entries, portfolio projection points and the report
rollups. Loan inputs are validated on construction so the computation
functions can rely on them; every output type is frozen because it is a
derived, read-only value recomputed on demand.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Dict, Optional, Tuple, Union

from .errors import InvalidParameters
from .utils import add_months, parse_date
from .validators import (
    validate_non_negative_number,
    validate_positive_integer,
    validate_positive_number,
)


class PaymentFrequency(str, Enum):
    """How often the regular payment of a loan is made."""

    MONTHLY = "monthly"
    BIWEEKLY = "biweekly"

    @classmethod
    def parse(cls, value: Union["PaymentFrequency", str]) -> "PaymentFrequency":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            valid = ", ".join(item.value for item in cls)
            raise InvalidParameters(
                f"Payment frequency must be one of: {valid}; got {value!r}"
            ) from None


class LoanKind(str, Enum):
    LOAN = "loan"
    LEASE = "lease"

    @classmethod
    def parse(cls, value: Union["LoanKind", str]) -> "LoanKind":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise InvalidParameters(f"Loan kind must be 'loan' or 'lease'; got {value!r}") from None


class TransactionKind(str, Enum):
    INCOME = "income"
    EXPENSE = "expense"

    @classmethod
    def parse(cls, value: Union["TransactionKind", str]) -> "TransactionKind":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise InvalidParameters(
                f"Transaction kind must be 'income' or 'expense'; got {value!r}"
            ) from None


@dataclass(frozen=True)
class ExtraPayment:
    """An out-of-band payment applied to the principal.

    Attributes
    ----------
    amount: float
        Money applied to the principal on top of the regular payment.
    date: date
        The scheduled period whose date matches exactly receives the amount.
    """

    amount: float
    date: date

    def __post_init__(self) -> None:
        validate_positive_number(self.amount, "Extra payment amount")
        object.__setattr__(self, "date", parse_date(self.date))


@dataclass(frozen=True)
class LoanTerms:
    """The canonical loan record consumed by every computation.

    Records coming from storage or the CLI are converted into this shape at
    the boundary, so field names never vary inside the core.

    Attributes
    ----------
    name: str
        Display name; it also keys the per-loan series of a projection.
    principal: float
        Amount financed, in currency units.
    annual_rate_percent: float
        Nominal annual interest rate in percent (``5.99`` means 5.99 %/year).
    term_months: int
        Total number of monthly periods.
    regular_payment: float
        Amount paid per period at ``payment_frequency``.
    payment_frequency: PaymentFrequency
        Monthly or biweekly. Biweekly amounts are converted to a monthly
        equivalent wherever monthly aggregation is required.
    start_date: date
        Date the first period begins.
    kind: LoanKind
        ``loan`` or ``lease``.
    residual_value: Optional[float]
        End-of-term value of a leased asset. Not used by the amortization
        math.
    mileage_limit: Optional[float]
        Contracted mileage of a leased vehicle over the whole term.
    """

    name: str
    principal: float
    annual_rate_percent: float
    term_months: int
    regular_payment: float
    payment_frequency: PaymentFrequency
    start_date: date
    kind: LoanKind = LoanKind.LOAN
    residual_value: Optional[float] = None
    extra_payments: Tuple[ExtraPayment, ...] = ()
    mileage_limit: Optional[float] = None

    def __post_init__(self) -> None:
        validate_positive_number(self.principal, "Principal")
        validate_non_negative_number(self.annual_rate_percent, "Annual rate")
        validate_positive_integer(self.term_months, "Term in months")
        validate_positive_number(self.regular_payment, "Regular payment")
        if self.residual_value is not None:
            validate_non_negative_number(self.residual_value, "Residual value")
        if self.mileage_limit is not None:
            validate_positive_number(self.mileage_limit, "Mileage limit")
        object.__setattr__(self, "payment_frequency", PaymentFrequency.parse(self.payment_frequency))
        object.__setattr__(self, "kind", LoanKind.parse(self.kind))
        object.__setattr__(self, "start_date", parse_date(self.start_date))
        object.__setattr__(self, "extra_payments", tuple(self.extra_payments))

    @property
    def end_date(self) -> date:
        """Nominal payoff date: the start date plus the full term."""
        return add_months(self.start_date, self.term_months)


@dataclass(frozen=True)
class AmortizationEntry:
    """One scheduled period of a loan.

    ``principal_portion`` includes any extra payment applied this period, so
    ``principal_portion - (extra_payment or 0) + interest_portion == payment``.
    """

    date: date
    payment: float
    principal_portion: float
    interest_portion: float
    remaining_balance: float
    extra_payment: Optional[float] = None


@dataclass(frozen=True)
class LoanProgress:
    elapsed_months: int
    progress_percent: float
    remaining_balance: float


@dataclass(frozen=True)
class ProjectionPoint:
    """Portfolio state at one simulated month.

    ``total_debt`` always equals the sum of ``debt_by_loan_name``.
    """

    date: date
    total_debt: float
    net_income: float
    debt_by_loan_name: Dict[str, float] = field(default_factory=dict)


@dataclass(frozen=True)
class Transaction:
    amount: float
    kind: TransactionKind
    date: date
    category: str = ""
    description: str = ""

    def __post_init__(self) -> None:
        validate_non_negative_number(self.amount, "Transaction amount")
        object.__setattr__(self, "kind", TransactionKind.parse(self.kind))
        object.__setattr__(self, "date", parse_date(self.date))


@dataclass(frozen=True)
class LoanEndDate:
    name: str
    end_date: date


@dataclass(frozen=True)
class PortfolioMetrics:
    """Report rollups over a loan list.

    ``debt_to_income_ratio`` is None without a positive income and
    ``weighted_average_rate`` is None for an empty portfolio.
    """

    total_monthly_payment: float
    debt_to_income_ratio: Optional[float]
    weighted_average_rate: Optional[float]
    total_principal: float
    earliest_end: Optional[LoanEndDate]
    latest_end: Optional[LoanEndDate]


@dataclass(frozen=True)
class CashFlowSummary:
    total_income: float
    total_expenses: float
    total_loan_payments: float
    net_income: float
    savings_rate: float


@dataclass(frozen=True)
class ExtraPaymentSavings:
    interest_saved: float
    months_saved: int


@dataclass(frozen=True)
class SavingsGoal:
    """A target amount the household is saving towards.

    ``current_amount`` may exceed ``target_amount``; progress is then above
    100 %.
    """

    name: str
    target_amount: float
    current_amount: float = 0.0
    deadline: Optional[date] = None

    def __post_init__(self) -> None:
        if not str(self.name).strip():
            raise InvalidParameters("Savings goal needs a name")
        validate_positive_number(self.target_amount, "Target amount")
        validate_non_negative_number(self.current_amount, "Current amount")
        if self.deadline is not None:
            object.__setattr__(self, "deadline", parse_date(self.deadline))

    @property
    def progress_percent(self) -> float:
        return self.current_amount / self.target_amount * 100


@dataclass(frozen=True)
class MileageUpdate:
    """An odometer reading of a leased vehicle."""

    mileage: float
    date: date

    def __post_init__(self) -> None:
        validate_non_negative_number(self.mileage, "Mileage")
        object.__setattr__(self, "date", parse_date(self.date))


@dataclass(frozen=True)
class MileageUsage:
    current_mileage: float
    mileage_limit: float
    usage_percent: float


@dataclass(frozen=True)
class CategorySpending:
    category: str
    amount: float
    percent_of_total: float


@dataclass(frozen=True)
class PeriodTotals:
    """Income and expenses booked within one day or one calendar month."""

    period: date
    income: float
    expenses: float

    @property
    def balance(self) -> float:
        return self.income - self.expenses
