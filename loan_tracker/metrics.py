"""Portfolio rollups consumed by the reporting views.

Every function here is an independent, order-insensitive aggregate over a
list of :class:`LoanTerms` or :class:`Transaction` records: loan totals and
ratios, cash flow, spending per category, month-by-month and trend totals,
and lease mileage usage. :func:`monthly_equivalent` is the only place the
biweekly to monthly conversion is applied.
"""

from __future__ import annotations

from datetime import date, timedelta
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, Union

from .data_models import (
    CashFlowSummary,
    CategorySpending,
    LoanEndDate,
    LoanTerms,
    MileageUpdate,
    MileageUsage,
    PaymentFrequency,
    PeriodTotals,
    PortfolioMetrics,
    Transaction,
    TransactionKind,
)
from .errors import InvalidParameters
from .utils import add_months

# 26 biweekly periods per year over 12 months
BIWEEKLY_TO_MONTHLY = 26 / 12


def monthly_equivalent(amount: float, frequency: Union[PaymentFrequency, str]) -> float:
    """Convert a payment at ``frequency`` into its monthly equivalent."""
    if PaymentFrequency.parse(frequency) is PaymentFrequency.BIWEEKLY:
        return amount * BIWEEKLY_TO_MONTHLY
    return amount


def loan_monthly_payment(loan: LoanTerms) -> float:
    return monthly_equivalent(loan.regular_payment, loan.payment_frequency)


def total_monthly_payment(loans: Iterable[LoanTerms]) -> float:
    return sum(loan_monthly_payment(loan) for loan in loans)


def debt_to_income_ratio(loans: Iterable[LoanTerms], monthly_net_income: float) -> float:
    """Total monthly obligation as a percentage of monthly net income."""
    if monthly_net_income <= 0:
        raise InvalidParameters("Monthly net income must be positive to compute a debt-to-income ratio")
    return total_monthly_payment(loans) / monthly_net_income * 100


def weighted_average_rate(loans: Iterable[LoanTerms]) -> Optional[float]:
    """Annual rate weighted by each loan's current principal.

    Returns None when there is no principal to weight by.
    """
    loans = list(loans)
    total_principal = sum(loan.principal for loan in loans)
    if total_principal <= 0:
        return None
    return sum(loan.annual_rate_percent * loan.principal for loan in loans) / total_principal


def loan_end_dates(loans: Iterable[LoanTerms]) -> List[LoanEndDate]:
    """Nominal end date of each loan, assuming it runs its full term."""
    return [LoanEndDate(name=loan.name, end_date=loan.end_date) for loan in loans]


def earliest_end(loans: Iterable[LoanTerms]) -> Optional[LoanEndDate]:
    ends = loan_end_dates(loans)
    return min(ends, key=lambda e: e.end_date) if ends else None


def latest_end(loans: Iterable[LoanTerms]) -> Optional[LoanEndDate]:
    ends = loan_end_dates(loans)
    return max(ends, key=lambda e: e.end_date) if ends else None


def portfolio_metrics(loans: Sequence[LoanTerms], monthly_net_income: float) -> PortfolioMetrics:
    """Bundle the portfolio rollups for a report.

    The debt-to-income ratio is left as None when income is not positive
    instead of raising, since a report still has the other figures to show.
    """
    loans = list(loans)
    ratio = debt_to_income_ratio(loans, monthly_net_income) if monthly_net_income > 0 else None
    return PortfolioMetrics(
        total_monthly_payment=total_monthly_payment(loans),
        debt_to_income_ratio=ratio,
        weighted_average_rate=weighted_average_rate(loans),
        total_principal=sum(loan.principal for loan in loans),
        earliest_end=earliest_end(loans),
        latest_end=latest_end(loans),
    )


def active_loans(loans: Iterable[LoanTerms], as_of: date) -> List[LoanTerms]:
    """Loans whose nominal term covers ``as_of``."""
    return [loan for loan in loans if loan.start_date <= as_of <= loan.end_date]


def cash_flow_summary(
    transactions: Iterable[Transaction], loans: Iterable[LoanTerms], as_of: date
) -> CashFlowSummary:
    """Income, expenses and active loan payments for a filtered transaction window.

    Loan payments count once per active loan at their monthly equivalent.
    ``savings_rate`` is the share of income left after expenses and loan
    payments, in percent, and 0 when there is no income.
    """
    transactions = list(transactions)
    total_income = sum(t.amount for t in transactions if t.kind is TransactionKind.INCOME)
    total_expenses = sum(t.amount for t in transactions if t.kind is TransactionKind.EXPENSE)
    total_loan_payments = total_monthly_payment(active_loans(loans, as_of))
    net_income = total_income - (total_expenses + total_loan_payments)
    savings_rate = net_income / total_income * 100 if total_income > 0 else 0.0
    return CashFlowSummary(
        total_income=total_income,
        total_expenses=total_expenses,
        total_loan_payments=total_loan_payments,
        net_income=net_income,
        savings_rate=savings_rate,
    )


def monthly_net_income(transactions: Iterable[Transaction], months: int) -> float:
    """Average monthly income minus expenses over a window of ``months`` months."""
    if months < 1:
        raise InvalidParameters(f"Window must span at least one month, got {months}")
    net = 0.0
    for t in transactions:
        net += t.amount if t.kind is TransactionKind.INCOME else -t.amount
    return net / months


def spending_by_category(transactions: Iterable[Transaction]) -> List[CategorySpending]:
    """Expense totals per category, largest first, with their share in percent."""
    totals: Dict[str, float] = {}
    for t in transactions:
        if t.kind is TransactionKind.EXPENSE:
            totals[t.category] = totals.get(t.category, 0.0) + t.amount
    overall = sum(totals.values())
    return [
        CategorySpending(
            category=category,
            amount=amount,
            percent_of_total=amount / overall * 100 if overall > 0 else 0.0,
        )
        for category, amount in sorted(totals.items(), key=lambda item: (-item[1], item[0]))
    ]


def _month_start(day: date) -> date:
    return date(day.year, day.month, 1)


def _period_totals(period: date, transactions: Iterable[Transaction]) -> PeriodTotals:
    income = expenses = 0.0
    for t in transactions:
        if t.kind is TransactionKind.INCOME:
            income += t.amount
        else:
            expenses += t.amount
    return PeriodTotals(period=period, income=income, expenses=expenses)


def monthly_overview(transactions: Iterable[Transaction], year: int) -> List[PeriodTotals]:
    """Income and expenses of each calendar month of ``year``, January first."""
    by_month: Dict[int, List[Transaction]] = {month: [] for month in range(1, 13)}
    for t in transactions:
        if t.date.year == year:
            by_month[t.date.month].append(t)
    return [_period_totals(date(year, month, 1), items) for month, items in by_month.items()]


# trend range -> (number of periods, whether a period is a calendar month)
TREND_RANGES: Dict[str, Tuple[int, bool]] = {
    "week": (7, False),
    "month": (30, False),
    "year": (12, True),
}


def income_expense_trend(
    transactions: Iterable[Transaction], as_of: date, date_range: str = "month"
) -> List[PeriodTotals]:
    """Income, expenses and balance per period up to ``as_of``, oldest first.

    ``week`` and ``month`` cover the last 7 and 30 days one day at a time;
    ``year`` covers the last 12 calendar months.
    """
    if date_range not in TREND_RANGES:
        valid = ", ".join(TREND_RANGES)
        raise InvalidParameters(f"Trend range must be one of: {valid}; got {date_range!r}")
    periods, monthly = TREND_RANGES[date_range]

    if monthly:
        starts = [add_months(_month_start(as_of), -offset) for offset in range(periods - 1, -1, -1)]
    else:
        starts = [as_of - timedelta(days=offset) for offset in range(periods - 1, -1, -1)]

    buckets: Dict[date, List[Transaction]] = {start: [] for start in starts}
    for t in transactions:
        bucket = buckets.get(_month_start(t.date) if monthly else t.date)
        if bucket is not None:
            bucket.append(t)
    return [_period_totals(start, items) for start, items in buckets.items()]


def latest_mileage(updates: Iterable[MileageUpdate]) -> Optional[float]:
    """Most recent odometer reading, or None before the first one."""
    updates = list(updates)
    if not updates:
        return None
    return max(updates, key=lambda u: u.date).mileage


def mileage_usage(loan: LoanTerms, current_mileage: Optional[float]) -> Optional[MileageUsage]:
    """Share of the contracted mileage already driven; None without a limit."""
    if loan.mileage_limit is None:
        return None
    current = current_mileage or 0.0
    return MileageUsage(
        current_mileage=current,
        mileage_limit=loan.mileage_limit,
        usage_percent=current / loan.mileage_limit * 100,
    )
