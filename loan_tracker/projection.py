"""Multi-loan payoff projection.

:func:`project_portfolio` walks a whole loan portfolio forward one calendar
month at a time to find when the household becomes debt-free. Two modelling
rules apply while stepping:

* net income grows by a fixed yearly raise at every January boundary;
* once a loan is paid off, its monthly payment is added to net income for
  good. It is *not* redirected to the remaining loans, so this is neither a
  snowball nor an avalanche strategy.

Loans that have not started yet on the reference date are left out of the
projection entirely.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Dict, Iterable, List, Optional, Tuple

from .annuity import monthly_rate
from .config import DEFAULT_HORIZON_YEARS, DEFAULT_INCOME_GROWTH
from .data_models import LoanTerms, ProjectionPoint
from .engine import replay_balance, settle_balance
from .errors import InvalidParameters
from .metrics import loan_monthly_payment
from .utils import add_months, months_between
from .validators import validate_positive_integer

logger = logging.getLogger(__name__)


def _opening_balances(
    loans: Iterable[LoanTerms], today: date
) -> Tuple[Dict[str, float], Dict[str, Tuple[float, float]]]:
    """Balance of every started loan on ``today`` plus its (rate, payment) pair."""
    debt_by_loan: Dict[str, float] = {}
    terms: Dict[str, Tuple[float, float]] = {}
    seen = set()
    for loan in loans:
        if loan.name in seen:
            raise InvalidParameters(f"Loan names must be unique within a projection; {loan.name!r} repeats")
        seen.add(loan.name)

        if loan.start_date > today:
            logger.warning("Loan %r starts on %s and is left out of the projection", loan.name, loan.start_date)
            continue

        payment = loan_monthly_payment(loan)
        elapsed = months_between(loan.start_date, today)
        balance = replay_balance(
            loan.principal, loan.annual_rate_percent, payment, min(elapsed, loan.term_months)
        )
        if balance <= 0:
            continue

        rate = monthly_rate(loan.annual_rate_percent)
        if payment <= balance * rate:
            logger.warning(
                "Loan %r: payment %.2f does not cover monthly interest %.2f; its balance will not shrink",
                loan.name,
                payment,
                balance * rate,
            )
        debt_by_loan[loan.name] = balance
        terms[loan.name] = (rate, payment)
    return debt_by_loan, terms


def project_portfolio(
    loans: Iterable[LoanTerms],
    monthly_net_income: float,
    horizon_years: int = DEFAULT_HORIZON_YEARS,
    *,
    today: Optional[date] = None,
    income_growth: float = DEFAULT_INCOME_GROWTH,
) -> List[ProjectionPoint]:
    """Project total debt and net income month by month.

    Parameters
    ----------
    loans: Iterable[LoanTerms]
        The portfolio. Names must be unique; they key ``debt_by_loan_name``.
    monthly_net_income: float
        Net income in the month of ``today``.
    horizon_years: int
        Stop after this many years even if debt remains.
    today: date
        Reference date of the first point. Defaults to the current date.
    income_growth: float
        Yearly raise applied to net income at each January boundary.

    Returns
    -------
    List[ProjectionPoint]
        The opening point followed by one point per simulated month, at most
        ``horizon_years * 12 + 1`` points. The last point has
        ``total_debt == 0`` unless the horizon was reached first, in which
        case the debt-free date lies beyond the horizon.
    """
    validate_positive_integer(horizon_years, "Horizon in years")
    if today is None:
        today = date.today()
    horizon_end = add_months(today, horizon_years * 12)

    debt_by_loan, terms = _opening_balances(loans, today)
    total_debt = sum(debt_by_loan.values())
    net_income = float(monthly_net_income)

    projection = [
        ProjectionPoint(date=today, total_debt=total_debt, net_income=net_income, debt_by_loan_name=dict(debt_by_loan))
    ]

    step = 0
    current_date = today
    while current_date < horizon_end and total_debt > 0:
        step += 1
        current_date = add_months(today, step)
        if current_date.month == 1:
            net_income *= 1 + income_growth

        for name in list(debt_by_loan):
            balance = debt_by_loan[name]
            if balance <= 0:
                continue
            rate, payment = terms[name]
            interest = balance * rate
            new_balance = settle_balance(max(0.0, balance - (payment - interest)), payment)
            debt_by_loan[name] = new_balance
            if new_balance == 0:
                logger.debug("Loan %r paid off on %s; %.2f/month freed", name, current_date, payment)
                net_income += payment

        total_debt = sum(debt_by_loan.values())
        projection.append(
            ProjectionPoint(
                date=current_date,
                total_debt=total_debt,
                net_income=net_income,
                debt_by_loan_name=dict(debt_by_loan),
            )
        )

    logger.debug("Projected %d months, final debt %.2f", step, total_debt)
    return projection


def debt_free_date(projection: List[ProjectionPoint]) -> Optional[date]:
    """Date of the first point without debt, or None beyond the horizon."""
    for point in projection:
        if point.total_debt == 0:
            return point.date
    return None


def years_to_debt_free(projection: List[ProjectionPoint], today: date) -> Optional[float]:
    """Years from ``today`` until debt-free, rounded to one decimal."""
    free_on = debt_free_date(projection)
    if free_on is None:
        return None
    return round((free_on - today).days / 365.25, 1)
