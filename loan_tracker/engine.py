"""Core amortization engine for the loan tracker.

This module builds month-by-month amortization schedules for level-payment
loans, including out-of-band extra payments that shorten the loan, and
estimates how far along a loan is on a given date. Results are returned as
lists of :class:`AmortizationEntry` objects and :class:`LoanProgress`
values; nothing here performs I/O or reads the clock unless no reference
date is supplied.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Dict, Iterable, List, Optional

from .annuity import monthly_rate, payment_from_principal
from .data_models import AmortizationEntry, ExtraPayment, ExtraPaymentSavings, LoanProgress, LoanTerms
from .utils import add_months, months_between
from .validators import validate_non_negative_number, validate_positive_integer, validate_positive_number

logger = logging.getLogger(__name__)

# A balance left below half a cent after a payment is written off, so floating
# point residue never produces a phantom extra period. The write-off is capped
# at half a regular payment so it never swallows a whole period.
SETTLE_THRESHOLD = 0.005


def settle_balance(balance: float, payment: float) -> float:
    """Return ``balance``, or 0.0 when it is only rounding residue."""
    if balance < min(SETTLE_THRESHOLD, payment / 2):
        return 0.0
    return balance


def _prepare_extra_payments(extra_payments: Iterable[ExtraPayment]) -> Dict[date, float]:
    """Sum extra payments by date for quick lookup."""
    mapping: Dict[date, float] = {}
    for extra in extra_payments:
        mapping[extra.date] = mapping.get(extra.date, 0.0) + extra.amount
    return mapping


def build_schedule(
    principal: float,
    annual_rate_percent: float,
    term_months: int,
    extra_payments: Iterable[ExtraPayment] = (),
    start_date: Optional[date] = None,
) -> List[AmortizationEntry]:
    """Compute the amortization schedule of a level-payment loan.

    Parameters
    ----------
    principal: float
        Amount financed.
    annual_rate_percent: float
        Nominal annual rate in percent.
    term_months: int
        Number of monthly periods.
    extra_payments: Iterable[ExtraPayment]
        Payments applied to the principal in the period whose date matches
        exactly. Several payments on the same date are summed. An entry
        records the amount actually applied, which is cut down to the
        balance left after the regular payment; a period with nothing left
        to prepay records ``None``.
    start_date: date
        Date of the first period; later periods fall on the same day of
        each following month. Defaults to today.

    Returns
    -------
    List[AmortizationEntry]
        One entry per period. The list stops as soon as the balance reaches
        zero, so extra payments produce fewer than ``term_months`` entries.

    Raises
    ------
    InvalidParameters
        If the principal or term is not positive or the rate is negative.
    """
    validate_positive_number(principal, "Principal")
    validate_non_negative_number(annual_rate_percent, "Annual rate")
    validate_positive_integer(term_months, "Term in months")
    if start_date is None:
        start_date = date.today()

    rate = monthly_rate(annual_rate_percent)
    payment = payment_from_principal(principal, annual_rate_percent, term_months)
    extra_map = _prepare_extra_payments(extra_payments)

    schedule: List[AmortizationEntry] = []
    balance = float(principal)
    for month in range(term_months):
        if balance <= 0:
            break
        current_date = add_months(start_date, month)
        interest = balance * rate
        regular_principal = payment - interest
        settled = regular_principal > balance
        if settled:
            # final period: never overpay
            regular_principal = balance

        principal_paid = regular_principal
        extra_applied: Optional[float] = None
        left_after_regular = settle_balance(balance - regular_principal, payment)
        if current_date in extra_map and left_after_regular > 0:
            extra_applied = min(extra_map[current_date], left_after_regular)
            principal_paid += extra_applied

        balance = settle_balance(balance - principal_paid, payment)

        schedule.append(
            AmortizationEntry(
                date=current_date,
                payment=regular_principal + interest if settled else payment,
                principal_portion=principal_paid,
                interest_portion=interest,
                remaining_balance=balance,
                extra_payment=extra_applied,
            )
        )

    logger.debug(
        "Built schedule of %d/%d periods for principal %.2f at %.4f%%",
        len(schedule),
        term_months,
        principal,
        annual_rate_percent,
    )
    return schedule


def schedule_for_loan(loan: LoanTerms, include_extra_payments: bool = True) -> List[AmortizationEntry]:
    """Schedule a stored loan from its own terms and start date."""
    return build_schedule(
        loan.principal,
        loan.annual_rate_percent,
        loan.term_months,
        loan.extra_payments if include_extra_payments else (),
        loan.start_date,
    )


def schedule_totals(schedule: List[AmortizationEntry]) -> Dict[str, object]:
    """Aggregate a schedule into the figures shown next to it."""
    total_interest = sum(e.interest_portion for e in schedule)
    total_principal = sum(e.principal_portion for e in schedule)
    total_extra = sum(e.extra_payment or 0.0 for e in schedule)
    return {
        "periods": len(schedule),
        "total_paid": total_principal + total_interest,
        "total_interest": total_interest,
        "total_principal": total_principal,
        "total_extra": total_extra,
        "payoff_date": schedule[-1].date if schedule else None,
    }


def extra_payment_savings(
    loan: LoanTerms, extra_payments: Optional[Iterable[ExtraPayment]] = None
) -> ExtraPaymentSavings:
    """Interest and months saved by ``extra_payments`` against the plain schedule.

    ``extra_payments`` defaults to the extra payments recorded on the loan.
    """
    if extra_payments is None:
        extra_payments = loan.extra_payments
    baseline = schedule_for_loan(loan, include_extra_payments=False)
    accelerated = build_schedule(
        loan.principal, loan.annual_rate_percent, loan.term_months, extra_payments, loan.start_date
    )
    interest_saved = sum(e.interest_portion for e in baseline) - sum(e.interest_portion for e in accelerated)
    return ExtraPaymentSavings(interest_saved=interest_saved, months_saved=len(baseline) - len(accelerated))


def replay_balance(principal: float, annual_rate_percent: float, payment: float, periods: int) -> float:
    """Balance left after ``periods`` regular payments, without building entries.

    Uses the same per-period decay and final-period settlement as
    :func:`build_schedule`, so with the scheduled payment both agree exactly.
    A payment below the period's interest makes the balance grow.
    """
    rate = monthly_rate(annual_rate_percent)
    balance = float(principal)
    for _ in range(max(periods, 0)):
        if balance <= 0:
            break
        interest = balance * rate
        principal_paid = payment - interest
        if principal_paid > balance:
            principal_paid = balance
        balance = settle_balance(balance - principal_paid, payment)
    return balance


def progress_as_of(loan: LoanTerms, as_of: Optional[date] = None) -> LoanProgress:
    """How far ``loan`` has progressed on ``as_of`` (defaults to today).

    Elapsed time counts whole calendar months and ignores the day of month.
    Progress is clamped to [0, 100]. The remaining balance replays the
    standard payment for the elapsed periods: the original principal before
    the start, zero once the term has passed.
    """
    if as_of is None:
        as_of = date.today()
    elapsed = months_between(loan.start_date, as_of)
    progress = min(max(elapsed / loan.term_months * 100, 0.0), 100.0)
    payment = payment_from_principal(loan.principal, loan.annual_rate_percent, loan.term_months)
    remaining = replay_balance(
        loan.principal, loan.annual_rate_percent, payment, min(elapsed, loan.term_months)
    )
    return LoanProgress(elapsed_months=elapsed, progress_percent=progress, remaining_balance=remaining)
