"""Closed-form annuity formulas for level-payment loans.

The monthly rate is always derived from a nominal annual percentage as
``annual_rate_percent / 12 / 100``. A zero rate is a special case in both
directions: the loan is repaid in equal slices of the principal without
compounding.
"""

from __future__ import annotations

import math

from .errors import InvalidParameters


def monthly_rate(annual_rate_percent: float) -> float:
    """Convert a nominal annual percentage into a monthly decimal rate."""
    return annual_rate_percent / 12 / 100


def _discount_complement(rate: float, term_months: int) -> float:
    """``1 - (1 + rate)^-n``, accurate for tiny rates and immune to overflow."""
    return -math.expm1(-term_months * math.log1p(rate))


def payment_from_principal(principal: float, annual_rate_percent: float, term_months: int) -> float:
    """Return the fixed monthly payment that amortizes ``principal``.

    The formula is:

        payment = P * (i * (1 + i)^n) / ((1 + i)^n - 1)

    where ``P`` is the principal, ``i`` is the monthly interest rate and
    ``n`` is the number of payments. When the interest rate is zero, the
    payment simplifies to ``P / n``.
    """
    if term_months <= 0:
        raise InvalidParameters("Term must be positive")
    rate = monthly_rate(annual_rate_percent)
    if rate == 0:
        return principal / term_months
    return principal * rate / _discount_complement(rate, term_months)


def principal_from_payment(payment: float, annual_rate_percent: float, term_months: int) -> float:
    """Return the principal implied by a fixed monthly ``payment``.

    This inverts :func:`payment_from_principal`:

        principal = payment * (1 - (1 + i)^-n) / i

    and is the validating entry point used when a loan is entered by its
    payment rather than its amount.

    Raises
    ------
    InvalidParameters
        If the payment or term is not positive, the rate is negative, or the
        result is not a finite positive number.
    """
    if payment <= 0 or term_months <= 0 or annual_rate_percent < 0:
        raise InvalidParameters("All values must be positive numbers")

    if annual_rate_percent == 0:
        return payment * term_months

    rate = monthly_rate(annual_rate_percent)
    principal = payment * _discount_complement(rate, term_months) / rate

    if math.isnan(principal) or math.isinf(principal) or principal <= 0:
        raise InvalidParameters("Invalid loan parameters")
    return principal


def total_interest(principal: float, monthly_payment: float, term_months: int) -> float:
    """Interest paid over the full term when every payment is made as scheduled."""
    return monthly_payment * term_months - principal
