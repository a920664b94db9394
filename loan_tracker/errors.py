"""Exception types raised by the loan tracker."""

from __future__ import annotations


class LoanTrackerError(Exception):
    """Base class for all loan tracker errors."""


class InvalidParameters(LoanTrackerError, ValueError):
    """Numeric input that cannot describe a real loan.

    Raised when a principal, rate, term or payment is out of range, or when
    inverting a payment into a principal yields a non-finite or non-positive
    value.
    """


class RecordNotFound(LoanTrackerError, LookupError):
    """A stored record with the requested id does not exist for the user."""
