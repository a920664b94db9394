"""Validator functions shared by the data models and the scheduler boundary."""

from __future__ import annotations

import math

from .errors import InvalidParameters


def validate_positive_number(value, name: str) -> None:
    """Validate that a value is a finite number greater than zero."""
    _validate_number(value, name)
    if value <= 0:
        raise InvalidParameters(f"{name} must be greater than zero, got {value}.")


def validate_non_negative_number(value, name: str) -> None:
    """Validate that a value is a finite number greater or equal to zero."""
    _validate_number(value, name)
    if value < 0:
        raise InvalidParameters(f"{name} cannot be negative, got {value}.")


def validate_positive_integer(value, name: str) -> None:
    """Validate that a value is an integer greater or equal to 1."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidParameters(f"{name} must be an integer, got {value!r}.")
    if value < 1:
        raise InvalidParameters(f"{name} must be at least 1, got {value}.")


def _validate_number(value, name: str) -> None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidParameters(f"{name} must be a number, got {value!r}.")
    if math.isnan(value) or math.isinf(value):
        raise InvalidParameters(f"{name} must be finite, got {value}.")
